from dataclasses import dataclass
from typing import List, Optional

import marshmallow as mm
from aibs_informatics_core.models.base import SchemaModel, custom_field
from boto3.dynamodb.conditions import Attr, ConditionBase

from velo_altitude_lambda.handlers.model import SearchQuery, as_number

GENDERS = ["male", "female"]
ACTIVITY_LEVELS = ["sedentary", "light", "moderate", "active", "veryActive"]
GOALS = ["weightLoss", "maintenance", "performance", "weightGain"]


@dataclass
class NutritionSearchQuery(SearchQuery):
    meal_type: Optional[str] = None
    difficulty: Optional[str] = None
    tag: Optional[str] = None
    max_prep_time: Optional[int] = None
    max_calories: Optional[int] = None
    min_protein: Optional[int] = None

    def conditions(self) -> List[ConditionBase]:
        conditions = super().conditions()
        if self.meal_type:
            conditions.append(Attr("mealType").eq(self.meal_type))
        if self.difficulty:
            conditions.append(Attr("difficulty").eq(self.difficulty))
        if self.tag:
            conditions.append(Attr("tags").contains(self.tag))
        if self.max_prep_time is not None:
            conditions.append(Attr("preparationTime").lte(as_number(self.max_prep_time)))
        if self.max_calories is not None:
            conditions.append(Attr("nutritionalInfo.calories").lte(as_number(self.max_calories)))
        if self.min_protein is not None:
            conditions.append(Attr("nutritionalInfo.protein").gte(as_number(self.min_protein)))
        return conditions


@dataclass
class NutritionNeedsRequest(SchemaModel):
    """Body of `POST /nutrition/needs`. Weight in kg, height in cm."""

    weight: float = custom_field(
        mm_field=mm.fields.Float(required=True, validate=mm.validate.Range(30, 250))
    )
    height: float = custom_field(
        mm_field=mm.fields.Float(required=True, validate=mm.validate.Range(100, 250))
    )
    age: int = custom_field(
        mm_field=mm.fields.Integer(required=True, validate=mm.validate.Range(10, 100))
    )
    gender: str = custom_field(
        mm_field=mm.fields.String(required=True, validate=mm.validate.OneOf(GENDERS))
    )
    activity_level: str = custom_field(
        default="moderate",
        mm_field=mm.fields.String(validate=mm.validate.OneOf(ACTIVITY_LEVELS)),
    )
    goal: str = custom_field(
        default="maintenance", mm_field=mm.fields.String(validate=mm.validate.OneOf(GOALS))
    )


@dataclass
class MacroNutrients(SchemaModel):
    grams: int
    calories: int
    percentage: int


@dataclass
class NutritionNeedsResponse(SchemaModel):
    bmr: int
    tdee: int
    calories: int
    protein: MacroNutrients
    carbs: MacroNutrients
    fat: MacroNutrients
    water_ml: int
    fiber_g: int
