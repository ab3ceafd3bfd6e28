from dataclasses import dataclass
from typing import List, Optional

import marshmallow as mm
from aibs_informatics_core.models.base import SchemaModel, custom_field
from boto3.dynamodb.conditions import Attr, ConditionBase

from velo_altitude_lambda.handlers.model import SearchQuery, as_number

RIDER_LEVELS = ["beginner", "intermediate", "advanced", "expert"]
SURFACE_TYPES = ["road", "gravel", "trail", "mountain", "technical"]


@dataclass
class ColSearchQuery(SearchQuery):
    region: Optional[str] = None
    country: Optional[str] = None
    difficulty: Optional[str] = None
    tag: Optional[str] = None
    min_elevation: Optional[int] = None
    max_elevation: Optional[int] = None

    def conditions(self) -> List[ConditionBase]:
        conditions = super().conditions()
        for attribute, value in (
            ("region", self.region),
            ("country", self.country),
            ("difficulty", self.difficulty),
        ):
            if value:
                conditions.append(Attr(attribute).eq(value))
        if self.tag:
            conditions.append(Attr("tags").contains(self.tag))
        if self.min_elevation is not None:
            conditions.append(Attr("elevation").gte(as_number(self.min_elevation)))
        if self.max_elevation is not None:
            conditions.append(Attr("elevation").lte(as_number(self.max_elevation)))
        return conditions


@dataclass
class RiderProfile(SchemaModel):
    """Body of `POST /cols/{id}/estimate`."""

    level: str = custom_field(
        default="intermediate", mm_field=mm.fields.String(validate=mm.validate.OneOf(RIDER_LEVELS))
    )
    weight: float = custom_field(
        default=70.0, mm_field=mm.fields.Float(validate=mm.validate.Range(30, 200))
    )
    age: Optional[int] = custom_field(
        default=None,
        mm_field=mm.fields.Integer(allow_none=True, validate=mm.validate.Range(10, 100)),
    )
    surface: str = custom_field(
        default="road", mm_field=mm.fields.String(validate=mm.validate.OneOf(SURFACE_TYPES))
    )
    mountain_experience: bool = False


@dataclass
class ClimbEffortRequest(SchemaModel):
    col_id: str
    length_km: float = custom_field(
        mm_field=mm.fields.Float(required=True, validate=mm.validate.Range(0.1))
    )
    elevation_gain_m: float = custom_field(
        mm_field=mm.fields.Float(required=True, validate=mm.validate.Range(0))
    )
    level: str = "intermediate"
    weight: float = 70.0
    age: Optional[int] = None
    surface: str = "road"
    mountain_experience: bool = False


@dataclass
class ClimbEffortResponse(SchemaModel):
    col_id: str
    effort_score: int
    effort_category: str
    base_effort: int
    rider_factor: float
    avg_gradient: float
    avg_speed_kmh: float
    time_minutes: int
    time_formatted: str
    min_time_formatted: str
    max_time_formatted: str
    energy_kcal: int
