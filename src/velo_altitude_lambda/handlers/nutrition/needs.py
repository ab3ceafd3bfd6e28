"""Daily nutritional needs of a rider.

Basal metabolic rate uses the Mifflin-St Jeor equation. Total daily energy
expenditure scales it by an activity factor, and the goal adjusts calories
and the protein / carbohydrate / fat split.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from velo_altitude_lambda.common.handler import LambdaHandler
from velo_altitude_lambda.handlers.nutrition.model import (
    MacroNutrients,
    NutritionNeedsRequest,
    NutritionNeedsResponse,
)

ACTIVITY_FACTORS: Dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "veryActive": 1.9,
}

# goal -> (calorie factor, (protein %, carbs %, fat %))
GOAL_ADJUSTMENTS: Dict[str, Tuple[float, Tuple[int, int, int]]] = {
    "weightLoss": (0.8, (30, 40, 30)),
    "maintenance": (1.0, (25, 50, 25)),
    "performance": (1.1, (25, 55, 20)),
    "weightGain": (1.15, (25, 50, 25)),
}

HIGH_ACTIVITY_LEVELS = ("active", "veryActive")
HIGH_ACTIVITY_CARB_SHIFT = 5

CALORIES_PER_GRAM = {"protein": 4, "carbs": 4, "fat": 9}
WATER_ML_PER_KG = 35
FIBER_G = {"male": 38, "female": 25}


def calculate_bmr(weight: float, height: float, age: int, gender: str) -> float:
    base = 10 * weight + 6.25 * height - 5 * age
    return base + 5 if gender == "male" else base - 161


def macro_split(goal: str, activity_level: str) -> Tuple[int, int, int]:
    protein, carbs, fat = GOAL_ADJUSTMENTS[goal][1]
    if activity_level in HIGH_ACTIVITY_LEVELS:
        carbs += HIGH_ACTIVITY_CARB_SHIFT
        fat -= HIGH_ACTIVITY_CARB_SHIFT
    return protein, carbs, fat


def to_macro(name: str, calories: float, percentage: int) -> MacroNutrients:
    macro_calories = calories * percentage / 100
    return MacroNutrients(
        grams=int(round(macro_calories / CALORIES_PER_GRAM[name])),
        calories=int(round(macro_calories)),
        percentage=percentage,
    )


@dataclass  # type: ignore[misc] # mypy #5374
class NutritionNeedsHandler(LambdaHandler[NutritionNeedsRequest, NutritionNeedsResponse]):
    def handle(self, request: NutritionNeedsRequest) -> NutritionNeedsResponse:
        bmr = calculate_bmr(request.weight, request.height, request.age, request.gender)
        tdee = bmr * ACTIVITY_FACTORS[request.activity_level]
        calories = tdee * GOAL_ADJUSTMENTS[request.goal][0]
        protein, carbs, fat = macro_split(request.goal, request.activity_level)

        self.logger.info(
            f"Nutrition needs ({request.activity_level}, {request.goal}): {calories:.0f} kcal"
        )
        return NutritionNeedsResponse(
            bmr=int(round(bmr)),
            tdee=int(round(tdee)),
            calories=int(round(calories)),
            protein=to_macro("protein", calories, protein),
            carbs=to_macro("carbs", calories, carbs),
            fat=to_macro("fat", calories, fat),
            water_ml=int(round(request.weight * WATER_ML_PER_KG)),
            fiber_g=FIBER_G.get(request.gender, FIBER_G["female"]),
        )
