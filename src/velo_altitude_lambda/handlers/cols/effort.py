"""Climb effort estimation for a col and a rider profile.

The effort score combines the climb's distance, elevation gain, average
gradient and surface into a base effort, scaled by a rider factor that
accounts for level, age, weight and mountain experience. Time and energy
estimates are derived from that score.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from velo_altitude_lambda.common.handler import LambdaHandler
from velo_altitude_lambda.handlers.cols.model import ClimbEffortRequest, ClimbEffortResponse

SURFACE_FACTORS = {
    "road": 0.1,
    "gravel": 0.3,
    "trail": 0.5,
    "mountain": 0.7,
    "technical": 0.9,
}

LEVEL_ADJUSTMENTS = {
    "beginner": 0.3,
    "intermediate": 0.1,
    "advanced": -0.1,
    "expert": -0.2,
}

BASE_SPEEDS_KMH = {
    "beginner": 18.0,
    "intermediate": 25.0,
    "advanced": 30.0,
    "expert": 35.0,
}

# (upper bound of the score in percent, category, MET value)
EFFORT_CATEGORIES = (
    (30, "easy", 5.0),
    (50, "moderate", 7.0),
    (70, "hard", 10.0),
    (85, "very_hard", 12.0),
)
EXTREME = ("extreme", 14.0)

MIN_RIDER_FACTOR = 0.7
MAX_RIDER_FACTOR = 1.3
MIN_SPEED_RATIO = 0.25
TIME_RANGE = 0.15


def calculate_base_effort(length_km: float, elevation_gain_m: float, surface: str) -> float:
    gradient = average_gradient(length_km, elevation_gain_m)
    distance_factor = length_km / 100
    elevation_factor = elevation_gain_m / 1000
    gradient_factor = (gradient / 5) ** 1.5
    surface_factor = SURFACE_FACTORS.get(surface, SURFACE_FACTORS["road"])
    return (
        distance_factor * 0.4
        + elevation_factor * 0.4
        + gradient_factor * 0.15
        + surface_factor * 0.05
    )


def calculate_rider_factor(
    level: str, weight: float, age: Optional[int] = None, mountain_experience: bool = False
) -> float:
    factor = 1.0 + LEVEL_ADJUSTMENTS.get(level, LEVEL_ADJUSTMENTS["intermediate"])
    if age is not None:
        if age < 25:
            factor += 0.05
        elif age > 35:
            factor += 0.01 * (age - 35) / 5
    factor += (weight - 70) / 100
    if mountain_experience:
        factor -= 0.05
    return max(MIN_RIDER_FACTOR, min(MAX_RIDER_FACTOR, factor))


def average_gradient(length_km: float, elevation_gain_m: float) -> float:
    """Average gradient in percent."""
    return elevation_gain_m / (length_km * 10)


def effort_category(effort: float) -> Tuple[str, float]:
    """Category name and MET value of an effort score."""
    score = effort * 100
    for upper_bound, name, met in EFFORT_CATEGORIES:
        if score < upper_bound:
            return name, met
    return EXTREME


def format_duration(hours: float) -> str:
    total_minutes = int(round(hours * 60))
    return f"{total_minutes // 60}h{total_minutes % 60:02d}"


@dataclass  # type: ignore[misc] # mypy #5374
class ClimbEffortHandler(LambdaHandler[ClimbEffortRequest, ClimbEffortResponse]):
    """Estimates effort, time and energy of climbing a col."""

    def handle(self, request: ClimbEffortRequest) -> ClimbEffortResponse:
        base_effort = calculate_base_effort(
            request.length_km, request.elevation_gain_m, request.surface
        )
        rider_factor = calculate_rider_factor(
            request.level, request.weight, request.age, request.mountain_experience
        )
        effort = base_effort * rider_factor
        category, met = effort_category(effort)

        base_speed = BASE_SPEEDS_KMH.get(request.level, BASE_SPEEDS_KMH["intermediate"])
        speed = base_speed * max(MIN_SPEED_RATIO, 1 - effort * 0.5)
        hours = request.length_km / speed

        self.logger.info(
            f"Col {request.col_id}: effort {effort:.2f} ({category}), {speed:.1f} km/h"
        )
        return ClimbEffortResponse(
            col_id=request.col_id,
            effort_score=int(round(effort * 100)),
            effort_category=category,
            base_effort=int(round(base_effort * 100)),
            rider_factor=round(rider_factor, 2),
            avg_gradient=round(average_gradient(request.length_km, request.elevation_gain_m), 1),
            avg_speed_kmh=round(speed, 1),
            time_minutes=int(round(hours * 60)),
            time_formatted=format_duration(hours),
            min_time_formatted=format_duration(hours * (1 - TIME_RANGE)),
            max_time_formatted=format_duration(hours * (1 + TIME_RANGE)),
            energy_kcal=int(round(met * request.weight * hours)),
        )
