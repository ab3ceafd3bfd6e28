from test.velo_altitude_lambda.base import LambdaHandlerTestCase, LambdaHandlerType

from pytest import approx, mark, param

from velo_altitude_lambda.handlers.cols.effort import (
    ClimbEffortHandler,
    average_gradient,
    calculate_base_effort,
    calculate_rider_factor,
    effort_category,
    format_duration,
)
from velo_altitude_lambda.handlers.cols.model import ClimbEffortRequest, ClimbEffortResponse


def test__average_gradient():
    assert average_gradient(10, 800) == approx(8.0)
    assert average_gradient(12.5, 500) == approx(4.0)


def test__calculate_base_effort():
    assert calculate_base_effort(10, 800, "road") == approx(0.66858, abs=1e-4)


def test__calculate_base_effort__rougher_surface_is_harder():
    road = calculate_base_effort(10, 800, "road")
    gravel = calculate_base_effort(10, 800, "gravel")
    assert gravel - road == approx(0.01)


def test__calculate_base_effort__unknown_surface_counts_as_road():
    assert calculate_base_effort(10, 800, "ice") == calculate_base_effort(10, 800, "road")


@mark.parametrize(
    "level, weight, age, mountain_experience, expected",
    [
        param("intermediate", 70, None, False, 1.1, id="intermediate baseline"),
        param("intermediate", 70, 45, False, 1.12, id="older rider"),
        param("intermediate", 70, 20, False, 1.15, id="young rider"),
        param("advanced", 80, None, True, 0.95, id="advanced experienced"),
        param("beginner", 100, None, False, 1.3, id="clamped high"),
        param("expert", 50, 20, True, 0.7, id="clamped low"),
    ],
)
def test__calculate_rider_factor(level, weight, age, mountain_experience, expected):
    assert calculate_rider_factor(level, weight, age, mountain_experience) == approx(expected)


@mark.parametrize(
    "effort, expected",
    [
        param(0.1, ("easy", 5.0), id="easy"),
        param(0.31, ("moderate", 7.0), id="moderate"),
        param(0.69, ("hard", 10.0), id="hard"),
        param(0.849, ("very_hard", 12.0), id="very hard"),
        param(0.86, ("extreme", 14.0), id="just extreme"),
        param(2.0, ("extreme", 14.0), id="extreme"),
    ],
)
def test__effort_category(effort, expected):
    assert effort_category(effort) == expected


@mark.parametrize(
    "hours, expected",
    [
        param(1.5, "1h30", id="hour and a half"),
        param(0.25, "0h15", id="quarter"),
        param(0.9999, "1h00", id="rounds up to the hour"),
        param(2.1, "2h06", id="zero padded minutes"),
    ],
)
def test__format_duration(hours, expected):
    assert format_duration(hours) == expected


class ClimbEffortHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return ClimbEffortHandler.get_handler()

    def test__handle__estimates_climb(self):
        request = ClimbEffortRequest(col_id="col-123", length_km=10, elevation_gain_m=800)
        expected = ClimbEffortResponse(
            col_id="col-123",
            effort_score=74,
            effort_category="very_hard",
            base_effort=67,
            rider_factor=1.1,
            avg_gradient=8.0,
            avg_speed_kmh=15.8,
            time_minutes=38,
            time_formatted="0h38",
            min_time_formatted="0h32",
            max_time_formatted="0h44",
            energy_kcal=531,
        )
        self.assertEqual(ClimbEffortHandler().handle(request), expected)

    def test__handle__stronger_rider_is_faster(self):
        base = dict(col_id="col-123", length_km=10, elevation_gain_m=800)
        beginner = ClimbEffortHandler().handle(ClimbEffortRequest(level="beginner", **base))
        expert = ClimbEffortHandler().handle(ClimbEffortRequest(level="expert", **base))
        self.assertGreater(beginner.effort_score, expert.effort_score)
        self.assertGreater(beginner.time_minutes, expert.time_minutes)

    def test__handler__deserializes_event(self):
        response = self.handler(
            {"col_id": "col-123", "length_km": 10, "elevation_gain_m": 800}, self.context
        )
        self.assertEqual(response["effort_score"], 74)
        self.assertEqual(response["time_formatted"], "0h38")

    def test__handler__rejects_missing_length(self):
        self.assertLambdaRaises(self.handler, {"col_id": "col-123"}, Exception)
