from test.velo_altitude_lambda.base import LambdaHandlerTestCase, LambdaHandlerType

from pytest import approx, mark, param

from velo_altitude_lambda.handlers.nutrition.model import (
    MacroNutrients,
    NutritionNeedsRequest,
    NutritionNeedsResponse,
)
from velo_altitude_lambda.handlers.nutrition.needs import (
    NutritionNeedsHandler,
    calculate_bmr,
    macro_split,
)


@mark.parametrize(
    "weight, height, age, gender, expected",
    [
        param(70, 175, 30, "male", 1648.75, id="male"),
        param(60, 165, 25, "female", 1345.25, id="female"),
    ],
)
def test__calculate_bmr(weight, height, age, gender, expected):
    assert calculate_bmr(weight, height, age, gender) == approx(expected)


@mark.parametrize(
    "goal, activity_level, expected",
    [
        param("maintenance", "moderate", (25, 50, 25), id="maintenance"),
        param("weightLoss", "light", (30, 40, 30), id="weight loss"),
        param("performance", "active", (25, 60, 15), id="performance active"),
        param("weightGain", "veryActive", (25, 55, 20), id="weight gain very active"),
    ],
)
def test__macro_split(goal, activity_level, expected):
    assert macro_split(goal, activity_level) == expected


class NutritionNeedsHandlerTests(LambdaHandlerTestCase):
    @property
    def handler(self) -> LambdaHandlerType:
        return NutritionNeedsHandler.get_handler()

    def test__handle__maintenance(self):
        request = NutritionNeedsRequest(weight=70, height=175, age=30, gender="male")
        self.assertEqual(
            NutritionNeedsHandler().handle(request),
            NutritionNeedsResponse(
                bmr=1649,
                tdee=2556,
                calories=2556,
                protein=MacroNutrients(grams=160, calories=639, percentage=25),
                carbs=MacroNutrients(grams=319, calories=1278, percentage=50),
                fat=MacroNutrients(grams=71, calories=639, percentage=25),
                water_ml=2450,
                fiber_g=38,
            ),
        )

    def test__handle__active_performance(self):
        request = NutritionNeedsRequest(
            weight=60,
            height=165,
            age=25,
            gender="female",
            activity_level="active",
            goal="performance",
        )
        response = NutritionNeedsHandler().handle(request)
        self.assertEqual(response.calories, 2553)
        self.assertEqual(response.protein.grams, 160)
        self.assertEqual(response.carbs, MacroNutrients(grams=383, calories=1532, percentage=60))
        self.assertEqual(response.fat.grams, 43)
        self.assertEqual(response.water_ml, 2100)
        self.assertEqual(response.fiber_g, 25)

    def test__handle__weight_loss_reduces_calories(self):
        base = dict(weight=80, height=180, age=40, gender="male")
        maintenance = NutritionNeedsHandler().handle(NutritionNeedsRequest(**base))
        loss = NutritionNeedsHandler().handle(NutritionNeedsRequest(goal="weightLoss", **base))
        self.assertEqual(loss.tdee, maintenance.tdee)
        self.assertAlmostEqual(loss.calories, maintenance.calories * 0.8, delta=1)

    def test__handler__deserializes_event(self):
        response = self.handler(
            {"weight": 70, "height": 175, "age": 30, "gender": "male"}, self.context
        )
        self.assertEqual(response["calories"], 2556)
        self.assertEqual(response["protein"]["grams"], 160)

    def test__handler__rejects_unknown_gender(self):
        self.assertLambdaRaises(
            self.handler,
            {"weight": 70, "height": 175, "age": 30, "gender": "unknown"},
            Exception,
        )
