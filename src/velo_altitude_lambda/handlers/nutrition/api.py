"""HTTP API of the nutrition recipe catalog."""

from dataclasses import dataclass
from typing import Sequence

from velo_altitude_lambda.common.api.handler import OperationResult
from velo_altitude_lambda.common.api.resolver import Operation, ResolvedOperation, RouteRule
from velo_altitude_lambda.handlers.model import load_model
from velo_altitude_lambda.handlers.nutrition.model import (
    NutritionNeedsRequest,
    NutritionSearchQuery,
)
from velo_altitude_lambda.handlers.nutrition.needs import NutritionNeedsHandler
from velo_altitude_lambda.handlers.resource import ResourceApiHandler
from velo_altitude_lambda.store.connection import DatabaseHandle


@dataclass
class NutritionApiHandler(ResourceApiHandler):
    """Serves the recipes under `/nutrition`, plus `POST /nutrition/needs`."""

    resource_family = "nutrition"
    resource_label = "Recipe"
    cache_ttl_seconds = 3600
    search_query_class = NutritionSearchQuery

    @classmethod
    def compute_routes(cls) -> Sequence[RouteRule]:
        return [RouteRule("POST", "/nutrition/needs", Operation.COMPUTE)]

    def compute(self, resolved: ResolvedOperation, connection: DatabaseHandle) -> OperationResult:
        request = load_model(NutritionNeedsRequest, self.require_body(resolved))
        response = NutritionNeedsHandler().handle(request)
        return OperationResult(data=response.to_dict())


handler = NutritionApiHandler.get_handler()
