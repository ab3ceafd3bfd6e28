"""HTTP API of the cols (mountain-pass) catalog."""

from dataclasses import dataclass
from typing import Sequence

from aibs_informatics_core.utils.json import JSONObject

from velo_altitude_lambda.common.api.handler import OperationResult
from velo_altitude_lambda.common.api.resolver import Operation, ResolvedOperation, RouteRule
from velo_altitude_lambda.common.exceptions import BadRequestError
from velo_altitude_lambda.handlers.cols.effort import ClimbEffortHandler
from velo_altitude_lambda.handlers.cols.model import (
    ClimbEffortRequest,
    ColSearchQuery,
    RiderProfile,
)
from velo_altitude_lambda.handlers.model import load_model
from velo_altitude_lambda.handlers.resource import ResourceApiHandler
from velo_altitude_lambda.store.connection import DatabaseHandle


@dataclass
class ColsApiHandler(ResourceApiHandler):
    """Serves `/cols`, plus `POST /cols/{id}/estimate` for climb effort estimates."""

    resource_family = "cols"
    resource_label = "Col"
    cache_ttl_seconds = 86400
    search_query_class = ColSearchQuery

    @classmethod
    def compute_routes(cls) -> Sequence[RouteRule]:
        return [RouteRule("POST", "/cols/{id}/estimate", Operation.COMPUTE)]

    def compute(self, resolved: ResolvedOperation, connection: DatabaseHandle) -> OperationResult:
        col_id = self.require_resource_id(resolved)
        profile = load_model(RiderProfile, resolved.body or {})
        col = self.read_document(connection, col_id).data
        request = self.build_effort_request(col_id, col, profile)
        response = ClimbEffortHandler().handle(request)
        return OperationResult(data=response.to_dict())

    @classmethod
    def build_effort_request(
        cls, col_id: str, col: JSONObject, profile: RiderProfile
    ) -> ClimbEffortRequest:
        """Combine a col document with a rider profile.

        The elevation gain is taken from `elevationGain`, or derived from
        `length` (km) and `avgGradient` (%).
        """
        length_km = col.get("length")
        elevation_gain = col.get("elevationGain")
        if elevation_gain is None and length_km and col.get("avgGradient") is not None:
            elevation_gain = length_km * 1000 * col["avgGradient"] / 100
        if not length_km or elevation_gain is None:
            raise BadRequestError(f"Col {col_id} has no climb length or gradient data")
        return ClimbEffortRequest(
            col_id=col_id,
            length_km=float(length_km),
            elevation_gain_m=float(elevation_gain),
            level=profile.level,
            weight=profile.weight,
            age=profile.age,
            surface=profile.surface,
            mountain_experience=profile.mountain_experience,
        )


handler = ColsApiHandler.get_handler()
