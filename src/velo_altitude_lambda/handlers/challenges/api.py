"""HTTP API of the cycling challenges catalog."""

from dataclasses import dataclass
from typing import Any, List, Sequence

from velo_altitude_lambda.common.api.handler import OperationResult
from velo_altitude_lambda.common.api.resolver import Operation, ResolvedOperation, RouteRule
from velo_altitude_lambda.handlers.challenges.model import (
    ChallengeProgressRequest,
    ChallengeSearchQuery,
    ProgressUpdate,
)
from velo_altitude_lambda.handlers.challenges.progress import ChallengeProgressHandler
from velo_altitude_lambda.handlers.model import load_model
from velo_altitude_lambda.handlers.resource import ResourceApiHandler
from velo_altitude_lambda.store.connection import DatabaseHandle


def challenge_col_ids(cols: Any) -> List[str]:
    """Col ids of a challenge. Entries are ids or objects with an `id`."""
    col_ids = []
    for col in cols or []:
        if isinstance(col, dict):
            col = col.get("id")
        if col:
            col_ids.append(str(col))
    return col_ids


@dataclass
class ChallengesApiHandler(ResourceApiHandler):
    """Serves `/challenges`, plus `POST /challenges/{id}/progress`."""

    resource_family = "challenges"
    resource_label = "Challenge"
    cache_ttl_seconds = 1800
    search_query_class = ChallengeSearchQuery

    @classmethod
    def compute_routes(cls) -> Sequence[RouteRule]:
        return [RouteRule("POST", "/challenges/{id}/progress", Operation.COMPUTE)]

    def compute(self, resolved: ResolvedOperation, connection: DatabaseHandle) -> OperationResult:
        challenge_id = self.require_resource_id(resolved)
        update = load_model(ProgressUpdate, self.require_body(resolved))
        challenge = self.read_document(connection, challenge_id).data
        request = ChallengeProgressRequest(
            challenge_id=challenge_id,
            col_ids=challenge_col_ids(challenge.get("cols")),
            completed_col_ids=update.completed_col_ids,
        )
        response = ChallengeProgressHandler().handle(request)
        return OperationResult(data=response.to_dict())


handler = ChallengesApiHandler.get_handler()
