from dataclasses import dataclass

from velo_altitude_lambda.common.handler import LambdaHandler
from velo_altitude_lambda.handlers.challenges.model import (
    ChallengeProgressRequest,
    ChallengeProgressResponse,
)


@dataclass  # type: ignore[misc] # mypy #5374
class ChallengeProgressHandler(
    LambdaHandler[ChallengeProgressRequest, ChallengeProgressResponse]
):
    """Progress of a rider through the cols of a challenge.

    Completed ids that are not part of the challenge are ignored. Col order
    follows the challenge definition.
    """

    def handle(self, request: ChallengeProgressRequest) -> ChallengeProgressResponse:
        completed_ids = set(request.completed_col_ids)
        col_ids = list(dict.fromkeys(request.col_ids))
        completed = [col_id for col_id in col_ids if col_id in completed_ids]
        remaining = [col_id for col_id in col_ids if col_id not in completed_ids]
        total = len(col_ids)
        percentage = int(round(100 * len(completed) / total)) if total else 0

        self.logger.info(
            f"Challenge {request.challenge_id}: {len(completed)}/{total} cols completed"
        )
        return ChallengeProgressResponse(
            challenge_id=request.challenge_id,
            total=total,
            completed_count=len(completed),
            completed_col_ids=completed,
            remaining_col_ids=remaining,
            percentage=percentage,
            completed=total > 0 and not remaining,
        )
