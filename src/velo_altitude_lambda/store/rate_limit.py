"""Fixed-window request limits per client, counted in a document collection.

Lambda processes share no memory, so counters live in the store and are
incremented atomically. Each client gets one counter item per window.
A client that exceeds its limit in `VIOLATIONS_BEFORE_BLOCK` windows of
the same violation period is blocked for `block_seconds`.
"""

__all__ = [
    "RATE_LIMIT_COLLECTION",
    "RateLimitDecision",
    "RateLimiter",
]

import math
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from velo_altitude_lambda.common.logging import get_service_logger
from velo_altitude_lambda.store.connection import DatabaseHandle
from velo_altitude_lambda.store.documents import ID_KEY, translate_store_error

logger = get_service_logger(__name__)

RATE_LIMIT_COLLECTION = "ratelimits"
DEFAULT_BLOCK_SECONDS = 15 * 60
VIOLATIONS_BEFORE_BLOCK = 5
# number of windows over which violations are counted
VIOLATION_PERIOD_WINDOWS = 5


@dataclass(frozen=True)
class RateLimitDecision:
    """Whether one request may proceed, and the client's standing in its window."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0
    blocked: bool = False

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }


@dataclass
class RateLimiter:
    """Counts requests per client id in fixed windows.

    Attributes:
        table: boto3 DynamoDB Table resource holding the counters.
        max_requests: Requests allowed per client and window.
        window_seconds: Length of one window.
        block_seconds: How long a repeat violator is refused.
        clock: Returns the current time in epoch seconds.
    """

    table: Any
    max_requests: int
    window_seconds: int
    block_seconds: int = DEFAULT_BLOCK_SECONDS
    clock: Callable[[], float] = time.time

    @classmethod
    def from_connection(cls, handle: DatabaseHandle, **kwargs) -> "RateLimiter":
        config = handle.config
        table = handle.resource.Table(config.table_name(RATE_LIMIT_COLLECTION))
        return cls(
            table=table,
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
            **kwargs,
        )

    def check(self, client_id: str) -> RateLimitDecision:
        """Count one request of `client_id` and decide whether it may proceed.

        Raises:
            UpstreamError: If the counters cannot be read or written.
        """
        now = self.clock()
        window = int(now // self.window_seconds)
        reset_at = float((window + 1) * self.window_seconds)
        try:
            blocked_until = self._blocked_until(client_id)
            if blocked_until is not None and now < blocked_until:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=blocked_until,
                    retry_after=math.ceil(blocked_until - now),
                    blocked=True,
                )

            count = self._increment(f"{client_id}#window#{window}", expires_at=reset_at)
            if count <= self.max_requests:
                return RateLimitDecision(
                    allowed=True,
                    limit=self.max_requests,
                    remaining=self.max_requests - count,
                    reset_at=reset_at,
                )

            period = window // VIOLATION_PERIOD_WINDOWS
            violations = self._increment(
                f"{client_id}#violations#{period}",
                expires_at=float((period + 1) * VIOLATION_PERIOD_WINDOWS * self.window_seconds),
            )
            if violations >= VIOLATIONS_BEFORE_BLOCK:
                logger.warning(f"Blocking {client_id} for {self.block_seconds}s")
                self._block(client_id, until=now + self.block_seconds)
        except (BotoCoreError, ClientError) as e:
            raise translate_store_error(e, "counting requests") from e

        return RateLimitDecision(
            allowed=False,
            limit=self.max_requests,
            remaining=0,
            reset_at=reset_at,
            retry_after=max(1, math.ceil(reset_at - now)),
        )

    def _blocked_until(self, client_id: str) -> Optional[float]:
        response = self.table.get_item(Key={ID_KEY: f"{client_id}#blocked"})
        item = response.get("Item")
        if item is None:
            return None
        return float(item["blockedUntil"])

    def _block(self, client_id: str, until: float) -> None:
        self.table.put_item(
            Item={
                ID_KEY: f"{client_id}#blocked",
                "blockedUntil": Decimal(f"{until:.3f}"),
                "expiresAt": Decimal(f"{until:.3f}"),
            }
        )

    def _increment(self, counter_id: str, expires_at: float) -> int:
        response = self.table.update_item(
            Key={ID_KEY: counter_id},
            UpdateExpression="SET expiresAt = :expires ADD requestCount :one",
            ExpressionAttributeValues={":one": 1, ":expires": Decimal(f"{expires_at:.3f}")},
            ReturnValues="UPDATED_NEW",
        )
        return int(response["Attributes"]["requestCount"])
