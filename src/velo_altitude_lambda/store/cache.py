"""TTL cache kept in a document collection, and the read-through helper.

The cache is a performance optimization only: every failure reading or
writing it is downgraded to a miss by `read_through`, and the request
proceeds against the authoritative collection.
"""

__all__ = [
    "CACHE_COLLECTION",
    "CacheEntry",
    "CacheSource",
    "TtlCacheStore",
    "read_through",
]

import json
import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from aibs_informatics_core.utils.json import JSON
from botocore.exceptions import BotoCoreError, ClientError

from velo_altitude_lambda.common.exceptions import CacheError
from velo_altitude_lambda.common.logging import get_service_logger
from velo_altitude_lambda.common.metrics import EnhancedMetrics
from velo_altitude_lambda.store.connection import DatabaseHandle

logger = get_service_logger(__name__)

CACHE_COLLECTION = "cache"
RESOURCE_ID_KEY = "resourceId"

T = TypeVar("T")

_MISSING: Any = object()


class CacheSource(str, Enum):
    CACHE = "cache"
    STORE = "store"


def _timestamp(value: float) -> Decimal:
    return Decimal(f"{value:.3f}")


@dataclass
class CacheEntry:
    """One cached payload and its expiry.

    Timestamps are epoch seconds. The payload is stored serialized as a
    JSON string so arbitrary JSON survives the store's type system.
    """

    resource_id: str
    payload: JSON
    created_at: float
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at

    def to_item(self) -> Dict[str, Any]:
        return {
            RESOURCE_ID_KEY: self.resource_id,
            "payload": json.dumps(self.payload),
            "createdAt": _timestamp(self.created_at),
            "expiresAt": _timestamp(self.expires_at),
        }

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "CacheEntry":
        return cls(
            resource_id=item[RESOURCE_ID_KEY],
            payload=json.loads(item["payload"]),
            created_at=float(item["createdAt"]),
            expires_at=float(item["expiresAt"]),
        )


@dataclass
class TtlCacheStore:
    """Cache of JSON payloads keyed by resource id, one entry per key.

    Attributes:
        table: boto3 DynamoDB Table resource holding the entries.
        clock: Returns the current time in epoch seconds.
    """

    table: Any
    clock: Callable[[], float] = time.time

    @classmethod
    def from_connection(cls, handle: DatabaseHandle, **kwargs) -> "TtlCacheStore":
        table = handle.resource.Table(handle.config.table_name(CACHE_COLLECTION))
        return cls(table=table, **kwargs)

    def get(self, resource_id: str, default: Any = None) -> Optional[JSON]:
        """Return the cached payload, or `default` if absent or expired.

        Raises:
            CacheError: If the entry cannot be read.
        """
        try:
            response = self.table.get_item(Key={RESOURCE_ID_KEY: resource_id})
            item = response.get("Item")
            if item is None:
                return default
            entry = CacheEntry.from_item(item)
        except (BotoCoreError, ClientError, KeyError, ValueError, TypeError) as e:
            raise CacheError(f"Failed to read cache entry {resource_id}: {e}") from e

        if not entry.is_fresh(self.clock()):
            logger.debug(f"Cache entry {resource_id} expired at {entry.expires_at}")
            return default
        return entry.payload

    def put(self, resource_id: str, payload: JSON, ttl_seconds: int) -> None:
        """Create or overwrite the entry for `resource_id`, expiring `ttl_seconds` from now.

        Raises:
            ValueError: If `ttl_seconds` is not positive.
            CacheError: If the entry cannot be written.
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        now = self.clock()
        entry = CacheEntry(
            resource_id=resource_id,
            payload=payload,
            created_at=now,
            expires_at=now + ttl_seconds,
        )
        try:
            self.table.put_item(Item=entry.to_item())
        except (BotoCoreError, ClientError, TypeError, ValueError) as e:
            raise CacheError(f"Failed to write cache entry {resource_id}: {e}") from e


def read_through(
    cache: Optional[TtlCacheStore],
    key: str,
    ttl_seconds: int,
    fetch_fn: Callable[[], T],
    metrics: Optional[EnhancedMetrics] = None,
) -> Tuple[T, CacheSource]:
    """Serve `key` from the cache, or fetch it and populate the cache.

    Cache failures are logged and treated as misses. Errors raised by
    `fetch_fn` propagate unchanged. A None `cache` always fetches.

    Args:
        cache (Optional[TtlCacheStore]): The cache, or None when caching is disabled.
        key (str): Cache key of the value.
        ttl_seconds (int): Lifetime of a freshly fetched value.
        fetch_fn (Callable[[], T]): Fetches the value from the authoritative source.
        metrics (Optional[EnhancedMetrics]): Collector for hit, miss and error counts.

    Returns:
        The value and where it came from.
    """
    if cache is not None:
        try:
            cached = cache.get(key, default=_MISSING)
        except CacheError as e:
            logger.warning(f"Cache read failed, falling back to store: {e}")
            _count(metrics, "CacheError")
            cached = _MISSING
        if cached is not _MISSING:
            _count(metrics, "CacheHit")
            return cached, CacheSource.CACHE
        _count(metrics, "CacheMiss")

    value = fetch_fn()

    if cache is not None:
        try:
            cache.put(key, value, ttl_seconds)
        except CacheError as e:
            logger.warning(f"Cache write failed, value not cached: {e}")
            _count(metrics, "CacheError")
    return value, CacheSource.STORE


def _count(metrics: Optional[EnhancedMetrics], name: str) -> None:
    if metrics is not None:
        metrics.add_count_metric(name, 1)
