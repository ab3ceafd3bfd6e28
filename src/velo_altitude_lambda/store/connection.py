"""Process-wide connection to the document store.

The connection is opened lazily by the first request a Lambda process
serves and reused by every later request of that process. It is never
closed explicitly; process teardown reclaims it.
"""

__all__ = [
    "DatabaseHandle",
    "ConnectionCache",
    "get_connection",
    "open_connection",
    "reset_connection",
]

import threading
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from aibs_informatics_aws_utils.core import get_region
from botocore.exceptions import BotoCoreError, ClientError

from velo_altitude_lambda.common.config import DATABASE_URI_KEY, ServiceConfig
from velo_altitude_lambda.common.exceptions import ConfigurationError
from velo_altitude_lambda.common.logging import get_service_logger
from velo_altitude_lambda.store.documents import ID_KEY, DocumentCollection, translate_store_error

logger = get_service_logger(__name__)


@dataclass
class DatabaseHandle:
    """An open link to the document store.

    Attributes:
        config: The configuration the handle was opened with.
        resource: The boto3 DynamoDB service resource.
    """

    config: ServiceConfig
    resource: Any

    @property
    def database_name(self) -> str:
        return self.config.database_name

    def collection(self, name: str, key_name: str = ID_KEY) -> DocumentCollection:
        table = self.resource.Table(self.config.table_name(name))
        return DocumentCollection(name=name, table=table, key_name=key_name)


def open_connection(config: ServiceConfig) -> DatabaseHandle:
    """Open and verify a new connection to the document store.

    Raises:
        ConfigurationError: If no database URI is configured or it is malformed.
        UpstreamError: If the store cannot be reached.
    """
    if not config.database_uri:
        raise ConfigurationError(f"{DATABASE_URI_KEY} is not set")
    try:
        resource = boto3.resource(
            "dynamodb", endpoint_url=config.database_uri, region_name=get_region()
        )
        # One round-trip so that an unreachable store fails here, not mid-request.
        resource.meta.client.list_tables(Limit=1)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {DATABASE_URI_KEY}: {e}") from e
    except (BotoCoreError, ClientError) as e:
        raise translate_store_error(e, "connecting") from e
    return DatabaseHandle(config=config, resource=resource)


class ConnectionCache:
    """Holds at most one live DatabaseHandle.

    A failed open leaves the cache empty, so the next call tries again.
    """

    def __init__(self):
        self._handle: Optional[DatabaseHandle] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._handle is not None

    def get(self, config: ServiceConfig) -> DatabaseHandle:
        with self._lock:
            if self._handle is None:
                handle = open_connection(config)
                logger.info(
                    f"Connected to document store {config.database_uri} "
                    f"(database: {config.database_name})"
                )
                self._handle = handle
            return self._handle

    def clear(self) -> None:
        with self._lock:
            self._handle = None


_connection_cache = ConnectionCache()


def get_connection(config: Optional[ServiceConfig] = None) -> DatabaseHandle:
    """Return the process-wide DatabaseHandle, opening it on first use.

    Args:
        config (Optional[ServiceConfig]): Configuration used if a connection must be
            opened. Defaults to `ServiceConfig.from_env()`.
    """
    return _connection_cache.get(config or ServiceConfig.from_env())


def reset_connection() -> None:
    _connection_cache.clear()
