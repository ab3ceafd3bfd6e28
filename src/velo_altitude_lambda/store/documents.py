"""Document collections backed by DynamoDB tables.

DynamoDB returns every number as a `Decimal` and rejects `float` on write,
so documents are converted at this boundary: callers only ever see and
pass plain JSON-compatible values.
"""

__all__ = [
    "DocumentCollection",
    "from_store_item",
    "to_store_item",
    "translate_store_error",
]

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from aibs_informatics_core.utils.json import JSON, JSONObject
from boto3.dynamodb.conditions import ConditionBase
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
)

from velo_altitude_lambda.common.exceptions import UpstreamError, UpstreamUnavailableError

ID_KEY = "id"


def from_store_item(value: Any) -> JSON:
    """Recursively convert DynamoDB values (Decimal, set) to plain JSON values."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_store_item(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [from_store_item(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(from_store_item(v) for v in value)
    return value


def to_store_item(document: JSONObject) -> Dict[str, Any]:
    return json.loads(json.dumps(document), parse_float=Decimal)


def translate_store_error(error: Exception, action: str) -> UpstreamError:
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError)):
        return UpstreamUnavailableError(f"Document store unavailable while {action}: {error}")
    return UpstreamError(f"Document store failed while {action}: {error}")


@dataclass
class DocumentCollection:
    """One named collection of documents keyed by a string `id`.

    Attributes:
        name: Logical collection name (e.g. `cols`).
        table: The boto3 DynamoDB Table resource holding the documents.
        key_name: Name of the partition key attribute.
    """

    name: str
    table: Any
    key_name: str = ID_KEY

    def get(self, document_id: str) -> Optional[JSONObject]:
        try:
            response = self.table.get_item(Key={self.key_name: document_id})
        except (BotoCoreError, ClientError) as e:
            raise translate_store_error(e, f"reading {self.name}/{document_id}") from e
        item = response.get("Item")
        return from_store_item(item) if item is not None else None

    def scan(self, filter_expression: Optional[ConditionBase] = None) -> List[JSONObject]:
        """Return every document, optionally restricted by a filter expression.

        Follows `LastEvaluatedKey` until the whole table has been read.
        """
        scan_kwargs: Dict[str, Any] = {}
        if filter_expression is not None:
            scan_kwargs["FilterExpression"] = filter_expression
        items: List[JSONObject] = []
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(from_store_item(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise translate_store_error(e, f"scanning {self.name}") from e
        return items

    def put(self, document: JSONObject) -> None:
        try:
            self.table.put_item(Item=to_store_item(document))
        except (BotoCoreError, ClientError) as e:
            raise translate_store_error(e, f"writing {self.name}") from e

    def delete(self, document_id: str) -> None:
        try:
            self.table.delete_item(Key={self.key_name: document_id})
        except (BotoCoreError, ClientError) as e:
            raise translate_store_error(e, f"deleting {self.name}/{document_id}") from e
