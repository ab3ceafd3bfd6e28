"""JSON response envelope returned to the serverless runtime."""

__all__ = [
    "CORS_HEADERS",
    "build_response",
    "success_response",
    "error_response",
]

import json
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from aibs_informatics_core.utils.json import JSON, JSONObject

from velo_altitude_lambda.common.exceptions import VeloAltitudeError

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Api-Key, X-Log-Level",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def build_response(
    status_code: int,
    body: Optional[JSON] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONObject:
    """Build the `{statusCode, headers, body}` envelope; `body` is serialized to a JSON string."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", **CORS_HEADERS, **(headers or {})},
        "body": json.dumps(body, default=_json_default) if body is not None else "",
    }


def success_response(
    data: JSON,
    source: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONObject:
    body: Dict[str, JSON] = {}
    if source is not None:
        body["source"] = source
    body["data"] = data
    return build_response(200, body, headers=headers)


def error_response(error: VeloAltitudeError, production: bool = True) -> JSONObject:
    return build_response(
        error.status_code,
        error.to_error_body(production=production),
        headers=error.response_headers,
    )
