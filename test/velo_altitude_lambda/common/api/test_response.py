import json
from decimal import Decimal

from velo_altitude_lambda.common.api.response import (
    CORS_HEADERS,
    build_response,
    error_response,
    success_response,
)
from velo_altitude_lambda.common.exceptions import (
    ConfigurationError,
    NotFoundError,
    RateLimitExceededError,
)


def test__build_response__sets_json_and_cors_headers():
    response = build_response(200, {"a": 1})
    assert response["statusCode"] == 200
    assert response["headers"]["Content-Type"] == "application/json"
    for name, value in CORS_HEADERS.items():
        assert response["headers"][name] == value
    assert json.loads(response["body"]) == {"a": 1}


def test__build_response__empty_body():
    assert build_response(204)["body"] == ""


def test__build_response__serializes_decimals_and_sets():
    response = build_response(200, {"elevation": Decimal("1139"), "gradient": Decimal("7.5")})
    assert json.loads(response["body"]) == {"elevation": 1139, "gradient": 7.5}
    response = build_response(200, {"tags": {"vosges", "alsace"}})
    assert json.loads(response["body"]) == {"tags": ["alsace", "vosges"]}


def test__success_response__with_source():
    response = success_response({"name": "Col de la Schlucht"}, source="store")
    assert response["statusCode"] == 200
    assert json.loads(response["body"]) == {
        "source": "store",
        "data": {"name": "Col de la Schlucht"},
    }


def test__success_response__without_source():
    response = success_response({"favorite": True})
    assert json.loads(response["body"]) == {"data": {"favorite": True}}


def test__error_response__not_found():
    response = error_response(NotFoundError("Route not found"))
    assert response["statusCode"] == 404
    assert json.loads(response["body"]) == {"error": "Route not found"}


def test__error_response__server_error_by_environment():
    error = ConfigurationError("DATABASE_URI is not set")
    assert json.loads(error_response(error, production=True)["body"]) == {
        "error": "Internal server error"
    }
    assert json.loads(error_response(error, production=False)["body"]) == {
        "error": "Internal server error",
        "message": "DATABASE_URI is not set",
    }


def test__build_response__extra_headers():
    response = build_response(200, {"a": 1}, headers={"X-RateLimit-Limit": "120"})
    assert response["headers"]["X-RateLimit-Limit"] == "120"
    assert response["headers"]["Content-Type"] == "application/json"


def test__error_response__rate_limited_sets_retry_after():
    response = error_response(RateLimitExceededError("Rate limit exceeded", retry_after=12))
    assert response["statusCode"] == 429
    assert response["headers"]["Retry-After"] == "12"
    assert json.loads(response["body"])["retryAfter"] == 12
