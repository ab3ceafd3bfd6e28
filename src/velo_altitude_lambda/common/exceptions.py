"""Error taxonomy of the data API.

Every error raised below the request handler boundary is, or is converted
to, a `VeloAltitudeError`. Each class carries the HTTP status it maps to
and the message that is safe to show to callers in production.
"""

__all__ = [
    "VeloAltitudeError",
    "ConfigurationError",
    "BadRequestError",
    "NotFoundError",
    "PayloadTooLargeError",
    "RateLimitExceededError",
    "UpstreamError",
    "UpstreamUnavailableError",
    "CacheError",
    "INTERNAL_SERVER_ERROR",
]

from typing import Any, ClassVar, Dict, Mapping, Optional

from aibs_informatics_core.exceptions import ApplicationException

INTERNAL_SERVER_ERROR = "Internal server error"


class VeloAltitudeError(ApplicationException):
    status_code: ClassVar[int] = 500
    public_message: ClassVar[str] = INTERNAL_SERVER_ERROR

    @property
    def is_client_error(self) -> bool:
        return self.status_code < 500

    @property
    def response_headers(self) -> Dict[str, str]:
        return {}

    def to_error_body(self, production: bool = True) -> Dict[str, Any]:
        """Build the `{error, message?}` body for this error.

        Client errors expose their own message. Server errors expose only
        the public message, plus the detailed message outside production.
        """
        if self.is_client_error:
            return {"error": str(self)}
        body: Dict[str, Any] = {"error": self.public_message}
        if not production:
            body["message"] = str(self)
        return body


class ConfigurationError(VeloAltitudeError):
    """A required configuration value is absent."""


class BadRequestError(VeloAltitudeError):
    status_code = 400
    public_message = "Bad request"


class NotFoundError(VeloAltitudeError):
    """No route matched the request, or no document matched the id."""

    status_code = 404
    public_message = "Not found"


class PayloadTooLargeError(VeloAltitudeError):
    status_code = 413
    public_message = "Payload too large"


class RateLimitExceededError(VeloAltitudeError):
    """The client sent more requests than its window allows, or is blocked."""

    status_code = 429
    public_message = "Too Many Requests"

    def __init__(
        self,
        message: str,
        retry_after: int,
        headers: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.headers = dict(headers or {})

    @property
    def response_headers(self) -> Dict[str, str]:
        return {**self.headers, "Retry-After": str(self.retry_after)}

    def to_error_body(self, production: bool = True) -> Dict[str, Any]:
        return {
            "error": self.public_message,
            "message": str(self),
            "retryAfter": self.retry_after,
        }


class UpstreamError(VeloAltitudeError):
    """The backing store or a third-party call failed."""


class UpstreamUnavailableError(UpstreamError):
    status_code = 503
    public_message = "Service unavailable"


class CacheError(VeloAltitudeError):
    """Reading or writing the cache failed. Never surfaced to callers."""
