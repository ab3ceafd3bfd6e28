"""Base class of the HTTP request handlers.

`ApiRequestHandler` is the single error boundary of a request. It resolves
the route, checks the body size, obtains the store connection, applies the
per-client rate limit, then dispatches to the operation and shapes the
response envelope. Nothing raised below it reaches the serverless runtime.
"""

__all__ = [
    "ApiRequestHandler",
    "OperationResult",
    "ROUTE_NOT_FOUND",
]

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Sequence

import marshmallow as mm
from aibs_informatics_core.collections import PostInitMixin
from aibs_informatics_core.utils.json import JSON, JSONObject
from aws_lambda_powertools.logging.correlation_paths import API_GATEWAY_REST
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from velo_altitude_lambda.common.api.resolver import (
    Operation,
    ResolvedOperation,
    ResourceResolver,
    RouteRule,
)
from velo_altitude_lambda.common.api.response import (
    build_response,
    error_response,
    success_response,
)
from velo_altitude_lambda.common.config import ServiceConfig
from velo_altitude_lambda.common.exceptions import (
    BadRequestError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitExceededError,
    UpstreamError,
    VeloAltitudeError,
)
from velo_altitude_lambda.common.handler import LambdaEvent
from velo_altitude_lambda.common.logging import LoggingMixins
from velo_altitude_lambda.common.metrics import MetricsMixins
from velo_altitude_lambda.store.connection import DatabaseHandle, get_connection
from velo_altitude_lambda.store.rate_limit import RateLimitDecision, RateLimiter

ApiHandlerType = Callable[[LambdaEvent, LambdaContext], JSONObject]

ROUTE_NOT_FOUND = "Route not found"
LOG_LEVEL_HEADER = "X-Log-Level"
API_KEY_HEADER = "X-Api-Key"
FORWARDED_FOR_HEADER = "X-Forwarded-For"
MAX_BODY_BYTES = 1024 * 1024


@dataclass
class OperationResult:
    """Data returned by an operation, and for reads where it was served from."""

    data: JSON
    source: Optional[str] = None


@dataclass
class ApiRequestHandler(LoggingMixins, MetricsMixins, PostInitMixin):
    """Answers one HTTP request for a resource family.

    Subclasses declare their routes and implement the operations they
    route to. Responses always use the JSON envelope; errors are converted
    by `handle_exception`.

    Attributes:
        config: Service configuration. Defaults to `ServiceConfig.from_env()` per request.
        connection_provider: Returns the store connection for a configuration.

    Example:
        ```python
        class ColsApiHandler(ResourceApiHandler):
            ...

        handler = ColsApiHandler.get_handler()
        ```
    """

    config: Optional[ServiceConfig] = None
    connection_provider: Callable[[ServiceConfig], DatabaseHandle] = get_connection
    resolver: ResourceResolver = field(init=False, repr=False)

    metric_name_prefix: ClassVar[str] = "Api"
    max_body_bytes: ClassVar[int] = MAX_BODY_BYTES

    def __post_init__(self):
        super().__post_init__()
        self.resolver = ResourceResolver(rules=list(self.routes()))

    @classmethod
    def routes(cls) -> Sequence[RouteRule]:
        """Route table of this handler."""
        raise NotImplementedError(  # pragma: no cover
            "Subclasses must declare their routes"
        )

    # --------------------------------------------------------------------
    # Operations
    # --------------------------------------------------------------------

    def list_resources(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        raise NotFoundError(ROUTE_NOT_FOUND)

    def get_resource(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        raise NotFoundError(ROUTE_NOT_FOUND)

    def search_resources(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        raise NotFoundError(ROUTE_NOT_FOUND)

    def toggle_favorite(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        raise NotFoundError(ROUTE_NOT_FOUND)

    def compute(self, resolved: ResolvedOperation, connection: DatabaseHandle) -> OperationResult:
        raise NotFoundError(ROUTE_NOT_FOUND)

    def dispatch(self, resolved: ResolvedOperation, connection: DatabaseHandle) -> OperationResult:
        operations: Dict[Operation, Callable[..., OperationResult]] = {
            Operation.LIST: self.list_resources,
            Operation.GET: self.get_resource,
            Operation.SEARCH: self.search_resources,
            Operation.FAVORITE: self.toggle_favorite,
            Operation.COMPUTE: self.compute,
        }
        if resolved.is_not_found:
            raise NotFoundError(ROUTE_NOT_FOUND)
        self.logger.info(
            f"Dispatching {resolved.operation.value} "
            f"({resolved.rule.pattern if resolved.rule else ''})"
        )
        return operations[resolved.operation](resolved, connection)

    # --------------------------------------------------------------------
    # Request handling
    # --------------------------------------------------------------------

    def handle(self, event: LambdaEvent) -> JSONObject:
        """Answer one inbound request. Never raises.

        Args:
            event (LambdaEvent): API Gateway REST / Netlify proxy event.

        Returns:
            The `{statusCode, headers, body}` response envelope.
        """
        start = datetime.now()
        config: Optional[ServiceConfig] = None
        try:
            config = self.config or ServiceConfig.from_env()
            proxy_event = self.parse_event(event)
            method = proxy_event.http_method.upper()
            self.update_logging_level(self.get_header(proxy_event, LOG_LEVEL_HEADER))

            if method == "OPTIONS":
                response = build_response(204)
            else:
                resolved = self.resolver.resolve(
                    method=method,
                    path=proxy_event.path,
                    query=proxy_event.get("queryStringParameters") or {},
                )
                if resolved.is_not_found:
                    raise NotFoundError(ROUTE_NOT_FOUND)
                self.check_body_size(proxy_event)
                connection = self.connection_provider(config)
                decision = self.check_rate_limit(proxy_event, connection)
                resolved = replace(resolved, body=self.parse_body(proxy_event))
                result = self.dispatch(resolved, connection)
                response = success_response(
                    result.data,
                    source=result.source,
                    headers=decision.headers if decision else None,
                )
            self.metrics.add_success_metric(self.metric_name_prefix)
        except Exception as e:
            production = config.is_production if config else True
            response = self.handle_exception(e, production=production)
        self.metrics.add_duration_metric(start, name=self.metric_name_prefix)
        return response

    def handle_exception(self, e: Exception, production: bool = True) -> JSONObject:
        """Convert any exception into the error envelope.

        Client errors (4xx) are logged at info level. Everything else is
        logged with its stack trace and counted as a failure.
        """
        error = self.as_service_error(e)
        if error.is_client_error:
            self.logger.info(f"Request rejected ({error.status_code}): {error}")
            if isinstance(error, NotFoundError) and str(error) == ROUTE_NOT_FOUND:
                self.metrics.add_count_metric("RouteNotFound", 1)
        else:
            self.logger.exception(f"Request failed ({error.status_code}): {error}")
            self.metrics.add_failure_metric(self.metric_name_prefix)
        return error_response(error, production=production)

    @classmethod
    def as_service_error(cls, e: Exception) -> VeloAltitudeError:
        if isinstance(e, VeloAltitudeError):
            return e
        if isinstance(e, mm.ValidationError):
            return BadRequestError(f"Invalid request: {e.messages}")
        return VeloAltitudeError(f"{type(e).__name__}: {e}")

    @classmethod
    def parse_event(cls, event: LambdaEvent) -> APIGatewayProxyEvent:
        if not isinstance(event, Mapping) or not event.get("httpMethod"):
            raise BadRequestError("Malformed request event")
        return APIGatewayProxyEvent(dict(event))

    @classmethod
    def check_body_size(cls, event: APIGatewayProxyEvent) -> None:
        if event.body and len(event.body.encode("utf-8")) > cls.max_body_bytes:
            raise PayloadTooLargeError(f"Request body exceeds {cls.max_body_bytes} bytes")

    @classmethod
    def client_id(cls, event: APIGatewayProxyEvent) -> str:
        """Identify the caller by API key, else by source address."""
        api_key = cls.get_header(event, API_KEY_HEADER)
        if api_key:
            return f"key:{api_key}"
        identity = (event.get("requestContext") or {}).get("identity") or {}
        source_ip = identity.get("sourceIp")
        if not source_ip:
            forwarded = cls.get_header(event, FORWARDED_FOR_HEADER) or ""
            source_ip = forwarded.split(",")[0].strip()
        return f"ip:{source_ip or 'unknown'}"

    def check_rate_limit(
        self, event: APIGatewayProxyEvent, connection: DatabaseHandle
    ) -> Optional[RateLimitDecision]:
        """Count the request against its client's limit.

        Counter failures are logged and the request is let through.

        Raises:
            RateLimitExceededError: If the client is over its limit or blocked.
        """
        if not connection.config.rate_limit_enabled:
            return None
        client_id = self.client_id(event)
        try:
            decision = RateLimiter.from_connection(connection).check(client_id)
        except UpstreamError as e:
            self.logger.warning(f"Rate limit check failed, allowing request: {e}")
            self.metrics.add_count_metric("RateLimitError", 1)
            return None
        if not decision.allowed:
            self.metrics.add_count_metric("RateLimited", 1)
            message = (
                "You have been temporarily blocked due to excessive requests"
                if decision.blocked
                else "Rate limit exceeded"
            )
            raise RateLimitExceededError(
                message, retry_after=decision.retry_after, headers=decision.headers
            )
        return decision

    @classmethod
    def parse_body(cls, event: APIGatewayProxyEvent) -> Optional[JSON]:
        if not event.body:
            return None
        try:
            return json.loads(event.decoded_body)
        except (ValueError, TypeError) as e:
            raise BadRequestError(f"Request body is not valid JSON: {e}") from e

    @classmethod
    def get_header(cls, event: APIGatewayProxyEvent, name: str) -> Optional[str]:
        headers: Mapping[str, Any] = event.get("headers") or {}
        for key, value in headers.items():
            if key.lower() == name.lower():
                return value
        return None

    # --------------------------------------------------------------------
    # Handler provider methods
    # --------------------------------------------------------------------

    @classmethod
    def get_handler(cls, *args, **kwargs) -> ApiHandlerType:
        """Create the Lambda entry point for this handler class.

        The returned function injects the Lambda context and API Gateway
        correlation id into the logger, flushes metrics after each
        invocation and builds a fresh handler instance per request.

        Args:
            *args: Positional arguments passed to the handler constructor.
            **kwargs: Keyword arguments passed to the handler constructor.
        """
        logger = cls.get_logger(service=cls.service_name())
        metrics = cls.get_metrics(service=cls.service_name())

        @metrics.log_metrics
        @logger.inject_lambda_context(correlation_id_path=API_GATEWAY_REST)
        def handler(event: LambdaEvent, context: LambdaContext) -> JSONObject:
            api_handler = cls(*args, **kwargs)
            api_handler.logger = logger
            api_handler.metrics = metrics
            api_handler.context = context
            api_handler.add_logger_to_root()
            return api_handler.handle(event)

        return handler
