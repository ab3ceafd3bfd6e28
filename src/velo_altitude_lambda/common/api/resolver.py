"""Resolution of inbound (method, path) pairs to API operations.

Each resource family registers a small table of `RouteRule`s. Resolving
a request yields a `ResolvedOperation` naming exactly one `Operation`;
requests that match no rule yield the `NOT_FOUND` sentinel instead of
raising.
"""

__all__ = [
    "Operation",
    "RouteRule",
    "ResolvedOperation",
    "ResourceResolver",
    "NOT_FOUND",
]

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from aibs_informatics_core.utils.json import JSON

DEFAULT_BASE_PATHS: Tuple[str, ...] = ("/.netlify/functions", "/api")


class Operation(str, Enum):
    LIST = "list"
    GET = "get"
    SEARCH = "search"
    FAVORITE = "favorite"
    COMPUTE = "compute"
    NOT_FOUND = "not_found"


def split_path(path: str) -> Tuple[str, ...]:
    return tuple(segment for segment in path.split("/") if segment)


def _is_parameter(segment: str) -> bool:
    return len(segment) > 2 and segment.startswith("{") and segment.endswith("}")


@dataclass(frozen=True)
class RouteRule:
    """A (method, path pattern) pair mapped to one operation.

    Pattern segments are either literals or `{name}` placeholders matching
    exactly one non-empty path segment.

    Attributes:
        method: HTTP method, upper case.
        pattern: Path pattern, e.g. `/cols/{id}/favorite`.
        operation: The operation this rule resolves to.
    """

    method: str
    pattern: str
    operation: Operation

    def __post_init__(self):
        if not self.pattern.startswith("/"):
            raise ValueError(f"Route pattern must start with '/': {self.pattern}")
        if self.operation is Operation.NOT_FOUND:
            raise ValueError("NOT_FOUND cannot be registered as a route operation")
        object.__setattr__(self, "method", self.method.upper())

    @property
    def segments(self) -> Tuple[str, ...]:
        return split_path(self.pattern)

    @property
    def shape(self) -> Tuple[str, Tuple[Optional[str], ...]]:
        """Method and pattern with placeholder names erased.

        Two rules with the same shape would match exactly the same requests.
        """
        return self.method, tuple(None if _is_parameter(s) else s for s in self.segments)

    @property
    def literal_prefix_length(self) -> int:
        length = 0
        for segment in self.segments:
            if _is_parameter(segment):
                break
            length += len(segment) + 1
        return length

    @property
    def literal_length(self) -> int:
        return sum(len(s) + 1 for s in self.segments if not _is_parameter(s))

    def match(self, method: str, segments: Tuple[str, ...]) -> Optional[Dict[str, str]]:
        """Return the path parameters if this rule matches, else None."""
        if method != self.method or len(segments) != len(self.segments):
            return None
        parameters: Dict[str, str] = {}
        for expected, actual in zip(self.segments, segments):
            if _is_parameter(expected):
                parameters[expected[1:-1]] = actual
            elif expected != actual:
                return None
        return parameters


@dataclass(frozen=True)
class ResolvedOperation:
    """The outcome of resolving one request."""

    operation: Operation
    rule: Optional[RouteRule] = None
    path_parameters: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    body: Optional[JSON] = None

    @property
    def is_not_found(self) -> bool:
        return self.operation is Operation.NOT_FOUND

    @property
    def resource_id(self) -> Optional[str]:
        return self.path_parameters.get("id")


NOT_FOUND = ResolvedOperation(operation=Operation.NOT_FOUND)


@dataclass
class ResourceResolver:
    """Maps (method, path) pairs to operations.

    When several rules match a request, the rule with the longest literal
    prefix wins (`/cols/search` over `/cols/{id}`); ties are broken by total
    literal length, then by registration order.

    Example:
        ```python
        resolver = ResourceResolver()
        resolver.add_route("GET", "/cols", Operation.LIST)
        resolver.add_route("GET", "/cols/{id}", Operation.GET)
        resolver.resolve("GET", "/cols/col-123").resource_id  # "col-123"
        ```
    """

    rules: List[RouteRule] = field(default_factory=list)
    base_paths: Tuple[str, ...] = DEFAULT_BASE_PATHS

    def __post_init__(self):
        rules, self.rules = self.rules, []
        for rule in rules:
            self.add_rule(rule)

    def add_route(self, method: str, pattern: str, operation: Operation) -> RouteRule:
        rule = RouteRule(method=method, pattern=pattern, operation=operation)
        self.add_rule(rule)
        return rule

    def add_rule(self, rule: RouteRule) -> None:
        """Register a rule.

        Raises:
            ValueError: If a rule with the same method and path shape exists.
        """
        for existing in self.rules:
            if existing.shape == rule.shape:
                raise ValueError(
                    f"Route {rule.method} {rule.pattern} conflicts with "
                    f"{existing.method} {existing.pattern}"
                )
        self.rules.append(rule)

    def normalize_path(self, path: str) -> str:
        path = "/" + "/".join(split_path(path or ""))
        for base_path in self.base_paths:
            if path == base_path:
                return "/"
            if path.startswith(base_path + "/"):
                return path[len(base_path) :]
        return path

    def resolve(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        body: Optional[JSON] = None,
    ) -> ResolvedOperation:
        """Resolve a request to an operation.

        Returns:
            The resolved operation, or `NOT_FOUND` if no rule matches.
        """
        method = (method or "").upper()
        segments = split_path(self.normalize_path(path))

        best: Optional[Tuple[Tuple[int, int, int], RouteRule, Dict[str, str]]] = None
        for index, rule in enumerate(self.rules):
            parameters = rule.match(method, segments)
            if parameters is None:
                continue
            rank = (rule.literal_prefix_length, rule.literal_length, -index)
            if best is None or rank > best[0]:
                best = (rank, rule, parameters)

        if best is None:
            return NOT_FOUND
        _, rule, parameters = best
        return ResolvedOperation(
            operation=rule.operation,
            rule=rule,
            path_parameters=parameters,
            query={k: v for k, v in (query or {}).items() if v is not None},
            body=body,
        )
