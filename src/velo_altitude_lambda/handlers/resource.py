"""Read-through list, get, search and favorite operations shared by every resource family."""

__all__ = [
    "ResourceApiHandler",
    "FAVORITES_COLLECTION",
]

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, List, Optional, Sequence, Type

from aibs_informatics_core.utils.json import JSON, JSONObject

from velo_altitude_lambda.common.api.handler import ApiRequestHandler, OperationResult
from velo_altitude_lambda.common.api.resolver import Operation, ResolvedOperation, RouteRule
from velo_altitude_lambda.common.exceptions import BadRequestError, NotFoundError
from velo_altitude_lambda.handlers.model import FavoriteRequest, PageQuery, SearchQuery, load_model
from velo_altitude_lambda.store.cache import TtlCacheStore, read_through
from velo_altitude_lambda.store.connection import DatabaseHandle
from velo_altitude_lambda.store.documents import DocumentCollection

FAVORITES_COLLECTION = "favorites"


@dataclass
class ResourceApiHandler(ApiRequestHandler):
    """API handler for one collection of documents.

    Routes, for a family with prefix `/cols`:

        GET  /cols                  list, paginated
        GET  /cols/search           search with the family's filters
        GET  /cols/{id}             get by id
        POST /cols/{id}/favorite    toggle a user's favorite
        ...                         compute routes declared by the family

    Reads are served through the TTL cache unless caching is disabled.
    """

    resource_family: ClassVar[str]
    resource_label: ClassVar[str]
    cache_ttl_seconds: ClassVar[int] = 3600
    search_query_class: ClassVar[Type[SearchQuery]] = SearchQuery
    sort_key: ClassVar[str] = "name"

    @classmethod
    def routes(cls) -> Sequence[RouteRule]:
        prefix = f"/{cls.resource_family}"
        return [
            RouteRule("GET", prefix, Operation.LIST),
            RouteRule("GET", f"{prefix}/search", Operation.SEARCH),
            RouteRule("GET", f"{prefix}/{{id}}", Operation.GET),
            RouteRule("POST", f"{prefix}/{{id}}/favorite", Operation.FAVORITE),
            *cls.compute_routes(),
        ]

    @classmethod
    def compute_routes(cls) -> Sequence[RouteRule]:
        return []

    # --------------------------------------------------------------------
    # Store access
    # --------------------------------------------------------------------

    def get_collection(self, connection: DatabaseHandle) -> DocumentCollection:
        return connection.collection(self.resource_family)

    def get_cache(self, connection: DatabaseHandle) -> Optional[TtlCacheStore]:
        if not connection.config.cache_enabled:
            return None
        return TtlCacheStore.from_connection(connection)

    def cache_key(self, *parts: str) -> str:
        return ":".join((self.resource_family, *parts))

    def fetch_document(self, connection: DatabaseHandle, resource_id: str) -> JSONObject:
        document = self.get_collection(connection).get(resource_id)
        if document is None:
            raise NotFoundError(f"{self.resource_label} not found")
        return document

    def read_document(
        self, connection: DatabaseHandle, resource_id: str
    ) -> OperationResult:
        """Read one document through the cache."""
        document, source = read_through(
            self.get_cache(connection),
            self.cache_key(resource_id),
            self.cache_ttl_seconds,
            lambda: self.fetch_document(connection, resource_id),
            metrics=self.metrics,
        )
        return OperationResult(data=document, source=source.value)

    def sort_documents(self, documents: List[JSONObject]) -> List[JSONObject]:
        return sorted(
            documents, key=lambda d: (str(d.get(self.sort_key, "")), str(d.get("id", "")))
        )

    # --------------------------------------------------------------------
    # Operations
    # --------------------------------------------------------------------

    def list_resources(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        page = load_model(PageQuery, resolved.query)

        def fetch() -> JSON:
            documents = self.sort_documents(self.get_collection(connection).scan())
            return {
                "items": documents[page.offset : page.offset + page.limit],
                "page": page.page,
                "limit": page.limit,
                "total": len(documents),
                "pages": -(-len(documents) // page.limit),
            }

        data, source = read_through(
            self.get_cache(connection),
            self.cache_key("list", f"page={page.page}", f"limit={page.limit}"),
            self.cache_ttl_seconds,
            fetch,
            metrics=self.metrics,
        )
        return OperationResult(data=data, source=source.value)

    def get_resource(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        return self.read_document(connection, self.require_resource_id(resolved))

    def search_resources(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        query = load_model(self.search_query_class, resolved.query)

        def fetch() -> JSON:
            documents = self.get_collection(connection).scan(query.to_filter_expression())
            documents = self.sort_documents(documents)
            return {"items": documents, "total": len(documents)}

        data, source = read_through(
            self.get_cache(connection),
            self.cache_key("search", query.cache_key),
            self.cache_ttl_seconds,
            fetch,
            metrics=self.metrics,
        )
        return OperationResult(data=data, source=source.value)

    def toggle_favorite(
        self, resolved: ResolvedOperation, connection: DatabaseHandle
    ) -> OperationResult:
        """Add the resource to a user's favorites, or remove it if already there."""
        resource_id = self.require_resource_id(resolved)
        request = load_model(FavoriteRequest, self.require_body(resolved))
        self.fetch_document(connection, resource_id)

        favorites = connection.collection(FAVORITES_COLLECTION)
        favorite_id = f"{request.user_id}#{self.resource_family}#{resource_id}"
        if favorites.get(favorite_id) is not None:
            favorites.delete(favorite_id)
            favorite = False
        else:
            favorites.put(
                {
                    "id": favorite_id,
                    "userId": request.user_id,
                    "family": self.resource_family,
                    "resourceId": resource_id,
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                }
            )
            favorite = True
        self.logger.info(
            f"{'Added' if favorite else 'Removed'} favorite {favorite_id}"
        )
        return OperationResult(
            data={"resourceId": resource_id, "userId": request.user_id, "favorite": favorite}
        )

    # --------------------------------------------------------------------
    # Helpers
    # --------------------------------------------------------------------

    @classmethod
    def require_resource_id(cls, resolved: ResolvedOperation) -> str:
        if not resolved.resource_id:
            raise BadRequestError("Missing resource id")
        return resolved.resource_id

    @classmethod
    def require_body(cls, resolved: ResolvedOperation) -> JSONObject:
        if not isinstance(resolved.body, dict):
            raise BadRequestError("Request body must be a JSON object")
        return resolved.body
