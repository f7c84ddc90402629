"""Search Client Implementation.

Provides Elasticsearch and in-memory search clients. Both return raw,
Elasticsearch-shaped responses and raise ``EngineError`` when the engine
fails; missing documents on ``get``/``delete`` are not errors.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from elasticsearch import ApiError, AsyncElasticsearch, NotFoundError, TransportError

from searchable.core.config import get_settings
from searchable.core.search.errors import EngineError

logger = logging.getLogger(__name__)


class SearchClient(ABC):
    """Abstract base class for search clients."""

    @abstractmethod
    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        """Index (create or replace) a document.

        Args:
            index: Index name
            doc_id: Document ID
            document: Document body
            refresh: Whether to wait for the document to become searchable
        """
        pass

    @abstractmethod
    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document source by ID, or None if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, index: str, doc_id: str, refresh: bool = False) -> bool:
        """Delete a document.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        pass

    @abstractmethod
    async def submit(self, index: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Run a search request body and return the engine response as is."""
        pass

    @abstractmethod
    async def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        """Create an index from a settings/mappings body.

        Returns:
            True if created, False if it already existed
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the client connection."""
        pass


def _engine_error(action: str, index: str, error: Exception) -> EngineError:
    meta = getattr(error, "meta", None)
    status_code = getattr(meta, "status", None)
    logger.error(
        f"Elasticsearch {action} failed on {index}: {error}",
        extra={"index": index, "status_code": status_code},
    )
    return EngineError(f"{action} failed on {index}: {error}", status_code=status_code)


class ElasticsearchClient(SearchClient):
    """Elasticsearch client implementation."""

    def __init__(
        self,
        hosts: Optional[List[str]] = None,
        api_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.hosts = hosts or [settings.ELASTICSEARCH_URL]
        self.api_key = api_key or settings.ELASTICSEARCH_API_KEY
        self.username = username or settings.ELASTICSEARCH_USERNAME
        self.password = password or settings.ELASTICSEARCH_PASSWORD
        self.request_timeout = request_timeout or settings.ELASTICSEARCH_REQUEST_TIMEOUT

        self._client: Optional[AsyncElasticsearch] = None

    def _get_client(self) -> AsyncElasticsearch:
        """Get or create the Elasticsearch client."""
        if self._client is None:
            kwargs: Dict[str, Any] = {
                "hosts": self.hosts,
                "request_timeout": self.request_timeout,
            }

            if self.api_key:
                kwargs["api_key"] = self.api_key
            elif self.username and self.password:
                kwargs["basic_auth"] = (self.username, self.password)

            self._client = AsyncElasticsearch(**kwargs)
            logger.info(f"Connected to Elasticsearch at {self.hosts}")

        return self._client

    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        client = self._get_client()
        try:
            await client.index(
                index=index,
                id=doc_id,
                document=document,
                refresh="wait_for" if refresh else False,
            )
        except (ApiError, TransportError) as e:
            raise _engine_error("index", index, e) from e

    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        client = self._get_client()
        try:
            response = await client.get(index=index, id=doc_id)
        except NotFoundError:
            return None
        except (ApiError, TransportError) as e:
            raise _engine_error("get", index, e) from e
        return response["_source"]

    async def delete(self, index: str, doc_id: str, refresh: bool = False) -> bool:
        client = self._get_client()
        try:
            await client.delete(
                index=index,
                id=doc_id,
                refresh="wait_for" if refresh else False,
            )
        except NotFoundError:
            logger.debug(f"Document {doc_id} already absent from {index}")
            return False
        except (ApiError, TransportError) as e:
            raise _engine_error("delete", index, e) from e
        return True

    async def submit(self, index: str, body: Dict[str, Any]) -> Dict[str, Any]:
        client = self._get_client()
        params = dict(body)
        if "from" in params:
            params["from_"] = params.pop("from")
        try:
            response = await client.search(index=index, **params)
        except (ApiError, TransportError) as e:
            raise _engine_error("search", index, e) from e
        return response.body

    async def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        client = self._get_client()
        try:
            if await client.indices.exists(index=index):
                logger.debug(f"Index {index} already exists")
                return False

            await client.indices.create(
                index=index,
                settings=body.get("settings"),
                mappings=body.get("mappings"),
            )
        except (ApiError, TransportError) as e:
            raise _engine_error("create index", index, e) from e

        logger.info(f"Created index: {index}")
        return True

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None


class InMemorySearchClient(SearchClient):
    """In-memory search client for testing.

    ``submit`` evaluates ``match_all``, ``multi_match``, ``term`` and
    ``bool.should`` queries and honours ``size``; aggregations, highlight, sort and
    suggest are accepted but not evaluated.
    """

    def __init__(self):
        self._indices: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        self._indices.setdefault(index, {})[doc_id] = document

    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if index in self._indices:
            return self._indices[index].get(doc_id)
        return None

    async def delete(self, index: str, doc_id: str, refresh: bool = False) -> bool:
        if index in self._indices and doc_id in self._indices[index]:
            del self._indices[index][doc_id]
            return True
        return False

    async def submit(self, index: str, body: Dict[str, Any]) -> Dict[str, Any]:
        query = body.get("query", {"match_all": {}})
        size = body.get("size", 10)

        hits = [
            {"_index": index, "_id": doc_id, "_score": 1.0, "_source": doc}
            for doc_id, doc in self._indices.get(index, {}).items()
            if self._matches_query(doc, query)
        ]

        return {
            "took": 0,
            "timed_out": False,
            "hits": {
                "total": {"value": len(hits), "relation": "eq"},
                "max_score": 1.0 if hits else None,
                "hits": hits[:size],
            },
        }

    def _matches_query(self, doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
        """Simple query matching."""
        if "match_all" in query:
            return True

        if "multi_match" in query:
            multi = query["multi_match"]
            fields = [name.split("^")[0] for name in multi["fields"]]
            text = " ".join(
                str(value).lower()
                for name in fields
                for value in _field_values(doc, name)
                if value is not None
            )
            terms = str(multi["query"]).lower().split()
            if multi.get("operator", "or") == "and":
                return all(term in text for term in terms)
            return any(term in text for term in terms)

        if "term" in query:
            for field_name, term_value in query["term"].items():
                if term_value not in _field_values(doc, field_name):
                    return False
            return True

        if "bool" in query:
            return any(
                self._matches_query(doc, clause)
                for clause in query["bool"].get("should", [])
            )

        return True

    async def create_index(self, index: str, body: Dict[str, Any]) -> bool:
        if index in self._indices:
            return False
        self._indices[index] = {}
        return True

    async def close(self) -> None:
        self._indices.clear()


def _field_values(source: Dict[str, Any], path: str) -> List[Any]:
    """Leaf values at a dotted path; arrays are flattened.

    Segments past a scalar (multi-fields such as ``.raw``) are skipped.
    """
    current: List[Any] = [source]
    for part in path.split("."):
        found: List[Any] = []
        for value in current:
            if isinstance(value, dict):
                if part in value:
                    item = value[part]
                    found.extend(item if isinstance(item, list) else [item])
            else:
                found.append(value)
        current = found
    return current


# Global search client
_search_client: Optional[SearchClient] = None


def get_search_client() -> SearchClient:
    """Get global search client.

    Defaults to an ElasticsearchClient configured from settings; tests and
    local runs install another one with ``set_search_client``.
    """
    global _search_client

    if _search_client is None:
        _search_client = ElasticsearchClient()

    return _search_client


def set_search_client(client: Optional[SearchClient]) -> None:
    """Set (or with None, reset) the global search client."""
    global _search_client
    _search_client = client
