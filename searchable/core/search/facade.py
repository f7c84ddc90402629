"""Article search entry point."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from searchable.core.config import get_settings
from searchable.core.search.builder import build_search_request
from searchable.core.search.client import SearchClient, get_search_client
from searchable.core.search.schema import create_article_index_mapping

logger = logging.getLogger(__name__)


class ArticleSearch:
    """Runs article searches against one index.

    The engine response is returned untouched; engine failures propagate as
    ``EngineError``.
    """

    def __init__(self, client: SearchClient, index: Optional[str] = None):
        self._client = client
        self._index = index or get_settings().index_name

    @property
    def index(self) -> str:
        return self._index

    async def search(
        self,
        q: Any,
        options: Optional[Mapping[Any, Any]] = None,
    ) -> Dict[str, Any]:
        request = build_search_request(q, options)
        logger.debug(f"Searching {self._index}", extra={"index": self._index})
        return await self._client.submit(self._index, request.to_dict())

    async def create_index(self) -> bool:
        """Create the article index with its settings and mapping."""
        settings = get_settings()
        mapping = create_article_index_mapping(
            number_of_shards=settings.INDEX_NUMBER_OF_SHARDS,
            number_of_replicas=settings.INDEX_NUMBER_OF_REPLICAS,
        )
        return await self._client.create_index(self._index, mapping.to_dict())


_article_search: Optional[ArticleSearch] = None


def get_article_search() -> ArticleSearch:
    """Get the process-wide article search."""
    global _article_search
    if _article_search is None:
        _article_search = ArticleSearch(get_search_client())
    return _article_search


def reset_article_search() -> None:
    global _article_search
    _article_search = None
