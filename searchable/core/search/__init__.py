"""Article search module.

Provides:
- Article index schema and document projection
- Search request builder with cross-filtered facets
- Index mutation dispatch and the indexer job handler
- Elasticsearch integration
"""

from searchable.core.search.builder import (
    SearchOptions,
    build_search_request,
)
from searchable.core.search.client import (
    SearchClient,
    ElasticsearchClient,
    InMemorySearchClient,
    get_search_client,
    set_search_client,
)
from searchable.core.search.dispatcher import (
    IndexMutationDispatcher,
    IndexMutationJob,
    IndexOperation,
)
from searchable.core.search.errors import (
    SearchError,
    ProjectionError,
    DispatchError,
    EngineError,
)
from searchable.core.search.facade import (
    ArticleSearch,
    get_article_search,
)
from searchable.core.search.indexer import Indexer
from searchable.core.search.projector import project
from searchable.core.search.request import SearchRequest
from searchable.core.search.schema import (
    ARTICLE_SCHEMA,
    create_article_index_mapping,
    field_path,
)

__all__ = [
    # Schema
    "ARTICLE_SCHEMA",
    "create_article_index_mapping",
    "field_path",
    # Projection
    "project",
    # Query
    "SearchOptions",
    "SearchRequest",
    "build_search_request",
    # Dispatch
    "IndexMutationDispatcher",
    "IndexMutationJob",
    "IndexOperation",
    "Indexer",
    # Client
    "SearchClient",
    "ElasticsearchClient",
    "InMemorySearchClient",
    "get_search_client",
    "set_search_client",
    "ArticleSearch",
    "get_article_search",
    # Errors
    "SearchError",
    "ProjectionError",
    "DispatchError",
    "EngineError",
]
