"""Article search request builder.

Turns a free-text query and facet selections into a ``SearchRequest``:
relevance query, three facet aggregations, highlighting, sort and spelling
suggestions.

Each facet is counted under a filter made from the *other* selection, never
its own, so picking a category keeps every category bucket visible while
narrowing the author and week buckets. The filters are deliberately not
combined: ``categories`` only looks at the author selection, ``authors`` and
``published`` only at the category selection, even when both are set.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from searchable.core.search import schema
from searchable.core.search.aggregations import (
    Aggregation,
    DateHistogramAggregation,
    FilterAggregation,
    TermsAggregation,
)
from searchable.core.search.query import (
    BoolQuery,
    MatchAllQuery,
    MultiMatchQuery,
    Query,
    TermQuery,
    boosted,
)
from searchable.core.search.request import (
    Highlight,
    HighlightField,
    SearchRequest,
    TermSuggester,
)

SEARCH_FIELDS = (
    boosted(schema.TITLE, 10),
    boosted(schema.ABSTRACT, 2),
    boosted(schema.CONTENT, 1),
)

HIGHLIGHT = Highlight(
    fields=(
        HighlightField(schema.TITLE, number_of_fragments=0),
        HighlightField(schema.ABSTRACT, number_of_fragments=0),
        HighlightField(schema.CONTENT, fragment_size=50),
    ),
    pre_tags=('<em class="label label-highlight">',),
    post_tags=("</em>",),
)

PUBLISHED_INTERVAL = "week"


@dataclass(frozen=True)
class SearchOptions:
    """Facet selections and sort field for one search."""
    sort: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[Any, Any]]) -> "SearchOptions":
        """Pick the known keys; anything else is ignored."""
        if not options:
            return cls()
        known = {str(key): value for key, value in options.items()}
        return cls(
            sort=_selection(known.get("sort")),
            author=_selection(known.get("author")),
            category=_selection(known.get("category")),
        )


def _selection(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _query_text(q: Any) -> str:
    if q is None:
        return ""
    return q if isinstance(q, str) else str(q)


def build_search_request(
    q: Any,
    options: Optional[Mapping[Any, Any]] = None,
) -> SearchRequest:
    """Build the search request for ``q`` and facet ``options``.

    Args:
        q: User query; blank means browse everything, newest first
        options: ``sort``, ``author`` and ``category``; other keys are ignored

    Returns:
        A new SearchRequest
    """
    text = _query_text(q)
    blank = not text.strip()
    opts = SearchOptions.from_mapping(options)

    return SearchRequest(
        query=relevance_query(text, blank),
        aggregations=facet_aggregations(opts),
        highlight=HIGHLIGHT,
        sort=_sort(opts, blank),
        track_scores=opts.sort is not None,
        suggesters=() if blank else _suggesters(text),
    )


def relevance_query(text: str, blank: bool) -> Query:
    if blank:
        return MatchAllQuery()
    return BoolQuery(
        should=[
            MultiMatchQuery(query=text, fields=list(SEARCH_FIELDS), operator="and"),
        ]
    )


def _author_filter(opts: SearchOptions) -> Query:
    if opts.author:
        return TermQuery(schema.AUTHORS_FULL_NAME_RAW, opts.author)
    return MatchAllQuery()


def _category_filter(opts: SearchOptions) -> Query:
    if opts.category:
        return TermQuery(schema.CATEGORIES, opts.category)
    return MatchAllQuery()


def facet_aggregations(opts: SearchOptions) -> Tuple[Aggregation, ...]:
    return (
        FilterAggregation(
            name="categories",
            filter=_author_filter(opts),
            sub_aggregations=[
                TermsAggregation(name="categories", field=schema.CATEGORIES),
            ],
        ),
        FilterAggregation(
            name="authors",
            filter=_category_filter(opts),
            sub_aggregations=[
                TermsAggregation(name="authors", field=schema.AUTHORS_FULL_NAME_RAW),
            ],
        ),
        FilterAggregation(
            name="published",
            filter=_category_filter(opts),
            sub_aggregations=[
                DateHistogramAggregation(
                    name="published",
                    field=schema.PUBLISHED_ON,
                    calendar_interval=PUBLISHED_INTERVAL,
                ),
            ],
        ),
    )


def _sort(opts: SearchOptions, blank: bool) -> Tuple[Tuple[str, str], ...]:
    if opts.sort:
        return ((opts.sort, "desc"),)
    if blank:
        return ((schema.PUBLISHED_ON, "desc"),)
    return ()


def _suggesters(text: str) -> Tuple[TermSuggester, ...]:
    return (
        TermSuggester(
            name="suggest_title",
            text=text,
            field=schema.TITLE_TOKENIZED,
            suggest_mode="always",
        ),
        TermSuggester(
            name="suggest_body",
            text=text,
            field=schema.CONTENT_TOKENIZED,
            suggest_mode="always",
        ),
    )
