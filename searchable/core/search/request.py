"""Search request value.

``SearchRequest`` bundles everything sent to the engine for one search and
renders it to a request body with ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from searchable.core.search.aggregations import Aggregation
from searchable.core.search.query import MatchAllQuery, Query


@dataclass(frozen=True)
class HighlightField:
    """Highlight options for one field."""
    name: str
    number_of_fragments: Optional[int] = None  # 0 returns the whole field
    fragment_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.number_of_fragments is not None:
            options["number_of_fragments"] = self.number_of_fragments
        if self.fragment_size is not None:
            options["fragment_size"] = self.fragment_size
        return options


@dataclass(frozen=True)
class Highlight:
    """Highlight configuration."""
    fields: Tuple[HighlightField, ...]
    pre_tags: Tuple[str, ...] = ("<em>",)
    post_tags: Tuple[str, ...] = ("</em>",)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": {f.name: f.to_dict() for f in self.fields},
            "pre_tags": list(self.pre_tags),
            "post_tags": list(self.post_tags),
        }


@dataclass(frozen=True)
class TermSuggester:
    """Term-level spelling suggestion."""
    name: str
    text: str
    field: str
    suggest_mode: str = "missing"  # missing, popular, always

    def to_dict(self) -> Dict[str, Any]:
        return {
            self.name: {
                "text": self.text,
                "term": {"field": self.field, "suggest_mode": self.suggest_mode},
            }
        }


@dataclass(frozen=True)
class SearchRequest:
    """A complete search request."""
    query: Query = field(default_factory=MatchAllQuery)
    aggregations: Tuple[Aggregation, ...] = ()
    highlight: Optional[Highlight] = None
    sort: Tuple[Tuple[str, str], ...] = ()
    track_scores: bool = False
    suggesters: Tuple[TermSuggester, ...] = ()

    @property
    def aggregation_names(self) -> List[str]:
        return [agg.name for agg in self.aggregations]

    def to_dict(self) -> Dict[str, Any]:
        """Render the Elasticsearch request body."""
        body: Dict[str, Any] = {"query": self.query.to_dict()}

        if self.aggregations:
            aggs: Dict[str, Any] = {}
            for agg in self.aggregations:
                aggs.update(agg.to_dict())
            body["aggs"] = aggs

        if self.highlight:
            body["highlight"] = self.highlight.to_dict()

        if self.sort:
            body["sort"] = [{name: order} for name, order in self.sort]

        if self.track_scores:
            body["track_scores"] = True

        if self.suggesters:
            suggest: Dict[str, Any] = {}
            for suggester in self.suggesters:
                suggest.update(suggester.to_dict())
            body["suggest"] = suggest

        return body
