"""Search Query DSL.

Query clauses used by the article search request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Query:
    """Base query class."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Elasticsearch query dict."""
        raise NotImplementedError


@dataclass(frozen=True)
class MatchAllQuery(Query):
    """Match all documents."""

    def to_dict(self) -> Dict[str, Any]:
        return {"match_all": {}}


@dataclass(frozen=True)
class MultiMatchQuery(Query):
    """Multi-field match query.

    Fields may carry a boost suffix, e.g. ``title^10``.
    """

    query: str
    fields: List[str]
    operator: str = "or"

    def to_dict(self) -> Dict[str, Any]:
        query_body: Dict[str, Any] = {
            "query": self.query,
            "fields": list(self.fields),
        }

        if self.operator != "or":
            query_body["operator"] = self.operator

        return {"multi_match": query_body}


@dataclass(frozen=True)
class TermQuery(Query):
    """Exact term match query."""

    field: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"term": {self.field: self.value}}


@dataclass(frozen=True)
class BoolQuery(Query):
    """Boolean compound query; at least one ``should`` clause must match."""

    should: List[Query] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"bool": {"should": [q.to_dict() for q in self.should]}}


def boosted(field_name: str, boost: float) -> str:
    """Field reference with a boost suffix; a boost of 1 is left implicit."""
    if boost == 1:
        return field_name
    return f"{field_name}^{boost:g}"
