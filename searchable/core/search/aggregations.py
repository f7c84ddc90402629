"""Search Aggregations.

Bucket aggregations used for the article facets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from searchable.core.search.query import MatchAllQuery, Query


@dataclass(frozen=True)
class Aggregation:
    """Base aggregation class."""

    name: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Elasticsearch aggregation dict."""
        raise NotImplementedError


def _sub_aggregations(aggregations: List[Aggregation]) -> Dict[str, Any]:
    return {
        agg.name: agg.to_dict()[agg.name]
        for agg in aggregations
    }


@dataclass(frozen=True)
class TermsAggregation(Aggregation):
    """Terms bucket aggregation."""

    field: str
    size: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {self.name: {"terms": {"field": self.field, "size": self.size}}}


@dataclass(frozen=True)
class DateHistogramAggregation(Aggregation):
    """Date histogram bucket aggregation."""

    field: str
    calendar_interval: str  # minute, hour, day, week, month, quarter, year

    def to_dict(self) -> Dict[str, Any]:
        return {
            self.name: {
                "date_histogram": {
                    "field": self.field,
                    "calendar_interval": self.calendar_interval,
                }
            }
        }


@dataclass(frozen=True)
class FilterAggregation(Aggregation):
    """Filter bucket aggregation.

    Narrows the documents seen by its sub-aggregations without touching the
    main result set.
    """

    filter: Query = field(default_factory=MatchAllQuery)
    sub_aggregations: List[Aggregation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"filter": self.filter.to_dict()}

        if self.sub_aggregations:
            result["aggs"] = _sub_aggregations(self.sub_aggregations)

        return {self.name: result}
