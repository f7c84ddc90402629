"""Errors raised by projection, dispatch and the search engine client."""

from __future__ import annotations

from typing import Any, Optional


class SearchError(Exception):
    """Base class for article search errors."""


class ProjectionError(SearchError):
    """An entity could not be turned into an indexable document."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Any = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field


class DispatchError(SearchError):
    """An index mutation job could not be enqueued."""

    def __init__(self, message: str, operation: Optional[str] = None, entity_id: Any = None):
        super().__init__(message)
        self.operation = operation
        self.entity_id = entity_id


class EngineError(SearchError):
    """The search engine rejected or failed to serve a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
