"""Search Index Mapping.

Provides field mappings, index settings and the index body used to create
an Elasticsearch index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class FieldType(str, Enum):
    """Elasticsearch field types."""
    TEXT = "text"
    KEYWORD = "keyword"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    NESTED = "nested"


@dataclass
class FieldMapping:
    """Field mapping configuration."""
    name: str
    field_type: FieldType
    analyzer: Optional[str] = None
    fields: Optional[Dict[str, "FieldMapping"]] = None
    properties: Optional[Dict[str, "FieldMapping"]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Elasticsearch mapping dict."""
        mapping: Dict[str, Any] = {"type": self.field_type.value}

        if self.analyzer:
            mapping["analyzer"] = self.analyzer

        if self.fields:
            mapping["fields"] = {
                name: f.to_dict() for name, f in self.fields.items()
            }

        if self.properties:
            mapping["properties"] = {
                name: f.to_dict() for name, f in self.properties.items()
            }

        return mapping

    def child(self, name: str) -> "FieldMapping":
        """Return a sub-field or sub-property by name.

        Raises:
            KeyError: if neither a multi-field nor a property is called ``name``
        """
        if self.properties and name in self.properties:
            return self.properties[name]
        if self.fields and name in self.fields:
            return self.fields[name]
        raise KeyError(f"{self.name!r} has no field {name!r}")


@dataclass
class IndexSettings:
    """Index settings configuration."""
    number_of_shards: int = 1
    number_of_replicas: int = 1

    # Analysis settings
    analyzers: Optional[Dict[str, Any]] = None
    filters: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Elasticsearch settings dict."""
        settings: Dict[str, Any] = {
            "index": {
                "number_of_shards": self.number_of_shards,
                "number_of_replicas": self.number_of_replicas,
            }
        }

        if self.analyzers or self.filters:
            analysis: Dict[str, Any] = {}
            if self.analyzers:
                analysis["analyzer"] = self.analyzers
            if self.filters:
                analysis["filter"] = self.filters
            settings["analysis"] = analysis

        return settings


@dataclass
class IndexMapping:
    """Complete index mapping."""
    fields: Dict[str, FieldMapping] = field(default_factory=dict)
    settings: IndexSettings = field(default_factory=IndexSettings)
    dynamic: str = "strict"  # strict, true, false

    def resolve(self, path: str) -> FieldMapping:
        """Look up a dotted path such as ``authors.full_name.raw``.

        Raises:
            KeyError: if any segment is not declared
        """
        head, *rest = path.split(".")
        if head not in self.fields:
            raise KeyError(f"Unknown field {head!r}")
        current = self.fields[head]
        for part in rest:
            current = current.child(part)
        return current

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Elasticsearch index body."""
        return {
            "settings": self.settings.to_dict(),
            "mappings": {
                "dynamic": self.dynamic,
                "properties": {
                    name: f.to_dict() for name, f in self.fields.items()
                },
            },
        }
