"""Article index schema.

Declares every indexed article field once. The projector walks
``ARTICLE_SCHEMA`` to pick what goes into a document; the query builder
takes its field references through ``field_path`` so a renamed or dropped
field breaks at import time instead of silently matching nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from searchable.core.search.index import (
    FieldMapping,
    FieldType,
    IndexMapping,
    IndexSettings,
)

STEMMED_ANALYZER = "snowball"
TOKENIZED_ANALYZER = "simple"

# Current Elasticsearch releases no longer ship a built-in snowball analyzer
ANALYZERS: Dict[str, Any] = {
    STEMMED_ANALYZER: {
        "type": "custom",
        "tokenizer": "standard",
        "filter": ["lowercase", "stop", "english_snowball"],
    },
}
FILTERS: Dict[str, Any] = {
    "english_snowball": {"type": "snowball", "language": "English"},
}


class FieldShape(str, Enum):
    """How a schema field is laid out in the document."""
    SCALAR = "scalar"
    MULTI_ANALYZER = "multi_analyzer"
    OBJECT_ARRAY = "object_array"
    KEYWORD_ARRAY = "keyword_array"
    NESTED_ARRAY = "nested_array"


@dataclass(frozen=True)
class SchemaField:
    """One top-level field of the article document."""
    name: str
    shape: FieldShape
    mapping: FieldMapping
    attribute: Optional[str] = None  # item attribute flattened into keyword arrays
    optional: bool = False  # entities without the attribute project None

    @property
    def sub_fields(self) -> Tuple[str, ...]:
        """Names copied from each item of an object or nested array."""
        return tuple(self.mapping.properties or ())


def _multi_analyzer(name: str) -> FieldMapping:
    return FieldMapping(
        name=name,
        field_type=FieldType.TEXT,
        analyzer=STEMMED_ANALYZER,
        fields={
            "tokenized": FieldMapping(
                name="tokenized",
                field_type=FieldType.TEXT,
                analyzer=TOKENIZED_ANALYZER,
            ),
        },
    )


def _with_raw(name: str) -> FieldMapping:
    return FieldMapping(
        name=name,
        field_type=FieldType.TEXT,
        fields={"raw": FieldMapping(name="raw", field_type=FieldType.KEYWORD)},
    )


ARTICLE_SCHEMA: Tuple[SchemaField, ...] = (
    SchemaField("title", FieldShape.MULTI_ANALYZER, _multi_analyzer("title")),
    SchemaField(
        "abstract",
        FieldShape.MULTI_ANALYZER,
        _multi_analyzer("abstract"),
        optional=True,
    ),
    SchemaField("content", FieldShape.MULTI_ANALYZER, _multi_analyzer("content")),
    SchemaField(
        "published_on",
        FieldShape.SCALAR,
        FieldMapping(name="published_on", field_type=FieldType.DATE),
    ),
    SchemaField(
        "authors",
        FieldShape.OBJECT_ARRAY,
        FieldMapping(
            name="authors",
            field_type=FieldType.OBJECT,
            properties={"full_name": _with_raw("full_name")},
        ),
    ),
    SchemaField(
        "categories",
        FieldShape.KEYWORD_ARRAY,
        FieldMapping(name="categories", field_type=FieldType.KEYWORD),
        attribute="title",
    ),
    SchemaField(
        "comments",
        FieldShape.NESTED_ARRAY,
        FieldMapping(
            name="comments",
            field_type=FieldType.NESTED,
            properties={
                "body": FieldMapping(
                    name="body", field_type=FieldType.TEXT, analyzer=STEMMED_ANALYZER
                ),
                "stars": FieldMapping(name="stars", field_type=FieldType.INTEGER),
                "pick": FieldMapping(name="pick", field_type=FieldType.BOOLEAN),
                "user": FieldMapping(name="user", field_type=FieldType.KEYWORD),
                "user_location": _with_raw("user_location"),
            },
        ),
    ),
)


def create_article_index_mapping(
    number_of_shards: int = 1,
    number_of_replicas: int = 0,
) -> IndexMapping:
    """Create index mapping for articles."""
    mapping = IndexMapping(
        settings=IndexSettings(
            number_of_shards=number_of_shards,
            number_of_replicas=number_of_replicas,
            analyzers=ANALYZERS,
            filters=FILTERS,
        ),
    )
    for schema_field in ARTICLE_SCHEMA:
        mapping.fields[schema_field.name] = schema_field.mapping
    return mapping


_MAPPING = create_article_index_mapping()


def field_path(*parts: str) -> str:
    """Join ``parts`` into a dotted field reference that exists in the schema.

    Raises:
        KeyError: if the path is not declared
    """
    path = ".".join(parts)
    _MAPPING.resolve(path)
    return path


# Field references shared with the query builder
TITLE = field_path("title")
TITLE_TOKENIZED = field_path("title", "tokenized")
ABSTRACT = field_path("abstract")
CONTENT = field_path("content")
CONTENT_TOKENIZED = field_path("content", "tokenized")
PUBLISHED_ON = field_path("published_on")
CATEGORIES = field_path("categories")
AUTHORS_FULL_NAME_RAW = field_path("authors", "full_name", "raw")
