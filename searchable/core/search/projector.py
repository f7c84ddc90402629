"""Article to search document projection."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List

from searchable.core.search.errors import ProjectionError
from searchable.core.search.schema import ARTICLE_SCHEMA, FieldShape, SchemaField

IndexedDocument = Dict[str, Any]


def project(entity: Any) -> IndexedDocument:
    """Build the document indexed for ``entity``.

    Every schema field is emitted, in schema order. Object and nested arrays
    keep only the declared sub-fields of each item; keyword arrays are
    flattened to the declared item attribute. Optional fields the entity
    does not have are emitted as None.

    Raises:
        ProjectionError: if a field or relation cannot be read
    """
    document: IndexedDocument = {}
    for schema_field in ARTICLE_SCHEMA:
        if schema_field.optional and not _has(entity, schema_field.name):
            document[schema_field.name] = None
            continue
        value = _read(entity, entity, schema_field.name)

        if schema_field.shape in (FieldShape.SCALAR, FieldShape.MULTI_ANALYZER):
            document[schema_field.name] = _scalar(value)
        elif schema_field.shape == FieldShape.KEYWORD_ARRAY:
            items = _relation(entity, schema_field, value)
            document[schema_field.name] = [
                _scalar(_read(entity, item, schema_field.attribute))
                for item in items
            ]
        else:
            items = _relation(entity, schema_field, value)
            document[schema_field.name] = [
                {
                    name: _scalar(_read(entity, item, name))
                    for name in schema_field.sub_fields
                }
                for item in items
            ]

    return document


def _has(obj: Any, name: str) -> bool:
    # Looks the name up without evaluating properties
    return name in getattr(obj, "__dict__", {}) or hasattr(type(obj), name)


def _read(entity: Any, obj: Any, name: str) -> Any:
    try:
        return getattr(obj, name)
    except Exception as e:
        raise ProjectionError(
            f"Cannot read {name!r} of {type(obj).__name__}: {e}",
            entity_type=type(entity).__name__,
            entity_id=getattr(entity, "id", None),
            field=name,
        ) from e


def _relation(entity: Any, schema_field: SchemaField, value: Any) -> List[Any]:
    if value is None:
        raise ProjectionError(
            f"Relation {schema_field.name!r} is missing",
            entity_type=type(entity).__name__,
            entity_id=getattr(entity, "id", None),
            field=schema_field.name,
        )
    try:
        return list(value)
    except Exception as e:
        raise ProjectionError(
            f"Relation {schema_field.name!r} is unreadable: {e}",
            entity_type=type(entity).__name__,
            entity_id=getattr(entity, "id", None),
            field=schema_field.name,
        ) from e


def _scalar(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
