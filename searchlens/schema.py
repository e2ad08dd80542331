"""Search index schema: field names and their indexing options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Flag, auto

FieldName = str
SchemaMapping = list[tuple[FieldName, "FieldFlag"]]


class FieldFlag(Flag):
    """Indexing options of a text field."""

    # Untokenized, indexed as a whole.
    STRING = auto()
    # Tokenized and indexed with frequencies and positions.
    TEXT = auto()
    # Kept in the document store so results can be rebuilt.
    STORED = auto()
    # Random-access column for scoring, filtering and collection.
    FAST = auto()


@dataclass(frozen=True)
class Schema:
    """An ordered set of named text fields."""

    fields: tuple[tuple[FieldName, FieldFlag], ...] = ()

    def get_field(self, name: str) -> int:
        """Return the field handle for ``name``; raise KeyError if absent."""
        for index, (field_name, _) in enumerate(self.fields):
            if field_name == name:
                return index
        raise KeyError(f"No {name} in schema")


def mapping_to_schema(mapping) -> Schema:
    """Build a schema from ``(name, flags)`` pairs, keeping their order."""
    fields: list[tuple[FieldName, FieldFlag]] = []
    seen: set[str] = set()
    for name, flags in mapping:
        if name in seen:
            raise ValueError(f"Field already exists in schema: {name}")
        seen.add(name)
        fields.append((name, flags))
    return Schema(tuple(fields))


@dataclass(frozen=True)
class DocFields:
    """Field handles of an indexed document."""

    id: int
    domain: int
    content: int
    description: int
    title: int
    url: int


def doc_field_mapping() -> SchemaMapping:
    """The fields of an indexed document with their options."""
    return [
        ("id", FieldFlag.STRING | FieldFlag.STORED | FieldFlag.FAST),
        ("domain", FieldFlag.STRING | FieldFlag.STORED | FieldFlag.FAST),
        ("title", FieldFlag.TEXT | FieldFlag.STORED | FieldFlag.FAST),
        ("description", FieldFlag.TEXT | FieldFlag.STORED),
        ("url", FieldFlag.STRING | FieldFlag.STORED | FieldFlag.FAST),
        ("content", FieldFlag.TEXT | FieldFlag.STORED),
    ]


def doc_schema() -> Schema:
    """The schema of an indexed document."""
    return mapping_to_schema(doc_field_mapping())


def doc_fields() -> DocFields:
    """Resolve each document field to its handle."""
    schema = doc_schema()
    return DocFields(
        id=schema.get_field("id"),
        domain=schema.get_field("domain"),
        content=schema.get_field("content"),
        description=schema.get_field("description"),
        title=schema.get_field("title"),
        url=schema.get_field("url"),
    )