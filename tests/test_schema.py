import pytest

from searchlens.schema import (
    FieldFlag,
    Schema,
    doc_field_mapping,
    doc_fields,
    doc_schema,
    mapping_to_schema,
)


def test_doc_field_names_in_order():
    names = [name for name, _ in doc_field_mapping()]
    assert names == ["id", "domain", "title", "description", "url", "content"]


def test_doc_field_options():
    options = dict(doc_field_mapping())
    assert options["id"] == FieldFlag.STRING | FieldFlag.STORED | FieldFlag.FAST
    assert options["content"] == FieldFlag.TEXT | FieldFlag.STORED
    assert FieldFlag.FAST not in options["description"]
    assert FieldFlag.TEXT in options["title"]


def test_every_doc_field_is_stored():
    assert all(FieldFlag.STORED in flags for _, flags in doc_field_mapping())


def test_doc_schema_round_trip():
    schema = doc_schema()
    for name, flags in doc_field_mapping():
        index = schema.get_field(name)
        assert schema.fields[index] == (name, flags)


def test_get_field_missing_raises():
    with pytest.raises(KeyError):
        doc_schema().get_field("missing")


def test_doc_fields_resolve_to_schema():
    fields = doc_fields()
    schema = doc_schema()
    assert fields.title == schema.get_field("title")
    assert fields.url == schema.get_field("url")
    handles = {fields.id, fields.domain, fields.content, fields.description, fields.title, fields.url}
    assert len(handles) == len(schema.fields)


def test_mapping_to_schema_keeps_order():
    mapping = [("b", FieldFlag.TEXT), ("a", FieldFlag.STRING)]
    schema = mapping_to_schema(mapping)
    assert schema.fields == tuple(mapping)
    assert schema.get_field("a") == 1


def test_mapping_to_schema_rejects_duplicates():
    with pytest.raises(ValueError):
        mapping_to_schema([("a", FieldFlag.TEXT), ("a", FieldFlag.STRING)])


def test_empty_schema():
    assert mapping_to_schema([]) == Schema()