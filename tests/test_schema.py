"""Tests for schema resolution and value kinds."""

import pytest

from sql_publisher.core.exceptions import ConnectionError, SchemaError
from sql_publisher.core.schema import (
    Schema,
    ValueKind,
    kind_for_type,
    resolve_schema,
    type_name_for_oid,
)
from tests.fake_source import FakeSource, make_columns


@pytest.mark.unit
@pytest.mark.parametrize(
    ("oid", "kind"),
    [
        (16, ValueKind.BOOLEAN),
        (17, ValueKind.BINARY),
        (20, ValueKind.INTEGER),
        (21, ValueKind.INTEGER),
        (23, ValueKind.INTEGER),
        (25, ValueKind.TEXT),
        (114, ValueKind.TEXT),
        (700, ValueKind.FLOAT),
        (701, ValueKind.FLOAT),
        (790, ValueKind.DECIMAL),
        (1043, ValueKind.TEXT),
        (1082, ValueKind.DATETIME),
        (1114, ValueKind.DATETIME),
        (1184, ValueKind.DATETIME),
        (1186, ValueKind.DATETIME),
        (1700, ValueKind.DECIMAL),
        (2950, ValueKind.TEXT),
        (3802, ValueKind.TEXT),
    ],
)
def test_kind_for_type(oid, kind):
    assert kind_for_type(oid) == kind


@pytest.mark.unit
def test_unknown_type_is_text():
    assert type_name_for_oid(999999) == "unknown"
    assert kind_for_type(999999) == ValueKind.TEXT


@pytest.mark.unit
class TestSchema:
    def test_preserves_column_order(self):
        schema = Schema([("b", ValueKind.TEXT), ("a", ValueKind.INTEGER)])
        assert list(schema) == ["b", "a"]
        assert schema.columns == (("b", ValueKind.TEXT), ("a", ValueKind.INTEGER))

    def test_mapping_access(self):
        schema = Schema([("id", ValueKind.INTEGER)])
        assert schema["id"] == ValueKind.INTEGER
        assert len(schema) == 1
        assert "id" in schema
        with pytest.raises(KeyError):
            schema["missing"]

    def test_duplicate_columns_rejected(self):
        with pytest.raises(SchemaError, match="Duplicate column name"):
            Schema([("id", ValueKind.INTEGER), ("id", ValueKind.TEXT)])

    def test_equality(self):
        a = Schema([("id", ValueKind.INTEGER), ("name", ValueKind.TEXT)])
        b = Schema([("id", ValueKind.INTEGER), ("name", ValueKind.TEXT)])
        c = Schema([("name", ValueKind.TEXT), ("id", ValueKind.INTEGER)])
        assert a == b
        assert hash(a) == hash(b)
        assert a != c

    def test_to_dict(self):
        schema = Schema([("id", ValueKind.INTEGER), ("ts", ValueKind.DATETIME)])
        assert schema.to_dict() == {"id": "integer", "ts": "datetime"}

    def test_from_columns(self):
        schema = Schema.from_columns(make_columns(("id", 23), ("price", 1700)))
        assert schema.to_dict() == {"id": "integer", "price": "decimal"}


@pytest.mark.unit
class TestResolveSchema:
    def test_resolves_in_result_order(self, people_source):
        schema = resolve_schema(people_source, "SELECT id, name, note FROM people")
        assert list(schema) == ["id", "name", "note"]
        assert schema.to_dict() == {"id": "integer", "name": "text", "note": "text"}

    def test_does_not_touch_rows(self, people_source):
        resolve_schema(people_source, "SELECT 1")
        assert people_source.describe_calls == 1
        assert people_source.rows_calls == 0

    def test_idempotent(self, people_source):
        first = resolve_schema(people_source, "SELECT 1")
        second = resolve_schema(people_source, "SELECT 1")
        assert first == second

    def test_describe_failure_propagates(self):
        source = FakeSource([], [], describe_error=SchemaError("syntax error"))
        with pytest.raises(SchemaError, match="syntax error"):
            resolve_schema(source, "SELECTT 1")

    def test_connection_failure_propagates(self):
        source = FakeSource([], [], describe_error=ConnectionError("down"))
        with pytest.raises(ConnectionError):
            resolve_schema(source, "SELECT 1")

    def test_no_columns_is_schema_error(self):
        source = FakeSource([], [])
        with pytest.raises(SchemaError, match="no columns"):
            resolve_schema(source, "CREATE TEMP TABLE t (id int)")
