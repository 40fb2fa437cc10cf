"""Schema resolution: column name -> value kind.

The schema is resolved once per executor by running the query in
metadata-only mode, then reused for every row conversion.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from sql_publisher.core.exceptions import SchemaError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sql_publisher.core.models import ColumnMeta
    from sql_publisher.core.source import DataSource


class ValueKind(StrEnum):
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    BINARY = "binary"
    DECIMAL = "decimal"


# Mapping from PostgreSQL type OIDs to human-readable names.
# Covers the most common types; unknown OIDs fall back to "unknown".
TYPE_NAMES: dict[int, str] = {
    16: "bool",
    17: "bytea",
    18: "char",
    19: "name",
    20: "int8",
    21: "int2",
    23: "int4",
    25: "text",
    26: "oid",
    114: "json",
    142: "xml",
    700: "float4",
    701: "float8",
    790: "money",
    1042: "bpchar",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    1186: "interval",
    1266: "timetz",
    1700: "numeric",
    2950: "uuid",
    3802: "jsonb",
}

_KINDS_BY_NAME: dict[str, ValueKind] = {
    "bool": ValueKind.BOOLEAN,
    "bytea": ValueKind.BINARY,
    "int2": ValueKind.INTEGER,
    "int4": ValueKind.INTEGER,
    "int8": ValueKind.INTEGER,
    "oid": ValueKind.INTEGER,
    "float4": ValueKind.FLOAT,
    "float8": ValueKind.FLOAT,
    "numeric": ValueKind.DECIMAL,
    "money": ValueKind.DECIMAL,
    "date": ValueKind.DATETIME,
    "time": ValueKind.DATETIME,
    "timetz": ValueKind.DATETIME,
    "timestamp": ValueKind.DATETIME,
    "timestamptz": ValueKind.DATETIME,
    "interval": ValueKind.DATETIME,
}


def type_name_for_oid(type_oid: int) -> str:
    return TYPE_NAMES.get(type_oid, "unknown")


def kind_for_type(type_oid: int) -> ValueKind:
    """Map a native type OID to its value kind. Unknown types are text."""
    return _KINDS_BY_NAME.get(type_name_for_oid(type_oid), ValueKind.TEXT)


class Schema(Mapping[str, ValueKind]):
    """Ordered, immutable mapping of column name to value kind."""

    def __init__(self, columns: Iterable[tuple[str, ValueKind]]) -> None:
        items = tuple(columns)
        kinds: dict[str, ValueKind] = {}
        for name, kind in items:
            if name in kinds:
                msg = f"Duplicate column name in result set: '{name}'"
                raise SchemaError(msg)
            kinds[name] = kind
        self._items = items
        self._kinds = kinds

    @classmethod
    def from_columns(cls, columns: Iterable[ColumnMeta]) -> Schema:
        return cls((col.name, kind_for_type(col.type_oid)) for col in columns)

    def __getitem__(self, name: str) -> ValueKind:
        return self._kinds[name]

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Schema):
            return self._items == other._items
        return super().__eq__(other)

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        cols = ", ".join(f"{name}: {kind.value}" for name, kind in self._items)
        return f"Schema({{{cols}}})"

    @property
    def columns(self) -> tuple[tuple[str, ValueKind], ...]:
        return self._items

    def to_dict(self) -> dict[str, str]:
        return {name: kind.value for name, kind in self._items}


def resolve_schema(source: DataSource, query: str) -> Schema:
    """Run the query in metadata-only mode and build its Schema.

    Raises SchemaError when the query cannot be described or returns
    no columns. ConnectionError from the source propagates unchanged.
    """
    log = structlog.get_logger()
    columns = source.describe(query)
    if not columns:
        msg = "Query returns no columns; nothing to publish"
        raise SchemaError(msg)

    schema = Schema.from_columns(columns)
    log.debug(
        "schema resolved",
        columns=len(schema),
        schema=schema.to_dict(),
    )
    return schema
