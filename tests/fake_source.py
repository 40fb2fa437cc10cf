"""In-memory data source used by unit tests."""

from __future__ import annotations

from typing import Any

from sql_publisher.core.models import ColumnMeta
from sql_publisher.core.schema import type_name_for_oid


def make_columns(*specs: tuple[str, int]) -> list[ColumnMeta]:
    return [
        ColumnMeta(name=name, type_oid=oid, type_name=type_name_for_oid(oid))
        for name, oid in specs
    ]


class FakeSource:
    """Serves fixed columns and rows; records how it was used."""

    def __init__(
        self,
        columns: list[ColumnMeta],
        rows: list[tuple[Any, ...]],
        *,
        describe_error: Exception | None = None,
        rows_error: Exception | None = None,
        fail_after: int | None = None,
        fetch_error: Exception | None = None,
        open_error: Exception | None = None,
    ) -> None:
        self.columns = columns
        self.data = rows
        self.describe_error = describe_error
        self.rows_error = rows_error
        self.fail_after = fail_after
        self.fetch_error = fetch_error
        self.open_error = open_error
        self.closed = True
        self.open_calls = 0
        self.describe_calls = 0
        self.rows_calls = 0
        self.rows_pulled = 0
        self.cursors_closed = 0
        self.close_calls = 0

    def open_if_closed(self) -> None:
        if self.closed:
            if self.open_error is not None:
                raise self.open_error
            self.open_calls += 1
            self.closed = False

    def describe(self, query: str) -> list[ColumnMeta]:
        self.describe_calls += 1
        if self.describe_error is not None:
            raise self.describe_error
        return list(self.columns)

    def rows(self, query: str):
        self.rows_calls += 1
        if self.rows_error is not None:
            raise self.rows_error
        return self._iterate()

    def _iterate(self):
        try:
            for index, row in enumerate(self.data):
                if self.fail_after is not None and index == self.fail_after:
                    raise self.fetch_error
                self.rows_pulled += 1
                yield row
        finally:
            self.cursors_closed += 1

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
