"""Query executor: the facade the poller talks to.

Owns one data source, caches the query schema, and exposes three ways
to read the result set:

* document_stream()   strict, lazy, bounded JSON array documents
* single_document()   best-effort, one document, "" on failure
* raw_scalar_result() first column of the last row, for queries that
                      already produce JSON text
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from sql_publisher.core.batching import BatchStats, stream_batches
from sql_publisher.core.convert import to_text
from sql_publisher.core.exceptions import (
    ConfigurationError,
    ExecutorBusyError,
    SqlPublisherError,
)
from sql_publisher.core.logging import get_logger
from sql_publisher.core.schema import resolve_schema
from sql_publisher.core.source import DataSource, PgSource

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sql_publisher.core.schema import Schema


class ExecutorState(StrEnum):
    CREATED = "created"
    CONNECTED = "connected"
    SCHEMA_RESOLVED = "schema_resolved"
    STREAMING = "streaming"


@dataclass(frozen=True)
class DocumentResult:
    """Outcome of single_document_result(): document, or the error."""

    document: str
    error: SqlPublisherError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QueryExecutor:
    """Runs one fixed query against one data source."""

    def __init__(
        self,
        source: DataSource | str,
        query: str,
        verbose: bool = False,
    ) -> None:
        if isinstance(source, str):
            if not source.strip():
                msg = "Connection string is missing"
                raise ConfigurationError(msg)
            source = PgSource(source)
        if not query or not query.strip():
            msg = "SQL query is missing"
            raise ConfigurationError(msg)

        self.source = source
        self.query = query
        self.verbose = verbose
        self._schema: Schema | None = None
        self._streaming = False
        self.last_stats: BatchStats | None = None

    def __enter__(self) -> QueryExecutor:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def state(self) -> ExecutorState:
        if self._streaming:
            return ExecutorState.STREAMING
        if self._schema is not None:
            return ExecutorState.SCHEMA_RESOLVED
        if not self.source.closed:
            return ExecutorState.CONNECTED
        return ExecutorState.CREATED

    @property
    def schema(self) -> Schema:
        """The query schema, resolved on first access and cached."""
        if self._schema is None:
            self.source.open_if_closed()
            self._schema = resolve_schema(self.source, self.query)
        return self._schema

    def document_stream(self, max_batch_size: int | None = None) -> Iterator[str]:
        """Stream the result set as JSON array documents.

        Errors propagate to the caller. Documents already yielded before
        an error stay valid.
        """
        self._check_idle()
        if max_batch_size is not None and max_batch_size < 0:
            msg = f"max_batch_size must be >= 0, got {max_batch_size}"
            raise ValueError(msg)
        return self._document_stream(max_batch_size)

    def _check_idle(self) -> None:
        if self._streaming:
            msg = "A document stream is already active on this executor"
            raise ExecutorBusyError(msg)

    def _document_stream(self, max_batch_size: int | None) -> Iterator[str]:
        log = get_logger("executor")
        # Another stream may have started between creation and first next().
        self._check_idle()
        self._streaming = True
        try:
            schema = self.schema
            self.source.open_if_closed()

            query_start = time.monotonic()
            rows = self.source.rows(self.query)
            log.info(
                "query started streaming",
                duration_ms=f"{(time.monotonic() - query_start) * 1000:.1f}",
            )

            self.last_stats = BatchStats()
            yield from stream_batches(rows, schema, max_batch_size, self.last_stats)
        finally:
            self._streaming = False

    def single_document_result(self) -> DocumentResult:
        """Run the query unbounded; report failure instead of raising."""
        log = get_logger("executor")
        try:
            documents = list(self.document_stream(None))
        except SqlPublisherError as e:
            if self.verbose:
                log.error("query execution failed", error=e.message, exc_info=True)
            else:
                log.error("query execution failed", error=e.message)
            return DocumentResult(document="", error=e)

        return DocumentResult(document=documents[0] if documents else "[]")

    def single_document(self) -> str:
        """Best-effort single document.

        Returns "" on failure and "[]" for zero rows. Use
        single_document_result() to inspect the error.
        """
        return self.single_document_result().document

    def raw_scalar_result(self) -> str:
        """First column of the last row as text, "" when there are no rows.

        json/jsonb values arrive already parsed and are dumped back to
        compact JSON text.
        """
        log = get_logger("executor")
        self._check_idle()

        self.source.open_if_closed()
        self._streaming = True
        try:
            result = ""
            count = 0
            for row in self.source.rows(self.query):
                value = row[0] if row else None
                result = "" if value is None else to_text(value)
                count += 1
        finally:
            self._streaming = False

        log.info("rows retrieved", rows=count)
        return result

    def close(self) -> None:
        self.source.close()
