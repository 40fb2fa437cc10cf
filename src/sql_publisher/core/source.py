"""PostgreSQL data source for SQL Publisher.

Wraps a single psycopg v3 synchronous connection. The connection is opened
lazily and reused for every metadata and data execution until close().
Data queries run through a named server-side cursor so rows are pulled in
fetch_size chunks instead of being materialized client-side.
"""

from __future__ import annotations

import itertools
import re
import time
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import psycopg
import psycopg.conninfo
import sentry_sdk
import structlog

from sql_publisher.core.exceptions import (
    ConfigurationError,
    ConnectionError,
    QueryError,
    SchemaError,
    SqlPublisherError,
)
from sql_publisher.core.models import ColumnMeta
from sql_publisher.core.schema import type_name_for_oid

if TYPE_CHECKING:
    from collections.abc import Iterator

_META_ALIAS = "_sql_publisher_meta"
_TRAILING_TERMINATORS = re.compile(r"[\s;]+$")
_cursor_ids = itertools.count(1)


@runtime_checkable
class DataSource(Protocol):
    """What the query executor needs from a database connection."""

    @property
    def closed(self) -> bool: ...

    def open_if_closed(self) -> None: ...

    def describe(self, query: str) -> list[ColumnMeta]:
        """Column descriptors of the query's result set, no rows fetched."""
        ...

    def rows(self, query: str) -> Iterator[tuple[Any, ...]]:
        """Execute the query and iterate its rows.

        Execution errors surface when rows() is called; fetch errors surface
        while iterating. Closing the iterator releases the cursor.
        """
        ...

    def close(self) -> None: ...


def metadata_query(query: str) -> str:
    """Wrap a query so it reports its columns without producing rows."""
    body = _TRAILING_TERMINATORS.sub("", query.strip())
    # Own lines so a trailing -- comment cannot swallow the closing paren.
    return f"SELECT * FROM (\n{body}\n) AS {_META_ALIAS} LIMIT 0"


def describe_conninfo(conninfo: str) -> str:
    """host:port/dbname for log and error messages. Never includes secrets."""
    try:
        params = psycopg.conninfo.conninfo_to_dict(conninfo)
    except psycopg.ProgrammingError as e:
        msg = f"Invalid connection string: {e}"
        raise ConfigurationError(msg) from e
    host = params.get("host") or "localhost"
    port = params.get("port") or 5432
    dbname = params.get("dbname") or "postgres"
    return f"{host}:{port}/{dbname}"


class PgSource:
    """Synchronous PostgreSQL data source using psycopg v3."""

    def __init__(
        self,
        conninfo: str,
        *,
        application_name: str = "sql-publisher",
        connect_timeout: int = 10,
        fetch_size: int = 2000,
    ) -> None:
        self.conninfo = conninfo
        self.application_name = application_name
        self.connect_timeout = connect_timeout
        self.fetch_size = fetch_size
        self._connection: psycopg.Connection[Any] | None = None

    def __enter__(self) -> PgSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._connection is None or self._connection.closed

    def open_if_closed(self) -> None:
        self._connect()

    def _connect(self) -> psycopg.Connection[Any]:
        if self._connection is not None and not self._connection.closed:
            return self._connection

        target = describe_conninfo(self.conninfo)
        log = structlog.get_logger()
        log.debug("opening connection", target=target)
        try:
            self._connection = psycopg.connect(
                self.conninfo,
                connect_timeout=self.connect_timeout,
                application_name=self.application_name,
                autocommit=False,
            )
        except psycopg.OperationalError as e:
            msg = f"Connection failed to {target}: {e}"
            raise ConnectionError(msg) from e

        return self._connection

    def _map_error(
        self,
        conn: psycopg.Connection[Any],
        error: psycopg.Error,
        error_class: type[SqlPublisherError],
        prefix: str,
    ) -> SqlPublisherError:
        if conn.broken or conn.closed:
            return ConnectionError(f"Connection lost: {error}")
        return error_class(f"{prefix}: {error}")

    def _end_transaction(
        self,
        conn: psycopg.Connection[Any],
        commit: bool,
        error_class: type[SqlPublisherError] = QueryError,
    ) -> None:
        if conn.broken or conn.closed:
            return
        try:
            if commit:
                conn.commit()
            else:
                conn.rollback()
        except psycopg.Error as e:
            action = "Commit" if commit else "Rollback"
            raise self._map_error(conn, e, error_class, f"{action} failed") from e

    def describe(self, query: str) -> list[ColumnMeta]:
        log = structlog.get_logger()
        conn = self._connect()
        sql = metadata_query(query)
        log.debug("describing query", sql=" ".join(sql.split()))
        with sentry_sdk.start_span(op="db.describe", description=sql[:100]) as span:
            try:
                with conn.cursor() as cur:
                    cur.execute(sql)
                    description = cur.description or []
            except psycopg.Error as e:
                span.set_status("invalid_argument")
                log.error("schema query failed", error=str(e))
                err = self._map_error(conn, e, SchemaError, "Schema query failed")
                self._end_transaction(conn, commit=False, error_class=SchemaError)
                raise err from e

            self._end_transaction(conn, commit=False, error_class=SchemaError)
            span.set_data("column_count", len(description))

        return [
            ColumnMeta(
                name=desc.name,
                type_oid=desc.type_code,
                type_name=type_name_for_oid(desc.type_code),
            )
            for desc in description
        ]

    def rows(self, query: str) -> Iterator[tuple[Any, ...]]:
        log = structlog.get_logger()
        conn = self._connect()
        sql_normalized = " ".join(query.split())
        log.debug("executing query", sql=sql_normalized)

        start_time = time.monotonic()
        with sentry_sdk.start_span(op="db.query", description=sql_normalized[:100]):
            try:
                # Warehouse-style queries may legitimately run for a long time.
                conn.execute("SET LOCAL statement_timeout = 0")
                cur = conn.cursor(name=f"sql_publisher_{next(_cursor_ids)}")
                cur.itersize = self.fetch_size
                cur.execute(query)
            except psycopg.Error as e:
                log.error("query failed", sql=sql_normalized, error=str(e))
                err = self._map_error(conn, e, QueryError, "Query failed")
                self._end_transaction(conn, commit=False)
                raise err from e

        log.debug(
            "query executed",
            duration_ms=f"{(time.monotonic() - start_time) * 1000:.1f}",
        )
        return self._iterate(conn, cur)

    def _iterate(
        self, conn: psycopg.Connection[Any], cur: psycopg.ServerCursor[Any]
    ) -> Iterator[tuple[Any, ...]]:
        finished = False
        try:
            for row in cur:
                yield row
            finished = True
        except psycopg.Error as e:
            raise self._map_error(conn, e, QueryError, "Row fetch failed") from e
        finally:
            try:
                if not (conn.broken or conn.closed):
                    cur.close()
            except psycopg.Error as e:
                self._end_transaction(conn, commit=False)
                raise self._map_error(conn, e, QueryError, "Cursor close failed") from e
            self._end_transaction(conn, commit=finished)

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
