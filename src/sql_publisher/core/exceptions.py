"""Exception hierarchy for SQL Publisher.

All exceptions carry an exit_code for CLI return value mapping.
Exit codes are defined in exit_codes.py.
"""

from __future__ import annotations

from typing import Any

from sql_publisher.core.exit_codes import ExitCode


class SqlPublisherError(Exception):
    """Base exception for all SQL Publisher errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(SqlPublisherError):
    """Missing connection string or query, malformed settings."""

    exit_code: int = ExitCode.CONFIG_ERROR


class ConnectionError(SqlPublisherError):
    """Connection open/reconnect failures."""

    exit_code: int = ExitCode.NETWORK_ERROR


class SchemaError(SqlPublisherError):
    """Metadata-only execution of the query failed."""

    exit_code: int = ExitCode.SCHEMA_ERROR


class QueryError(SqlPublisherError):
    """Data query failed after the schema was resolved."""

    exit_code: int = ExitCode.QUERY_ERROR


class ConversionError(SqlPublisherError):
    """A column value could not be coerced to its declared kind."""

    exit_code: int = ExitCode.CONVERSION_ERROR

    def __init__(
        self,
        column: str,
        row_number: int,
        kind: str,
        value: Any = None,
        reason: str | None = None,
    ) -> None:
        self.column = column
        self.row_number = row_number
        self.kind = kind
        self.value = value
        msg = (
            f"Cannot convert column '{column}' in row {row_number} "
            f"to {kind}: {value!r}"
        )
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class ExecutorBusyError(SqlPublisherError):
    """A second stream was requested while one is still active."""
