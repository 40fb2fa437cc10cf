"""Configuration management for SQL Publisher.

Handles the TOML settings file, environment variables, CLI overrides and
runtime updates pushed while the publisher is running.

Precedence order (highest to lowest):
1. CLI flags (--connection-string, --query, --batch-size, ...)
2. Environment variables (SQL_PUBLISHER_*)
3. Settings file (~/.config/sql-publisher/config.toml or --config)
4. Built-in defaults

Runtime updates go through SettingsStore.apply(), which accepts either the
snake_case field names or the desired-property names used by device twins
(ConnectionString, SqlQuery, MaxBatchSize, ...).
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError, field_validator

from sql_publisher.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "sql-publisher" / "config.toml"

DEFAULT_POLLING_INTERVAL_MS = 60000

ENV_PREFIX = "SQL_PUBLISHER_"

_ENV_FIELDS: tuple[str, ...] = (
    "connection_string",
    "sql_query",
    "is_sql_query_json",
    "polling_interval_ms",
    "max_batch_size",
    "verbose",
    "sink",
    "output_path",
)

_DESIRED_PROPERTY_NAMES: dict[str, str] = {
    "ConnectionString": "connection_string",
    "SqlQuery": "sql_query",
    "IsSqlQueryJson": "is_sql_query_json",
    "PoolingIntervalMiliseconds": "polling_interval_ms",
    "PollingIntervalMilliseconds": "polling_interval_ms",
    "MaxBatchSize": "max_batch_size",
    "Verbose": "verbose",
}


class PublisherSettings(BaseModel):
    connection_string: str
    sql_query: str
    is_sql_query_json: bool = False
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    max_batch_size: int = 200
    verbose: bool = True
    sink: str = "stdout"
    output_path: str | None = None

    @field_validator("connection_string", "sql_query")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "must not be empty"
            raise ValueError(msg)
        return v

    @field_validator("polling_interval_ms")
    @classmethod
    def default_non_positive_interval(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_POLLING_INTERVAL_MS

    @field_validator("max_batch_size")
    @classmethod
    def validate_max_batch_size(cls, v: int) -> int:
        if v < 0:
            msg = f"Invalid max_batch_size: {v}. Must be >= 0 (0 = unbounded)"
            raise ValueError(msg)
        return v

    @property
    def polling_interval(self) -> float:
        """Polling interval in seconds."""
        return self.polling_interval_ms / 1000

    def redacted(self) -> dict[str, Any]:
        """Settings as a dict with secrets masked, for logging and display."""
        data = self.model_dump()
        data["connection_string"] = redact_conninfo(self.connection_string)
        return data


def redact_conninfo(conninfo: str) -> str:
    """Mask the password in a URL or key=value connection string."""
    if "://" in conninfo:
        scheme, _, rest = conninfo.partition("://")
        userinfo, sep, hostpart = rest.rpartition("@")
        if sep and ":" in userinfo:
            user = userinfo.split(":", 1)[0]
            return f"{scheme}://{user}:********@{hostpart}"
        return conninfo
    parts = []
    for token in conninfo.split():
        key, sep, _ = token.partition("=")
        if sep and key.strip().lower() == "password":
            parts.append(f"{key}=********")
        else:
            parts.append(token)
    return " ".join(parts)


def _format_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "settings"
        problems.append(f"{field}: {item['msg']}")
    return "; ".join(problems)


def read_config_file(config_path: Path | None = None) -> dict[str, Any]:
    """Read the TOML settings file.

    Returns an empty dict if the file doesn't exist.
    Raises ConfigurationError on malformed TOML.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Malformed TOML in {config_path}: {e}"
        raise ConfigurationError(msg) from e


def read_environment() -> dict[str, str]:
    values: dict[str, str] = {}
    for field in _ENV_FIELDS:
        value = os.environ.get(f"{ENV_PREFIX}{field.upper()}")
        if value is not None:
            values[field] = value
    return values


def normalize_keys(values: Mapping[str, Any]) -> dict[str, Any]:
    """Translate desired-property names to field names. Unknown keys are dropped."""
    normalized: dict[str, Any] = {}
    fields = PublisherSettings.model_fields
    for key, value in values.items():
        name = _DESIRED_PROPERTY_NAMES.get(key, key)
        if name in fields:
            normalized[name] = value
    return normalized


def build_settings(values: Mapping[str, Any]) -> PublisherSettings:
    try:
        return PublisherSettings.model_validate(dict(values))
    except ValidationError as e:
        msg = f"Invalid settings: {_format_validation_error(e)}"
        raise ConfigurationError(msg) from e


def load_settings(
    config_path: Path | None = None,
    **cli_overrides: Any,
) -> PublisherSettings:
    """Resolve settings using the precedence chain.

    CLI > env > settings file > built-in defaults. None-valued
    overrides are ignored.
    """
    resolved: dict[str, Any] = {}
    resolved.update(normalize_keys(read_config_file(config_path)))
    resolved.update(read_environment())
    resolved.update({k: v for k, v in cli_overrides.items() if v is not None})
    return build_settings(resolved)


class SettingsStore:
    """Holds the current settings snapshot and swaps it on updates.

    A failed update never replaces a valid snapshot.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.overrides = dict(overrides or {})
        self._mtime = self._file_mtime()
        self._current = load_settings(self.config_path, **self.overrides)
        self.version = 1

    @property
    def current(self) -> PublisherSettings:
        return self._current

    def _file_mtime(self) -> float | None:
        try:
            return self.config_path.stat().st_mtime
        except OSError:
            return None

    def _swap(self, settings: PublisherSettings, source: str) -> bool:
        if settings == self._current:
            return False
        log = structlog.get_logger()
        self._current = settings
        self.version += 1
        log.info(
            "settings updated",
            source=source,
            version=self.version,
            settings=settings.redacted(),
        )
        return True

    def apply(self, desired: Mapping[str, Any]) -> bool:
        """Merge desired properties over the current snapshot.

        Returns True when the snapshot changed.
        """
        log = structlog.get_logger()
        merged = self._current.model_dump()
        merged.update(normalize_keys(desired))
        try:
            settings = build_settings(merged)
        except ConfigurationError as e:
            log.critical("rejected desired properties", error=e.message)
            return False
        return self._swap(settings, "desired properties")

    def reload(self, force: bool = False) -> bool:
        """Re-read file and environment if the settings file changed.

        Returns True when the snapshot changed.
        """
        log = structlog.get_logger()
        mtime = self._file_mtime()
        if not force and mtime == self._mtime:
            return False
        self._mtime = mtime
        try:
            settings = load_settings(self.config_path, **self.overrides)
        except ConfigurationError as e:
            log.critical("rejected settings file", path=str(self.config_path), error=e.message)
            return False
        return self._swap(settings, str(self.config_path))
