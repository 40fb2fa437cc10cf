"""Shared CLI plumbing for command modules.

Settings resolution from the global options, and sink construction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sql_publisher.core.config import SettingsStore, load_settings
from sql_publisher.sinks import registry

if TYPE_CHECKING:
    import typer

    from sql_publisher.core.config import PublisherSettings
    from sql_publisher.sinks.base import MessageSink

_OVERRIDE_KEYS: dict[str, str] = {
    "connection_string": "connection_string",
    "query": "sql_query",
    "batch_size": "max_batch_size",
    "interval_ms": "polling_interval_ms",
    "raw_json": "is_sql_query_json",
    "sink": "sink",
    "output": "output_path",
}


def cli_overrides(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    overrides: dict[str, Any] = {}
    for cli_name, field_name in _OVERRIDE_KEYS.items():
        val = obj.get(cli_name)
        if val is not None:
            overrides[field_name] = val
    # --verbose can only switch tracebacks on; without it the setting stands.
    if obj.get("verbose"):
        overrides["verbose"] = True
    return overrides


def get_settings(ctx: typer.Context) -> PublisherSettings:
    obj = ctx.ensure_object(dict)
    return load_settings(obj.get("config_file"), **cli_overrides(ctx))


def get_store(ctx: typer.Context) -> SettingsStore:
    obj = ctx.ensure_object(dict)
    return SettingsStore(obj.get("config_file"), overrides=cli_overrides(ctx))


def build_sink(settings: PublisherSettings) -> MessageSink:
    return registry.create(settings)
