from __future__ import annotations

import json

import typer

from sql_publisher.cli.commands._shared import get_settings
from sql_publisher.core.poller import build_executor


def schema_command(ctx: typer.Context) -> None:
    """Resolve the query schema and print it as JSON (column -> kind)."""
    settings = get_settings(ctx)
    with build_executor(settings) as executor:
        schema = executor.schema
    typer.echo(json.dumps(schema.to_dict(), indent=2))
