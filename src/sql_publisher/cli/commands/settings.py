from __future__ import annotations

import json

import typer

from sql_publisher.cli.commands._shared import get_settings


def settings_command(ctx: typer.Context) -> None:
    """Show the effective settings with secrets masked."""
    settings = get_settings(ctx)
    typer.echo(json.dumps(settings.redacted(), indent=2))
