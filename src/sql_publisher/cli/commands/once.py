from __future__ import annotations

from typing import Annotated

import typer

from sql_publisher.cli.commands._shared import build_sink, get_settings
from sql_publisher.core.exit_codes import ExitCode
from sql_publisher.core.poller import build_executor, poll_once


def once_command(
    ctx: typer.Context,
    single: Annotated[
        bool,
        typer.Option(
            "--single",
            help="Best-effort mode: one document, failures logged instead of raised",
        ),
    ] = False,
) -> None:
    """Run the query once and publish the resulting documents."""
    settings = get_settings(ctx)
    sink = build_sink(settings)

    try:
        with build_executor(settings) as executor:
            if single:
                result = executor.single_document_result()
                if not result.ok:
                    raise typer.Exit(ExitCode.GENERAL_ERROR)
                sink.send(result.document)
            else:
                poll_once(executor, sink, settings)
    finally:
        sink.close()
