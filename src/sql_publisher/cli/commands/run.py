from __future__ import annotations

from typing import Annotated

import structlog
import typer

from sql_publisher.cli.commands._shared import build_sink, get_store
from sql_publisher.core.config import redact_conninfo
from sql_publisher.core.poller import Poller, PollSummary


def run_command(
    ctx: typer.Context,
    max_polls: Annotated[
        int | None,
        typer.Option("--max-polls", "-n", help="Stop after this many polls"),
    ] = None,
    duration: Annotated[
        int,
        typer.Option(
            "--duration", "-D", help="Total duration in seconds (0 = indefinite)"
        ),
    ] = 0,
) -> None:
    """Poll the query on the configured interval and publish every document."""
    log = structlog.get_logger()
    store = get_store(ctx)
    settings = store.current
    sink = build_sink(settings)

    log.info("settings", **settings.redacted())
    typer.echo(
        f"Polling {redact_conninfo(settings.connection_string)} every "
        f"{settings.polling_interval:g}s (batch size: {settings.max_batch_size or 'unbounded'})",
        err=True,
    )

    poller = Poller(store, sink)
    try:
        summary = poller.run(max_polls=max_polls, duration=duration)
    finally:
        sink.close()
    print_summary(summary)


def print_summary(summary: PollSummary) -> None:
    typer.echo("\n--- Publisher Summary ---", err=True)
    mins, secs = divmod(summary.elapsed_seconds, 60)
    duration_str = f"{mins}m {secs}s" if mins > 0 else f"{secs}s"
    typer.echo(f"Duration: {duration_str}", err=True)
    typer.echo(f"Polls: {summary.polls} ({summary.failed_polls} failed)", err=True)
    typer.echo(f"Documents published: {summary.documents:,}", err=True)
