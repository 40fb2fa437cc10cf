"""SQL Publisher main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from sql_publisher.__about__ import __version__
from sql_publisher.cli.commands.once import once_command
from sql_publisher.cli.commands.run import run_command
from sql_publisher.cli.commands.schema import schema_command
from sql_publisher.cli.commands.settings import settings_command
from sql_publisher.core.exceptions import SqlPublisherError
from sql_publisher.core.logging import setup_logging
from sql_publisher.core.monitoring import setup_sentry

app = typer.Typer(
    help="SQL Publisher - poll a SQL query and publish rows as JSON documents",
    no_args_is_help=True,
)

app.command("run")(run_command)
app.command("once")(once_command)
app.command("schema")(schema_command)
app.command("settings")(settings_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sql-publisher {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines on stderr"),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to settings file"),
    ] = None,
    connection_string: Annotated[
        str | None,
        typer.Option(
            "--connection-string", "-c", help="PostgreSQL connection string or URL"
        ),
    ] = None,
    query: Annotated[
        str | None,
        typer.Option("--query", "-q", help="SQL query to publish"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option(
            "--batch-size", "-b", help="Rows per published document (0 = unbounded)"
        ),
    ] = None,
    interval_ms: Annotated[
        int | None,
        typer.Option("--interval-ms", help="Polling interval in milliseconds"),
    ] = None,
    raw_json: Annotated[
        bool | None,
        typer.Option(
            "--raw-json/--no-raw-json",
            help="The query already returns JSON text in its first column",
        ),
    ] = None,
    sink: Annotated[
        str | None,
        typer.Option("--sink", help="Message sink: stdout|file"),
    ] = None,
    output: Annotated[
        str | None,
        typer.Option("--output", "-o", help="Output path for the file sink"),
    ] = None,
    sentry_dsn: Annotated[
        str | None,
        typer.Option(
            "--sentry-dsn",
            envvar="SQL_PUBLISHER_SENTRY_DSN",
            help="Sentry DSN for error reporting",
        ),
    ] = None,
) -> None:
    """SQL Publisher - poll a SQL query and publish rows as JSON documents."""
    setup_logging(verbose, json_logs=json_logs)
    if setup_sentry(sentry_dsn):
        transaction = sentry_sdk.start_transaction(
            op="cli", name=ctx.invoked_subcommand or "sql-publisher"
        )
        transaction.__enter__()

        def cleanup() -> None:
            transaction.__exit__(None, None, None)
            sentry_sdk.flush(timeout=2)

        atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_file"] = config_file
    ctx.obj["connection_string"] = connection_string
    ctx.obj["query"] = query
    ctx.obj["batch_size"] = batch_size
    ctx.obj["interval_ms"] = interval_ms
    ctx.obj["raw_json"] = raw_json
    ctx.obj["sink"] = sink
    ctx.obj["output"] = output


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except SqlPublisherError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
