"""histpurge Command Line Interface.

Entry point for the histpurge CLI tool.
"""

from pathlib import Path

import typer
from pydantic import ValidationError
from sqlalchemy.engine import make_url

from histpurge import __version__
from histpurge.core.config import HistPurgeSettings, apply_overrides, load_settings

app = typer.Typer(
    name="histpurge",
    help="histpurge: Safe batch purge of replicated database history.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"histpurge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """histpurge: Safe batch purge of replicated database history."""
    pass


def _report_validation_error(e: ValidationError) -> None:
    typer.echo("Configuration errors:", err=True)
    for error in e.errors():
        loc = ".".join(str(x) for x in error["loc"])
        typer.echo(f"  - {loc}: {error['msg']}", err=True)


def _load(settings: str | None, overrides: dict[str, object]) -> HistPurgeSettings:
    """Load settings file (if any) and apply CLI overrides, exiting on error."""
    try:
        base = load_settings(Path(settings)) if settings else None
        return apply_overrides(base, overrides)  # type: ignore[arg-type]
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        _report_validation_error(e)
        raise typer.Exit(1) from None


@app.command()
def run(
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
    retention_days: int | None = typer.Option(
        None,
        "--retention-days",
        "-r",
        help="Purge rows processed more than this many days ago.",
    ),
    node: str | None = typer.Option(
        None,
        "--node",
        "-n",
        help="Cluster node to purge (defaults to this host).",
    ),
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        "-d",
        help="SQLAlchemy URL of the history database.",
    ),
    schema: str | None = typer.Option(
        None,
        "--schema",
        help="Schema holding the history tables.",
    ),
    batch_size: int | None = typer.Option(
        None,
        "--batch-size",
        "-b",
        help="Maximum rows removed per DELETE.",
    ),
    isolate: bool | None = typer.Option(
        None,
        "--isolate/--no-isolate",
        help="Set policy MANUAL and replicator OFFLINE during the purge, then restore.",
    ),
    estimate_only: bool = typer.Option(
        False,
        "--estimate-only",
        "-e",
        help="Count eligible rows and exit without deleting.",
    ),
    log_file: Path | None = typer.Option(
        None,
        "--log-file",
        help="Append-only audit log file.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show detailed output.",
    ),
) -> None:
    """Purge expired replication history in bounded batches.

    Exits 0 when the purge completes or finds nothing to purge,
    non-zero on any fatal error or when interrupted by a signal.
    """
    config = _load(
        settings,
        {
            "node": node,
            "database": {"url": database_url, "schema_name": schema},
            "purge": {
                "retention_days": retention_days,
                "batch_size": batch_size,
                "isolate": isolate,
                "estimate_only": True if estimate_only else None,
            },
            "logging": {"log_file": log_file, "level": "DEBUG" if verbose else None},
        },
    )
    exit_code = _execute_session(config)
    raise typer.Exit(exit_code)


def _execute_session(config: HistPurgeSettings) -> int:
    """Run one purge session from configuration.

    Args:
        config: Validated HistPurgeSettings instance.

    Returns:
        Process exit status.
    """
    from sqlalchemy.exc import ArgumentError

    from histpurge.contracts import EXIT_FAILURE
    from histpurge.core.control import CctrlClient
    from histpurge.core.database import HistoryDB
    from histpurge.core.logging import configure_logging, get_logger
    from histpurge.engine import IsolationController, PurgeSession

    configure_logging(
        json_output=config.logging.json_output,
        level=config.logging.level,
        log_file=config.logging.log_file,
    )

    isolation: IsolationController | None = None
    if config.purge.isolate:
        control = CctrlClient(config.control.command, timeout=config.control.timeout_seconds)
        isolation = IsolationController(control, config.node)

    try:
        db = HistoryDB.from_settings(config.database)
    except ArgumentError as e:
        # Parseable URL naming a dialect or driver that is not installed
        logger = get_logger(__name__)
        logger.error("Cannot open history database", error=str(e), node=config.node)
        typer.echo(f"Error: Cannot open history database: {e}", err=True)
        return EXIT_FAILURE

    with db:
        session = PurgeSession(
            db,
            config.purge,
            node=config.node,
            isolation=isolation,
        )
        result = session.run()

    return result.exit_code


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate configuration without running."""
    config = _load(settings, {})

    typer.echo(f"Configuration valid: {Path(settings).name}")
    typer.echo(f"  Node: {config.node}")
    typer.echo(f"  Database: {make_url(config.database.url).render_as_string(hide_password=True)}")
    typer.echo(f"  Retention: {config.purge.retention_days} days")
    typer.echo(f"  Batch size: {config.purge.batch_size}")
    typer.echo(f"  Isolate: {config.purge.isolate}")


if __name__ == "__main__":
    app()
