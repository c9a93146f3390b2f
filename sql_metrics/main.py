"""CLI entrypoint: collect configured SQL metrics and send them to Datadog."""

__all__ = ["app", "run"]

import logging
import signal
from typing import Optional

import typer

from sql_metrics.config import RunSettings, load_metrics
from sql_metrics.datadog_client import DatadogClient
from sql_metrics.db_client import SQLDatabase
from sql_metrics.deadline import Deadline
from sql_metrics.errors import SQLMetricsError
from sql_metrics.logger import Settings, init_logger
from sql_metrics.pipeline import CollectionPipeline, RunReport
from sql_metrics.url_validator import redact_url, validate_connection_string
from sql_metrics.version import version_banner

log = logging.getLogger("sql_metrics.main")
app = typer.Typer(add_completion=False)


def _install_signal_handlers(deadline: Deadline) -> None:
    def _cancel(signum, _frame):
        log.warning("Received signal %s, cancelling run", signal.Signals(signum).name)
        deadline.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _cancel)


def run(
    config: str,
    settings: RunSettings,
    deadline: Deadline,
    dry_run: bool = False,
    db: Optional[SQLDatabase] = None,
    sender: Optional[DatadogClient] = None,
) -> RunReport:
    """Validate the connection, load metrics and run one collection pass.

    Raises:
        ConnectionStringError: If ``settings.database_url`` is invalid.
        ExecutionFailed: If the startup ping fails.
        ValueError: If the configuration cannot be loaded.
    """
    validate_connection_string(settings.database_url)
    log.debug(
        "Run settings",
        extra={
            "data": {
                "config": config,
                "database_url": redact_url(settings.database_url),
                "dry_run": dry_run,
                "timeout": deadline.remaining(),
            }
        },
    )
    if dry_run:
        log.info("Dry run mode enabled - no metrics will be sent to Datadog")

    db = db or SQLDatabase(settings.database_url)
    sender = sender or DatadogClient(api_key=settings.api_key, dry_run=dry_run)
    with db, sender:
        db.ping(deadline)
        metrics = load_metrics(config)
        log.debug(
            "Configuration file loaded",
            extra={"data": {"metrics_count": len(metrics)}},
        )
        return CollectionPipeline(db, sender).run(metrics, deadline)


@app.command()
def main(
    config: str = typer.Option("config.yaml", help="Path to the YAML configuration file"),
    version: bool = typer.Option(False, "--version", help="Print the version information"),
    debug: bool = typer.Option(False, help="Enable debug logging"),
    dry_run: bool = typer.Option(False, help="Don't actually send metrics to Datadog"),
    timeout: float = typer.Option(
        30.0, help="Global timeout in seconds for DB queries and API calls (0 disables)"
    ),
    json_logs: bool = typer.Option(False, help="Emit one JSON object per log line"),
) -> None:
    """Run every configured query and send the results as Datadog gauges."""

    if version:
        typer.echo(version_banner())
        raise typer.Exit()

    init_logger(Settings(debug=debug, json_logs=json_logs))
    deadline = Deadline(timeout if timeout > 0 else None)
    _install_signal_handlers(deadline)

    try:
        settings = RunSettings.from_env(dry_run=dry_run)
        run(config, settings, deadline, dry_run=dry_run)
    except (SQLMetricsError, ValueError) as err:
        log.critical("Execution error: %s", err, extra={"data": {"error": str(err)}})
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
