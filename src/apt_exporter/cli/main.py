"""CLI entry point for the APT exporter."""

from __future__ import annotations

import asyncio
import platform
import signal
import sys
from importlib.metadata import PackageNotFoundError, version as dist_version
from typing import Optional

import typer
from prometheus_client import CollectorRegistry
from rich.console import Console

from apt_exporter.backends.apt import AptBackend
from apt_exporter.core.cache import SnapshotCache
from apt_exporter.core.config import (
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TELEMETRY_PATH,
    ExporterConfig,
)
from apt_exporter.core.errors import (
    ExporterError,
    exit_code_for,
    format_error_message,
)
from apt_exporter.core.logging import LOG_FORMATS, LOG_LEVELS, configure_logging, get_logger
from apt_exporter.core.refresh import Refresher
from apt_exporter.core.watcher import PollingWatcher
from apt_exporter.metrics.collector import AptCollector
from apt_exporter.metrics.server import MetricsServer, make_app

log = get_logger(__name__)
console = Console(stderr=True)

APP_NAME = "apt-exporter"

app = typer.Typer(help="Prometheus exporter for APT package state.", add_completion=False)


def get_version() -> str:
    try:
        return f"v{dist_version(APP_NAME)}"
    except PackageNotFoundError:
        return "v0.0.0"


def version_string() -> str:
    return (
        f"{APP_NAME} {get_version()} running on Python {platform.python_version()} "
        f"{platform.system().lower()}/{platform.machine()}"
    )


def handle_error(error: Exception) -> int:
    """Handle errors and return appropriate exit codes.

    Args:
        error: The exception to handle.

    Returns:
        An integer exit code.
    """
    if isinstance(error, ExporterError):
        log.error(
            "startup_failed",
            error_type=type(error).__name__,
            message=error.message,
            context=error.context,
        )
        console.print(f"\n{format_error_message(error)}\n", style="bold red")
    else:
        log.error("unexpected_error", error=str(error), exc_info=True)
        console.print(f"\n⚠️ Unexpected error occurred: {error}\n", style="bold red")

    return exit_code_for(error)


async def serve(config: ExporterConfig) -> None:
    """Run the exporter until SIGINT or SIGTERM.

    Args:
        config: Runtime configuration.
    """
    cache = SnapshotCache()
    watcher = PollingWatcher(interval=config.poll_interval)
    backend = AptBackend(config.paths.apt_binary, timeout=config.command_timeout)
    refresher = Refresher(backend, cache, watcher, config.paths)

    registry = CollectorRegistry()
    registry.register(AptCollector(cache, config.paths.reboot_marker))

    host, port = config.bind
    server = MetricsServer(make_app(registry, config.telemetry_path), host, port)

    loop = asyncio.get_running_loop()
    startup = asyncio.ensure_future(refresher.start())

    def stop() -> None:
        startup.cancel()
        watcher.close()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop)

    try:
        try:
            await startup
        except asyncio.CancelledError:
            if asyncio.current_task().cancelling():
                raise
            log.info("startup_interrupted")
            return

        server.start()
        await refresher.run()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        watcher.close()
        server.stop()


def _validate_choice(choices: tuple[str, ...]):
    def callback(value: str) -> str:
        if value.lower() not in choices:
            raise typer.BadParameter(f"must be one of: {', '.join(choices)}")
        return value.lower()

    return callback


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(version_string())
        raise typer.Exit()


@app.command()
def main(
    listen_address: str = typer.Option(
        DEFAULT_LISTEN_ADDRESS,
        "--web.listen-address",
        envvar="APT_EXPORTER_WEB_LISTEN_ADDRESS",
        help="Address on which to expose metrics and web interface.",
    ),
    telemetry_path: str = typer.Option(
        DEFAULT_TELEMETRY_PATH,
        "--web.telemetry-path",
        envvar="APT_EXPORTER_WEB_TELEMETRY_PATH",
        help="Path under which to expose metrics.",
    ),
    log_level: str = typer.Option(
        "info",
        "--log.level",
        envvar="APT_EXPORTER_LOG_LEVEL",
        callback=_validate_choice(LOG_LEVELS),
        help="Only log messages with the given severity or above.",
    ),
    log_format: str = typer.Option(
        "logfmt",
        "--log.format",
        envvar="APT_EXPORTER_LOG_FORMAT",
        callback=_validate_choice(LOG_FORMATS),
        help="Output format of log messages: logfmt or json.",
    ),
    poll_interval: float = typer.Option(
        DEFAULT_POLL_INTERVAL,
        "--watch.poll-interval",
        envvar="APT_EXPORTER_WATCH_POLL_INTERVAL",
        help="Seconds between checks of APT's log and stamp files.",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show application version and exit.",
    ),
) -> None:
    """Expose installed and upgradeable APT packages as Prometheus metrics."""
    configure_logging(level=log_level, fmt=log_format)
    log.info("starting", name=APP_NAME, version=get_version())

    try:
        config = ExporterConfig(
            listen_address=listen_address,
            telemetry_path=telemetry_path,
            poll_interval=poll_interval,
        )
        asyncio.run(serve(config))
    except Exception as e:
        sys.exit(handle_error(e))

    log.info("stopped", name=APP_NAME)


if __name__ == "__main__":
    app()
