"""Centralised logging setup for the APT exporter."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import FilteringBoundLogger

LOG_FORMATS = ("logfmt", "json")
LOG_LEVELS = ("debug", "info", "warning", "error")

_CONFIGURED = False


def sanitise_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Remove None values so renderers never see them.

    Args:
        logger: The logger instance.
        method_name: The name of the method called on the logger.
        event_dict: The event dictionary to sanitise.

    Returns:
        The sanitised event dictionary.
    """
    return {k: v for k, v in event_dict.items() if v is not None}


def configure_logging(
    level: str = "info",
    fmt: str = "logfmt",
    force: bool = False,
) -> None:
    """Configure logging for the exporter.

    Logs always go to stderr.

    Args:
        level: The logging level as a string (e.g., "debug", "info").
        fmt: "logfmt" for key=value lines, "json" for JSON lines.
        force: Reconfigure even if logging was already configured.
    """
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    numeric_level = getattr(logging, level.upper())

    shared_processors = [
        sanitise_context,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.processors.LogfmtRenderer(key_order=["timestamp", "level", "logger", "event"])

    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logging.root.addHandler(console_handler)

    structlog.configure(
        processors=shared_processors + [structlog.processors.format_exc_info, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.root.setLevel(numeric_level)

    _CONFIGURED = True


def get_logger(name: str = "apt_exporter") -> FilteringBoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional name for the logger, typically the module name.

    Returns:
        A structlog FilteringBoundLogger instance.

    Usage:
        log = get_logger(__name__)
        log.info("refresh_complete", kind="installed", count=1234, duration_ms=812)

    Standard context keys:
        - kind (str): "installed" or "upgradeable"
        - path (str): Watched filesystem path
        - command (str): External command line
        - duration_ms (int): Operation duration in milliseconds
        - error (str): Error message if applicable
    """
    return structlog.get_logger(name)
