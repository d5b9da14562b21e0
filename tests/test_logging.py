"""Tests for logging setup"""
import json
import logging

import pytest
import structlog

from apt_exporter.core.logging import configure_logging, get_logger, sanitise_context


@pytest.fixture
def reset_logging():
    yield
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)
    structlog.reset_defaults()


def test_sanitise_context_drops_none_values():
    event = {"event": "refresh_failed", "kind": "installed", "error": None}

    assert sanitise_context(None, "error", event) == {"event": "refresh_failed", "kind": "installed"}


def test_logfmt_output(capsys, reset_logging):
    configure_logging(fmt="logfmt", force=True)

    get_logger("apt_exporter.test").info("refresh_complete", kind="installed", count=3)

    err = capsys.readouterr().err
    assert err.startswith("timestamp=")
    assert "level=info" in err
    assert "event=refresh_complete" in err
    assert "kind=installed" in err
    assert "count=3" in err


def test_json_output(capsys, reset_logging):
    configure_logging(fmt="json", force=True)

    get_logger("apt_exporter.test").warning("collect_cache_miss", kind="upgradeable")

    line = json.loads(capsys.readouterr().err.strip())
    assert line["event"] == "collect_cache_miss"
    assert line["kind"] == "upgradeable"
    assert line["level"] == "warning"


def test_level_filters_debug(capsys, reset_logging):
    configure_logging(level="info", force=True)

    get_logger("apt_exporter.test").debug("cache_set", kind="installed")

    assert capsys.readouterr().err == ""
