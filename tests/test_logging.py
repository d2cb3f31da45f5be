"""
Tests for the logging module.

Tests verify:
- JSON output carries level, timestamp and logger name
- DEBUG logs are suppressed at INFO level
- Context binding reaches the output
"""

import json

import pytest
import structlog

from disposal.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    ensure_configured,
    get_logger,
)
from disposal.settings import DisposalSettings


@pytest.fixture(autouse=True)
def reset_logging():
    clear_context()
    yield
    clear_context()
    structlog.reset_defaults()


def _json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.strip()]


class TestConfigureLogging:
    def test_json_output(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("disposal.registry").info("handle_registered", handle_id="abc12345")

        records = _json_lines(capsys.readouterr().out)

        assert records[0]["event"] == "handle_registered"
        assert records[0]["handle_id"] == "abc12345"
        assert records[0]["level"] == "info"
        assert records[0]["logger_name"] == "disposal.registry"
        assert "timestamp" in records[0]

    def test_debug_suppressed_at_info(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("test.level")
        logger.debug("hidden")
        logger.info("shown")

        events = [r["event"] for r in _json_lines(capsys.readouterr().out)]

        assert events == ["shown"]

    def test_console_output(self, capsys):
        configure_logging(level="DEBUG", json_format=False)
        get_logger("test.console").debug("consumer_started")

        assert "consumer_started" in capsys.readouterr().out

    def test_ensure_configured_keeps_existing_setup(self):
        structlog.reset_defaults()
        settings = DisposalSettings(log_level="ERROR", log_format="json")

        assert ensure_configured(settings) is True
        assert ensure_configured(settings) is False

    def test_configure_from_settings(self, capsys):
        configure_from_settings(DisposalSettings(log_level="warning", log_format="json"))
        logger = get_logger("test.settings")
        logger.info("hidden")
        logger.warning("callback_retains_target")

        events = [r["event"] for r in _json_lines(capsys.readouterr().out)]

        assert events == ["callback_retains_target"]


class TestContext:
    def test_bound_context_is_included(self, capsys):
        configure_logging(level="INFO", json_format=True)
        bind_context(component="consumer")
        get_logger("test.ctx").info("handle_dequeued")

        records = _json_lines(capsys.readouterr().out)

        assert records[0]["component"] == "consumer"

    def test_clear_context(self, capsys):
        configure_logging(level="INFO", json_format=True)
        bind_context(component="consumer")
        clear_context()
        get_logger("test.ctx").info("handle_dequeued")

        records = _json_lines(capsys.readouterr().out)

        assert "component" not in records[0]
