"""Tests for logging setup."""

import json
import logging

import pytest
import structlog

from approvalflow.core.config import Settings
from approvalflow.core.logging import build_formatter, configure_logging


def _record(message: str = "approved %s", args: tuple = ("apr_1",)) -> logging.LogRecord:
    return logging.LogRecord(
        "approvalflow.test", logging.INFO, __file__, 10, message, args, None
    )


@pytest.fixture
def root_logger():
    """Restore root handlers and level after the test."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


class TestBuildFormatter:
    """Tests for record rendering."""

    def test_json_includes_extras(self):
        record = _record()
        record.resource_id = "apr_1"

        payload = json.loads(build_formatter("json").format(record))

        assert payload["event"] == "approved apr_1"
        assert payload["level"] == "info"
        assert payload["logger"] == "approvalflow.test"
        assert payload["resource_id"] == "apr_1"
        assert "timestamp" in payload
        assert "_record" not in payload

    def test_console_is_plain_text(self):
        output = build_formatter("console").format(_record())

        assert "approved apr_1" in output
        with pytest.raises(json.JSONDecodeError):
            json.loads(output)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_sets_level_and_formatter(self, root_logger):
        configure_logging(Settings(log_level="warning", log_format="json"))

        assert root_logger.level == logging.WARNING
        assert any(
            isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
            for h in root_logger.handlers
        )
