"""Tests for structured logging setup."""

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from cloudretry.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


def _messages(caplog, name="tests.logging"):
    return [record.getMessage() for record in caplog.records if record.name == name]


class TestConfigureLogging:
    def test_json_output_is_elasticsearch_compatible(self, caplog):
        with caplog.at_level(logging.DEBUG):
            configure_logging(level="INFO", json_format=True, service="billing")
            get_logger("tests.logging").info("retry_scheduled", attempt=1, delay=0.5)

        record = json.loads(_messages(caplog)[-1])
        assert record["event"] == "retry_scheduled"
        assert record["attempt"] == 1
        assert record["logger"] == "tests.logging"
        assert record["service.name"] == "billing"
        assert record["log.level"] == "info"
        assert "@timestamp" in record

    def test_level_filters_lower_events(self, caplog):
        with caplog.at_level(logging.DEBUG):
            configure_logging(level="WARNING", json_format=True)
            logger = get_logger("tests.logging")
            logger.info("hidden")
            logger.warning("shown")

        messages = _messages(caplog)
        assert len(messages) == 1
        assert "shown" in messages[0]

    def test_console_renderer(self, caplog):
        with caplog.at_level(logging.DEBUG):
            configure_logging(level="INFO", json_format=False, add_timestamp=False)
            get_logger("tests.logging").info("attempt_started", attempt=2)

        assert "attempt_started" in _messages(caplog)[-1]


class TestContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_bind_and_unbind(self):
        bind_context(database="orders")
        assert structlog.contextvars.get_contextvars() == {"database": "orders"}
        unbind_context("database")
        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_sync(self):
        with LogContext(operation="insert_rows"):
            assert structlog.contextvars.get_contextvars()["operation"] == "insert_rows"
        assert "operation" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_log_context_async(self):
        async with LogContext(request_id="abc"):
            assert structlog.contextvars.get_contextvars() == {"request_id": "abc"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_captured_events_carry_fields(self):
        with capture_logs() as logs:
            get_logger("tests.logging").warning("retry_cancelled", attempts=2)
        assert logs == [{"event": "retry_cancelled", "attempts": 2, "log_level": "warning"}]
