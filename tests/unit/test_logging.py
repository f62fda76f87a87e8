"""
Unit tests for the structured logging layer: context scoping, formatting and
the queued handler lifecycle.
"""

import asyncio
import json
import logging
import queue
import sys

import pytest

from questline.core.logging import (
    ConsoleFormatter,
    ContextFilter,
    JSONFormatter,
    LogContext,
    LoggingSettings,
    get_log_context,
    setup_logging,
    shutdown_logging,
)
from questline.core.logging.logger import _BoundedQueueHandler


def _record(message="Claim started", level=logging.INFO, **extra):
    record = logging.LogRecord("questline.test", level, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_empty_outside_any_block(self):
        assert get_log_context() == {}

    def test_nested_blocks_inherit_and_override(self):
        with LogContext(owner_id=7, operation="claim_reward", correlation_id="abc"):
            with LogContext(operation="grant_xp"):
                inner = get_log_context()
            outer = get_log_context()

        assert inner == {"owner_id": "7", "operation": "grant_xp", "correlation_id": "abc"}
        assert outer["operation"] == "claim_reward"
        assert get_log_context() == {}

    def test_correlation_id_generated_when_absent(self):
        with LogContext(owner_id="user-1"):
            correlation_id = get_log_context()["correlation_id"]
            with LogContext(operation="nested"):
                assert get_log_context()["correlation_id"] == correlation_id
        assert len(correlation_id) == 8

    async def test_tasks_do_not_share_context(self):
        async def run(owner):
            async with LogContext(owner_id=owner):
                await asyncio.sleep(0)
                return get_log_context()["owner_id"]

        assert await asyncio.gather(run("a"), run("b")) == ["a", "b"]


class TestContextFilter:
    def test_stamps_context_onto_record(self):
        record = _record()
        with LogContext(owner_id="user-1", operation="renew"):
            assert ContextFilter().filter(record) is True
        assert record.owner_id == "user-1"
        assert record.operation == "renew"

    def test_explicit_extra_wins(self):
        record = _record(owner_id="explicit")
        with LogContext(owner_id="ambient"):
            ContextFilter().filter(record)
        assert record.owner_id == "explicit"


class TestFormatters:
    def test_json_entry_carries_context_and_extra(self):
        record = _record(owner_id="user-1", operation="claim_reward", quest_id=12)
        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "questline.test"
        assert entry["message"] == "Claim started"
        assert entry["owner_id"] == "user-1"
        assert entry["operation"] == "claim_reward"
        assert entry["extra"] == {"quest_id": 12}
        assert "exception" not in entry

    def test_json_entry_includes_exception(self):
        try:
            raise ValueError("ledger down")
        except ValueError:
            record = logging.LogRecord(
                "questline.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: ledger down" in entry["exception"]

    def test_console_appends_operation_and_owner(self):
        line = ConsoleFormatter().format(_record(owner_id="user-1", operation="renew"))
        assert line.endswith("Claim started [renew owner=user-1]")

    def test_console_colors_only_when_enabled(self):
        assert "\033[" not in ConsoleFormatter(colors=False).format(_record())
        assert ConsoleFormatter(colors=True).format(_record()).startswith("\033[94m")


class TestQueueLifecycle:
    @pytest.fixture
    def quiet_settings(self, tmp_path):
        return LoggingSettings(level=logging.WARNING, file_output=False, logs_dir=tmp_path)

    @staticmethod
    def _queue_handlers():
        return [h for h in logging.getLogger().handlers if isinstance(h, _BoundedQueueHandler)]

    def test_setup_is_idempotent_and_shutdown_detaches(self, quiet_settings):
        shutdown_logging()
        root_level = logging.getLogger().level
        try:
            setup_logging(quiet_settings)
            setup_logging(quiet_settings)
            assert len(self._queue_handlers()) == 1
        finally:
            assert shutdown_logging() == 0
            logging.getLogger().setLevel(root_level)

        assert self._queue_handlers() == []
        assert shutdown_logging() == 0

    def test_full_queue_drops_and_counts(self):
        handler = _BoundedQueueHandler(queue.Queue(1))
        handler.emit(_record("first"))
        handler.emit(_record("second"))
        assert handler.dropped == 1
