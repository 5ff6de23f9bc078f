"""Tests for the shared-output logging setup."""

import json

import structlog
from structlog.contextvars import clear_contextvars

from warden_runtime.utils.logging import (
    AppendFileLogger,
    bind_worker_context,
    setup_logging,
    truncate_output,
)


class TestAppendFileLogger:
    """Test scoped open-append-close writes."""

    def test_appends_without_holding_file(self, tmp_path):
        path = tmp_path / "out.log"
        first = AppendFileLogger(path)
        second = AppendFileLogger(path)

        first.info("P1 is waiting for a signal")
        # Interleaved writers both land in the file.
        second.info("P2 is waiting for a signal")
        first.error("P1 received signal 1")

        assert path.read_text().splitlines() == [
            "P1 is waiting for a signal",
            "P2 is waiting for a signal",
            "P1 received signal 1",
        ]

    def test_stdout_without_path(self, capsys):
        AppendFileLogger().msg("hello")
        assert capsys.readouterr().out == "hello\n"


class TestSetupLogging:
    """Test structlog configuration."""

    def test_plain_format(self, tmp_path):
        path = tmp_path / "watchdog_output"
        setup_logging(path, "INFO", "plain")
        log = structlog.get_logger()

        log.info("Worker started", worker=1, pid=42)
        log.info("Supervisor terminating")
        log.info("Channel reopened")
        log.debug("hidden")

        assert path.read_text().splitlines() == [
            "P1 is started and it has a pid of 42",
            "Watchdog is terminating gracefully",
            "Channel reopened",
        ]

    def test_plain_format_missing_field_falls_back_to_event(self, tmp_path):
        path = tmp_path / "watchdog_output"
        setup_logging(path, "INFO", "plain")

        structlog.get_logger().info("Worker killed")

        assert path.read_text() == "Worker killed\n"

    def test_lowercase_level(self, tmp_path):
        path = tmp_path / "watchdog_output"
        setup_logging(path, "debug", "plain")

        structlog.get_logger().debug("Worker waiting", worker=2)

        assert path.read_text() == "P2 is waiting for a signal\n"

    def test_json_format_carries_worker_context(self, tmp_path):
        path = tmp_path / "process_output"
        setup_logging(path, "DEBUG", "json")
        bind_worker_context(3)
        try:
            structlog.get_logger().info("Worker waiting")
        finally:
            clear_contextvars()

        record = json.loads(path.read_text())
        assert record["event"] == "Worker waiting"
        assert record["worker"] == 3
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_truncate_output(self, tmp_path):
        path = tmp_path / "process_output"
        path.write_text("residue\n")
        truncate_output(path)
        assert path.read_text() == ""
        truncate_output(None)
