"""
Unit tests for logging config and the structured audit log.
"""

import json
import logging

from reasoning_graph.utils.logging_config import ColoredFormatter, LogLevel, get_logger, setup_logging
from reasoning_graph.utils.structured_log import (
    bind_session,
    configure_audit_logging,
    is_audit_logging_configured,
    load_events_from_jsonl,
    log_allocation,
    log_gap_sweep,
    log_release,
    normalize_jsonl_event,
    reset_audit_logging,
)


class TestSetupLogging:
    """Test setup_logging function."""

    def test_setup_logging_normal(self):
        logger = setup_logging(level=LogLevel.NORMAL)

        assert logger.name == "reasoning_graph"
        assert logger.level == logging.INFO

    def test_setup_logging_minimal(self):
        logger = setup_logging(level="minimal")
        assert logger.level == logging.WARNING

    def test_setup_logging_debug(self):
        logger = setup_logging(level=LogLevel.NORMAL, debug=True)
        assert logger.level == logging.DEBUG

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "test.log"

        logger = setup_logging(level=LogLevel.NORMAL, log_to_file=True, log_file=str(log_file))
        logger.info("hello file")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello file" in log_file.read_text()

    def test_handlers_not_duplicated(self):
        setup_logging(level=LogLevel.NORMAL)
        logger = setup_logging(level=LogLevel.NORMAL)
        assert len(logger.handlers) == 1


class TestGetLogger:
    """Test get_logger nesting."""

    def test_nested_under_package(self):
        assert get_logger("cli").name == "reasoning_graph.cli"
        assert get_logger("reasoning_graph.gaps").name == "reasoning_graph.gaps"


class TestColoredFormatter:
    """Test ColoredFormatter."""

    def test_record_levelname_restored(self):
        formatter = ColoredFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

        output = formatter.format(record)

        assert "careful" in output
        assert "WARNING" in output
        assert record.levelname == "WARNING"


class TestStructuredLog:
    """Test the JSONL audit trail."""

    def test_noop_until_configured(self, tmp_path):
        assert not is_audit_logging_configured()
        log_allocation("op", "centrality_calculation", True)
        assert list(tmp_path.iterdir()) == []

    def test_events_written_and_replayed(self, tmp_path):
        path = configure_audit_logging(str(tmp_path))
        bind_session("session-1")

        log_allocation("op-1", "centrality_calculation", True, resources={"cpu": 1.0}, estimated_cost=0.1)
        log_release("op-1", actual_cost=0.2, duration=15.0, efficiency=0.5)
        log_gap_sweep({"gaps": 1}, {"gaps": 0})
        reset_audit_logging()

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [line["event"] for line in lines] == ["allocation", "release", "gap_sweep"]
        assert lines[0]["session_id"] == "session-1"

        events = load_events_from_jsonl(str(path))
        assert events[0]["type"] == "allocation"
        assert events[0]["resources"] == {"cpu": 1.0}
        assert events[1]["efficiency"] == 0.5

    def test_second_configure_keeps_first_destination(self, tmp_path):
        first = configure_audit_logging(str(tmp_path / "one"))
        second = configure_audit_logging(str(tmp_path / "two"))
        assert first == second

    def test_normalize_drops_unknown_events(self):
        assert normalize_jsonl_event({"event": "something_else"}) is None
        event = normalize_jsonl_event({"event": "release", "timestamp": "t", "level": "info", "operation_id": "x"})
        assert event == {"operation_id": "x", "type": "release", "ts": "t"}

    def test_replay_skips_garbage_and_missing_files(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        path.write_text('not json\n{"event": "release", "operation_id": "x"}\n\n')

        assert [e["operation_id"] for e in load_events_from_jsonl(str(path))] == ["x"]
        assert load_events_from_jsonl(str(tmp_path / "missing.jsonl")) == []
