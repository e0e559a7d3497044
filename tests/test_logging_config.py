"""
Tests for structured logging helpers
"""

import json
import logging
import sys
import threading
from unittest.mock import Mock

import pytest

import utils.logging_config as logging_config
from utils.logging_config import ErrorTracker, StreamlitLogHandler, StructuredFormatter, log_execution_time


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestStructuredFormatter:
    """Test JSON log output"""

    def test_extra_fields_are_included(self):
        logger = logging.getLogger("test.structured")
        record = logger.makeRecord(
            logger.name, logging.INFO, __file__, 10, "Conversation event", (), None,
            extra={"conversation_id": "c1", "event_type": "conversation_event"}
        )

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Conversation event"
        assert data["level"] == "INFO"
        assert data["extra"] == {"conversation_id": "c1", "event_type": "conversation_event"}

    def test_exception_is_serialized(self):
        try:
            raise ValueError("bad image")
        except ValueError:
            record = logging.getLogger("test.structured").makeRecord(
                "test.structured", logging.ERROR, __file__, 10, "failed", (), sys.exc_info()
            )

        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad image"


class TestLoggingHelpers:
    """Test timing and error tracking"""

    def setup_method(self):
        self.handler = ListHandler()
        self.logger = logging.getLogger("test.helpers")
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.handler)

    def teardown_method(self):
        self.logger.removeHandler(self.handler)

    def test_execution_time_success(self):
        with log_execution_time(self.logger, "image_generation", model="flux"):
            pass

        completed = self.handler.records[-1]
        assert completed.levelno == logging.INFO
        assert completed.status == "success"
        assert completed.model == "flux"

    def test_execution_time_failure_reraises(self):
        with pytest.raises(RuntimeError):
            with log_execution_time(self.logger, "image_generation"):
                raise RuntimeError("boom")

        failed = self.handler.records[-1]
        assert failed.levelno == logging.WARNING
        assert failed.error_type == "RuntimeError"

    def test_error_tracker_counts(self):
        tracker = ErrorTracker(self.logger)

        tracker.track_error(ValueError("a"), "image_generation")
        tracker.track_error(ValueError("b"), "image_generation")
        tracker.track_error(KeyError("c"), "storage")

        summary = tracker.get_error_summary()
        assert summary["total_errors"] == 3
        assert summary["unique_errors"] == 2
        assert summary["error_breakdown"]["ValueError:image_generation"] == 2

    def test_error_tracker_counts_across_threads(self):
        tracker = ErrorTracker(self.logger)

        def report():
            for _ in range(50):
                tracker.track_error(ValueError("a"), "image_generation")

        threads = [threading.Thread(target=report) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.get_error_summary()["error_breakdown"]["ValueError:image_generation"] == 200


class TestStreamlitLogHandler:
    """Test the in-page error display"""

    def test_records_outside_a_script_run_are_skipped(self, monkeypatch):
        error = Mock()
        monkeypatch.setattr(logging_config.st, "error", error)
        record = logging.getLogger("test.streamlit").makeRecord(
            "test.streamlit", logging.ERROR, __file__, 10, "generation failed", (), None
        )

        StreamlitLogHandler().emit(record)

        error.assert_not_called()
