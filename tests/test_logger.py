"""
Tests for structured logging (logger.py).
"""

import json
import logging

from citizenship_wizard.logger import create_test_logger


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def _capture(log):
    handler = _Capture()
    log.logger.addHandler(handler)
    return handler


class TestStructuredLogger:

    def test_name(self):
        assert create_test_logger("basic").name == "citizenship_wizard.basic"

    def test_session(self):
        log = create_test_logger("session")
        log.set_session("sess_1")
        assert log.session_id == "sess_1"
        log.clear_session()
        assert log.session_id is None

    def test_context(self):
        log = create_test_logger("context")
        log.set_context(country_code="jm")
        assert log._extra_context == {"country_code": "jm"}
        log.clear_context()
        assert log._extra_context == {}

    def test_format_structured(self):
        log = create_test_logger("format")
        log.set_session("sess_2")
        entry = log._format_structured("INFO", "Answer recorded", question_id="born_in_jamaica")
        log.clear_session()

        assert entry["level"] == "INFO"
        assert entry["message"] == "Answer recorded"
        assert entry["session_id"] == "sess_2"
        assert entry["question_id"] == "born_in_jamaica"
        assert entry["timestamp"].endswith("Z")

    def test_readable_output(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        log = create_test_logger("readable")
        handler = _capture(log)

        log.info("Loaded", countries=3)
        assert handler.messages == ["Loaded [countries=3]"]

    def test_json_event(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log = create_test_logger("json_event")
        handler = _capture(log)

        log.event("wizard_completed", status="eligible")
        entry = json.loads(handler.messages[0])
        assert entry["level"] == "EVENT"
        assert entry["message"] == "wizard_completed"
        assert entry["status"] == "eligible"

    def test_json_metric(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log = create_test_logger("json_metric")
        handler = _capture(log)

        log.metric("questions_answered", 5, country_code="jm")
        entry = json.loads(handler.messages[0])
        assert entry["level"] == "METRIC"
        assert entry["value"] == 5
