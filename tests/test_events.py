"""Tests for the event taxonomy and sinks."""

import logging

import pytest

from codebench.events import EventType, LoggingEventSink, MemoryEventSink, Severity, is_known_event_type
from codebench.validators import ValidationError, validate_event_envelope


def test_memory_sink_records_events():
    sink = MemoryEventSink()
    event = sink.emit(EventType.session_started, {"session_id": "s", "request_chars": 3})
    assert sink.events == [event]
    assert event.severity == Severity.info
    assert event.to_dict()["event_type"] == "session.started"


def test_missing_payload_keys_rejected():
    with pytest.raises(ValidationError, match="request_chars"):
        MemoryEventSink().emit(EventType.session_started, {"session_id": "s"})


def test_unknown_event_type_rejected():
    assert not is_known_event_type("session.exploded")
    with pytest.raises(ValueError):
        MemoryEventSink().emit("session.exploded", {})
    with pytest.raises(ValidationError):
        validate_event_envelope(event_type="session.exploded", severity="info", payload={})


def test_invalid_severity_rejected():
    with pytest.raises(ValidationError):
        validate_event_envelope(event_type="session.closed", severity="fatal", payload={"session_id": "s"})


def test_forwarding_and_filters():
    downstream = MemoryEventSink()
    sink = MemoryEventSink(forward=downstream)
    sink.emit(EventType.session_closed, {"session_id": "s"})
    sink.emit(
        EventType.step_failed,
        {"session_id": "s", "step": "refine", "error_type": "StageFailure", "error_message": "x"},
        severity=Severity.error,
    )
    assert downstream.types() == ["session.closed", "step.failed"]
    assert [e.severity for e in sink.of_type(EventType.step_failed)] == [Severity.error]
    sink.clear()
    assert sink.events == []


def test_logging_sink_uses_severity(caplog):
    caplog.set_level(logging.DEBUG, logger="codebench.events")
    LoggingEventSink().emit(
        EventType.ledger_commit_attempt_failed,
        {"session_id": "s", "attempt_no": 1, "error_message": "busy"},
        severity=Severity.warn,
    )
    records = [r for r in caplog.records if r.name == "codebench.events"]
    assert records[-1].levelno == logging.WARNING
    assert "ledger.commit_attempt_failed" in records[-1].getMessage()


def test_bulky_payload_values_rejected():
    with pytest.raises(ValidationError) as exc:
        MemoryEventSink().emit(EventType.session_closed, {"session_id": "s", "suggestion": ["big", "text"]})
    assert exc.value.problems == ["'session.closed' payload values must be scalars: ['suggestion']"]
