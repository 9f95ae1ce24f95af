from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

from codebench.validators import validate_event_envelope

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    debug = "debug"
    info = "info"
    warn = "warn"
    error = "error"


class EventType(str, Enum):
    """
    Stable event taxonomy.
    Keep these names durable; prefer adding new events over renaming.
    """

    # Session lifecycle
    session_started = "session.started"
    session_succeeded = "session.succeeded"
    session_failed = "session.failed"
    session_closed = "session.closed"

    # Step lifecycle
    step_started = "step.started"
    step_finished = "step.finished"
    step_failed = "step.failed"

    # Ledger
    ledger_commit_attempt_failed = "ledger.commit_attempt_failed"
    ledger_committed = "ledger.committed"

    # Pattern ingestion
    pattern_added = "pattern.added"
    pattern_analyzed = "pattern.analyzed"
    store_destroyed = "store.destroyed"


@dataclass(frozen=True)
class EventSpec:
    """
    Minimal "shape contract" for payloads.

    - required keys prevent taxonomy drift
    - optional keys allow evolution
    """
    required_keys: Sequence[str]
    optional_keys: Sequence[str] = ()
    allow_extra_keys: bool = True


# Payloads stay small: ids, step names, hashes and counters. Bulk text is not an event concern.
EVENT_SPECS: Mapping[EventType, EventSpec] = {
    # Session
    EventType.session_started: EventSpec(required_keys=("session_id", "request_chars")),
    EventType.session_succeeded: EventSpec(required_keys=("session_id", "content_hash")),
    EventType.session_failed: EventSpec(required_keys=("session_id", "step", "error_type", "error_message")),
    EventType.session_closed: EventSpec(required_keys=("session_id",)),

    # Step
    EventType.step_started: EventSpec(required_keys=("session_id", "step")),
    EventType.step_finished: EventSpec(required_keys=("session_id", "step", "duration_ms")),
    EventType.step_failed: EventSpec(required_keys=("session_id", "step", "error_type", "error_message")),

    # Ledger
    EventType.ledger_commit_attempt_failed: EventSpec(required_keys=("session_id", "attempt_no", "error_message")),
    EventType.ledger_committed: EventSpec(required_keys=("session_id", "entry_id", "content_hash")),

    # Patterns
    EventType.pattern_added: EventSpec(required_keys=("store_id", "index", "language", "capacity")),
    EventType.pattern_analyzed: EventSpec(required_keys=("store_id", "index", "complexity")),
    EventType.store_destroyed: EventSpec(required_keys=("store_id", "released")),
}


def is_known_event_type(value: str) -> bool:
    try:
        EventType(value)
        return True
    except ValueError:
        return False


@dataclass(frozen=True)
class Event:
    event_type: EventType
    severity: Severity
    payload: Mapping[str, Any]
    ts: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "payload": dict(self.payload),
            "ts": self.ts,
        }


class EventSink(Protocol):
    def emit(
        self,
        event_type: EventType,
        payload: Mapping[str, Any],
        *,
        severity: Severity = Severity.info,
    ) -> Event: ...


def _build_event(event_type: EventType, payload: Mapping[str, Any], severity: Severity) -> Event:
    validate_event_envelope(
        event_type=EventType(event_type).value,
        severity=Severity(severity).value,
        payload=payload,
    )
    return Event(event_type=EventType(event_type), severity=Severity(severity), payload=dict(payload))


_LOG_LEVELS = {
    Severity.debug: logging.DEBUG,
    Severity.info: logging.INFO,
    Severity.warn: logging.WARNING,
    Severity.error: logging.ERROR,
}


class LoggingEventSink:
    """Writes validated events through the `codebench.events` logger."""

    def emit(
        self,
        event_type: EventType,
        payload: Mapping[str, Any],
        *,
        severity: Severity = Severity.info,
    ) -> Event:
        event = _build_event(event_type, payload, severity)
        logger.log(_LOG_LEVELS[event.severity], "%s %s", event.event_type.value, dict(event.payload))
        return event


class MemoryEventSink:
    """Keeps validated events in memory for tests, the UI event trail and the CLI output."""

    def __init__(self, *, forward: EventSink | None = None) -> None:
        self.events: list[Event] = []
        self.forward = forward

    def emit(
        self,
        event_type: EventType,
        payload: Mapping[str, Any],
        *,
        severity: Severity = Severity.info,
    ) -> Event:
        event = _build_event(event_type, payload, severity)
        self.events.append(event)
        if self.forward is not None:
            self.forward.emit(event.event_type, event.payload, severity=event.severity)
        return event

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]

    def of_type(self, event_type: EventType) -> list[Event]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()
