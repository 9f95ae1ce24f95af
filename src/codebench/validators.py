from __future__ import annotations

from typing import Any, Mapping

_SCALARS = (str, int, float, bool, type(None))


class ValidationError(ValueError):
    """Raised when an event envelope breaks the taxonomy; `problems` lists every violation."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = list(problems)


def event_envelope_problems(*, event_type: str, severity: str, payload: Mapping[str, Any]) -> list[str]:
    """
    Collects the problems of one event envelope:
    - event_type and severity must be taxonomy values
    - payload must carry the keys its EventSpec requires
    - payload values must be scalars (ids, step names, hashes, counters)
    """
    from codebench.events import EVENT_SPECS, EventType, Severity

    problems: list[str] = []

    if severity not in {s.value for s in Severity}:
        problems.append(f"severity '{severity}' is not one of {[s.value for s in Severity]}")

    known = {e.value: e for e in EventType}
    et = known.get(event_type)
    if et is None:
        problems.append(f"event_type '{event_type}' is not in the taxonomy")
        return problems

    spec = EVENT_SPECS.get(et)
    if spec is None:
        problems.append(f"event_type '{event_type}' has no entry in EVENT_SPECS")
        return problems

    missing = [k for k in spec.required_keys if k not in payload]
    if missing:
        problems.append(f"'{event_type}' payload is missing {missing}")
    if not spec.allow_extra_keys:
        extra = sorted(set(payload) - set(spec.required_keys) - set(spec.optional_keys))
        if extra:
            problems.append(f"'{event_type}' payload has unexpected keys {extra}")

    bulky = sorted(k for k, v in payload.items() if not isinstance(v, _SCALARS))
    if bulky:
        problems.append(f"'{event_type}' payload values must be scalars: {bulky}")
    return problems


def validate_event_envelope(*, event_type: str, severity: str, payload: Mapping[str, Any]) -> None:
    problems = event_envelope_problems(event_type=event_type, severity=severity, payload=payload)
    if problems:
        raise ValidationError(problems)
