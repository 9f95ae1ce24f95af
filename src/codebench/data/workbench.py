# src/codebench/data/workbench.py
from __future__ import annotations

from enum import Enum

from ..errors import InvalidInput, StateMisuse


class WorkbenchState(str, Enum):
    """Represents the lifecycle state of one editing session.

    Transitions only move forward:
    - CREATED: The workbench holds the request; nothing was generated yet.
    - SUGGESTION_GENERATED: A first suggestion was written (regeneration keeps this state).
    - REFINED: The suggestion was refined (refining again keeps this state).
    - COMMITTED: The final suggestion was recorded by the ledger; it can no longer change.
    - CLOSED: All fields were released. Terminal.
    """

    CREATED = "CREATED"
    SUGGESTION_GENERATED = "SUGGESTION_GENERATED"
    REFINED = "REFINED"
    COMMITTED = "COMMITTED"
    CLOSED = "CLOSED"


_ALLOWED: dict[WorkbenchState, frozenset[WorkbenchState]] = {
    WorkbenchState.CREATED: frozenset({WorkbenchState.SUGGESTION_GENERATED}),
    WorkbenchState.SUGGESTION_GENERATED: frozenset({WorkbenchState.SUGGESTION_GENERATED, WorkbenchState.REFINED}),
    WorkbenchState.REFINED: frozenset({WorkbenchState.REFINED, WorkbenchState.COMMITTED}),
    WorkbenchState.COMMITTED: frozenset(),
    WorkbenchState.CLOSED: frozenset(),
}


class Workbench:
    """Holds the mutable state of a single session.

    Fields:
    - request: the original request text, set once.
    - current_code: accepted changes, grown by plain concatenation.
    - suggested_code: the latest suggestion, replaced wholesale on every update.

    Reading or mutating any field after `close()` raises StateMisuse. The
    workbench can be used as a context manager so it is closed on scope exit.
    """

    __slots__ = ("_request", "_current_code", "_suggested_code", "_state")

    def __init__(self, request: str) -> None:
        if not isinstance(request, str) or not request.strip():
            raise InvalidInput("request must be a non-empty string", data={"field": "request"})
        self._request: str | None = request
        self._current_code: str | None = None
        self._suggested_code: str | None = None
        self._state = WorkbenchState.CREATED

    @classmethod
    def init(cls, request: str) -> "Workbench":
        return cls(request)

    # --------------------
    # Fields
    # --------------------
    @property
    def state(self) -> WorkbenchState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == WorkbenchState.CLOSED

    @property
    def request(self) -> str:
        self._ensure_open("request")
        return self._request or ""

    @property
    def current_code(self) -> str:
        self._ensure_open("current_code")
        return self._current_code or ""

    @property
    def suggested_code(self) -> str:
        self._ensure_open("suggested_code")
        return self._suggested_code or ""

    # --------------------
    # Mutations
    # --------------------
    def update_suggestion(self, text: str) -> None:
        """Replaces the suggestion; the previous value is discarded."""
        self._ensure_open("update_suggestion")
        if not isinstance(text, str):
            raise InvalidInput("suggestion must be a string", data={"type": str(type(text))})
        if self._state == WorkbenchState.COMMITTED:
            raise StateMisuse("Suggestion is committed and cannot change", data={"state": self._state.value})

        self._suggested_code = text
        if self._state == WorkbenchState.CREATED:
            self._advance(WorkbenchState.SUGGESTION_GENERATED)

    def commit_change(self, text: str) -> None:
        """Sets current_code on the first call, appends on later calls (no delimiter)."""
        self._ensure_open("commit_change")
        if not isinstance(text, str):
            raise InvalidInput("change must be a string", data={"type": str(type(text))})

        if self._current_code is None:
            self._current_code = text
        else:
            self._current_code = self._current_code + text

    def mark_refined(self) -> None:
        self._ensure_open("mark_refined")
        self._advance(WorkbenchState.REFINED)

    def mark_committed(self) -> None:
        self._ensure_open("mark_committed")
        self._advance(WorkbenchState.COMMITTED)

    def close(self) -> None:
        """Releases request, current_code and suggested_code. Irreversible."""
        self._ensure_open("close")
        self._request = None
        self._current_code = None
        self._suggested_code = None
        self._state = WorkbenchState.CLOSED

    def to_dict(self) -> dict[str, object]:
        """Returns a serializable view of the open workbench."""
        self._ensure_open("to_dict")
        return {
            "state": self._state.value,
            "request": self._request,
            "current_code": self._current_code or "",
            "suggested_code": self._suggested_code or "",
        }

    def __enter__(self) -> "Workbench":
        return self

    def __exit__(self, *exc: object) -> None:
        if not self.closed:
            self.close()

    def can_advance(self, target: WorkbenchState) -> bool:
        return target in _ALLOWED[self._state]

    def require_advance(self, target: WorkbenchState) -> None:
        """Raises StateMisuse unless the workbench may move to `target` now."""
        self._ensure_open("require_advance")
        if not self.can_advance(target):
            raise StateMisuse(
                f"Invalid workbench transition {self._state.value} -> {target.value}",
                data={"from": self._state.value, "to": target.value},
            )

    def _advance(self, target: WorkbenchState) -> None:
        if not self.can_advance(target):
            raise StateMisuse(
                f"Invalid workbench transition {self._state.value} -> {target.value}",
                data={"from": self._state.value, "to": target.value},
            )
        self._state = target

    def _ensure_open(self, op: str) -> None:
        if self._state == WorkbenchState.CLOSED:
            raise StateMisuse(f"Workbench is closed ({op})", data={"operation": op})
