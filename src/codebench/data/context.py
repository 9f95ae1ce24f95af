# src/codebench/data/context.py
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field

from ..errors import SessionCancelled, SessionTimedOut

JsonValue = None | bool | int | float | str | list["JsonValue"] | dict[str, "JsonValue"]


class CancelToken:
    """Thread-safe cancellation flag shared between a caller and a running session."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True, slots=True)
class SessionContext:
    """
    Context object passed to every pipeline stage.

    What it does:
    - Carries session identity (`session_id`) so stage outputs, events and errors are tagged to one session.
    - Carries pipeline position (`step`) so failures are attributed to the stage that produced them.
    - Carries the cancellation token and the monotonic deadline of the session.

    Design rule:
    - The context is read-only. Step transitions create a new context via `with_step(...)`.
    """

    session_id: str
    step: str
    cancel_token: CancelToken = field(default_factory=CancelToken)
    deadline: float | None = None

    # Optional
    meta: dict[str, JsonValue] | None = None

    @staticmethod
    def start(
        *,
        session_id: str | None = None,
        cancel_token: CancelToken | None = None,
        timeout_s: float | None = None,
        meta: dict[str, JsonValue] | None = None,
    ) -> "SessionContext":
        deadline = time.monotonic() + float(timeout_s) if timeout_s is not None else None
        return SessionContext(
            session_id=session_id or uuid.uuid4().hex,
            step="init",
            cancel_token=cancel_token or CancelToken(),
            deadline=deadline,
            meta=meta,
        )

    def with_step(self, step: str) -> "SessionContext":
        """Returns a new context for the same session with an updated step label."""
        return SessionContext(
            session_id=self.session_id,
            step=step,
            cancel_token=self.cancel_token,
            deadline=self.deadline,
            meta=self.meta,
        )

    def remaining_s(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def check(self) -> None:
        """Raises when the session was cancelled or its deadline has passed."""
        if self.cancel_token.cancelled:
            raise SessionCancelled(
                f"Session cancelled before step '{self.step}': {self.cancel_token.reason}",
                data={"session_id": self.session_id},
                step=self.step,
            )
        remaining = self.remaining_s()
        if remaining is not None and remaining <= 0:
            raise SessionTimedOut(
                f"Session deadline passed before step '{self.step}'",
                data={"session_id": self.session_id, "overrun_s": -remaining},
                step=self.step,
            )
