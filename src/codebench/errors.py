# src/codebench/errors.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class CodebenchError(RuntimeError):
    """Represents an expected, structured failure raised by codebench components.

    The error is intended for cases such as invalid inputs, misuse of a released
    resource, or an unavailable ledger: failures that should be reported
    consistently instead of crashing the process.

    The optional data payload is intended to carry machine-readable context
    (e.g., the offending field, the failed step, the underlying error type).
    """

    message: str
    data: dict[str, object] | None = None

    def __str__(self) -> str:
        return self.message


class AllocationFailure(CodebenchError):
    """Raised when a store or workbench cannot obtain memory for its contents."""


class InvalidInput(CodebenchError):
    """Raised when a snippet, language, request or setting is missing or malformed."""


class StateMisuse(CodebenchError):
    """Raised when an operation is attempted on a closed or released resource,
    or when a workbench transition is not allowed from its current state."""


class LedgerUnavailable(CodebenchError):
    """Raised when a ledger commit or verification cannot complete."""


class StageFailure(CodebenchError):
    """Raised when a pipeline stage crashes or returns malformed output."""


@dataclass(slots=True, eq=False)
class SessionAborted(CodebenchError):
    """Raised by the orchestrator when a step fails and the session is aborted.

    `step` names the pipeline step that failed ("init", "generate", "refine",
    "commit", ...). Remaining steps are not executed.
    """

    step: str = ""


class SessionCancelled(SessionAborted):
    """Raised when the session's cancel token was triggered."""


class SessionTimedOut(SessionAborted):
    """Raised when the session deadline passed before the pipeline finished."""


class CommitNotConfirmed(SessionAborted):
    """Raised when the ledger commit failed after all retries.

    The final suggestion is kept in `data["suggestion"]` so the caller can
    surface it to the user together with the unconfirmed status.
    """
