# File: src/codebench/stages/ledger_commit.py
from __future__ import annotations

from .base import BaseStage
from ..data.context import SessionContext
from ..data.pattern_store import PatternStore
from ..data.workbench import Workbench, WorkbenchState
from ..errors import CommitNotConfirmed, LedgerUnavailable, StateMisuse
from ..events import EventSink, EventType, Severity
from ..ledger.client import LedgerClient
from ..ledger.retry import RetryPolicy

DEFAULT_COMMIT_DESCRIPTION = "Final Suggestion"


class LedgerCommitStage(BaseStage):
    """Hands the final suggestion to the ledger and seals the workbench.

    The commit is retried per RetryPolicy on LedgerUnavailable. When retries are
    exhausted the stage raises CommitNotConfirmed carrying the suggestion, so the
    caller can show it as "commit not confirmed" instead of a silent success.

    Outputs:
    - receipt: LedgerReceipt
    - attempts: int
    """

    name = "commit"
    version = "0.1.0"
    tags = ("ledger",)

    def __init__(
        self,
        *,
        ledger: LedgerClient,
        retry: RetryPolicy | None = None,
        description: str = DEFAULT_COMMIT_DESCRIPTION,
        events: EventSink | None = None,
    ) -> None:
        self.ledger = ledger
        self.retry = retry or RetryPolicy()
        self.description = description
        self.events = events

    def run(self, *, workbench: Workbench, store: PatternStore, ctx: SessionContext) -> dict[str, object]:
        content = workbench.suggested_code
        if not content:
            raise StateMisuse("No suggestion to commit", data={"state": workbench.state.value})
        # Nothing reaches the ledger unless the workbench can be sealed afterwards.
        workbench.require_advance(WorkbenchState.COMMITTED)

        attempts = 0

        def _before(attempt: int) -> None:
            nonlocal attempts
            ctx.check()
            attempts = attempt + 1

        def _failed(attempt: int, err: LedgerUnavailable) -> None:
            if self.events is not None:
                self.events.emit(
                    EventType.ledger_commit_attempt_failed,
                    {"session_id": ctx.session_id, "attempt_no": attempt + 1, "error_message": str(err)},
                    severity=Severity.warn,
                )

        try:
            receipt = self.retry.call(
                lambda: self.ledger.commit(content, self.description),
                before_attempt=_before,
                on_failure=_failed,
            )
        except LedgerUnavailable as e:
            raise CommitNotConfirmed(
                f"Commit not confirmed after {attempts} attempt(s): {e}",
                data={"suggestion": content, "attempts": attempts, "error": str(e)},
                step=ctx.step,
            ) from e

        workbench.mark_committed()
        if self.events is not None:
            self.events.emit(
                EventType.ledger_committed,
                {"session_id": ctx.session_id, "entry_id": receipt.entry_id, "content_hash": receipt.content_hash},
            )
        return {"receipt": receipt, "attempts": attempts}
