# src/codebench/orchestrator.py
from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from .data.context import CancelToken, SessionContext
from .data.pattern_store import PatternStore
from .data.workbench import Workbench, WorkbenchState
from .errors import CodebenchError, SessionAborted
from .events import EventSink, EventType, LoggingEventSink, Severity
from .ledger.client import LedgerClient, LedgerReceipt
from .ledger.retry import RetryPolicy
from .stages.base import BaseStage
from .stages.ledger_commit import DEFAULT_COMMIT_DESCRIPTION, LedgerCommitStage
from .stages.refinement import RefinementStage
from .stages.suggestion import SuggestionEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StepRecord:
    """Outcome of one pipeline step."""

    step: str
    status: str  # "ok" | "failed"
    duration_ms: int
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {"step": self.step, "status": self.status, "duration_ms": self.duration_ms}
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass(frozen=True, slots=True)
class SessionResult:
    """What a completed session hands back: the suggestions and the ledger receipt.

    The workbench itself is closed by then (`final_state` is read after close);
    this result only holds copies.
    """

    session_id: str
    request: str
    initial_suggestion: str
    final_suggestion: str
    receipt: LedgerReceipt
    final_state: WorkbenchState
    steps: tuple[StepRecord, ...] = ()
    outputs: dict[str, dict[str, object]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "session_id": self.session_id,
            "request": self.request,
            "initial_suggestion": self.initial_suggestion,
            "final_suggestion": self.final_suggestion,
            "receipt": self.receipt.to_dict(),
            "final_state": self.final_state.value,
            "steps": [s.to_dict() for s in self.steps],
        }


class SessionOrchestrator:
    """Runs one session end-to-end: init -> stages... -> close.

    The default stage list is [SuggestionEngine, RefinementStage, LedgerCommitStage].
    The list is explicit so stages can be swapped, reordered in tests or extended
    without touching the control flow. The orchestrator holds a reference to the
    shared PatternStore and never mutates it.

    Error policy:
    - The first failing step aborts the session; later steps do not run.
    - The failure surfaces as SessionAborted (or a subclass: SessionCancelled,
      SessionTimedOut, CommitNotConfirmed) whose `step` names the failed step.
    - The workbench is closed in every case.
    """

    def __init__(
        self,
        *,
        store: PatternStore,
        ledger: LedgerClient,
        engine: SuggestionEngine | None = None,
        refinement: RefinementStage | None = None,
        stages: Sequence[BaseStage] | None = None,
        retry: RetryPolicy | None = None,
        commit_description: str = DEFAULT_COMMIT_DESCRIPTION,
        events: EventSink | None = None,
        session_timeout_s: float | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.events: EventSink = events if events is not None else LoggingEventSink()
        self.session_timeout_s = session_timeout_s

        if stages is None:
            stages = [
                engine or SuggestionEngine(),
                refinement or RefinementStage(),
                LedgerCommitStage(
                    ledger=ledger,
                    retry=retry,
                    description=commit_description,
                    events=self.events,
                ),
            ]
        self.stages: list[BaseStage] = list(stages)

    def run_session(
        self,
        request: str,
        store: PatternStore | None = None,
        *,
        session_id: str | None = None,
        cancel_token: CancelToken | None = None,
        timeout_s: float | None = None,
    ) -> SessionResult:
        """Runs the pipeline once for `request` and returns the committed result.

        `store` defaults to the orchestrator's shared store; it is only read.

        Raises:
            SessionAborted: If any step fails (the subclass tells cancellation,
                timeout and unconfirmed commit apart).
        """
        store = store if store is not None else self.store
        ctx = SessionContext.start(
            session_id=session_id,
            cancel_token=cancel_token,
            timeout_s=timeout_s if timeout_s is not None else self.session_timeout_s,
        )
        sid = ctx.session_id
        self.events.emit(
            EventType.session_started,
            {"session_id": sid, "request_chars": len(request) if isinstance(request, str) else 0},
        )

        records: list[StepRecord] = []

        t0 = time.perf_counter()
        try:
            ctx.check()
            workbench = Workbench.init(request)
        except Exception as e:
            records.append(StepRecord(step="init", status="failed", duration_ms=_ms_since(t0), error=str(e)))
            aborted = self._abort(ctx, "init", e)
            if aborted is e:
                raise
            raise aborted from e
        records.append(StepRecord(step="init", status="ok", duration_ms=_ms_since(t0)))

        outputs: dict[str, dict[str, object]] = {}
        try:
            for stage in self.stages:
                step_ctx = ctx.with_step(stage.name)
                self.events.emit(EventType.step_started, {"session_id": sid, "step": stage.name})
                t0 = time.perf_counter()
                try:
                    out = stage(workbench=workbench, store=store, ctx=step_ctx)
                except Exception as e:
                    records.append(
                        StepRecord(step=stage.name, status="failed", duration_ms=_ms_since(t0), error=str(e))
                    )
                    aborted = self._abort(step_ctx, stage.name, e)
                    if aborted is e:
                        raise
                    raise aborted from e

                duration = _ms_since(t0)
                records.append(StepRecord(step=stage.name, status="ok", duration_ms=duration))
                self.events.emit(
                    EventType.step_finished,
                    {"session_id": sid, "step": stage.name, "duration_ms": duration},
                )
                outputs[stage.name] = out

            receipt = _find_receipt(outputs)
            if receipt is None:
                err = SessionAborted("Pipeline finished without a ledger receipt", step="commit")
                raise self._abort(ctx.with_step("commit"), "commit", err)

            final_suggestion = workbench.suggested_code
            initial_suggestion = str(outputs.get("generate", {}).get("suggestion", final_suggestion))
        finally:
            if not workbench.closed:
                t0 = time.perf_counter()
                workbench.close()
                records.append(StepRecord(step="close", status="ok", duration_ms=_ms_since(t0)))
            self.events.emit(EventType.session_closed, {"session_id": sid})

        final_state = workbench.state
        self.events.emit(EventType.session_succeeded, {"session_id": sid, "content_hash": receipt.content_hash})
        logger.info("Session %s committed as %s", sid, receipt.entry_id)

        return SessionResult(
            session_id=sid,
            request=request,
            initial_suggestion=initial_suggestion,
            final_suggestion=final_suggestion,
            receipt=receipt,
            final_state=final_state,
            steps=tuple(records),
            outputs=outputs,
        )

    def _abort(self, ctx: SessionContext, step: str, err: Exception) -> SessionAborted:
        """Reports a failed step and returns the SessionAborted to raise."""
        if isinstance(err, SessionAborted):
            aborted = err
            if not aborted.step:
                aborted.step = step
        elif isinstance(err, CodebenchError):
            aborted = SessionAborted(
                f"Step '{step}' failed: {err}",
                data={"error_type": type(err).__name__, "error_data": err.data},
                step=step,
            )
        else:
            aborted = SessionAborted(
                f"Step '{step}' crashed: {type(err).__name__}: {err}",
                data={"error_type": type(err).__name__},
                step=step,
            )

        error_type = type(err).__name__
        payload = {"session_id": ctx.session_id, "step": step, "error_type": error_type, "error_message": str(err)}
        self.events.emit(EventType.step_failed, payload, severity=Severity.error)
        self.events.emit(EventType.session_failed, payload, severity=Severity.error)
        logger.warning("Session %s aborted at step %s: %s", ctx.session_id, step, err)
        return aborted


def _find_receipt(outputs: dict[str, dict[str, object]]) -> LedgerReceipt | None:
    for out in outputs.values():
        r = out.get("receipt")
        if isinstance(r, LedgerReceipt):
            return r
    return None


def _ms_since(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)
