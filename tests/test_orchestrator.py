"""End-to-end tests for SessionOrchestrator: init -> generate -> refine -> commit -> close."""

import pytest

from codebench.data.context import CancelToken
from codebench.data.workbench import WorkbenchState
from codebench.errors import (
    CommitNotConfirmed,
    LedgerUnavailable,
    SessionAborted,
    SessionCancelled,
    SessionTimedOut,
    StateMisuse,
)
from codebench.ledger.client import content_hash
from codebench.ledger.memory import MemoryLedgerClient
from codebench.ledger.retry import RetryPolicy
from codebench.orchestrator import SessionOrchestrator
from codebench.stages.base import BaseStage
from codebench.stages.ledger_commit import LedgerCommitStage
from codebench.stages.refinement import REFINEMENT_MARKER, RefinementStage
from codebench.stages.suggestion import SuggestionEngine

SORT_REQUEST = "Create a function to sort an array"


class CaptureStage(BaseStage):
    """Keeps a reference to the session workbench so tests can inspect it afterwards."""

    name = "capture"

    def __init__(self):
        self.workbench = None

    def run(self, *, workbench, store, ctx):
        self.workbench = workbench
        return {}


class FlakyLedger(MemoryLedgerClient):
    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def commit(self, content, description):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise LedgerUnavailable("ledger busy")
        return super().commit(content, description)


class EmptyGenerator:
    def generate(self, *, request, patterns):
        return ""


class CancellingGenerator:
    def __init__(self, token):
        self.token = token

    def generate(self, *, request, patterns):
        self.token.cancel("user pressed stop")
        return "partial suggestion"


def _pipeline(ledger, retry=None, generator=None):
    capture = CaptureStage()
    stages = [
        capture,
        SuggestionEngine(generator=generator),
        RefinementStage(),
        LedgerCommitStage(ledger=ledger, retry=retry),
    ]
    return capture, stages


class TestHappyPath:
    def test_sort_request_commits_refined_suggestion(self, orchestrator, ledger, seeded_store):
        result = orchestrator.run_session(SORT_REQUEST)

        assert result.final_suggestion == REFINEMENT_MARKER + result.initial_suggestion
        assert result.initial_suggestion.startswith("Here's a suggestion based on your request:\n")
        assert ledger.calls == [(result.final_suggestion, "Final Suggestion")]
        assert result.receipt.content_hash == content_hash(result.final_suggestion)
        assert result.receipt.description == "Final Suggestion"
        assert result.final_state == WorkbenchState.CLOSED
        assert ledger.verify(result.final_suggestion).found

    def test_store_can_be_passed_per_session(self, orchestrator, ledger, store):
        store.add_new("def sort_an_array(xs):\n    return sorted(xs)", "python", 1.0)
        result = orchestrator.run_session("sort an array", store)
        assert "sort an array" in result.initial_suggestion
        assert "def sort_an_array(xs):" in result.initial_suggestion
        assert result.final_suggestion.endswith(result.initial_suggestion)
        assert ledger.calls == [(result.final_suggestion, "Final Suggestion")]
        assert store.count == 1

    def test_steps_are_recorded_in_order(self, orchestrator):
        result = orchestrator.run_session(SORT_REQUEST)
        assert [s.step for s in result.steps] == ["init", "generate", "refine", "commit", "close"]
        assert all(s.status == "ok" for s in result.steps)
        assert result.to_dict()["final_state"] == "CLOSED"
        close = result.steps[-1]
        assert close.step == "close" and close.duration_ms >= 0
        assert result.steps.count(close) == 1

    def test_store_is_left_unchanged(self, orchestrator, seeded_store):
        before = [(p.snippet, p.language, p.complexity) for p in seeded_store]
        orchestrator.run_session(SORT_REQUEST)
        assert [(p.snippet, p.language, p.complexity) for p in seeded_store] == before

    def test_workbench_is_closed_after_session(self, seeded_store, ledger):
        capture, stages = _pipeline(ledger)
        SessionOrchestrator(store=seeded_store, ledger=ledger, stages=stages).run_session(SORT_REQUEST)
        assert capture.workbench.closed
        with pytest.raises(StateMisuse):
            _ = capture.workbench.suggested_code

    def test_event_trail(self, orchestrator, events):
        orchestrator.run_session(SORT_REQUEST, session_id="abc")
        types = events.types()
        assert types[0] == "session.started"
        assert types[-2:] == ["session.closed", "session.succeeded"]
        assert types.count("step.finished") == 3
        assert "ledger.committed" in types
        assert all(e.payload["session_id"] == "abc" for e in events.events)

    def test_sessions_are_independent(self, orchestrator, ledger):
        first = orchestrator.run_session(SORT_REQUEST)
        second = orchestrator.run_session("Reverse a string")
        assert first.session_id != second.session_id
        assert len(ledger.calls) == 2
        assert ledger.calls[1][0] == second.final_suggestion


class TestFailures:
    def test_blank_request_aborts_at_init(self, orchestrator, ledger, events):
        with pytest.raises(SessionAborted) as exc:
            orchestrator.run_session("   ")
        assert exc.value.step == "init"
        assert exc.value.data["error_type"] == "InvalidInput"
        assert ledger.calls == []
        assert "session.failed" in events.types()

    def test_generate_failure_stops_pipeline(self, seeded_store, ledger, events):
        capture, stages = _pipeline(ledger, generator=EmptyGenerator())
        orch = SessionOrchestrator(store=seeded_store, ledger=ledger, stages=stages, events=events)
        with pytest.raises(SessionAborted) as exc:
            orch.run_session(SORT_REQUEST)
        assert exc.value.step == "generate"
        assert ledger.calls == []
        assert capture.workbench.closed
        failed = events.of_type("step.failed")
        assert [e.payload["step"] for e in failed] == ["generate"]
        assert "step.started" in events.types()
        assert events.types()[-1] == "session.closed"

    def test_commit_not_confirmed_keeps_suggestion(self, seeded_store, events):
        sleeps = []
        orch = SessionOrchestrator(
            store=seeded_store,
            ledger=FlakyLedger(failures=99),
            retry=RetryPolicy(max_retries=2, base_delay_s=0.1, sleep=sleeps.append),
            events=events,
        )
        with pytest.raises(CommitNotConfirmed) as exc:
            orch.run_session(SORT_REQUEST)
        assert exc.value.step == "commit"
        assert exc.value.data["suggestion"].startswith(REFINEMENT_MARKER)
        assert sleeps == [0.1, 0.2]

    def test_transient_ledger_failure_is_retried(self, seeded_store):
        ledger = FlakyLedger(failures=1)
        orch = SessionOrchestrator(
            store=seeded_store,
            ledger=ledger,
            retry=RetryPolicy(sleep=lambda s: None),
        )
        result = orch.run_session(SORT_REQUEST)
        assert result.outputs["commit"]["attempts"] == 2
        assert len(ledger.entries) == 1

    def test_commit_without_refine_never_reaches_ledger(self, seeded_store, ledger, events):
        orch = SessionOrchestrator(
            store=seeded_store,
            ledger=ledger,
            stages=[SuggestionEngine(), LedgerCommitStage(ledger=ledger, events=events)],
            events=events,
        )
        with pytest.raises(SessionAborted) as exc:
            orch.run_session(SORT_REQUEST)
        assert exc.value.step == "commit"
        assert exc.value.data["error_type"] == "StateMisuse"
        assert ledger.calls == []
        assert ledger.entries == ()
        assert "ledger.committed" not in events.types()

    def test_missing_commit_stage_aborts(self, seeded_store, ledger):
        orch = SessionOrchestrator(
            store=seeded_store,
            ledger=ledger,
            stages=[SuggestionEngine(), RefinementStage()],
        )
        with pytest.raises(SessionAborted) as exc:
            orch.run_session(SORT_REQUEST)
        assert exc.value.step == "commit"


class TestCancellation:
    def test_cancelled_before_start(self, orchestrator, ledger):
        token = CancelToken()
        token.cancel()
        with pytest.raises(SessionCancelled) as exc:
            orchestrator.run_session(SORT_REQUEST, cancel_token=token)
        assert exc.value.step == "init"
        assert ledger.calls == []

    def test_cancelled_between_steps(self, seeded_store, ledger):
        token = CancelToken()
        capture, stages = _pipeline(ledger, generator=CancellingGenerator(token))
        orch = SessionOrchestrator(store=seeded_store, ledger=ledger, stages=stages)
        with pytest.raises(SessionCancelled) as exc:
            orch.run_session(SORT_REQUEST, cancel_token=token)
        assert exc.value.step == "refine"
        assert ledger.calls == []
        assert capture.workbench.closed

    def test_deadline_passed(self, orchestrator, ledger):
        with pytest.raises(SessionTimedOut) as exc:
            orchestrator.run_session(SORT_REQUEST, timeout_s=0.0)
        assert exc.value.step == "init"
        assert ledger.calls == []
