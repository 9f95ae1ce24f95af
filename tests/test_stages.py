"""Tests for the suggestion, refinement and commit stages in isolation."""

import pytest

from codebench.data.context import SessionContext
from codebench.data.pattern_store import PatternStore
from codebench.data.workbench import Workbench, WorkbenchState
from codebench.errors import CommitNotConfirmed, LedgerUnavailable, StageFailure, StateMisuse
from codebench.ledger.memory import MemoryLedgerClient
from codebench.ledger.retry import RetryPolicy
from codebench.stages.ledger_commit import LedgerCommitStage
from codebench.stages.refinement import REFINEMENT_MARKER, RefinementStage
from codebench.stages.suggestion import (
    PLACEHOLDER_BODY,
    SUGGESTION_HEADER,
    PatternRankingGenerator,
    SuggestionEngine,
    TemplateGenerator,
)

SORT_REQUEST = "Create a function to sort an array"


class EmptyGenerator:
    def generate(self, *, request, patterns):
        return "   "


class BrokenRefiner:
    def refine(self, suggestion, *, request, patterns):
        raise ValueError("boom")


class DownLedger(MemoryLedgerClient):
    def commit(self, content, description):
        raise LedgerUnavailable("ledger offline")


class TestSuggestionEngine:
    def test_template_when_store_is_empty(self):
        wb = Workbench.init("sort")
        text = SuggestionEngine().generate(wb, PatternStore(2))
        assert text == SUGGESTION_HEADER + "/* Request: sort */\n" + PLACEHOLDER_BODY
        assert wb.suggested_code == text
        assert wb.state == WorkbenchState.SUGGESTION_GENERATED

    def test_relevant_pattern_is_used(self, seeded_store):
        wb = Workbench.init(SORT_REQUEST)
        text = SuggestionEngine().generate(wb, seeded_store)
        assert text.startswith(SUGGESTION_HEADER)
        assert "def sort_array(arr):" in text
        assert "reverse_string" not in text
        assert "/* python pattern (complexity 1.00) */" in text

    def test_store_is_not_mutated(self, seeded_store):
        before = [(p.snippet, p.language, p.complexity) for p in seeded_store]
        SuggestionEngine().generate(Workbench.init(SORT_REQUEST), seeded_store)
        assert [(p.snippet, p.language, p.complexity) for p in seeded_store] == before
        assert seeded_store.count == 3

    def test_empty_generator_output_fails(self, store):
        with pytest.raises(StageFailure):
            SuggestionEngine(generator=EmptyGenerator()).generate(Workbench.init("x"), store)

    def test_stage_output_has_meta(self, store):
        ctx = SessionContext.start(session_id="s1").with_step("generate")
        out = SuggestionEngine(generator=TemplateGenerator())(workbench=Workbench.init("x"), store=store, ctx=ctx)
        assert out["pattern_count"] == 0
        assert out["_meta"]["stage"] == "generate"
        assert out["_meta"]["session_id"] == "s1"


class TestPatternRanking:
    def test_language_named_in_request_counts(self, seeded_store):
        ranked = PatternRankingGenerator().rank(request="sort an array in python", patterns=seeded_store.snapshot())
        assert [r.pattern.language for r in ranked] == ["python", "python"]
        assert ranked[0].pattern.snippet.startswith("def sort_array")
        assert ranked[0].score > ranked[1].score

    @pytest.mark.parametrize(
        "language,request_text",
        [
            ("c", "write a comparator in c"),
            ("r", "plot a histogram in R"),
            ("c++", "write a comparator in C++"),
            ("c#", "write a comparator in c#."),
        ],
    )
    def test_short_and_symbol_languages_match(self, language, request_text):
        store = PatternStore(2)
        store.add_new("int cmp(const void *x, const void *y);", language, 1.0)
        ranked = PatternRankingGenerator().rank(request=request_text, patterns=store.snapshot())
        assert len(ranked) == 1
        assert ranked[0].score >= 1.0

    def test_language_is_not_matched_inside_words(self):
        store = PatternStore(2)
        store.add_new("fn main() {}", "r", 1.0)
        assert PatternRankingGenerator().rank(request="write a parser", patterns=store.snapshot()) == []

    def test_ties_prefer_lower_complexity(self):
        store = PatternStore(4)
        store.add_new("sort values", "python", 5.0)
        store.add_new("sort items", "python", 1.0)
        ranked = PatternRankingGenerator().rank(request="sort", patterns=store.snapshot())
        assert [r.pattern.complexity for r in ranked] == [1.0, 5.0]

    def test_target_complexity_breaks_relevance_tie(self):
        store = PatternStore(4)
        store.add_new("sort values", "python", 1.0)
        store.add_new("sort items", "python", 5.0)
        gen = PatternRankingGenerator(target_complexity=5.0)
        assert gen.rank(request="sort", patterns=store.snapshot())[0].pattern.complexity == 5.0

    def test_max_patterns(self, seeded_store):
        ranked = PatternRankingGenerator(max_patterns=1).rank(
            request="python c sort array reverse string", patterns=seeded_store.snapshot()
        )
        assert len(ranked) == 1

    def test_fallback_without_relevant_patterns(self, seeded_store):
        text = PatternRankingGenerator().generate(request="parse json", patterns=seeded_store.snapshot())
        assert text.endswith(PLACEHOLDER_BODY)


class TestRefinementStage:
    def test_prepends_marker(self, store):
        wb = Workbench.init("x")
        wb.update_suggestion("S")
        assert RefinementStage().refine(wb, store) == REFINEMENT_MARKER + "S"
        assert wb.state == WorkbenchState.REFINED

    def test_refining_twice_stacks_markers(self, store):
        wb = Workbench.init("x")
        wb.update_suggestion("S")
        stage = RefinementStage()
        stage.refine(wb, store)
        stage.refine(wb, store)
        assert wb.suggested_code == REFINEMENT_MARKER + REFINEMENT_MARKER + "S"
        assert wb.state == WorkbenchState.REFINED

    def test_requires_a_suggestion(self, store):
        with pytest.raises(StateMisuse):
            RefinementStage().refine(Workbench.init("x"), store)

    def test_crash_becomes_stage_failure(self, store):
        wb = Workbench.init("x")
        wb.update_suggestion("S")
        with pytest.raises(StageFailure) as exc:
            RefinementStage(refiner=BrokenRefiner()).refine(wb, store)
        assert "ValueError: boom" in exc.value.data["error"]
        assert wb.suggested_code == "S"

    def test_reports_style_score(self, store):
        wb = Workbench.init("x")
        wb.update_suggestion("S")
        ctx = SessionContext.start().with_step("refine")
        out = RefinementStage()(workbench=wb, store=store, ctx=ctx)
        assert out["style_score"] == 0.75
        assert out["previous"] == "S"


class TestLedgerCommitStage:
    def _refined_workbench(self):
        wb = Workbench.init("x")
        wb.update_suggestion("final text")
        wb.mark_refined()
        return wb

    def test_commit_seals_workbench(self, store, ledger):
        wb = self._refined_workbench()
        ctx = SessionContext.start().with_step("commit")
        out = LedgerCommitStage(ledger=ledger)(workbench=wb, store=store, ctx=ctx)
        assert ledger.calls == [("final text", "Final Suggestion")]
        assert out["attempts"] == 1
        assert wb.state == WorkbenchState.COMMITTED

    def test_unrefined_suggestion_is_not_committed(self, store, ledger):
        wb = Workbench.init("x")
        wb.update_suggestion("draft")
        ctx = SessionContext.start().with_step("commit")
        with pytest.raises(StateMisuse):
            LedgerCommitStage(ledger=ledger)(workbench=wb, store=store, ctx=ctx)
        assert ledger.calls == []
        assert wb.state == WorkbenchState.SUGGESTION_GENERATED

    def test_exhausted_retries(self, store, events):
        sleeps = []
        stage = LedgerCommitStage(ledger=DownLedger(), retry=RetryPolicy(max_retries=2, sleep=sleeps.append), events=events)
        wb = self._refined_workbench()
        ctx = SessionContext.start().with_step("commit")
        with pytest.raises(CommitNotConfirmed) as exc:
            stage(workbench=wb, store=store, ctx=ctx)
        assert exc.value.step == "commit"
        assert exc.value.data["suggestion"] == "final text"
        assert exc.value.data["attempts"] == 3
        assert len(sleeps) == 2
        assert len(events.of_type("ledger.commit_attempt_failed")) == 3
        assert wb.state == WorkbenchState.REFINED
