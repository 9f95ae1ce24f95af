# File: src/codebench/stages/refinement.py
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .base import BaseStage
from ..analysis.style import FixedStyleScorer, StyleScorer
from ..data.context import SessionContext
from ..data.pattern import Pattern
from ..data.pattern_store import PatternStore
from ..data.workbench import Workbench
from ..errors import StageFailure, StateMisuse

REFINEMENT_MARKER = "Refined code suggestion:\n"


class Refiner(Protocol):
    """Transforms a suggestion into the next, improved suggestion."""

    def refine(self, suggestion: str, *, request: str, patterns: Sequence[Pattern]) -> str: ...


@dataclass(frozen=True, slots=True)
class MarkerRefiner:
    """Prepends a marker to the suggestion.

    Not idempotent: refining "S" twice gives marker + marker + "S".
    """

    marker: str = REFINEMENT_MARKER

    def refine(self, suggestion: str, *, request: str, patterns: Sequence[Pattern]) -> str:
        return self.marker + suggestion


class RefinementStage(BaseStage):
    """Refines the workbench's current suggestion and writes it back.

    Inputs:
    - workbench.suggested_code (required, non-empty)

    Outputs:
    - suggestion: str     (the refined text, written via update_suggestion)
    - previous: str       (the suggestion that was refined)
    - style_score: float  (score of the refined text)
    """

    name = "refine"
    version = "0.1.0"
    tags = ("refinement",)

    def __init__(self, *, refiner: Refiner | None = None, style_scorer: StyleScorer | None = None) -> None:
        self.refiner: Refiner = refiner or MarkerRefiner()
        self.style_scorer: StyleScorer = style_scorer or FixedStyleScorer()

    def run(self, *, workbench: Workbench, store: PatternStore, ctx: SessionContext) -> dict[str, object]:
        _ = ctx

        previous = workbench.suggested_code
        if not previous:
            raise StateMisuse("No suggestion to refine", data={"state": workbench.state.value})

        refined = self.refiner.refine(previous, request=workbench.request, patterns=store.snapshot())
        if not isinstance(refined, str) or not refined.strip():
            raise StageFailure("Refiner returned empty output", data={"stage": self.name})

        workbench.update_suggestion(refined)
        workbench.mark_refined()
        return {
            "suggestion": refined,
            "previous": previous,
            "style_score": float(self.style_scorer.score(refined)),
        }

    def refine(self, workbench: Workbench, store: PatternStore, ctx: SessionContext | None = None) -> str:
        """Runs the stage and returns the refined text."""
        out = self(workbench=workbench, store=store, ctx=ctx or self._default_ctx())
        return str(out["suggestion"])
