"""Pipeline stages run by the orchestrator, in order: generate, refine, commit."""

from .base import BaseStage
from .ledger_commit import DEFAULT_COMMIT_DESCRIPTION, LedgerCommitStage
from .refinement import REFINEMENT_MARKER, MarkerRefiner, RefinementStage, Refiner
from .suggestion import (
    PLACEHOLDER_BODY,
    SUGGESTION_HEADER,
    PatternRankingGenerator,
    RankedPattern,
    SuggestionEngine,
    SuggestionGenerator,
    TemplateGenerator,
)

__all__ = [
    "BaseStage",
    "DEFAULT_COMMIT_DESCRIPTION",
    "LedgerCommitStage",
    "REFINEMENT_MARKER",
    "MarkerRefiner",
    "RefinementStage",
    "Refiner",
    "PLACEHOLDER_BODY",
    "SUGGESTION_HEADER",
    "PatternRankingGenerator",
    "RankedPattern",
    "SuggestionEngine",
    "SuggestionGenerator",
    "TemplateGenerator",
]
