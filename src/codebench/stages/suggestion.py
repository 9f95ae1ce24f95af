# File: src/codebench/stages/suggestion.py
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .base import BaseStage
from ..analysis.tokenizer import word_set
from ..data.context import SessionContext
from ..data.pattern import Pattern
from ..data.pattern_store import PatternStore
from ..data.workbench import Workbench
from ..errors import StageFailure

SUGGESTION_HEADER = "Here's a suggestion based on your request:\n"
PLACEHOLDER_BODY = "/* Your generated code here */"


class SuggestionGenerator(Protocol):
    """Produces suggestion text from a request and the store's patterns."""

    def generate(self, *, request: str, patterns: Sequence[Pattern]) -> str: ...


_EDGE_PUNCT = ",.;:!?()[]{}\"'`"


def request_terms(request: str) -> set[str]:
    """Lower-cased whitespace tokens of a request with edge punctuation removed.

    Used for language matching, so one-letter and symbol-bearing names (`c`, `r`,
    `c++`, `c#`) survive, unlike in `word_set`.
    """
    terms = {tok.strip(_EDGE_PUNCT).lower() for tok in request.split()}
    terms.discard("")
    return terms


def _request_line(request: str) -> str:
    one_line = " ".join(request.split())
    return f"/* Request: {one_line} */\n"


@dataclass(frozen=True, slots=True)
class TemplateGenerator:
    """Fixed template that ignores the patterns (reference placeholder)."""

    def generate(self, *, request: str, patterns: Sequence[Pattern]) -> str:
        return SUGGESTION_HEADER + _request_line(request) + PLACEHOLDER_BODY


@dataclass(frozen=True, slots=True)
class RankedPattern:
    pattern: Pattern
    score: float
    index: int


@dataclass(frozen=True, slots=True)
class PatternRankingGenerator:
    """Retrieves the patterns most relevant to the request and composes them.

    Scoring per pattern:
    - language_weight when the pattern's language appears as a word of the request
    - the share of request words that also occur in the snippet
    - when `target_complexity` is set, complexity_weight / (1 + |complexity - target|)

    Patterns scoring 0 are not relevant. Ties prefer lower complexity, then
    insertion order. Without relevant patterns the fallback template is used.
    """

    max_patterns: int = 3
    language_weight: float = 1.0
    complexity_weight: float = 0.25
    target_complexity: float | None = None
    fallback: SuggestionGenerator = TemplateGenerator()

    def rank(self, *, request: str, patterns: Sequence[Pattern]) -> list[RankedPattern]:
        words = word_set(request)
        terms = request_terms(request)
        ranked: list[RankedPattern] = []
        for i, p in enumerate(patterns):
            relevance = 0.0
            if p.language.lower() in terms:
                relevance += self.language_weight
            if words:
                relevance += len(words & word_set(p.snippet)) / len(words)
            if relevance <= 0:
                continue

            score = relevance
            if self.target_complexity is not None:
                score += self.complexity_weight / (1.0 + abs(p.complexity - self.target_complexity))
            ranked.append(RankedPattern(pattern=p, score=score, index=i))

        ranked.sort(key=lambda r: (-r.score, r.pattern.complexity, r.index))
        return ranked[: max(0, int(self.max_patterns))]

    def generate(self, *, request: str, patterns: Sequence[Pattern]) -> str:
        ranked = self.rank(request=request, patterns=patterns)
        if not ranked:
            return self.fallback.generate(request=request, patterns=patterns)

        parts = [SUGGESTION_HEADER, _request_line(request)]
        for r in ranked:
            p = r.pattern
            parts.append(f"/* {p.language} pattern (complexity {p.complexity:.2f}) */\n")
            parts.append(p.snippet.rstrip("\n") + "\n")
        return "".join(parts).rstrip("\n")


class SuggestionEngine(BaseStage):
    """Generates the first suggestion for the workbench request.

    Inputs:
    - workbench.request (required, non-empty)
    - store.snapshot() (read-only)

    Outputs:
    - suggestion: str   (also written via workbench.update_suggestion)
    - pattern_count: int
    """

    name = "generate"
    version = "0.1.0"
    tags = ("suggestion", "patterns")

    def __init__(self, *, generator: SuggestionGenerator | None = None) -> None:
        self.generator: SuggestionGenerator = generator or PatternRankingGenerator()

    def run(self, *, workbench: Workbench, store: PatternStore, ctx: SessionContext) -> dict[str, object]:
        _ = ctx  # ctx is used by BaseStage for tracing metadata

        patterns = store.snapshot()
        text = self.generator.generate(request=workbench.request, patterns=patterns)
        if not isinstance(text, str) or not text.strip():
            raise StageFailure("Suggestion generator returned empty output", data={"stage": self.name})

        workbench.update_suggestion(text)
        return {"suggestion": text, "pattern_count": len(patterns)}

    def generate(self, workbench: Workbench, store: PatternStore, ctx: SessionContext | None = None) -> str:
        """Runs the stage and returns the suggestion text."""
        out = self(workbench=workbench, store=store, ctx=ctx or self._default_ctx())
        return str(out["suggestion"])
