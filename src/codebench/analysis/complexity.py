# src/codebench/analysis/complexity.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from .tokenizer import tokenize_code

if TYPE_CHECKING:
    from ..data.pattern import Pattern

DEFAULT_COMPLEXITY_INCREMENT = 1.0

BRANCH_TOKENS = frozenset(
    {"if", "elif", "else", "for", "while", "case", "catch", "except", "and", "or", "&&", "||", "?"}
)


class ComplexityAnalyzer(Protocol):
    """Computes the updated complexity score of a pattern (the caller assigns it)."""

    def analyze(self, pattern: Pattern) -> float: ...


@dataclass(frozen=True, slots=True)
class FixedIncrementAnalyzer:
    """Adds a fixed increment to the current score.

    This is the reference behavior: a stand-in for a real metric.
    """

    increment: float = DEFAULT_COMPLEXITY_INCREMENT

    def analyze(self, pattern: Pattern) -> float:
        return float(pattern.complexity) + float(self.increment)


@dataclass(frozen=True, slots=True)
class BranchComplexityAnalyzer:
    """Adds one point per decision point found in the snippet (cyclomatic-style).

    A snippet without branches still gains `base`, so repeated analysis keeps
    growing the score like the fixed-increment analyzer does.
    """

    base: float = DEFAULT_COMPLEXITY_INCREMENT

    def analyze(self, pattern: Pattern) -> float:
        branches = sum(1 for tok in tokenize_code(pattern.snippet) if tok in BRANCH_TOKENS)
        return float(pattern.complexity) + float(self.base) + float(branches)
