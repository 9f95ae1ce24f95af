"""Pluggable analysis capabilities: tokenizing, style scoring and complexity analysis."""

from .complexity import (
    BRANCH_TOKENS,
    DEFAULT_COMPLEXITY_INCREMENT,
    BranchComplexityAnalyzer,
    ComplexityAnalyzer,
    FixedIncrementAnalyzer,
)
from .style import REFERENCE_STYLE_SCORE, FixedStyleScorer, HeuristicStyleScorer, StyleScorer
from .tokenizer import tokenize_code, word_set

__all__ = [
    "BRANCH_TOKENS",
    "DEFAULT_COMPLEXITY_INCREMENT",
    "BranchComplexityAnalyzer",
    "ComplexityAnalyzer",
    "FixedIncrementAnalyzer",
    "REFERENCE_STYLE_SCORE",
    "FixedStyleScorer",
    "HeuristicStyleScorer",
    "StyleScorer",
    "tokenize_code",
    "word_set",
]
