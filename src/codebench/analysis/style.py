# src/codebench/analysis/style.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

REFERENCE_STYLE_SCORE = 0.75


class StyleScorer(Protocol):
    """Scores code style in [0, 1]; higher is better."""

    def score(self, code: str) -> float: ...


@dataclass(frozen=True, slots=True)
class FixedStyleScorer:
    value: float = REFERENCE_STYLE_SCORE

    def score(self, code: str) -> float:
        return self.value


@dataclass(frozen=True, slots=True)
class HeuristicStyleScorer:
    """Penalizes long lines, trailing whitespace and mixed tab/space indentation.

    Each penalty is the share of offending lines, weighted; the result is clamped
    to [0, 1]. Empty code scores 0.
    """

    max_line_length: int = 100
    long_line_weight: float = 0.4
    trailing_ws_weight: float = 0.3
    mixed_indent_weight: float = 0.3

    def score(self, code: str) -> float:
        lines = code.splitlines()
        if not lines:
            return 0.0

        n = len(lines)
        long_lines = sum(1 for ln in lines if len(ln) > self.max_line_length)
        trailing = sum(1 for ln in lines if ln != ln.rstrip())
        tab_indented = any(ln.startswith("\t") for ln in lines)
        space_indented = any(ln.startswith(" ") for ln in lines)

        penalty = (
            self.long_line_weight * long_lines / n
            + self.trailing_ws_weight * trailing / n
            + (self.mixed_indent_weight if tab_indented and space_indented else 0.0)
        )
        return max(0.0, min(1.0, 1.0 - penalty))
