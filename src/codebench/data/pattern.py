# src/codebench/data/pattern.py
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..errors import InvalidInput, StateMisuse

_FIXED_FIELDS = ("snippet", "language")


@dataclass(slots=True)
class Pattern:
    """Stores one reusable code snippet with its language tag and complexity score.

    `snippet` and `language` are fixed once the pattern is created; `complexity`
    stays mutable so analysis can update it in place.

    Patterns are created through `create_pattern()` so inputs are validated, and
    are owned by at most one PatternStore (tracked in `owner_id`).
    """

    snippet: str
    language: str
    complexity: float = 0.0
    owner_id: str | None = field(default=None, compare=False, repr=False)

    def __setattr__(self, name: str, value: object) -> None:
        if name in _FIXED_FIELDS and hasattr(self, name):
            raise StateMisuse(f"Pattern.{name} cannot be reassigned", data={"field": name})
        object.__setattr__(self, name, value)

    def to_dict(self) -> dict[str, object]:
        """Converts the pattern into a YAML/JSON-serializable mapping."""
        return {
            "snippet": self.snippet,
            "language": self.language,
            "complexity": float(self.complexity),
        }

    @staticmethod
    def from_dict(d: Mapping[str, object]) -> "Pattern":
        """Parses a pattern from a dict-like mapping (validated like create_pattern)."""
        raw_complexity = d.get("complexity", 0.0)
        if isinstance(raw_complexity, bool) or not isinstance(raw_complexity, (int, float, str)):
            raise InvalidInput("pattern.complexity must be a number", data={"value": repr(raw_complexity)})
        try:
            complexity = float(raw_complexity)
        except ValueError as e:
            raise InvalidInput("pattern.complexity must be a number", data={"value": raw_complexity}) from e

        return create_pattern(d.get("snippet"), d.get("language"), complexity)  # type: ignore[arg-type]


def _require_text(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"pattern.{name} must be a non-empty string", data={"field": name})
    return value


def create_pattern(snippet: str, language: str, complexity: float = 0.0) -> Pattern:
    """Creates a validated Pattern.

    Rules:
    - snippet and language must be non-empty text (language is stripped)
    - complexity must be a finite number (bool is not allowed)

    Raises:
        InvalidInput: If any of the rules above is violated.
    """
    snippet = _require_text(snippet, "snippet")
    language = _require_text(language, "language").strip()

    if isinstance(complexity, bool) or not isinstance(complexity, (int, float)):
        raise InvalidInput("pattern.complexity must be a number", data={"value": repr(complexity)})
    if not math.isfinite(complexity):
        raise InvalidInput("pattern.complexity must be finite", data={"value": repr(complexity)})

    return Pattern(snippet=snippet, language=language, complexity=float(complexity))
