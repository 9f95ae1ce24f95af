# src/codebench/data/pattern_file.py
from __future__ import annotations

from pathlib import Path

import yaml

from ..errors import InvalidInput
from .pattern import Pattern
from .pattern_store import DEFAULT_INITIAL_CAPACITY, PatternStore

PATTERNS_KEY = "patterns"


def read_patterns(path: str | Path) -> list[Pattern]:
    """Reads a YAML pattern file into validated (unowned) patterns.

    Layout:
      patterns:
        - snippet: "..."
          language: python
          complexity: 1.5

    A missing file yields an empty list. Malformed content raises InvalidInput.
    """
    p = Path(path)
    if not p.exists():
        return []
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise InvalidInput("Pattern file is not valid YAML", data={"path": str(p), "error": str(e)}) from e

    if not isinstance(raw, dict):
        raise InvalidInput("Pattern file must be a mapping", data={"path": str(p)})
    items = raw.get(PATTERNS_KEY) or []
    if not isinstance(items, list):
        raise InvalidInput(f"'{PATTERNS_KEY}' must be a list", data={"path": str(p)})

    out: list[Pattern] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidInput("Pattern entries must be mappings", data={"path": str(p), "index": i})
        out.append(Pattern.from_dict(item))
    return out


def load_patterns(
    path: str | Path,
    *,
    store: PatternStore | None = None,
    initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
) -> PatternStore:
    """Loads a pattern file into `store` (or a new store) and returns the store."""
    target = store if store is not None else PatternStore(initial_capacity)
    for pattern in read_patterns(path):
        target.add(pattern)
    return target


def dump_patterns(store: PatternStore, path: str | Path) -> Path:
    """Writes the store's patterns, in insertion order, to a YAML pattern file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = {PATTERNS_KEY: [pattern.to_dict() for pattern in store.snapshot()]}
    p.write_text(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return p
