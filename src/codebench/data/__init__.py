"""Data structures for codebench.

These modules hold the pattern collection, the per-session workbench and the
session context, plus a light YAML adapter for pattern files, so components
can be unit-tested without the CLI or UI.
"""

from .pattern import Pattern, create_pattern
from .pattern_store import DEFAULT_INITIAL_CAPACITY, PatternStore
from .pattern_file import dump_patterns, load_patterns, read_patterns
from .workbench import Workbench, WorkbenchState
from .context import CancelToken, SessionContext

__all__ = [
    "Pattern",
    "create_pattern",
    "DEFAULT_INITIAL_CAPACITY",
    "PatternStore",
    "dump_patterns",
    "load_patterns",
    "read_patterns",
    "Workbench",
    "WorkbenchState",
    "CancelToken",
    "SessionContext",
]
