"""codebench: a pattern-backed coding assistant that runs one workbench session at a time.

Layout:
- data/: Pattern, PatternStore, Workbench, SessionContext, YAML pattern files
- analysis/: tokenizer, style scorers, complexity analyzers (pluggable)
- stages/: SuggestionEngine, RefinementStage, LedgerCommitStage
- ledger/: ledger contract, memory and SQLite backends, retry policy
- orchestrator.py: SessionOrchestrator running init -> stages -> close
- config/, cli/, app.py: settings, command line and shared wiring
"""

from __future__ import annotations

from .data import CancelToken, Pattern, PatternStore, Workbench, WorkbenchState, create_pattern
from .errors import (
    AllocationFailure,
    CodebenchError,
    CommitNotConfirmed,
    InvalidInput,
    LedgerUnavailable,
    SessionAborted,
    SessionCancelled,
    SessionTimedOut,
    StageFailure,
    StateMisuse,
)
from .orchestrator import SessionOrchestrator, SessionResult, StepRecord

__version__ = "0.1.0"

__all__ = [
    "CancelToken",
    "Pattern",
    "PatternStore",
    "Workbench",
    "WorkbenchState",
    "create_pattern",
    "AllocationFailure",
    "CodebenchError",
    "CommitNotConfirmed",
    "InvalidInput",
    "LedgerUnavailable",
    "SessionAborted",
    "SessionCancelled",
    "SessionTimedOut",
    "StageFailure",
    "StateMisuse",
    "SessionOrchestrator",
    "SessionResult",
    "StepRecord",
]
