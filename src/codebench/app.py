# src/codebench/app.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .analysis.complexity import FixedIncrementAnalyzer
from .config.settings import CodebenchSettings
from .data.pattern_file import load_patterns
from .data.pattern_store import PatternStore
from .events import EventSink
from .ledger.client import LedgerClient
from .ledger.memory import MemoryLedgerClient
from .ledger.retry import RetryPolicy
from .ledger.sqlite import SqliteLedgerClient
from .orchestrator import SessionOrchestrator
from .stages.refinement import MarkerRefiner, RefinementStage


@dataclass(frozen=True, slots=True)
class SessionWiring:
    """Bundles the runtime wiring shared by the CLI and the UI."""

    settings: CodebenchSettings
    store: PatternStore
    ledger: LedgerClient
    orchestrator: SessionOrchestrator


def build_store(settings: CodebenchSettings, *, patterns_path: str | Path | None = None) -> PatternStore:
    store = PatternStore(
        settings.initial_capacity,
        analyzer=FixedIncrementAnalyzer(increment=settings.complexity_increment),
    )
    if patterns_path is not None:
        load_patterns(patterns_path, store=store)
    return store


def build_ledger(settings: CodebenchSettings) -> LedgerClient:
    if settings.ledger_backend == "sqlite":
        return SqliteLedgerClient(settings.ledger_path)
    return MemoryLedgerClient()


def build_orchestrator(
    settings: CodebenchSettings,
    *,
    store: PatternStore,
    ledger: LedgerClient,
    events: EventSink | None = None,
) -> SessionOrchestrator:
    return SessionOrchestrator(
        store=store,
        ledger=ledger,
        refinement=RefinementStage(refiner=MarkerRefiner(marker=settings.refinement_marker)),
        retry=RetryPolicy(
            max_retries=settings.commit_max_retries,
            base_delay_s=settings.commit_retry_base_delay_s,
        ),
        commit_description=settings.commit_description,
        events=events,
        session_timeout_s=settings.session_timeout_s,
    )


def build_wiring(
    settings: CodebenchSettings,
    *,
    patterns_path: str | Path | None = None,
    events: EventSink | None = None,
) -> SessionWiring:
    store = build_store(settings, patterns_path=patterns_path)
    ledger = build_ledger(settings)
    orchestrator = build_orchestrator(settings, store=store, ledger=ledger, events=events)
    return SessionWiring(settings=settings, store=store, ledger=ledger, orchestrator=orchestrator)
