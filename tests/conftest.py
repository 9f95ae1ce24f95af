"""Shared fixtures for codebench tests."""

import pytest

from codebench.data.pattern import create_pattern
from codebench.data.pattern_store import PatternStore
from codebench.events import MemoryEventSink
from codebench.ledger.memory import MemoryLedgerClient
from codebench.orchestrator import SessionOrchestrator


class RecordingLedger(MemoryLedgerClient):
    """Memory ledger that records every commit call."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def commit(self, content, description):
        self.calls.append((content, description))
        return super().commit(content, description)


@pytest.fixture
def events():
    return MemoryEventSink()


@pytest.fixture
def store():
    return PatternStore(10)


@pytest.fixture
def seeded_store():
    s = PatternStore(4)
    s.add(create_pattern("def sort_array(arr):\n    return sorted(arr)\n", "python", 1.0))
    s.add(create_pattern("int cmp(const void *a, const void *b) { return *(int*)a - *(int*)b; }", "c", 2.0))
    s.add(create_pattern("def reverse_string(s):\n    return s[::-1]\n", "python", 0.5))
    return s


@pytest.fixture
def ledger():
    return RecordingLedger()



@pytest.fixture
def orchestrator(seeded_store, ledger, events):
    return SessionOrchestrator(store=seeded_store, ledger=ledger, events=events)
