# src/codebench/data/pattern_store.py
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator
from dataclasses import replace

from ..analysis.complexity import ComplexityAnalyzer, FixedIncrementAnalyzer
from ..errors import AllocationFailure, InvalidInput, StateMisuse
from ..events import EventSink, EventType
from .pattern import Pattern, create_pattern

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CAPACITY = 10


class PatternStore:
    """Owns a growable, insertion-ordered collection of Patterns.

    Growth policy:
      The store keeps a slot array of `capacity` entries. When an insert finds
      `count == capacity`, the capacity doubles before the new pattern is
      appended. Exact doubling keeps insertion amortized O(1); capacity never
      grows before it is exhausted, so `capacity >= count` always holds.

    Ownership:
      A pattern belongs to exactly one store once added (duplicates by value are
      fine, the same Pattern object twice is not). `destroy()` releases every
      pattern and the slot array; any later operation raises StateMisuse.

    Concurrency:
      Mutation (`add`, `analyze_complexity`, `destroy`) runs under a re-entrant
      lock. Readers call `snapshot()`, which returns a tuple of pattern copies
      taken under the same lock, so a session never observes a half-applied
      insert or a complexity update made after it started.
    """

    def __init__(
        self,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        *,
        analyzer: ComplexityAnalyzer | None = None,
        events: EventSink | None = None,
    ) -> None:
        if isinstance(initial_capacity, bool) or not isinstance(initial_capacity, int):
            raise InvalidInput("initial_capacity must be an int", data={"value": repr(initial_capacity)})
        if initial_capacity < 1:
            raise InvalidInput("initial_capacity must be >= 1", data={"value": initial_capacity})

        self.store_id = uuid.uuid4().hex
        self.analyzer: ComplexityAnalyzer = analyzer or FixedIncrementAnalyzer()
        self.events = events

        self._lock = threading.RLock()
        self._count = 0
        self._capacity = initial_capacity
        self._destroyed = False
        try:
            self._slots: list[Pattern | None] = [None] * initial_capacity
        except MemoryError as e:
            raise AllocationFailure("Cannot allocate pattern store", data={"capacity": initial_capacity}) from e

    # --------------------
    # Introspection
    # --------------------
    @property
    def count(self) -> int:
        with self._lock:
            self._ensure_alive()
            return self._count

    @property
    def capacity(self) -> int:
        with self._lock:
            self._ensure_alive()
            return self._capacity

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[Pattern]:
        return iter(self.snapshot())

    def __getitem__(self, index: int) -> Pattern:
        return self.snapshot()[index]

    def snapshot(self) -> tuple[Pattern, ...]:
        """Returns detached copies of the stored patterns, in insertion order.

        The copies are taken under the lock and carry no owner, so later analysis
        or inserts never change what a reader already holds.
        """
        with self._lock:
            self._ensure_alive()
            return tuple(replace(p, owner_id=None) for p in self._slots[: self._count] if p is not None)

    def index_of(self, pattern: Pattern) -> int:
        with self._lock:
            self._ensure_alive()
            for i in range(self._count):
                if self._slots[i] is pattern:
                    return i
        raise InvalidInput("Pattern is not held by this store", data={"store_id": self.store_id})

    # --------------------
    # Ingestion
    # --------------------
    def add(self, pattern: Pattern) -> int:
        """Appends a pattern and returns its index.

        Raises:
            InvalidInput: If the object is not a Pattern or is already owned by a store.
            AllocationFailure: If growing the slot array fails.
            StateMisuse: If the store was destroyed.
        """
        if not isinstance(pattern, Pattern):
            raise InvalidInput("Only Pattern instances can be added", data={"type": str(type(pattern))})

        with self._lock:
            self._ensure_alive()
            if pattern.owner_id is not None:
                raise InvalidInput(
                    "Pattern is already owned by a store",
                    data={"owner_id": pattern.owner_id, "store_id": self.store_id},
                )

            if self._count == self._capacity:
                self._grow()

            index = self._count
            self._slots[index] = pattern
            pattern.owner_id = self.store_id
            self._count += 1
            capacity = self._capacity

        if self.events is not None:
            self.events.emit(
                EventType.pattern_added,
                {"store_id": self.store_id, "index": index, "language": pattern.language, "capacity": capacity},
            )
        return index

    def add_new(self, snippet: str, language: str, complexity: float = 0.0) -> Pattern:
        """Creates a pattern through the factory and adds it in one call."""
        pattern = create_pattern(snippet, language, complexity)
        self.add(pattern)
        return pattern

    def _grow(self) -> None:
        new_capacity = self._capacity * 2
        try:
            self._slots.extend([None] * (new_capacity - len(self._slots)))
        except MemoryError as e:
            raise AllocationFailure(
                "Cannot grow pattern store",
                data={"capacity": self._capacity, "requested": new_capacity},
            ) from e
        logger.debug("Pattern store %s grew from %d to %d", self.store_id, self._capacity, new_capacity)
        self._capacity = new_capacity

    def analyze_complexity(self, pattern: Pattern) -> float:
        """Updates `pattern.complexity` in place through the configured analyzer.

        Only patterns held by this store can be analyzed.
        """
        with self._lock:
            index = self.index_of(pattern)
            value = float(self.analyzer.analyze(pattern))
            pattern.complexity = value

        if self.events is not None:
            self.events.emit(
                EventType.pattern_analyzed,
                {"store_id": self.store_id, "index": index, "complexity": value},
            )
        return value

    # --------------------
    # Teardown
    # --------------------
    def destroy(self) -> None:
        """Releases every pattern and the slot array. The store is unusable afterwards."""
        with self._lock:
            self._ensure_alive()
            released = self._count
            for i in range(self._count):
                p = self._slots[i]
                if p is not None:
                    p.owner_id = None
                self._slots[i] = None
            self._slots = []
            self._count = 0
            self._capacity = 0
            self._destroyed = True

        if self.events is not None:
            self.events.emit(EventType.store_destroyed, {"store_id": self.store_id, "released": released})

    def __enter__(self) -> "PatternStore":
        return self

    def __exit__(self, *exc: object) -> None:
        if not self._destroyed:
            self.destroy()

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise StateMisuse("Pattern store was destroyed", data={"store_id": self.store_id})
