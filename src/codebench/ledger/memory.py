# src/codebench/ledger/memory.py
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable

from .client import (
    GENESIS_HASH,
    LedgerProof,
    LedgerReceipt,
    chain_hash,
    content_hash,
    require_commit_inputs,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


class MemoryLedgerClient:
    """Keeps ledger entries in process memory (local mock, no network I/O).

    Entries are append-only and hash-chained like the SQLite backend, so proofs
    look the same in tests and local experiments.
    """

    def __init__(self, *, clock: Callable[[], str] = utc_now_iso) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: list[LedgerReceipt] = []

    @property
    def entries(self) -> tuple[LedgerReceipt, ...]:
        with self._lock:
            return tuple(self._entries)

    def commit(self, content: str, description: str) -> LedgerReceipt:
        require_commit_inputs(content, description)
        h = content_hash(content)
        with self._lock:
            prev = self._entries[-1].chain_hash if self._entries else GENESIS_HASH
            receipt = LedgerReceipt(
                entry_id=uuid.uuid4().hex,
                content_hash=h,
                description=description,
                timestamp=self._clock(),
                chain_hash=chain_hash(prev, h),
            )
            self._entries.append(receipt)
        logger.info("Committing code to ledger: %s - %s", description, h[:12])
        return receipt

    def verify(self, query: str) -> LedgerProof:
        q = str(query or "")
        candidates = {q, content_hash(q)} if q else set()
        with self._lock:
            for position, entry in enumerate(self._entries):
                if entry.entry_id in candidates or entry.content_hash in candidates:
                    return LedgerProof(
                        found=True,
                        query=q,
                        entry_id=entry.entry_id,
                        content_hash=entry.content_hash,
                        proof=(
                            f"entry {entry.entry_id} at position {position} "
                            f"recorded {entry.timestamp}; chain {entry.chain_hash}"
                        ),
                    )
        return LedgerProof(found=False, query=q, proof="no matching entry")

    def close(self) -> None:
        """Nothing to release; entries stay readable."""

    def __enter__(self) -> "MemoryLedgerClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
