# src/codebench/ledger/client.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from ..errors import InvalidInput

GENESIS_HASH = "0" * 64


def content_hash(content: str) -> str:
    """Returns the sha256 hex digest of UTF-8 encoded content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def chain_hash(prev_hash: str, entry_hash: str) -> str:
    """Links an entry to its predecessor: sha256(prev_hash + entry_hash)."""
    return hashlib.sha256(f"{prev_hash}{entry_hash}".encode("utf-8")).hexdigest()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def require_commit_inputs(content: object, description: object) -> None:
    if not isinstance(content, str) or not content:
        raise InvalidInput("ledger content must be a non-empty string", data={"field": "content"})
    if not isinstance(description, str) or not description.strip():
        raise InvalidInput("ledger description must be a non-empty string", data={"field": "description"})


@dataclass(frozen=True, slots=True)
class LedgerReceipt:
    """Acknowledgment returned by a ledger commit.

    Fields:
    - entry_id: Ledger-assigned identifier of the entry.
    - content_hash: sha256 of the committed content (the content itself is not stored).
    - description: Caller-supplied description, e.g. "Final Suggestion".
    - timestamp: UTC ISO-8601 time of the commit.
    - chain_hash: Hash linking this entry to the previous one.
    """

    entry_id: str
    content_hash: str
    description: str
    timestamp: str
    chain_hash: str

    def to_dict(self) -> dict[str, object]:
        return {
            "entry_id": self.entry_id,
            "content_hash": self.content_hash,
            "description": self.description,
            "timestamp": self.timestamp,
            "chain_hash": self.chain_hash,
        }


@dataclass(frozen=True, slots=True)
class LedgerProof:
    """Result of a verification query: found/not-found plus proof text."""

    found: bool
    query: str
    entry_id: str | None = None
    content_hash: str | None = None
    proof: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "found": bool(self.found),
            "query": self.query,
            "entry_id": self.entry_id,
            "content_hash": self.content_hash,
            "proof": self.proof,
        }


class LedgerClient(Protocol):
    """Defines the call contract of the external record-keeping service.

    - commit(): durably records content and returns a receipt; synchronous for the caller.
    - verify(): accepts an entry id, a content hash, or the content text itself.
    - close(): releases the backend (a no-op for in-memory ledgers).

    Implementations raise LedgerUnavailable when a call cannot complete.
    """

    def commit(self, content: str, description: str) -> LedgerReceipt:
        ...

    def verify(self, query: str) -> LedgerProof:
        ...

    def close(self) -> None:
        ...
