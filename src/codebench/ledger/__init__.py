"""Ledger boundary: commit/verify contract, local backends and the commit retry policy."""

from .client import (
    GENESIS_HASH,
    LedgerClient,
    LedgerProof,
    LedgerReceipt,
    chain_hash,
    content_hash,
)
from .memory import MemoryLedgerClient
from .retry import RetryPolicy
from .sqlite import SqliteLedgerClient

__all__ = [
    "GENESIS_HASH",
    "LedgerClient",
    "LedgerProof",
    "LedgerReceipt",
    "chain_hash",
    "content_hash",
    "MemoryLedgerClient",
    "RetryPolicy",
    "SqliteLedgerClient",
]
