# src/codebench/ledger/sqlite.py
from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from collections.abc import Callable
from pathlib import Path

from ..errors import LedgerUnavailable
from .client import (
    GENESIS_HASH,
    LedgerProof,
    LedgerReceipt,
    chain_hash,
    content_hash,
    require_commit_inputs,
    utc_now_iso,
)
from .db import append_tx, open_ledger_db

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS ledger_entries (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id     TEXT NOT NULL UNIQUE,
    content_hash TEXT NOT NULL,
    description  TEXT NOT NULL,
    timestamp    TEXT NOT NULL,
    prev_hash    TEXT NOT NULL,
    chain_hash   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_ledger_content_hash ON ledger_entries(content_hash);
"""


def _receipt(row: sqlite3.Row) -> LedgerReceipt:
    return LedgerReceipt(
        entry_id=row["entry_id"],
        content_hash=row["content_hash"],
        description=row["description"],
        timestamp=row["timestamp"],
        chain_hash=row["chain_hash"],
    )


class SqliteLedgerClient:
    """Append-only, hash-chained ledger stored in a local SQLite file.

    Rows are never updated or deleted. Each row stores the chain hash of its
    predecessor, so `verify_chain()` can detect tampering. SQLite errors are
    reported as LedgerUnavailable.
    """

    def __init__(self, db_path: str | Path, *, clock: Callable[[], str] = utc_now_iso) -> None:
        self.db_path = Path(db_path)
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self._conn = open_ledger_db(self.db_path, schema_sql=SCHEMA_SQL)
        except sqlite3.Error as e:
            raise LedgerUnavailable("Cannot open ledger database", data={"path": str(self.db_path), "error": str(e)}) from e

    def commit(self, content: str, description: str) -> LedgerReceipt:
        require_commit_inputs(content, description)
        h = content_hash(content)
        entry_id = uuid.uuid4().hex
        ts = self._clock()
        try:
            with self._lock, append_tx(self._conn) as conn:
                row = conn.execute("SELECT chain_hash FROM ledger_entries ORDER BY seq DESC LIMIT 1").fetchone()
                prev = row["chain_hash"] if row is not None else GENESIS_HASH
                link = chain_hash(prev, h)
                conn.execute(
                    """
                    INSERT INTO ledger_entries(entry_id, content_hash, description, timestamp, prev_hash, chain_hash)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (entry_id, h, description, ts, prev, link),
                )
        except sqlite3.Error as e:
            raise LedgerUnavailable("Ledger commit failed", data={"path": str(self.db_path), "error": str(e)}) from e

        logger.info("Committing code to ledger %s: %s - %s", self.db_path.name, description, h[:12])
        return LedgerReceipt(entry_id=entry_id, content_hash=h, description=description, timestamp=ts, chain_hash=link)

    def verify(self, query: str) -> LedgerProof:
        q = str(query or "")
        if not q:
            return LedgerProof(found=False, query=q, proof="no matching entry")
        try:
            with self._lock:
                row = self._conn.execute(
                    """
                    SELECT seq, entry_id, content_hash, timestamp, chain_hash FROM ledger_entries
                    WHERE entry_id = ? OR content_hash = ? OR content_hash = ?
                    ORDER BY seq ASC LIMIT 1
                    """,
                    (q, q, content_hash(q)),
                ).fetchone()
        except sqlite3.Error as e:
            raise LedgerUnavailable("Ledger verify failed", data={"path": str(self.db_path), "error": str(e)}) from e

        if row is None:
            return LedgerProof(found=False, query=q, proof="no matching entry")
        return LedgerProof(
            found=True,
            query=q,
            entry_id=row["entry_id"],
            content_hash=row["content_hash"],
            proof=f"entry {row['entry_id']} at seq {row['seq']} recorded {row['timestamp']}; chain {row['chain_hash']}",
        )

    def entries(self) -> list[LedgerReceipt]:
        try:
            with self._lock:
                rows = self._conn.execute("SELECT * FROM ledger_entries ORDER BY seq ASC").fetchall()
        except sqlite3.Error as e:
            raise LedgerUnavailable("Ledger read failed", data={"path": str(self.db_path), "error": str(e)}) from e
        return [_receipt(r) for r in rows]

    def verify_chain(self) -> bool:
        """Recomputes every chain link; False means an entry was altered or removed."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT content_hash, prev_hash, chain_hash FROM ledger_entries ORDER BY seq ASC"
                ).fetchall()
        except sqlite3.Error as e:
            raise LedgerUnavailable("Ledger read failed", data={"path": str(self.db_path), "error": str(e)}) from e

        prev = GENESIS_HASH
        for r in rows:
            if r["prev_hash"] != prev or chain_hash(prev, r["content_hash"]) != r["chain_hash"]:
                return False
            prev = r["chain_hash"]
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SqliteLedgerClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
