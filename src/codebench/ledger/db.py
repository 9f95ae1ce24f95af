# src/codebench/ledger/db.py
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


def open_ledger_db(db_path: Path, *, schema_sql: str) -> sqlite3.Connection:
    """Opens (creating if needed) a ledger database and applies its schema.

    The connection runs in autocommit mode; appends go through `append_tx()`.
    It may be shared across threads as long as callers serialize access.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA busy_timeout = 5000;")
    conn.executescript(schema_sql)
    return conn


@contextmanager
def append_tx(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Wraps one append in BEGIN IMMEDIATE so reading the chain head and inserting
    the next row happen under the same write lock.
    """
    conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
        conn.execute("COMMIT;")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK;")
        raise
