"""SQLite persistence for saved quotes.

Quotes are immutable snapshots stored as JSON payloads keyed by their UUID.
Provides schema, connection management and save/get/list/delete.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from .config import default_config
from .quotes import QuoteSnapshot

logger = logging.getLogger("hoursforecast.db")


def default_db_path() -> Path:
    return Path(default_config().db_path)


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


def get_connection(db_path: str | Path | None = None) -> sqlite3.Connection:
    path = Path(db_path) if db_path else default_db_path()
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Context manager that commits on success, rolls back on error."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


# ---------------------------------------------------------------------------
# Schema & init
# ---------------------------------------------------------------------------

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS saved_quotes (
    id          TEXT PRIMARY KEY,
    description TEXT NOT NULL,
    total_pay   REAL NOT NULL DEFAULT 0,
    payload     TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    seq         INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_saved_quotes_seq ON saved_quotes(seq);
"""


def init_db(db_path: str | Path | None = None) -> Path:
    path = Path(db_path) if db_path else default_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(path)
    try:
        conn.executescript(_SCHEMA)
        conn.commit()
    finally:
        conn.close()
    return path


# ---------------------------------------------------------------------------
# Saved quotes
# ---------------------------------------------------------------------------


def save_quote(conn: sqlite3.Connection, quote: QuoteSnapshot) -> str:
    """Insert a snapshot; saving the same id twice is rejected."""
    with transaction(conn):
        (seq,) = conn.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM saved_quotes").fetchone()
        conn.execute(
            "INSERT INTO saved_quotes (id, description, total_pay, payload, created_at, seq) VALUES (?, ?, ?, ?, ?, ?)",
            (
                quote.id,
                quote.description,
                quote.total_pay,
                json.dumps(quote.to_dict(), default=str),
                quote.created_at,
                seq,
            ),
        )
    logger.info("Saved quote %s (%s)", quote.id, quote.description)
    return quote.id


def get_quote(conn: sqlite3.Connection, quote_id: str) -> QuoteSnapshot | None:
    row = conn.execute("SELECT payload FROM saved_quotes WHERE id = ?", (quote_id,)).fetchone()
    if row is None:
        return None
    return QuoteSnapshot.from_dict(json.loads(row["payload"]))


def list_quotes(conn: sqlite3.Connection) -> list[QuoteSnapshot]:
    """All saved quotes in the order they were added."""
    rows = conn.execute("SELECT payload FROM saved_quotes ORDER BY seq").fetchall()
    return [QuoteSnapshot.from_dict(json.loads(r["payload"])) for r in rows]


def delete_quote(conn: sqlite3.Connection, quote_id: str) -> bool:
    with transaction(conn):
        cur = conn.execute("DELETE FROM saved_quotes WHERE id = ?", (quote_id,))
    deleted = cur.rowcount > 0
    if deleted:
        logger.info("Deleted quote %s", quote_id)
    return deleted
