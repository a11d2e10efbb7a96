"""
SQLite durable store for the memory index.
One collection table, one record per key; the collection is created on first open.
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional, Tuple

from .config import DB_PATH, ensure_db_directory

SCHEMA_VERSION = 1
COLLECTION = "embeddings"


def _ensure_collection(conn: sqlite3.Connection):
    """Create the collection table if this database has not been opened before."""
    version = conn.execute("PRAGMA user_version").fetchone()[0]
    if version >= SCHEMA_VERSION:
        return

    conn.execute(f'''
        CREATE TABLE IF NOT EXISTS {COLLECTION} (
            id TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            timestamp REAL
        )
    ''')
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
    conn.commit()


@contextmanager
def get_db(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection with the collection in place."""
    path = db_path or DB_PATH
    ensure_db_directory(path)
    conn = sqlite3.connect(path)
    try:
        _ensure_collection(conn)
        yield conn
    finally:
        conn.close()


def put_record(record_id: str, payload: str, timestamp: float, db_path: str = None):
    """Clear the collection and store a single record."""
    with get_db(db_path) as conn:
        conn.execute(f"DELETE FROM {COLLECTION}")
        conn.execute(
            f"INSERT INTO {COLLECTION} (id, payload, timestamp) VALUES (?, ?, ?)",
            (record_id, payload, timestamp)
        )
        conn.commit()


def get_record(record_id: str, db_path: str = None) -> Optional[Tuple[str, float]]:
    """Return (payload, timestamp) for a record, or None if absent."""
    with get_db(db_path) as conn:
        row = conn.execute(
            f"SELECT payload, timestamp FROM {COLLECTION} WHERE id = ?",
            (record_id,)
        ).fetchone()
        return (row[0], row[1]) if row else None


def health_check(db_path: str = None) -> bool:
    """Check that the database opens and holds the collection."""
    try:
        with get_db(db_path) as conn:
            tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table';").fetchall()
            return COLLECTION in [table[0] for table in tables]
    except Exception:
        return False
