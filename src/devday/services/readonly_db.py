"""Read-only SQLite access to tool-owned databases."""

import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ReadonlyDatabase:
    """Opens a SQLite file read-only; usable as a context manager.

    The handle never writes and is closed on every exit path of the owning
    `with` block.
    """

    def __init__(self, db_path: str | Path):
        uri = Path(db_path).resolve().as_uri() + "?mode=ro"
        self._conn = sqlite3.connect(uri, uri=True)
        self._conn.row_factory = sqlite3.Row

    def all(self, sql: str, *params: Any) -> list[sqlite3.Row]:
        return self._conn.execute(sql, params).fetchall()

    def has_table(self, name: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (name,),
        ).fetchone()
        return row is not None

    def close(self):
        self._conn.close()

    def __enter__(self) -> "ReadonlyDatabase":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_readonly(db_path: str | Path) -> ReadonlyDatabase | None:
    """Open a database if it exists and is a readable SQLite file, else None."""
    path = Path(db_path)
    if not path.is_file():
        return None
    try:
        db = ReadonlyDatabase(path)
    except sqlite3.Error as e:
        logger.warning("Cannot open database %s: %s", path, e)
        return None

    try:
        # Force a read so a non-SQLite file fails here rather than mid-scan
        db.all("SELECT name FROM sqlite_master LIMIT 1")
    except sqlite3.Error as e:
        logger.warning("Cannot read database %s: %s", path, e)
        db.close()
        return None
    return db
