# invoice_engine/database/__init__.py
from __future__ import annotations

from pathlib import Path
import sqlite3

from ..config import DB_PATH
from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION
from . import schema as schema_module


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the single-row version table and stamp it with SCHEMA_VERSION if empty."""
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)
    conn.execute(
        f"INSERT OR IGNORE INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?);",
        (SCHEMA_VERSION,),
    )


def schema_version(conn: sqlite3.Connection) -> str | None:
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row[0] if row else None


def set_schema_version(conn: sqlite3.Connection, version: str) -> None:
    """Record the ledger's schema version after a migration step."""
    with conn:
        _ensure_version_table(conn)
        conn.execute(f"UPDATE {TABLE_SCHEMA_VERSION} SET version=? WHERE id=1;", (version,))


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """
    Returns a sqlite3.Connection to the ledger (default: config.DB_PATH) with:
      - WAL mode
      - foreign_keys ON
      - row_factory = sqlite3.Row (so rows behave like dicts and tuples)
    Ensures the schema and its version row are applied idempotently.
    """
    path = Path(db_path) if db_path is not None else DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    # Always apply the schema (idempotent: uses CREATE IF NOT EXISTS / DROP TRIGGER IF EXISTS)
    schema_module.init_schema(path)

    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")

    _ensure_version_table(conn)

    conn.commit()
    return conn


__all__ = [
    "get_connection",
    "schema_version",
    "set_schema_version",
]
