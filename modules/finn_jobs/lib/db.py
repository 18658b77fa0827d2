from __future__ import annotations

import contextlib
import json
import os
import sqlite3
import threading
from typing import Any

from .logging_bridge import error as log_error
from .models import JobRecord
from .utils import now_iso


class JobStore:
    """
    SQLite-backed record sink.

    One row per job URL; the JSON payload is replaced on every append so the
    latest extraction wins, while first_seen_utc keeps the original sighting.
    """

    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = sqlite_path
        self._lock = threading.Lock()
        init_db(sqlite_path)

    def append(self, record: JobRecord) -> bool:
        """Upsert one record; True if its URL was not stored before."""
        ts = now_iso()
        payload = json.dumps(record.to_dict(), ensure_ascii=False, sort_keys=True)
        try:
            with self._lock, contextlib.closing(_connect(self.sqlite_path)) as conn:
                _apply_pragmas(conn)
                cur = conn.cursor()
                cur.execute("BEGIN IMMEDIATE")
                cur.execute(
                    """
                    INSERT OR IGNORE INTO jobs (url, external_id, title, company, payload, first_seen_utc, last_seen_utc)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (record.url, record.external_id, record.title, record.company, payload, ts, ts),
                )
                is_new = cur.rowcount == 1
                if not is_new:
                    cur.execute(
                        """
                        UPDATE jobs
                           SET external_id = ?, title = ?, company = ?, payload = ?, last_seen_utc = ?
                         WHERE url = ?
                        """,
                        (record.external_id, record.title, record.company, payload, ts, record.url),
                    )
                conn.commit()
        except Exception as e:
            log_error({
                "component": "finn_jobs.db",
                "op": "append",
                "sqlite_path": self.sqlite_path,
                "url": record.url,
                "error": repr(e),
            })
            raise
        return is_new

    def get(self, url: str) -> dict[str, Any] | None:
        """Stored payload for a URL, or None."""
        with contextlib.closing(_connect(self.sqlite_path)) as conn:
            row = conn.execute("SELECT payload FROM jobs WHERE url = ?", (url,)).fetchone()
        return json.loads(row[0]) if row else None

    def count_rows(self) -> int:
        return count_rows(self.sqlite_path)

    def reset(self) -> None:
        with self._lock:
            reset_db(self.sqlite_path)
        init_db(self.sqlite_path)


# ---- Module-level helpers ---------------------------------------------------


def init_db(sqlite_path: str) -> None:
    """
    Ensure the SQLite database and schema exist.
    Safe to call multiple times.
    """
    _ensure_dir(sqlite_path)
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)


def count_rows(sqlite_path: str) -> int:
    """Return total rows in jobs table; 0 if DB missing/empty."""
    if not os.path.exists(sqlite_path):
        return 0
    with contextlib.closing(_connect(sqlite_path)) as conn:
        _apply_pragmas(conn)
        _ensure_schema(conn)
        (n,) = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()
    return int(n or 0)


def reset_db(sqlite_path: str) -> None:
    """
    Remove the DB file and its WAL side files (for pytest fixtures).
    Safe if they don't exist.
    """
    for suffix in ("", "-wal", "-shm"):
        with contextlib.suppress(FileNotFoundError):
            os.remove(sqlite_path + suffix)


# ---- Internal utilities -----------------------------------------------------


def _ensure_dir(sqlite_path: str) -> None:
    d = os.path.dirname(os.path.abspath(sqlite_path)) or "."
    os.makedirs(d, exist_ok=True)


def _connect(sqlite_path: str) -> sqlite3.Connection:
    # autocommit; transactions are opened explicitly
    return sqlite3.connect(sqlite_path, timeout=30.0, isolation_level=None)


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")
    conn.execute("PRAGMA cache_size=-8000;")  # approx 8MB cache


def _ensure_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS jobs (
          url TEXT PRIMARY KEY,
          external_id TEXT,
          title TEXT NOT NULL,
          company TEXT NOT NULL,
          payload TEXT NOT NULL,
          first_seen_utc TEXT NOT NULL,
          last_seen_utc TEXT NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS ix_jobs_external_id ON jobs (external_id);")
