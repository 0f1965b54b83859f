"""SQLite persistence for settings and per-question answers."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

SCHEMA_VERSION = 1

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerRecord:
    """Stored inputs for one question."""

    id: str
    level: str
    question: str
    inputs: str


class ProgressStore:
    """Database access layer for game progress.

    The connection may be used from the game's write worker thread, but every
    call is serialized by the caller, so one connection is shared.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize database and schema."""
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        else:
            target = db_path
        self._conn = sqlite3.connect(target, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        try:
            self._apply_migrations()
        except Exception:
            self._conn.close()
            raise

    def _apply_migrations(self) -> None:
        """Apply forward-only schema migrations to latest version."""
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")

        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """)

        for version in range(current + 1, SCHEMA_VERSION + 1):
            if version == 1:
                self._migrate_to_v1()
            with self._conn:
                self._conn.execute(f"PRAGMA user_version = {version}")
                self._conn.execute(
                    "INSERT OR REPLACE INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, datetime.now(UTC).isoformat()),
                )

    def _migrate_to_v1(self) -> None:
        """Create the key-value and answers tables."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS key_value (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS answers (
                    id TEXT PRIMARY KEY,
                    level TEXT,
                    question TEXT,
                    inputs TEXT
                )
                """)

    def get_value(self, key: str) -> str | None:
        """Return one stored setting value."""
        row = self._conn.execute("SELECT value FROM key_value WHERE key = ?", (key,)).fetchone()
        if row is None or row["value"] is None:
            return None
        return str(row["value"])

    def put_value(self, key: str, value: str) -> None:
        """Insert or replace one setting value."""
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO key_value (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )

    def list_answers(self) -> list[AnswerRecord]:
        """Return all stored answer records ordered by id."""
        rows = self._conn.execute("SELECT id, level, question, inputs FROM answers ORDER BY id").fetchall()
        return [
            AnswerRecord(
                id=str(row["id"]),
                level=str(row["level"]),
                question=str(row["question"]),
                inputs=str(row["inputs"]),
            )
            for row in rows
        ]

    def put_answer(self, record: AnswerRecord) -> None:
        """Upsert the inputs of one question."""
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO answers (id, level, question, inputs) VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    level = excluded.level,
                    question = excluded.question,
                    inputs = excluded.inputs
                """,
                (record.id, record.level, record.question, record.inputs),
            )

    def delete_answers(self) -> int:
        """Delete every stored answer and return the number of removed rows."""
        with self._conn:
            cursor = self._conn.execute("DELETE FROM answers")
        return cursor.rowcount

    def close(self) -> None:
        """Close db connection."""
        self._conn.close()


def open_store(db_path: Path | str | None) -> ProgressStore | None:
    """Open the store, or return None to run without persistence."""
    if db_path is None:
        logger.info("No database configured; progress is kept in memory only.")
        return None
    try:
        return ProgressStore(db_path)
    except (sqlite3.Error, OSError, RuntimeError) as exc:
        logger.warning("Progress database unavailable (%s); progress is kept in memory only.", exc)
        return None
