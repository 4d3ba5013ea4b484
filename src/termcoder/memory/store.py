from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from loguru import logger
from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Session store busy ({exc}). Retrying in {wait:.2f}s (attempt {attempt}/3)...")


def write_retry_kwargs() -> dict:
    return {
        "retry": retry_if_exception_type(sqlite3.OperationalError),
        "wait": wait_exponential(multiplier=0.05, min=0.05, max=0.5),
        "stop": stop_after_attempt(3),
        "before_sleep": _on_retry,
        "reraise": True,
    }


class MemoryStore:
    def __init__(self, db_path: str):
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._initialize_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(query, params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY NOT NULL,
                title TEXT NOT NULL,
                created_at TEXT NOT NULL,
                last_activity_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY NOT NULL,
                session_id TEXT NOT NULL REFERENCES sessions(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                author TEXT NOT NULL CHECK (author IN ('user', 'assistant', 'system', 'tool')),
                parts TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                UNIQUE(session_id, seq)
            );

            CREATE INDEX IF NOT EXISTS idx_messages_session_timestamp
                ON messages(session_id, timestamp, seq);
            """
        )
        self._conn.commit()
