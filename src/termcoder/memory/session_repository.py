from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol, runtime_checkable

from loguru import logger
from tenacity import retry

from termcoder.errors import PersistenceError
from termcoder.memory.codec import decode_parts, encode_parts
from termcoder.memory.models import Author, Message, Session
from termcoder.memory.store import MemoryStore, write_retry_kwargs


@runtime_checkable
class SessionPersistence(Protocol):
    def load_all_sessions(self) -> list[Session]: ...

    def upsert_session_metadata(self, session: Session) -> None: ...

    def append_message(self, session_id: str, message: Message) -> None: ...


def _to_text(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _from_text(value: str) -> datetime:
    return datetime.fromisoformat(value)


class SessionRepository:
    """SQLite implementation of the session persistence port.

    Messages are append-only; session rows are upserted. Write failures are
    retried briefly on a locked database and then surface as PersistenceError.
    """

    def __init__(self, store: MemoryStore):
        self._store = store

    def load_all_sessions(self) -> list[Session]:
        rows = self._store.execute(
            """
            SELECT id, title, created_at, last_activity_at
            FROM sessions
            ORDER BY last_activity_at DESC
            """
        ).fetchall()
        sessions: list[Session] = []
        for row in rows:
            session = Session(
                id=row["id"],
                title=row["title"],
                created_at=_from_text(row["created_at"]),
                last_activity_at=_from_text(row["last_activity_at"]),
            )
            session.messages = self.load_messages(session.id)
            sessions.append(session)
        logger.info(f"Loaded {len(sessions)} sessions from {self._store.db_path}")
        return sessions

    def load_messages(self, session_id: str) -> list[Message]:
        rows = self._store.execute(
            """
            SELECT id, author, parts, timestamp
            FROM messages
            WHERE session_id = ?
            ORDER BY timestamp ASC, seq ASC
            """,
            (session_id,),
        ).fetchall()
        return [
            Message(
                id=row["id"],
                author=Author(row["author"]),
                parts=decode_parts(row["parts"]),
                timestamp=_from_text(row["timestamp"]),
            )
            for row in rows
        ]

    def upsert_session_metadata(self, session: Session) -> None:
        try:
            self._upsert(session)
        except sqlite3.Error as ex:
            self._store.rollback()
            raise PersistenceError(f"Failed to save session {session.id}: {ex}") from ex

    def append_message(self, session_id: str, message: Message) -> None:
        try:
            self._append(session_id, message)
        except sqlite3.Error as ex:
            self._store.rollback()
            raise PersistenceError(
                f"Failed to save message {message.id} for session {session_id}: {ex}"
            ) from ex

    @retry(**write_retry_kwargs())
    def _upsert(self, session: Session) -> None:
        logger.debug(f"Saving session {session.id}")
        self._store.execute(
            """
            INSERT INTO sessions (id, title, created_at, last_activity_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                last_activity_at = excluded.last_activity_at
            """,
            (session.id, session.title, _to_text(session.created_at), _to_text(session.last_activity_at)),
        )
        self._store.commit()

    @retry(**write_retry_kwargs())
    def _append(self, session_id: str, message: Message) -> None:
        logger.debug(f"Saving message {message.id} for session {session_id}")
        row = self._store.execute(
            "SELECT COALESCE(MAX(seq), 0) AS max_seq FROM messages WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        next_seq = int(row["max_seq"]) + 1
        self._store.execute(
            """
            INSERT INTO messages (id, session_id, seq, author, parts, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.id,
                session_id,
                next_seq,
                message.author.value,
                encode_parts(message.parts),
                _to_text(message.timestamp),
            ),
        )
        self._store.commit()
