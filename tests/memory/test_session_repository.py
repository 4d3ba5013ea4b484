import sqlite3
import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from termcoder.errors import PersistenceError
from termcoder.memory import (
    Author,
    MemoryStore,
    Message,
    Session,
    SessionRepository,
    TextPart,
    ToolRequestPart,
    ToolResultPart,
)
from tests.memory.base import MemoryStoreTestCase


class SessionRepositoryTests(MemoryStoreTestCase):
    def _conversation(self) -> tuple[Session, list[Message]]:
        session = Session(title="Round trip")
        messages = [
            Message.text(Author.USER, "list the files"),
            Message(
                author=Author.ASSISTANT,
                parts=(TextPart("Sure."), ToolRequestPart("call_1", "ls", '{"path": "."}')),
            ),
            Message(author=Author.TOOL, parts=(ToolResultPart("call_1", "ls", "[FILE] a.txt", False),)),
            Message.text(Author.SYSTEM, "Error: LLM request failed: boom"),
        ]
        self._repo.upsert_session_metadata(session)
        for message in messages:
            session.add_message(message)
            self._repo.append_message(session.id, message)
            self._repo.upsert_session_metadata(session)
        return session, messages

    def test_round_trip_reproduces_messages(self) -> None:
        session, messages = self._conversation()

        loaded = self._repo.load_all_sessions()

        self.assertEqual(1, len(loaded))
        restored = loaded[0]
        self.assertEqual(session.id, restored.id)
        self.assertEqual("Round trip", restored.title)
        self.assertEqual(session.created_at, restored.created_at)
        self.assertEqual(session.last_activity_at, restored.last_activity_at)
        self.assertEqual(messages, restored.messages)

    def test_round_trip_survives_reopening_the_database(self) -> None:
        session, messages = self._conversation()
        self._store.close()

        self._store = MemoryStore(self._db_path)
        self._repo = SessionRepository(self._store)

        self.assertEqual(messages, self._repo.load_messages(session.id))

    def test_messages_with_equal_timestamps_keep_insertion_order(self) -> None:
        session = Session()
        self._repo.upsert_session_metadata(session)
        stamp = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        ids = []
        for i in range(3):
            message = Message(author=Author.USER, parts=(TextPart(str(i)),), timestamp=stamp)
            ids.append(message.id)
            self._repo.append_message(session.id, message)

        self.assertEqual(ids, [m.id for m in self._repo.load_messages(session.id)])

    def test_sessions_load_most_recent_first(self) -> None:
        base = datetime(2024, 1, 1, tzinfo=UTC)
        old = Session(title="old", created_at=base, last_activity_at=base + timedelta(hours=1))
        new = Session(title="new", created_at=base, last_activity_at=base + timedelta(hours=2))
        self._repo.upsert_session_metadata(old)
        self._repo.upsert_session_metadata(new)

        self.assertEqual(["new", "old"], [s.title for s in self._repo.load_all_sessions()])

    def test_upsert_updates_title_without_losing_messages(self) -> None:
        session, messages = self._conversation()
        session.title = "Renamed"

        self._repo.upsert_session_metadata(session)

        restored = self._repo.load_all_sessions()[0]
        self.assertEqual("Renamed", restored.title)
        self.assertEqual(len(messages), len(restored.messages))

    def test_append_for_unknown_session_raises_persistence_error(self) -> None:
        with self.assertRaises(PersistenceError):
            self._repo.append_message("no-such-session", Message.text(Author.USER, "hi"))

    def test_duplicate_message_id_raises_persistence_error(self) -> None:
        session = Session()
        self._repo.upsert_session_metadata(session)
        message = Message.text(Author.USER, "hi")
        self._repo.append_message(session.id, message)

        with self.assertRaises(PersistenceError):
            self._repo.append_message(session.id, message)


class SessionRepositoryRetryTests(unittest.TestCase):
    def test_locked_database_is_retried_then_wrapped(self) -> None:
        store = MemoryStore(":memory:")
        repo = SessionRepository(store)
        calls = []

        def locked(*args, **kwargs):
            calls.append(args)
            raise sqlite3.OperationalError("database is locked")

        try:
            with patch.object(store, "execute", side_effect=locked), patch("time.sleep"):
                with self.assertRaises(PersistenceError):
                    repo.upsert_session_metadata(Session())
        finally:
            store.close()

        self.assertEqual(3, len(calls))


if __name__ == "__main__":
    unittest.main()
