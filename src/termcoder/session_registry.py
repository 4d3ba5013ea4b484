from __future__ import annotations

from collections.abc import Iterator

from termcoder.memory.models import Session


class SessionRegistry:
    """In-memory mapping from session id to Session, owned by the orchestrator."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def find(self, identifier: str) -> list[Session]:
        """Match by full id, id prefix or case-insensitive title."""
        identifier = identifier.strip()
        if identifier in self._sessions:
            return [self._sessions[identifier]]
        folded = identifier.casefold()
        return [
            s for s in self._sessions.values()
            if s.id.startswith(identifier) or s.title.casefold() == folded
        ]

    def most_recent(self) -> Session | None:
        if not self._sessions:
            return None
        return max(self._sessions.values(), key=lambda s: s.last_activity_at)

    def recent_first(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.last_activity_at, reverse=True)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)
