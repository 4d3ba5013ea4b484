from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


def utc_now() -> datetime:
    return datetime.now(UTC)


class Author(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ToolRequestPart:
    call_id: str
    tool_name: str
    arguments_json: str


@dataclass(frozen=True)
class ToolResultPart:
    call_id: str
    tool_name: str
    output: str
    is_error: bool


ContentPart = TextPart | ToolRequestPart | ToolResultPart


@dataclass(frozen=True)
class Message:
    author: Author
    parts: tuple[ContentPart, ...]
    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def text(cls, author: Author, text: str) -> Message:
        return cls(author=author, parts=(TextPart(text),))

    def text_content(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    def tool_requests(self) -> list[ToolRequestPart]:
        return [p for p in self.parts if isinstance(p, ToolRequestPart)]

    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]


def default_title(created_at: datetime) -> str:
    return f"Session {created_at.strftime('%Y-%m-%d %H:%M:%S')}"


@dataclass
class Session:
    """One conversation thread.

    Messages are kept in insertion order, which is conversation order. The
    only mutator is ``add_message``; it also bumps ``last_activity_at``, which
    never moves backwards even if the wall clock does.
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    title: str = ""
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    last_activity_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.title:
            self.title = default_title(self.created_at)
        if self.last_activity_at is None or self.last_activity_at < self.created_at:
            self.last_activity_at = self.created_at

    def add_message(self, message: Message) -> None:
        self.messages.append(message)
        now = utc_now()
        if now > self.last_activity_at:
            self.last_activity_at = now

    def issued_call_ids(self) -> set[str]:
        return {req.call_id for msg in self.messages for req in msg.tool_requests()}
