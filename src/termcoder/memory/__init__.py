from termcoder.memory.models import (
    Author,
    ContentPart,
    Message,
    Session,
    TextPart,
    ToolRequestPart,
    ToolResultPart,
)
from termcoder.memory.session_repository import SessionPersistence, SessionRepository
from termcoder.memory.store import MemoryStore

__all__ = [
    "Author",
    "ContentPart",
    "MemoryStore",
    "Message",
    "Session",
    "SessionPersistence",
    "SessionRepository",
    "TextPart",
    "ToolRequestPart",
    "ToolResultPart",
]
