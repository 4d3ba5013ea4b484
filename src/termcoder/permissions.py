from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from termcoder.provider import ToolCallRequest


class PermissionScope(str, Enum):
    ONCE = "once"
    SESSION = "session"


class PermissionState(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass(frozen=True)
class PendingToolCall:
    """The single tool invocation waiting for an allow/deny decision.

    ``session_id`` names the session that owns the decision. ``deferred`` holds
    the requests from the same assistant turn that come after this one; they
    are addressed in order once this call is resolved.
    """

    call_id: str
    tool_name: str
    arguments_json: str
    session_id: str
    deferred: tuple[ToolCallRequest, ...] = field(default_factory=tuple)

    @classmethod
    def from_request(
        cls,
        request: ToolCallRequest,
        session_id: str,
        deferred: list[ToolCallRequest] | tuple[ToolCallRequest, ...] = (),
    ) -> PendingToolCall:
        return cls(
            call_id=request.call_id,
            tool_name=request.tool_name,
            arguments_json=request.arguments_json,
            session_id=session_id,
            deferred=tuple(deferred),
        )

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(self.call_id, self.tool_name, self.arguments_json)


class PermissionCache:
    """Session-scoped tool decisions. Lives for the process lifetime only."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], PermissionState] = {}

    def get(self, tool_name: str, session_id: str) -> PermissionState | None:
        return self._entries.get((tool_name, session_id))

    def set(self, tool_name: str, session_id: str, state: PermissionState) -> None:
        logger.info(f"Setting permission for tool '{tool_name}' in session {session_id} to {state.value}")
        self._entries[(tool_name, session_id)] = state

    def __len__(self) -> int:
        return len(self._entries)
