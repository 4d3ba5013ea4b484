from __future__ import annotations

import json

from termcoder.memory.models import Author, Message, Session, TextPart, ToolRequestPart, ToolResultPart
from termcoder.permissions import PendingToolCall

_AUTHOR_LABELS = {
    Author.USER: "you",
    Author.ASSISTANT: "assistant",
    Author.SYSTEM: "system",
    Author.TOOL: "tool",
}


def format_json_for_display(json_str: str) -> str:
    try:
        return json.dumps(json.loads(json_str), indent=2, ensure_ascii=False)
    except (json.JSONDecodeError, TypeError):
        return json_str


class SessionController:
    def __init__(self, *, line_prefix: str, short_id_len: int = 8):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def format_session_list_entry(self, session: Session, *, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        return (
            f"{self._line_prefix}{marker} {session.title} [{self.short_id(session.id)}] "
            f"(messages={len(session.messages)}, created={session.created_at.isoformat(timespec='seconds')}, "
            f"last_activity={session.last_activity_at.isoformat(timespec='seconds')})"
        )

    def format_message(self, message: Message) -> str:
        rendered: list[str] = []
        for part in message.parts:
            if isinstance(part, TextPart):
                rendered.append(part.text)
            elif isinstance(part, ToolRequestPart):
                rendered.append(
                    f"[Tool Call: {part.tool_name} with {format_json_for_display(part.arguments_json)}]"
                )
            elif isinstance(part, ToolResultPart):
                status = "ERROR:" if part.is_error else "OK:"
                rendered.append(f"[Tool Result ({part.tool_name}): {status} {part.output}]")
            else:
                raise TypeError(f"Unsupported content part: {part!r}")
        return f"{_AUTHOR_LABELS[message.author]}> {' '.join(rendered)}"

    def format_permission_prompt(self, pending: PendingToolCall) -> list[str]:
        return [
            f"{self._line_prefix}Permission required",
            f"{self._line_prefix}Tool: {pending.tool_name}",
            f"{self._line_prefix}Arguments:",
            format_json_for_display(pending.arguments_json),
        ]
