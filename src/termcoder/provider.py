from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from termcoder.memory.models import Message


@dataclass(frozen=True)
class ToolCallRequest:
    call_id: str
    tool_name: str
    arguments_json: str


@dataclass(frozen=True)
class ModelReply:
    text: str | None = None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)


@runtime_checkable
class ModelGateway(Protocol):
    async def complete(self, history: list[Message], model: str) -> ModelReply:
        """Send the ordered history to the model and return its next turn.

        Raises ConfigurationError when credentials are missing, NoChoicesError
        when the API returns no choices and ModelGatewayError for any other
        transport or API failure.
        """
        ...
