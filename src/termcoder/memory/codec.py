"""JSON form of content parts, as stored in the ``messages.parts`` column."""

from __future__ import annotations

import json
from typing import Any

from termcoder.memory.models import ContentPart, TextPart, ToolRequestPart, ToolResultPart


def part_to_dict(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ToolRequestPart):
        return {
            "type": "tool_request",
            "call_id": part.call_id,
            "tool_name": part.tool_name,
            "arguments_json": part.arguments_json,
        }
    if isinstance(part, ToolResultPart):
        return {
            "type": "tool_result",
            "call_id": part.call_id,
            "tool_name": part.tool_name,
            "output": part.output,
            "is_error": part.is_error,
        }
    raise TypeError(f"Unsupported content part: {part!r}")


def part_from_dict(data: dict[str, Any]) -> ContentPart:
    part_type = data.get("type")
    if part_type == "text":
        return TextPart(str(data["text"]))
    if part_type == "tool_request":
        return ToolRequestPart(
            call_id=str(data["call_id"]),
            tool_name=str(data["tool_name"]),
            arguments_json=str(data["arguments_json"]),
        )
    if part_type == "tool_result":
        return ToolResultPart(
            call_id=str(data["call_id"]),
            tool_name=str(data["tool_name"]),
            output=str(data["output"]),
            is_error=bool(data["is_error"]),
        )
    raise ValueError(f"Unknown content part type: {part_type!r}")


def encode_parts(parts: tuple[ContentPart, ...] | list[ContentPart]) -> str:
    return json.dumps([part_to_dict(p) for p in parts], ensure_ascii=True)


def decode_parts(parts_json: str) -> tuple[ContentPart, ...]:
    raw = json.loads(parts_json)
    if not isinstance(raw, list):
        raise ValueError("Stored parts must be a JSON array")
    return tuple(part_from_dict(item) for item in raw)
