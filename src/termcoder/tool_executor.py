from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from termcoder.errors import ToolError
from termcoder.tools import LsTool, ViewTool, WriteTool

_JSON_TYPES: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "integer": int,
    "number": (int, float),
    "boolean": bool,
    "object": dict,
    "array": list,
}


@runtime_checkable
class Tool(Protocol):
    """A capability the model may invoke by name.

    ``input_schema`` is the JSON schema sent to the model and checked by the
    executor before ``execute`` runs. ``execute`` raises ToolError for failures
    the model should see as an error result.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> dict[str, Any]: ...

    async def execute(self, tool_input: dict[str, Any]) -> str: ...


@dataclass(frozen=True)
class ToolOutcome:
    output: str
    is_error: bool = False


def builtin_tools(working_directory: str | None = None) -> list[Tool]:
    return [
        LsTool(working_directory),
        ViewTool(working_directory),
        WriteTool(working_directory),
    ]


class ToolExecutor:
    """Dispatches a tool name and a JSON argument blob to a registered tool.

    ``execute`` never raises: bad JSON, schema violations, unknown tool names
    and tool failures all come back as an error outcome so they can be handed
    to the model as conversational data.
    """

    def __init__(self, tools: list[Tool], *, max_result_chars: int = 40_000):
        self._tool_map: dict[str, Tool] = {t.name: t for t in tools}
        self._max_result_chars = max_result_chars

    @property
    def tool_names(self) -> list[str]:
        return list(self._tool_map)

    def definitions(self) -> list[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.input_schema,
                },
            }
            for t in self._tool_map.values()
        ]

    async def execute(self, name: str, arguments_json: str) -> ToolOutcome:
        tool = self._tool_map.get(name)
        if tool is None:
            logger.warning(f"Attempted to execute unknown tool: {name}")
            return ToolOutcome(f"Unknown tool: {name}", is_error=True)

        try:
            tool_input = self._parse_arguments(name, arguments_json)
            self._validate(tool, tool_input)
        except ValueError as ex:
            return ToolOutcome(str(ex), is_error=True)

        logger.info(f"Executing tool {name} with args: {arguments_json}")
        try:
            result = await tool.execute(tool_input)
        except ToolError as ex:
            return ToolOutcome(str(ex), is_error=True)
        except Exception as ex:
            logger.exception(f"Tool {name} raised unexpectedly")
            return ToolOutcome(f'Error executing tool "{name}": {ex}', is_error=True)
        return ToolOutcome(self._truncate(result, name))

    @staticmethod
    def _parse_arguments(name: str, arguments_json: str) -> dict[str, Any]:
        if not arguments_json.strip():
            return {}
        try:
            parsed = json.loads(arguments_json)
        except json.JSONDecodeError as ex:
            raise ValueError(f"Invalid JSON arguments for {name}: {ex}") from ex
        if not isinstance(parsed, dict):
            raise ValueError(f"Invalid JSON arguments for {name}: expected an object")
        return parsed

    @staticmethod
    def _validate(tool: Tool, tool_input: dict[str, Any]) -> None:
        schema = tool.input_schema
        properties = schema.get("properties", {})
        for key in schema.get("required", []):
            if key not in tool_input:
                raise ValueError(f"Missing or invalid string argument: {key}")
        for key, value in tool_input.items():
            expected = _JSON_TYPES.get(properties.get(key, {}).get("type", ""))
            if expected is None or (value is None and key not in schema.get("required", [])):
                continue
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ValueError(
                    f"Invalid argument {key} for {tool.name}: expected {properties[key]['type']}"
                )

    def _truncate(self, result: str, tool_name: str) -> str:
        if self._max_result_chars <= 0 or len(result) <= self._max_result_chars:
            return result

        original_length = len(result)
        truncated = result[: self._max_result_chars]
        message = (
            f"\n\n[OUTPUT TRUNCATED: Showing {self._max_result_chars:,} "
            f"of {original_length:,} characters from {tool_name}]"
        )
        logger.warning(
            f"{tool_name} output truncated from {original_length:,} "
            f"to {self._max_result_chars:,} chars"
        )
        return truncated + message
