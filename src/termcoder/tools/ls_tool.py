from typing import Any

from termcoder.errors import ToolError
from termcoder.tools.paths import resolve_path


class LsTool:
    def __init__(self, working_directory: str | None = None):
        self._working_directory = working_directory

    @property
    def name(self) -> str:
        return "ls"

    @property
    def description(self) -> str:
        return "List directory contents."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Optional path to list contents of. Defaults to current directory.",
                },
            },
            "required": [],
        }

    async def execute(self, tool_input: dict[str, Any]) -> str:
        path = resolve_path(tool_input.get("path") or ".", self._working_directory)
        if not path.exists():
            raise ToolError(f"Path does not exist: {path}")
        if not path.is_dir():
            raise ToolError(f"Path is not a directory: {path}")

        try:
            entries = sorted(path.iterdir(), key=lambda p: p.name)
        except OSError as ex:
            raise ToolError(f"Failed to read directory: {ex}") from ex

        lines = [f"{'[DIR]' if entry.is_dir() else '[FILE]'} {entry.name}" for entry in entries]
        return "\n".join(lines)
