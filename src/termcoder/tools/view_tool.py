from typing import Any

from termcoder.errors import ToolError
from termcoder.tools.paths import resolve_path


class ViewTool:
    def __init__(self, working_directory: str | None = None):
        self._working_directory = working_directory

    @property
    def name(self) -> str:
        return "view"

    @property
    def description(self) -> str:
        return "View file contents."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the file to view.",
                },
            },
            "required": ["file_path"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> str:
        path = resolve_path(tool_input["file_path"], self._working_directory)
        if not path.exists():
            raise ToolError(f"File does not exist: {path}")
        if not path.is_file():
            raise ToolError(f"Path is not a file: {path}")
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as ex:
            raise ToolError(f"Failed to read file: {ex}") from ex
