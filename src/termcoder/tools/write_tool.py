from typing import Any

from loguru import logger

from termcoder.errors import ToolError
from termcoder.tools.paths import resolve_path


class WriteTool:
    def __init__(self, working_directory: str | None = None):
        self._working_directory = working_directory

    @property
    def name(self) -> str:
        return "write"

    @property
    def description(self) -> str:
        return "Write content to a file. Overwrites if file exists."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the file to write to.",
                },
                "content": {
                    "type": "string",
                    "description": "Content to write to the file.",
                },
            },
            "required": ["file_path", "content"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> str:
        path = resolve_path(tool_input["file_path"], self._working_directory)
        try:
            if not path.parent.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
                logger.info(f"Created parent directories for {path}")
            path.write_text(tool_input["content"], encoding="utf-8")
        except OSError as ex:
            raise ToolError(f"Failed to write to file {path}: {ex}") from ex
        return f"Successfully wrote to file {path}"
