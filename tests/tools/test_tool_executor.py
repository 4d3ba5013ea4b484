import asyncio
import json
import unittest
from typing import Any

from termcoder.errors import ToolError
from termcoder.tool_executor import Tool, ToolExecutor, builtin_tools


class _StubTool:
    def __init__(self, name: str = "echo", result: str = "ok", error: Exception | None = None):
        self._name = name
        self._result = result
        self._error = error
        self.inputs: list[dict] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Echo a message."

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string"},
                "count": {"type": "integer"},
            },
            "required": ["message"],
        }

    async def execute(self, tool_input: dict[str, Any]) -> str:
        self.inputs.append(tool_input)
        if self._error is not None:
            raise self._error
        return self._result


class ToolExecutorTests(unittest.TestCase):
    def _run(self, executor: ToolExecutor, name: str, args: Any) -> Any:
        raw = args if isinstance(args, str) else json.dumps(args)
        return asyncio.run(executor.execute(name, raw))

    def test_successful_call(self) -> None:
        tool = _StubTool(result="hi")
        outcome = self._run(ToolExecutor([tool]), "echo", {"message": "hi"})
        self.assertFalse(outcome.is_error)
        self.assertEqual("hi", outcome.output)
        self.assertEqual([{"message": "hi"}], tool.inputs)

    def test_unknown_tool(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool()]), "delete", {})
        self.assertTrue(outcome.is_error)
        self.assertEqual("Unknown tool: delete", outcome.output)

    def test_invalid_json(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool()]), "echo", "{not json")
        self.assertTrue(outcome.is_error)
        self.assertIn("Invalid JSON arguments for echo", outcome.output)

    def test_non_object_arguments(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool()]), "echo", "[1, 2]")
        self.assertTrue(outcome.is_error)

    def test_missing_required_argument(self) -> None:
        tool = _StubTool()
        outcome = self._run(ToolExecutor([tool]), "echo", "")
        self.assertTrue(outcome.is_error)
        self.assertIn("message", outcome.output)
        self.assertEqual([], tool.inputs)

    def test_wrong_argument_type(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool()]), "echo", {"message": "hi", "count": True})
        self.assertTrue(outcome.is_error)
        self.assertIn("expected integer", outcome.output)

    def test_tool_error_becomes_error_outcome(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool(error=ToolError("File does not exist: x"))]), "echo", {"message": "m"})
        self.assertTrue(outcome.is_error)
        self.assertEqual("File does not exist: x", outcome.output)

    def test_unexpected_exception_becomes_error_outcome(self) -> None:
        outcome = self._run(ToolExecutor([_StubTool(error=RuntimeError("kaboom"))]), "echo", {"message": "m"})
        self.assertTrue(outcome.is_error)
        self.assertIn("kaboom", outcome.output)

    def test_long_output_is_truncated(self) -> None:
        executor = ToolExecutor([_StubTool(result="x" * 50)], max_result_chars=10)
        outcome = self._run(executor, "echo", {"message": "m"})
        self.assertFalse(outcome.is_error)
        self.assertTrue(outcome.output.startswith("x" * 10 + "\n\n[OUTPUT TRUNCATED"))

    def test_truncation_disabled_with_zero(self) -> None:
        executor = ToolExecutor([_StubTool(result="x" * 50)], max_result_chars=0)
        self.assertEqual("x" * 50, self._run(executor, "echo", {"message": "m"}).output)

    def test_builtin_definitions(self) -> None:
        executor = ToolExecutor(builtin_tools())
        self.assertEqual(["ls", "view", "write"], executor.tool_names)
        definition = executor.definitions()[2]
        self.assertEqual("function", definition["type"])
        self.assertEqual("write", definition["function"]["name"])
        self.assertEqual(["file_path", "content"], definition["function"]["parameters"]["required"])

    def test_builtin_tools_satisfy_tool_protocol(self) -> None:
        for tool in builtin_tools():
            self.assertIsInstance(tool, Tool)


if __name__ == "__main__":
    unittest.main()
