import asyncio
import io
import json
import unittest
from contextlib import redirect_stdout

from termcoder.commands.router import CommandRouter, SessionCommand, parse_session_command
from termcoder.memory import Author, Message, ToolRequestPart, ToolResultPart
from termcoder.permissions import PendingToolCall, PermissionScope, PermissionState
from termcoder.services.session_controller import SessionController
from termcoder.terminal import TerminalApp, parse_permission_answer
from tests.orchestrator.base import OrchestratorTestCase, text_reply, tool_reply


class ParsePermissionAnswerTests(unittest.TestCase):
    def test_answers(self) -> None:
        self.assertEqual((True, PermissionScope.ONCE), parse_permission_answer("a"))
        self.assertEqual((True, PermissionScope.ONCE), parse_permission_answer(" Allow "))
        self.assertEqual((True, PermissionScope.SESSION), parse_permission_answer("s"))
        self.assertEqual((False, None), parse_permission_answer("d"))
        self.assertEqual((False, None), parse_permission_answer(""))


class CommandRouterTests(unittest.TestCase):
    def test_parse_session_commands(self) -> None:
        self.assertEqual(SessionCommand("show"), parse_session_command("/session"))
        self.assertEqual(SessionCommand("new"), parse_session_command("/session new"))
        self.assertEqual(SessionCommand("new", "Fix the parser"), parse_session_command("/session new  Fix the parser "))
        self.assertEqual(SessionCommand("switch", "ab12"), parse_session_command("/session switch ab12"))
        self.assertEqual(SessionCommand("usage"), parse_session_command("/session switch"))
        self.assertEqual(SessionCommand("usage"), parse_session_command("/session name"))
        self.assertEqual(SessionCommand("usage"), parse_session_command("/session delete x"))

    def test_routes_by_command_name(self) -> None:
        seen: list[object] = []

        async def on_help() -> None:
            seen.append("help")

        async def on_session(command: SessionCommand) -> None:
            seen.append(command)

        router = CommandRouter(on_help=on_help, on_session=on_session, on_unknown=seen.append)

        self.assertFalse(asyncio.run(router.try_handle("hello /help")))
        self.assertTrue(asyncio.run(router.try_handle(" /help ")))
        self.assertTrue(asyncio.run(router.try_handle("/session list")))
        self.assertTrue(asyncio.run(router.try_handle("/sessions")))
        self.assertEqual(["help", SessionCommand("list"), "/sessions"], seen)


class TerminalAppTests(OrchestratorTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.answers: list[str] = []
        self.terminal = TerminalApp(self.orchestrator, input_fn=self._answer)

    def _answer(self, prompt: str) -> str:
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def _line(self, line: str) -> str:
        out = io.StringIO()
        with redirect_stdout(out):
            self.run_async(self.terminal.handle_line(line))
        return out.getvalue()

    def test_plain_message_prints_reply_only(self) -> None:
        self.gateway.replies = [text_reply("hi there")]
        output = self._line("hello")
        self.assertIn("assistant> hi there", output)
        self.assertNotIn("you> hello", output)

    def test_permission_dialog_allow_for_session(self) -> None:
        self.gateway.replies = [tool_reply(("c1", "ls", "{}")), text_reply("listed")]
        self.answers = ["s"]

        output = self._line("list files")

        self.assertIn("Permission required", output)
        self.assertIn("Tool: ls", output)
        self.assertIn("[Tool Result (ls): OK: ls ok]", output)
        self.assertIn("assistant> listed", output)
        self.assertEqual(PermissionState.ALLOWED, self.orchestrator.permission_for("ls"))

    def test_eof_at_dialog_denies(self) -> None:
        self.gateway.replies = [tool_reply(("c1", "ls", "{}")), text_reply("ok")]

        output = self._line("list files")

        self.assertIn("ERROR: Tool execution denied by user.", output)
        self.assertIsNone(self.orchestrator.pending_tool_call)
        self.assertEqual([], self.ls.inputs)

    def test_help_and_unknown_commands(self) -> None:
        self.assertIn("/session switch <id-or-title>", self._line("/help"))
        self.assertIn("Unknown local command: /bogus", self._line("/bogus"))
        self.assertEqual([], self.gateway.calls)

    def test_session_new_list_switch_and_name(self) -> None:
        first = self.session

        output = self._line("/session new Feature work")
        self.assertIn("Started new session: Feature work", output)
        second_id = self.orchestrator.active_session_id
        self.assertNotEqual(first.id, second_id)

        listing = self._line("/session list")
        self.assertIn("Sessions:", listing)
        self.assertIn("* Feature work", listing)
        self.assertIn(first.title, listing)

        self.assertIn("Switched to session", self._line(f"/session switch {first.id[:8]}"))
        self.assertEqual(first.id, self.orchestrator.active_session_id)

        self.assertIn("Session named: Bugfix", self._line("/session name Bugfix"))
        self.assertEqual("Bugfix", self.session.title)

    def test_switch_to_unknown_session(self) -> None:
        self.assertIn("Session not found: nothing-here", self._line("/session switch nothing-here"))

    def test_session_usage(self) -> None:
        self.assertIn("Usage:", self._line("/session bogus"))


class SessionControllerTests(unittest.TestCase):
    def test_formats_tool_parts(self) -> None:
        controller = SessionController(line_prefix="> ")
        request = Message(
            author=Author.ASSISTANT,
            parts=(ToolRequestPart("c1", "view", json.dumps({"file_path": "a"})),),
        )
        result = Message(author=Author.TOOL, parts=(ToolResultPart("c1", "view", "nope", True),))

        self.assertTrue(controller.format_message(request).startswith("assistant> [Tool Call: view with {"))
        self.assertEqual("tool> [Tool Result (view): ERROR: nope]", controller.format_message(result))

    def test_permission_prompt_shows_arguments(self) -> None:
        controller = SessionController(line_prefix="> ")
        pending = PendingToolCall("c1", "write", '{"file_path": "a", "content": "x"}', "s1")
        lines = controller.format_permission_prompt(pending)
        self.assertEqual("> Tool: write", lines[1])
        self.assertIn('"file_path": "a"', lines[3])
