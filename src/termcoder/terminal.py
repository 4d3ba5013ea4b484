from __future__ import annotations

from collections.abc import Callable

from termcoder.commands.router import CommandRouter, SessionCommand
from termcoder.memory.models import Author
from termcoder.orchestrator import Orchestrator
from termcoder.permissions import PermissionScope
from termcoder.services.session_controller import SessionController


def parse_permission_answer(answer: str) -> tuple[bool, PermissionScope | None]:
    """Map a dialog answer to (allow, scope). Anything unrecognised denies."""
    choice = answer.strip().lower()
    if choice in {"a", "allow", "once"}:
        return True, PermissionScope.ONCE
    if choice in {"s", "session"}:
        return True, PermissionScope.SESSION
    return False, None


class TerminalApp:
    _LINE_PREFIX = "termcoder> "
    _PERMISSION_PROMPT = "[a]llow once / allow for [s]ession / [d]eny: "

    def __init__(self, orchestrator: Orchestrator, *, input_fn: Callable[[str], str] = input):
        self._orchestrator = orchestrator
        self._input = input_fn
        self._printed: dict[str, int] = {}
        self._session_controller = SessionController(line_prefix=self._LINE_PREFIX)
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_session=self._handle_session_command,
            on_unknown=self._on_unknown_command,
        )

    async def handle_line(self, line: str) -> None:
        if await self._command_router.try_handle(line):
            return
        await self._orchestrator.submit_user_text(line)
        await self._orchestrator.advance()
        await self._settle_permissions()
        self.print_new_messages()

    async def _settle_permissions(self) -> None:
        while True:
            pending = self._orchestrator.pending_tool_call
            if pending is None:
                return
            self.print_new_messages()
            for line in self._session_controller.format_permission_prompt(pending):
                print(line)
            try:
                answer = self._input(self._PERMISSION_PROMPT)
            except (EOFError, KeyboardInterrupt):
                answer = ""
            allow, scope = parse_permission_answer(answer)
            await self._orchestrator.resolve_pending_tool_call(allow, scope)

    def print_new_messages(self) -> None:
        session = self._orchestrator.active_session
        if session is None:
            return
        start = self._printed.get(session.id, 0)
        for message in session.messages[start:]:
            if message.author is Author.USER:
                continue
            print(self._session_controller.format_message(message))
        self._printed[session.id] = len(session.messages)

    def mark_seen(self) -> None:
        session = self._orchestrator.active_session
        if session is not None:
            self._printed[session.id] = len(session.messages)

    async def _on_help(self) -> None:
        print(f"{self._LINE_PREFIX}Available commands:")
        print(f"{self._LINE_PREFIX}- /help")
        print(f"{self._LINE_PREFIX}- /session")
        print(f"{self._LINE_PREFIX}- /session new [title]")
        print(f"{self._LINE_PREFIX}- /session list")
        print(f"{self._LINE_PREFIX}- /session switch <id-or-title>")
        print(f"{self._LINE_PREFIX}- /session name <title>")

    def _on_unknown_command(self, trimmed: str) -> None:
        print(f"{self._LINE_PREFIX}Unknown local command: {trimmed}")

    async def _handle_session_command(self, command: SessionCommand) -> None:
        controller = self._session_controller

        if command.action == "show":
            session = self._orchestrator.active_session
            if session is None:
                print(f"{self._LINE_PREFIX}Current session: none")
                return
            print(
                f"{self._LINE_PREFIX}Current session: {session.title} "
                f"[{controller.short_id(session.id)}] (id={session.id})"
            )
            return

        if command.action == "list":
            sessions = self._orchestrator.sessions
            if not sessions:
                print(f"{self._LINE_PREFIX}No sessions found.")
                return
            print(f"{self._LINE_PREFIX}Sessions:")
            for s in sessions:
                print(controller.format_session_list_entry(s, active_session_id=self._orchestrator.active_session_id))
            return

        if command.action == "new":
            session = await self._orchestrator.new_session(command.argument or None)
            self.mark_seen()
            print(
                f"{self._LINE_PREFIX}Started new session: {session.title} "
                f"[{controller.short_id(session.id)}] (id={session.id})"
            )
            return

        if command.action == "name":
            if await self._orchestrator.rename_session(command.argument):
                print(f"{self._LINE_PREFIX}Session named: {command.argument}")
            else:
                print(f"{self._LINE_PREFIX}No active session to name")
            return

        if command.action == "switch":
            target = command.argument
            matches = self._orchestrator.registry.find(target)
            if not matches:
                print(f"{self._LINE_PREFIX}Session not found: {target}")
                return
            if len(matches) > 1:
                print(f"{self._LINE_PREFIX}Ambiguous session identifier: {target}")
                return
            await self._orchestrator.switch_session(matches[0].id)
            self.mark_seen()
            print(
                f"{self._LINE_PREFIX}Switched to session {matches[0].title} "
                f"[{controller.short_id(matches[0].id)}] ({len(matches[0].messages)} messages)"
            )
            return

        print(
            f"{self._LINE_PREFIX}Usage: /session | /session new [title] | /session list | "
            "/session switch <id-or-title> | /session name <title>"
        )
