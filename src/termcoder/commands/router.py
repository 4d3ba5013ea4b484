from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

SESSION_ACTIONS = ("list", "new", "name", "switch")


@dataclass(frozen=True)
class SessionCommand:
    """A parsed ``/session`` line.

    ``action`` is "show" for a bare ``/session``, one of SESSION_ACTIONS, or
    "usage" when the action is unknown or a required argument is missing.
    """

    action: str
    argument: str = ""


def parse_session_command(line: str) -> SessionCommand:
    rest = line.strip()[len("/session"):].strip()
    if not rest:
        return SessionCommand("show")
    action, _, argument = rest.partition(" ")
    argument = argument.strip()
    if action not in SESSION_ACTIONS:
        return SessionCommand("usage")
    if action in ("name", "switch") and not argument:
        return SessionCommand("usage")
    return SessionCommand(action, argument)


class CommandRouter:
    """Dispatches slash commands typed at the prompt; other lines go to the model."""

    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_session: Callable[[SessionCommand], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_session = on_session
        self._on_unknown = on_unknown

    async def try_handle(self, line: str) -> bool:
        trimmed = line.strip()
        if not trimmed.startswith("/"):
            return False

        name = trimmed.split(maxsplit=1)[0]
        if name == "/help":
            await self._on_help()
        elif name == "/session":
            await self._on_session(parse_session_command(trimmed))
        else:
            self._on_unknown(trimmed)
        return True
