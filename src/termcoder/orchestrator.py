from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from termcoder.errors import ConfigurationError, ModelGatewayError, NoChoicesError, PersistenceError
from termcoder.memory.models import (
    Author,
    ContentPart,
    Message,
    Session,
    TextPart,
    ToolRequestPart,
    ToolResultPart,
)
from termcoder.memory.session_repository import SessionPersistence
from termcoder.permissions import PendingToolCall, PermissionCache, PermissionScope, PermissionState
from termcoder.provider import ModelGateway, ModelReply, ToolCallRequest
from termcoder.session_registry import SessionRegistry
from termcoder.tool_executor import ToolExecutor

PENDING_NOTICE = "[Info] Tool call pending user permission. Please respond to the dialog first."
DENIED_BY_POLICY = "Tool execution denied by session policy."
DENIED_BY_USER = "Tool execution denied by user."


class Orchestrator:
    """Owns conversation state and drives the model/tool loop.

    State: the session registry, the active session id, the permission cache
    and at most one pending tool call. Every state transition is persisted
    before the loop moves on; persistence failures are logged and the
    in-memory conversation carries on.

    Public coroutines are serialized by one lock. The resend loop runs inside
    that lock, so ``advance`` and ``resolve_pending_tool_call`` never overlap.
    """

    def __init__(
        self,
        *,
        gateway: ModelGateway,
        executor: ToolExecutor,
        persistence: SessionPersistence,
        model: str,
        max_tool_turns: int = 25,
        registry: SessionRegistry | None = None,
        permissions: PermissionCache | None = None,
    ):
        self._gateway = gateway
        self._executor = executor
        self._persistence = persistence
        self._model = model
        self._max_tool_turns = max(1, max_tool_turns)
        self._registry = registry if registry is not None else SessionRegistry()
        self._permissions = permissions if permissions is not None else PermissionCache()
        self._active_session_id: str | None = None
        self._pending: PendingToolCall | None = None
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def permissions(self) -> PermissionCache:
        return self._permissions

    @property
    def sessions(self) -> list[Session]:
        return self._registry.recent_first()

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    @property
    def active_session(self) -> Session | None:
        if self._active_session_id is None:
            return None
        return self._registry.get(self._active_session_id)

    @property
    def pending_tool_call(self) -> PendingToolCall | None:
        return self._pending

    @property
    def model(self) -> str:
        return self._model

    def permission_for(self, tool_name: str) -> PermissionState | None:
        if self._active_session_id is None:
            return None
        return self._permissions.get(tool_name, self._active_session_id)

    # Session lifecycle

    def load_sessions(self) -> None:
        for session in self._persistence.load_all_sessions():
            self._registry.add(session)

        if len(self._registry) == 0:
            self._create_session("Default Session")
            return
        most_recent = self._registry.most_recent()
        self._activate(most_recent.id)

    async def new_session(self, title: str | None = None) -> Session:
        async with self._lock:
            return self._create_session(title)

    async def switch_session(self, session_id: str) -> bool:
        async with self._lock:
            if session_id not in self._registry:
                logger.warning(f"Attempted to switch to non-existent session ID: {session_id}")
                return False
            self._activate(session_id)
            return True

    async def rename_session(self, title: str) -> bool:
        async with self._lock:
            session = self.active_session
            title = title.strip()
            if session is None or not title:
                return False
            session.title = title
            self._save_metadata(session)
            return True

    def _create_session(self, title: str | None) -> Session:
        session = Session(title=(title or "").strip())
        self._registry.add(session)
        self._save_metadata(session)
        self._activate(session.id)
        logger.info(f"Created session {session.id} ({session.title})")
        return session

    def _activate(self, session_id: str) -> None:
        if self._pending is not None and self._pending.session_id != session_id:
            logger.info(
                f"Dropping pending tool call {self._pending.call_id} ({self._pending.tool_name}) "
                f"owned by session {self._pending.session_id}"
            )
            self._pending = None
        self._active_session_id = session_id
        logger.info(f"Switched to session ID: {session_id}")

    # Conversation operations

    async def submit_user_text(self, text: str) -> Message | None:
        async with self._lock:
            session = self.active_session
            if session is None:
                logger.warning("No active session; user text dropped.")
                return None
            return self._append(session, Author.USER, [TextPart(text)])

    async def advance(self) -> None:
        async with self._lock:
            await self._advance()

    async def resolve_pending_tool_call(self, allow: bool, scope: PermissionScope | None = None) -> None:
        async with self._lock:
            pending = self._pending
            if pending is None:
                logger.debug("No pending tool call to resolve.")
                return
            self._pending = None

            session = self._registry.get(pending.session_id)
            if session is None:
                logger.warning(f"Pending tool call owner {pending.session_id} no longer exists.")
                return

            request = pending.to_request()
            if allow:
                logger.info(f"User allowed tool: {pending.tool_name} (scope: {scope.value if scope else 'once'})")
                if scope is PermissionScope.SESSION:
                    self._permissions.set(pending.tool_name, session.id, PermissionState.ALLOWED)
                await self._execute_batch(session, [request])
            else:
                logger.info(f"User denied tool: {pending.tool_name}")
                self._deny(session, request, DENIED_BY_USER)

            if await self._drain(session, pending.deferred):
                await self._advance()

    # Control loop

    async def _advance(self) -> None:
        session = self.active_session
        if self._pending is not None:
            logger.warning("Attempted to send to LLM while a tool call is pending user permission.")
            if session is not None:
                self._append(session, Author.SYSTEM, [TextPart(PENDING_NOTICE)])
            return
        if session is None:
            logger.warning("No active session to send to LLM.")
            return
        if not session.messages:
            logger.warning("No messages in active session to send to LLM.")
            return

        tool_turns = 0
        while True:
            reply = await self._request_reply(session)
            if reply is None:
                return

            requests = self._record_assistant_turn(session, reply)
            if not requests:
                logger.debug("No tool calls from LLM this turn.")
                return

            tool_turns += 1
            if not await self._dispatch(session, requests):
                return

            if tool_turns >= self._max_tool_turns:
                logger.warning(f"Stopping resend loop after {tool_turns} consecutive tool turns.")
                self._append(
                    session,
                    Author.SYSTEM,
                    [TextPart(
                        f"[Stopped: reached the limit of {self._max_tool_turns} consecutive tool turns. "
                        "Send a new message to continue.]"
                    )],
                )
                return
            logger.info("Resending session to LLM after tool execution cycle.")

    async def _request_reply(self, session: Session) -> ModelReply | None:
        logger.info(f"Sending {len(session.messages)} messages to LLM (model: {self._model})...")
        try:
            return await self._gateway.complete(list(session.messages), self._model)
        except ConfigurationError as ex:
            self._append(session, Author.SYSTEM, [TextPart(f"Error: {ex}")])
        except NoChoicesError:
            self._append(session, Author.SYSTEM, [TextPart("Error: No response choices from LLM.")])
        except ModelGatewayError as ex:
            self._append(session, Author.SYSTEM, [TextPart(f"Error: LLM request failed: {ex}")])
        return None

    def _record_assistant_turn(self, session: Session, reply: ModelReply) -> list[ToolCallRequest]:
        parts: list[ContentPart] = []
        if reply.text:
            parts.append(TextPart(reply.text))
        for call in reply.tool_calls:
            parts.append(ToolRequestPart(call.call_id, call.tool_name, call.arguments_json))

        if parts:
            self._append(session, Author.ASSISTANT, parts)
        else:
            logger.info("Assistant response was empty (no text, no tool calls).")
        return list(reply.tool_calls)

    async def _dispatch(self, session: Session, requests: list[ToolCallRequest]) -> bool:
        """Address one assistant turn's tool calls. Returns False when paused for a decision."""
        first = requests[0]
        if self._permissions.get(first.tool_name, session.id) is PermissionState.ALLOWED:
            logger.info(
                f"Tool '{first.tool_name}' already permitted for this session. "
                f"Executing batch of {len(requests)} tools."
            )
            await self._execute_batch(session, requests)
            return True
        return await self._drain(session, requests)

    async def _drain(self, session: Session, requests: Sequence[ToolCallRequest]) -> bool:
        for index, request in enumerate(requests):
            state = self._permissions.get(request.tool_name, session.id)
            if state is PermissionState.ALLOWED:
                await self._execute_batch(session, [request])
            elif state is PermissionState.DENIED:
                logger.info(f"Tool '{request.tool_name}' previously denied for this session.")
                self._deny(session, request, DENIED_BY_POLICY)
            else:
                logger.info(f"Tool '{request.tool_name}' requires user permission.")
                self._pending = PendingToolCall.from_request(request, session.id, requests[index + 1:])
                return False
        return True

    async def _execute_batch(self, session: Session, requests: Sequence[ToolCallRequest]) -> None:
        for request in requests:
            logger.info(f"Executing tool: {request.tool_name} (ID: {request.call_id})")
            outcome = await self._executor.execute(request.tool_name, request.arguments_json)
            self._append(
                session,
                Author.TOOL,
                [ToolResultPart(request.call_id, request.tool_name, outcome.output, outcome.is_error)],
            )

    def _deny(self, session: Session, request: ToolCallRequest, reason: str) -> None:
        self._append(
            session,
            Author.TOOL,
            [ToolResultPart(request.call_id, request.tool_name, reason, True)],
        )

    # Persistence

    def _append(self, session: Session, author: Author, parts: list[ContentPart]) -> Message:
        message = Message(author=author, parts=tuple(parts))
        session.add_message(message)
        try:
            self._persistence.append_message(session.id, message)
        except PersistenceError as ex:
            logger.error(f"DB save_message failed for session {session.id}: {ex}")
        self._save_metadata(session)
        return message

    def _save_metadata(self, session: Session) -> None:
        try:
            self._persistence.upsert_session_metadata(session)
        except PersistenceError as ex:
            logger.error(f"DB save_session failed for session {session.id}: {ex}")
