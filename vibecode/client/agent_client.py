"""Participant-side bridge client.

One client class serves every role: the coding agent, the teaching agent and
(through :class:`~vibecode.client.student.StudentClient`) the student.  The
client connects, registers once, sends typed messages fire-and-forget and
dispatches inbound messages to one handler per message type.

Usage::

    async with AgentClient() as client:
        client.on_message(MessageType.ANSWER, print_answer)
        await client.join("ws://127.0.0.1:4567/ws", Role.STUDENT)
        await client.ask_question("why hash passwords?")
        await client.wait_closed()
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from vibecode.bridge.errors import BridgeConnectionError, InvalidMessageError, NotRegisteredError
from vibecode.bridge.models.enums import AGENT_MESSAGE_TYPES, MessageType, Role
from vibecode.bridge.models.messages import (
    AgentJoined,
    AgentLeft,
    Answer,
    Chat,
    Question,
    Register,
    StateSnapshot,
    Status,
    dump_message,
    parse_message,
)

if TYPE_CHECKING:
    from types import TracebackType

    from websockets.asyncio.client import ClientConnection

    from vibecode.bridge.models.messages import Message

Handler = Callable[["Message"], Awaitable[None] | None]

DEFAULT_CAPABILITIES: dict[Role, list[str]] = {
    Role.CODING_AGENT: ["code-generation", "file-manipulation", "testing", "debugging", "refactoring"],
    Role.TEACHING_AGENT: ["explain-code", "answer-questions", "provide-suggestions", "teach-concepts", "review-code"],
    Role.STUDENT: ["ask-questions", "request-explanations"],
}

IMPORTANT_ACTIONS = frozenset(
    {
        "creating-file",
        "deleting-file",
        "major-refactor",
        "adding-feature",
        "fixing-bug",
        "running-tests",
    }
)
"""Status actions escalated to teaching agents when no explicit flag is given."""


def is_important_action(action: str) -> bool:
    return action in IMPORTANT_ACTIONS


def default_agent_id(role: Role | str) -> str:
    """``<role>-<epoch millis>``, e.g. ``student-1718000000000``."""
    return f"{Role(role)}-{int(time.time() * 1000)}"


class AgentClient:
    """Connection from one participant to the bridge.

    ``on_message`` keeps a single handler per message type: registering a
    second handler for the same type replaces the first.  Handlers may be
    plain functions or coroutines; an exception in a handler is logged and
    does not stop the reader.

    The client also keeps ``peers`` (agent id -> role) up to date from
    ``state-snapshot``, ``agent-joined`` and ``agent-left`` messages.
    """

    def __init__(self) -> None:
        self.agent_id: str | None = None
        self.role: Role | None = None
        self.capabilities: list[str] = []
        self.peers: dict[str, Role] = {}
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._handlers: dict[MessageType, Handler] = {}

    # -- Properties ------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._reader is not None and not self._reader.done()

    @property
    def registered(self) -> bool:
        return self.agent_id is not None

    @property
    def close_code(self) -> int | None:
        """WebSocket close code once the connection has closed (e.g. 4009 for a duplicate id)."""
        return self._ws.close_code if self._ws is not None else None

    # -- Connection ------------------------------------------------------------

    async def connect(self, url: str, *, open_timeout: float = 10.0) -> None:
        """Open the bridge socket and start reading.  Raises ``BridgeConnectionError``."""
        if self._ws is not None:
            msg = "Client is already connected"
            raise BridgeConnectionError(msg)
        try:
            self._ws = await connect(url, open_timeout=open_timeout)
        except (OSError, TimeoutError, InvalidURI, InvalidHandshake) as exc:
            msg = f"Could not connect to bridge at {url}: {exc}"
            raise BridgeConnectionError(msg) from exc
        self._reader = asyncio.create_task(self._read_loop(), name="bridge-client-reader")
        logger.debug("Client: connected to {}", url)

    async def register(self, agent_id: str, role: Role | str, capabilities: list[str] | None = None) -> None:
        """Identify this connection.  Must be called exactly once, before any other send."""
        if self.registered:
            msg = f"Already registered as '{self.agent_id}'"
            raise InvalidMessageError(msg)
        role = Role(role)
        capabilities = list(capabilities) if capabilities is not None else list(DEFAULT_CAPABILITIES[role])
        # Set before writing: the snapshot may be read before the write returns.
        self.agent_id, self.role, self.capabilities = agent_id, role, capabilities
        try:
            await self._write(Register(agent_id=agent_id, role=role, capabilities=capabilities))
        except BridgeConnectionError:
            self.agent_id, self.role, self.capabilities = None, None, []
            raise
        logger.info("Client: registered as {} ({})", agent_id, role)

    async def join(
        self,
        url: str,
        role: Role | str,
        agent_id: str | None = None,
        capabilities: list[str] | None = None,
    ) -> None:
        """Connect and register with a generated id and role defaults when not given."""
        await self.connect(url)
        await self.register(agent_id or default_agent_id(role), role, capabilities)

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Block until the bridge connection is gone."""
        if self._reader is not None:
            await self._reader

    async def __aenter__(self) -> AgentClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- Sending ---------------------------------------------------------------

    async def send(self, message: Message) -> None:
        """Send a typed message.  Fire-and-forget: nothing is acknowledged."""
        if isinstance(message, Register):
            msg = "Use register() to identify the connection"
            raise InvalidMessageError(msg)
        if message.type not in AGENT_MESSAGE_TYPES:
            msg = f"'{message.type}' messages originate from the bridge"
            raise InvalidMessageError(msg)
        if not self.registered:
            msg = f"Register before sending '{message.type}'"
            raise NotRegisteredError(msg)
        await self._write(message)

    async def send_status(self, action: str, details: Any = None, important: bool | None = None) -> None:
        """Report an activity.  ``important=None`` escalates the actions in ``IMPORTANT_ACTIONS``."""
        if important is None:
            important = is_important_action(action)
        await self.send(Status(action=action, details=details, important=important))

    async def send_chat(self, content: str, to: str | None = None) -> None:
        await self.send(Chat(content=content, to=to))

    async def ask_question(self, question: str, context: Any = None) -> None:
        await self.send(Question(question=question, context=context))

    async def answer_question(self, question_id: str, answer: str) -> None:
        await self.send(Answer(question_id=question_id, answer=answer))

    async def _write(self, message: Message) -> None:
        if self._ws is None:
            msg = "Client is not connected"
            raise BridgeConnectionError(msg)
        try:
            await self._ws.send(dump_message(message))
        except ConnectionClosed as exc:
            msg = f"Bridge connection closed: {exc}"
            raise BridgeConnectionError(msg) from exc

    # -- Receiving -------------------------------------------------------------

    def on_message(self, message_type: MessageType | str, handler: Handler) -> None:
        """Set the handler for *message_type*; replaces any previous one."""
        message_type = MessageType(message_type)
        if message_type in self._handlers:
            logger.debug("Client: replacing handler for '{}'", message_type)
        self._handlers[message_type] = handler

    async def _read_loop(self) -> None:
        assert self._ws is not None  # noqa: S101
        try:
            async for raw in self._ws:
                try:
                    message = parse_message(raw)
                except ValidationError as exc:
                    logger.warning("Client: ignoring malformed frame: {}", exc)
                    continue
                await self._dispatch(message)
        except ConnectionClosed as exc:
            logger.debug("Client: connection closed: {}", exc)
        finally:
            # A closed socket holds no registration, e.g. after a 4009 rejection.
            self.agent_id, self.role, self.capabilities = None, None, []
        logger.info("Client: disconnected from bridge (code={})", self.close_code)

    async def _dispatch(self, message: Message) -> None:
        self._track_peers(message)
        handler = self._handlers.get(MessageType(message.type))
        if handler is None:
            return
        try:
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Client: handler for '{}' failed", message.type)

    def _track_peers(self, message: Message) -> None:
        match message:
            case StateSnapshot(agents=agents):
                self.peers = {a.id: a.role for a in agents if a.id != self.agent_id}
            case AgentJoined(agent_id=agent_id, role=role):
                self.peers[agent_id] = role
            case AgentLeft(agent_id=agent_id):
                self.peers.pop(agent_id, None)
