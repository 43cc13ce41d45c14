"""Bridge coordinator -- owns registry, log, correlator, router and sockets.

The bridge drives each connection through ``connected -> registered ->
closed``:

1. **Open**: queue an ``identify`` greeting and start the register grace timer
2. **Register**: admit the agent, send it a ``state-snapshot``, announce
   ``agent-joined`` to everyone else
3. **Relay**: stamp sender identity, correlate questions/answers, log, route
4. **Close**: drop the agent and announce ``agent-left``

All state mutations run under a single ``asyncio.Lock`` and never await I/O
while holding it; outbound writes go through each connection's queue.
Errors are handled per connection and never stop the bridge.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from vibecode.bridge.connection import Connection
from vibecode.bridge.correlator import QuestionCorrelator
from vibecode.bridge.errors import (
    BridgeError,
    DeliveryDropped,
    DuplicateIdError,
    InvalidMessageError,
    NotRegisteredError,
    UnknownQuestionError,
)
from vibecode.bridge.history import ConversationLog
from vibecode.bridge.models.enums import AGENT_MESSAGE_TYPES, ConnectionState
from vibecode.bridge.models.messages import (
    AgentJoined,
    AgentLeft,
    Answer,
    ErrorNotice,
    Identify,
    Question,
    Register,
    StateSnapshot,
    Status,
    parse_message,
)
from vibecode.bridge.registry import AgentRegistry
from vibecode.bridge.router import Router
from vibecode.bridge.settings import BridgeSettings, get_settings

if TYPE_CHECKING:
    from fastapi import WebSocket

    from vibecode.bridge.models.agent import Agent, AgentSummary
    from vibecode.bridge.models.messages import Message

CLOSE_GOING_AWAY = 1001
CLOSE_REGISTER_TIMEOUT = 4008
CLOSE_DUPLICATE_ID = 4009


def _now() -> datetime:
    return datetime.now(UTC)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return "Malformed message -- " + "; ".join(parts)


class Bridge:
    """Relay between coding agents, teaching agents and students.

    One instance per process is expected, but nothing is global: tests can
    run several independent bridges side by side.
    """

    def __init__(
        self,
        settings: BridgeSettings | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = AgentRegistry()
        self.history = ConversationLog(self.settings.history_size)
        self.correlator = QuestionCorrelator(ttl=self.settings.question_ttl, clock=clock)
        self.router = Router(self.registry)
        self._connections: set[Connection] = set()
        self._lock = asyncio.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start the background question-expiry sweep."""
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_expired(), name="bridge-question-expiry")
        logger.info(
            "Bridge: started (history={}, replay={}, question_ttl={}s)",
            self.settings.history_size,
            self.settings.replay_size,
            self.settings.question_ttl,
        )

    async def stop(self) -> None:
        """Stop the sweep and close every live connection."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        for connection in list(self._connections):
            await connection.close(CLOSE_GOING_AWAY, "bridge shutting down")
        logger.info("Bridge: stopped")

    async def _sweep_expired(self) -> None:
        while True:
            await asyncio.sleep(self.settings.expiry_sweep_interval)
            async with self._lock:
                expired = self.correlator.expire()
            if expired:
                logger.info("Bridge: expired {} unanswered question(s)", len(expired))

    # -- Views -----------------------------------------------------------------

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections)

    def roster(self) -> list[AgentSummary]:
        return self.registry.snapshot()

    def conversation(self, limit: int | None = None) -> list[Message]:
        return self.history.recent(limit)

    # -- Connection handling ---------------------------------------------------

    async def serve(self, websocket: WebSocket) -> None:
        """Run the full lifecycle of one accepted WebSocket until it closes."""
        connection = Connection(websocket, outbox_size=self.settings.outbox_size)
        self._connections.add(connection)
        connection.start()
        logger.info("Bridge: connection {} opened", connection.id)
        self._deliver(connection, Identify())

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.register_timeout
        try:
            while connection.is_open:
                timeout = None
                if connection.state is ConnectionState.CONNECTED:
                    timeout = max(deadline - loop.time(), 0.0)
                try:
                    frame = await asyncio.wait_for(websocket.receive(), timeout=timeout)
                except TimeoutError:
                    logger.warning(
                        "Bridge: connection {} did not register within {}s",
                        connection.id,
                        self.settings.register_timeout,
                    )
                    await connection.close(CLOSE_REGISTER_TIMEOUT, "register timeout")
                    break

                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                await self.handle(connection, raw)
        finally:
            await self.disconnect(connection)

    async def handle(self, connection: Connection, raw: str | bytes) -> None:
        """Process one inbound frame from *connection*."""
        close_code: int | None = None
        async with self._lock:
            try:
                message = self._decode(raw)
                self._dispatch(connection, message)
            except DuplicateIdError as exc:
                self._reject(connection, exc)
                close_code = CLOSE_DUPLICATE_ID
            except (NotRegisteredError, InvalidMessageError) as exc:
                self._reject(connection, exc)

        if close_code is not None:
            await connection.close(close_code, "duplicate agent id")

    async def disconnect(self, connection: Connection) -> None:
        """Close *connection* and drop its agent.  Idempotent."""
        if connection not in self._connections:
            return
        self._connections.discard(connection)

        # Roster cleanup runs before the first real await so a cancelled
        # serve task still leaves the registry consistent.
        async with self._lock:
            agent = self.registry.remove(connection)
            if agent is not None and connection.agent_id is not None:
                logger.info("Bridge: agent disconnected: {}", agent.id)
                self._publish(AgentLeft(agent_id=agent.id, timestamp=_now()), None)

        await connection.close(flush_timeout=0)
        logger.info("Bridge: connection {} closed", connection.id)

    # -- Dispatch (lock held) --------------------------------------------------

    def _decode(self, raw: str | bytes) -> Message:
        try:
            return parse_message(raw)
        except ValidationError as exc:
            raise InvalidMessageError(_describe(exc)) from None

    def _dispatch(self, connection: Connection, message: Message) -> None:
        if isinstance(message, Register):
            self._register(connection, message)
            return

        agent = self.registry.by_connection(connection)
        if agent is None:
            msg = f"Send 'register' before '{message.type}'"
            raise NotRegisteredError(msg)
        if message.type not in AGENT_MESSAGE_TYPES:
            msg = f"'{message.type}' messages originate from the bridge"
            raise InvalidMessageError(msg)

        # Envelope and bridge-owned fields are never taken from the wire.
        update: dict[str, Any] = {"sender": agent.id, "sender_role": agent.role, "timestamp": _now()}
        match message:
            case Status():
                update["escalated"] = False
            case Answer():
                update["question"] = None
        stamped = message.model_copy(update=update)
        match stamped:
            case Question():
                question_id = self.correlator.open(stamped.question, stamped.context, agent.id, agent.role)
                stamped = stamped.model_copy(update={"id": question_id})
            case Answer():
                try:
                    answered = self.correlator.resolve(stamped.question_id, stamped.answer)
                except UnknownQuestionError as exc:
                    logger.warning("Bridge: {} (answer from {} delivered anyway)", exc, agent.id)
                else:
                    stamped = stamped.model_copy(update={"question": answered.question})
        self._publish(stamped, agent)

    def _register(self, connection: Connection, message: Register) -> None:
        agent = self.registry.register(connection, message.agent_id, message.role, message.capabilities)
        if connection.state is ConnectionState.REGISTERED:
            logger.info("Bridge: {} re-registered (capabilities={})", agent.id, agent.capabilities)
            return

        connection.state = ConnectionState.REGISTERED
        connection.agent_id = agent.id
        logger.info("Bridge: agent registered: {} ({})", agent.id, agent.role)

        now = _now()
        self._deliver(
            connection,
            StateSnapshot(
                agents=self.registry.snapshot(),
                recent_conversation=self.history.recent(self.settings.replay_size),
                timestamp=now,
            ),
        )
        joined = AgentJoined(agent_id=agent.id, role=agent.role, capabilities=list(agent.capabilities), timestamp=now)
        self._publish(joined, agent)

    def _publish(self, message: Message, sender: Agent | None) -> None:
        self.history.append(message)
        for delivery in self.router.route(message, sender):
            self._deliver(delivery.agent.connection, delivery.message)

    def _deliver(self, connection: Connection, message: Message) -> None:
        try:
            connection.deliver(message)
        except DeliveryDropped as exc:
            logger.warning("Bridge: {}", exc)

    def _reject(self, connection: Connection, exc: BridgeError) -> None:
        logger.warning("Bridge: rejected frame on connection {}: {}", connection.id, exc)
        self._deliver(connection, ErrorNotice(code=exc.code, detail=str(exc)))
