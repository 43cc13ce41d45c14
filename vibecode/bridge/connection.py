"""One live participant socket with a bounded outbound queue.

Delivery never blocks the bridge: ``deliver`` only enqueues, and a dedicated
writer task drains the queue onto the WebSocket.  When the queue is full or
the connection is closed, the new message is dropped and ``DeliveryDropped``
is raised for the bridge to log.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from typing import TYPE_CHECKING

from loguru import logger
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from vibecode.bridge.errors import DeliveryDropped
from vibecode.bridge.models.enums import ConnectionState
from vibecode.bridge.models.messages import dump_message

if TYPE_CHECKING:
    from fastapi import WebSocket

    from vibecode.bridge.models.messages import Message


class Connection:
    """Bridge-side handle for a participant socket.

    ``state`` follows ``connected -> registered -> closed``; ``agent_id`` is
    set once the connection has registered and is kept after close so the
    bridge can still announce the departure.
    """

    def __init__(self, websocket: WebSocket, *, outbox_size: int = 256) -> None:
        self.id = uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.state = ConnectionState.CONNECTED
        self.agent_id: str | None = None
        self.dropped = 0
        self._outbox: asyncio.Queue[Message] = asyncio.Queue(maxsize=outbox_size)
        self._writer: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, state={self.state}, agent_id={self.agent_id!r})"

    @property
    def is_open(self) -> bool:
        return self.state is not ConnectionState.CLOSED

    @property
    def pending(self) -> int:
        """Messages queued but not yet written."""
        return self._outbox.qsize()

    def start(self) -> None:
        """Spawn the writer task.  Must be called from the event loop serving the socket."""
        if self._writer is None:
            self._writer = asyncio.create_task(self._drain(), name=f"bridge-writer-{self.id}")

    def deliver(self, message: Message) -> None:
        """Queue *message* without waiting.  Raises ``DeliveryDropped`` if it cannot be queued."""
        if self.state is ConnectionState.CLOSED:
            self.dropped += 1
            raise DeliveryDropped(self.id, "connection closed")
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            raise DeliveryDropped(self.id, "outbox full") from None

    async def close(self, code: int = 1000, reason: str | None = None, *, flush_timeout: float = 1.0) -> None:
        """Transition to ``closed`` and close the socket.  Idempotent.

        Already-queued messages get up to *flush_timeout* seconds to be
        written first; pass ``0`` to discard them.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED

        if self._writer is not None and not self._writer.done():
            if flush_timeout > 0:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._outbox.join(), timeout=flush_timeout)
            self._writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer

        if (
            self.websocket.application_state == WebSocketState.CONNECTED
            and self.websocket.client_state == WebSocketState.CONNECTED
        ):
            try:
                await self.websocket.close(code=code, reason=reason)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Connection {}: close failed: {}", self.id, exc)

    # -- Writer ----------------------------------------------------------------

    async def _drain(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_text(dump_message(message))
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logger.debug("Connection {}: peer gone while writing: {}", self.id, exc)
                self._outbox.task_done()
                self._discard_queued()
                return
            self._outbox.task_done()

    def _discard_queued(self) -> None:
        while True:
            try:
                self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self.dropped += 1
            self._outbox.task_done()
