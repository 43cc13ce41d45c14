"""Bridge lifecycle pieces exercised without a transport."""

from __future__ import annotations

import asyncio

from vibecode.bridge.bridge import Bridge
from vibecode.bridge.connection import Connection
from vibecode.bridge.models.enums import ConnectionState, Role
from vibecode.bridge.settings import BridgeSettings


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class SilentWebSocket:
    application_state = client_state = None

    async def send_text(self, data: str) -> None:
        pass


async def test_sweeper_expires_stale_questions(settings: BridgeSettings) -> None:
    clock = FakeClock()
    bridge = Bridge(settings.model_copy(update={"question_ttl": 5.0, "expiry_sweep_interval": 0.01}), clock=clock)
    stale = bridge.correlator.open("anyone?", None, "student")
    clock.now = 10.0

    await bridge.start()
    try:
        async with asyncio.timeout(2):
            while stale in bridge.correlator:
                await asyncio.sleep(0.01)
    finally:
        await bridge.stop()


async def test_handle_register_and_stop(bridge: Bridge) -> None:
    connection = Connection(SilentWebSocket())
    bridge._connections.add(connection)

    await bridge.handle(connection, '{"type": "register", "agentId": "coder", "role": "coding-agent"}')

    assert connection.state is ConnectionState.REGISTERED
    assert bridge.registry.by_id("coder").role == Role.CODING_AGENT
    # snapshot queued for the writer
    assert connection.pending == 1
    assert [m.type for m in bridge.conversation()] == ["agent-joined"]

    await bridge.stop()

    assert connection.state is ConnectionState.CLOSED
