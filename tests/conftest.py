"""Shared test fixtures.

Bridge scenarios run against the real FastAPI app through ``TestClient``
WebSocket sessions.  The client is always entered as a context manager so
that every socket shares one event loop and the app lifespan runs.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from vibecode.bridge.app import create_app
from vibecode.bridge.bridge import Bridge
from vibecode.bridge.settings import BridgeSettings, get_settings

if TYPE_CHECKING:
    from starlette.testclient import WebSocketTestSession


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> BridgeSettings:
    return BridgeSettings(
        log_level="WARNING",
        history_size=20,
        replay_size=10,
        register_timeout=30.0,
        question_ttl=600.0,
    )


@pytest.fixture
def bridge(settings: BridgeSettings) -> Bridge:
    return Bridge(settings)


@pytest.fixture
def client(bridge: Bridge) -> Iterator[TestClient]:
    app = create_app(bridge=bridge)
    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def register(
    ws: WebSocketTestSession,
    agent_id: str,
    role: str,
    capabilities: list[str] | None = None,
) -> dict[str, Any]:
    """Consume the identify greeting, register, and return the state snapshot."""
    greeting = ws.receive_json()
    assert greeting["type"] == "identify"
    ws.send_json({"type": "register", "agentId": agent_id, "role": role, "capabilities": capabilities or []})
    snapshot = ws.receive_json()
    assert snapshot["type"] == "state-snapshot"
    return snapshot


def expect(ws: WebSocketTestSession, message_type: str) -> dict[str, Any]:
    message = ws.receive_json()
    assert message["type"] == message_type, message
    return message
