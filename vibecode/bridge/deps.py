"""FastAPI dependency injection for the bridge instance.

Usage in route handlers::

    @router.get("/agents")
    async def list_agents(bridge: BridgeDep) -> list[AgentResponse]:
        ...

The bridge is attached to ``app.state.bridge`` by the application factory,
so the same dependency serves both HTTP and WebSocket routes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection

from vibecode.bridge.bridge import Bridge


def get_bridge(connection: HTTPConnection) -> Bridge:
    return connection.app.state.bridge


BridgeDep = Annotated[Bridge, Depends(get_bridge)]
"""Annotated dependency: the bridge owning this application."""
