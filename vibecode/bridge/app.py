from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from vibecode.bridge.bridge import Bridge
from vibecode.bridge.log import setup_logging
from vibecode.bridge.routers.agents import router as agents_router
from vibecode.bridge.routers.conversation import router as conversation_router
from vibecode.bridge.routers.socket import router as socket_router
from vibecode.bridge.settings import BridgeSettings, get_settings


def create_app(settings: BridgeSettings | None = None, bridge: Bridge | None = None) -> FastAPI:
    """Build the bridge application.

    A new :class:`Bridge` is created unless one is passed in; it is exposed
    as ``app.state.bridge``.  Used by uvicorn as a factory
    (``vibecode.bridge.app:create_app``).
    """
    if settings is None:
        settings = bridge.settings if bridge is not None else get_settings()
    if bridge is None:
        bridge = Bridge(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        # -- Startup -----------------------------------------------------------
        setup_logging(settings.log_level)
        logger.info("Communication bridge starting (host={}, port={})", settings.host, settings.port)
        await bridge.start()

        yield

        # -- Shutdown ----------------------------------------------------------
        logger.info("Communication bridge shutting down (connections={})", len(bridge.connections))
        await bridge.stop()

    app = FastAPI(title="vibecode communication bridge", lifespan=lifespan)
    app.state.bridge = bridge

    # -- API router -- read-only views under /api ------------------------------
    api = APIRouter(prefix="/api")

    @api.get("/health")
    async def health() -> dict[str, str | int]:
        return {"status": "ok", "agents": len(bridge.registry)}

    api.include_router(agents_router)
    api.include_router(conversation_router)
    app.include_router(api)

    # -- Participant socket ----------------------------------------------------
    app.include_router(socket_router)

    return app
