"""Participant WebSocket endpoint.

Thin transport adapter -- accepts the socket and hands it to the bridge for
its whole lifetime.
"""

from __future__ import annotations

from fastapi import APIRouter, WebSocket

from vibecode.bridge.deps import BridgeDep

router = APIRouter(tags=["bridge"])


@router.websocket("/ws")
async def bridge_socket(websocket: WebSocket, bridge: BridgeDep) -> None:
    await websocket.accept()
    await bridge.serve(websocket)
