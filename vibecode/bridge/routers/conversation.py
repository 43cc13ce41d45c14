"""Conversation log read-only endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from vibecode.bridge.deps import BridgeDep

router = APIRouter(prefix="/conversation", tags=["conversation"])


@router.get("/recent")
async def recent_conversation(
    bridge: BridgeDep,
    limit: int = Query(20, ge=1, le=1000),
) -> list[dict[str, Any]]:
    """Return the retained conversation, most recent last, in wire format."""
    return [
        message.model_dump(mode="json", by_alias=True, exclude_none=True) for message in bridge.conversation(limit)
    ]
