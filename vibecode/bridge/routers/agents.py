"""Agent roster read-only endpoints (RPC-style).

Agents join and leave over the WebSocket; this router only exposes the
current roster for dashboards and debugging.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from vibecode.bridge.deps import BridgeDep
from vibecode.bridge.models.api import AgentResponse
from vibecode.bridge.models.enums import Role

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("/list", response_model=list[AgentResponse])
async def list_agents(
    bridge: BridgeDep,
    role: Role | None = Query(None, description="Only agents holding this role."),
) -> list[AgentResponse]:
    agents = bridge.registry.by_role(role) if role is not None else bridge.registry.all_agents()
    # Agent records hold the live connection; never hand them to the serializer directly.
    return [AgentResponse.model_validate(agent) for agent in agents]


@router.get("/{agent_id}/get", response_model=AgentResponse)
async def get_agent(agent_id: str, bridge: BridgeDep) -> AgentResponse:
    agent = bridge.registry.by_id(agent_id)
    if agent is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Agent '{agent_id}' is not connected.")
    return AgentResponse.model_validate(agent)
