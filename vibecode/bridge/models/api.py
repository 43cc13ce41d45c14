"""Response schemas for the read-only REST endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from vibecode.bridge.models.enums import AgentStatus, Role


class AgentResponse(BaseModel):
    """Roster entry, serialized from the in-memory ``Agent`` record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    role: Role
    capabilities: list[str]
    status: AgentStatus
    joined_at: datetime
