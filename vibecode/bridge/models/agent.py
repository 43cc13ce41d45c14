"""Connected participant records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from vibecode.bridge.models.enums import AgentStatus, Role


@dataclass
class Agent:
    """A registered participant bound to exactly one live connection.

    Created by the registry when a ``register`` message is accepted and
    discarded when the connection closes.  ``id`` and ``role`` never change
    while the connection is open; ``capabilities`` may be replaced by an
    idempotent re-registration.
    """

    id: str
    role: Role
    connection: Any = field(repr=False, compare=False)
    capabilities: list[str] = field(default_factory=list)
    status: AgentStatus = AgentStatus.ACTIVE
    joined_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def summary(self) -> AgentSummary:
        return AgentSummary(id=self.id, role=self.role, status=self.status)


class AgentSummary(BaseModel):
    """Roster row carried in ``state-snapshot`` messages."""

    id: str
    role: Role
    status: AgentStatus = AgentStatus.ACTIVE


def normalize_capabilities(capabilities: list[str] | None) -> list[str]:
    """De-duplicate capability tags, keeping first-seen order."""
    if not capabilities:
        return []
    return list(dict.fromkeys(tag for tag in capabilities if tag))
