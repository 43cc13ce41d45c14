"""Participant-side clients for the communication bridge."""

from vibecode.client.agent_client import (
    DEFAULT_CAPABILITIES,
    IMPORTANT_ACTIONS,
    AgentClient,
    default_agent_id,
    is_important_action,
)
from vibecode.client.student import StudentClient

__all__ = [
    "DEFAULT_CAPABILITIES",
    "IMPORTANT_ACTIONS",
    "AgentClient",
    "StudentClient",
    "default_agent_id",
    "is_important_action",
]
