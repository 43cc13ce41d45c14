"""Shared enumerations used across the bridge and its clients."""

from __future__ import annotations

from enum import StrEnum

# -- Participants --------------------------------------------------------------


class Role(StrEnum):
    """Participant role, fixed at registration."""

    CODING_AGENT = "coding-agent"
    TEACHING_AGENT = "teaching-agent"
    STUDENT = "student"


class AgentStatus(StrEnum):
    ACTIVE = "active"


# -- Connection ----------------------------------------------------------------


class ConnectionState(StrEnum):
    """Per-connection lifecycle: connected -> registered -> closed."""

    CONNECTED = "connected"
    REGISTERED = "registered"
    CLOSED = "closed"


# -- Messages ------------------------------------------------------------------


class MessageType(StrEnum):
    """Wire discriminant carried in the ``type`` field of every message."""

    # Sent by agents
    REGISTER = "register"
    CHAT = "chat"
    STATUS = "status"
    QUESTION = "question"
    ANSWER = "answer"

    # Sent by the bridge
    STUDENT_QUESTION = "student-question"
    AGENT_JOINED = "agent-joined"
    AGENT_LEFT = "agent-left"
    STATE_SNAPSHOT = "state-snapshot"
    IDENTIFY = "identify"
    ERROR = "error"


AGENT_MESSAGE_TYPES = frozenset(
    {
        MessageType.REGISTER,
        MessageType.CHAT,
        MessageType.STATUS,
        MessageType.QUESTION,
        MessageType.ANSWER,
    }
)
"""Message kinds an agent may put on the wire; everything else is bridge-originated."""
