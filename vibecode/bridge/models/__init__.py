"""Data models for the communication bridge."""

from vibecode.bridge.models.agent import Agent, AgentSummary
from vibecode.bridge.models.api import AgentResponse
from vibecode.bridge.models.enums import (
    AGENT_MESSAGE_TYPES,
    AgentStatus,
    ConnectionState,
    MessageType,
    Role,
)
from vibecode.bridge.models.messages import (
    AgentJoined,
    AgentLeft,
    Answer,
    Chat,
    ErrorNotice,
    Identify,
    Message,
    Question,
    Register,
    StateSnapshot,
    Status,
    StudentQuestion,
    WireMessage,
    dump_message,
    message_from_dict,
    parse_message,
)

__all__ = [
    "AGENT_MESSAGE_TYPES",
    # Agents
    "Agent",
    # Messages
    "AgentJoined",
    "AgentLeft",
    # API schemas
    "AgentResponse",
    # Enums
    "AgentStatus",
    "AgentSummary",
    "Answer",
    "Chat",
    "ConnectionState",
    "ErrorNotice",
    "Identify",
    "Message",
    "MessageType",
    "Question",
    "Register",
    "Role",
    "StateSnapshot",
    "Status",
    "StudentQuestion",
    "WireMessage",
    "dump_message",
    "message_from_dict",
    "parse_message",
]
