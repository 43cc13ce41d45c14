"""Wire message models.

Every frame on the bridge socket is one JSON object whose ``type`` field
selects a model from the :data:`Message` union.  Field names are camelCase on
the wire (``agentId``, ``questionId``, ``recentConversation``) and snake_case
in Python.

The sender envelope (``from``, ``fromRole``, ``timestamp``) is stamped by the
bridge from the sending connection's registry entry.  Whatever a client puts
in those fields is overwritten before the message is routed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from vibecode.bridge.models.agent import AgentSummary
from vibecode.bridge.models.enums import Role


class WireMessage(BaseModel):
    """Common envelope shared by all message kinds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sender: str | None = Field(default=None, alias="from")
    sender_role: Role | None = Field(default=None, alias="fromRole")
    timestamp: datetime | None = None


# -- Agent-originated ----------------------------------------------------------


class Register(WireMessage):
    type: Literal["register"] = "register"
    agent_id: str = Field(..., min_length=1)
    role: Role
    capabilities: list[str] = Field(default_factory=list)


class Chat(WireMessage):
    type: Literal["chat"] = "chat"
    content: str
    to: str | None = None
    """Target agent id.  Absent means broadcast."""


class Status(WireMessage):
    type: Literal["status"] = "status"
    action: str
    details: Any = None
    important: bool = False
    escalated: bool = False
    """Set by the bridge on copies delivered to teaching agents because of ``important``."""


class Question(WireMessage):
    type: Literal["question"] = "question"
    id: str | None = None
    """Assigned by the bridge on receipt; any client-supplied value is replaced."""
    question: str
    context: Any = None


class Answer(WireMessage):
    type: Literal["answer"] = "answer"
    question_id: str
    answer: str
    question: str | None = None
    """Original question text, attached by the bridge when the correlation succeeds."""


# -- Bridge-originated ---------------------------------------------------------


class StudentQuestion(WireMessage):
    """Contextual copy of a student's question delivered to coding agents."""

    type: Literal["student-question"] = "student-question"
    id: str
    question: str
    context: Any = None


class AgentJoined(WireMessage):
    type: Literal["agent-joined"] = "agent-joined"
    agent_id: str
    role: Role
    capabilities: list[str] = Field(default_factory=list)


class AgentLeft(WireMessage):
    type: Literal["agent-left"] = "agent-left"
    agent_id: str


class StateSnapshot(WireMessage):
    type: Literal["state-snapshot"] = "state-snapshot"
    agents: list[AgentSummary] = Field(default_factory=list)
    recent_conversation: list[Message] = Field(default_factory=list)


class Identify(WireMessage):
    type: Literal["identify"] = "identify"
    message: str = "Please identify yourself"


class ErrorNotice(WireMessage):
    type: Literal["error"] = "error"
    code: str
    detail: str = ""


Message = Annotated[
    Register
    | Chat
    | Status
    | Question
    | Answer
    | StudentQuestion
    | AgentJoined
    | AgentLeft
    | StateSnapshot
    | Identify
    | ErrorNotice,
    Field(discriminator="type"),
]

StateSnapshot.model_rebuild()

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(raw: str | bytes) -> Message:
    """Decode one JSON frame.  Raises ``pydantic.ValidationError`` on bad input."""
    return _message_adapter.validate_json(raw)


def message_from_dict(data: dict[str, Any]) -> Message:
    return _message_adapter.validate_python(data)


def dump_message(message: WireMessage) -> str:
    """Encode a message as a camelCase JSON frame, omitting unset optionals."""
    return message.model_dump_json(by_alias=True, exclude_none=True)
