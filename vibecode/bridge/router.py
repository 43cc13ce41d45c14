"""Role-aware message routing.

The router is pure: given a message and its sending agent it returns the
list of deliveries (recipient + message copy) without touching any socket.
Routing rules:

- ``chat`` with ``to``: only the target agent; dropped if it is gone.
- ``chat`` without ``to``: broadcast (everyone but the sender).
- ``status`` marked important: every teaching agent gets a copy flagged
  ``escalated``; everyone else but the sender gets the plain message.
- ``question`` from a student: teaching agents get the question, coding
  agents get a ``student-question`` copy; other students get nothing.
  Questions from other roles are broadcast.
- ``answer``, ``agent-joined``, ``agent-left``: broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from vibecode.bridge.errors import InvalidMessageError
from vibecode.bridge.models.enums import Role
from vibecode.bridge.models.messages import (
    AgentJoined,
    AgentLeft,
    Answer,
    Chat,
    Question,
    Status,
    StudentQuestion,
)

if TYPE_CHECKING:
    from vibecode.bridge.models.agent import Agent
    from vibecode.bridge.models.messages import Message
    from vibecode.bridge.registry import AgentRegistry


@dataclass(frozen=True)
class Delivery:
    agent: Agent
    message: Message


class Router:
    def __init__(self, registry: AgentRegistry) -> None:
        self._registry = registry

    def route(self, message: Message, sender: Agent | None) -> list[Delivery]:
        """Decide recipients for *message*.  *sender* is ``None`` for bridge-originated events."""
        match message:
            case Chat(to=str() as target):
                return self._directed(message, target, sender)
            case Status(important=True):
                return self._escalated(message, sender)
            case Question() if sender is not None and sender.role == Role.STUDENT:
                return self._student_question(message, sender)
            case Chat() | Status() | Question() | Answer() | AgentJoined() | AgentLeft():
                return self._broadcast(message, sender)
            case _:
                msg = f"'{message.type}' messages are not routable"
                raise InvalidMessageError(msg)

    # -- Rules -----------------------------------------------------------------

    def _others(self, sender: Agent | None) -> list[Agent]:
        sender_id = sender.id if sender is not None else None
        return [a for a in self._registry.all_agents() if a.id != sender_id]

    def _broadcast(self, message: Message, sender: Agent | None) -> list[Delivery]:
        return [Delivery(agent, message) for agent in self._others(sender)]

    def _directed(self, message: Chat, target: str, sender: Agent | None) -> list[Delivery]:
        recipient = self._registry.by_id(target)
        if recipient is None or recipient is sender:
            logger.debug("Router: dropping chat for absent agent {}", target)
            return []
        return [Delivery(recipient, message)]

    def _escalated(self, message: Status, sender: Agent | None) -> list[Delivery]:
        escalated = message.model_copy(update={"escalated": True})
        deliveries: list[Delivery] = []
        for agent in self._others(sender):
            if agent.role == Role.TEACHING_AGENT:
                deliveries.append(Delivery(agent, escalated))
            else:
                deliveries.append(Delivery(agent, message))
        return deliveries

    def _student_question(self, message: Question, sender: Agent) -> list[Delivery]:
        contextual = StudentQuestion(
            id=message.id or "",
            question=message.question,
            context=message.context,
            sender=message.sender,
            sender_role=message.sender_role,
            timestamp=message.timestamp,
        )
        deliveries: list[Delivery] = []
        for agent in self._others(sender):
            if agent.role == Role.TEACHING_AGENT:
                deliveries.append(Delivery(agent, message))
            elif agent.role == Role.CODING_AGENT:
                deliveries.append(Delivery(agent, contextual))
        return deliveries
