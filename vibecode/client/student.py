"""Student adapter over :class:`AgentClient`.

The student is a human at a terminal, so the adapter only fixes the role and
offers student-shaped names for the few things a student does.
"""

from __future__ import annotations

from typing import Any

from vibecode.bridge.models.enums import MessageType, Role
from vibecode.client.agent_client import AgentClient, Handler


class StudentClient(AgentClient):
    async def join(  # type: ignore[override]
        self,
        url: str,
        agent_id: str | None = None,
        capabilities: list[str] | None = None,
    ) -> None:
        await super().join(url, Role.STUDENT, agent_id=agent_id, capabilities=capabilities)

    async def ask(self, question: str, context: Any = None) -> None:
        await self.ask_question(question, context)

    async def say(self, content: str, to: str | None = None) -> None:
        await self.send_chat(content, to)

    def on_answer(self, handler: Handler) -> None:
        self.on_message(MessageType.ANSWER, handler)

    def on_chat(self, handler: Handler) -> None:
        self.on_message(MessageType.CHAT, handler)
