"""In-process agent registry.

Tracks connected participants keyed both by agent id and by the connection
that owns them.  Ephemeral -- empty on process restart.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from vibecode.bridge.errors import DuplicateIdError, InvalidMessageError
from vibecode.bridge.models.agent import Agent, AgentSummary, normalize_capabilities
from vibecode.bridge.models.enums import Role


class AgentRegistry:
    """Registry of agents currently connected to one bridge.

    Not locked on its own; the owning :class:`~vibecode.bridge.bridge.Bridge`
    serializes every mutation.
    """

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._by_connection: dict[Any, str] = {}

    # -- Mutation --------------------------------------------------------------

    def register(
        self,
        connection: Any,
        agent_id: str,
        role: Role,
        capabilities: list[str] | None = None,
    ) -> Agent:
        """Admit an agent on *connection*.

        Raises ``DuplicateIdError`` if *agent_id* is bound to another
        connection.  Registering again on the same connection only replaces
        the capabilities; changing id or role raises ``InvalidMessageError``.
        """
        existing = self._agents.get(agent_id)
        if existing is not None and existing.connection is not connection:
            raise DuplicateIdError(agent_id)

        bound_id = self._by_connection.get(connection)
        if bound_id is not None and bound_id != agent_id:
            msg = f"Connection is already registered as '{bound_id}'"
            raise InvalidMessageError(msg)

        if existing is not None:
            if existing.role != role:
                msg = f"Role of '{agent_id}' is fixed to {existing.role}"
                raise InvalidMessageError(msg)
            existing.capabilities = normalize_capabilities(capabilities)
            logger.debug("Registry: updated capabilities of {}: {}", agent_id, existing.capabilities)
            return existing

        agent = Agent(
            id=agent_id,
            role=Role(role),
            connection=connection,
            capabilities=normalize_capabilities(capabilities),
        )
        self._agents[agent_id] = agent
        self._by_connection[connection] = agent_id
        logger.debug("Registry: register agent {} (role={})", agent_id, agent.role)
        return agent

    def remove(self, connection: Any) -> Agent | None:
        agent_id = self._by_connection.pop(connection, None)
        if agent_id is None:
            return None
        agent = self._agents.pop(agent_id, None)
        logger.debug("Registry: remove agent {}", agent_id)
        return agent

    # -- Query -----------------------------------------------------------------

    def by_id(self, agent_id: str) -> Agent | None:
        return self._agents.get(agent_id)

    def by_connection(self, connection: Any) -> Agent | None:
        agent_id = self._by_connection.get(connection)
        return self._agents.get(agent_id) if agent_id is not None else None

    def by_role(self, role: Role) -> list[Agent]:
        """Return every agent holding *role*, in registration order."""
        return [a for a in self._agents.values() if a.role == role]

    def all_agents(self) -> list[Agent]:
        return list(self._agents.values())

    def snapshot(self) -> list[AgentSummary]:
        """Roster used to build ``state-snapshot`` messages."""
        return [a.summary() for a in self._agents.values()]

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents
