"""Agent registry.

Maps agent names to agent instances by walking the handoff graph once, so
handoff targets and persisted agent names resolve without re-traversal.
"""

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Self

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.errors import (
    AgentConfigurationError,
    HandoffResolutionError,
)

logger = logging.getLogger(__name__)


class AgentRegistry(Mapping[str, Agent]):
    """Read-only name -> Agent lookup."""

    def __init__(self, agents: Mapping[str, Agent]) -> None:
        self._agents: Mapping[str, Agent] = MappingProxyType(dict(agents))

    @classmethod
    def build(cls, *starting_agents: Agent) -> Self:
        """Depth-first walk over handoff targets from one or more entry agents.

        Cycles are tolerated through a visited-set keyed by agent identity.
        Every agent's tool set is validated while it is registered.

        Raises:
            AgentConfigurationError: If no agent is given, two distinct agents share a
                name, or an agent's tool names collide
        """
        if not starting_agents:
            raise AgentConfigurationError("At least one agent must be provided")

        registry: dict[str, Agent] = {}
        visited: set[int] = set()
        stack: list[Agent] = list(reversed(starting_agents))

        while stack:
            agent = stack.pop()
            if id(agent) in visited:
                continue
            visited.add(id(agent))

            existing = registry.get(agent.name)
            if existing is not None and existing is not agent:
                raise AgentConfigurationError(
                    f"Duplicate agent name '{agent.name}' in handoff graph"
                )
            agent.all_tools()
            registry[agent.name] = agent

            # reversed so targets are visited in declaration order
            stack.extend(reversed(agent.handoff_agents))

        logger.debug("Built agent registry with %d agents: %s", len(registry), list(registry))
        return cls(registry)

    def resolve(self, name: str) -> Agent:
        """Strict lookup.

        Raises:
            HandoffResolutionError: If the name is not registered
        """
        agent = self._agents.get(name)
        if agent is None:
            raise HandoffResolutionError(name)
        return agent

    def resolve_or_default(self, name: str | None, default: Agent) -> Agent:
        """Lenient lookup falling back to a default agent."""
        if name is None:
            return default
        try:
            return self.resolve(name)
        except HandoffResolutionError:
            logger.debug("Agent '%s' not in registry, falling back to '%s'", name, default.name)
            return default

    def get(self, name: str) -> Agent | None:
        return self._agents.get(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._agents

    def __getitem__(self, name: str) -> Agent:
        return self._agents[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __repr__(self) -> str:
        return f"AgentRegistry({list(self._agents)!r})"
