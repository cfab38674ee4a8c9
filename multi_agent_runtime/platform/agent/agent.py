"""Agent definition.

An Agent bundles instructions, a model binding, tools, and the agents it
may hand off to. Agents hold no per-run state and are shared freely across
concurrent runs. Handoff targets may be registered after construction so
that mutually recursive graphs can be wired at setup time.
"""

import threading
from collections.abc import Callable, Iterable
from typing import Any, Self

from multi_agent_runtime.platform.agent.config import DEFAULT_MODEL, Provider
from multi_agent_runtime.platform.agent.context import RunContext
from multi_agent_runtime.platform.agent.errors import AgentConfigurationError
from multi_agent_runtime.platform.agent.handoff import HandoffTool
from multi_agent_runtime.platform.agent.tools import Tool

type Instructions = str | Callable[[RunContext], str]


class Agent:
    """Immutable-by-convention agent definition."""

    def __init__(
        self,
        name: str,
        instructions: Instructions | None = None,
        model: str = DEFAULT_MODEL,
        provider: Provider | str = Provider.OPENAI,
        tools: Iterable[Tool] = (),
        handoff_agents: Iterable["Agent"] = (),
        description: str = "",
    ) -> None:
        """Initialize the agent.

        Args:
            name: Unique agent name, used for registry lookups and handoff tool names
            instructions: System prompt, or a callable deriving it from the run context
            model: Model identifier
            provider: Model provider
            tools: Regular tools owned by the agent
            handoff_agents: Agents this agent may transfer control to
            description: Optional human-readable description

        Raises:
            AgentConfigurationError: If the name is empty, the provider unknown, or tool names collide
        """
        if not name or not name.strip():
            raise AgentConfigurationError("Agent name must be a non-empty string")
        try:
            provider = Provider(provider)
        except ValueError as e:
            raise AgentConfigurationError(f"Unknown provider '{provider}' for agent '{name}'") from e

        self._name = name
        self._instructions = instructions
        self._model = model
        self._provider = provider
        self._tools = tuple(tools)
        self._description = description
        self._handoff_agents: list[Agent] = []
        self._lock = threading.Lock()

        tool_names = [tool.name for tool in self._tools]
        duplicates = {n for n in tool_names if tool_names.count(n) > 1}
        if duplicates:
            raise AgentConfigurationError(
                f"Agent '{name}' declares duplicate tool names: {', '.join(sorted(duplicates))}"
            )

        self.register_handoffs(*handoff_agents)

    @property
    def name(self) -> str:
        return self._name

    @property
    def instructions(self) -> Instructions | None:
        return self._instructions

    @property
    def model(self) -> str:
        return self._model

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def description(self) -> str:
        return self._description

    @property
    def tools(self) -> tuple[Tool, ...]:
        return self._tools

    @property
    def handoff_agents(self) -> tuple["Agent", ...]:
        with self._lock:
            return tuple(self._handoff_agents)

    def register_handoffs(self, *agents: "Agent") -> Self:
        """Register handoff targets, ignoring ones already registered.

        Returns:
            The agent itself, for chaining
        """
        with self._lock:
            for agent in agents:
                if not any(agent is existing for existing in self._handoff_agents):
                    self._handoff_agents.append(agent)
        return self

    def handoff_tools(self) -> tuple[HandoffTool, ...]:
        """Synthesize one transfer tool per handoff target, in declaration order."""
        return tuple(HandoffTool(target) for target in self.handoff_agents)

    def all_tools(self) -> tuple[Tool, ...]:
        """Regular tools followed by handoff tools.

        Raises:
            AgentConfigurationError: If a handoff tool name collides with another tool
        """
        tools = self._tools + self.handoff_tools()
        seen: set[str] = set()
        for tool in tools:
            if tool.name in seen:
                raise AgentConfigurationError(
                    f"Tool name collision on agent '{self._name}': '{tool.name}'"
                )
            seen.add(tool.name)
        return tools

    def resolve_instructions(self, context: RunContext) -> str | None:
        """Resolve static or context-derived instructions for a new session."""
        if self._instructions is None:
            return None
        if callable(self._instructions):
            return str(self._instructions(context))
        return str(self._instructions)

    def clone(self, **overrides: Any) -> "Agent":
        """Return a new agent with the given fields replaced."""
        fields: dict[str, Any] = {
            "name": self._name,
            "instructions": self._instructions,
            "model": self._model,
            "provider": self._provider,
            "tools": self._tools,
            "handoff_agents": self.handoff_agents,
            "description": self._description,
        }
        fields.update(overrides)
        return Agent(**fields)

    def __repr__(self) -> str:
        targets = [agent.name for agent in self.handoff_agents]
        return (
            f"Agent(name={self._name!r}, model={self._model!r}, "
            f"tools={[tool.name for tool in self._tools]!r}, handoffs={targets!r})"
        )
