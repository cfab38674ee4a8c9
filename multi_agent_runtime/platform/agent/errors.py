"""Exception hierarchy for the agent runtime.

Failures inside a tool are absorbed at the tool boundary, failures between
turns are absorbed by the Runner, and only configuration errors are raised
to the caller.
"""


class AgentsError(Exception):
    """Base exception for all agent runtime errors."""


class AgentConfigurationError(AgentsError):
    """Raised when agents, tools, or the registry are configured illegally."""


class ToolExecutionError(AgentsError):
    """Raised when a tool fails while performing its action."""

    def __init__(self, tool_name: str, cause: BaseException):
        self.tool_name = tool_name
        self.cause = cause
        super().__init__(f"Error executing {tool_name}: {cause}")


class MaxTurnsExceeded(AgentsError):
    """Raised when a run exhausts its turn budget without a final answer."""

    def __init__(self, max_turns: int):
        self.max_turns = max_turns
        super().__init__(f"Exceeded maximum turns: {max_turns}")


class HandoffResolutionError(AgentsError):
    """Raised when an agent name cannot be resolved in the registry."""

    def __init__(self, agent_name: str):
        self.agent_name = agent_name
        super().__init__(f"Agent not found in registry: {agent_name}")


class ModelBackendError(AgentsError):
    """Raised when the model backend fails after all retry attempts."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(f"Model backend error: {message}")
