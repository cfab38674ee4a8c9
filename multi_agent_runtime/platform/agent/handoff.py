"""Handoff protocol.

A handoff is represented as an ordinary tool call so it flows through the
model's function-calling mechanism. Executing a handoff tool never mutates
run state: it returns a HandoffDescriptor and the Runner alone applies the
agent switch.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from multi_agent_runtime.platform.agent.context import ToolContext
from multi_agent_runtime.platform.agent.tools import Tool, ToolParameter, snake_case

if TYPE_CHECKING:
    from multi_agent_runtime.platform.agent.agent import Agent

HANDOFF_TOOL_PREFIX = "transfer_to_"

RECOMMENDED_HANDOFF_PROMPT_PREFIX = (
    "# System context\n"
    "You are part of a multi-agent system designed to make agent coordination and "
    "execution easy. Agents use two primary abstractions: **Agents** and **Handoffs**. "
    "An agent encompasses instructions and tools and can hand off a conversation to "
    "another agent when appropriate. Handoffs are achieved by calling a handoff function, "
    "generally named `transfer_to_<agent_name>`.\n\n"
    "Transfers between agents are handled seamlessly in the background and are invisible "
    "to users. Never mention transfers, handoffs, or connecting to other agents in your "
    "conversation with the user. Simply call the transfer function when needed."
)


def prompt_with_handoff_instructions(prompt: str) -> str:
    """Prepend the recommended handoff system context to an agent prompt."""
    return f"{RECOMMENDED_HANDOFF_PROMPT_PREFIX}\n\n{prompt}"


def handoff_tool_name(agent_name: str) -> str:
    """Deterministic handoff tool name for a target agent ("Billing" -> "transfer_to_billing")."""
    return f"{HANDOFF_TOOL_PREFIX}{snake_case(agent_name)}"


@dataclass(frozen=True)
class HandoffDescriptor:
    """Immutable request to transfer control to another agent.

    Attributes:
        target_agent: The agent to transfer the conversation to
        message: Acknowledgement returned to the model as the tool result
        reason: Reason the model gave for the transfer, if any
    """

    target_agent: "Agent"
    message: str
    reason: str | None = None

    def __str__(self) -> str:
        return self.message


class HandoffTool(Tool):
    """Synthetic tool transferring control to a single target agent."""

    def __init__(self, target_agent: "Agent", description: str | None = None) -> None:
        """Initialize the handoff tool.

        Args:
            target_agent: The agent this tool transfers to
            description: Custom description (defaults to "Transfer to <name>")
        """
        self.target_agent = target_agent
        super().__init__(
            name=handoff_tool_name(target_agent.name),
            description=description or f"Transfer to {target_agent.name}",
            parameters=(
                ToolParameter(
                    name="reason",
                    type="string",
                    description="Reason for the transfer (optional)",
                    required=False,
                ),
            ),
        )

    def perform(self, context: ToolContext, reason: str | None = None) -> HandoffDescriptor:
        suffix = f" ({reason})" if reason else ""
        return HandoffDescriptor(
            target_agent=self.target_agent,
            message=f"Transferring to {self.target_agent.name}{suffix}",
            reason=reason,
        )

    def execute(self, context: ToolContext, **params: Any) -> HandoffDescriptor:  # type: ignore[override]
        return self.request_handoff(context, params)

    def request_handoff(self, context: ToolContext, arguments: dict[str, Any]) -> HandoffDescriptor:
        """Return the handoff descriptor; malformed arguments only lose the reason."""
        try:
            validated = self.validate_arguments(arguments)
        except ValueError:
            validated = {}
        return self.perform(context, **validated)
