"""Framework-agnostic message and result types.

These types define the common vocabulary shared by the conversation
session, the Runner, and callers persisting conversations between runs.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Self

logger = logging.getLogger(__name__)


def decode_arguments(arguments: Any) -> dict[str, Any]:
    """Normalize tool call arguments to a dict (JSON strings are decoded)."""
    if arguments is None or arguments == "":
        return {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning("Could not decode tool arguments: %r", arguments)
            return {}
    if isinstance(arguments, Mapping):
        return dict(arguments)
    logger.warning("Ignoring tool arguments of type %s", type(arguments).__name__)
    return {}


@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model.

    Attributes:
        name: Name of the tool to invoke
        arguments: Arguments decoded from the model response
        call_id: Identifier linking the tool result back to this request
    """

    name: str
    arguments: dict[str, Any]
    call_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.call_id, "name": self.name, "arguments": dict(self.arguments)}


@dataclass(frozen=True)
class Message:
    """Framework-agnostic message representation.

    Attributes:
        role: Message role ("user", "assistant", "tool")
        content: Message text content
        agent_name: Agent that produced the message (assistant messages)
        tool_call_id: ID of the tool call this message responds to (tool messages)
        tool_calls: Tool calls requested by the model (assistant messages)
        name: Tool name (tool messages)
    """

    role: str
    content: str
    agent_name: str | None = None
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] | None = None
    name: str | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted conversation history shape."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.agent_name:
            data["agent_name"] = self.agent_name
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.name:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Create from a persisted conversation history entry.

        Arguments stored as a JSON string are decoded, undecodable arguments
        become empty, and tool call entries that are not mappings are dropped.
        """
        tool_calls = None
        if isinstance(data.get("tool_calls"), (list, tuple)):
            tool_calls = tuple(
                ToolCallRequest(
                    name=str(call.get("name") or ""),
                    arguments=decode_arguments(call.get("arguments")),
                    call_id=str(call.get("id") or ""),
                )
                for call in data["tool_calls"]
                if isinstance(call, Mapping)
            ) or None
        return cls(
            role=str(data.get("role", "")),
            content=str(data.get("content") or ""),
            agent_name=data.get("agent_name"),
            tool_call_id=data.get("tool_call_id"),
            tool_calls=tool_calls,
            name=data.get("name"),
        )


@dataclass
class Usage:
    """Token usage accumulated over every model call of a run."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, delta: "Usage | None") -> None:
        if delta is None:
            return
        self.input_tokens += delta.input_tokens or 0
        self.output_tokens += delta.output_tokens or 0
        self.total_tokens += delta.total_tokens or 0

    def to_dict(self) -> dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class RunResult:
    """Result of a Runner execution.

    Attributes:
        output: Final assistant response, a diagnostic on turn exhaustion, or None on failure
        messages: Conversation history as persisted into the returned context
        usage: Token usage accumulated during the run
        error: The failure that ended the run, if any
        context: Serializable context to pass back on the next call
    """

    output: str | None
    messages: list[Message]
    usage: Usage
    error: Exception | None = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def current_agent(self) -> str | None:
        return self.context.get("current_agent")


@dataclass(frozen=True)
class RunEvent:
    """Observable event emitted while a run executes.

    Attributes:
        event_type: Type of event ("tool_start", "tool_complete", "agent_thinking", "agent_handoff")
        data: Event-specific data payload
    """

    event_type: str
    data: dict[str, Any]
