"""Run-scoped execution context.

A RunContext is created once per run from a deep copy of the caller's
context map, so concurrent runs sharing the same agents and tools never
observe each other's mutations. Tools reach it through a ToolContext that
is constructed fresh for every single tool call.
"""

import copy
import logging
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Self

from multi_agent_runtime.platform.agent.messages import Message, Usage

HISTORY_KEY = "conversation_history"
CURRENT_AGENT_KEY = "current_agent"
TURN_COUNT_KEY = "turn_count"
LAST_UPDATED_KEY = "last_updated"
TRANSITION_LOG_KEY = "transition_log"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """A recorded agent switch.

    Attributes:
        source: Name of the agent that handed off
        target: Name of the agent that received control
        reason: Reason given by the model, if any
        timestamp: When the switch was applied
    """

    source: str
    target: str
    reason: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.source,
            "to": self.target,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Create from a persisted transition log entry.

        A missing or unparseable timestamp is replaced by the current time.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp)
            except ValueError:
                logger.warning("Ignoring invalid transition timestamp: %r", timestamp)
                timestamp = None
        if not isinstance(timestamp, datetime):
            timestamp = datetime.now(UTC)
        return cls(
            source=str(data.get("from") or ""),
            target=str(data.get("to") or ""),
            reason=data.get("reason"),
            timestamp=timestamp,
        )


def _entries(value: Any, key: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        logger.warning("Ignoring persisted %s of type %s", key, type(value).__name__)
        return []
    return list(value)


def load_history(value: Any) -> list[Message]:
    """Parse a persisted conversation history, skipping entries that are not messages."""
    messages = []
    for item in _entries(value, HISTORY_KEY):
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, Mapping):
            messages.append(Message.from_dict(item))
        else:
            logger.warning("Skipping history entry of type %s", type(item).__name__)
    return messages


class RunContext:
    """Owner of all mutable state for a single run.

    Keys are always strings. User-defined keys live next to the reserved
    persistence keys (conversation_history, current_agent, turn_count,
    last_updated, transition_log) which the Runner writes at every checkpoint.
    """

    def __init__(self, context: Mapping[str, Any] | None = None):
        """Initialize from a deep copy of the caller-supplied context.

        Args:
            context: Context map returned by a previous run, or user data for a new conversation
        """
        self._data: dict[str, Any] = copy.deepcopy(dict(context or {}))
        self._lock = threading.RLock()
        self.usage = Usage()

        self.conversation_history: list[Message] = load_history(self._data.get(HISTORY_KEY))
        current_agent = self._data.get(CURRENT_AGENT_KEY)
        self.current_agent_name: str | None = current_agent if isinstance(current_agent, str) else None
        self.turn_count = 0
        self._transitions: list[Transition] = [
            Transition.from_dict(item)
            for item in _entries(self._data.get(TRANSITION_LOG_KEY), TRANSITION_LOG_KEY)
            if isinstance(item, Mapping)
        ]

    @property
    def data(self) -> dict[str, Any]:
        """Live view of the shared key/value store."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(self._key(key), default)

    def get_as(self, key: str, expected_type: type, default: Any = None) -> Any:
        """Typed accessor: return the value only if it has the expected type.

        Raises:
            TypeError: If the key holds a value of a different type
        """
        value = self.get(key, default)
        if value is not None and not isinstance(value, expected_type):
            raise TypeError(
                f"Context key '{key}' holds {type(value).__name__}, expected {expected_type.__name__}"
            )
        return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[self._key(key)] = value

    def update(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            for key, value in values.items():
                self._data[self._key(key)] = value

    def __getitem__(self, key: str) -> Any:
        return self._data[self._key(key)]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def keys(self) -> list[str]:
        return list(self._data)

    @property
    def transitions(self) -> tuple[Transition, ...]:
        return tuple(self._transitions)

    def record_transition(self, source: str, target: str, reason: str | None = None) -> Transition:
        """Append a handoff to the transition log."""
        transition = Transition(source=source, target=target, reason=reason)
        with self._lock:
            self._transitions.append(transition)
        return transition

    def checkpoint(self, history: list[Message], current_agent: str, turn_count: int) -> None:
        """Write the serializable run state back into the context map."""
        with self._lock:
            self.conversation_history = list(history)
            self.current_agent_name = current_agent
            self.turn_count = turn_count
            self._data[HISTORY_KEY] = [message.to_dict() for message in history]
            self._data[CURRENT_AGENT_KEY] = current_agent
            self._data[TURN_COUNT_KEY] = turn_count
            self._data[LAST_UPDATED_KEY] = datetime.now(UTC).isoformat()
            self._data[TRANSITION_LOG_KEY] = [t.to_dict() for t in self._transitions]

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the context map, safe to hand back to the caller."""
        with self._lock:
            return copy.deepcopy(self._data)

    @staticmethod
    def _key(key: str) -> str:
        if not isinstance(key, str):
            raise TypeError(f"Context keys must be strings, got {type(key).__name__}")
        return key

    def __repr__(self) -> str:
        return f"RunContext(keys={self.keys()!r}, current_agent={self.current_agent_name!r})"


class ToolContext:
    """Per-call handle through which a tool reads and writes run state.

    A new instance is created for every tool invocation; tools must keep
    per-call state here (or in locals), never on the tool instance.
    """

    __slots__ = ("_run_context", "call_id", "tool_name")

    def __init__(
        self,
        run_context: RunContext,
        call_id: str | None = None,
        tool_name: str | None = None,
    ):
        self._run_context = run_context
        self.call_id = call_id
        self.tool_name = tool_name

    @property
    def run_context(self) -> RunContext:
        return self._run_context

    @property
    def context(self) -> dict[str, Any]:
        return self._run_context.data

    @property
    def usage(self) -> Usage:
        return self._run_context.usage

    def get(self, key: str, default: Any = None) -> Any:
        return self._run_context.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._run_context.set(key, value)

    def __getitem__(self, key: str) -> Any:
        return self._run_context[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._run_context.set(key, value)

    def __contains__(self, key: object) -> bool:
        return key in self._run_context
