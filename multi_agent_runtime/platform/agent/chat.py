"""Conversation session for a single active agent.

A Chat owns one agent's view of the conversation while that agent stays
active. Each step() is exactly one model round-trip followed by one of
three outcomes: a final answer, a batch of executed regular tool calls
(the Runner steps again), or a handoff that ends the session.
"""

import contextvars
import logging
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.context import RunContext, ToolContext
from multi_agent_runtime.platform.agent.handoff import HandoffTool
from multi_agent_runtime.platform.agent.llm_client import ModelBackend, ModelRequest
from multi_agent_runtime.platform.agent.messages import (
    Message,
    RunEvent,
    ToolCallRequest,
    decode_arguments,
)
from multi_agent_runtime.platform.agent.metrics import (
    ToolMetricsLabels,
    record_tool_call,
    record_turn,
    timed,
)

logger = logging.getLogger(__name__)

type EventSink = Callable[[RunEvent], None]


@dataclass(frozen=True)
class FinalResponse:
    """The model answered without requesting tools."""

    content: str


@dataclass(frozen=True)
class ToolResults:
    """Regular tool calls were executed; their results are in the session."""

    results: tuple[Message, ...]


@dataclass(frozen=True)
class HandoffResponse:
    """The model requested a transfer; the session is finished.

    Attributes:
        target_agent: Agent that should take over
        message: Acknowledgement returned to the model as the tool result
        reason: Reason the model gave, if any
        tool_call_id: Call id of the executed handoff request
    """

    target_agent: Agent
    message: str
    reason: str | None
    tool_call_id: str


type ChatResponse = FinalResponse | ToolResults | HandoffResponse


def _field(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def extract_tool_call(raw: Any) -> ToolCallRequest | None:
    """Extract name, arguments, and id from one provider-shaped tool call.

    Accepts LangChain dicts ({"name", "args", "id"}), OpenAI-style dicts or
    objects ({"id", "function": {"name", "arguments"}}), and ToolCallRequest.
    A missing id is replaced by a generated one.
    """
    if isinstance(raw, ToolCallRequest):
        return raw

    function = _field(raw, "function")
    if function is not None:
        name = _field(function, "name")
        arguments = _field(function, "arguments")
    else:
        name = _field(raw, "name")
        arguments = _field(raw, "args")
        if arguments is None:
            arguments = _field(raw, "arguments")

    if not name:
        logger.warning("Skipping tool call without a name: %r", raw)
        return None

    call_id = _field(raw, "id") or _field(raw, "call_id") or f"call_{uuid.uuid4().hex}"
    return ToolCallRequest(name=str(name), arguments=decode_arguments(arguments), call_id=str(call_id))


def extract_tool_calls(raw_calls: Iterable[Any]) -> list[ToolCallRequest]:
    return [call for call in (extract_tool_call(raw) for raw in raw_calls) if call is not None]


class Chat:
    """Conversation session bound to one agent and one run context."""

    def __init__(
        self,
        agent: Agent,
        backend: ModelBackend,
        run_context: RunContext,
        parallel_tool_calls: bool = False,
        max_tool_workers: int = 4,
        emit: EventSink | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            agent: The active agent
            backend: Model backend used for every round-trip
            run_context: Run-scoped state shared with tools
            parallel_tool_calls: Execute a batch of regular tool calls concurrently
            max_tool_workers: Upper bound on concurrent tool calls
            emit: Receiver for tool_start / tool_complete / agent_thinking events
        """
        self.agent = agent
        self._backend = backend
        self._run_context = run_context
        self._parallel = parallel_tool_calls
        self._max_workers = max(1, max_tool_workers)
        self._emit_event = emit

        tools = agent.all_tools()
        self._tools = {tool.name: tool for tool in tools}
        self._handoff_tools = {tool.name: tool for tool in tools if isinstance(tool, HandoffTool)}
        self._schemas = tuple(tool.to_schema() for tool in tools)
        self._instructions = agent.resolve_instructions(run_context)

        self.messages: list[Message] = []
        self._drained = 0
        self._pending_input = ""

    def restore(self, history: Sequence[Message]) -> None:
        """Replay prior conversation text; tool traces are not replayed."""
        for message in history:
            if message.role in ("user", "assistant") and message.has_content:
                self.messages.append(
                    Message(role=message.role, content=message.content, agent_name=message.agent_name)
                )
        self._drained = len(self.messages)

    def ask(self, text: str) -> None:
        self.messages.append(Message(role="user", content=text))
        self._pending_input = text

    def step(self) -> ChatResponse:
        """Run one model round-trip and act on the response."""
        self._emit("agent_thinking", {"agent": self.agent.name, "input": self._pending_input})
        self._pending_input = ""

        response = self._backend.complete(
            ModelRequest(
                agent_name=self.agent.name,
                model=self.agent.model,
                provider=self.agent.provider,
                instructions=self._instructions,
                messages=tuple(self.messages),
                tools=self._schemas,
            )
        )
        self._run_context.usage.add(response.usage)
        record_turn(self.agent.name)

        calls = extract_tool_calls(response.tool_calls)
        content = response.content or ""
        if not calls:
            self.messages.append(Message(role="assistant", content=content, agent_name=self.agent.name))
            return FinalResponse(content)

        self.messages.append(
            Message(
                role="assistant",
                content=content,
                agent_name=self.agent.name,
                tool_calls=tuple(calls),
            )
        )

        handoff_calls, regular_calls = self.classify_tool_calls(calls)
        if handoff_calls:
            if len(calls) > 1:
                logger.info(
                    "Agent '%s' requested %d tool calls with a handoff; executing only '%s'",
                    self.agent.name,
                    len(calls),
                    handoff_calls[0].name,
                )
            return self._execute_handoff(handoff_calls[0])

        return ToolResults(self._execute_regular(regular_calls))

    def classify_tool_calls(
        self, calls: Sequence[ToolCallRequest]
    ) -> tuple[list[ToolCallRequest], list[ToolCallRequest]]:
        """Split calls into (handoff calls, regular calls), preserving order."""
        handoff_calls, regular_calls = [], []
        for call in calls:
            if call.name in self._handoff_tools:
                handoff_calls.append(call)
            else:
                regular_calls.append(call)
        return handoff_calls, regular_calls

    def drain(self) -> list[Message]:
        """Messages added since the last drain, shaped for persisted history.

        Handoff acknowledgements are dropped, and so are the tool calls of an
        assistant message whose batch ended in a handoff.
        """
        new = self.messages[self._drained :]
        self._drained = len(self.messages)

        persisted: list[Message] = []
        handoff_ids: set[str] = set()
        for message in new:
            if message.role == "assistant" and message.tool_calls:
                if any(c.name in self._handoff_tools for c in message.tool_calls):
                    handoff_ids.update(c.call_id for c in message.tool_calls)
                    if message.has_content:
                        persisted.append(
                            Message(role="assistant", content=message.content, agent_name=message.agent_name)
                        )
                    continue
            if message.role == "tool" and message.tool_call_id in handoff_ids:
                continue
            persisted.append(message)
        return persisted

    def _execute_handoff(self, call: ToolCallRequest) -> HandoffResponse:
        tool = self._handoff_tools[call.name]
        descriptor = tool.request_handoff(
            ToolContext(self._run_context, call_id=call.call_id, tool_name=call.name),
            call.arguments,
        )
        self.messages.append(
            Message(role="tool", content=descriptor.message, tool_call_id=call.call_id, name=call.name)
        )
        return HandoffResponse(
            target_agent=descriptor.target_agent,
            message=descriptor.message,
            reason=descriptor.reason,
            tool_call_id=call.call_id,
        )

    def _execute_regular(self, calls: Sequence[ToolCallRequest]) -> tuple[Message, ...]:
        if self._parallel and len(calls) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(calls)),
                thread_name_prefix=f"tools-{self.agent.name}",
            ) as executor:
                # workers see the caller's context vars (run_id_ctx)
                futures = [
                    executor.submit(contextvars.copy_context().run, self._execute_tool, call)
                    for call in calls
                ]
                results = [future.result() for future in futures]
        else:
            results = [self._execute_tool(call) for call in calls]

        # request order, whatever order they finished in
        messages = tuple(
            Message(role="tool", content=result, tool_call_id=call.call_id, name=call.name)
            for call, result in zip(calls, results, strict=True)
        )
        self.messages.extend(messages)
        return messages

    def _execute_tool(self, call: ToolCallRequest) -> str:
        self._emit(
            "tool_start",
            {
                "agent": self.agent.name,
                "tool": call.name,
                "arguments": call.arguments,
                "call_id": call.call_id,
            },
        )
        tool = self._tools.get(call.name)
        with timed() as elapsed:
            if tool is None:
                logger.warning("Agent '%s' requested unknown tool '%s'", self.agent.name, call.name)
                result, failed = f"Tool not found: {call.name}", True
            else:
                context = ToolContext(self._run_context, call_id=call.call_id, tool_name=call.name)
                result, failed = tool.execute_call(context, call.arguments)
            duration = elapsed()

        record_tool_call(ToolMetricsLabels(self.agent.name, call.name), duration, error=failed)
        logger.debug("Tool '%s' finished in %.3fs (failed=%s)", call.name, duration, failed)
        self._emit(
            "tool_complete",
            {"agent": self.agent.name, "tool": call.name, "result": result, "call_id": call.call_id},
        )
        return result

    def _emit(self, event_type: str, data: dict[str, Any]) -> None:
        if self._emit_event is not None:
            self._emit_event(RunEvent(event_type=event_type, data=data))
