"""Execution engine.

The Runner drives a multi-turn, multi-agent conversation to a final answer
or to a reported failure. Every model round-trip is one turn, including the
one that requests a handoff. State is written back into the run context at
every turn boundary and on every exit path, so the returned context can
always be used to resume the conversation.

AgentRunner is the thread-safe facade most hosts use: it owns the agent
set, the registry, and run callbacks, and creates a fresh Runner per call.
"""

import logging
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Self

from opentelemetry import trace

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.chat import (
    Chat,
    FinalResponse,
    HandoffResponse,
    ToolResults,
)
from multi_agent_runtime.platform.agent.config import RunnerConfig
from multi_agent_runtime.platform.agent.context import (
    CURRENT_AGENT_KEY,
    HISTORY_KEY,
    RunContext,
    load_history,
)
from multi_agent_runtime.platform.agent.errors import AgentConfigurationError, MaxTurnsExceeded
from multi_agent_runtime.platform.agent.llm_client import LlmClient, ModelBackend
from multi_agent_runtime.platform.agent.messages import Message, RunEvent, RunResult
from multi_agent_runtime.platform.agent.metrics import record_handoff, record_run
from multi_agent_runtime.platform.agent.registry import AgentRegistry
from multi_agent_runtime.platform.observability.logging import run_id_ctx

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class RunCallbacks:
    """Observers notified while a run executes.

    Callbacks receive:
        on_tool_start(tool_name, arguments)
        on_tool_complete(tool_name, result)
        on_agent_thinking(agent_name, input)
        on_agent_handoff(from_agent, to_agent, reason)

    A failing callback is logged and ignored.
    """

    on_tool_start: list[Callable[[str, dict[str, Any]], Any]] = field(default_factory=list)
    on_tool_complete: list[Callable[[str, str], Any]] = field(default_factory=list)
    on_agent_thinking: list[Callable[[str, str], Any]] = field(default_factory=list)
    on_agent_handoff: list[Callable[[str, str, str | None], Any]] = field(default_factory=list)

    def emit(self, event: RunEvent) -> None:
        data = event.data
        match event.event_type:
            case "tool_start":
                self._notify(self.on_tool_start, data["tool"], data.get("arguments", {}))
            case "tool_complete":
                self._notify(self.on_tool_complete, data["tool"], data.get("result", ""))
            case "agent_thinking":
                self._notify(self.on_agent_thinking, data["agent"], data.get("input", ""))
            case "agent_handoff":
                self._notify(self.on_agent_handoff, data["from"], data["to"], data.get("reason"))
            case _:
                logger.debug("No callbacks for event type '%s'", event.event_type)

    def copy(self) -> "RunCallbacks":
        return RunCallbacks(
            on_tool_start=list(self.on_tool_start),
            on_tool_complete=list(self.on_tool_complete),
            on_agent_thinking=list(self.on_agent_thinking),
            on_agent_handoff=list(self.on_agent_handoff),
        )

    @staticmethod
    def _notify(callbacks: Sequence[Callable[..., Any]], *args: Any) -> None:
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.warning("Run callback %r failed", callback, exc_info=True)


class Runner:
    """Multi-turn, multi-agent execution engine."""

    def __init__(
        self,
        backend: ModelBackend | None = None,
        registry: AgentRegistry | None = None,
        config: RunnerConfig | None = None,
    ) -> None:
        """Initialize the Runner.

        Args:
            backend: Model backend (defaults to a LiteLLM client with default settings)
            registry: Prebuilt agent registry; built from the starting agent when omitted
            config: Turn budget and tool execution settings
        """
        self._backend = backend or LlmClient()
        self._registry = registry
        self._built_registry: AgentRegistry | None = None
        self._config = config or RunnerConfig()
        self._lock = threading.Lock()

    def run(
        self,
        starting_agent: Agent,
        input: str,
        context: Mapping[str, Any] | None = None,
        max_turns: int | None = None,
        callbacks: RunCallbacks | None = None,
    ) -> RunResult:
        """Run the conversation until a final answer, the turn limit, or a failure.

        Args:
            starting_agent: Agent used when the context names no resolvable current agent
            input: New user message (may be empty when only resuming)
            context: Context returned by a previous run, or initial user data
            max_turns: Model round-trip budget for this run
            callbacks: Observers for tool, thinking, and handoff events

        Returns:
            RunResult; failures are reported through its error field, never raised

        Raises:
            AgentConfigurationError: If max_turns is not positive or the agent graph is invalid
        """
        max_turns = self._config.max_turns if max_turns is None else max_turns
        if max_turns < 1:
            raise AgentConfigurationError(f"max_turns must be at least 1, got {max_turns}")
        registry = self._registry or self._registry_for(starting_agent)

        run_context = RunContext(context)
        agent = registry.resolve_or_default(run_context.current_agent_name, starting_agent)
        history: list[Message] = list(run_context.conversation_history)
        emit = callbacks.emit if callbacks is not None else None
        turn_count = 0
        output: str | None = None
        error: Exception | None = None
        chat: Chat | None = None

        token = run_id_ctx.set(uuid.uuid4().hex)
        try:
            with tracer.start_as_current_span("agent.run") as span:
                span.set_attribute("agent.starting", agent.name)
                logger.info("Run started with agent '%s' (max_turns=%d)", agent.name, max_turns)
                try:
                    chat = self._new_chat(agent, run_context, history, emit)
                    if input:
                        chat.ask(input)

                    while True:
                        turn_count += 1
                        if turn_count > max_turns:
                            raise MaxTurnsExceeded(max_turns)

                        logger.debug("Turn %d with agent '%s'", turn_count, agent.name)
                        response = chat.step()
                        history.extend(chat.drain())
                        run_context.checkpoint(history, agent.name, turn_count)

                        match response:
                            case FinalResponse(content=content):
                                output = content
                                break
                            case HandoffResponse():
                                previous = agent
                                agent = response.target_agent
                                self._apply_handoff(run_context, previous, agent, response, emit)
                                run_context.checkpoint(history, agent.name, turn_count)
                                chat = self._new_chat(agent, run_context, history, emit)
                            case ToolResults():
                                continue

                except MaxTurnsExceeded as e:
                    logger.warning("Run stopped with agent '%s': %s", agent.name, e)
                    error = e
                    output = f"Conversation ended: {e}"
                except Exception as e:
                    logger.exception("Run failed with agent '%s'", agent.name)
                    span.record_exception(e)
                    error = e
                    output = None
                finally:
                    # messages of an interrupted step (e.g. the user input) are kept
                    if chat is not None:
                        history.extend(chat.drain())
                    turn_count = min(turn_count, max_turns)
                    run_context.checkpoint(history, agent.name, turn_count)

                status = "success" if error is None else type(error).__name__
                span.set_attribute("agent.final", agent.name)
                span.set_attribute("agent.turns", turn_count)
                span.set_attribute("run.status", status)

            record_run(starting_agent.name, status)
            logger.info(
                "Run finished with agent '%s' after %d turns (%s)", agent.name, turn_count, status
            )
        finally:
            run_id_ctx.reset(token)

        return RunResult(
            output=output,
            messages=list(history),
            usage=run_context.usage,
            error=error,
            context=run_context.snapshot(),
        )

    def _registry_for(self, starting_agent: Agent) -> AgentRegistry:
        """Registry built from the starting agent, reused while the starting agent is unchanged."""
        with self._lock:
            registry = self._built_registry
            if registry is None or registry.get(starting_agent.name) is not starting_agent:
                registry = AgentRegistry.build(starting_agent)
                self._built_registry = registry
            return registry

    def _new_chat(
        self,
        agent: Agent,
        run_context: RunContext,
        history: Sequence[Message],
        emit: Callable[[RunEvent], None] | None,
    ) -> Chat:
        chat = Chat(
            agent,
            self._backend,
            run_context,
            parallel_tool_calls=self._config.parallel_tool_calls,
            max_tool_workers=self._config.max_tool_workers,
            emit=emit,
        )
        chat.restore(history)
        return chat

    @staticmethod
    def _apply_handoff(
        run_context: RunContext,
        source: Agent,
        target: Agent,
        response: HandoffResponse,
        emit: Callable[[RunEvent], None] | None,
    ) -> None:
        run_context.record_transition(source.name, target.name, response.reason)
        record_handoff(source.name, target.name)
        logger.info("Handoff from '%s' to '%s' (%s)", source.name, target.name, response.reason)
        if emit is not None:
            emit(
                RunEvent(
                    event_type="agent_handoff",
                    data={"from": source.name, "to": target.name, "reason": response.reason},
                )
            )


class AgentRunner:
    """Thread-safe entry point for running conversations over a fixed agent set.

    Example:
        triage = Agent("Triage", instructions="Route the user")
        billing = Agent("Billing", instructions="Handle payments")
        triage.register_handoffs(billing)

        runner = AgentRunner([triage, billing]).on_agent_handoff(print)
        result = runner.run("I need to pay my bill")
        result = runner.run("It's invoice 42", context=result.context)
    """

    def __init__(
        self,
        agents: Sequence[Agent],
        backend: ModelBackend | None = None,
        config: RunnerConfig | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            agents: Available agents; the first one is the default entry point
            backend: Model backend shared by every run
            config: Turn budget and tool execution settings

        Raises:
            AgentConfigurationError: If no agents are given or the agent graph is invalid
        """
        agents = tuple(agents)
        if not agents:
            raise AgentConfigurationError("At least one agent must be provided")
        self._default_agent = agents[0]
        self._registry = AgentRegistry.build(*agents)
        self._backend = backend or LlmClient()
        self._config = config or RunnerConfig()
        self._callbacks = RunCallbacks()
        self._lock = threading.Lock()

    @property
    def default_agent(self) -> Agent:
        return self._default_agent

    @property
    def registry(self) -> AgentRegistry:
        return self._registry

    def run(
        self,
        input: str,
        context: Mapping[str, Any] | None = None,
        max_turns: int | None = None,
    ) -> RunResult:
        """Run one conversation step, resuming from a previously returned context."""
        starting_agent = self._resolve_agent(context or {})
        with self._lock:
            callbacks = self._callbacks.copy()
        runner = Runner(self._backend, self._registry, self._config)
        return runner.run(starting_agent, input, context=context, max_turns=max_turns, callbacks=callbacks)

    def on_tool_start(self, callback: Callable[[str, dict[str, Any]], Any]) -> Self:
        return self._register("on_tool_start", callback)

    def on_tool_complete(self, callback: Callable[[str, str], Any]) -> Self:
        return self._register("on_tool_complete", callback)

    def on_agent_thinking(self, callback: Callable[[str, str], Any]) -> Self:
        return self._register("on_agent_thinking", callback)

    def on_agent_handoff(self, callback: Callable[[str, str, str | None], Any]) -> Self:
        return self._register("on_agent_handoff", callback)

    def _register(self, event: str, callback: Callable[..., Any]) -> Self:
        with self._lock:
            getattr(self._callbacks, event).append(callback)
        return self

    def _resolve_agent(self, context: Mapping[str, Any]) -> Agent:
        """Persisted current agent, else the last attributed assistant message, else the default."""
        current = context.get(CURRENT_AGENT_KEY)
        if isinstance(current, str) and current in self._registry:
            return self._registry[current]

        for message in reversed(load_history(context.get(HISTORY_KEY))):
            if message.role == "assistant" and message.agent_name:
                if message.agent_name in self._registry:
                    return self._registry[message.agent_name]
                break

        return self._default_agent
