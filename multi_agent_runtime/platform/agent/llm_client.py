"""Model backend contract and the LiteLLM-backed implementation.

The engine treats the model call as an opaque remote procedure: given a
system prompt, message history, and tool schemas it returns either final
text or a set of requested tool invocations. Any object implementing
ModelBackend can be plugged into the Runner.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import tenacity
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_litellm import ChatLiteLLM

from multi_agent_runtime.platform.agent.config import LlmConfig, Provider
from multi_agent_runtime.platform.agent.errors import AgentsError, ModelBackendError
from multi_agent_runtime.platform.agent.messages import Message, Usage
from multi_agent_runtime.platform.agent.metrics import record_agent_tokens

logger = logging.getLogger(__name__)

type ChatModelFactory = Callable[[str, LlmConfig], BaseChatModel]


@dataclass(frozen=True)
class ModelRequest:
    """Everything the backend needs for one model round-trip.

    Attributes:
        agent_name: Name of the agent the call is made for (metrics, logging)
        model: Model identifier bound to the agent
        provider: Provider bound to the agent
        instructions: Resolved system instructions, if any
        messages: Conversation so far, in order
        tools: Function-calling schemas (regular tools and handoff tools)
    """

    agent_name: str
    model: str
    provider: Provider
    instructions: str | None
    messages: tuple[Message, ...]
    tools: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class ModelResponse:
    """Backend answer: final text, or tool calls in whatever shape the provider uses.

    Attributes:
        content: Assistant text (may accompany tool calls)
        tool_calls: Requested tool invocations, provider-shaped
        usage: Token usage of this call, if reported
    """

    content: str = ""
    tool_calls: tuple[Any, ...] = ()
    usage: Usage | None = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ModelBackend(Protocol):
    """Protocol for a language model backend."""

    def complete(self, request: ModelRequest) -> ModelResponse:
        """Perform one model round-trip."""
        ...


def litellm_model_id(provider: Provider, model: str) -> str:
    """LiteLLM routing id for a provider/model pair ("anthropic", "claude-x" -> "anthropic/claude-x")."""
    if "/" in model:
        return model
    return f"{provider.value}/{model}"


def default_chat_model_factory(model_id: str, config: LlmConfig) -> BaseChatModel:
    return ChatLiteLLM(
        model=model_id,
        api_key=config.api_key,
        api_base=config.base_url,
        temperature=config.temperature,
        request_timeout=config.request_timeout,
        max_retries=0,
    )


class LlmClient:
    """ModelBackend implementation using LiteLLM through LangChain.

    Provides:
    - One chat model per (provider, model) pair, created lazily and shared
    - Tool schema binding per request
    - Retries with exponential backoff for transient failures
    - Token metrics recording
    """

    def __init__(
        self,
        config: LlmConfig | None = None,
        chat_model_factory: ChatModelFactory | None = None,
    ) -> None:
        """Initialize the LLM client.

        Args:
            config: Connection, sampling, and retry settings
            chat_model_factory: Optional factory for the underlying chat model (inject for testing)
        """
        self._config = config or LlmConfig()
        self._factory = chat_model_factory or default_chat_model_factory
        self._models: dict[str, BaseChatModel] = {}
        self._lock = threading.Lock()

    def complete(self, request: ModelRequest) -> ModelResponse:
        """Send the request to the model and normalize its answer.

        Raises:
            ModelBackendError: If the call still fails after all retry attempts
        """
        model_id = litellm_model_id(request.provider, request.model)
        llm: Any = self._chat_model(model_id)
        if request.tools:
            llm = llm.bind_tools(list(request.tools))

        response = self._invoke(llm, self.to_langchain_messages(request), model_id)

        input_tokens, output_tokens = self.extract_tokens(response)
        record_agent_tokens(request.agent_name, model_id, input_tokens, output_tokens)
        return ModelResponse(
            content=self.extract_content(response),
            tool_calls=tuple(getattr(response, "tool_calls", None) or ()),
            usage=Usage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )

    def _chat_model(self, model_id: str) -> BaseChatModel:
        with self._lock:
            model = self._models.get(model_id)
            if model is None:
                model = self._factory(model_id, self._config)
                self._models[model_id] = model
            return model

    def _invoke(self, llm: Any, messages: list[BaseMessage], model_id: str) -> AIMessage:
        retrying = tenacity.Retrying(
            wait=tenacity.wait_exponential(multiplier=self._config.retry_wait_seconds, max=30),
            stop=tenacity.stop_after_attempt(max(1, self._config.retry_attempts)),
            retry=tenacity.retry_if_not_exception_type(AgentsError),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return retrying(llm.invoke, messages)
        except AgentsError:
            raise
        except Exception as e:
            raise ModelBackendError(f"{model_id}: {e}", cause=e) from e

    @staticmethod
    def to_langchain_messages(request: ModelRequest) -> list[BaseMessage]:
        """Convert framework-agnostic messages to LangChain messages."""
        converted: list[BaseMessage] = []
        if request.instructions:
            converted.append(SystemMessage(content=request.instructions))

        for message in request.messages:
            if message.role == "user":
                converted.append(HumanMessage(content=message.content))
            elif message.role == "assistant":
                tool_calls = [
                    {"id": call.call_id, "name": call.name, "args": dict(call.arguments)}
                    for call in message.tool_calls or ()
                ]
                converted.append(AIMessage(content=message.content, tool_calls=tool_calls))
            elif message.role == "tool":
                converted.append(
                    ToolMessage(
                        content=message.content,
                        tool_call_id=message.tool_call_id or "",
                        name=message.name,
                    )
                )
            elif message.role == "system":
                converted.append(SystemMessage(content=message.content))
        return converted

    @staticmethod
    def extract_tokens(message: AIMessage) -> tuple[int, int]:
        """Extract token counts from an AIMessage's usage metadata.

        Returns:
            Tuple of (input_tokens, output_tokens), defaults to (0, 0) if unavailable
        """
        usage = getattr(message, "usage_metadata", None)
        if not usage:
            return 0, 0
        return usage.get("input_tokens", 0), usage.get("output_tokens", 0)

    @staticmethod
    def extract_content(message: BaseMessage) -> str:
        content = message.content
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            text_parts = [p.get("text", "") if isinstance(p, dict) else str(p) for p in content]
            return " ".join(part for part in text_parts if part)
        return str(content)
