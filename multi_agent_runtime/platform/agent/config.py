"""Configuration dataclasses for agent components.

This module provides immutable configuration objects for the model backend
and for the execution engine.
"""

from dataclasses import dataclass
from enum import StrEnum

DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_MAX_TURNS = 10


class Provider(StrEnum):
    """Model providers an agent can be bound to."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


@dataclass(frozen=True)
class LlmConfig:
    """Configuration for language model clients.

    Attributes:
        api_key: API key for the LLM provider (or LiteLLM proxy)
        base_url: Base URL for the API (e.g., LiteLLM proxy URL)
        temperature: Sampling temperature (0.0 to 1.0)
        request_timeout: Per-request timeout in seconds
        retry_attempts: Attempts per model call before giving up
        retry_wait_seconds: Initial wait between attempts (exponential backoff)
    """

    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.7
    request_timeout: float = 120.0
    retry_attempts: int = 3
    retry_wait_seconds: float = 1.0


@dataclass(frozen=True)
class RunnerConfig:
    """Configuration for the execution engine.

    Attributes:
        max_turns: Maximum model round-trips per run
        parallel_tool_calls: Execute independent regular tool calls of one turn concurrently
        max_tool_workers: Thread pool size used when parallel_tool_calls is enabled
    """

    max_turns: int = DEFAULT_MAX_TURNS
    parallel_tool_calls: bool = False
    max_tool_workers: int = 4
