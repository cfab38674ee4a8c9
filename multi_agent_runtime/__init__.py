"""multi-agent-runtime - A synchronous multi-agent conversation engine with tool calling and handoffs."""

from collections.abc import Sequence

from .platform.agent.agent import Agent
from .platform.agent.context import RunContext, ToolContext
from .platform.agent.handoff import prompt_with_handoff_instructions
from .platform.agent.llm_client import LlmClient
from .platform.agent.messages import Message, RunResult
from .platform.agent.runner import AgentRunner, Runner
from .platform.agent.tools import Tool, function_tool, param
from .platform.observability.logging import configure_logging
from .platform.settings import Settings


def create_runner(
    agents: Sequence[Agent],
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> AgentRunner:
    """Create an AgentRunner backed by LiteLLM, configured from the environment.

    Unless configure_logs is False, the logging settings are applied to the
    root logger (pass False when the host configures logging itself).
    """
    settings = settings or Settings()
    if configure_logs:
        configure_logging(settings.logging.log_level, json_output=settings.logging.log_json)
    return AgentRunner(
        agents,
        backend=LlmClient(settings.llm_config()),
        config=settings.runner_config(),
    )


__all__ = [
    "Agent",
    "AgentRunner",
    "LlmClient",
    "Message",
    "RunContext",
    "RunResult",
    "Runner",
    "Settings",
    "Tool",
    "ToolContext",
    "create_runner",
    "function_tool",
    "param",
    "prompt_with_handoff_instructions",
]
