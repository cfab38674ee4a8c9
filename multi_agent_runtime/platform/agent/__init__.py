"""Agent runtime core.

This module provides the core abstractions of the engine:
- Agent definitions and the agent registry
- Tool contract, functional tools, and remote tool sources
- Handoff protocol
- Run context shared with tools
- Conversation session and Runner
- Model backend protocol and LiteLLM client
"""

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.chat import Chat, FinalResponse, HandoffResponse, ToolResults
from multi_agent_runtime.platform.agent.config import LlmConfig, Provider, RunnerConfig
from multi_agent_runtime.platform.agent.context import RunContext, ToolContext, Transition
from multi_agent_runtime.platform.agent.errors import (
    AgentConfigurationError,
    AgentsError,
    HandoffResolutionError,
    MaxTurnsExceeded,
    ModelBackendError,
    ToolExecutionError,
)
from multi_agent_runtime.platform.agent.handoff import (
    HandoffDescriptor,
    HandoffTool,
    prompt_with_handoff_instructions,
)
from multi_agent_runtime.platform.agent.llm_client import (
    LlmClient,
    ModelBackend,
    ModelRequest,
    ModelResponse,
)
from multi_agent_runtime.platform.agent.messages import (
    Message,
    RunEvent,
    RunResult,
    ToolCallRequest,
    Usage,
)
from multi_agent_runtime.platform.agent.registry import AgentRegistry
from multi_agent_runtime.platform.agent.remote_tools import (
    RemoteTool,
    ToolSource,
    ToolSourceConfig,
    load_remote_tools,
)
from multi_agent_runtime.platform.agent.runner import AgentRunner, RunCallbacks, Runner
from multi_agent_runtime.platform.agent.tools import (
    FunctionTool,
    Tool,
    ToolParameter,
    function_tool,
    param,
)

__all__ = [
    "Agent",
    "AgentRegistry",
    "AgentRunner",
    "Chat",
    "FinalResponse",
    "FunctionTool",
    "HandoffDescriptor",
    "HandoffResponse",
    "HandoffTool",
    "LlmClient",
    "LlmConfig",
    "Message",
    "ModelBackend",
    "ModelRequest",
    "ModelResponse",
    "Provider",
    "RemoteTool",
    "RunCallbacks",
    "RunContext",
    "RunEvent",
    "RunResult",
    "Runner",
    "RunnerConfig",
    "Tool",
    "ToolCallRequest",
    "ToolContext",
    "ToolParameter",
    "ToolResults",
    "ToolSource",
    "ToolSourceConfig",
    "Transition",
    "Usage",
    "function_tool",
    "load_remote_tools",
    "param",
    "prompt_with_handoff_instructions",
    # Errors
    "AgentsError",
    "AgentConfigurationError",
    "HandoffResolutionError",
    "MaxTurnsExceeded",
    "ModelBackendError",
    "ToolExecutionError",
]
