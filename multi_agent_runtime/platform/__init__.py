"""Agent runtime infrastructure module.

This module provides the building blocks of the runtime:
- Agent definitions, tools, and handoffs
- Conversation sessions and the execution engine
- Model backend integration through LiteLLM
- Settings, logging, and metrics
"""

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.config import LlmConfig, Provider, RunnerConfig
from multi_agent_runtime.platform.agent.llm_client import LlmClient, ModelBackend
from multi_agent_runtime.platform.agent.messages import Message, RunEvent, RunResult, Usage
from multi_agent_runtime.platform.agent.runner import AgentRunner, RunCallbacks, Runner
from multi_agent_runtime.platform.agent.tools import FunctionTool, Tool, function_tool
from multi_agent_runtime.platform.settings import Settings

__all__ = [
    # Core types
    "Agent",
    "Tool",
    "FunctionTool",
    "function_tool",
    # Configuration
    "LlmConfig",
    "Provider",
    "RunnerConfig",
    "Settings",
    # Engine
    "AgentRunner",
    "RunCallbacks",
    "Runner",
    # Model backend
    "LlmClient",
    "ModelBackend",
    # Message types
    "Message",
    "RunEvent",
    "RunResult",
    "Usage",
]
