"""Integration test fixtures.

This module provides shared fixtures for driving the Runner end to end:
- Small agent graphs used across scenarios (calculator, triage/billing/support)
- Tools with observable side effects

Model responses come from the scripted backend in scripted.py; no network
access is needed.
"""

import pytest

from multi_agent_runtime.platform.agent.agent import Agent
from multi_agent_runtime.platform.agent.context import ToolContext
from multi_agent_runtime.platform.agent.tools import function_tool


@pytest.fixture
def add_tool():
    """Add(a, b) tool returning the sum as a string."""

    @function_tool
    def add(context: ToolContext, a: int, b: int) -> str:
        """Add two integers."""
        return str(a + b)

    return add


@pytest.fixture
def calc_agent(add_tool) -> Agent:
    return Agent("Calc", instructions="You are a calculator.", tools=[add_tool])


@pytest.fixture
def billing_agent() -> Agent:
    return Agent("Billing", instructions="You handle payments.")


@pytest.fixture
def support_agent() -> Agent:
    return Agent("Support", instructions="You handle technical issues.")


@pytest.fixture
def triage_agent(billing_agent: Agent, support_agent: Agent) -> Agent:
    """Triage hands off to Billing and Support; Billing can hand back."""
    triage = Agent("Triage", instructions="Route the user to the right agent.")
    triage.register_handoffs(billing_agent, support_agent)
    billing_agent.register_handoffs(triage)
    return triage
