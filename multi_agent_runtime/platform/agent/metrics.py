"""Agent runtime metrics.

Counters and histograms for runs, turns, token usage, tool calls, and
handoffs, registered on the default Prometheus registry.
"""

from contextlib import contextmanager
from time import monotonic
from typing import NamedTuple

import prometheus_client

from multi_agent_runtime.platform.observability.metrics import setup_metrics_factory


class ToolMetricsLabels(NamedTuple):
    agent: str
    tool: str


runs_counter = prometheus_client.Counter(
    "agent_runs_total",
    "Completed runs by starting agent and outcome",
    labelnames=("agent", "status"),
)
turns_counter = prometheus_client.Counter(
    "agent_turns_total",
    "Model round-trips by agent",
    labelnames=("agent",),
)
tokens_counter = prometheus_client.Counter(
    "agent_tokens_total",
    "Tokens consumed by agent, model, and direction",
    labelnames=("agent", "model", "direction"),
)
tool_calls_counter = prometheus_client.Counter(
    "agent_tool_calls_total",
    "Tool executions by agent, tool, and outcome",
    labelnames=("agent", "tool", "status"),
)
handoffs_counter = prometheus_client.Counter(
    "agent_handoffs_total",
    "Applied handoffs by source and target agent",
    labelnames=("source", "target"),
)
tool_duration_histogram = setup_metrics_factory(
    prometheus_client.REGISTRY,
    name="agent_tool_duration_seconds",
    documentation="Tool execution duration (seconds)",
    labelnames=ToolMetricsLabels._fields,
)


def record_agent_tokens(agent: str, model: str, input_tokens: int, output_tokens: int) -> None:
    if input_tokens:
        tokens_counter.labels(agent, model, "input").inc(input_tokens)
    if output_tokens:
        tokens_counter.labels(agent, model, "output").inc(output_tokens)


def record_turn(agent: str) -> None:
    turns_counter.labels(agent).inc()


def record_tool_call(labels: ToolMetricsLabels, duration: float, error: bool = False) -> None:
    tool_calls_counter.labels(*labels, "error" if error else "ok").inc()
    tool_duration_histogram.labels(*labels).observe(duration)


def record_handoff(source: str, target: str) -> None:
    handoffs_counter.labels(source, target).inc()


def record_run(agent: str, status: str) -> None:
    runs_counter.labels(agent, status).inc()


@contextmanager
def timed():
    """Yield a callable returning seconds elapsed since entering the block."""
    start = monotonic()
    yield lambda: monotonic() - start
