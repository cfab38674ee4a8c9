"""Prometheus metrics helpers.

This module provides the shared histogram bucket layout and factory used by
the agent runtime metrics, plus an exposition helper for hosts that serve
a /metrics endpoint.
"""

import prometheus_client

BUCKETS = (
    # these are log spaced with 1 sig-fig rounding so there are 3 per decade
    # 2 div/decade = 1,       3.16,       10
    # 3 div/decade = 1,   2.15,   4.64,   10
    # 4 div/decade = 1, 1.78, 3.16, 5.62, 10
    0.0002,  # 200 μs
    0.0005,
    0.001,  # 1 ms
    0.002,
    0.005,
    0.01,
    0.02,
    0.05,
    0.1,
    0.2,
    0.5,
    1,
    2,
    5,
    10,
    20,
    60,  # slow model calls and remote tools
    float("inf"),
)


def setup_metrics_factory(registry, name, documentation, labelnames):
    """Create a Prometheus histogram with standard bucket configuration.

    Args:
        registry: Prometheus registry to register the metric with
        name: Metric name (e.g., "agent_tool_duration_seconds")
        documentation: Human-readable metric description
        labelnames: Tuple of label names for the histogram

    Returns:
        Configured Prometheus Histogram instance
    """
    return prometheus_client.Histogram(
        name=name,
        documentation=documentation,
        labelnames=labelnames,
        registry=registry,
        buckets=BUCKETS,
    )


def metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output for a /metrics endpoint.

    Returns:
        Tuple of (metrics_body, content_type) for the HTTP response
    """
    return (
        prometheus_client.generate_latest(prometheus_client.REGISTRY),
        prometheus_client.CONTENT_TYPE_LATEST,
    )
