"""Observability infrastructure module.

This module provides monitoring support:
- Structured logging with run IDs
- Prometheus metrics helpers
"""

from multi_agent_runtime.platform.observability.logging import (
    configure_logging,
    get_logger,
    run_id_ctx,
)
from multi_agent_runtime.platform.observability.metrics import (
    BUCKETS,
    metrics,
    setup_metrics_factory,
)

__all__ = [
    "BUCKETS",
    "configure_logging",
    "get_logger",
    "metrics",
    "run_id_ctx",
    "setup_metrics_factory",
]
