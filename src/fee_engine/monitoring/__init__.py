"""Monitoring module.

Provides the engine API and Prometheus metrics.
"""

from fee_engine.monitoring.metrics import (
    MetricsCollector,
    get_metrics,
    init_metrics,
)

__all__ = [
    "MetricsCollector",
    "get_metrics",
    "init_metrics",
]
