"""Prometheus metrics for fee engine monitoring.

Provides metrics for:
- Oracle state (volatility, EMAs, regime, observation count)
- Fees (current fee per market)
- Keeper activity (updates, failures, incentives)
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

if TYPE_CHECKING:
    from fee_engine.core.engine import FeeEngine


class MetricsCollector:
    """Collects and exposes Prometheus metrics.

    Each collector owns its registry so several engines (or tests) can
    coexist in one process.
    """

    def __init__(
        self,
        prefix: str = "fee_engine",
        registry: CollectorRegistry | None = None,
    ) -> None:
        """Initialize metrics collector.

        Args:
            prefix: Metric name prefix
            registry: Registry to register metrics in (a new one if omitted)
        """
        self._prefix = prefix
        self._registry = registry or CollectorRegistry()

        self._info = Info(
            f"{prefix}",
            "Fee engine information",
            registry=self._registry,
        )

        # Oracle metrics
        self._current_vol = Gauge(
            f"{prefix}_current_vol_bps",
            "Annualized realized volatility in bps",
            ["market_id"],
            registry=self._registry,
        )

        self._ema_7d = Gauge(
            f"{prefix}_ema_7d_bps",
            "7-day half-life EMA of volatility in bps",
            ["market_id"],
            registry=self._registry,
        )

        self._ema_30d = Gauge(
            f"{prefix}_ema_30d_bps",
            "30-day half-life EMA of volatility in bps",
            ["market_id"],
            registry=self._registry,
        )

        self._regime = Gauge(
            f"{prefix}_regime",
            "Volatility regime (0=very low .. 4=extreme)",
            ["market_id"],
            registry=self._registry,
        )

        self._observations = Gauge(
            f"{prefix}_observations",
            "Observations retained in the ring buffer",
            ["market_id"],
            registry=self._registry,
        )

        # Fee metrics
        self._fee = Gauge(
            f"{prefix}_fee_bps",
            "Fee quoted for the next trade in bps",
            ["market_id"],
            registry=self._registry,
        )

        # Keeper metrics
        self._updates = Counter(
            f"{prefix}_updates_total",
            "Successful volatility updates",
            ["market_id"],
            registry=self._registry,
        )

        self._update_failures = Counter(
            f"{prefix}_update_failures_total",
            "Failed volatility update attempts",
            ["market_id", "reason"],
            registry=self._registry,
        )

        self._treasury_balance = Gauge(
            f"{prefix}_treasury_balance",
            "Incentive treasury balance in base units",
            registry=self._registry,
        )

        self._update_latency = Histogram(
            f"{prefix}_update_latency_seconds",
            "Volatility update latency",
            ["market_id"],
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the registry metrics are registered in."""
        return self._registry

    def set_info(self, **kwargs: str) -> None:
        """Set info metric values."""
        self._info.info(kwargs)

    # --- Oracle Metrics ---

    def refresh(self, engine: FeeEngine) -> None:
        """Copy the current state of every market into the gauges."""
        for market_id in engine.market_ids:
            state = engine.get_vol_state(market_id)
            self._current_vol.labels(market_id=market_id).set(state.current_vol)
            self._ema_7d.labels(market_id=market_id).set(state.ema_7d)
            self._ema_30d.labels(market_id=market_id).set(state.ema_30d)
            self._regime.labels(market_id=market_id).set(int(state.regime))
            self._observations.labels(market_id=market_id).set(
                engine.get_observation_count(market_id)
            )
            self._fee.labels(market_id=market_id).set(engine.quote_fee(market_id))

        self._treasury_balance.set(engine.treasury.balance)

    # --- Keeper Metrics ---

    def inc_updates(self, market_id: str) -> None:
        """Increment successful update counter."""
        self._updates.labels(market_id=market_id).inc()

    def inc_update_failures(self, market_id: str, reason: str) -> None:
        """Increment failed update counter."""
        self._update_failures.labels(market_id=market_id, reason=reason).inc()

    def observe_update_latency(self, market_id: str, seconds: float) -> None:
        """Record update latency."""
        self._update_latency.labels(market_id=market_id).observe(seconds)

    @contextmanager
    def time_update(self, market_id: str) -> Generator[None, None, None]:
        """Context manager to time a volatility update."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe_update_latency(market_id, time.perf_counter() - start)

    # --- Export ---

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format.

        Returns:
            Metrics as bytes in Prometheus exposition format
        """
        return generate_latest(self._registry)


# Global metrics collector instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector.

    Returns:
        Global MetricsCollector instance
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def init_metrics(prefix: str = "fee_engine") -> MetricsCollector:
    """Initialize global metrics collector.

    Args:
        prefix: Metric name prefix

    Returns:
        Initialized MetricsCollector
    """
    global _metrics
    _metrics = MetricsCollector(prefix=prefix)
    return _metrics
