"""Keeper that periodically triggers volatility updates.

Polls a set of markets and calls FeeEngine.trigger_update() for each one
that is registered and past its minimum update interval. Failures on one
market are logged and do not stop the others.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from fee_engine.core.engine import FeeEngine
from fee_engine.domain.errors import FeeEngineError, IncentivePaymentError
from fee_engine.domain.types import Regime, UpdateResult

if TYPE_CHECKING:
    from fee_engine.monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)


def wall_clock() -> int:
    """Return the current unix time in whole seconds."""
    return int(time.time())


class Keeper:
    """Polling update trigger for a FeeEngine.

    Tracks the last regime seen per market to report regime changes.
    """

    def __init__(
        self,
        engine: FeeEngine,
        market_ids: list[str],
        caller: str = "keeper",
        poll_interval_seconds: float = 300.0,
        clock: Callable[[], int] = wall_clock,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """Initialize the keeper.

        Args:
            engine: Engine to update
            market_ids: Markets to poll
            caller: Identity that receives the update incentive
            poll_interval_seconds: Delay between polls in run()
            clock: Source of the update time in seconds
            metrics: Optional metrics collector
        """
        if not market_ids:
            raise ValueError("Keeper needs at least one market ID")
        self._engine = engine
        self._market_ids = list(market_ids)
        self._caller = caller
        self._poll_interval = poll_interval_seconds
        self._clock = clock
        self._metrics = metrics
        self._last_regimes: dict[str, Regime] = {}
        self._stop_event = asyncio.Event()
        self._update_count = 0
        self._error_count = 0

    @property
    def update_count(self) -> int:
        """Return the number of successful updates triggered."""
        return self._update_count

    @property
    def error_count(self) -> int:
        """Return the number of failed update attempts."""
        return self._error_count

    def last_regime(self, market_id: str) -> Regime | None:
        """Return the regime seen on the last update of a market."""
        return self._last_regimes.get(market_id)

    def poll_once(self) -> list[tuple[str, UpdateResult]]:
        """Try to update every market once.

        Returns:
            (market_id, result) for each market that was updated
        """
        now = self._clock()
        results: list[tuple[str, UpdateResult]] = []

        for market_id in self._market_ids:
            try:
                result = self._update_market(market_id, now)
            except IncentivePaymentError as e:
                # State was committed before the payment leg failed
                self._record_failure(market_id, e)
                logger.error(f"Incentive payment failed for {market_id}: {e}")
                state = self._engine.get_vol_state(market_id)
                self._note_regime(market_id, state.regime)
                continue
            except FeeEngineError as e:
                self._record_failure(market_id, e)
                logger.error(f"Error updating market {market_id}: {e}")
                continue

            if result is not None:
                results.append((market_id, result))

        if self._metrics:
            self._metrics.refresh(self._engine)

        return results

    async def run(self) -> None:
        """Poll until stop() is called."""
        logger.info(
            f"Keeper started: {len(self._market_ids)} markets, "
            f"poll interval {self._poll_interval}s"
        )
        self._stop_event.clear()

        while not self._stop_event.is_set():
            self.poll_once()
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._poll_interval
                )
            except asyncio.TimeoutError:
                pass

        logger.info("Keeper stopped")

    def stop(self) -> None:
        """Ask run() to return after the current poll."""
        self._stop_event.set()

    def _update_market(self, market_id: str, now: int) -> UpdateResult | None:
        if not self._engine.is_market_initialized(market_id):
            logger.warning(f"Market {market_id} not initialized, skipping")
            return None

        wait = self._engine.seconds_until_update(market_id, now)
        if wait > 0:
            logger.debug(f"Market {market_id} updated too recently, wait {wait}s")
            return None

        if self._metrics:
            with self._metrics.time_update(market_id):
                result = self._engine.trigger_update(market_id, now, self._caller)
            self._metrics.inc_updates(market_id)
        else:
            result = self._engine.trigger_update(market_id, now, self._caller)

        self._update_count += 1
        self._note_regime(market_id, result.regime)

        logger.info(
            f"Market {market_id}: vol {result.new_vol / 100:.2f}% | "
            f"regime {result.regime.label} | fee {result.new_fee}bps"
        )
        return result

    def _record_failure(self, market_id: str, error: FeeEngineError) -> None:
        self._error_count += 1
        if self._metrics:
            self._metrics.inc_update_failures(market_id, type(error).__name__)

    def _note_regime(self, market_id: str, regime: Regime) -> None:
        previous = self._last_regimes.get(market_id)
        if previous is not None and previous != regime:
            logger.info(
                f"Regime change on {market_id}: {previous.label} -> {regime.label}"
            )
        self._last_regimes[market_id] = regime
