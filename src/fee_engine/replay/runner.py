"""Replay a recorded tick stream through the engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from fee_engine.core.engine import FeeEngine
from fee_engine.domain.errors import UnorderedObservationsError
from fee_engine.domain.types import Observation, Regime, UpdateResult, VolState
from fee_engine.keeper.keeper import Keeper
from fee_engine.replay.loader import TickLoader

logger = logging.getLogger(__name__)


@dataclass
class ReplayResult:
    """Results from a replay run."""

    market_id: str
    observations: int
    skipped: int = 0
    updates: list[tuple[int, UpdateResult]] = field(default_factory=list)
    final_state: VolState = field(default_factory=VolState.empty)
    final_fee: int = 0

    @property
    def update_count(self) -> int:
        """Return the number of volatility updates performed."""
        return len(self.updates)

    def regime_changes(self) -> list[tuple[int, Regime, Regime]]:
        """Return (timestamp, old, new) for each change of regime."""
        changes: list[tuple[int, Regime, Regime]] = []
        for (_, prev), (ts, curr) in zip(self.updates, self.updates[1:]):
            if prev.regime != curr.regime:
                changes.append((ts, prev.regime, curr.regime))
        return changes


class ReplayRunner:
    """Feeds recorded ticks to a FeeEngine as if they were live trades.

    The first observation registers the market; each following one is
    recorded as a trade and then the keeper is polled using the
    observation's timestamp as the clock. Updates therefore happen at most
    once per minimum update interval of data time. Records older than the
    newest accepted one are skipped.
    """

    def __init__(
        self,
        engine: FeeEngine,
        market_id: str = "replay",
        caller: str = "keeper",
        loader: TickLoader | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            engine: Engine to drive
            market_id: Market to register the stream under
            caller: Identity that receives update incentives
            loader: Optional tick loader (if None, creates new one)
        """
        self._engine = engine
        self._market_id = market_id
        self._caller = caller
        self._loader = loader or TickLoader()
        self._now = 0

    def run_file(self, file_path: str | Path) -> ReplayResult:
        """Replay a JSONL tick file."""
        return self.run(self._loader.iter_observations(file_path))

    def run(self, observations: Iterable[Observation]) -> ReplayResult:
        """Replay observations in order.

        Args:
            observations: Observations, oldest first

        Returns:
            ReplayResult with every update performed

        Raises:
            ValueError: If there are no observations
        """
        iterator = iter(observations)
        first = next(iterator, None)
        if first is None:
            raise ValueError("Replay needs at least one observation")

        self._engine.on_market_created(self._market_id, first.tick, first.timestamp)
        self._now = first.timestamp
        keeper = Keeper(
            self._engine,
            [self._market_id],
            caller=self._caller,
            clock=lambda: self._now,
        )
        result = ReplayResult(market_id=self._market_id, observations=1)

        for observation in iterator:
            try:
                self._engine.on_trade(
                    self._market_id, observation.tick, observation.timestamp
                )
            except UnorderedObservationsError as e:
                logger.warning(f"Skipping out-of-order record: {e}")
                result.skipped += 1
                continue
            self._now = observation.timestamp
            result.observations += 1

            for _, update in keeper.poll_once():
                result.updates.append((observation.timestamp, update))

        result.final_state = self._engine.get_vol_state(self._market_id)
        result.final_fee = self._engine.quote_fee(self._market_id)

        logger.info(
            f"Replay complete: {result.observations} observations, "
            f"{result.skipped} skipped, "
            f"{result.update_count} updates, final vol "
            f"{result.final_state.current_vol}bps, fee {result.final_fee}bps"
        )
        return result
