"""Pytest configuration and shared fixtures."""

import pytest

from fee_engine.core.engine import FeeEngine
from fee_engine.core.treasury import IncentiveTreasury
from fee_engine.domain.types import Observation

GOVERNOR = "gov"
KEEPER = "keeper-1"
MARKET = "ETH-USDC"


@pytest.fixture
def drift_observations() -> list[Observation]:
    """Constant 10-tick drift every 15 seconds."""
    return [
        Observation(tick=tick, timestamp=ts)
        for tick, ts in zip([0, 10, 20, 30, 40], [0, 15, 30, 45, 60])
    ]


@pytest.fixture
def treasury() -> IncentiveTreasury:
    """Treasury funded for ten default incentives."""
    return IncentiveTreasury(balance=10_000)


@pytest.fixture
def engine(treasury: IncentiveTreasury) -> FeeEngine:
    """Engine with a small incentive and the default 300s interval."""
    return FeeEngine(
        governance=GOVERNOR,
        min_update_interval=300,
        incentive_amount=1_000,
        treasury=treasury,
    )


@pytest.fixture
def seeded_engine(engine: FeeEngine) -> FeeEngine:
    """Engine with one market holding five drifting observations."""
    engine.on_market_created(MARKET, 0, 1_000)
    for i in range(1, 5):
        engine.on_trade(MARKET, i * 10, 1_000 + i * 15)
    return engine
