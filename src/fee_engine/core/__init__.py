"""Core engine components."""

from fee_engine.core.config import EngineConfig, MarketSeedConfig
from fee_engine.core.engine import FeeEngine, MarketState
from fee_engine.core.treasury import IncentiveTreasury

__all__ = [
    "EngineConfig",
    "FeeEngine",
    "IncentiveTreasury",
    "MarketSeedConfig",
    "MarketState",
]
