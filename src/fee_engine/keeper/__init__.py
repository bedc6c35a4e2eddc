"""Keeper: periodic volatility update trigger."""

from fee_engine.keeper.keeper import Keeper, wall_clock

__all__ = ["Keeper", "wall_clock"]
