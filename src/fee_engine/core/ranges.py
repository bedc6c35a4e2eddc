"""Recommended liquidity ranges.

Wider ranges in higher-volatility regimes reduce rebalancing frequency
at the cost of capital efficiency.
"""

from __future__ import annotations

from fee_engine.domain.types import MAX_TICK, MIN_TICK, RecommendedRange, Regime

RANGE_HALF_WIDTHS: dict[Regime, int] = {
    Regime.VERY_LOW: 200,
    Regime.LOW: 500,
    Regime.NORMAL: 1000,
    Regime.HIGH: 2000,
    Regime.EXTREME: 4000,
}


def recommended_range(regime: Regime, current_tick: int) -> RecommendedRange:
    """Return the range centered on current_tick for a regime.

    A current_tick outside the representable tick range is clamped to it
    first, so lower_tick <= upper_tick always holds.
    """
    current_tick = min(max(current_tick, MIN_TICK), MAX_TICK)
    half_width = RANGE_HALF_WIDTHS[regime]
    return RecommendedRange(
        lower_tick=max(current_tick - half_width, MIN_TICK),
        upper_tick=min(current_tick + half_width, MAX_TICK),
    )
