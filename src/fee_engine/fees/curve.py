"""Volatility-to-fee curve.

Maps an annualized volatility to a swap fee by piecewise-linear
interpolation over six control points. Below the first point the fee is
floored at fee0, above the last it is capped at fee5.
"""

from __future__ import annotations

from fee_engine.domain.errors import InvalidFeeConfigError
from fee_engine.domain.types import FeeConfig

DEFAULT_FEE_POINTS: tuple[tuple[int, int], ...] = (
    (0, 5),
    (2000, 10),
    (3500, 30),
    (5000, 60),
    (7500, 150),
    (15000, 500),
)


def default_fee_config() -> FeeConfig:
    """Return the built-in curve used before any governance override."""
    return FeeConfig.from_pairs(DEFAULT_FEE_POINTS)


def validate_fee_config(config: FeeConfig) -> bool:
    """Return True if control point volatilities are strictly increasing."""
    vols = config.vols
    return all(lo < hi for lo, hi in zip(vols, vols[1:]))


def require_valid_fee_config(config: FeeConfig) -> FeeConfig:
    """Return config if valid.

    Raises:
        InvalidFeeConfigError: If volatilities are not strictly increasing
    """
    if not validate_fee_config(config):
        raise InvalidFeeConfigError(context={"vols": list(config.vols)})
    return config


def get_fee(config: FeeConfig, vol: int) -> int:
    """Return the fee in bps for a volatility in bps.

    Interpolates linearly inside the segment containing vol, truncating
    toward zero. Works for both rising and falling segments.

    Args:
        config: Validated fee curve
        vol: Annualized volatility in bps

    Returns:
        Fee in bps
    """
    points = config.points
    if vol <= points[0].vol:
        return points[0].fee
    if vol >= points[-1].vol:
        return points[-1].fee

    for lo, hi in zip(points, points[1:]):
        if vol <= hi.vol:
            return _interpolate(lo.vol, lo.fee, hi.vol, hi.fee, vol)

    # Unreachable for a validated config
    return points[-1].fee


def _interpolate(vol_lo: int, fee_lo: int, vol_hi: int, fee_hi: int, vol: int) -> int:
    numerator = (fee_hi - fee_lo) * (vol - vol_lo)
    step = abs(numerator) // (vol_hi - vol_lo)
    return fee_lo + step if numerator >= 0 else fee_lo - step


def fee_schedule(config: FeeConfig, vols: list[int]) -> list[tuple[int, int]]:
    """Return (vol, fee) pairs for a list of volatilities.

    Useful for rendering a curve or checking it over a sweep.
    """
    return [(vol, get_fee(config, vol)) for vol in vols]
