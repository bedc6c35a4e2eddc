"""Fixed-point constants and integer math.

All volatility arithmetic is done on integers. Intermediate values are
scaled by FIXED_POINT_SCALE before any division so that the fractional
part of delta² / dt is not lost.
"""

from __future__ import annotations

from fee_engine.domain.errors import ArithmeticOverflowError

FIXED_POINT_SCALE = 10**18
# isqrt(x * SCALE) == isqrt(x) * SQRT_SCALE
SQRT_SCALE = 10**9

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 31_557_600  # 365.25 days

# ln(2) in parts per thousand
LN2_PPT = 693
PPT = 1000


def isqrt(x: int) -> int:
    """Integer square root by Babylonian iteration.

    Starts from x and halves towards the fixed point. The result r
    satisfies r * r <= x < (r + 1) * (r + 1).

    Args:
        x: Non-negative integer

    Returns:
        floor(sqrt(x))

    Raises:
        ValueError: If x is negative
    """
    if x < 0:
        raise ValueError("isqrt() argument must be non-negative")
    if x < 2:
        return x

    y = x
    z = (x + 1) // 2
    while z < y:
        y = z
        z = (x // z + z) // 2
    return y


def check_width(name: str, value: int, limit: int) -> int:
    """Return value unchanged if it fits in [0, limit].

    Raises:
        ArithmeticOverflowError: If value is negative or above limit
    """
    if value < 0 or value > limit:
        raise ArithmeticOverflowError(name, value, limit)
    return value
