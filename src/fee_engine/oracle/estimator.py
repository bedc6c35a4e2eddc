"""Realized volatility estimator.

Computes annualized realized volatility from a window of tick
observations, classifies it into a regime, and maintains short and long
horizon EMAs of the volatility series.

Because tick differences approximate log returns in basis points, the
per-pair variance is simply:

    σ²_i = (tick_i - tick_{i-1})² / (t_i - t_{i-1})

and the annualized volatility is:

    σ = sqrt(mean(σ²_i) * SECONDS_PER_YEAR)

All arithmetic is integer fixed-point; see fee_engine.oracle.fixed_point.
"""

from __future__ import annotations

from collections.abc import Sequence

from fee_engine.domain.errors import (
    InsufficientSamplesError,
    UnorderedObservationsError,
)
from fee_engine.domain.types import MAX_VOL, Observation, Regime, VolState
from fee_engine.oracle.fixed_point import (
    FIXED_POINT_SCALE,
    LN2_PPT,
    PPT,
    SECONDS_PER_DAY,
    SECONDS_PER_YEAR,
    SQRT_SCALE,
    check_width,
    isqrt,
)

MIN_SAMPLES = 2

EMA_7D_HALF_LIFE = 7 * SECONDS_PER_DAY
EMA_30D_HALF_LIFE = 30 * SECONDS_PER_DAY

# Upper bounds (inclusive) of each regime below EXTREME, in bps
REGIME_THRESHOLDS: tuple[tuple[int, Regime], ...] = (
    (2000, Regime.VERY_LOW),
    (3500, Regime.LOW),
    (5000, Regime.NORMAL),
    (7500, Regime.HIGH),
)


def compute_realized_vol(observations: Sequence[Observation]) -> int:
    """Compute annualized realized volatility in basis points.

    Pairs recorded at the same timestamp are skipped. If every pair is
    skipped the volatility is 0.

    Args:
        observations: At least two observations, oldest first

    Returns:
        Annualized volatility in bps

    Raises:
        InsufficientSamplesError: If fewer than two observations are given
        UnorderedObservationsError: If a timestamp precedes the previous one
    """
    if len(observations) < MIN_SAMPLES:
        raise InsufficientSamplesError(MIN_SAMPLES, len(observations))

    sum_scaled = 0
    valid_pairs = 0

    for prev, curr in zip(observations, observations[1:]):
        dt = curr.timestamp - prev.timestamp
        if dt < 0:
            raise UnorderedObservationsError(prev.timestamp, curr.timestamp)
        if dt == 0:
            continue

        delta = curr.tick - prev.tick
        sum_scaled += delta * delta * FIXED_POINT_SCALE // dt
        valid_pairs += 1

    if valid_pairs == 0:
        return 0

    variance_per_second = sum_scaled // valid_pairs
    variance_annual = variance_per_second * SECONDS_PER_YEAR

    vol = isqrt(variance_annual) // SQRT_SCALE
    return check_width("realized_vol", vol, MAX_VOL)


def classify_regime(vol_bps: int) -> Regime:
    """Map a volatility to its regime.

    Boundaries belong to the lower regime: 2000 is VERY_LOW, 2001 is LOW.
    """
    for upper, regime in REGIME_THRESHOLDS:
        if vol_bps <= upper:
            return regime
    return Regime.EXTREME


def update_ema(
    current: int,
    new_value: int,
    elapsed_seconds: int,
    half_life_seconds: int,
) -> int:
    """Blend a new value into an EMA.

    Uses the saturating first-order approximation of continuous decay:

        w = min(elapsed * ln2 / half_life, 1)
        ema = (1 - w) * current + w * new_value

    with w in parts per thousand.

    Args:
        current: Current EMA, 0 if never seeded
        new_value: Latest observation of the series
        elapsed_seconds: Time since the EMA was last updated
        half_life_seconds: EMA half-life

    Returns:
        Updated EMA
    """
    if current == 0:
        return new_value
    if elapsed_seconds == 0:
        return current
    if half_life_seconds <= 0:
        raise ValueError("Half-life must be positive")

    weight = min(elapsed_seconds * LN2_PPT // half_life_seconds, PPT)
    return ((PPT - weight) * current + weight * new_value) // PPT


def is_elevated(state: VolState) -> bool:
    """Return True if current volatility is above 1.5x the 30-day EMA."""
    return state.current_vol * 2 > state.ema_30d * 3


def is_depressed(state: VolState) -> bool:
    """Return True if current volatility is below 0.5x the 30-day EMA."""
    return state.current_vol * 2 < state.ema_30d


def update_vol_state(
    state: VolState,
    observations: Sequence[Observation],
    now: int,
) -> VolState:
    """Compute the next volatility state of a market.

    On the first update both EMAs are seeded with the fresh volatility.

    Args:
        state: Current state
        observations: Window of observations, oldest first
        now: Update time in seconds

    Returns:
        New VolState with last_update = now

    Raises:
        InsufficientSamplesError: If fewer than two observations are given
        UnorderedObservationsError: If now precedes state.last_update or the
            window timestamps go backwards
    """
    if state.last_update is None:
        elapsed = 0
    else:
        if now < state.last_update:
            raise UnorderedObservationsError(state.last_update, now)
        elapsed = now - state.last_update

    vol = compute_realized_vol(observations)

    return VolState(
        current_vol=vol,
        ema_7d=update_ema(state.ema_7d, vol, elapsed, EMA_7D_HALF_LIFE),
        ema_30d=update_ema(state.ema_30d, vol, elapsed, EMA_30D_HALF_LIFE),
        last_update=now,
        regime=classify_regime(vol),
        sample_count=len(observations),
    )
