"""Core value objects for the fee engine.

These types form the foundation of the domain model and are used throughout
the engine. All types are immutable: state transitions produce new values
instead of mutating existing ones.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum

from pydantic import field_validator
from pydantic.dataclasses import dataclass

# Signed 24-bit log-price tick bounds
MIN_TICK = -887272
MAX_TICK = 887272

MAX_TIMESTAMP = 2**32 - 1
MAX_VOL = 2**64 - 1
MAX_FEE = 2**24 - 1

FEE_CONFIG_POINTS = 6


@dataclass(frozen=True)
class Observation:
    """A single (tick, timestamp) sample recorded on a trade.

    The difference between two ticks approximates the logarithmic return
    between the two prices, in basis points.
    """

    tick: int
    timestamp: int

    @field_validator("tick")
    @classmethod
    def validate_tick_range(cls, v: int) -> int:
        """Ensure tick is a representable log-price."""
        if v < MIN_TICK or v > MAX_TICK:
            raise ValueError(f"Tick must be between {MIN_TICK} and {MAX_TICK}")
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp_range(cls, v: int) -> int:
        """Ensure timestamp fits unsigned 32-bit seconds."""
        if v < 0 or v > MAX_TIMESTAMP:
            raise ValueError(f"Timestamp must be between 0 and {MAX_TIMESTAMP}")
        return v


class Regime(IntEnum):
    """Discrete volatility bucket driving fee and range policy.

    Ordered from calmest to most turbulent.
    """

    VERY_LOW = 0
    LOW = 1
    NORMAL = 2
    HIGH = 3
    EXTREME = 4

    @property
    def label(self) -> str:
        """Return a human-readable name."""
        return _REGIME_LABELS[self]


_REGIME_LABELS = {
    Regime.VERY_LOW: "Very Low",
    Regime.LOW: "Low",
    Regime.NORMAL: "Normal",
    Regime.HIGH: "High",
    Regime.EXTREME: "Extreme",
}


@dataclass(frozen=True)
class VolState:
    """Persisted volatility state of one market.

    All volatility values are annualized and in basis points.
    last_update is None until the first successful update.
    """

    current_vol: int
    ema_7d: int
    ema_30d: int
    last_update: int | None
    regime: Regime
    sample_count: int

    @field_validator("current_vol", "ema_7d", "ema_30d")
    @classmethod
    def validate_vol(cls, v: int) -> int:
        """Ensure volatility values fit unsigned 64-bit."""
        if v < 0 or v > MAX_VOL:
            raise ValueError(f"Volatility must be between 0 and {MAX_VOL}")
        return v

    @field_validator("sample_count")
    @classmethod
    def validate_sample_count(cls, v: int) -> int:
        """Ensure sample count is non-negative."""
        if v < 0:
            raise ValueError("Sample count must be non-negative")
        return v

    @classmethod
    def empty(cls) -> VolState:
        """Return the state of a market that has never been updated."""
        return cls(
            current_vol=0,
            ema_7d=0,
            ema_30d=0,
            last_update=None,
            regime=Regime.VERY_LOW,
            sample_count=0,
        )

    @property
    def has_updated(self) -> bool:
        """Return True once a volatility update has completed."""
        return self.last_update is not None


@dataclass(frozen=True)
class ControlPoint:
    """One (volatility, fee) point of a fee curve, both in basis points."""

    vol: int
    fee: int

    @field_validator("vol")
    @classmethod
    def validate_vol(cls, v: int) -> int:
        """Ensure volatility fits unsigned 64-bit."""
        if v < 0 or v > MAX_VOL:
            raise ValueError(f"Control point vol must be between 0 and {MAX_VOL}")
        return v

    @field_validator("fee")
    @classmethod
    def validate_fee(cls, v: int) -> int:
        """Ensure fee fits unsigned 24-bit."""
        if v < 0 or v > MAX_FEE:
            raise ValueError(f"Control point fee must be between 0 and {MAX_FEE}")
        return v


@dataclass(frozen=True)
class FeeConfig:
    """Six-point volatility-to-fee curve.

    Construction only checks shape. Ordering of the volatilities is
    checked by validate_fee_config().
    """

    points: tuple[ControlPoint, ...]

    @field_validator("points")
    @classmethod
    def validate_point_count(
        cls, v: tuple[ControlPoint, ...]
    ) -> tuple[ControlPoint, ...]:
        """Ensure the curve has exactly six control points."""
        if len(v) != FEE_CONFIG_POINTS:
            raise ValueError(
                f"Fee config needs exactly {FEE_CONFIG_POINTS} control points"
            )
        return v

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[int, int]]) -> FeeConfig:
        """Create a FeeConfig from (vol, fee) pairs."""
        return cls(points=tuple(ControlPoint(vol=vol, fee=fee) for vol, fee in pairs))

    @property
    def vols(self) -> tuple[int, ...]:
        """Return control point volatilities in order."""
        return tuple(p.vol for p in self.points)

    @property
    def fees(self) -> tuple[int, ...]:
        """Return control point fees in order."""
        return tuple(p.fee for p in self.points)

    def to_pairs(self) -> list[tuple[int, int]]:
        """Return the curve as (vol, fee) pairs."""
        return [(p.vol, p.fee) for p in self.points]


@dataclass(frozen=True)
class RecommendedRange:
    """Liquidity range suggested for the current regime."""

    lower_tick: int
    upper_tick: int

    @property
    def width(self) -> int:
        """Return the range width in ticks."""
        return self.upper_tick - self.lower_tick


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a successful volatility update."""

    new_vol: int
    regime: Regime
    new_fee: int
    sample_count: int
