"""Domain models for the fee engine.

This package contains the value objects and the error hierarchy shared by
the oracle, the fee curve and the update orchestrator.
"""

from fee_engine.domain.errors import (
    ArithmeticOverflowError,
    BufferEmptyError,
    ConfigurationError,
    FeeEngineError,
    IncentivePaymentError,
    IndexOutOfRangeError,
    InputValidationError,
    InsufficientObservationsError,
    InsufficientSamplesError,
    InvalidFeeConfigError,
    InvalidObservationError,
    MarketAlreadyInitializedError,
    MarketNotInitializedError,
    PolicyViolation,
    UnauthorizedError,
    UnorderedObservationsError,
    UpdateTooFrequentError,
)
from fee_engine.domain.types import (
    ControlPoint,
    FeeConfig,
    Observation,
    RecommendedRange,
    Regime,
    UpdateResult,
    VolState,
)

__all__ = [
    # Types
    "ControlPoint",
    "FeeConfig",
    "Observation",
    "RecommendedRange",
    "Regime",
    "UpdateResult",
    "VolState",
    # Errors
    "ArithmeticOverflowError",
    "BufferEmptyError",
    "ConfigurationError",
    "FeeEngineError",
    "IncentivePaymentError",
    "IndexOutOfRangeError",
    "InputValidationError",
    "InsufficientObservationsError",
    "InsufficientSamplesError",
    "InvalidFeeConfigError",
    "InvalidObservationError",
    "MarketAlreadyInitializedError",
    "MarketNotInitializedError",
    "PolicyViolation",
    "UnauthorizedError",
    "UnorderedObservationsError",
    "UpdateTooFrequentError",
]
