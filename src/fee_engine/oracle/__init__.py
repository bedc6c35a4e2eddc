"""Volatility oracle.

Observation storage and the realized volatility estimator.
"""

from fee_engine.oracle.buffer import (
    OBSERVATION_CAPACITY,
    ObservationBuffer,
    make_observation,
)
from fee_engine.oracle.estimator import (
    EMA_7D_HALF_LIFE,
    EMA_30D_HALF_LIFE,
    classify_regime,
    compute_realized_vol,
    is_depressed,
    is_elevated,
    update_ema,
    update_vol_state,
)
from fee_engine.oracle.fixed_point import isqrt

__all__ = [
    "EMA_7D_HALF_LIFE",
    "EMA_30D_HALF_LIFE",
    "OBSERVATION_CAPACITY",
    "ObservationBuffer",
    "classify_regime",
    "compute_realized_vol",
    "is_depressed",
    "is_elevated",
    "isqrt",
    "make_observation",
    "update_ema",
    "update_vol_state",
]
