"""Fee curve.

Pure functions mapping volatility to a swap fee.
"""

from fee_engine.fees.curve import (
    DEFAULT_FEE_POINTS,
    default_fee_config,
    fee_schedule,
    get_fee,
    require_valid_fee_config,
    validate_fee_config,
)

__all__ = [
    "DEFAULT_FEE_POINTS",
    "default_fee_config",
    "fee_schedule",
    "get_fee",
    "require_valid_fee_config",
    "validate_fee_config",
]
