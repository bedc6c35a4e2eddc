"""Exception hierarchy for fee engine errors.

All engine errors inherit from FeeEngineError, allowing callers to catch
broad categories of errors. Each error type includes relevant context for
debugging and logging.

Error categories:
- InputValidationError: Bad inputs, always raised before any state is written
- PolicyViolation: The call is well-formed but not allowed right now (or ever)
- IncentivePaymentError: The keeper incentive transfer failed
- ConfigurationError: Invalid configuration
"""

from __future__ import annotations

from typing import Any


class FeeEngineError(Exception):
    """Base exception for all fee engine errors.

    All errors in the engine inherit from this class, allowing
    code to catch broad categories of errors when needed.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize with message and optional context.

        Args:
            message: Human-readable error description
            context: Additional structured data for logging/debugging
        """
        super().__init__(message)
        self.context = context or {}


# Input validation


class InputValidationError(FeeEngineError):
    """Inputs to an operation are invalid.

    Raised before any mutation happens, so the caller can rely on the
    engine state being unchanged.
    """


class InsufficientSamplesError(InputValidationError):
    """Fewer observations than the estimator needs."""

    def __init__(
        self,
        required: int,
        actual: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with sample counts.

        Args:
            required: Minimum number of observations needed
            actual: Number of observations supplied
            context: Additional structured data
        """
        super().__init__(
            f"Need at least {required} observations, got {actual}", context
        )
        self.required = required
        self.actual = actual


class BufferEmptyError(InputValidationError):
    """Read from an observation buffer that holds nothing."""

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        super().__init__("Observation buffer is empty", context)


class IndexOutOfRangeError(InputValidationError):
    """Logical index outside the retained observations."""

    def __init__(
        self,
        index: int,
        count: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the offending index.

        Args:
            index: The requested logical index (or range end)
            count: Number of observations currently retained
            context: Additional structured data
        """
        super().__init__(
            f"Index {index} out of range for buffer of {count} observations",
            context,
        )
        self.index = index
        self.count = count


class InvalidFeeConfigError(InputValidationError):
    """Fee curve control points are not strictly increasing in volatility."""

    def __init__(
        self,
        message: str = "Fee config volatilities must be strictly increasing",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)


class InvalidObservationError(InputValidationError):
    """Tick or timestamp outside its representable range."""

    def __init__(
        self,
        tick: int,
        timestamp: int,
        reason: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the rejected values.

        Args:
            tick: Rejected tick
            timestamp: Rejected timestamp
            reason: Which bound was violated
            context: Additional structured data
        """
        super().__init__(
            f"Invalid observation (tick={tick}, timestamp={timestamp}): {reason}",
            context,
        )
        self.tick = tick
        self.timestamp = timestamp
        self.reason = reason


class UnorderedObservationsError(InputValidationError):
    """Timestamps go backwards.

    Raised when a window of observations (or an update time) is earlier
    than the observation or update that precedes it.
    """

    def __init__(
        self,
        previous: int,
        current: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the two timestamps.

        Args:
            previous: Earlier-positioned timestamp
            current: Later-positioned timestamp that is smaller
            context: Additional structured data
        """
        super().__init__(
            f"Timestamp {current} precedes {previous}", context
        )
        self.previous = previous
        self.current = current


class ArithmeticOverflowError(InputValidationError):
    """A computed value does not fit its stored width."""

    def __init__(
        self,
        name: str,
        value: int,
        limit: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{name}={value} exceeds maximum {limit}", context)
        self.name = name
        self.value = value
        self.limit = limit


# Policy violations


class PolicyViolation(FeeEngineError):
    """The operation is not allowed in the current state.

    Subclasses distinguish "try later" (UpdateTooFrequentError,
    InsufficientObservationsError) from "not allowed"
    (UnauthorizedError) and programmer errors (market lifecycle).
    """

    def __init__(
        self,
        message: str,
        market_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with message and market.

        Args:
            message: Human-readable error description
            market_id: Market the operation targeted, if any
            context: Additional structured data
        """
        super().__init__(message, context)
        self.market_id = market_id


class MarketNotInitializedError(PolicyViolation):
    """Operation on a market that was never registered."""

    def __init__(self, market_id: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(f"Market not initialized: {market_id}", market_id, context)


class MarketAlreadyInitializedError(PolicyViolation):
    """Registration of a market that already exists."""

    def __init__(self, market_id: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            f"Market already initialized: {market_id}", market_id, context
        )


class UpdateTooFrequentError(PolicyViolation):
    """Volatility update requested before the minimum interval elapsed."""

    def __init__(
        self,
        market_id: str,
        elapsed: int,
        min_interval: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with timing information.

        Args:
            market_id: Market that was updated too recently
            elapsed: Seconds since the last update
            min_interval: Configured minimum seconds between updates
            context: Additional structured data
        """
        super().__init__(
            f"Update too frequent for {market_id}: "
            f"{elapsed}s elapsed, minimum {min_interval}s",
            market_id,
            context,
        )
        self.elapsed = elapsed
        self.min_interval = min_interval

    @property
    def retry_after(self) -> int:
        """Seconds until an update would be accepted."""
        return max(0, self.min_interval - self.elapsed)


class InsufficientObservationsError(PolicyViolation):
    """Market buffer holds too few observations to update volatility."""

    def __init__(
        self,
        market_id: str,
        count: int,
        required: int = 2,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"Market {market_id} has {count} observations, need {required}",
            market_id,
            context,
        )
        self.count = count
        self.required = required


class UnauthorizedError(PolicyViolation):
    """Caller is not the current governance identity."""

    def __init__(
        self,
        caller: str,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{caller} is not authorized to {action}", None, context)
        self.caller = caller
        self.action = action


# Resource / transfer failures


class IncentivePaymentError(FeeEngineError):
    """Keeper incentive transfer failed.

    The volatility update that preceded the payment has already been
    committed when this is raised.
    """

    def __init__(
        self,
        recipient: str,
        amount: int,
        reason: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with payment details.

        Args:
            recipient: Identity that should have been paid
            amount: Incentive amount in base units
            reason: Underlying failure description
            context: Additional structured data
        """
        message = f"Incentive payment of {amount} to {recipient} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, context)
        self.recipient = recipient
        self.amount = amount
        self.reason = reason


class ConfigurationError(FeeEngineError):
    """Invalid configuration.

    Raised when:
    - Configuration file is malformed
    - Configuration values fail validation
    - A governance parameter is set to an unusable value
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with field information.

        Args:
            message: Human-readable error description
            field: Name of the configuration field with the issue
            context: Additional structured data
        """
        super().__init__(message, context)
        self.field = field
