"""Update orchestration for the dynamic fee engine.

The FeeEngine owns one observation buffer, one volatility state and one
fee curve per market. It is the only component that mutates them:

    host trade ──► on_trade() ──► ObservationBuffer
    keeper ──► trigger_update() ──► estimator ──► VolState ──► fee curve
    host swap ──► quote_fee() ──► fee curve(current_vol)

Every operation validates before writing, so a failed call leaves the
engine unchanged. The one exception is the incentive leg of
trigger_update(), which runs after the state has been committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fee_engine.core.config import (
    DEFAULT_FEE_BPS,
    DEFAULT_INCENTIVE_AMOUNT,
    DEFAULT_MIN_UPDATE_INTERVAL,
    DEFAULT_OBSERVATION_WINDOW,
    EngineConfig,
)
from fee_engine.core.ranges import recommended_range
from fee_engine.core.treasury import IncentiveTreasury
from fee_engine.domain.errors import (
    ConfigurationError,
    InsufficientObservationsError,
    MarketAlreadyInitializedError,
    MarketNotInitializedError,
    UnauthorizedError,
    UnorderedObservationsError,
    UpdateTooFrequentError,
)
from fee_engine.domain.types import (
    FeeConfig,
    Observation,
    RecommendedRange,
    Regime,
    UpdateResult,
    VolState,
)
from fee_engine.fees.curve import default_fee_config, get_fee, require_valid_fee_config
from fee_engine.oracle.buffer import ObservationBuffer, make_observation
from fee_engine.oracle.estimator import MIN_SAMPLES, update_vol_state
from fee_engine.recording.recorder import EventRecorder

logger = logging.getLogger(__name__)


@dataclass
class MarketState:
    """Everything the engine stores for one market."""

    buffer: ObservationBuffer = field(default_factory=ObservationBuffer)
    vol_state: VolState = field(default_factory=VolState.empty)
    fee_config: FeeConfig = field(default_factory=default_fee_config)


class FeeEngine:
    """Volatility oracle and dynamic fee engine.

    Host interface:
    - on_market_created(), on_trade(), quote_fee()

    Keeper interface:
    - trigger_update()

    Governance interface:
    - set_fee_config(), set_incentive_amount(), set_min_update_interval(),
      transfer_governance()

    Thread-safety: This class is NOT thread-safe. The host serializes all
    mutating calls for a given market.
    """

    def __init__(
        self,
        governance: str,
        min_update_interval: int = DEFAULT_MIN_UPDATE_INTERVAL,
        incentive_amount: int = DEFAULT_INCENTIVE_AMOUNT,
        treasury: IncentiveTreasury | None = None,
        observation_window: int = DEFAULT_OBSERVATION_WINDOW,
        default_fee_bps: int = DEFAULT_FEE_BPS,
        initial_fee_config: FeeConfig | None = None,
        recorder: EventRecorder | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            governance: Identity allowed to change parameters
            min_update_interval: Minimum seconds between updates of a market
            incentive_amount: Amount paid to the caller of a successful update
            treasury: Source of incentive payments
            observation_window: Maximum observations fed to the estimator
            default_fee_bps: Fee quoted before the first update
            initial_fee_config: Curve installed on new markets
            recorder: Optional event recorder
        """
        if not governance:
            raise ConfigurationError("Governance identity must be set", "governance")
        if min_update_interval < 0:
            raise ConfigurationError(
                "min_update_interval must be non-negative", "min_update_interval"
            )
        if incentive_amount < 0:
            raise ConfigurationError(
                "incentive_amount must be non-negative", "incentive_amount"
            )
        if observation_window < MIN_SAMPLES:
            raise ConfigurationError(
                f"observation_window must be at least {MIN_SAMPLES}",
                "observation_window",
            )

        self._governance = governance
        self._min_update_interval = min_update_interval
        self._incentive_amount = incentive_amount
        self._treasury = treasury or IncentiveTreasury()
        self._observation_window = observation_window
        self._default_fee_bps = default_fee_bps
        self._initial_fee_config = require_valid_fee_config(
            initial_fee_config or default_fee_config()
        )
        self._recorder = recorder
        self._markets: dict[str, MarketState] = {}

    @classmethod
    def from_config(
        cls,
        config: EngineConfig,
        treasury: IncentiveTreasury | None = None,
        recorder: EventRecorder | None = None,
    ) -> FeeEngine:
        """Create an engine from a validated configuration.

        Args:
            config: Engine configuration
            treasury: Incentive treasury; built from config if omitted
            recorder: Optional event recorder

        Returns:
            Configured FeeEngine
        """
        return cls(
            governance=config.governance,
            min_update_interval=config.min_update_interval_seconds,
            incentive_amount=config.incentive_amount,
            treasury=treasury or IncentiveTreasury(balance=config.treasury_balance),
            observation_window=config.observation_window,
            default_fee_bps=config.default_fee_bps,
            initial_fee_config=config.initial_fee_config(),
            recorder=recorder,
        )

    # --- Properties ---

    @property
    def governance(self) -> str:
        """Return the current governance identity."""
        return self._governance

    @property
    def min_update_interval(self) -> int:
        """Return the minimum seconds between updates of a market."""
        return self._min_update_interval

    @property
    def incentive_amount(self) -> int:
        """Return the amount paid per successful update."""
        return self._incentive_amount

    @property
    def treasury(self) -> IncentiveTreasury:
        """Return the incentive treasury."""
        return self._treasury

    @property
    def market_ids(self) -> list[str]:
        """Return registered market IDs."""
        return list(self._markets)

    # --- Host interface ---

    def on_market_created(
        self, market_id: str, initial_tick: int, timestamp: int
    ) -> None:
        """Register a market and seed its buffer.

        Args:
            market_id: Market identifier
            initial_tick: Tick at creation
            timestamp: Creation time in seconds

        Raises:
            MarketAlreadyInitializedError: If the market exists
            InvalidObservationError: If the tick or timestamp is out of range
        """
        if market_id in self._markets:
            raise MarketAlreadyInitializedError(market_id)

        # Validate the observation before the market becomes visible
        seed = make_observation(initial_tick, timestamp)

        market = MarketState(fee_config=self._initial_fee_config)
        market.buffer.record(seed.tick, seed.timestamp)
        self._markets[market_id] = market

        logger.info(f"Market registered: {market_id} at tick {initial_tick}")
        if self._recorder:
            self._recorder.record_market_registered(market_id, initial_tick, timestamp)

    def on_trade(self, market_id: str, tick: int, timestamp: int) -> None:
        """Record the post-trade tick of a market.

        Args:
            market_id: Market identifier
            tick: Tick after the trade
            timestamp: Trade time in seconds

        Raises:
            MarketNotInitializedError: If the market was never registered
            UnorderedObservationsError: If timestamp precedes the newest
                observation
            InvalidObservationError: If the tick or timestamp is out of range
        """
        market = self._get_market(market_id)
        latest = market.buffer.latest()
        if timestamp < latest.timestamp:
            raise UnorderedObservationsError(
                latest.timestamp, timestamp, context={"market_id": market_id}
            )
        market.buffer.record(tick, timestamp)

        if self._recorder:
            self._recorder.record_tick(market_id, tick, timestamp)

    def quote_fee(self, market_id: str) -> int:
        """Return the fee in bps for the next trade of a market.

        Before the first volatility update this is the default fee.

        Raises:
            MarketNotInitializedError: If the market was never registered
        """
        market = self._get_market(market_id)
        if not market.vol_state.has_updated:
            return self._default_fee_bps
        return get_fee(market.fee_config, market.vol_state.current_vol)

    # --- Keeper interface ---

    def trigger_update(self, market_id: str, now: int, caller: str) -> UpdateResult:
        """Recompute volatility and fee for a market.

        Args:
            market_id: Market to update
            now: Current time in seconds
            caller: Identity to pay the incentive to

        Returns:
            The new volatility, regime, fee and sample count

        Raises:
            MarketNotInitializedError: If the market was never registered
            UpdateTooFrequentError: If min_update_interval has not elapsed
            InsufficientObservationsError: If fewer than two observations exist
            IncentivePaymentError: If the incentive transfer fails; the
                volatility update is already committed when this is raised
        """
        market = self._get_market(market_id)
        state = market.vol_state

        if state.last_update is not None:
            elapsed = now - state.last_update
            if elapsed < self._min_update_interval:
                raise UpdateTooFrequentError(
                    market_id, elapsed, self._min_update_interval
                )

        count = len(market.buffer)
        if count < MIN_SAMPLES:
            raise InsufficientObservationsError(market_id, count, MIN_SAMPLES)

        window = market.buffer.tail(self._observation_window)
        new_state = update_vol_state(state, window, now)
        market.vol_state = new_state

        result = UpdateResult(
            new_vol=new_state.current_vol,
            regime=new_state.regime,
            new_fee=get_fee(market.fee_config, new_state.current_vol),
            sample_count=new_state.sample_count,
        )

        logger.info(
            f"Volatility updated: {market_id} vol={result.new_vol}bps "
            f"regime={result.regime.label} fee={result.new_fee}bps "
            f"samples={result.sample_count}"
        )
        if state.has_updated and state.regime != new_state.regime:
            logger.info(
                f"Regime change: {market_id} "
                f"{state.regime.label} -> {new_state.regime.label}"
            )
        if self._recorder:
            self._recorder.record_volatility_update(market_id, result, new_state)

        if self._treasury.pay(caller, self._incentive_amount):
            if self._recorder:
                self._recorder.record_incentive_paid(
                    market_id, caller, self._incentive_amount, now
                )

        return result

    # --- Governance interface ---

    def set_fee_config(self, caller: str, market_id: str, config: FeeConfig) -> None:
        """Replace the fee curve of a market.

        Raises:
            UnauthorizedError: If caller is not governance
            MarketNotInitializedError: If the market was never registered
            InvalidFeeConfigError: If volatilities are not strictly increasing
        """
        self._require_governance(caller, "set fee config")
        market = self._get_market(market_id)
        market.fee_config = require_valid_fee_config(config)

        logger.info(f"Fee config updated: {market_id} {config.to_pairs()}")
        if self._recorder:
            self._recorder.record_fee_config_updated(market_id, config)

    def set_incentive_amount(self, caller: str, amount: int) -> None:
        """Set the amount paid per successful update.

        Raises:
            UnauthorizedError: If caller is not governance
            ConfigurationError: If amount is negative
        """
        self._require_governance(caller, "set incentive amount")
        if amount < 0:
            raise ConfigurationError("Incentive amount must be non-negative", "amount")

        old = self._incentive_amount
        self._incentive_amount = amount
        logger.info(f"Incentive amount changed: {old} -> {amount}")
        if self._recorder:
            self._recorder.record_parameter_changed("incentive_amount", old, amount)

    def set_min_update_interval(self, caller: str, seconds: int) -> None:
        """Set the minimum seconds between updates of a market.

        Raises:
            UnauthorizedError: If caller is not governance
            ConfigurationError: If seconds is negative
        """
        self._require_governance(caller, "set min update interval")
        if seconds < 0:
            raise ConfigurationError(
                "Minimum update interval must be non-negative", "seconds"
            )

        old = self._min_update_interval
        self._min_update_interval = seconds
        logger.info(f"Min update interval changed: {old}s -> {seconds}s")
        if self._recorder:
            self._recorder.record_parameter_changed("min_update_interval", old, seconds)

    def transfer_governance(self, caller: str, new_governor: str) -> None:
        """Hand governance to a new identity.

        Raises:
            UnauthorizedError: If caller is not governance
            ConfigurationError: If new_governor is empty
        """
        self._require_governance(caller, "transfer governance")
        if not new_governor:
            raise ConfigurationError("New governor must be set", "new_governor")

        old = self._governance
        self._governance = new_governor
        logger.info(f"Governance transferred: {old} -> {new_governor}")
        if self._recorder:
            self._recorder.record_governance_transferred(old, new_governor)

    # --- Queries ---

    def is_market_initialized(self, market_id: str) -> bool:
        """Return True if the market has been registered."""
        return market_id in self._markets

    def get_volatility(self, market_id: str) -> tuple[int, Regime, int, int]:
        """Return (current_vol, regime, ema_7d, ema_30d) of a market."""
        state = self._get_market(market_id).vol_state
        return state.current_vol, state.regime, state.ema_7d, state.ema_30d

    def get_vol_state(self, market_id: str) -> VolState:
        """Return the full volatility state of a market."""
        return self._get_market(market_id).vol_state

    def get_current_fee(self, market_id: str) -> int:
        """Return the fee the next trade would pay."""
        return self.quote_fee(market_id)

    def get_fee_config(self, market_id: str) -> FeeConfig:
        """Return the active fee curve of a market."""
        return self._get_market(market_id).fee_config

    def get_recommended_range(
        self, market_id: str, current_tick: int
    ) -> RecommendedRange:
        """Return the liquidity range suggested for the market's regime."""
        state = self._get_market(market_id).vol_state
        return recommended_range(state.regime, current_tick)

    def get_observation_count(self, market_id: str) -> int:
        """Return the number of observations retained for a market."""
        return len(self._get_market(market_id).buffer)

    def get_observations(self, market_id: str) -> list[Observation]:
        """Return all retained observations of a market, oldest first."""
        buffer = self._get_market(market_id).buffer
        return buffer.range(0, len(buffer))

    def seconds_until_update(self, market_id: str, now: int) -> int:
        """Return seconds until trigger_update() would pass the rate limit."""
        state = self._get_market(market_id).vol_state
        if state.last_update is None:
            return 0
        return max(0, self._min_update_interval - (now - state.last_update))

    # --- Internals ---

    def _get_market(self, market_id: str) -> MarketState:
        market = self._markets.get(market_id)
        if market is None:
            raise MarketNotInitializedError(market_id)
        return market

    def _require_governance(self, caller: str, action: str) -> None:
        if caller != self._governance:
            raise UnauthorizedError(caller, action)
