"""Tests for FeeEngine update orchestration."""

import pytest

from fee_engine.core.config import EngineConfig
from fee_engine.core.engine import FeeEngine
from fee_engine.core.treasury import IncentiveTreasury
from fee_engine.domain.errors import (
    ConfigurationError,
    IncentivePaymentError,
    InputValidationError,
    InsufficientObservationsError,
    InvalidFeeConfigError,
    InvalidObservationError,
    MarketAlreadyInitializedError,
    MarketNotInitializedError,
    UnauthorizedError,
    UnorderedObservationsError,
    UpdateTooFrequentError,
)
from fee_engine.domain.types import FeeConfig, Regime
from fee_engine.fees.curve import default_fee_config

GOVERNOR = "gov"
KEEPER = "keeper-1"
MARKET = "ETH-USDC"

# Time of the last seeded trade
SEEDED_NOW = 1_060

FLAT_42 = FeeConfig.from_pairs(
    [(0, 42), (1, 42), (2, 42), (3, 42), (4, 42), (5, 42)]
)


class TestConstruction:
    """Tests for FeeEngine construction."""

    def test_defaults(self) -> None:
        """Engine defaults to a 300s interval."""
        engine = FeeEngine(governance=GOVERNOR)
        assert engine.governance == GOVERNOR
        assert engine.min_update_interval == 300
        assert engine.incentive_amount == 10**15
        assert engine.treasury.balance == 0
        assert engine.market_ids == []

    def test_empty_governance_rejected(self) -> None:
        """Governance identity is required."""
        with pytest.raises(ConfigurationError):
            FeeEngine(governance="")

    def test_negative_interval_rejected(self) -> None:
        """Negative minimum interval is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            FeeEngine(governance=GOVERNOR, min_update_interval=-1)
        assert exc_info.value.field == "min_update_interval"

    def test_window_too_small_rejected(self) -> None:
        """The estimator window must hold at least two observations."""
        with pytest.raises(ConfigurationError):
            FeeEngine(governance=GOVERNOR, observation_window=1)

    def test_invalid_initial_curve_rejected(self) -> None:
        """An unsorted initial curve is rejected."""
        bad = FeeConfig.from_pairs(
            [(5, 1), (4, 1), (3, 1), (2, 1), (1, 1), (0, 1)]
        )
        with pytest.raises(InvalidFeeConfigError):
            FeeEngine(governance=GOVERNOR, initial_fee_config=bad)

    def test_from_config(self) -> None:
        """from_config applies every engine setting."""
        config = EngineConfig(
            governance="dao",
            min_update_interval_seconds=60,
            incentive_amount=7,
            treasury_balance=70,
            observation_window=16,
            default_fee_bps=25,
            fee_curve=FLAT_42.to_pairs(),
        )
        engine = FeeEngine.from_config(config)

        assert engine.governance == "dao"
        assert engine.min_update_interval == 60
        assert engine.incentive_amount == 7
        assert engine.treasury.balance == 70

        engine.on_market_created(MARKET, 0, 0)
        assert engine.quote_fee(MARKET) == 25
        assert engine.get_fee_config(MARKET) == FLAT_42


class TestHostInterface:
    """Tests for market registration, trades and fee quotes."""

    def test_market_created(self, engine: FeeEngine) -> None:
        """Registering a market seeds one observation."""
        engine.on_market_created(MARKET, 100, 1_000)

        assert engine.is_market_initialized(MARKET)
        assert engine.market_ids == [MARKET]
        assert engine.get_observation_count(MARKET) == 1
        assert engine.get_observations(MARKET)[0].tick == 100
        assert engine.get_fee_config(MARKET) == default_fee_config()

    def test_duplicate_market_rejected(self, engine: FeeEngine) -> None:
        """A market can only be registered once."""
        engine.on_market_created(MARKET, 0, 0)
        with pytest.raises(MarketAlreadyInitializedError):
            engine.on_market_created(MARKET, 5, 5)
        assert engine.get_observation_count(MARKET) == 1

    def test_invalid_seed_does_not_register(self, engine: FeeEngine) -> None:
        """An out-of-range initial tick leaves the market unregistered."""
        with pytest.raises(InvalidObservationError) as exc_info:
            engine.on_market_created(MARKET, 900_000, 0)
        assert exc_info.value.tick == 900_000
        assert not engine.is_market_initialized(MARKET)

    def test_trade_on_unknown_market(self, engine: FeeEngine) -> None:
        """Trades on an unknown market are rejected."""
        with pytest.raises(MarketNotInitializedError):
            engine.on_trade("nope", 0, 0)

    def test_stale_trade_is_rejected(self, seeded_engine: FeeEngine) -> None:
        """A trade older than the newest observation is not stored."""
        with pytest.raises(UnorderedObservationsError) as exc_info:
            seeded_engine.on_trade(MARKET, 50, SEEDED_NOW - 1)

        assert exc_info.value.previous == SEEDED_NOW
        assert exc_info.value.context["market_id"] == MARKET
        assert seeded_engine.get_observation_count(MARKET) == 5

    def test_same_second_trade_is_accepted(self, seeded_engine: FeeEngine) -> None:
        """A trade at the newest observation's timestamp is stored."""
        seeded_engine.on_trade(MARKET, 45, SEEDED_NOW)
        assert seeded_engine.get_observation_count(MARKET) == 6

    def test_out_of_range_trade_is_rejected(self, seeded_engine: FeeEngine) -> None:
        """An out-of-range tick raises an input validation error."""
        with pytest.raises(InputValidationError):
            seeded_engine.on_trade(MARKET, -900_000, SEEDED_NOW + 1)
        assert seeded_engine.get_observation_count(MARKET) == 5

    def test_default_fee_before_first_update(self, seeded_engine: FeeEngine) -> None:
        """The default fee is quoted until the first update."""
        assert seeded_engine.quote_fee(MARKET) == 30
        assert seeded_engine.get_current_fee(MARKET) == 30

    def test_quote_unknown_market(self, engine: FeeEngine) -> None:
        """Quoting an unknown market is rejected."""
        with pytest.raises(MarketNotInitializedError):
            engine.quote_fee("nope")


class TestTriggerUpdate:
    """Tests for trigger_update."""

    def test_first_update(self, seeded_engine: FeeEngine) -> None:
        """The first update computes vol, regime and fee."""
        result = seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)

        assert result.new_vol == 14504
        assert result.regime == Regime.EXTREME
        assert result.new_fee == 476
        assert result.sample_count == 5

        state = seeded_engine.get_vol_state(MARKET)
        assert state.last_update == SEEDED_NOW
        assert state.ema_7d == state.ema_30d == 14504
        assert seeded_engine.quote_fee(MARKET) == 476
        assert seeded_engine.get_volatility(MARKET) == (
            14504,
            Regime.EXTREME,
            14504,
            14504,
        )

    def test_rate_limit(self, seeded_engine: FeeEngine) -> None:
        """A second update needs min_update_interval seconds to pass."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)

        with pytest.raises(UpdateTooFrequentError) as exc_info:
            seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        assert exc_info.value.retry_after == 300

        with pytest.raises(UpdateTooFrequentError):
            seeded_engine.trigger_update(MARKET, SEEDED_NOW + 299, KEEPER)

        result = seeded_engine.trigger_update(MARKET, SEEDED_NOW + 300, KEEPER)
        assert result.sample_count == 5

    def test_seconds_until_update(self, seeded_engine: FeeEngine) -> None:
        """seconds_until_update counts down to the next allowed update."""
        assert seeded_engine.seconds_until_update(MARKET, SEEDED_NOW) == 0
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        assert seeded_engine.seconds_until_update(MARKET, SEEDED_NOW + 40) == 260
        assert seeded_engine.seconds_until_update(MARKET, SEEDED_NOW + 900) == 0

    def test_unknown_market(self, engine: FeeEngine) -> None:
        """Updating an unknown market is rejected."""
        with pytest.raises(MarketNotInitializedError):
            engine.trigger_update("nope", 0, KEEPER)

    def test_insufficient_observations(self, engine: FeeEngine) -> None:
        """A market with only its seed observation cannot be updated."""
        engine.on_market_created(MARKET, 0, 0)
        with pytest.raises(InsufficientObservationsError) as exc_info:
            engine.trigger_update(MARKET, 10, KEEPER)
        assert exc_info.value.count == 1
        assert not engine.get_vol_state(MARKET).has_updated
        assert engine.treasury.balance == 10_000

    def test_updates_continue_after_stale_trade(
        self, seeded_engine: FeeEngine
    ) -> None:
        """A rejected stale trade does not block later updates."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        with pytest.raises(UnorderedObservationsError):
            seeded_engine.on_trade(MARKET, 50, 900)

        seeded_engine.on_trade(MARKET, 50, SEEDED_NOW + 15)
        result = seeded_engine.trigger_update(MARKET, SEEDED_NOW + 300, KEEPER)

        assert result.sample_count == 6
        assert result.new_vol == 14504
        assert seeded_engine.get_vol_state(MARKET).last_update == SEEDED_NOW + 300
        assert seeded_engine.treasury.paid_to(KEEPER) == 2_000

    def test_window_limits_samples(self, treasury: IncentiveTreasury) -> None:
        """Only the newest observation_window observations are used."""
        engine = FeeEngine(governance=GOVERNOR, treasury=treasury)
        engine.on_market_created(MARKET, 0, 0)
        for i in range(1, 300):
            engine.on_trade(MARKET, i * 10, i * 15)

        result = engine.trigger_update(MARKET, 300 * 15, KEEPER)
        assert engine.get_observation_count(MARKET) == 300
        assert result.sample_count == 256
        assert result.new_vol == 14504

    def test_custom_window(self, treasury: IncentiveTreasury) -> None:
        """A smaller window caps the sample count."""
        engine = FeeEngine(
            governance=GOVERNOR, treasury=treasury, observation_window=3
        )
        engine.on_market_created(MARKET, 0, 0)
        for i in range(1, 5):
            engine.on_trade(MARKET, i * 10, i * 15)

        assert engine.trigger_update(MARKET, 60, KEEPER).sample_count == 3

    def test_regime_change_across_updates(self, seeded_engine: FeeEngine) -> None:
        """Flat trading after a volatile window drops the regime."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        for i in range(300):
            seeded_engine.on_trade(MARKET, 40, SEEDED_NOW + 1 + i)

        result = seeded_engine.trigger_update(MARKET, SEEDED_NOW + 300, KEEPER)
        assert result.regime == Regime.VERY_LOW
        assert result.new_fee == 5


class TestIncentives:
    """Tests for keeper incentive payment."""

    def test_incentive_paid(
        self, seeded_engine: FeeEngine, treasury: IncentiveTreasury
    ) -> None:
        """A successful update pays the caller."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        assert treasury.paid_to(KEEPER) == 1_000
        assert treasury.balance == 9_000

    def test_rejected_update_pays_nothing(
        self, seeded_engine: FeeEngine, treasury: IncentiveTreasury
    ) -> None:
        """A rate-limited update pays nothing."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        with pytest.raises(UpdateTooFrequentError):
            seeded_engine.trigger_update(MARKET, SEEDED_NOW + 1, "other")
        assert treasury.paid_to("other") == 0

    def test_underfunded_treasury_skips_payment(self) -> None:
        """An underfunded treasury does not fail the update."""
        treasury = IncentiveTreasury(balance=500)
        engine = FeeEngine(
            governance=GOVERNOR, incentive_amount=1_000, treasury=treasury
        )
        engine.on_market_created(MARKET, 0, 0)
        engine.on_trade(MARKET, 10, 15)

        result = engine.trigger_update(MARKET, 15, KEEPER)
        assert result.sample_count == 2
        assert treasury.balance == 500
        assert treasury.paid_to(KEEPER) == 0

    def test_zero_incentive_skips_payment(self, seeded_engine: FeeEngine) -> None:
        """A zero incentive pays nothing."""
        seeded_engine.set_incentive_amount(GOVERNOR, 0)
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        assert seeded_engine.treasury.paid_to(KEEPER) == 0

    def test_failed_transfer_keeps_update(self) -> None:
        """A failing transfer raises after the state is committed."""

        def reverting_transfer(recipient: str, amount: int) -> None:
            raise RuntimeError("transfer reverted")

        treasury = IncentiveTreasury(balance=5_000, transfer=reverting_transfer)
        engine = FeeEngine(
            governance=GOVERNOR, incentive_amount=1_000, treasury=treasury
        )
        engine.on_market_created(MARKET, 0, 0)
        engine.on_trade(MARKET, 10, 15)

        with pytest.raises(IncentivePaymentError, match="transfer reverted"):
            engine.trigger_update(MARKET, 15, KEEPER)

        assert engine.get_vol_state(MARKET).last_update == 15
        assert treasury.balance == 5_000


class TestGovernance:
    """Tests for governance operations."""

    def test_set_fee_config(self, seeded_engine: FeeEngine) -> None:
        """Governance can replace a market's curve."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        seeded_engine.set_fee_config(GOVERNOR, MARKET, FLAT_42)

        assert seeded_engine.get_fee_config(MARKET) == FLAT_42
        assert seeded_engine.quote_fee(MARKET) == 42

    def test_set_fee_config_unauthorized(self, seeded_engine: FeeEngine) -> None:
        """Only governance can replace a curve."""
        with pytest.raises(UnauthorizedError):
            seeded_engine.set_fee_config(KEEPER, MARKET, FLAT_42)
        assert seeded_engine.get_fee_config(MARKET) == default_fee_config()

    def test_set_fee_config_unsorted_rejected(self, seeded_engine: FeeEngine) -> None:
        """An unsorted curve is rejected and the old curve kept."""
        unsorted = FeeConfig.from_pairs(
            [(0, 5), (3500, 30), (2000, 10), (5000, 60), (7500, 150), (15000, 500)]
        )
        with pytest.raises(InvalidFeeConfigError):
            seeded_engine.set_fee_config(GOVERNOR, MARKET, unsorted)
        assert seeded_engine.get_fee_config(MARKET) == default_fee_config()

    def test_set_fee_config_unknown_market(self, engine: FeeEngine) -> None:
        """Curves can only be set on registered markets."""
        with pytest.raises(MarketNotInitializedError):
            engine.set_fee_config(GOVERNOR, "nope", FLAT_42)

    def test_set_incentive_amount(self, engine: FeeEngine) -> None:
        """Governance can change the incentive amount."""
        engine.set_incentive_amount(GOVERNOR, 5)
        assert engine.incentive_amount == 5

        with pytest.raises(ConfigurationError):
            engine.set_incentive_amount(GOVERNOR, -1)
        with pytest.raises(UnauthorizedError):
            engine.set_incentive_amount(KEEPER, 10)
        assert engine.incentive_amount == 5

    def test_set_min_update_interval(self, seeded_engine: FeeEngine) -> None:
        """A shorter interval allows earlier updates."""
        seeded_engine.set_min_update_interval(GOVERNOR, 10)
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        seeded_engine.trigger_update(MARKET, SEEDED_NOW + 10, KEEPER)

        with pytest.raises(UnauthorizedError):
            seeded_engine.set_min_update_interval(KEEPER, 0)
        with pytest.raises(ConfigurationError):
            seeded_engine.set_min_update_interval(GOVERNOR, -5)

    def test_transfer_governance(self, engine: FeeEngine) -> None:
        """Transferred governance moves all governance rights."""
        engine.transfer_governance(GOVERNOR, "new-gov")

        assert engine.governance == "new-gov"
        with pytest.raises(UnauthorizedError):
            engine.set_incentive_amount(GOVERNOR, 1)
        engine.set_incentive_amount("new-gov", 1)
        assert engine.incentive_amount == 1

    def test_transfer_governance_to_empty(self, engine: FeeEngine) -> None:
        """Governance cannot be transferred to an empty identity."""
        with pytest.raises(ConfigurationError):
            engine.transfer_governance(GOVERNOR, "")
        assert engine.governance == GOVERNOR


class TestRecommendedRange:
    """Tests for recommended range queries."""

    def test_range_before_update(self, seeded_engine: FeeEngine) -> None:
        """Before any update the narrowest range is recommended."""
        rng = seeded_engine.get_recommended_range(MARKET, 100)
        assert (rng.lower_tick, rng.upper_tick) == (-100, 300)

    def test_range_after_update(self, seeded_engine: FeeEngine) -> None:
        """An extreme regime recommends the widest range."""
        seeded_engine.trigger_update(MARKET, SEEDED_NOW, KEEPER)
        rng = seeded_engine.get_recommended_range(MARKET, 100)
        assert (rng.lower_tick, rng.upper_tick) == (-3_900, 4_100)
