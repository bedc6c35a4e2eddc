"""Tests for engine configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from fee_engine.core.config import (
    EngineConfig,
    KeeperConfig,
    MarketSeedConfig,
    load_config,
)
from fee_engine.fees.curve import default_fee_config


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self) -> None:
        """Defaults match the engine's built-in policy."""
        config = EngineConfig()
        assert config.min_update_interval_seconds == 300
        assert config.observation_window == 256
        assert config.default_fee_bps == 30
        assert config.incentive_amount == 10**15
        assert config.fee_curve is None
        assert config.initial_fee_config() == default_fee_config()
        assert not config.keeper.enabled
        assert not config.recording.enabled

    def test_empty_governance_rejected(self) -> None:
        """Governance identity must be non-empty."""
        with pytest.raises(ValidationError):
            EngineConfig(governance="")

    def test_window_bounds(self) -> None:
        """Observation window must fit the ring buffer."""
        with pytest.raises(ValidationError):
            EngineConfig(observation_window=1)
        with pytest.raises(ValidationError):
            EngineConfig(observation_window=1025)
        assert EngineConfig(observation_window=1024).observation_window == 1024

    def test_custom_curve(self) -> None:
        """A valid custom curve becomes the initial fee config."""
        pairs = [(0, 1), (10, 2), (20, 3), (30, 4), (40, 5), (50, 6)]
        config = EngineConfig(fee_curve=pairs)
        assert config.initial_fee_config().to_pairs() == pairs

    def test_unsorted_curve_rejected(self) -> None:
        """An unsorted custom curve fails validation."""
        with pytest.raises(ValidationError, match="strictly increasing"):
            EngineConfig(
                fee_curve=[(0, 1), (20, 2), (10, 3), (30, 4), (40, 5), (50, 6)]
            )

    def test_short_curve_rejected(self) -> None:
        """A custom curve must have six points."""
        with pytest.raises(ValidationError):
            EngineConfig(fee_curve=[(0, 1), (10, 2)])

    def test_keeper_poll_interval_must_be_positive(self) -> None:
        """Keeper poll interval must be positive."""
        with pytest.raises(ValidationError):
            KeeperConfig(poll_interval_seconds=0)

    def test_from_dict(self) -> None:
        """Nested sections load from a dictionary."""
        config = EngineConfig.from_dict(
            {
                "governance": "dao",
                "keeper": {"enabled": True, "market_ids": ["A", "B"]},
            }
        )
        assert config.governance == "dao"
        assert config.keeper.enabled
        assert config.keeper.market_ids == ["A", "B"]
        assert config.keeper_market_ids() == ["A", "B"]

    def test_markets(self) -> None:
        """Startup markets load with an optional timestamp."""
        config = EngineConfig.from_dict(
            {
                "markets": [
                    {"market_id": "A", "initial_tick": -5, "timestamp": 10},
                    {"market_id": "B"},
                ]
            }
        )
        assert config.markets[0].initial_tick == -5
        assert config.markets[1].initial_tick == 0
        assert config.markets[1].timestamp is None

    def test_keeper_defaults_to_startup_markets(self) -> None:
        """With no keeper market list the keeper polls the startup markets."""
        config = EngineConfig.from_dict(
            {"markets": [{"market_id": "A"}, {"market_id": "B"}]}
        )
        assert config.keeper_market_ids() == ["A", "B"]
        assert EngineConfig().keeper_market_ids() == []

    def test_duplicate_markets_rejected(self) -> None:
        """A market can only be listed once."""
        with pytest.raises(ValidationError, match="Duplicate market IDs"):
            EngineConfig.from_dict(
                {"markets": [{"market_id": "A"}, {"market_id": "A"}]}
            )

    def test_empty_market_id_rejected(self) -> None:
        """A startup market needs an identifier."""
        with pytest.raises(ValidationError):
            MarketSeedConfig(market_id="")


class TestYamlLoading:
    """Tests for YAML config files."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """A saved config loads back unchanged."""
        config = EngineConfig(
            governance="dao",
            min_update_interval_seconds=120,
            fee_curve=[(0, 1), (10, 2), (20, 3), (30, 4), (40, 5), (50, 6)],
        )
        path = tmp_path / "nested" / "engine.yaml"
        config.to_yaml(path)

        loaded = EngineConfig.from_yaml(path)
        assert loaded == config

    def test_missing_file(self, tmp_path: Path) -> None:
        """Loading a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_yaml(tmp_path / "missing.yaml")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """An empty YAML file yields the default config."""
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_load_config_search_path(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """load_config finds ./config/engine.yaml."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "engine.yaml").write_text("governance: found\n")

        assert load_config().governance == "found"

    def test_load_config_defaults(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """load_config falls back to defaults when no file exists."""
        monkeypatch.chdir(tmp_path)
        assert load_config() == EngineConfig()
