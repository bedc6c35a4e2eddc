"""Configuration models for the fee engine.

Loads and validates configuration from YAML files using pydantic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from fee_engine.domain.errors import InvalidFeeConfigError
from fee_engine.domain.types import FeeConfig
from fee_engine.fees.curve import default_fee_config, require_valid_fee_config
from fee_engine.oracle.buffer import OBSERVATION_CAPACITY

DEFAULT_FEE_BPS = 30
DEFAULT_MIN_UPDATE_INTERVAL = 300
DEFAULT_OBSERVATION_WINDOW = 256
# 0.001 of an 18-decimal native unit
DEFAULT_INCENTIVE_AMOUNT = 10**15


class KeeperConfig(BaseModel):
    """Keeper polling configuration."""

    enabled: bool = False
    caller: str = "keeper"
    poll_interval_seconds: float = 300.0
    market_ids: list[str] = Field(default_factory=list)

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        """Ensure poll interval is positive."""
        if v <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        return v


class MarketSeedConfig(BaseModel):
    """Market registered when the server starts."""

    market_id: str
    initial_tick: int = 0
    timestamp: int | None = None  # None means the startup time

    @field_validator("market_id")
    @classmethod
    def validate_market_id(cls, v: str) -> str:
        """Ensure the market has an identifier."""
        if not v:
            raise ValueError("market_id must be non-empty")
        return v


class RecordingConfig(BaseModel):
    """Event recording configuration."""

    enabled: bool = False
    output_dir: str = "./data/events"


class EngineConfig(BaseModel):
    """Root configuration for the fee engine."""

    governance: str = "governance"

    # Update policy
    min_update_interval_seconds: int = Field(default=DEFAULT_MIN_UPDATE_INTERVAL, ge=0)
    observation_window: int = Field(
        default=DEFAULT_OBSERVATION_WINDOW, ge=2, le=OBSERVATION_CAPACITY
    )

    # Keeper incentive
    incentive_amount: int = Field(default=DEFAULT_INCENTIVE_AMOUNT, ge=0)
    treasury_balance: int = Field(default=0, ge=0)

    # Fees
    default_fee_bps: int = Field(default=DEFAULT_FEE_BPS, ge=0)
    fee_curve: list[tuple[int, int]] | None = None

    # Markets registered at startup
    markets: list[MarketSeedConfig] = Field(default_factory=list)

    keeper: KeeperConfig = Field(default_factory=KeeperConfig)
    recording: RecordingConfig = Field(default_factory=RecordingConfig)

    # API server
    api_host: str = "127.0.0.1"
    api_port: int | None = 8080  # Set to None to disable

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("governance")
    @classmethod
    def validate_governance(cls, v: str) -> str:
        """Ensure a governance identity is set."""
        if not v:
            raise ValueError("governance must be a non-empty identity")
        return v

    @field_validator("fee_curve")
    @classmethod
    def validate_fee_curve(
        cls, v: list[tuple[int, int]] | None
    ) -> list[tuple[int, int]] | None:
        """Ensure a configured curve has six strictly increasing points."""
        if v is None:
            return v
        try:
            require_valid_fee_config(FeeConfig.from_pairs(v))
        except (InvalidFeeConfigError, ValueError) as e:
            raise ValueError(str(e)) from e
        return v

    @field_validator("markets")
    @classmethod
    def validate_unique_markets(
        cls, v: list[MarketSeedConfig]
    ) -> list[MarketSeedConfig]:
        """Ensure each market is configured once."""
        ids = [m.market_id for m in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate market IDs: {duplicates}")
        return v

    def keeper_market_ids(self) -> list[str]:
        """Return the markets the keeper polls.

        Defaults to the configured startup markets when keeper.market_ids
        is empty.
        """
        if self.keeper.market_ids:
            return list(self.keeper.market_ids)
        return [m.market_id for m in self.markets]

    def initial_fee_config(self) -> FeeConfig:
        """Return the curve installed on newly registered markets."""
        if self.fee_curve is None:
            return default_fee_config()
        return FeeConfig.from_pairs(self.fee_curve)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            Validated EngineConfig

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValidationError: If the config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.model_validate(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Load configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Validated EngineConfig
        """
        return cls.model_validate(data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file.

        Args:
            path: Path to write the configuration
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load engine configuration.

    Looks for config in the following order:
    1. Provided path argument
    2. ./config/engine.yaml
    3. ./engine.yaml
    4. Default configuration

    Args:
        path: Optional explicit path to config file

    Returns:
        Validated EngineConfig
    """
    if path:
        return EngineConfig.from_yaml(path)

    default_paths = [
        Path("./config/engine.yaml"),
        Path("./engine.yaml"),
    ]

    for default_path in default_paths:
        if default_path.exists():
            return EngineConfig.from_yaml(default_path)

    return EngineConfig()
