"""Engine event types.

Defines the events emitted by the engine for audit and replay.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EngineEventType(str, Enum):
    """Types of events that can be recorded."""

    # Market lifecycle
    MARKET_REGISTERED = "market_registered"
    TICK_RECORDED = "tick_recorded"

    # Oracle events
    VOLATILITY_UPDATED = "volatility_updated"
    INCENTIVE_PAID = "incentive_paid"

    # Governance events
    FEE_CONFIG_UPDATED = "fee_config_updated"
    GOVERNANCE_TRANSFERRED = "governance_transferred"
    PARAMETER_CHANGED = "parameter_changed"

    # System events
    SESSION_START = "session_start"
    SESSION_END = "session_end"


@dataclass(frozen=True)
class EngineEvent:
    """Event emitted by the engine.

    timestamp is in engine seconds (the same clock as observations),
    or None for events that happen outside the observation timeline.
    """

    event_type: EngineEventType
    timestamp: int | None = None
    market_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "market_id": self.market_id,
            "data": self._serialize_data(self.data),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> EngineEvent:
        """Create from dictionary."""
        return cls(
            event_type=EngineEventType(d["event_type"]),
            timestamp=d.get("timestamp"),
            market_id=d.get("market_id"),
            data=d.get("data", {}),
        )

    def _serialize_data(self, data: dict[str, Any]) -> dict[str, Any]:
        """Serialize data values for JSON."""
        result = {}
        for key, value in data.items():
            if isinstance(value, Enum):
                result[key] = value.value
            elif isinstance(value, dict):
                result[key] = self._serialize_data(value)
            elif isinstance(value, (list, tuple)):
                result[key] = [self._serialize_item(item) for item in value]
            else:
                result[key] = value
        return result

    def _serialize_item(self, item: Any) -> Any:
        if isinstance(item, Enum):
            return item.value
        elif isinstance(item, dict):
            return self._serialize_data(item)
        elif isinstance(item, tuple):
            return [self._serialize_item(i) for i in item]
        return item
