"""Event recorder for engine activity.

Records engine events to compressed JSONL files for audit and replay.
"""

from __future__ import annotations

import gzip
import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fee_engine.recording.events import EngineEvent, EngineEventType

if TYPE_CHECKING:
    from fee_engine.domain.types import FeeConfig, UpdateResult, VolState

logger = logging.getLogger(__name__)


class EventRecorder:
    """Records engine events to JSONL.gz files.

    Features:
    - Compressed output (gzip)
    - Append-mode writes for crash recovery
    - Event counting and statistics
    - Flush control for performance
    """

    def __init__(
        self,
        output_dir: str | Path = "recordings",
        session_id: str | None = None,
        flush_interval: int = 100,
    ) -> None:
        """Initialize recorder.

        Args:
            output_dir: Directory for recording files
            session_id: Session identifier (auto-generated if not provided)
            flush_interval: Flush to disk every N events
        """
        self._output_dir = Path(output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)

        self._session_id = session_id or datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        self._file_path = self._output_dir / f"engine_{self._session_id}.jsonl.gz"

        self._file: Any = None
        self._event_count = 0
        self._flush_interval = flush_interval
        self._started = False

    @property
    def session_id(self) -> str:
        """Get session ID."""
        return self._session_id

    @property
    def file_path(self) -> Path:
        """Get recording file path."""
        return self._file_path

    @property
    def event_count(self) -> int:
        """Get number of events recorded."""
        return self._event_count

    @property
    def is_recording(self) -> bool:
        """Return True between start() and stop()."""
        return self._started

    def start(self, config: dict[str, Any] | None = None) -> None:
        """Start recording session.

        Args:
            config: Optional configuration to record
        """
        if self._started:
            return

        self._file = gzip.open(self._file_path, "at", encoding="utf-8")
        self._started = True

        self.record_event(
            EngineEvent(
                event_type=EngineEventType.SESSION_START,
                data={"session_id": self._session_id, "config": config or {}},
            )
        )

        logger.info(f"Recording started: {self._file_path}")

    def stop(self) -> None:
        """Stop recording session."""
        if not self._started:
            return

        self.record_event(
            EngineEvent(
                event_type=EngineEventType.SESSION_END,
                data={
                    "session_id": self._session_id,
                    "event_count": self._event_count,
                },
            )
        )

        if self._file:
            self._file.close()
            self._file = None

        self._started = False
        logger.info(f"Recording stopped: {self._event_count} events")

    def record_event(self, event: EngineEvent) -> None:
        """Record a single event.

        Events recorded before start() or after stop() are dropped.

        Args:
            event: Event to record
        """
        if not self._file:
            return

        line = json.dumps(event.to_dict()) + "\n"
        self._file.write(line)
        self._event_count += 1

        if self._event_count % self._flush_interval == 0:
            self._file.flush()

    # --- Convenience Methods ---

    def record_market_registered(
        self, market_id: str, initial_tick: int, timestamp: int
    ) -> None:
        """Record market registration."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.MARKET_REGISTERED,
                timestamp=timestamp,
                market_id=market_id,
                data={"initial_tick": initial_tick},
            )
        )

    def record_tick(self, market_id: str, tick: int, timestamp: int) -> None:
        """Record a tick observation."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.TICK_RECORDED,
                timestamp=timestamp,
                market_id=market_id,
                data={"tick": tick},
            )
        )

    def record_volatility_update(
        self, market_id: str, result: UpdateResult, state: VolState
    ) -> None:
        """Record a completed volatility update.

        Args:
            market_id: Updated market
            result: Values returned to the caller
            state: Persisted state after the update
        """
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.VOLATILITY_UPDATED,
                timestamp=state.last_update,
                market_id=market_id,
                data={
                    "current_vol": result.new_vol,
                    "regime": result.regime,
                    "new_fee": result.new_fee,
                    "sample_count": result.sample_count,
                    "ema_7d": state.ema_7d,
                    "ema_30d": state.ema_30d,
                },
            )
        )

    def record_incentive_paid(
        self, market_id: str, recipient: str, amount: int, timestamp: int
    ) -> None:
        """Record a keeper incentive payment."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.INCENTIVE_PAID,
                timestamp=timestamp,
                market_id=market_id,
                data={"recipient": recipient, "amount": amount},
            )
        )

    def record_fee_config_updated(self, market_id: str, config: FeeConfig) -> None:
        """Record a fee curve replacement."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.FEE_CONFIG_UPDATED,
                market_id=market_id,
                data={"points": config.to_pairs()},
            )
        )

    def record_governance_transferred(self, old: str, new: str) -> None:
        """Record a change of governance identity."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.GOVERNANCE_TRANSFERRED,
                data={"old": old, "new": new},
            )
        )

    def record_parameter_changed(self, name: str, old: int, new: int) -> None:
        """Record a governance parameter change."""
        self.record_event(
            EngineEvent(
                event_type=EngineEventType.PARAMETER_CHANGED,
                data={"name": name, "old": old, "new": new},
            )
        )

    def __enter__(self) -> EventRecorder:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.stop()


class EventPlayer:
    """Reads back recorded engine events.

    Reads JSONL.gz files and yields events in order.
    """

    def __init__(self, file_path: str | Path) -> None:
        """Initialize player.

        Args:
            file_path: Path to recording file
        """
        self._file_path = Path(file_path)

    def events(self) -> Iterator[EngineEvent]:
        """Yield events from recording.

        Yields:
            Engine events in order
        """
        with gzip.open(self._file_path, "rt", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    data = json.loads(line)
                    yield EngineEvent.from_dict(data)

    def get_stats(self) -> dict[str, int]:
        """Get event statistics.

        Returns:
            Dict of event type counts
        """
        stats: dict[str, int] = {}
        for event in self.events():
            event_type = event.event_type.value
            stats[event_type] = stats.get(event_type, 0) + 1
        return stats
