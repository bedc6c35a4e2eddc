"""Loader for recorded tick streams."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from fee_engine.domain.errors import InvalidObservationError
from fee_engine.domain.types import Observation
from fee_engine.oracle.buffer import make_observation


class TickLoader:
    """Loads (tick, timestamp) streams from JSON Lines files.

    Each non-empty line is an object with integer "tick" and "timestamp"
    fields. Blank lines and lines starting with "#" are ignored.
    """

    def iter_observations(self, file_path: str | Path) -> Iterator[Observation]:
        """Yield observations from a file in order.

        Args:
            file_path: Path to the JSONL file

        Yields:
            Observations in file order

        Raises:
            ValueError: If a line is not a valid observation
        """
        with open(file_path) as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                yield self._parse_line(line, line_number)

    def load_observations(self, file_path: str | Path) -> list[Observation]:
        """Load every observation of a file."""
        return list(self.iter_observations(file_path))

    def _parse_line(self, line: str, line_number: int) -> Observation:
        try:
            data: dict[str, Any] = json.loads(line)
            return make_observation(data["tick"], data["timestamp"])
        except (
            json.JSONDecodeError,
            KeyError,
            TypeError,
            InvalidObservationError,
        ) as e:
            raise ValueError(f"Invalid observation on line {line_number}: {e}") from e


def write_observations(file_path: str | Path, observations: list[Observation]) -> None:
    """Write observations as JSON Lines.

    Args:
        file_path: Destination path
        observations: Observations to write, in order
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for observation in observations:
            record = {"tick": observation.tick, "timestamp": observation.timestamp}
            f.write(json.dumps(record) + "\n")
