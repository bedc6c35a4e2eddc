"""Fixed-capacity observation ring buffer.

Stores one (tick, timestamp) observation per slot. Once full, each new
observation overwrites the oldest one in place.
"""

from __future__ import annotations

from pydantic import ValidationError

from fee_engine.domain.errors import (
    BufferEmptyError,
    IndexOutOfRangeError,
    InvalidObservationError,
)
from fee_engine.domain.types import Observation

OBSERVATION_CAPACITY = 1024


def make_observation(tick: int, timestamp: int) -> Observation:
    """Build an Observation, reporting range errors as engine errors.

    Raises:
        InvalidObservationError: If tick or timestamp is out of range
    """
    try:
        return Observation(tick=tick, timestamp=timestamp)
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
        raise InvalidObservationError(tick, timestamp, reason) from e


class ObservationBuffer:
    """Circular store of the most recent observations of one market.

    Logical index 0 is always the oldest retained observation and
    count - 1 the newest, regardless of where they sit in storage.

    Thread-safety: This class is NOT thread-safe. The host serializes
    all writes to a given market.
    """

    def __init__(self, capacity: int = OBSERVATION_CAPACITY) -> None:
        """Initialize an empty buffer.

        Args:
            capacity: Number of slots; never grows
        """
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self._capacity = capacity
        self._storage: list[Observation] = []
        self._write_index = 0
        self._count = 0

    @property
    def capacity(self) -> int:
        """Return the fixed number of slots."""
        return self._capacity

    @property
    def write_index(self) -> int:
        """Return the slot the next observation will be written to."""
        return self._write_index

    @property
    def is_full(self) -> bool:
        """Return True once every slot holds an observation."""
        return self._count == self._capacity

    def record(self, tick: int, timestamp: int) -> Observation:
        """Append an observation, evicting the oldest when full.

        Args:
            tick: Log-price tick
            timestamp: Observation time in seconds

        Returns:
            The stored observation

        Raises:
            InvalidObservationError: If tick or timestamp is out of range
        """
        observation = make_observation(tick, timestamp)
        if self._count < self._capacity:
            self._storage.append(observation)
            self._count += 1
        else:
            self._storage[self._write_index] = observation
        self._write_index = (self._write_index + 1) % self._capacity
        return observation

    def get(self, index: int) -> Observation:
        """Return the observation at a logical index.

        Args:
            index: 0 for the oldest retained observation, count - 1 for newest

        Raises:
            BufferEmptyError: If nothing has been recorded
            IndexOutOfRangeError: If index is not in [0, count)
        """
        if self._count == 0:
            raise BufferEmptyError()
        if index < 0 or index >= self._count:
            raise IndexOutOfRangeError(index, self._count)
        return self._slot(index)

    def latest(self) -> Observation:
        """Return the newest observation.

        Raises:
            BufferEmptyError: If nothing has been recorded
        """
        if self._count == 0:
            raise BufferEmptyError()
        return self._slot(self._count - 1)

    def range(self, start: int, n: int) -> list[Observation]:
        """Return n consecutive observations from a logical index.

        Args:
            start: Logical index of the first observation
            n: Number of observations

        Returns:
            Observations ordered oldest to newest

        Raises:
            IndexOutOfRangeError: If start + n exceeds count
        """
        if start < 0 or n < 0 or start + n > self._count:
            raise IndexOutOfRangeError(start + n, self._count)
        return [self._slot(start + i) for i in range(n)]

    def tail(self, n: int) -> list[Observation]:
        """Return up to the n newest observations, oldest first."""
        n = min(n, self._count)
        return self.range(self._count - n, n)

    def length(self) -> int:
        """Return the number of retained observations."""
        return self._count

    def __len__(self) -> int:
        return self._count

    def _slot(self, index: int) -> Observation:
        # Oldest entry sits at write_index once the buffer has wrapped
        start = self._write_index if self._count == self._capacity else 0
        return self._storage[(start + index) % self._capacity]
