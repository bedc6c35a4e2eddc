"""Replay module.

Drives the engine from recorded tick streams.
"""

from fee_engine.replay.loader import TickLoader, write_observations
from fee_engine.replay.runner import ReplayResult, ReplayRunner

__all__ = [
    "ReplayResult",
    "ReplayRunner",
    "TickLoader",
    "write_observations",
]
