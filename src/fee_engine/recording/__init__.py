"""Recording module.

Provides engine event recording and playback.
"""

from fee_engine.recording.events import EngineEvent, EngineEventType
from fee_engine.recording.recorder import EventPlayer, EventRecorder

__all__ = [
    "EngineEvent",
    "EngineEventType",
    "EventPlayer",
    "EventRecorder",
]
