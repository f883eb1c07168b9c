"""Real-time campaign synchronisation."""

from .events import (
    RollComplete,
    DicePoolUpdated,
    ChallengeUpdate,
    DayIncremented,
    encode_event,
    parse_event,
    decode_frame,
)
from .hub import EventHub, Connection

__all__ = [
    "RollComplete",
    "DicePoolUpdated",
    "ChallengeUpdate",
    "DayIncremented",
    "encode_event",
    "parse_event",
    "decode_frame",
    "EventHub",
    "Connection",
]
