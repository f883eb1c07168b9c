"""Game mechanics for Sleeper System fate dice."""

from .dice import (
    RandomDiceSource,
    ScriptedDiceSource,
    roll_d6,
    clamp_d6,
    modified_d6,
    calculate_outcome,
)
from .access import Capability, DatabaseAuthorizer
from .locks import LockRegistry, ReadWriteLock
from .engine import FateEngine

__all__ = [
    "RandomDiceSource",
    "ScriptedDiceSource",
    "roll_d6",
    "clamp_d6",
    "modified_d6",
    "calculate_outcome",
    "Capability",
    "DatabaseAuthorizer",
    "LockRegistry",
    "ReadWriteLock",
    "FateEngine",
]
