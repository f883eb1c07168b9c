"""Domain enumerations for Sleeper System."""

from .enums import Outcome, SystemRole, PoolMode, ChallengeAction, EventType

__all__ = [
    "Outcome",
    "SystemRole",
    "PoolMode",
    "ChallengeAction",
    "EventType",
]
