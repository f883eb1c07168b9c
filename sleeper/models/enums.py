"""Enumerations for fate dice concepts."""

from enum import Enum


class Outcome(Enum):
    """Categorical result of a d20 judged against a modified d6."""
    SUCCESS = "success"
    NEUTRAL = "neutral"
    FAILURE = "failure"

    @property
    def legacy_success(self):
        """Tri-state flag kept on roll history: True, False or None for neutral."""
        if self is Outcome.SUCCESS:
            return True
        if self is Outcome.FAILURE:
            return False
        return None


class SystemRole(Enum):
    """Account-wide roles assigned by the auth layer."""
    ADMIN = "admin"
    GAME_MASTER = "game_master"
    PLAYER = "player"


class PoolMode(Enum):
    """How the d6 values of a new pool are produced."""
    AUTO = "auto"      # Server draws from the dice source
    MANUAL = "manual"  # Player rolled physical dice and typed them in


class ChallengeAction(Enum):
    """Lifecycle step reported by challenge_update events."""
    CREATED = "created"
    COMPLETED = "completed"


class EventType(Enum):
    """Real-time event types pushed to campaign subscribers."""
    ROLL_COMPLETE = "roll_complete"
    DICE_POOL_UPDATED = "dice_pool_updated"
    CHALLENGE_UPDATE = "challenge_update"
    DAY_INCREMENTED = "day_incremented"
