"""Database layer for Sleeper System."""

from .db import init_db, get_session, make_engine, engine
from .schema import (
    Base,
    UserRecord,
    CampaignRecord,
    CampaignMemberRecord,
    CharacterRecord,
    DicePoolRecord,
    PoolDieRecord,
    ChallengeRecord,
    RollHistoryRecord,
)

__all__ = [
    "init_db",
    "get_session",
    "make_engine",
    "engine",
    "Base",
    "UserRecord",
    "CampaignRecord",
    "CampaignMemberRecord",
    "CharacterRecord",
    "DicePoolRecord",
    "PoolDieRecord",
    "ChallengeRecord",
    "RollHistoryRecord",
]
