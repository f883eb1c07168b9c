"""SQLAlchemy table definitions for Sleeper System."""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    """Account as seen by the capability check. Owned by the auth layer."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(50), unique=True)
    system_role: Mapped[str] = mapped_column(String(20), default="player")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class CampaignRecord(Base):
    """Database record for a campaign."""
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    gm_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    # Only ever moves forward, see DayClock
    current_day: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "gm_user_id": self.gm_user_id,
            "current_day": self.current_day,
            "created_at": _iso(self.created_at),
        }


class CampaignMemberRecord(Base):
    """Membership of a user in a campaign."""
    __tablename__ = "campaign_members"
    __table_args__ = (UniqueConstraint("campaign_id", "user_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))

    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_dict(self, gm_user_id: Optional[int] = None) -> dict:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "user_id": self.user_id,
            "is_gm": self.user_id == gm_user_id,
            "joined_at": _iso(self.joined_at),
        }


class CharacterRecord(Base):
    """Database record for a player character."""
    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(primary_key=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"))
    # None means the GM has not assigned the character yet
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(100))

    skill_name: Mapped[Optional[str]] = mapped_column(String(100))
    skill_modifier: Mapped[int] = mapped_column(Integer, default=0)
    weakness_name: Mapped[Optional[str]] = mapped_column(String(100))
    weakness_modifier: Mapped[int] = mapped_column(Integer, default=0)

    max_daily_dice: Mapped[int] = mapped_column(Integer, default=3)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "user_id": self.user_id,
            "name": self.name,
            "skill_name": self.skill_name,
            "skill_modifier": self.skill_modifier,
            "weakness_name": self.weakness_name,
            "weakness_modifier": self.weakness_modifier,
            "max_daily_dice": self.max_daily_dice,
            "created_at": _iso(self.created_at),
        }


class DicePoolRecord(Base):
    """A character's fate dice for one campaign day."""
    __tablename__ = "dice_pools"
    __table_args__ = (UniqueConstraint("character_id", "campaign_day"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id"))
    # Current only while this equals the campaign's current_day
    campaign_day: Mapped[int] = mapped_column(Integer)
    rolled_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    dice: Mapped[list["PoolDieRecord"]] = relationship(
        back_populates="pool",
        order_by="PoolDieRecord.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "character_id": self.character_id,
            "campaign_day": self.campaign_day,
            "rolled_at": _iso(self.rolled_at),
            "dice": [die.to_dict() for die in self.dice],
        }


class PoolDieRecord(Base):
    """One d6 in a pool. is_used flips false -> true exactly once."""
    __tablename__ = "pool_dice"

    id: Mapped[int] = mapped_column(primary_key=True)
    pool_id: Mapped[int] = mapped_column(ForeignKey("dice_pools.id"))
    die_result: Mapped[int] = mapped_column(Integer)
    is_used: Mapped[bool] = mapped_column(default=False)
    position: Mapped[int] = mapped_column(Integer)

    pool: Mapped[DicePoolRecord] = relationship(back_populates="dice")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pool_id": self.pool_id,
            "die_result": self.die_result,
            "is_used": self.is_used,
            "position": self.position,
        }


class ChallengeRecord(Base):
    """A GM-defined challenge players roll against."""
    __tablename__ = "challenges"

    id: Mapped[int] = mapped_column(primary_key=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id"))
    created_by_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    description: Mapped[str] = mapped_column(Text)
    difficulty_modifier: Mapped[int] = mapped_column(Integer, default=0)
    is_group_challenge: Mapped[bool] = mapped_column(default=False)
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "campaign_id": self.campaign_id,
            "created_by_user_id": self.created_by_user_id,
            "description": self.description,
            "difficulty_modifier": self.difficulty_modifier,
            "is_group_challenge": self.is_group_challenge,
            "is_active": self.is_active,
            "created_at": _iso(self.created_at),
        }


class RollHistoryRecord(Base):
    """Immutable record of one resolved roll."""
    __tablename__ = "roll_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    character_id: Mapped[int] = mapped_column(ForeignKey("characters.id"))
    pool_dice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("pool_dice.id"), nullable=True)
    d20_roll: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    action_type: Mapped[Optional[str]] = mapped_column(String(100))
    challenge_id: Mapped[Optional[int]] = mapped_column(ForeignKey("challenges.id"), nullable=True)

    skill_applied: Mapped[bool] = mapped_column(default=False)
    other_modifiers: Mapped[int] = mapped_column(Integer, default=0)
    modified_d6: Mapped[int] = mapped_column(Integer)
    outcome: Mapped[str] = mapped_column(String(10))  # "success", "neutral" or "failure"
    # Older clients read this instead of outcome; None means neutral
    success: Mapped[Optional[bool]] = mapped_column(nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "character_id": self.character_id,
            "pool_dice_id": self.pool_dice_id,
            "d20_roll": self.d20_roll,
            "action_type": self.action_type,
            "challenge_id": self.challenge_id,
            "skill_applied": self.skill_applied,
            "other_modifiers": self.other_modifiers,
            "modified_d6": self.modified_d6,
            "outcome": self.outcome,
            "success": self.success,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }
