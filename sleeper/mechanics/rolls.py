"""Roll Resolver: claims a pool die and records the roll it was spent on.

The claim is the one place where requests race each other for the same
row. Two layers keep it at-most-once:

1. a per-die mutex serialises claimants inside this process, and
2. the claim itself is ``UPDATE ... WHERE is_used = false`` whose row count
   decides the winner, so a second process sharing the database cannot
   double-spend either.

The roll record and the claim commit in the same transaction.
"""

import logging
from typing import Optional

from sqlalchemy import update

from sleeper.database import (
    ChallengeRecord,
    CharacterRecord,
    PoolDieRecord,
    RollHistoryRecord,
)
from sleeper.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from sleeper.realtime.events import RollComplete

from .access import require_viewer
from .base import Component, get_campaign, get_character
from .dice import calculate_outcome, is_valid_d20, modified_d6

logger = logging.getLogger(__name__)

CHARACTER_HISTORY_LIMIT = 50
CAMPAIGN_HISTORY_LIMIT = 100


class RollResolver(Component):
    """Atomically spends dice and records roll history."""

    def record_roll(
        self,
        user_id,
        character_id: int,
        die_id: int,
        d20: Optional[int] = None,
        challenge_id: Optional[int] = None,
        skill_applied: bool = False,
        other_modifiers: int = 0,
        action_type: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict:
        """
        Spend a die on a d20 roll.

        Args:
            user_id: Caller; must own the character or be GM/admin
            character_id: Character making the roll
            die_id: Unused die from the character's current pool
            d20: Manually entered d20, or None to roll server-side
            challenge_id: Optional active challenge being attempted
            skill_applied: Add the character's skill modifier
            other_modifiers: Free-form modifier added to the die
            action_type: Short label for the action
            notes: Free text

        Returns:
            The stored roll record
        """
        if d20 is not None and not is_valid_d20(d20):
            raise ValidationError("d20 roll must be between 1 and 20")
        if isinstance(other_modifiers, bool) or not isinstance(other_modifiers, int):
            raise ValidationError("other_modifiers must be an integer")

        with self.session() as session:
            character = get_character(session, character_id)
            campaign_id = character.campaign_id
            capability = self.capability(session, user_id, campaign_id)
            if not capability.can_act_for(character, user_id):
                raise ForbiddenError("You can only roll for your own character")

            die = session.get(PoolDieRecord, die_id)
            if die is None:
                raise NotFoundError("Pool die not found")
            if die.pool.character_id != character_id:
                raise ValidationError("Die does not belong to this character")

            challenge = None
            if challenge_id is not None:
                challenge = session.get(ChallengeRecord, challenge_id)
                if challenge is None or challenge.campaign_id != campaign_id:
                    raise NotFoundError("Challenge not found")
                if not challenge.is_active:
                    raise ConflictError("Challenge has already been completed")

            with self.locks.campaign(campaign_id).shared(), self.locks.die(die_id):
                campaign = get_campaign(session, campaign_id, refresh=True)
                if die.pool.campaign_day != campaign.current_day:
                    raise ConflictError("Dice pool is from a previous day")

                session.refresh(die)
                if die.is_used:
                    raise ConflictError("Die already used")

                if d20 is None:
                    d20 = self.dice.d20()
                modified = modified_d6(
                    die.die_result,
                    skill_modifier=character.skill_modifier,
                    skill_applied=skill_applied,
                    other_modifiers=other_modifiers,
                    difficulty_modifier=challenge.difficulty_modifier if challenge else 0,
                )
                outcome = calculate_outcome(modified, d20)

                with self.hub.commit(session, campaign_id) as outbox:
                    claimed = session.execute(
                        update(PoolDieRecord)
                        .where(PoolDieRecord.id == die_id, PoolDieRecord.is_used.is_(False))
                        .values(is_used=True)
                        .execution_options(synchronize_session=False)
                    ).rowcount
                    if claimed != 1:
                        raise ConflictError("Die already used")

                    roll = RollHistoryRecord(
                        character_id=character_id,
                        pool_dice_id=die_id,
                        d20_roll=d20,
                        action_type=action_type,
                        challenge_id=challenge_id,
                        skill_applied=bool(skill_applied),
                        other_modifiers=other_modifiers,
                        modified_d6=modified,
                        outcome=outcome.value,
                        success=outcome.legacy_success,
                        notes=notes,
                    )
                    session.add(roll)
                    session.flush()
                    roll_data = roll.to_dict()
                    outbox.append(RollComplete(
                        campaign_id=campaign_id,
                        character_id=character_id,
                        roll=roll_data,
                        character_name=character.name,
                    ))

            logger.info(
                "Roll: character=%d die=%d base=%d skill=%s other=%d modified=%d d20=%d -> %s",
                character_id, die_id, die.die_result, skill_applied,
                other_modifiers, modified, d20, outcome.value,
            )
            return roll_data

    def roll_history(self, user_id, character_id: Optional[int] = None, campaign_id: Optional[int] = None) -> list[dict]:
        """Newest-first rolls for one character or a whole campaign."""
        if (character_id is None) == (campaign_id is None):
            raise ValidationError("character_id or campaign_id query parameter required")

        with self.session() as session:
            query = session.query(RollHistoryRecord, CharacterRecord.name).join(
                CharacterRecord, RollHistoryRecord.character_id == CharacterRecord.id
            )
            if character_id is not None:
                campaign_id = get_character(session, character_id).campaign_id
                query = query.filter(RollHistoryRecord.character_id == character_id)
                limit = CHARACTER_HISTORY_LIMIT
            else:
                get_campaign(session, campaign_id)
                query = query.filter(CharacterRecord.campaign_id == campaign_id)
                limit = CAMPAIGN_HISTORY_LIMIT

            require_viewer(self.capability(session, user_id, campaign_id))

            rows = query.order_by(
                RollHistoryRecord.created_at.desc(), RollHistoryRecord.id.desc()
            ).limit(limit).all()
            return [dict(roll.to_dict(), character_name=name) for roll, name in rows]
