"""Dice Pool Manager: issues, reads and edits daily d6 pools."""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from sleeper.database import DicePoolRecord, PoolDieRecord
from sleeper.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from sleeper.models.enums import PoolMode
from sleeper.realtime.events import DicePoolUpdated

from .access import require_gm, require_viewer
from .base import Component, get_campaign, get_character
from .dice import is_valid_d6, roll_d6

logger = logging.getLogger(__name__)


def find_current_pool(session, character_id: int, current_day: int) -> Optional[DicePoolRecord]:
    """The pool rolled for ``current_day``; pools from earlier days are stale."""
    return session.query(DicePoolRecord).filter_by(
        character_id=character_id,
        campaign_day=current_day,
    ).first()


class DicePoolManager(Component):
    """Owns per-character daily dice pools."""

    def roll_new_pool(self, user_id, character_id: int, mode=PoolMode.AUTO, manual_values=None) -> dict:
        """
        Roll today's pool for a character.

        Args:
            user_id: Caller
            character_id: Character receiving the pool
            mode: PoolMode.AUTO draws from the dice source, PoolMode.MANUAL
                takes ``manual_values`` typed in by the player
            manual_values: d6 faces in display order (manual mode only)

        Returns:
            The new pool with its dice

        Raises:
            ConflictError: a pool already exists for the current day
            ValidationError: manual values out of range or wrong count
        """
        mode = PoolMode(mode)
        with self.session() as session:
            character = get_character(session, character_id)
            campaign_id = character.campaign_id
            capability = self.capability(session, user_id, campaign_id)
            if not capability.can_act_for(character, user_id):
                raise ForbiddenError("You can only roll dice for your own character")

            if mode is PoolMode.MANUAL:
                values = self._manual_values(character.max_daily_dice, manual_values)

            with self.locks.campaign(campaign_id).shared(), self.locks.character(character_id):
                campaign = get_campaign(session, campaign_id, refresh=True)
                if find_current_pool(session, character_id, campaign.current_day) is not None:
                    raise ConflictError("A dice pool has already been rolled today")

                if mode is PoolMode.AUTO:
                    # Drawn only once the day is known to be free
                    values = roll_d6(character.max_daily_dice, self.dice)

                pool = DicePoolRecord(
                    character_id=character_id,
                    campaign_day=campaign.current_day,
                    dice=[
                        PoolDieRecord(die_result=value, position=index)
                        for index, value in enumerate(values)
                    ],
                )
                session.add(pool)
                try:
                    with self.hub.commit(session, campaign_id) as outbox:
                        session.flush()
                        pool_data = pool.to_dict()
                        outbox.append(DicePoolUpdated(campaign_id, character_id, pool_data))
                except IntegrityError:
                    raise ConflictError("A dice pool has already been rolled today")

            logger.info(
                "Rolled %s pool for character %d on day %d: %s",
                mode.value, character_id, pool_data["campaign_day"], values,
            )
            return pool_data

    def _manual_values(self, max_daily_dice: int, manual_values) -> list[int]:
        if not isinstance(manual_values, (list, tuple)) or not manual_values:
            raise ValidationError("At least one die result required")
        if not all(is_valid_d6(value) for value in manual_values):
            raise ValidationError("Dice results must be between 1 and 6")
        if len(manual_values) != max_daily_dice:
            raise ValidationError(
                f"Expected {max_daily_dice} dice results, got {len(manual_values)}"
            )
        return list(manual_values)

    def get_current_pool(self, user_id, character_id: int) -> Optional[dict]:
        """Today's pool for a character, or None when they have not rolled yet."""
        with self.session() as session:
            character = get_character(session, character_id)
            require_viewer(self.capability(session, user_id, character.campaign_id))
            campaign = get_campaign(session, character.campaign_id)
            pool = find_current_pool(session, character_id, campaign.current_day)
            return pool.to_dict() if pool else None

    def edit_die(self, user_id, die_id: int, new_value) -> dict:
        """GM correction of an unused die. Returns the updated pool."""
        with self.session() as session:
            die = session.get(PoolDieRecord, die_id)
            if die is None:
                raise NotFoundError("Die not found")
            character = get_character(session, die.pool.character_id)
            campaign_id = character.campaign_id
            require_gm(self.capability(session, user_id, campaign_id), "edit dice")
            if not is_valid_d6(new_value):
                raise ValidationError("Die result must be between 1 and 6")

            with self.locks.campaign(campaign_id).shared(), self.locks.die(die_id):
                campaign = get_campaign(session, campaign_id, refresh=True)
                if die.pool.campaign_day != campaign.current_day:
                    raise ConflictError("Dice pool is from a previous day")

                with self.hub.commit(session, campaign_id) as outbox:
                    edited = session.execute(
                        update(PoolDieRecord)
                        .where(PoolDieRecord.id == die_id, PoolDieRecord.is_used.is_(False))
                        .values(die_result=new_value)
                        .execution_options(synchronize_session=False)
                    ).rowcount
                    if edited != 1:
                        raise ForbiddenError("Cannot edit a die that has already been used")
                    pool = session.get(DicePoolRecord, die.pool_id, populate_existing=True)
                    session.refresh(die)
                    pool_data = pool.to_dict()
                    outbox.append(DicePoolUpdated(campaign_id, character.id, pool_data))

            logger.info("GM %s set die %d to %d", user_id, die_id, new_value)
            return pool_data
