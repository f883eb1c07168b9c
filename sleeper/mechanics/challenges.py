"""Challenge Lifecycle Manager.

Challenges stay attemptable until the GM completes them. Nothing on the
server stops an individual challenge from being attempted again after a
success; the table decides when to call it done.
"""

import logging

from sqlalchemy import case, func, update

from sleeper.database import ChallengeRecord, RollHistoryRecord
from sleeper.errors import ConflictError, NotFoundError, ValidationError
from sleeper.models.enums import ChallengeAction, Outcome
from sleeper.realtime.events import ChallengeUpdate

from .access import require_gm, require_viewer
from .base import Component, get_campaign

logger = logging.getLogger(__name__)

MIN_DIFFICULTY = -3
MAX_DIFFICULTY = 2


class ChallengeManager(Component):
    """Creates, lists and completes campaign challenges."""

    def create(self, user_id, campaign_id: int, description: str, difficulty_modifier: int = 0,
               is_group_challenge: bool = False) -> dict:
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("Challenge description is required")
        if (isinstance(difficulty_modifier, bool) or not isinstance(difficulty_modifier, int)
                or not MIN_DIFFICULTY <= difficulty_modifier <= MAX_DIFFICULTY):
            raise ValidationError(
                f"Difficulty modifier must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}"
            )

        with self.session() as session:
            get_campaign(session, campaign_id)
            require_gm(self.capability(session, user_id, campaign_id), "create challenges")

            challenge = ChallengeRecord(
                campaign_id=campaign_id,
                created_by_user_id=user_id,
                description=description.strip(),
                difficulty_modifier=difficulty_modifier,
                is_group_challenge=bool(is_group_challenge),
                is_active=True,
            )
            session.add(challenge)
            with self.hub.commit(session, campaign_id) as outbox:
                session.flush()
                challenge_data = challenge.to_dict()
                outbox.append(ChallengeUpdate(campaign_id, ChallengeAction.CREATED, challenge_data))

            logger.info("Challenge %d created in campaign %d", challenge_data["id"], campaign_id)
            return challenge_data

    def list_active_with_stats(self, user_id, campaign_id: int) -> list[dict]:
        """Active challenges with attempt counts. Neutral rolls only count toward the total."""
        with self.session() as session:
            get_campaign(session, campaign_id)
            require_viewer(self.capability(session, user_id, campaign_id))

            rows = session.query(
                ChallengeRecord,
                func.count(RollHistoryRecord.id),
                func.count(case((RollHistoryRecord.outcome == Outcome.SUCCESS.value, 1))),
                func.count(case((RollHistoryRecord.outcome == Outcome.FAILURE.value, 1))),
            ).outerjoin(
                RollHistoryRecord, RollHistoryRecord.challenge_id == ChallengeRecord.id
            ).filter(
                ChallengeRecord.campaign_id == campaign_id,
                ChallengeRecord.is_active.is_(True),
            ).group_by(
                ChallengeRecord.id
            ).order_by(
                ChallengeRecord.created_at.desc(), ChallengeRecord.id.desc()
            ).all()

            return [
                dict(
                    challenge.to_dict(),
                    total_attempts=total,
                    successful_attempts=successes,
                    failed_attempts=failures,
                )
                for challenge, total, successes, failures in rows
            ]

    def complete(self, user_id, challenge_id: int) -> dict:
        """Close a challenge. Earlier rolls against it are left untouched."""
        with self.session() as session:
            challenge = session.get(ChallengeRecord, challenge_id)
            if challenge is None:
                raise NotFoundError("Challenge not found")
            campaign_id = challenge.campaign_id
            require_gm(self.capability(session, user_id, campaign_id), "mark challenges complete")

            with self.hub.commit(session, campaign_id) as outbox:
                completed = session.execute(
                    update(ChallengeRecord)
                    .where(ChallengeRecord.id == challenge_id, ChallengeRecord.is_active.is_(True))
                    .values(is_active=False)
                    .execution_options(synchronize_session=False)
                ).rowcount
                if completed != 1:
                    raise ConflictError("Challenge has already been completed")
                session.refresh(challenge)
                challenge_data = challenge.to_dict()
                outbox.append(ChallengeUpdate(campaign_id, ChallengeAction.COMPLETED, challenge_data))

            logger.info("Challenge %d completed", challenge_id)
            return challenge_data
