"""Shared plumbing for the engine components."""

from contextlib import contextmanager

from sleeper.database import CharacterRecord, CampaignRecord
from sleeper.errors import NotFoundError


class Component:
    """
    Base for engine components.

    Args:
        session_factory: Callable returning a new SQLAlchemy session
        hub: EventHub that mutations commit through
        locks: LockRegistry shared by every component of one engine
        authorizer: Object with ``can_act_as(session, user_id, campaign_id)``
        dice: Dice source with ``d6()`` and ``d20()``
    """

    def __init__(self, session_factory, hub, locks, authorizer, dice):
        self.session_factory = session_factory
        self.hub = hub
        self.locks = locks
        self.authorizer = authorizer
        self.dice = dice

    @contextmanager
    def session(self):
        """Session whose uncommitted work is rolled back on any error."""
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def capability(self, session, user_id, campaign_id):
        return self.authorizer.can_act_as(session, user_id, campaign_id)


def get_character(session, character_id: int) -> CharacterRecord:
    character = session.get(CharacterRecord, character_id)
    if character is None:
        raise NotFoundError("Character not found")
    return character


def get_campaign(session, campaign_id: int, refresh: bool = False) -> CampaignRecord:
    """Load a campaign; ``refresh`` bypasses the identity map after taking a lock."""
    campaign = session.get(CampaignRecord, campaign_id, populate_existing=refresh)
    if campaign is None:
        raise NotFoundError("Campaign not found")
    return campaign
