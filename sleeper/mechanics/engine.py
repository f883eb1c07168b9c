"""Wires the engine components around one hub, one lock registry and one dice source."""

from sleeper.database import CharacterRecord, get_session
from sleeper.realtime.hub import EventHub

from .access import DatabaseAuthorizer, require_viewer
from .base import get_campaign
from .challenges import ChallengeManager
from .day_clock import DayClock
from .dice import RandomDiceSource
from .locks import LockRegistry
from .pools import DicePoolManager, find_current_pool
from .rolls import RollResolver
from .roster import Roster


class FateEngine:
    """
    Entry point for every campaign operation.

    Usage:
        engine = FateEngine(session_factory, hub)
        pool = engine.pools.roll_new_pool(user_id, character_id)
        roll = engine.rolls.record_roll(user_id, character_id, pool["dice"][0]["id"])
    """

    def __init__(self, session_factory=None, hub=None, authorizer=None, dice=None, locks=None):
        self.session_factory = session_factory or get_session
        self.hub = hub or EventHub()
        self.locks = locks or LockRegistry()
        self.authorizer = authorizer or DatabaseAuthorizer()
        self.dice = dice or RandomDiceSource()

        parts = (self.session_factory, self.hub, self.locks, self.authorizer, self.dice)
        self.pools = DicePoolManager(*parts)
        self.rolls = RollResolver(*parts)
        self.challenges = ChallengeManager(*parts)
        self.clock = DayClock(*parts)
        self.roster = Roster(*parts)

    def campaign_state(self, user_id, campaign_id: int) -> dict:
        """Authoritative snapshot a client loads on (re)connect before trusting pushed events.

        Read under the hub's sequencer, so no event-producing commit lands
        halfway through. Every roll counted in the challenge stats is also in
        ``rolls``, which lets clients discard pushes the snapshot already holds.
        """
        with self.hub.sequencer(campaign_id):
            session = self.session_factory()
            try:
                campaign = get_campaign(session, campaign_id)
                require_viewer(self.authorizer.can_act_as(session, user_id, campaign_id))

                characters = session.query(CharacterRecord).filter_by(
                    campaign_id=campaign_id
                ).order_by(CharacterRecord.name).all()
                pools = {}
                for character in characters:
                    pool = find_current_pool(session, character.id, campaign.current_day)
                    pools[str(character.id)] = pool.to_dict() if pool else None

                state = {
                    "campaign": campaign.to_dict(),
                    "characters": [c.to_dict() for c in characters],
                    "pools": pools,
                }
            finally:
                session.close()

            state["challenges"] = self.challenges.list_active_with_stats(user_id, campaign_id)
            state["rolls"] = self.rolls.roll_history(user_id, campaign_id=campaign_id)
        return state
