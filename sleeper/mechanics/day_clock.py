"""Day Clock: the GM advances the campaign day.

Pools are not deleted when the day moves on. They stop being current
because their ``campaign_day`` no longer matches, which keeps old roll
history pointing at real dice.
"""

import logging

from sqlalchemy import update

from sleeper.database import CampaignRecord
from sleeper.realtime.events import DayIncremented

from .access import require_gm
from .base import Component, get_campaign

logger = logging.getLogger(__name__)


class DayClock(Component):

    def increment_day(self, user_id, campaign_id: int) -> dict:
        """Advance ``current_day`` by one. Waits for in-flight rolls of this campaign."""
        with self.session() as session:
            get_campaign(session, campaign_id)
            require_gm(self.capability(session, user_id, campaign_id), "increment the day")

            with self.locks.campaign(campaign_id).exclusive():
                with self.hub.commit(session, campaign_id) as outbox:
                    session.execute(
                        update(CampaignRecord)
                        .where(CampaignRecord.id == campaign_id)
                        .values(current_day=CampaignRecord.current_day + 1)
                        .execution_options(synchronize_session=False)
                    )
                    campaign = get_campaign(session, campaign_id, refresh=True)
                    campaign_data = campaign.to_dict()
                    outbox.append(DayIncremented(campaign_id, campaign.current_day))

            logger.info("Campaign %d advanced to day %d", campaign_id, campaign_data["current_day"])
            return campaign_data
