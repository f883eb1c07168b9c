"""Capability checks consumed before every mutating operation."""

from dataclasses import dataclass
from typing import Optional

from sleeper.database import UserRecord, CampaignRecord, CampaignMemberRecord, CharacterRecord
from sleeper.errors import ForbiddenError
from sleeper.models.enums import SystemRole


@dataclass(frozen=True)
class Capability:
    """What a user may do inside one campaign."""
    is_gm: bool = False
    is_admin: bool = False
    is_member: bool = False

    @property
    def can_view(self) -> bool:
        return self.is_gm or self.is_admin or self.is_member

    def can_act_for(self, character: CharacterRecord, user_id: Optional[int]) -> bool:
        """Owners act for their own characters; GM and admins for anyone's."""
        if self.is_gm or self.is_admin:
            return True
        return user_id is not None and character.user_id == user_id


class DatabaseAuthorizer:
    """Derives capabilities from users, campaigns and memberships."""

    def can_act_as(self, session, user_id: Optional[int], campaign_id: int) -> Capability:
        if user_id is None:
            return Capability()

        user = session.get(UserRecord, user_id)
        is_admin = user is not None and user.system_role == SystemRole.ADMIN.value

        campaign = session.get(CampaignRecord, campaign_id)
        is_gm = campaign is not None and campaign.gm_user_id == user_id

        is_member = is_gm or session.query(CampaignMemberRecord).filter_by(
            campaign_id=campaign_id, user_id=user_id
        ).first() is not None

        return Capability(is_gm=is_gm, is_admin=is_admin, is_member=is_member)


def require_gm(capability: Capability, action: str):
    if not capability.is_gm:
        raise ForbiddenError(f"Only the GM can {action}")


def require_viewer(capability: Capability):
    if not capability.can_view:
        raise ForbiddenError("Not a member of this campaign")
