"""Campaign, membership and character bookkeeping the dice engine relies on."""

import logging
from typing import Optional

from sleeper.database import (
    CampaignMemberRecord,
    CampaignRecord,
    CharacterRecord,
    UserRecord,
)
from sleeper.errors import ForbiddenError, NotFoundError, ValidationError
from sleeper.models.enums import SystemRole

from .access import require_viewer
from .base import Component, get_campaign, get_character

logger = logging.getLogger(__name__)

CAMPAIGN_CREATOR_ROLES = {SystemRole.ADMIN.value, SystemRole.GAME_MASTER.value}
EDITABLE_CHARACTER_FIELDS = {"name", "skill_name", "skill_modifier", "weakness_name", "weakness_modifier"}


class Roster(Component):
    """Thin request/response operations around campaigns and characters."""

    def create_campaign(self, user_id, name: str) -> dict:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Campaign name is required")

        with self.session() as session:
            user = session.get(UserRecord, user_id) if user_id is not None else None
            if user is None or user.system_role not in CAMPAIGN_CREATOR_ROLES:
                raise ForbiddenError("Only game masters and admins can create campaigns")

            campaign = CampaignRecord(name=name.strip(), gm_user_id=user.id, current_day=1)
            session.add(campaign)
            session.flush()
            session.add(CampaignMemberRecord(campaign_id=campaign.id, user_id=user.id))
            session.commit()

            logger.info("Campaign %d created by user %d", campaign.id, user.id)
            return campaign.to_dict()

    def get_campaign(self, user_id, campaign_id: int) -> dict:
        with self.session() as session:
            campaign = get_campaign(session, campaign_id)
            require_viewer(self.capability(session, user_id, campaign_id))
            return campaign.to_dict()

    def list_members(self, user_id, campaign_id: int) -> list[dict]:
        with self.session() as session:
            campaign = get_campaign(session, campaign_id)
            require_viewer(self.capability(session, user_id, campaign_id))

            rows = session.query(CampaignMemberRecord, UserRecord).join(
                UserRecord, CampaignMemberRecord.user_id == UserRecord.id
            ).filter(
                CampaignMemberRecord.campaign_id == campaign_id
            ).order_by(UserRecord.username).all()

            members = [
                dict(member.to_dict(campaign.gm_user_id), username=user.username, system_role=user.system_role)
                for member, user in rows
            ]
            # GM first
            members.sort(key=lambda m: not m["is_gm"])
            return members

    def _require_manager(self, session, user_id, campaign_id: int, action: str):
        capability = self.capability(session, user_id, campaign_id)
        if not (capability.is_gm or capability.is_admin):
            raise ForbiddenError(f"Only the GM or an admin can {action}")

    def add_member(self, user_id, campaign_id: int, member_user_id: int) -> dict:
        """Add a user to a campaign. Adding an existing member returns that membership."""
        with self.session() as session:
            campaign = get_campaign(session, campaign_id)
            self._require_manager(session, user_id, campaign_id, "add members")
            if session.get(UserRecord, member_user_id) is None:
                raise NotFoundError("User not found")

            member = session.query(CampaignMemberRecord).filter_by(
                campaign_id=campaign_id, user_id=member_user_id
            ).first()
            if member is None:
                member = CampaignMemberRecord(campaign_id=campaign_id, user_id=member_user_id)
                session.add(member)
                session.commit()
                logger.info("User %d joined campaign %d", member_user_id, campaign_id)
            return member.to_dict(campaign.gm_user_id)

    def remove_member(self, user_id, campaign_id: int, member_user_id: int):
        with self.session() as session:
            campaign = get_campaign(session, campaign_id)
            self._require_manager(session, user_id, campaign_id, "remove members")
            if member_user_id == campaign.gm_user_id:
                raise ForbiddenError("Cannot remove the GM from their campaign")

            removed = session.query(CampaignMemberRecord).filter_by(
                campaign_id=campaign_id, user_id=member_user_id
            ).delete()
            if not removed:
                raise NotFoundError("Member not found")
            session.commit()
            logger.info("User %d removed from campaign %d", member_user_id, campaign_id)

    def create_character(
        self,
        user_id,
        campaign_id: int,
        name: str,
        skill_name: Optional[str] = None,
        skill_modifier: int = 0,
        weakness_name: Optional[str] = None,
        weakness_modifier: int = 0,
        max_daily_dice: int = 3,
        assigned_user_id: Optional[int] = None,
    ) -> dict:
        """
        Create a character in a campaign.

        The GM may assign the character to any user or leave it unassigned;
        members always create characters for themselves.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Character name is required")
        if isinstance(max_daily_dice, bool) or not isinstance(max_daily_dice, int) or max_daily_dice < 1:
            raise ValidationError("max_daily_dice must be a positive integer")

        with self.session() as session:
            get_campaign(session, campaign_id)
            capability = self.capability(session, user_id, campaign_id)
            if capability.is_gm or capability.is_admin:
                owner_id = assigned_user_id
            elif capability.is_member:
                owner_id = user_id
            else:
                raise ForbiddenError("Not a member of this campaign")

            character = CharacterRecord(
                campaign_id=campaign_id,
                user_id=owner_id,
                name=name.strip(),
                skill_name=skill_name,
                skill_modifier=skill_modifier,
                weakness_name=weakness_name,
                weakness_modifier=weakness_modifier,
                max_daily_dice=max_daily_dice,
            )
            session.add(character)
            session.commit()
            return character.to_dict()

    def list_characters(self, user_id, campaign_id: int) -> list[dict]:
        with self.session() as session:
            get_campaign(session, campaign_id)
            require_viewer(self.capability(session, user_id, campaign_id))
            characters = session.query(CharacterRecord).filter_by(
                campaign_id=campaign_id
            ).order_by(CharacterRecord.name).all()
            return [c.to_dict() for c in characters]

    def list_campaigns(self, user_id) -> list[dict]:
        """Campaigns the caller belongs to, newest first. Admins see every campaign."""
        with self.session() as session:
            user = session.get(UserRecord, user_id) if user_id is not None else None
            if user is None:
                raise ForbiddenError("Unknown user")

            query = session.query(CampaignRecord)
            if user.system_role != SystemRole.ADMIN.value:
                query = query.join(
                    CampaignMemberRecord, CampaignMemberRecord.campaign_id == CampaignRecord.id
                ).filter(CampaignMemberRecord.user_id == user_id)
            campaigns = query.order_by(CampaignRecord.created_at.desc(), CampaignRecord.id.desc()).all()
            return [c.to_dict() for c in campaigns]

    def get_character(self, user_id, character_id: int) -> dict:
        with self.session() as session:
            character = get_character(session, character_id)
            require_viewer(self.capability(session, user_id, character.campaign_id))
            return character.to_dict()

    def update_character(self, user_id, character_id: int, **changes) -> dict:
        """
        Edit a character's name, skill and weakness.

        The daily dice allowance is fixed at creation.
        """
        unknown = set(changes) - EDITABLE_CHARACTER_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")
        if "name" in changes and (not isinstance(changes["name"], str) or not changes["name"].strip()):
            raise ValidationError("Character name is required")
        for field in ("skill_modifier", "weakness_modifier"):
            if field in changes and (isinstance(changes[field], bool) or not isinstance(changes[field], int)):
                raise ValidationError(f"{field} must be an integer")

        with self.session() as session:
            character = get_character(session, character_id)
            capability = self.capability(session, user_id, character.campaign_id)
            if not capability.can_act_for(character, user_id):
                raise ForbiddenError("You don't have permission to update this character")

            for field, value in changes.items():
                setattr(character, field, value.strip() if field == "name" else value)
            session.commit()
            logger.info("Character %d updated by user %s", character_id, user_id)
            return character.to_dict()
