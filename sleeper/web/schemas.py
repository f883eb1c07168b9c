"""Request bodies accepted by the HTTP API."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class RequestBody(BaseModel):
    # JSON true is not a number here; 1 and true stay distinct
    model_config = ConfigDict(strict=True)


class ManualPoolRequest(RequestBody):
    dice_results: List[int]


class EditDieRequest(RequestBody):
    die_result: int


class CreateRollRequest(RequestBody):
    character_id: int
    pool_dice_id: int
    # Omitted or null: the server rolls the d20
    d20_roll: Optional[int] = None
    challenge_id: Optional[int] = None
    skill_applied: bool = False
    other_modifiers: int = 0
    action_type: Optional[str] = None
    notes: Optional[str] = None


class CreateChallengeRequest(RequestBody):
    campaign_id: int
    description: str
    difficulty_modifier: int = 0
    is_group_challenge: bool = False


class CreateCampaignRequest(RequestBody):
    name: str


class AddMemberRequest(RequestBody):
    user_id: int


class CreateCharacterRequest(RequestBody):
    name: str
    skill_name: Optional[str] = None
    skill_modifier: int = 0
    weakness_name: Optional[str] = None
    weakness_modifier: int = 0
    max_daily_dice: int = 3
    assigned_user_id: Optional[int] = None


class UpdateCharacterRequest(RequestBody):
    # Only fields present in the body are changed
    name: Optional[str] = None
    skill_name: Optional[str] = None
    skill_modifier: Optional[int] = None
    weakness_name: Optional[str] = None
    weakness_modifier: Optional[int] = None
