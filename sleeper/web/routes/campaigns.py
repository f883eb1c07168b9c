"""Campaign routes: day clock, reconnect snapshot, members and characters."""

from flask import Blueprint, jsonify

from ..identity import current_engine, current_user_id, parse_body
from ..schemas import AddMemberRequest, CreateCampaignRequest, CreateCharacterRequest

campaigns_bp = Blueprint("campaigns", __name__)


# =============================================================================
# Campaign
# =============================================================================

@campaigns_bp.route("", methods=["GET"])
def list_campaigns():
    return jsonify(current_engine().roster.list_campaigns(current_user_id()))


@campaigns_bp.route("", methods=["POST"])
def create_campaign():
    body = parse_body(CreateCampaignRequest)
    return jsonify(current_engine().roster.create_campaign(current_user_id(), body.name)), 201


@campaigns_bp.route("/<int:campaign_id>", methods=["GET"])
def get_campaign(campaign_id: int):
    return jsonify(current_engine().roster.get_campaign(current_user_id(), campaign_id))


@campaigns_bp.route("/<int:campaign_id>/increment-day", methods=["POST"])
def increment_day(campaign_id: int):
    """Advance the campaign day; every dice pool becomes stale."""
    return jsonify(current_engine().clock.increment_day(current_user_id(), campaign_id))


@campaigns_bp.route("/<int:campaign_id>/state", methods=["GET"])
def campaign_state(campaign_id: int):
    """Everything a client needs after (re)connecting its socket."""
    return jsonify(current_engine().campaign_state(current_user_id(), campaign_id))


# =============================================================================
# Members
# =============================================================================

@campaigns_bp.route("/<int:campaign_id>/members", methods=["GET"])
def list_members(campaign_id: int):
    return jsonify(current_engine().roster.list_members(current_user_id(), campaign_id))


@campaigns_bp.route("/<int:campaign_id>/members", methods=["POST"])
def add_member(campaign_id: int):
    body = parse_body(AddMemberRequest)
    member = current_engine().roster.add_member(current_user_id(), campaign_id, body.user_id)
    return jsonify(member), 201


@campaigns_bp.route("/<int:campaign_id>/members/<int:user_id>", methods=["DELETE"])
def remove_member(campaign_id: int, user_id: int):
    current_engine().roster.remove_member(current_user_id(), campaign_id, user_id)
    return jsonify({"message": "Member removed successfully"})


# =============================================================================
# Characters
# =============================================================================

@campaigns_bp.route("/<int:campaign_id>/characters", methods=["POST"])
def create_character(campaign_id: int):
    body = parse_body(CreateCharacterRequest)
    character = current_engine().roster.create_character(
        current_user_id(),
        campaign_id,
        body.name,
        skill_name=body.skill_name,
        skill_modifier=body.skill_modifier,
        weakness_name=body.weakness_name,
        weakness_modifier=body.weakness_modifier,
        max_daily_dice=body.max_daily_dice,
        assigned_user_id=body.assigned_user_id,
    )
    return jsonify(character), 201


@campaigns_bp.route("/<int:campaign_id>/characters", methods=["GET"])
def list_characters(campaign_id: int):
    return jsonify(current_engine().roster.list_characters(current_user_id(), campaign_id))
