"""Challenge routes."""

from flask import Blueprint, jsonify

from ..identity import current_engine, current_user_id, parse_body
from ..schemas import CreateChallengeRequest

challenges_bp = Blueprint("challenges", __name__)


@challenges_bp.route("/challenges", methods=["POST"])
def create_challenge():
    body = parse_body(CreateChallengeRequest)
    challenge = current_engine().challenges.create(
        current_user_id(),
        body.campaign_id,
        body.description,
        body.difficulty_modifier,
        body.is_group_challenge,
    )
    return jsonify(challenge), 201


@challenges_bp.route("/campaigns/<int:campaign_id>/challenges", methods=["GET"])
def list_challenges(campaign_id: int):
    """Active challenges with attempt statistics."""
    return jsonify(current_engine().challenges.list_active_with_stats(current_user_id(), campaign_id))


@challenges_bp.route("/challenges/<int:challenge_id>/complete", methods=["POST"])
def complete_challenge(challenge_id: int):
    return jsonify(current_engine().challenges.complete(current_user_id(), challenge_id))
