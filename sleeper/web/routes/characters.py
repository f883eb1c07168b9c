"""Character routes."""

from flask import Blueprint, jsonify

from ..identity import current_engine, current_user_id, parse_body
from ..schemas import UpdateCharacterRequest

characters_bp = Blueprint("characters", __name__)


@characters_bp.route("/<int:character_id>", methods=["GET"])
def get_character(character_id: int):
    return jsonify(current_engine().roster.get_character(current_user_id(), character_id))


@characters_bp.route("/<int:character_id>", methods=["PUT"])
def update_character(character_id: int):
    body = parse_body(UpdateCharacterRequest)
    character = current_engine().roster.update_character(
        current_user_id(), character_id, **body.model_dump(exclude_unset=True)
    )
    return jsonify(character)
