"""Dice pool and roll routes."""

from flask import Blueprint, jsonify, request

from sleeper.errors import NotFoundError
from sleeper.models.enums import PoolMode
from ..identity import current_engine, current_user_id, parse_body
from ..schemas import CreateRollRequest, EditDieRequest, ManualPoolRequest

dice_bp = Blueprint("dice", __name__)


# =============================================================================
# Dice Pools
# =============================================================================

@dice_bp.route("/characters/<int:character_id>/pool", methods=["POST"])
def roll_new_pool(character_id: int):
    """Roll today's pool with server-side dice."""
    pool = current_engine().pools.roll_new_pool(current_user_id(), character_id, PoolMode.AUTO)
    return jsonify(pool), 201


@dice_bp.route("/characters/<int:character_id>/pool/manual", methods=["POST"])
def manual_roll_pool(character_id: int):
    """Create today's pool from physically rolled dice."""
    body = parse_body(ManualPoolRequest)
    pool = current_engine().pools.roll_new_pool(
        current_user_id(), character_id, PoolMode.MANUAL, body.dice_results
    )
    return jsonify(pool), 201


@dice_bp.route("/characters/<int:character_id>/pool", methods=["GET"])
def get_current_pool(character_id: int):
    pool = current_engine().pools.get_current_pool(current_user_id(), character_id)
    if pool is None:
        raise NotFoundError("No dice pool found")
    return jsonify(pool)


@dice_bp.route("/dice/<int:die_id>", methods=["PATCH"])
def edit_die(die_id: int):
    """GM correction of a die value."""
    body = parse_body(EditDieRequest)
    pool = current_engine().pools.edit_die(current_user_id(), die_id, body.die_result)
    return jsonify(pool)


# =============================================================================
# Rolls
# =============================================================================

@dice_bp.route("/rolls", methods=["POST"])
def record_roll():
    """Spend a die on a d20 roll."""
    body = parse_body(CreateRollRequest)
    roll = current_engine().rolls.record_roll(
        current_user_id(),
        body.character_id,
        body.pool_dice_id,
        d20=body.d20_roll,
        challenge_id=body.challenge_id,
        skill_applied=body.skill_applied,
        other_modifiers=body.other_modifiers,
        action_type=body.action_type,
        notes=body.notes,
    )
    return jsonify(roll), 201


@dice_bp.route("/rolls", methods=["GET"])
def roll_history():
    """Roll history for ?character_id= or ?campaign_id=."""
    rolls = current_engine().rolls.roll_history(
        current_user_id(),
        character_id=request.args.get("character_id", type=int),
        campaign_id=request.args.get("campaign_id", type=int),
    )
    return jsonify(rolls)
