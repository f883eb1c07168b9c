"""Socket.IO handlers: one room per campaign, fed by the event hub."""

import logging

from flask import request

from .app import socketio
from .identity import current_engine, current_user_id

logger = logging.getLogger(__name__)

# sid -> hub Connection
_connections = {}


@socketio.on("connect")
def on_connect(auth=None):
    """Subscribe a campaign member. Returning False refuses the socket."""
    campaign_id = request.args.get("campaign_id", type=int)
    user_id = current_user_id() or request.args.get("user_id", type=int)
    if campaign_id is None or user_id is None:
        return False

    engine = current_engine()
    session = engine.session_factory()
    try:
        capability = engine.authorizer.can_act_as(session, user_id, campaign_id)
    finally:
        session.close()
    if not capability.can_view:
        logger.info("Refused socket for user %s on campaign %d", user_id, campaign_id)
        return False

    sid = request.sid

    def send(frame: str):
        socketio.emit("campaign_event", frame, to=sid)

    _connections[sid] = engine.hub.register(campaign_id, send, user_id=user_id)


@socketio.on("disconnect")
def on_disconnect(*args):
    connection = _connections.pop(request.sid, None)
    if connection is not None:
        current_engine().hub.unregister(connection)
