"""Flask application factory."""

import logging
import os

from flask import Flask, jsonify
from flask_socketio import SocketIO

from sleeper.database import init_db
from sleeper.errors import SleeperError
from sleeper.mechanics import FateEngine

logger = logging.getLogger(__name__)

socketio = SocketIO(async_mode="threading", cors_allowed_origins=os.environ.get("SLEEPER_CORS_ORIGINS", "*"))


def create_app(session_factory=None, dice_source=None, authorizer=None, hub=None):
    """
    Create and configure the Flask application.

    Args:
        session_factory: Session factory to use instead of the default database
        dice_source: Dice source for server-side rolls (tests pass scripted dice)
        authorizer: Capability check to use instead of the database-backed one
        hub: EventHub to publish through
    """
    logging.basicConfig(level=os.environ.get("SLEEPER_LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SLEEPER_SECRET_KEY", "sleeper-dev-key")

    if session_factory is None:
        init_db()

    app.extensions["sleeper"] = FateEngine(
        session_factory=session_factory,
        hub=hub,
        authorizer=authorizer,
        dice=dice_source,
    )

    @app.errorhandler(SleeperError)
    def handle_sleeper_error(error):
        return jsonify(error.to_dict()), error.status_code

    # Register blueprints
    from .routes.dice import dice_bp
    from .routes.challenges import challenges_bp
    from .routes.campaigns import campaigns_bp
    from .routes.characters import characters_bp

    app.register_blueprint(dice_bp, url_prefix="/api")
    app.register_blueprint(challenges_bp, url_prefix="/api")
    app.register_blueprint(campaigns_bp, url_prefix="/api/campaigns")
    app.register_blueprint(characters_bp, url_prefix="/api/characters")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # Socket handlers register themselves on import
    from . import sockets  # noqa: F401
    socketio.init_app(app)

    return app
