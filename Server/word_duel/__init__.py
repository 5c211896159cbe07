"""
Word Duel Server Application Package

Two-player word guessing duels against another player or a computer opponent,
served over a Flask HTTP API with optional Socket.IO change notifications.
"""

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from .config import Config


def create_app(config_class=Config, **service_overrides):
    """
    Application factory pattern for creating Flask app instances.

    Args:
        config_class: Configuration class to use
        **service_overrides: Replacement collaborators (store, dictionary,
            clock, rng), mainly for tests

    Returns:
        Flask application instance and its SocketIO wrapper
    """
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    CORS(app)
    socketio = SocketIO(app, cors_allowed_origins="*", logger=False, engineio_logger=False)

    # Initialize services; AI turn timers run as Socket.IO background tasks
    from .services import initialize_services
    services = initialize_services(
        app.config, socketio.start_background_task, socketio.sleep, **service_overrides
    )

    # Register blueprints
    from .controllers.match_controller import match_bp
    from .controllers.matchmaking_controller import matchmaking_bp
    from .controllers.player_controller import player_bp

    app.register_blueprint(match_bp, url_prefix='/api')
    app.register_blueprint(matchmaking_bp, url_prefix='/api')
    app.register_blueprint(player_bp, url_prefix='/api')

    # Errors raised before an endpoint's own handling (e.g. missing fields)
    from .controllers.responses import error_response
    from .utils.errors import WordDuelError

    @app.errorhandler(WordDuelError)
    def handle_word_duel_error(error):
        return error_response(request_action(), error)

    # Register WebSocket handlers and push match changes to watchers
    from .websocket.handlers import register_websocket_handlers, broadcast_match_update
    register_websocket_handlers(socketio)
    services.match_service.add_listener(lambda match: broadcast_match_update(socketio, match))

    # Store socketio instance for use in other modules
    app.socketio = socketio
    app.services = services

    return app, socketio


def request_action() -> str:
    from flask import request
    return (request.endpoint or 'unknown').split('.')[-1]
