"""
Soundboard Work server.
Wires the shared queue store, the change feed, the Spotify/YouTube
services, the HTTP blueprints and Socket.IO together.
"""

import logging
import os
from flask import Flask, jsonify
from soundboard.api import TokenBroker, make_oauth
from soundboard.models import build_engine, init_db, make_session_factory
from soundboard.playback import PlayerSessionRegistry, QueueAdvancer
from soundboard.routes.catalog import catalog_bp
from soundboard.routes.history import history_bp
from soundboard.routes.profile import profile_bp
from soundboard.routes.queue import queue_bp
from soundboard.routes.reactions import reactions_bp
from soundboard.routes.spotify_auth import spotify_auth_bp
from soundboard.store import ChangeFeed, HistoryStore, ProfileStore, QueueStore, ReactionStore
from soundboard.utils import config
from soundboard.websockets.handlers import init_socketio

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """Build the Flask app; overrides replace environment settings (tests use this)"""
    app = Flask(__name__)
    app.cache = config.init_app(app, overrides)

    # Database
    engine = build_engine(app.config["DATABASE_URL"])
    init_db(engine)
    app.session_factory = make_session_factory(engine)

    # Stores and the realtime feed
    app.feed = ChangeFeed()
    app.queue_store = QueueStore(app.session_factory, app.feed)
    app.history_store = HistoryStore(app.session_factory, app.feed)
    app.reaction_store = ReactionStore(app.session_factory, app.feed)
    app.profile_store = ProfileStore(app.session_factory)

    # Spotify
    oauth = None
    if app.config["SPOTIFY_CLIENT_ID"] and app.config["SPOTIFY_CLIENT_SECRET"]:
        oauth = make_oauth(
            app.config["SPOTIFY_CLIENT_ID"],
            app.config["SPOTIFY_CLIENT_SECRET"],
            app.config["SPOTIFY_REDIRECT_URI"],
        )
    else:
        logger.warning("Spotify credentials missing, Spotify playback is disabled")
    app.token_broker = TokenBroker(app.session_factory, oauth=oauth, skew=app.config["TOKEN_REFRESH_SKEW"])

    # Playback
    def broadcast_notice(level, message):
        app.socketio.emit("notice", {"level": level, "message": message})

    def emit(event, data, to=None):
        app.socketio.emit(event, data, to=to)

    app.queue_advancer = QueueAdvancer(app.queue_store, notify=broadcast_notice)
    app.player_sessions = PlayerSessionRegistry(
        app.queue_store,
        app.queue_advancer,
        token_broker=app.token_broker if app.token_broker.configured else None,
        emit=emit,
        settings=app.config,
    )
    app.socketio = init_socketio(app)

    # Routes
    app.register_blueprint(profile_bp, url_prefix="/profile")
    app.register_blueprint(queue_bp, url_prefix="/queue")
    app.register_blueprint(history_bp, url_prefix="/history")
    app.register_blueprint(reactions_bp, url_prefix="/reactions")
    app.register_blueprint(catalog_bp, url_prefix="/spotify")
    app.register_blueprint(spotify_auth_bp, url_prefix="/spotify-auth")

    @app.route("/health")
    def health():
        return jsonify(status="ok", players=len(app.player_sessions))

    logger.info("Soundboard Work app created")
    return app


if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", 8000))
    app.socketio.run(app, host="0.0.0.0", port=port, allow_unsafe_werkzeug=True)
