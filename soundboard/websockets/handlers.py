"""
Socket.IO event handlers for Soundboard Work.
Relays table changes to every tab and drives the per-tab player sessions.
"""

import logging
from flask import current_app, session, request
from flask_socketio import SocketIO, emit, join_room, leave_room
from soundboard.errors import PayloadError, SoundboardError
from soundboard.playback import EmbeddedVideoPlayer, StreamingPlayer
from soundboard.store.queue_store import HISTORY_TABLE, QUEUE_TABLE
from soundboard.store.reactions import REACTIONS_TABLE

logger = logging.getLogger(__name__)

# SocketIO instance will be created by the app factory
socketio = None

RELAYED_TABLES = (QUEUE_TABLE, HISTORY_TABLE, REACTIONS_TABLE)


def init_socketio(app):
    """Initialize Socket.IO with the Flask app"""
    global socketio
    socketio = SocketIO(
        app,
        cors_allowed_origins="*",
        ping_timeout=120,
        ping_interval=30,
        manage_session=False,  # Let Flask handle sessions
        engineio_logger=False,
        logger=False,
        async_mode='threading'
    )

    register_handlers(socketio)
    relay_changes(app.feed, socketio)
    return socketio


def reaction_room(song_id):
    return f"reactions:{song_id}"


def relay_changes(feed, sio):
    """Forward every committed change to the connected tabs"""
    def forward(payload):
        sio.emit("postgres_changes", payload)
        if payload["table"] == REACTIONS_TABLE:
            row = payload.get("new") or payload.get("old") or {}
            if row.get("song_id"):
                sio.emit("reaction_changes", payload, to=reaction_room(row["song_id"]))

    return [feed.subscribe(table, forward) for table in RELAYED_TABLES]


def _number(data, key):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PayloadError(f"'{key}' must be a number", details={"field": key})
    return value


def _player_session(kind=None):
    player = current_app.player_sessions.get(request.sid)
    if player is None:
        raise PayloadError("No player attached")
    if kind is not None and not isinstance(player.adapter, kind):
        raise PayloadError(f"The attached player is not a {kind.kind} player")
    return player


def run_player_command(player, data):
    """Apply one transport command from the tab's controls"""
    action = data.get("action")
    coordinator, adapter = player.coordinator, player.adapter

    if action == "toggle":
        return coordinator.toggle_play_pause()
    if action == "skip":
        return coordinator.skip() is not None
    if action == "previous":
        return adapter.skip_to_previous()
    if action == "next":
        return adapter.skip_to_next()
    if action == "seek":
        return adapter.seek(_number(data, "position_ms"))
    if action == "volume":
        return adapter.set_volume(_number(data, "volume"))
    raise PayloadError(f"Unknown player command '{action}'", details={"action": action})


def register_handlers(sio):
    """Register all Socket.IO event handlers"""

    @sio.on("connect")
    def handle_connect(auth=None):
        """Handle client connection"""
        user_id = session.get("user_id")
        display_name = session.get("display_name")
        logger.info(f"[CONNECTION] {display_name or 'anonymous'} connected (sid: {request.sid})")
        emit("connected", {"user_id": user_id, "display_name": display_name})

    @sio.on("disconnect")
    def handle_disconnect(reason=None):
        """Handle client disconnection"""
        current_app.player_sessions.detach(request.sid)
        logger.info(f"[DISCONNECTION] sid {request.sid} left (reason: {reason})")

    @sio.on_error_default
    def default_error_handler(e):
        """Default error handler for all events"""
        logger.error(f"[SOCKET ERROR] {request.event}: {e}")
        emit("error", {"message": "Something went wrong"})
        return False

    @sio.on("subscribe_reactions")
    def handle_subscribe_reactions(data):
        """Join a song's reaction room and get its current counts"""
        song_id = (data or {}).get("song_id")
        if not song_id:
            emit("error", {"message": "Missing song id"})
            return
        join_room(reaction_room(song_id))
        store = current_app.reaction_store
        emit("reactions", {
            "song_id": song_id,
            "counts": store.counts(song_id),
            "user_reaction": store.user_reaction(song_id, session.get("user_id")),
        })

    @sio.on("unsubscribe_reactions")
    def handle_unsubscribe_reactions(data):
        song_id = (data or {}).get("song_id")
        if song_id:
            leave_room(reaction_room(song_id))

    @sio.on("player_attach")
    def handle_player_attach(data):
        """Start playing the shared queue in this tab"""
        user_id = session.get("user_id")
        if not user_id:
            emit("error", {"message": "Pick a name before starting the player"})
            return
        backend = (data or {}).get("backend", "spotify")
        try:
            player = current_app.player_sessions.attach(request.sid, backend, user_id)
        except ValueError as e:
            emit("error", {"message": str(e)})
            return
        emit("player_status", player.coordinator.status())

    @sio.on("player_detach")
    def handle_player_detach(data=None):
        current_app.player_sessions.detach(request.sid)
        emit("player_status", {"state": "detached"})

    @sio.on("player_command")
    def handle_player_command(data):
        try:
            player = _player_session()
            ok = run_player_command(player, data or {})
            emit("player_status", dict(player.coordinator.status(), ok=bool(ok)))
        except SoundboardError as e:
            emit("error", {"message": e.message})

    @sio.on("spotify_device")
    def handle_spotify_device(data):
        """The Web Playback SDK reported ready (device_id) or not ready (null)"""
        try:
            player = _player_session(StreamingPlayer)
        except SoundboardError as e:
            emit("error", {"message": e.message})
            return

        device_id = (data or {}).get("device_id")
        if device_id:
            if not player.adapter.is_connected:
                player.adapter.connect()
            player.adapter.register_device(device_id)
            player.coordinator.sync_now()
        else:
            player.adapter.unregister_device()
        emit("player_status", player.coordinator.status())

    @sio.on("video_api_ready")
    def handle_video_api_ready(data=None):
        try:
            player = _player_session(EmbeddedVideoPlayer)
        except SoundboardError as e:
            emit("error", {"message": e.message})
            return
        player.adapter.mark_api_ready()
        player.coordinator.sync_now()

    @sio.on("video_state")
    def handle_video_state(data):
        try:
            player = _player_session(EmbeddedVideoPlayer)
            data = data or {}
            player.adapter.handle_state_change(int(_number(data, "instance_id")), int(_number(data, "state")))
        except SoundboardError as e:
            logger.warning(f"Rejected video state report: {e}")

    @sio.on("video_progress")
    def handle_video_progress(data):
        try:
            player = _player_session(EmbeddedVideoPlayer)
            data = data or {}
            player.adapter.handle_progress(
                int(_number(data, "instance_id")),
                _number(data, "current_time"),
                _number(data, "duration"),
            )
        except SoundboardError as e:
            logger.warning(f"Rejected video progress report: {e}")

    @sio.on("video_error")
    def handle_video_error(data):
        try:
            player = _player_session(EmbeddedVideoPlayer)
            data = data or {}
            player.adapter.handle_error(int(_number(data, "instance_id")), data.get("code"))
        except SoundboardError as e:
            logger.warning(f"Rejected video error report: {e}")
