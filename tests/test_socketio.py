"""
Socket.IO tests for Soundboard Work, using the Flask-SocketIO test client
"""

import pytest

TRACK = {
    "spotify_song_id": "4uLU6hMCjMI75M1A2tKUQC",
    "title": "Never Gonna Give You Up",
    "artist": "Rick Astley",
    "duration_ms": 213573,
}


def events(received, name):
    return [event["args"][0] for event in received if event["name"] == name]


@pytest.fixture
def sio(app, signed_in):
    client = app.socketio.test_client(app, flask_test_client=signed_in)
    yield client
    if client.is_connected():
        client.disconnect()


@pytest.fixture
def anonymous_sio(app, client):
    sio = app.socketio.test_client(app, flask_test_client=client)
    yield sio
    if sio.is_connected():
        sio.disconnect()


class TestConnection:
    def test_connect_reports_identity(self, sio):
        assert sio.is_connected()
        connected = events(sio.get_received(), "connected")
        assert connected[0]["display_name"] == "Alice"

    def test_disconnect_releases_player(self, app, sio):
        sio.emit("player_attach", {"backend": "youtube"})
        assert len(app.player_sessions) == 1
        sio.disconnect()
        assert len(app.player_sessions) == 0


class TestChangeRelay:
    """Table changes reach every tab"""

    def test_queue_insert_is_relayed(self, sio, signed_in):
        sio.get_received()
        signed_in.post('/queue', json=TRACK)

        changes = events(sio.get_received(), "postgres_changes")
        assert changes[0]["table"] == "queue_songs"
        assert changes[0]["eventType"] == "INSERT"
        assert changes[0]["new"]["title"] == TRACK["title"]

    def test_reaction_room(self, sio, signed_in):
        sio.emit("subscribe_reactions", {"song_id": "song1"})
        summary = events(sio.get_received(), "reactions")
        assert summary[0] == {"song_id": "song1", "counts": {}, "user_reaction": None}

        signed_in.post('/reactions/song1', json={"emoji": "🔥"})
        room_events = events(sio.get_received(), "reaction_changes")
        assert room_events[0]["new"]["emoji"] == "🔥"

        sio.emit("unsubscribe_reactions", {"song_id": "song1"})
        signed_in.post('/reactions/song1', json={"emoji": "🔥"})
        assert events(sio.get_received(), "reaction_changes") == []


class TestVideoPlayer:
    """The embedded player follows the queue through the tab's reports"""

    def test_plays_and_advances(self, app, sio, signed_in):
        first = signed_in.post('/queue', json=TRACK).get_json()["entry"]
        second = signed_in.post('/queue', json=dict(TRACK, spotify_song_id="other")).get_json()["entry"]
        app.queue_store.set_alt_source(first["id"], "vidA")
        app.queue_store.set_alt_source(second["id"], "vidB")

        sio.emit("player_attach", {"backend": "youtube"})
        sio.get_received()
        sio.emit("video_api_ready")

        commands = events(sio.get_received(), "video_player")
        assert commands == [{"action": "create", "video_id": "vidA", "autoplay": True, "instance_id": 1}]

        # A late report from an old player instance is ignored
        sio.emit("video_state", {"instance_id": 0, "state": 0})
        assert app.queue_store.get_playing().id == first["id"]

        sio.emit("video_state", {"instance_id": 1, "state": 0})
        assert app.queue_store.get_playing().id == second["id"]
        assert app.history_store.count() == 1

        commands = events(sio.get_received(), "video_player")
        assert commands[-1] == {"action": "create", "video_id": "vidB", "autoplay": True, "instance_id": 2}

    def test_skip_command(self, app, sio, signed_in):
        first = signed_in.post('/queue', json=TRACK).get_json()["entry"]
        app.queue_store.set_alt_source(first["id"], "vidA")
        sio.emit("player_attach", {"backend": "youtube"})
        sio.emit("video_api_ready")

        sio.emit("player_command", {"action": "skip"})
        assert app.queue_store.list_queue() == []

    def test_bad_report_is_rejected(self, app, sio):
        sio.emit("player_attach", {"backend": "youtube"})
        sio.emit("video_state", {"instance_id": "one", "state": 0})
        assert sio.is_connected()


class TestPlayerErrors:
    def test_attach_requires_profile(self, anonymous_sio):
        anonymous_sio.emit("player_attach", {"backend": "youtube"})
        errors = events(anonymous_sio.get_received(), "error")
        assert errors == [{"message": "Pick a name before starting the player"}]

    def test_unknown_backend(self, sio):
        sio.emit("player_attach", {"backend": "cassette"})
        assert events(sio.get_received(), "error") == [{"message": "Unknown player backend 'cassette'"}]

    def test_command_without_player(self, sio):
        sio.emit("player_command", {"action": "toggle"})
        assert events(sio.get_received(), "error") == [{"message": "No player attached"}]

    def test_unknown_command(self, sio):
        sio.emit("player_attach", {"backend": "youtube"})
        sio.get_received()
        sio.emit("player_command", {"action": "rewind"})
        assert events(sio.get_received(), "error") == [{"message": "Unknown player command 'rewind'"}]

    def test_spotify_without_account(self, app, sio):
        sio.emit("player_attach", {"backend": "spotify"})
        received = sio.get_received()
        notices = events(received, "notice")
        assert {"level": "info", "message": "Connect Spotify to play the queue here"} in notices
        status = events(received, "player_status")[-1]
        assert status["backend"] == "spotify"
        assert status["is_connected"] is False
        assert len(app.player_sessions) == 1

    def test_detach(self, app, sio):
        sio.emit("player_attach", {"backend": "youtube"})
        sio.emit("player_detach")
        assert len(app.player_sessions) == 0
