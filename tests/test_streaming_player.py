"""
Tests for the Spotify streaming player adapter (spotipy is faked)
"""

import pytest
import requests
from spotipy.exceptions import SpotifyException
from soundboard.errors import SpotifyNotConnected
from soundboard.playback import StreamingPlayer
from soundboard.playback.streaming import rejects_request

URI_A = "spotify:track:idA"
URI_B = "spotify:track:idB"


class FakeSpotify:
    """
    Records Web API calls. Tokens listed in fail_tokens get a 401, uris in
    reject_uris get a 400, and every call fails to connect while offline.
    """

    def __init__(self, token, harness):
        self.token = token
        self.harness = harness
        self.playback = harness.playback
        self.calls = []

    def _call(self, name, *args, **kwargs):
        if self.harness.offline:
            raise requests.exceptions.ConnectionError("api.spotify.com unreachable")
        if self.token in self.harness.fail_tokens:
            raise SpotifyException(401, -1, "The access token expired")
        if set(kwargs.get("uris") or ()) & self.harness.reject_uris:
            raise SpotifyException(400, -1, "Invalid track uri")
        self.calls.append((name, args, kwargs))

    def start_playback(self, device_id=None, uris=None):
        self._call("start_playback", device_id=device_id, uris=uris)

    def pause_playback(self, device_id=None):
        self._call("pause_playback", device_id=device_id)

    def seek_track(self, position_ms, device_id=None):
        self._call("seek_track", position_ms, device_id=device_id)

    def volume(self, volume_percent, device_id=None):
        self._call("volume", volume_percent, device_id=device_id)

    def previous_track(self, device_id=None):
        self._call("previous_track", device_id=device_id)

    def next_track(self, device_id=None):
        self._call("next_track", device_id=device_id)

    def current_playback(self):
        return self.playback.get("state")


class Harness:
    def __init__(self, tokens=("tok1",)):
        self.tokens = list(tokens)
        self.fail_tokens = set()
        self.reject_uris = set()
        self.offline = False
        self.playback = {}
        self.clients = []
        self.notices = []
        self.events = []

    def factory(self, token):
        client = FakeSpotify(token, self)
        self.clients.append(client)
        return client

    def provide(self):
        if not self.tokens:
            raise SpotifyNotConnected()
        return self.tokens[0]

    def refresh(self):
        self.tokens.pop(0)
        return self.provide()

    def player(self, ready=True):
        player = StreamingPlayer(
            token_provider=self.provide,
            token_refresher=self.refresh,
            notify=lambda level, message: self.notices.append((level, message)),
            client_factory=self.factory,
            poll=False,
        )
        for event in ("started", "ended", "error", "progress"):
            player.on(event, lambda *args, event=event: self.events.append((event,) + args))
        player.connect()
        if ready:
            player.register_device("device-1")
        return player

    def set_playback(self, uri, progress_ms, duration_ms=200000, is_playing=True):
        self.playback["state"] = {
            "is_playing": is_playing,
            "progress_ms": progress_ms,
            "item": {"uri": uri, "duration_ms": duration_ms},
        }


@pytest.fixture
def harness():
    return Harness(tokens=("tok1", "tok2"))


class TestConnection:
    def test_connect_without_spotify_session(self):
        harness = Harness(tokens=())
        player = harness.player(ready=False)
        assert player.is_connected is False
        assert player.play(URI_A) is False

    def test_play_before_device_is_ready(self, harness):
        player = harness.player(ready=False)
        assert player.is_connected is True
        assert player.play(URI_A) is False
        assert harness.clients[-1].calls == []
        assert harness.notices[-1] == ("warning", "Player is not ready yet")


class TestPlay:
    """Play is idempotent per loaded track"""

    def test_play_targets_registered_device(self, harness):
        player = harness.player()
        assert player.play(URI_A) is True
        assert harness.clients[-1].calls == [
            ("start_playback", (), {"device_id": "device-1", "uris": [URI_A]}),
        ]

    def test_repeated_play_loads_once(self, harness):
        player = harness.player()
        player.play(URI_A)
        player.play(URI_A)
        assert len(harness.clients[-1].calls) == 1

    def test_new_identifier_loads_again(self, harness):
        player = harness.player()
        player.play(URI_A)
        player.play(URI_B)
        assert [call[2]["uris"] for call in harness.clients[-1].calls] == [[URI_A], [URI_B]]


class TestReconnect:
    """One reconnect with a fresh token, then give up"""

    def test_reconnect_then_retry(self, harness):
        player = harness.player()
        harness.fail_tokens.add("tok1")

        assert player.play(URI_A) is True
        assert [client.token for client in harness.clients] == ["tok1", "tok2"]
        assert harness.clients[-1].calls[0][0] == "start_playback"

    def test_persistent_auth_failure_is_not_a_track_error(self, harness):
        player = harness.player()
        harness.fail_tokens.update({"tok1", "tok2"})

        assert player.play(URI_A) is False
        assert not [event for event in harness.events if event[0] == "error"]
        assert ("error", "Spotify play failed") in harness.notices
        assert player.loaded_identifier is None

    def test_outage_is_not_a_track_error(self, harness):
        player = harness.player()
        harness.offline = True

        assert player.play(URI_A) is False
        assert not [event for event in harness.events if event[0] == "error"]
        assert ("error", "Spotify play failed") in harness.notices
        assert player.rejection is None

    def test_refused_track_reports_error_without_reconnect(self, harness):
        player = harness.player()
        harness.reject_uris.add(URI_A)

        assert player.play(URI_A) is False
        assert ("error", URI_A, f"Could not play {URI_A}") in harness.events
        assert [client.token for client in harness.clients] == ["tok1"]
        assert player.loaded_identifier is None


class TestRejection:
    def test_classification(self):
        assert rejects_request(SpotifyException(400, -1, "Invalid track uri"))
        assert rejects_request(SpotifyException(404, -1, "Non existing id"))
        assert not rejects_request(SpotifyException(404, -1, "Device not found"))
        assert not rejects_request(SpotifyException(401, -1, "The access token expired"))
        assert not rejects_request(SpotifyException(429, -1, "Too many requests"))
        assert not rejects_request(SpotifyException(503, -1, "Service unavailable"))
        assert not rejects_request(requests.exceptions.ConnectionError("unreachable"))


class TestPolling:
    """End of track from polled playback state"""

    def test_started_fires_once(self, harness):
        player = harness.player()
        player.play(URI_A)
        harness.set_playback(URI_A, 1000)
        player.sample_playback()
        harness.set_playback(URI_A, 1500)
        player.sample_playback()
        assert harness.events.count(("started", URI_A)) == 1
        assert player.position_ms == 1500

    def test_every_sample_reports_progress(self, harness):
        player = harness.player()
        player.play(URI_A)
        harness.set_playback(URI_A, 1000)
        player.sample_playback()
        harness.set_playback(URI_A, 1500)
        player.sample_playback()

        progress = [event for event in harness.events if event[0] == "progress"]
        assert progress == [("progress", URI_A, 1000, 200000), ("progress", URI_A, 1500, 200000)]

    def test_end_detected_after_stalled_samples(self, harness):
        player = harness.player()
        player.play(URI_A)
        harness.set_playback(URI_A, 199500, is_playing=False)

        results = [player.sample_playback() for _ in range(5)]

        assert results == [False, False, True, False, False]
        assert harness.events.count(("ended", URI_A)) == 1

    def test_other_track_is_ignored(self, harness):
        player = harness.player()
        player.play(URI_A)
        harness.set_playback(URI_B, 199500, is_playing=False)
        assert not any(player.sample_playback() for _ in range(5))
        assert player.position_ms == 0


class TestControls:
    def test_pause_resume_seek_volume(self, harness):
        player = harness.player()
        player.play(URI_A)
        assert player.pause() is True and player.is_paused
        assert player.resume() is True and not player.is_paused
        assert player.seek(42000) is True
        assert player.set_volume(0.5) is True

        names = [call[0] for call in harness.clients[-1].calls]
        assert names == ["start_playback", "pause_playback", "start_playback", "seek_track", "volume"]
        assert harness.clients[-1].calls[-1][1] == (50,)

    def test_volume_is_clamped(self, harness):
        player = harness.player()
        player.set_volume(3)
        assert harness.clients[-1].calls[-1][1] == (100,)

    def test_unregister_device(self, harness):
        player = harness.player()
        player.unregister_device()
        assert player.is_ready is False
        assert player.pause() is False
