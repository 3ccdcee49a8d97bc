"""
HTTP route tests for Soundboard Work
"""

import json
from unittest.mock import MagicMock, patch

TRACK = {
    "spotify_song_id": "4uLU6hMCjMI75M1A2tKUQC",
    "title": "Never Gonna Give You Up",
    "artist": "Rick Astley",
    "duration_ms": 213573,
    "album_cover_url": "https://i.scdn.co/image/cover",
}


def add(client, **overrides):
    return client.post('/queue', json=dict(TRACK, **overrides))


class TestHealthEndpoint:
    """Test the health check endpoint"""

    def test_health_returns_200(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'ok'
        assert data['players'] == 0


class TestProfile:
    """Picking a name"""

    def test_no_profile_yet(self, client):
        assert client.get('/profile').status_code == 404

    def test_join_and_read_back(self, client):
        response = client.post('/profile', json={"display_name": "Alice"})
        assert response.status_code == 200
        user_id = response.get_json()["user_id"]

        profile = client.get('/profile').get_json()
        assert profile == {"user_id": user_id, "display_name": "Alice", "spotify_connected": False}

    def test_blank_name_rejected(self, client):
        assert client.post('/profile', json={"display_name": ""}).status_code == 400

    def test_sign_out(self, signed_in):
        assert signed_in.delete('/profile').status_code == 200
        assert signed_in.get('/profile').status_code == 404


class TestQueueRoutes:
    """Adding, listing, removing and reordering"""

    def test_add_requires_profile(self, client):
        assert add(client).status_code == 401

    def test_first_song_plays(self, signed_in):
        response = add(signed_in)
        assert response.status_code == 201
        entry = response.get_json()["entry"]
        assert entry["is_playing"] is True
        assert entry["position"] == 1
        assert entry["added_by_name"] == "Alice"

        queue = signed_in.get('/queue').get_json()
        assert queue["current"]["id"] == entry["id"]
        assert len(queue["queue"]) == 1

    def test_malformed_track_rejected(self, signed_in):
        assert add(signed_in, duration_ms="long").status_code == 400
        assert add(signed_in, title="").status_code == 400
        assert signed_in.post('/queue', data="not json").status_code == 400
        assert signed_in.get('/queue').get_json()["queue"] == []

    def test_only_adder_can_remove(self, app, signed_in):
        entry_id = add(signed_in).get_json()["entry"]["id"]

        other = app.test_client()
        other.post('/profile', json={"display_name": "Bob"})
        assert other.delete(f'/queue/{entry_id}').status_code == 403

        assert signed_in.delete(f'/queue/{entry_id}').status_code == 200
        assert signed_in.delete(f'/queue/{entry_id}').status_code == 404

    def test_reorder(self, signed_in):
        ids = [add(signed_in, spotify_song_id=f"t{n}").get_json()["entry"]["id"] for n in range(3)]
        response = signed_in.post('/queue/reorder', json={"dragged_id": ids[2], "target_id": ids[1]})
        assert response.get_json() == {"swapped": True}

        queue = signed_in.get('/queue').get_json()["queue"]
        assert [entry["id"] for entry in queue] == [ids[0], ids[2], ids[1]]

    def test_reorder_needs_both_ids(self, signed_in):
        assert signed_in.post('/queue/reorder', json={"dragged_id": "x"}).status_code == 400

    def test_next_and_history(self, signed_in):
        first = add(signed_in, spotify_song_id="t1").get_json()["entry"]
        second = add(signed_in, spotify_song_id="t2").get_json()["entry"]

        data = signed_in.post('/queue/next', json={"entry_id": first["id"]}).get_json()
        assert data["retired"]["id"] == first["id"]
        assert data["current"]["id"] == second["id"]

        # Someone else already moved past the first song
        stale = signed_in.post('/queue/next', json={"entry_id": first["id"]}).get_json()
        assert stale["retired"] is None
        assert stale["current"]["id"] == second["id"]

        history = signed_in.get('/history').get_json()["history"]
        assert [entry["spotify_song_id"] for entry in history] == ["t1"]

        board = signed_in.get('/history/leaderboard').get_json()
        assert board["most_added_user"] == {"name": "Alice", "count": 1}

    def test_start(self, app, signed_in):
        entry = add(signed_in).get_json()["entry"]
        app.queue_store.set_playing(entry["id"], False)

        assert signed_in.post('/queue/start').get_json()["current"]["id"] == entry["id"]
        assert signed_in.post('/queue/start').get_json()["current"] is None


class TestReactionRoutes:
    def test_toggle(self, signed_in):
        data = signed_in.post('/reactions/song1', json={"emoji": "🔥"}).get_json()
        assert data["counts"] == {"🔥": 1}
        assert data["user_reaction"] == "🔥"
        assert data["reaction"]["emoji"] == "🔥"

        data = signed_in.post('/reactions/song1', json={"emoji": "🔥"}).get_json()
        assert data["counts"] == {}
        assert data["reaction"] is None

    def test_anonymous_can_read(self, client):
        data = client.get('/reactions/song1').get_json()
        assert data["counts"] == {}
        assert data["user_reaction"] is None
        assert "👏" in data["available"]

    def test_unknown_emoji(self, signed_in):
        assert signed_in.post('/reactions/song1', json={"emoji": "x"}).status_code == 400


class TestSpotifyAuthRoutes:
    def test_token_when_not_connected(self, signed_in):
        response = signed_in.get('/spotify-auth/token')
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not connected to Spotify"}

    def test_authorize_url(self, signed_in):
        user_id = signed_in.get('/profile').get_json()["user_id"]
        auth_url = signed_in.get('/spotify-auth/authorize').get_json()["authUrl"]
        assert auth_url.startswith("https://accounts.spotify.com/authorize")
        assert f"state={user_id}" in auth_url
        assert "client_id=test-client-id" in auth_url

    def test_callback_with_wrong_state(self, signed_in):
        response = signed_in.get('/spotify-auth/callback?code=abc&state=intruder')
        assert response.status_code == 400
        assert b"spotify-error" in response.data

    def test_callback_stores_tokens(self, app, signed_in):
        user_id = signed_in.get('/profile').get_json()["user_id"]
        app.token_broker.oauth = MagicMock()
        app.token_broker.oauth.get_access_token.return_value = {
            "access_token": "access", "refresh_token": "refresh", "expires_in": 3600,
        }

        response = signed_in.get(f'/spotify-auth/callback?code=abc&state={user_id}')
        assert response.status_code == 200
        assert b"spotify-connected" in response.data

        data = signed_in.get('/spotify-auth/token').get_json()
        assert data == {"access_token": "access", "is_connected": True}

    def test_requires_profile(self, client):
        assert client.get('/spotify-auth/token').status_code == 401


class TestCatalogRoutes:
    @patch("soundboard.api.spotify.requests.get")
    def test_search_with_user_token(self, mock_get, client):
        mock_get.return_value = MagicMock(status_code=200)
        mock_get.return_value.json.return_value = {"tracks": {"items": []}}

        response = client.post('/spotify/search', json={"query": "rick", "token": "user-token"})
        assert response.get_json() == {"tracks": []}
        assert mock_get.call_args[1]["headers"] == {"Authorization": "Bearer user-token"}

    def test_search_requires_query(self, client):
        assert client.post('/spotify/search', json={}).status_code == 400

    def test_youtube_requires_artist_and_title(self, client):
        assert client.post('/spotify/youtube', json={"artist": "A"}).status_code == 400

    @patch("soundboard.routes.catalog.find_video_id", return_value=None)
    def test_youtube_miss_is_null(self, mock_find, client):
        response = client.post('/spotify/youtube', json={"artist": "A", "title": "B"})
        assert response.status_code == 200
        assert response.get_json() == {"youtube_video_id": None}
