"""
Shared fixtures for the Soundboard Work tests
"""

import pytest
from soundboard.models import TrackRequest, build_engine, init_db, make_session_factory
from soundboard.store import ChangeFeed, HistoryStore, ProfileStore, QueueStore, ReactionStore


@pytest.fixture
def session_factory():
    """In-memory database shared by every thread of the test"""
    engine = build_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def queue_store(session_factory, feed):
    return QueueStore(session_factory, feed)


@pytest.fixture
def history_store(session_factory, feed):
    return HistoryStore(session_factory, feed)


@pytest.fixture
def reaction_store(session_factory, feed):
    return ReactionStore(session_factory, feed)


@pytest.fixture
def profile_store(session_factory):
    return ProfileStore(session_factory)


@pytest.fixture
def make_track():
    """Factory for track requests: make_track("A") is 'Song A' by 'Artist A'"""
    def _make(name, duration_ms=180000):
        return TrackRequest(
            source_track_id=f"id{name}",
            title=f"Song {name}",
            artist=f"Artist {name}",
            duration_ms=duration_ms,
            album_cover_url=f"https://img.example/{name}.jpg",
        )
    return _make


@pytest.fixture
def app(tmp_path):
    """Full app on an in-memory database, no Redis, test Spotify credentials"""
    from app import create_app

    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "DATABASE_URL": "sqlite://",
        "REDIS_URL": None,
        "SESSION_TYPE": "filesystem",
        "SESSION_FILE_DIR": str(tmp_path / "sessions"),
        "CACHE_TYPE": "SimpleCache",
        "SPOTIFY_CLIENT_ID": "test-client-id",
        "SPOTIFY_CLIENT_SECRET": "test-client-secret",
        "SPOTIFY_REDIRECT_URI": "http://localhost:8000/spotify-auth/callback",
        "YOUTUBE_LOOKUP": False,
    })
    yield app
    app.player_sessions.close_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def signed_in(client):
    """Client with a profile named Alice"""
    response = client.post('/profile', json={"display_name": "Alice"})
    assert response.status_code == 200
    return client
