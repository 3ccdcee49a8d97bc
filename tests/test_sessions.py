"""
Tests for per-tab player sessions
"""

import pytest
from soundboard.playback import EmbeddedVideoPlayer, PlayerSessionRegistry, QueueAdvancer


@pytest.fixture
def sent():
    return []


@pytest.fixture
def registry(queue_store, sent):
    registry = PlayerSessionRegistry(
        queue_store,
        QueueAdvancer(queue_store),
        emit=lambda event, data, to=None: sent.append((event, data, to)),
    )
    yield registry
    registry.close_all()


class TestRegistry:
    def test_attach_follows_queue(self, registry, queue_store, make_track, sent):
        entry = queue_store.insert(make_track("A"), "u1", "Alice")
        queue_store.set_alt_source(entry.id, "vidA")

        session = registry.attach("sid-1", "youtube", "u1")
        assert isinstance(session.adapter, EmbeddedVideoPlayer)
        session.adapter.mark_api_ready()
        session.coordinator.sync_now()

        creates = [data for event, data, to in sent if event == "video_player"]
        assert creates == [{"action": "create", "video_id": "vidA", "autoplay": True, "instance_id": 1}]
        assert all(to == "sid-1" for _, _, to in sent)

    def test_reattach_replaces_session(self, registry, feed):
        first = registry.attach("sid-1", "youtube", "u1")
        second = registry.attach("sid-1", "youtube", "u1")
        assert registry.get("sid-1") is second
        assert first is not second
        assert len(registry) == 1
        assert feed.subscriber_count("queue_songs") == 1

    def test_detach_releases_subscriptions(self, registry, feed):
        registry.attach("sid-1", "youtube", "u1")
        registry.attach("sid-2", "youtube", "u2")
        assert feed.subscriber_count("queue_songs") == 2

        assert registry.detach("sid-1") is True
        assert registry.detach("sid-1") is False
        registry.close_all()
        assert feed.subscriber_count("queue_songs") == 0
        assert len(registry) == 0

    def test_spotify_needs_configuration(self, registry):
        with pytest.raises(ValueError):
            registry.attach("sid-1", "spotify", "u1")

    def test_insert_notice_goes_to_tab(self, registry, queue_store, make_track, sent):
        registry.attach("sid-1", "youtube", "u1")
        queue_store.insert(make_track("A"), "u2", "Bob")
        notices = [data for event, data, to in sent if event == "notice"]
        assert {"level": "info", "message": "New song added! Bob added a song to the queue"} in notices

    def test_progress_reaches_tab(self, registry, queue_store, make_track, sent):
        entry = queue_store.insert(make_track("A"), "u1", "Alice")
        queue_store.set_alt_source(entry.id, "vidA")
        session = registry.attach("sid-1", "youtube", "u1")
        session.adapter.mark_api_ready()
        session.coordinator.sync_now()

        session.adapter.handle_progress(1, 12.5, 200)

        statuses = [data for event, data, to in sent if event == "player_status"]
        assert statuses[-1]["position_ms"] == 12500
        assert statuses[-1]["duration_ms"] == 200000
        assert statuses[-1]["entry"]["id"] == entry.id
