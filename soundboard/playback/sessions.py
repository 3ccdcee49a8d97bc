"""
Player sessions for Soundboard Work.
Each browser tab that attaches a player gets its own synchronizer, adapter
and coordinator; detaching or disconnecting releases all three.
"""

import logging
import threading
from soundboard.sync import QueueSynchronizer
from .coordinator import NowPlayingCoordinator
from .detector import EndOfTrackDetector, DEFAULT_REQUIRED_SAMPLES, DEFAULT_TOLERANCE_MS
from .embedded import EmbeddedVideoPlayer
from .streaming import StreamingPlayer, DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

BACKENDS = ("spotify", "youtube")


class PlayerSession:
    def __init__(self, sid, user_id, synchronizer, adapter, coordinator):
        self.sid = sid
        self.user_id = user_id
        self.synchronizer = synchronizer
        self.adapter = adapter
        self.coordinator = coordinator

    @property
    def backend(self):
        return self.adapter.kind

    def close(self):
        try:
            self.coordinator.close()
        finally:
            self.synchronizer.close()


class PlayerSessionRegistry:
    """
    Player sessions keyed by Socket.IO sid.

    emit(event, data, to) delivers an event to one connected tab.
    """

    def __init__(self, store, advancer, token_broker=None, emit=None, settings=None):
        self.store = store
        self.advancer = advancer
        self.token_broker = token_broker
        self.emit = emit or (lambda event, data, to=None: None)
        self.settings = settings or {}
        self._sessions = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def get(self, sid):
        with self._lock:
            return self._sessions.get(sid)

    def _notifier(self, sid):
        def notify(level, message):
            self.emit("notice", {"level": level, "message": message}, to=sid)
        return notify

    def _build_adapter(self, sid, backend, user_id, notify):
        if backend == "youtube":
            return EmbeddedVideoPlayer(
                send=lambda event, data: self.emit(event, data, to=sid),
                notify=notify,
            )

        detector = EndOfTrackDetector(
            tolerance_ms=self.settings.get("END_TOLERANCE_MS", DEFAULT_TOLERANCE_MS),
            required_samples=self.settings.get("END_REQUIRED_SAMPLES", DEFAULT_REQUIRED_SAMPLES),
        )
        broker = self.token_broker
        player = StreamingPlayer(
            token_provider=lambda: broker.get_access_token(user_id),
            token_refresher=lambda: broker.refresh(user_id),
            notify=notify,
            detector=detector,
            poll_interval=self.settings.get("PLAYER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        )
        if not player.connect():
            notify("info", "Connect Spotify to play the queue here")
        return player

    def attach(self, sid, backend, user_id):
        """Start a player session for a tab, replacing any previous one"""
        if backend not in BACKENDS:
            raise ValueError(f"Unknown player backend '{backend}'")
        if backend == "spotify" and self.token_broker is None:
            raise ValueError("Spotify playback is not configured")

        self.detach(sid)

        notify = self._notifier(sid)
        synchronizer = QueueSynchronizer(self.store, notify=notify)
        adapter = self._build_adapter(sid, backend, user_id, notify)
        coordinator = NowPlayingCoordinator(
            self.advancer,
            synchronizer,
            adapter,
            notify=notify,
            on_status=lambda status: self.emit("player_status", status, to=sid),
        )
        session = PlayerSession(sid, user_id, synchronizer, adapter, coordinator)
        with self._lock:
            self._sessions[sid] = session

        synchronizer.start()
        logger.info(f"Attached {backend} player for {user_id} (sid: {sid})")
        return session

    def detach(self, sid):
        with self._lock:
            session = self._sessions.pop(sid, None)
        if session is None:
            return False
        session.close()
        logger.info(f"Detached {session.backend} player (sid: {sid})")
        return True

    def close_all(self):
        with self._lock:
            sids = list(self._sessions)
        for sid in sids:
            self.detach(sid)
