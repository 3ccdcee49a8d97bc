"""
Track source adapter contract for Soundboard Work.

Both playback backends (the Spotify streaming player and the embedded
YouTube player) sit behind this interface so the now-playing coordinator
never needs to know which one it is driving.

Guarantees every adapter gives its caller:
    - play(identifier) is a no-op while that identifier is already loaded
      and has not ended yet
    - the "ended" listeners run exactly once per loaded identifier
    - calling anything while the backend is not connected or not ready
      raises nothing; it posts a notice and returns False
"""

import logging
import threading

logger = logging.getLogger(__name__)

EVENTS = ("started", "ended", "error", "progress")


def _no_notice(level, message):
    pass


class TrackSourceAdapter:
    kind = "abstract"

    def __init__(self, notify=None):
        self.notify = notify or _no_notice
        self.position_ms = 0
        self.duration_ms = 0
        self.is_paused = True
        self._listeners = {event: [] for event in EVENTS}
        self._state_lock = threading.Lock()
        self._loaded_id = None
        self._ended_id = None

    # Capability flags, provided by each backend

    @property
    def is_connected(self):
        raise NotImplementedError

    @property
    def is_ready(self):
        raise NotImplementedError

    def identifier_for(self, entry):
        """Backend identifier for a queue entry, or None if it cannot be played here yet"""
        raise NotImplementedError

    # Listeners

    def on(self, event, callback):
        if event not in self._listeners:
            raise ValueError(f"Unknown adapter event '{event}'")
        self._listeners[event].append(callback)

    def _emit(self, event, *args):
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"{self.kind} '{event}' listener failed: {e}")

    @property
    def loaded_identifier(self):
        return self._loaded_id

    def _available(self, action):
        if not self.is_connected:
            self.notify("warning", "Connect your player before using playback controls")
            logger.info(f"{self.kind}: {action} ignored, not connected")
            return False
        if not self.is_ready:
            self.notify("warning", "Player is not ready yet")
            logger.info(f"{self.kind}: {action} ignored, player not ready")
            return False
        return True

    # Playback

    def play(self, identifier):
        if not self._available("play"):
            return False

        with self._state_lock:
            if identifier == self._loaded_id and self._ended_id != identifier:
                logger.debug(f"{self.kind}: {identifier} already loaded, ignoring repeated play")
                return True
            self._loaded_id = identifier
            self._ended_id = None
            self.position_ms = 0

        if self._load(identifier):
            return True

        with self._state_lock:
            if self._loaded_id == identifier:
                self._loaded_id = None
        return False

    def _load(self, identifier):
        raise NotImplementedError

    def _signal_end(self):
        """Report the end of the loaded track; only the first report per track gets through"""
        with self._state_lock:
            identifier = self._loaded_id
            if identifier is None or self._ended_id == identifier:
                return False
            self._ended_id = identifier

        logger.info(f"{self.kind}: track {identifier} ended")
        self._emit("ended", identifier)
        return True

    def _signal_started(self):
        self._emit("started", self._loaded_id)

    def _signal_error(self, message):
        self._emit("error", self._loaded_id, message)

    def _signal_progress(self):
        self._emit("progress", self._loaded_id, self.position_ms, self.duration_ms)

    def unload(self):
        """Forget the loaded track so the next play() always loads"""
        with self._state_lock:
            self._loaded_id = None
            self._ended_id = None

    def pause(self):
        raise NotImplementedError

    def resume(self):
        raise NotImplementedError

    def toggle_play_pause(self):
        if self.is_paused:
            return self.resume()
        return self.pause()

    def seek(self, position_ms):
        raise NotImplementedError

    def skip_to_previous(self):
        self.notify("info", "This player cannot skip backwards")
        return False

    def skip_to_next(self):
        self.notify("info", "This player cannot skip forwards")
        return False

    def set_volume(self, volume):
        raise NotImplementedError

    def status(self):
        return {
            "backend": self.kind,
            "identifier": self._loaded_id,
            "position_ms": self.position_ms,
            "duration_ms": self.duration_ms,
            "is_paused": self.is_paused,
            "is_ready": self.is_ready,
            "is_connected": self.is_connected,
        }

    def close(self):
        self.unload()


def clamp_volume(volume):
    return max(0.0, min(1.0, float(volume)))
