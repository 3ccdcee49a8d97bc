"""
Now-playing coordination for Soundboard Work.

QueueAdvancer retires the playing entry and promotes the next one. It is
shared by every player session of the app, and its in-flight guard turns a
second advance request that arrives while one is running into a no-op
(a manual skip racing the end-of-track report, two tabs hearing the same
track end).

NowPlayingCoordinator is the per-tab state machine:

    IDLE -> LOADING -> PLAYING <-> PAUSED
      ^                   |
      +---- advance ------+

It hands each new current track to its adapter exactly once and advances
the queue when the adapter reports the end of the track.
"""

import logging
import threading
import time
from enum import Enum
from sqlalchemy.exc import SQLAlchemyError
from soundboard.errors import SoundboardError

logger = logging.getLogger(__name__)

STORE_ERRORS = (SQLAlchemyError, SoundboardError)

# Seconds between progress-driven status updates
PROGRESS_INTERVAL = 1.0


def _no_notice(level, message):
    pass


class QueueAdvancer:
    def __init__(self, store, notify=None):
        self.store = store
        self.notify = notify or _no_notice
        self._guard = threading.Lock()
        self._unfinished = None

    @property
    def in_flight(self):
        return self._guard.locked()

    def advance(self, expected_id=None):
        """
        Move the playing entry to history and promote the next one.

        expected_id names the entry the caller believes is playing; when the
        table says otherwise somebody already advanced past it and nothing
        happens. Returns the retired entry, or None when nothing was done.
        """
        if not self._guard.acquire(blocking=False):
            logger.info("Advance already in flight, ignoring duplicate request")
            return None
        try:
            return self._advance(expected_id)
        finally:
            self._guard.release()

    def _advance(self, expected_id):
        try:
            entry = self.store.get_playing()
        except STORE_ERRORS as e:
            logger.error(f"Could not read the playing song: {e}")
            self.notify("error", "Could not reach the queue")
            return None

        if entry is None:
            # Either the queue is idle or the advance past expected_id stopped halfway
            entry = self._unfinished
            if entry is None or entry.id != expected_id:
                logger.info("Nothing is playing, nothing to advance")
                return None
            logger.info(f"Resuming unfinished advance past '{entry.title}'")
        elif expected_id is not None and entry.id != expected_id:
            logger.info(f"Entry {expected_id} was already advanced past, now playing '{entry.title}'")
            return None

        try:
            self.store.append_history(entry)
            self.store.delete(entry.id)
            next_entry = self.store.next_after(entry.position)
            if next_entry is not None:
                self.store.set_playing(next_entry.id, True)
        except STORE_ERRORS as e:
            logger.error(f"Advance past '{entry.title}' stopped halfway: {e}")
            self.notify("error", "Could not move to the next song")
            self._unfinished = entry
            return None

        self._unfinished = None
        if next_entry is None:
            logger.info(f"Finished '{entry.title}', queue is empty")
        else:
            logger.info(f"Finished '{entry.title}', now playing '{next_entry.title}'")
        return entry

    def start_first_song(self):
        """Mark the lowest-position entry as playing when nothing plays yet"""
        if self.store.get_playing() is not None:
            logger.info("A song is already playing, not starting another")
            return None
        first = self.store.first()
        if first is None:
            logger.info("Queue is empty, nothing to start")
            return None
        started = self.store.set_playing(first.id, True)
        self._unfinished = None
        return started

    def reorder(self, dragged_id, target_id):
        """Swap the positions of the dragged entry and the drop target"""
        if dragged_id == target_id:
            return False
        self.store.swap_positions(dragged_id, target_id)
        return True


class PlayerState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


class NowPlayingCoordinator:
    def __init__(self, advancer, synchronizer, adapter, notify=None, on_status=None,
                 clock=time.monotonic):
        self.advancer = advancer
        self.synchronizer = synchronizer
        self.adapter = adapter
        self.notify = notify or _no_notice
        self.on_status = on_status
        self.clock = clock
        self.state = PlayerState.IDLE
        self._handled_id = None
        self._stalled_id = None
        self._in_play = False
        self._closed = False
        self._last_progress = None

        adapter.on("started", self._on_track_started)
        adapter.on("ended", self._on_track_ended)
        adapter.on("error", self._on_playback_error)
        adapter.on("progress", self._on_progress)
        synchronizer.add_listener(self.on_queue_changed)

    @property
    def handled_entry_id(self):
        return self._handled_id

    def _set_state(self, state):
        if state is self.state:
            return
        logger.debug(f"{self.adapter.kind} player: {self.state.value} -> {state.value}")
        self.state = state
        if self.on_status is not None:
            self.on_status(self.status())

    def status(self):
        current = self.synchronizer.current_track
        status = self.adapter.status()
        status.update(
            state=self.state.value,
            entry=current.to_dict() if current else None,
        )
        return status

    def sync_now(self):
        """Re-evaluate the current snapshot, e.g. after the adapter became ready"""
        self.on_queue_changed(self.synchronizer.current_track, self.synchronizer.queue)

    def on_queue_changed(self, current, queue):
        if self._closed:
            return

        if current is None:
            if self._handled_id is not None:
                if self.adapter.loaded_identifier is not None and not self.adapter.is_paused:
                    self.adapter.pause()
                self.adapter.unload()
                self._handled_id = None
            self._set_state(PlayerState.IDLE)
            return

        if current.id == self._handled_id:
            return

        if not (self.adapter.is_connected and self.adapter.is_ready):
            # sync_now() runs again once the backend reports ready
            self._set_state(PlayerState.IDLE)
            return

        identifier = self.adapter.identifier_for(current)
        if identifier is None:
            # The fallback video id may still be on its way
            logger.info(f"'{current.title}' has no {self.adapter.kind} source yet, waiting")
            self._set_state(PlayerState.LOADING)
            return

        self._handled_id = current.id
        self._set_state(PlayerState.LOADING)
        self._in_play = True
        try:
            started = self.adapter.play(identifier)
        finally:
            self._in_play = False
        if started:
            return

        if self._stalled_id == current.id:
            self._skip_stalled()
        else:
            # Backend unreachable; the queue stays as it is and the next change retries
            logger.warning(f"Could not start '{current.title}' on {self.adapter.kind}, queue left unchanged")
            self._handled_id = None
            self._set_state(PlayerState.IDLE)

    def _on_track_started(self, identifier):
        self._set_state(PlayerState.PLAYING)

    def _on_progress(self, identifier, position_ms, duration_ms):
        if self.on_status is None or self._handled_id is None:
            return
        now = self.clock()
        if self._last_progress is not None and now - self._last_progress < PROGRESS_INTERVAL:
            return
        self._last_progress = now
        self.on_status(self.status())

    def _on_track_ended(self, identifier):
        if self._handled_id is None:
            return
        self.advance()

    def _on_playback_error(self, identifier, message):
        current = self.synchronizer.current_track
        if current is None:
            return
        logger.error(f"Playback error on '{current.title}': {message}")
        self._stalled_id = current.id
        # During play() the caller handles the skip itself
        if self._handled_id == current.id and not self._in_play:
            self._skip_stalled()

    def _skip_stalled(self):
        if self.advancer.in_flight:
            # The running advance checks for stalled tracks when it finishes
            return
        current = self.synchronizer.current_track
        if current is None or current.id != self._stalled_id:
            return
        self.notify("warning", f"Skipping '{current.title}', it could not be played")
        self.advance(expected_id=current.id)

    def advance(self, expected_id=None):
        """Retire the handled track; a concurrent call is a no-op"""
        if expected_id is None:
            expected_id = self._handled_id
        retired = self.advancer.advance(expected_id=expected_id)
        if retired is not None:
            if retired.id == self._stalled_id:
                self._stalled_id = None
            self._skip_stalled()
        return retired

    def skip(self):
        """Manual skip of the track this player is on"""
        return self.advance()

    def toggle_play_pause(self):
        if self.state is PlayerState.PLAYING:
            if self.adapter.pause():
                self._set_state(PlayerState.PAUSED)
                return True
        elif self.state is PlayerState.PAUSED:
            if self.adapter.resume():
                self._set_state(PlayerState.PLAYING)
                return True
        else:
            self.notify("info", "Nothing is playing")
        return False

    def close(self):
        """Release the adapter and stop following the queue"""
        self._closed = True
        self.synchronizer.remove_listener(self.on_queue_changed)
        self.adapter.close()
        self._handled_id = None
        self.state = PlayerState.IDLE
