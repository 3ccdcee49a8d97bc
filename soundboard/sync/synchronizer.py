"""
Queue synchronizer for Soundboard Work.

Mirrors the shared queue table into local state. Every change notification
triggers a full re-read instead of patching the mirror, so interleaved
writes from other clients can never leave it half-applied.
"""

import logging
import threading
from enum import Enum
from soundboard.store.feed import INSERT

logger = logging.getLogger(__name__)


class SyncState(Enum):
    SYNCING = "syncing"
    SYNCED = "synced"


class QueueSynchronizer:
    def __init__(self, store, notify=None):
        self.store = store
        self.notify = notify or (lambda level, message: None)
        self.state = SyncState.SYNCING
        self._lock = threading.RLock()
        self._queue = []
        self._current_track = None
        self._listeners = []
        self._subscription = None

    @property
    def queue(self):
        with self._lock:
            return list(self._queue)

    @property
    def current_track(self):
        with self._lock:
            return self._current_track

    def add_listener(self, callback):
        """callback(current_track, queue) runs after every completed refresh"""
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def start(self):
        """Initial read, then follow the change feed"""
        if self._subscription is None:
            self._subscription = self.store.subscribe(self._on_change)
        self.refresh()
        return self

    def refresh(self):
        with self._lock:
            self.state = SyncState.SYNCING
            try:
                entries = self.store.list_queue()
            except Exception as e:
                # Keep the last good snapshot
                logger.error(f"Error fetching queue: {e}")
                self.state = SyncState.SYNCED
                return False

            self._queue = entries
            self._current_track = next((entry for entry in entries if entry.is_playing), None)
            self.state = SyncState.SYNCED
            current, queue = self._current_track, list(self._queue)

        for listener in list(self._listeners):
            try:
                listener(current, queue)
            except Exception as e:
                logger.error(f"Queue listener failed: {e}")
        return True

    def _on_change(self, payload):
        logger.debug(f"Queue change: {payload['eventType']}")
        self.refresh()

        if payload["eventType"] == INSERT:
            added_by = payload["new"].get("added_by_name", "Someone")
            self.notify("info", f"New song added! {added_by} added a song to the queue")

    def close(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        self._listeners = []

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()
