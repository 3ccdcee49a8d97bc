"""
Realtime change feed for Soundboard Work.

Every committed row change is published here as a payload shaped like a
Postgres change notification:

    {"table": "queue_songs", "eventType": "INSERT", "new": {...}, "old": {...}}

Subscribers register per table, optionally with column-equality filters
(reactions are usually watched per ``song_id``). Delivery happens
synchronously on the writer's thread, after the commit.
"""

import logging
import threading

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


class Subscription:
    """Handle returned by ChangeFeed.subscribe; close() is idempotent"""

    def __init__(self, feed, table, callback, filters):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.filters = filters or {}
        self.closed = False

    def matches(self, payload):
        if not self.filters:
            return True
        row = payload.get("new") or payload.get("old") or {}
        return all(row.get(column) == value for column, value in self.filters.items())

    def close(self):
        if not self.closed:
            self.closed = True
            self.feed._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions = {}

    def subscribe(self, table, callback, filters=None):
        subscription = Subscription(self, table, callback, filters)
        with self._lock:
            self._subscriptions.setdefault(table, []).append(subscription)
        logger.debug(f"Subscribed to {table} changes (filters={filters})")
        return subscription

    def _remove(self, subscription):
        with self._lock:
            subscriptions = self._subscriptions.get(subscription.table, [])
            if subscription in subscriptions:
                subscriptions.remove(subscription)

    def subscriber_count(self, table=None):
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, table, event_type, new=None, old=None):
        payload = {
            "table": table,
            "eventType": event_type,
            "new": new or {},
            "old": old or {},
        }

        # Snapshot so callbacks may subscribe/unsubscribe while we deliver
        with self._lock:
            subscriptions = list(self._subscriptions.get(table, []))

        for subscription in subscriptions:
            if subscription.closed or not subscription.matches(payload):
                continue
            try:
                subscription.callback(payload)
            except Exception as e:
                logger.error(f"Change subscriber for {table} failed on {event_type}: {e}")

        return payload
