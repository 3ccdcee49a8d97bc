"""
Shared store for Soundboard Work: tables plus the realtime change feed.
"""

from .feed import ChangeFeed, Subscription, INSERT, UPDATE, DELETE
from .queue_store import QueueStore
from .history import HistoryStore
from .reactions import ReactionStore, AVAILABLE_EMOJIS
from .profiles import ProfileStore

__all__ = [
    'ChangeFeed', 'Subscription', 'INSERT', 'UPDATE', 'DELETE',
    'QueueStore', 'HistoryStore', 'ReactionStore', 'AVAILABLE_EMOJIS', 'ProfileStore',
]
