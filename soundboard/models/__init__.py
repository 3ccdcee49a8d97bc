"""
Database models for Soundboard Work
"""

from .database_config import Base, build_engine, get_db, init_db, make_session_factory
from .queue_models import QueueSong, SongHistory
from .reaction_models import SongReaction
from .profile_models import Profile
from .records import HistoryEntry, QueueEntry, Reaction, TrackRequest

__all__ = [
    'Base', 'build_engine', 'get_db', 'init_db', 'make_session_factory',
    'QueueSong', 'SongHistory', 'SongReaction', 'Profile',
    'HistoryEntry', 'QueueEntry', 'Reaction', 'TrackRequest',
]
