"""
Music queue and play-history models for Soundboard Work.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, text
from .database_config import Base


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(timezone.utc)


class QueueSong(Base):
    __tablename__ = "queue_songs"
    # At most one row may be flagged as playing
    __table_args__ = (
        Index(
            "uq_queue_songs_playing",
            "is_playing",
            unique=True,
            sqlite_where=text("is_playing = 1"),
            postgresql_where=text("is_playing"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    spotify_song_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    artist = Column(String, nullable=False)
    album_cover_url = Column(String, nullable=True)
    duration_ms = Column(Integer, nullable=False, default=0)
    added_by_user_id = Column(String, nullable=False)
    added_by_name = Column(String, nullable=False)
    added_at = Column(DateTime, default=_now)
    position = Column(Integer, nullable=False, index=True)
    is_playing = Column(Boolean, nullable=False, default=False)
    youtube_video_id = Column(String, nullable=True)

    def __repr__(self):
        return f"<QueueSong {self.title} #{self.position}{' (playing)' if self.is_playing else ''}>"


class SongHistory(Base):
    __tablename__ = "song_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    # Id of the retired queue entry; unique so archiving twice is impossible
    queue_song_id = Column(String(36), nullable=True, unique=True)
    spotify_song_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    artist = Column(String, nullable=False)
    album_cover_url = Column(String, nullable=True)
    added_by_user_id = Column(String, nullable=False)
    added_by_name = Column(String, nullable=False)
    played_at = Column(DateTime, default=_now, index=True)

    def __repr__(self):
        return f"<SongHistory {self.title} played {self.played_at}>"
