"""
Emoji reaction models for Soundboard Work.
"""

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from .database_config import Base
from .queue_models import _now, _uuid


class SongReaction(Base):
    __tablename__ = "song_reactions"
    __table_args__ = (UniqueConstraint("song_id", "user_id", name="uq_reaction_song_user"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    song_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    user_name = Column(String, nullable=False)
    emoji = Column(String(16), nullable=False)
    created_at = Column(DateTime, default=_now)

    def __repr__(self):
        return f"<SongReaction {self.emoji} by {self.user_name} on {self.song_id}>"
