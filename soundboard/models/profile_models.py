"""
User profile models for Soundboard Work.
"""

from sqlalchemy import Column, DateTime, String, Text
from .database_config import Base
from .queue_models import _now


class Profile(Base):
    __tablename__ = "profiles"

    user_id = Column(String(36), primary_key=True)
    display_name = Column(String(80), nullable=False)
    spotify_access_token = Column(Text, nullable=True)
    spotify_refresh_token = Column(Text, nullable=True)
    spotify_token_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    def __repr__(self):
        return f"<Profile {self.display_name}>"
