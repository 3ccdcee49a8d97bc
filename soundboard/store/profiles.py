"""
Profiles for Soundboard Work: the display name people pick when they join.
"""

import logging
from soundboard.errors import PayloadError
from soundboard.models import Profile, get_db

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 80


def _profile_dict(row):
    return {
        "user_id": row.user_id,
        "display_name": row.display_name,
        "spotify_connected": bool(row.spotify_access_token),
    }


class ProfileStore:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get(self, user_id):
        with get_db(self.session_factory) as db:
            row = db.get(Profile, user_id)
            return _profile_dict(row) if row else None

    def upsert(self, user_id, display_name):
        """Create the profile or rename it"""
        if not isinstance(display_name, str) or not display_name.strip():
            raise PayloadError("Display name is required")
        display_name = display_name.strip()
        if len(display_name) > MAX_NAME_LENGTH:
            raise PayloadError(f"Display name must be at most {MAX_NAME_LENGTH} characters")

        with get_db(self.session_factory) as db:
            row = db.get(Profile, user_id)
            if row is None:
                row = Profile(user_id=user_id, display_name=display_name)
                db.add(row)
                logger.info(f"New profile {display_name} ({user_id})")
            else:
                row.display_name = display_name
            db.flush()
            return _profile_dict(row)

    def delete(self, user_id):
        with get_db(self.session_factory) as db:
            row = db.get(Profile, user_id)
            if row is None:
                return False
            db.delete(row)
            return True
