"""
Play history queries and leaderboard aggregation for Soundboard Work.
"""

import logging
from sqlalchemy import func
from soundboard.models import HistoryEntry, SongHistory, get_db

logger = logging.getLogger(__name__)

RECENT_LIMIT = 20


class HistoryStore:
    def __init__(self, session_factory, feed):
        self.session_factory = session_factory
        self.feed = feed

    def recent(self, limit=RECENT_LIMIT):
        """Latest plays, newest first"""
        with get_db(self.session_factory) as db:
            rows = db.query(SongHistory).order_by(SongHistory.played_at.desc()).limit(limit).all()
            return [HistoryEntry.from_row(row) for row in rows]

    def count(self):
        with get_db(self.session_factory) as db:
            return db.query(SongHistory).count()

    def most_added_user(self):
        """The person whose songs were played the most, or None"""
        with get_db(self.session_factory) as db:
            row = (
                db.query(SongHistory.added_by_name, func.count(SongHistory.id).label("plays"))
                .group_by(SongHistory.added_by_name)
                .order_by(func.count(SongHistory.id).desc(), SongHistory.added_by_name.asc())
                .first()
            )
            if row is None:
                return None
            return {"name": row[0], "count": row[1]}

    def most_played_song(self):
        """The track with the most plays plus its latest history record, or None"""
        with get_db(self.session_factory) as db:
            row = (
                db.query(SongHistory.spotify_song_id, func.count(SongHistory.id).label("plays"))
                .group_by(SongHistory.spotify_song_id)
                .order_by(func.count(SongHistory.id).desc(), SongHistory.spotify_song_id.asc())
                .first()
            )
            if row is None:
                return None

            latest = (
                db.query(SongHistory)
                .filter(SongHistory.spotify_song_id == row[0])
                .order_by(SongHistory.played_at.desc())
                .first()
            )
            return {"song": HistoryEntry.from_row(latest), "count": row[1]}

    def leaderboard(self):
        top_user = self.most_added_user()
        top_song = self.most_played_song()
        return {
            "most_added_user": top_user,
            "most_played_song": {
                "song": top_song["song"].to_dict(),
                "count": top_song["count"],
            } if top_song else None,
        }
