"""
Emoji reactions for Soundboard Work.
One live reaction per (song, user): picking another emoji replaces it,
picking the same emoji again takes it back.
"""

import logging
from soundboard.errors import PayloadError
from soundboard.models import Reaction, SongReaction, get_db
from .feed import DELETE, INSERT

logger = logging.getLogger(__name__)

REACTIONS_TABLE = "song_reactions"
AVAILABLE_EMOJIS = ["🔥", "❤️", "😎", "🎵", "👏"]


class ReactionStore:
    def __init__(self, session_factory, feed):
        self.session_factory = session_factory
        self.feed = feed

    def list_for_song(self, song_id):
        with get_db(self.session_factory) as db:
            rows = (
                db.query(SongReaction)
                .filter(SongReaction.song_id == song_id)
                .order_by(SongReaction.created_at.asc())
                .all()
            )
            return [Reaction.from_row(row) for row in rows]

    def user_reaction(self, song_id, user_id):
        """The emoji this user currently has on the song, or None"""
        with get_db(self.session_factory) as db:
            row = db.query(SongReaction).filter_by(song_id=song_id, user_id=user_id).first()
            return row.emoji if row else None

    def counts(self, song_id):
        counts = {}
        for reaction in self.list_for_song(song_id):
            counts[reaction.emoji] = counts.get(reaction.emoji, 0) + 1
        return counts

    def toggle(self, song_id, user_id, user_name, emoji):
        """
        Apply a user's emoji pick and return the reaction left in place.

        Returns None when the pick removed the user's reaction (same emoji
        selected twice).
        """
        if emoji not in AVAILABLE_EMOJIS:
            raise PayloadError(f"Unsupported reaction '{emoji}'", details={"emoji": emoji})

        events = []
        created = None
        with get_db(self.session_factory) as db:
            previous = db.query(SongReaction).filter_by(song_id=song_id, user_id=user_id).first()
            previous_emoji = previous.emoji if previous else None

            if previous is not None:
                events.append((DELETE, None, Reaction.from_row(previous).to_dict()))
                db.delete(previous)
                # The unique (song_id, user_id) constraint needs the delete
                # to reach the database before the replacement insert
                db.flush()

            if emoji != previous_emoji:
                row = SongReaction(song_id=song_id, user_id=user_id, user_name=user_name, emoji=emoji)
                db.add(row)
                db.flush()
                created = Reaction.from_row(row)
                events.append((INSERT, created.to_dict(), None))

        for event_type, new, old in events:
            self.feed.publish(REACTIONS_TABLE, event_type, new=new, old=old)

        if created is None:
            logger.info(f"{user_name} took back their {emoji} on {song_id}")
        else:
            logger.info(f"{user_name} reacted {emoji} on {song_id}")
        return created

    def subscribe(self, song_id, callback):
        return self.feed.subscribe(REACTIONS_TABLE, callback, filters={"song_id": song_id})
