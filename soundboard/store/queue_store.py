"""
Shared queue store for Soundboard Work.
Owns the queue_songs and song_history tables: every mutation is a short
transaction followed by a change notification on the feed.
"""

import logging
import threading
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from soundboard.errors import EntryNotFound, NotEntryOwner
from soundboard.models import QueueEntry, HistoryEntry, QueueSong, SongHistory, get_db
from .feed import DELETE, INSERT, UPDATE

logger = logging.getLogger(__name__)

QUEUE_TABLE = "queue_songs"
HISTORY_TABLE = "song_history"
INSERT_ATTEMPTS = 2


class QueueStore:
    def __init__(self, session_factory, feed):
        self.session_factory = session_factory
        self.feed = feed
        self._insert_lock = threading.Lock()

    def _publish(self, events):
        for table, event_type, new, old in events:
            self.feed.publish(table, event_type, new=new, old=old)

    def _ordered(self, db):
        return db.query(QueueSong).order_by(QueueSong.position.asc(), QueueSong.added_at.asc())

    # Reads

    def list_queue(self):
        """All queue entries, ascending by position"""
        with get_db(self.session_factory) as db:
            return [QueueEntry.from_row(row) for row in self._ordered(db).all()]

    def get(self, entry_id):
        with get_db(self.session_factory) as db:
            row = db.get(QueueSong, entry_id)
            return QueueEntry.from_row(row) if row else None

    def get_playing(self):
        """The entry marked as playing, read straight from the table"""
        with get_db(self.session_factory) as db:
            row = self._ordered(db).filter(QueueSong.is_playing.is_(True)).first()
            return QueueEntry.from_row(row) if row else None

    def next_after(self, position):
        with get_db(self.session_factory) as db:
            row = self._ordered(db).filter(QueueSong.position > position).first()
            return QueueEntry.from_row(row) if row else None

    def first(self):
        with get_db(self.session_factory) as db:
            row = self._ordered(db).first()
            return QueueEntry.from_row(row) if row else None

    # Writes

    def insert(self, track, added_by_user_id, added_by_name):
        """Append a track; it starts playing only if the queue was empty"""
        # The position/count read and the insert must not interleave with another add
        with self._insert_lock:
            for attempt in range(INSERT_ATTEMPTS):
                try:
                    entry = self._insert_row(track, added_by_user_id, added_by_name)
                    break
                except IntegrityError as e:
                    # Another process flagged a row as playing in between
                    if attempt == INSERT_ATTEMPTS - 1:
                        raise
                    logger.warning(f"Queue insert raced another writer, retrying: {e}")

        logger.info(f"Queued '{entry.title}' at position {entry.position} for {added_by_name}")
        self._publish([(QUEUE_TABLE, INSERT, entry.to_dict(), None)])
        return entry

    def _insert_row(self, track, added_by_user_id, added_by_name):
        with get_db(self.session_factory) as db:
            max_position, count = db.query(
                func.max(QueueSong.position), func.count(QueueSong.id)
            ).one()

            row = QueueSong(
                spotify_song_id=track.source_track_id,
                title=track.title,
                artist=track.artist,
                album_cover_url=track.album_cover_url,
                duration_ms=track.duration_ms,
                added_by_user_id=added_by_user_id,
                added_by_name=added_by_name,
                position=(max_position or 0) + 1,
                is_playing=count == 0,
            )
            db.add(row)
            db.flush()
            return QueueEntry.from_row(row)

    def update_position(self, entry_id, position):
        with get_db(self.session_factory) as db:
            row = db.get(QueueSong, entry_id)
            if row is None:
                raise EntryNotFound("Queue entry not found", details={"id": entry_id})
            old = QueueEntry.from_row(row).to_dict()
            row.position = position
            db.flush()
            entry = QueueEntry.from_row(row)

        self._publish([(QUEUE_TABLE, UPDATE, entry.to_dict(), old)])
        return entry

    def swap_positions(self, first_id, second_id):
        """Exchange the positions of two entries in one transaction"""
        events = []
        with get_db(self.session_factory) as db:
            first = db.get(QueueSong, first_id)
            second = db.get(QueueSong, second_id)
            if first is None or second is None:
                raise EntryNotFound("Queue entry not found",
                                    details={"ids": [first_id, second_id]})

            old_first = QueueEntry.from_row(first).to_dict()
            old_second = QueueEntry.from_row(second).to_dict()
            first.position, second.position = second.position, first.position
            db.flush()
            events.append((QUEUE_TABLE, UPDATE, QueueEntry.from_row(first).to_dict(), old_first))
            events.append((QUEUE_TABLE, UPDATE, QueueEntry.from_row(second).to_dict(), old_second))

        self._publish(events)

    def set_playing(self, entry_id, is_playing=True):
        """Flag an entry; flagging one as playing clears every other flag"""
        events = []
        with get_db(self.session_factory) as db:
            row = db.get(QueueSong, entry_id)
            if row is None:
                raise EntryNotFound("Queue entry not found", details={"id": entry_id})

            if is_playing:
                others = db.query(QueueSong).filter(
                    QueueSong.is_playing.is_(True), QueueSong.id != entry_id
                ).all()
                for other in others:
                    old = QueueEntry.from_row(other).to_dict()
                    other.is_playing = False
                    events.append((QUEUE_TABLE, UPDATE, dict(old, is_playing=False), old))
                # Clear the old flag before setting the new one (unique playing index)
                db.flush()

            old = QueueEntry.from_row(row).to_dict()
            row.is_playing = is_playing
            db.flush()
            entry = QueueEntry.from_row(row)
            events.append((QUEUE_TABLE, UPDATE, entry.to_dict(), old))

        self._publish(events)
        return entry

    def set_alt_source(self, entry_id, youtube_video_id):
        """Patch in the fallback video id; the entry may be gone by now"""
        with get_db(self.session_factory) as db:
            row = db.get(QueueSong, entry_id)
            if row is None:
                logger.info(f"Entry {entry_id} left the queue before its video id arrived")
                return None
            old = QueueEntry.from_row(row).to_dict()
            row.youtube_video_id = youtube_video_id
            db.flush()
            entry = QueueEntry.from_row(row)

        self._publish([(QUEUE_TABLE, UPDATE, entry.to_dict(), old)])
        return entry

    def delete(self, entry_id):
        """Remove an entry; deleting a missing entry is a no-op returning None"""
        with get_db(self.session_factory) as db:
            row = db.get(QueueSong, entry_id)
            if row is None:
                return None
            entry = QueueEntry.from_row(row)
            db.delete(row)

        self._publish([(QUEUE_TABLE, DELETE, None, entry.to_dict())])
        return entry

    def remove(self, entry_id, user_id):
        """Manual removal, allowed only for the user who added the entry"""
        entry = self.get(entry_id)
        if entry is None:
            raise EntryNotFound("Queue entry not found", details={"id": entry_id})
        if entry.added_by_user_id != user_id:
            raise NotEntryOwner("Only the person who added this song can remove it",
                                details={"id": entry_id})
        return self.delete(entry_id)

    def append_history(self, entry):
        """Archive a retired entry; archiving the same entry twice returns the first record"""
        try:
            with get_db(self.session_factory) as db:
                existing = db.query(SongHistory).filter_by(queue_song_id=entry.id).first()
                if existing is not None:
                    logger.info(f"'{entry.title}' was already archived, skipping")
                    return HistoryEntry.from_row(existing)

                row = SongHistory(
                    queue_song_id=entry.id,
                    spotify_song_id=entry.source_track_id,
                    title=entry.title,
                    artist=entry.artist,
                    album_cover_url=entry.album_cover_url,
                    added_by_user_id=entry.added_by_user_id,
                    added_by_name=entry.added_by_name,
                )
                db.add(row)
                db.flush()
                record = HistoryEntry.from_row(row)
        except IntegrityError:
            # Another client archived it between our read and our insert
            with get_db(self.session_factory) as db:
                existing = db.query(SongHistory).filter_by(queue_song_id=entry.id).one()
                return HistoryEntry.from_row(existing)

        self._publish([(HISTORY_TABLE, INSERT, record.to_dict(), None)])
        return record

    def subscribe(self, callback):
        return self.feed.subscribe(QUEUE_TABLE, callback)
