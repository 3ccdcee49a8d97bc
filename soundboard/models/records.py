"""
Plain record types the queue core works with.

ORM rows never leave a database session; the store converts them into these
frozen records first. Untyped JSON entering the system goes through the
``from_payload`` constructors, which validate every field and raise
PayloadError instead of letting missing keys travel further.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from soundboard.errors import PayloadError


def isoformat(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _require_str(data, key, allow_empty=False):
    value = data.get(key)
    if not isinstance(value, str) or (not allow_empty and not value.strip()):
        raise PayloadError(f"'{key}' must be a non-empty string", details={"field": key})
    return value.strip()


def _optional_str(data, key):
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise PayloadError(f"'{key}' must be a string", details={"field": key})
    return value


def _require_int(data, key, minimum=0):
    value = data.get(key)
    # bool is an int subclass; JSON true must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise PayloadError(f"'{key}' must be an integer >= {minimum}", details={"field": key})
    return value


@dataclass(frozen=True)
class TrackRequest:
    """A track about to be queued (a queue entry without store-assigned fields)"""

    source_track_id: str
    title: str
    artist: str
    duration_ms: int
    album_cover_url: Optional[str] = None

    @classmethod
    def from_payload(cls, data):
        if not isinstance(data, dict):
            raise PayloadError("Track payload must be a JSON object")
        return cls(
            source_track_id=_require_str(data, "spotify_song_id"),
            title=_require_str(data, "title"),
            artist=_require_str(data, "artist"),
            duration_ms=_require_int(data, "duration_ms"),
            album_cover_url=_optional_str(data, "album_cover_url"),
        )


@dataclass(frozen=True)
class QueueEntry:
    id: str
    source_track_id: str
    title: str
    artist: str
    duration_ms: int
    added_by_user_id: str
    added_by_name: str
    position: int
    is_playing: bool
    album_cover_url: Optional[str] = None
    added_at: Optional[datetime] = None
    youtube_video_id: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.id,
            source_track_id=row.spotify_song_id,
            title=row.title,
            artist=row.artist,
            duration_ms=row.duration_ms or 0,
            added_by_user_id=row.added_by_user_id,
            added_by_name=row.added_by_name,
            position=row.position,
            is_playing=bool(row.is_playing),
            album_cover_url=row.album_cover_url,
            added_at=row.added_at,
            youtube_video_id=row.youtube_video_id,
        )

    def to_dict(self):
        """Wire format, keyed by the table's column names"""
        return {
            "id": self.id,
            "spotify_song_id": self.source_track_id,
            "title": self.title,
            "artist": self.artist,
            "album_cover_url": self.album_cover_url,
            "duration_ms": self.duration_ms,
            "added_by_user_id": self.added_by_user_id,
            "added_by_name": self.added_by_name,
            "added_at": isoformat(self.added_at),
            "position": self.position,
            "is_playing": self.is_playing,
            "youtube_video_id": self.youtube_video_id,
        }


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    source_track_id: str
    title: str
    artist: str
    added_by_user_id: str
    added_by_name: str
    album_cover_url: Optional[str] = None
    played_at: Optional[datetime] = None
    queue_song_id: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.id,
            source_track_id=row.spotify_song_id,
            title=row.title,
            artist=row.artist,
            added_by_user_id=row.added_by_user_id,
            added_by_name=row.added_by_name,
            album_cover_url=row.album_cover_url,
            played_at=row.played_at,
            queue_song_id=row.queue_song_id,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "spotify_song_id": self.source_track_id,
            "title": self.title,
            "artist": self.artist,
            "album_cover_url": self.album_cover_url,
            "added_by_user_id": self.added_by_user_id,
            "added_by_name": self.added_by_name,
            "played_at": isoformat(self.played_at),
        }


@dataclass(frozen=True)
class Reaction:
    id: str
    song_id: str
    user_id: str
    user_name: str
    emoji: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row.id,
            song_id=row.song_id,
            user_id=row.user_id,
            user_name=row.user_name,
            emoji=row.emoji,
            created_at=row.created_at,
        )

    def to_dict(self):
        data = asdict(self)
        data["created_at"] = isoformat(self.created_at)
        return data
