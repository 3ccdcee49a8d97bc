"""
Playback for Soundboard Work: track source adapters, end-of-track detection
and the now-playing coordinator.
"""

from .adapter import TrackSourceAdapter
from .coordinator import NowPlayingCoordinator, PlayerState, QueueAdvancer
from .detector import DetectorState, EndOfTrackDetector
from .embedded import EmbeddedVideoPlayer
from .sessions import PlayerSession, PlayerSessionRegistry
from .streaming import StreamingPlayer

__all__ = [
    "TrackSourceAdapter",
    "NowPlayingCoordinator",
    "PlayerState",
    "QueueAdvancer",
    "DetectorState",
    "EndOfTrackDetector",
    "EmbeddedVideoPlayer",
    "PlayerSession",
    "PlayerSessionRegistry",
    "StreamingPlayer",
]
