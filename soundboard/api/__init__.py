"""
External services for Soundboard Work: Spotify tokens and catalog, YouTube fallback lookup.
"""

from .tokens import TokenBroker, make_oauth
from .spotify import get_client_token, search_tracks
from .youtube import find_video_id, start_lookup

__all__ = [
    'TokenBroker', 'make_oauth', 'get_client_token', 'search_tracks',
    'find_video_id', 'start_lookup',
]
