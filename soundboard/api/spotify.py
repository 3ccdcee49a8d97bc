"""
Spotify catalog access for Soundboard Work.
Handles the app-level client-credentials token and track search.
"""

import logging
import requests
from soundboard.errors import PayloadError, SpotifyAuthError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://accounts.spotify.com/api/token"
SEARCH_URL = "https://api.spotify.com/v1/search"
TOKEN_CACHE_KEY = "spotify:client_token"
SEARCH_LIMIT = 10


def get_client_token(client_id, client_secret, cache=None, timeout=10):
    """Client-credentials access token, cached until shortly before it expires"""
    if cache is not None:
        cached = cache.get(TOKEN_CACHE_KEY)
        if cached:
            return cached

    if not client_id or not client_secret:
        raise SpotifyAuthError("Spotify credentials not configured")

    try:
        response = requests.post(
            TOKEN_URL,
            data={"grant_type": "client_credentials"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            auth=(client_id, client_secret),
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Spotify token request failed: {e}")
        raise SpotifyAuthError("Failed to get Spotify token") from e

    if response.status_code != 200:
        logger.error(f"Spotify token error: {response.status_code} - {response.text}")
        raise SpotifyAuthError("Failed to get Spotify token",
                               details={"status_code": response.status_code})

    token_data = response.json()
    access_token = token_data.get("access_token")
    if not access_token:
        raise SpotifyAuthError("Spotify token response had no access token")

    if cache is not None:
        expires_in = int(token_data.get("expires_in", 3600))
        cache.set(TOKEN_CACHE_KEY, access_token, timeout=max(expires_in - 60, 60))
    return access_token


def format_track(item):
    """Search result item -> the shape the queue form expects"""
    try:
        images = item["album"].get("images") or []
        track = {
            "id": item["id"],
            "name": item["name"],
            "artists": ", ".join(artist["name"] for artist in item["artists"]),
            "album_cover": images[0]["url"] if images else "",
            "duration_ms": item["duration_ms"],
        }
    except (KeyError, TypeError, AttributeError) as e:
        raise PayloadError(f"Malformed Spotify track: missing {e}") from e

    if not isinstance(track["id"], str) or not isinstance(track["duration_ms"], int):
        raise PayloadError("Malformed Spotify track", details={"id": track["id"]})
    return track


def search_tracks(query, access_token, limit=SEARCH_LIMIT, timeout=10):
    if not query or not access_token:
        raise PayloadError("Query and token are required")

    try:
        response = requests.get(
            SEARCH_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            params={"q": query, "type": "track", "limit": limit},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Spotify search failed: {e}")
        raise SpotifyAuthError("Failed to search Spotify") from e

    if response.status_code != 200:
        logger.error(f"Spotify search error: {response.status_code} - {response.text}")
        raise SpotifyAuthError("Failed to search Spotify",
                               details={"status_code": response.status_code})

    items = ((response.json() or {}).get("tracks") or {}).get("items") or []
    tracks = []
    for item in items:
        try:
            tracks.append(format_track(item))
        except PayloadError as e:
            logger.warning(f"Skipping search result: {e}")
    return tracks
