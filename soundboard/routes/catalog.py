"""
Catalog routes for Soundboard Work.
Handles Spotify search and the YouTube fallback lookup without a user login.
"""

import logging
from flask import Blueprint, current_app, jsonify
from soundboard.api.spotify import get_client_token, search_tracks
from soundboard.api.youtube import find_video_id
from soundboard.errors import PayloadError, SoundboardError
from .helpers import error_response, json_body

logger = logging.getLogger(__name__)

catalog_bp = Blueprint('catalog', __name__)


def _client_token():
    config = current_app.config
    return get_client_token(config["SPOTIFY_CLIENT_ID"], config["SPOTIFY_CLIENT_SECRET"],
                            cache=current_app.cache)


@catalog_bp.route("/token", methods=["GET", "POST"])
def token():
    """App-level token for catalog search"""
    try:
        return jsonify({"access_token": _client_token()})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error in spotify token: {e}")
        return jsonify({"error": "Failed to get Spotify token"}), 500


@catalog_bp.route("/search", methods=["POST"])
def search():
    """Search tracks; uses the caller's token or the app token"""
    try:
        data = json_body()
        query = (data.get("query") or "").strip()
        if not query:
            raise PayloadError("Query is required")
        access_token = data.get("token") or _client_token()
        return jsonify({"tracks": search_tracks(query, access_token)})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Search error: {e}")
        return jsonify({"error": "Search failed", "tracks": []}), 500


@catalog_bp.route("/youtube", methods=["POST"])
def youtube():
    """Video id for a track; null when no mirror answered"""
    try:
        data = json_body()
        artist, title = data.get("artist"), data.get("title")
        if not artist or not title:
            raise PayloadError("Artist and title are required")
        video_id = find_video_id(
            artist,
            title,
            mirrors=current_app.config["YOUTUBE_MIRRORS"],
            timeout=current_app.config["YOUTUBE_LOOKUP_TIMEOUT"],
        )
        return jsonify({"youtube_video_id": video_id})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"YouTube lookup error: {e}")
        return jsonify({"error": "YouTube lookup failed"}), 500
