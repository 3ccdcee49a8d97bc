"""
Profile routes for Soundboard Work.
Picking a name gives the browser session its user id; everything that is
attributed to a person (queued songs, reactions, Spotify tokens) hangs off it.
"""

import logging
import uuid
from flask import Blueprint, current_app, jsonify, session
from soundboard.errors import SoundboardError
from .helpers import error_response, json_body

logger = logging.getLogger(__name__)

profile_bp = Blueprint('profile', __name__)


@profile_bp.route("", methods=["POST"])
def join():
    """Pick (or change) a display name"""
    try:
        display_name = json_body().get("display_name")
        user_id = session.get("user_id") or str(uuid.uuid4())
        profile = current_app.profile_store.upsert(user_id, display_name)

        session.permanent = True
        session["user_id"] = user_id
        session["display_name"] = profile["display_name"]
        logger.info(f"{profile['display_name']} joined (user_id: {user_id})")
        return jsonify(profile)
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error saving profile: {e}")
        return jsonify({"error": "Failed to save profile"}), 500


@profile_bp.route("", methods=["GET"])
def me():
    user_id = session.get("user_id")
    if not user_id:
        return jsonify({"error": "No profile yet"}), 404
    profile = current_app.profile_store.get(user_id)
    if profile is None:
        session.clear()
        return jsonify({"error": "No profile yet"}), 404
    return jsonify(profile)


@profile_bp.route("", methods=["DELETE"])
def leave():
    """Sign out of this browser; the profile itself stays"""
    display_name = session.get("display_name", "Unknown")
    session.clear()
    logger.info(f"{display_name} signed out")
    return jsonify({"message": "Signed out"})
