"""
Reaction routes for Soundboard Work.
Handles emoji reactions on the song that is playing.
"""

import logging
from flask import Blueprint, current_app, jsonify
from soundboard.errors import PayloadError, SoundboardError
from soundboard.store.reactions import AVAILABLE_EMOJIS
from .helpers import current_user, error_response, json_body, not_signed_in

logger = logging.getLogger(__name__)

reactions_bp = Blueprint('reactions', __name__)


def _summary(song_id, user_id):
    store = current_app.reaction_store
    return {
        "song_id": song_id,
        "counts": store.counts(song_id),
        "user_reaction": store.user_reaction(song_id, user_id) if user_id else None,
        "available": AVAILABLE_EMOJIS,
    }


@reactions_bp.route("/<song_id>", methods=["GET"])
def get_reactions(song_id):
    user = current_user()
    try:
        return jsonify(_summary(song_id, user[0] if user else None))
    except Exception as e:
        logger.error(f"Error fetching reactions for {song_id}: {e}")
        return jsonify({"error": "Failed to load reactions"}), 500


@reactions_bp.route("/<song_id>", methods=["POST"])
def react(song_id):
    """Toggle the caller's emoji on a song"""
    user = current_user()
    if user is None:
        return not_signed_in()
    user_id, display_name = user

    try:
        emoji = json_body().get("emoji")
        if not isinstance(emoji, str):
            raise PayloadError("emoji is required")
        reaction = current_app.reaction_store.toggle(song_id, user_id, display_name, emoji)
        summary = _summary(song_id, user_id)
        summary["reaction"] = reaction.to_dict() if reaction else None
        return jsonify(summary)
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error toggling reaction on {song_id}: {e}")
        return jsonify({"error": "Failed to react"}), 500
