"""
Queue routes for Soundboard Work.
Handles adding, removing, reordering and advancing the shared queue.
"""

import logging
from flask import Blueprint, current_app, jsonify
from soundboard.api.youtube import start_lookup
from soundboard.errors import PayloadError, SoundboardError
from soundboard.models import TrackRequest
from .helpers import current_user, error_response, json_body, not_signed_in

logger = logging.getLogger(__name__)

queue_bp = Blueprint('queue', __name__)


def _entry_or_none(entry):
    return entry.to_dict() if entry is not None else None


@queue_bp.route("", methods=["GET"])
def get_queue():
    """The whole queue in play order plus the entry now playing"""
    try:
        entries = current_app.queue_store.list_queue()
        current = next((entry for entry in entries if entry.is_playing), None)
        return jsonify({
            "queue": [entry.to_dict() for entry in entries],
            "current": _entry_or_none(current),
        })
    except Exception as e:
        logger.error(f"Error fetching queue: {e}")
        return jsonify({"error": "Failed to load queue"}), 500


@queue_bp.route("", methods=["POST"])
def add_song():
    """Append a track; the first track of an empty queue starts playing"""
    user = current_user()
    if user is None:
        return not_signed_in()
    user_id, display_name = user

    try:
        track = TrackRequest.from_payload(json_body())
        store = current_app.queue_store
        entry = store.insert(track, user_id, display_name)

        if current_app.config.get("YOUTUBE_LOOKUP"):
            start_lookup(
                store,
                entry,
                mirrors=current_app.config["YOUTUBE_MIRRORS"],
                timeout=current_app.config["YOUTUBE_LOOKUP_TIMEOUT"],
            )

        return jsonify({"entry": entry.to_dict(), "message": f"Added '{entry.title}' to the queue"}), 201
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error adding song: {e}")
        return jsonify({"error": "Failed to add song to queue"}), 500


@queue_bp.route("/<entry_id>", methods=["DELETE"])
def remove_song(entry_id):
    """Remove an entry; only the person who added it may"""
    user = current_user()
    if user is None:
        return not_signed_in()

    try:
        entry = current_app.queue_store.remove(entry_id, user[0])
        return jsonify({"removed": _entry_or_none(entry)})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error removing song {entry_id}: {e}")
        return jsonify({"error": "Failed to remove song"}), 500


@queue_bp.route("/reorder", methods=["POST"])
def reorder():
    """Drop the dragged entry onto another one; their positions swap"""
    if current_user() is None:
        return not_signed_in()

    try:
        data = json_body()
        dragged_id, target_id = data.get("dragged_id"), data.get("target_id")
        if not dragged_id or not target_id:
            raise PayloadError("dragged_id and target_id are required")
        swapped = current_app.queue_advancer.reorder(dragged_id, target_id)
        return jsonify({"swapped": swapped})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reordering queue: {e}")
        return jsonify({"error": "Failed to reorder queue"}), 500


@queue_bp.route("/start", methods=["POST"])
def start():
    """Start the lowest-position song when nothing is playing"""
    if current_user() is None:
        return not_signed_in()

    try:
        entry = current_app.queue_advancer.start_first_song()
        return jsonify({"current": _entry_or_none(entry)})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error starting queue: {e}")
        return jsonify({"error": "Failed to start the queue"}), 500


@queue_bp.route("/next", methods=["POST"])
def next_song():
    """
    Manual skip. An optional entry_id makes the skip conditional on that
    entry still being the one playing.
    """
    if current_user() is None:
        return not_signed_in()

    try:
        expected_id = json_body().get("entry_id")
        retired = current_app.queue_advancer.advance(expected_id=expected_id)
        current = current_app.queue_store.get_playing()
        return jsonify({"retired": _entry_or_none(retired), "current": _entry_or_none(current)})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error skipping song: {e}")
        return jsonify({"error": "Failed to skip song"}), 500
