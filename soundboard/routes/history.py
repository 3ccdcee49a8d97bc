"""
History routes for Soundboard Work.
"""

import logging
from flask import Blueprint, current_app, jsonify, request

logger = logging.getLogger(__name__)

history_bp = Blueprint('history', __name__)

MAX_LIMIT = 100


@history_bp.route("", methods=["GET"])
def recent():
    """Recently played songs, newest first"""
    limit = request.args.get('limit', 20, type=int)
    limit = max(1, min(limit, MAX_LIMIT))
    try:
        entries = current_app.history_store.recent(limit)
        return jsonify({"history": [entry.to_dict() for entry in entries]})
    except Exception as e:
        logger.error(f"Error fetching history: {e}")
        return jsonify({"error": "Failed to load history"}), 500


@history_bp.route("/leaderboard", methods=["GET"])
def leaderboard():
    try:
        return jsonify(current_app.history_store.leaderboard())
    except Exception as e:
        logger.error(f"Error building leaderboard: {e}")
        return jsonify({"error": "Failed to load leaderboard"}), 500
