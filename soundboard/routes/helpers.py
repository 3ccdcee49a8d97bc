"""
Helpers shared by the Soundboard Work blueprints.
"""

import logging
from flask import jsonify, request, session

logger = logging.getLogger(__name__)


def current_user():
    """(user_id, display_name) from the session, or None before a name is picked"""
    user_id = session.get("user_id")
    if not user_id:
        return None
    return user_id, session.get("display_name") or "Someone"


def not_signed_in():
    return jsonify({"error": "Pick a name first"}), 401


def error_response(error):
    """JSON error for a SoundboardError, with the status code it carries"""
    if error.status_code >= 500:
        logger.error(f"{type(error).__name__}: {error.message} {error.details}")
    else:
        logger.info(f"{type(error).__name__}: {error.message}")
    return jsonify({"error": error.message}), error.status_code


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
