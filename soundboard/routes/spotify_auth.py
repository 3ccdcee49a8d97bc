"""
Spotify account routes for Soundboard Work.
Handles the authorization-code flow and hands user tokens to the player.
"""

import logging
from flask import Blueprint, current_app, jsonify, render_template_string, request
from soundboard.errors import SoundboardError
from .helpers import current_user, error_response, not_signed_in

logger = logging.getLogger(__name__)

spotify_auth_bp = Blueprint('spotify_auth', __name__)

# The consent screen opens in a popup; tell the opener and close
CALLBACK_PAGE = """<!DOCTYPE html>
<html>
<head><title>Spotify</title></head>
<body>
<p>{{ message }}</p>
<script>
  if (window.opener) {
    window.opener.postMessage({type: {{ event|tojson }}, error: {{ error|tojson }}}, "*");
  }
  window.close();
</script>
</body>
</html>
"""


@spotify_auth_bp.route("/authorize", methods=["GET"])
def authorize():
    """Spotify consent URL for the current user"""
    user = current_user()
    if user is None:
        return not_signed_in()
    try:
        return jsonify({"authUrl": current_app.token_broker.authorize_url(user[0])})
    except SoundboardError as e:
        return error_response(e)


@spotify_auth_bp.route("/callback", methods=["GET"])
def callback():
    """OAuth redirect target"""
    user = current_user()
    error = request.args.get("error")
    if user is None:
        error = error or "Session expired, please try again"

    if not error:
        try:
            current_app.token_broker.exchange(request.args.get("code"), request.args.get("state"), user[0])
        except SoundboardError as e:
            logger.error(f"Spotify callback failed: {e}")
            error = e.message

    if error:
        return render_template_string(CALLBACK_PAGE, event="spotify-error", error=error,
                                      message="Could not connect Spotify."), 400
    return render_template_string(CALLBACK_PAGE, event="spotify-connected", error=None,
                                  message="Spotify connected, you can close this window.")


@spotify_auth_bp.route("/token", methods=["GET", "POST"])
def token():
    """The user's access token, refreshed when it is about to expire"""
    user = current_user()
    if user is None:
        return not_signed_in()
    try:
        access_token = current_app.token_broker.get_access_token(user[0])
        return jsonify({"access_token": access_token, "is_connected": True})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Spotify token error: {e}")
        return jsonify({"error": "Failed to load Spotify token"}), 500


@spotify_auth_bp.route("/token", methods=["DELETE"])
def disconnect():
    """Forget the user's Spotify tokens"""
    user = current_user()
    if user is None:
        return not_signed_in()
    current_app.token_broker.disconnect(user[0])
    return jsonify({"is_connected": False})


@spotify_auth_bp.route("/refresh", methods=["POST"])
def refresh():
    user = current_user()
    if user is None:
        return not_signed_in()
    try:
        return jsonify({"access_token": current_app.token_broker.refresh(user[0])})
    except SoundboardError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Spotify refresh error: {e}")
        return jsonify({"error": "Failed to refresh token"}), 500
