"""
Spotify user tokens for Soundboard Work.
Runs the authorization-code flow, keeps each user's tokens on their profile
row and refreshes them shortly before they expire.
"""

import logging
import time
from datetime import datetime, timezone
import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError
from soundboard.errors import PayloadError, SpotifyAuthError, SpotifyNotConnected
from soundboard.models import Profile, get_db

logger = logging.getLogger(__name__)

SCOPES = "streaming user-read-email user-read-private user-read-playback-state user-modify-playback-state"
REFRESH_SKEW = 5 * 60
OAUTH_ERRORS = (SpotifyOauthError, requests.exceptions.RequestException)


def make_oauth(client_id, client_secret, redirect_uri):
    return SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=SCOPES,
        cache_handler=MemoryCacheHandler(),
        open_browser=False,
        requests_timeout=10,
    )


def _epoch(value):
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


class TokenBroker:
    def __init__(self, session_factory, oauth=None, clock=time.time, skew=REFRESH_SKEW):
        self.session_factory = session_factory
        self.oauth = oauth
        self.clock = clock
        self.skew = skew

    @property
    def configured(self):
        return self.oauth is not None

    def _require_oauth(self):
        if self.oauth is None:
            raise SpotifyAuthError("Spotify credentials not configured")
        return self.oauth

    def _expiry(self, token_info):
        expires_at = token_info.get("expires_at")
        if not expires_at:
            expires_at = self.clock() + token_info.get("expires_in", 3600)
        return datetime.fromtimestamp(expires_at, timezone.utc)

    def authorize_url(self, user_id):
        """Spotify consent URL; the state parameter carries the user id back"""
        return self._require_oauth().get_authorize_url(state=user_id)

    def exchange(self, code, state, user_id):
        """Trade an authorization code for tokens and store them on the profile"""
        if not code or state != user_id:
            raise PayloadError("Invalid callback parameters")

        try:
            token_info = self._require_oauth().get_access_token(code, as_dict=True, check_cache=False)
        except OAUTH_ERRORS as e:
            logger.error(f"Spotify code exchange failed for {user_id}: {e}")
            raise SpotifyAuthError("Failed to exchange code for tokens") from e

        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            if profile is None:
                raise SpotifyNotConnected("No profile for this user", details={"user_id": user_id})
            profile.spotify_access_token = token_info["access_token"]
            profile.spotify_refresh_token = token_info.get("refresh_token")
            profile.spotify_token_expires_at = self._expiry(token_info)

        logger.info(f"Stored Spotify tokens for {user_id}")
        return token_info["access_token"]

    def is_connected(self, user_id):
        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            return bool(profile and profile.spotify_access_token)

    def get_access_token(self, user_id):
        """Current access token, refreshed when it expires within the skew window"""
        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            if profile is None or not profile.spotify_access_token:
                raise SpotifyNotConnected()
            access_token = profile.spotify_access_token
            expires_at = _epoch(profile.spotify_token_expires_at)

        if expires_at - self.clock() >= self.skew:
            return access_token

        try:
            return self.refresh(user_id)
        except (SpotifyAuthError, SpotifyNotConnected) as e:
            # The old token may still have a few minutes left
            logger.warning(f"Token refresh for {user_id} failed, using stored token: {e}")
            return access_token

    def refresh(self, user_id):
        """Force a refresh with the stored refresh token"""
        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            refresh_token = profile.spotify_refresh_token if profile else None
        if not refresh_token:
            raise SpotifyNotConnected("No refresh token found")

        try:
            token_info = self._require_oauth().refresh_access_token(refresh_token)
        except OAUTH_ERRORS as e:
            logger.error(f"Spotify token refresh failed for {user_id}: {e}")
            raise SpotifyAuthError("Failed to refresh token") from e

        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            if profile is None:
                raise SpotifyNotConnected()
            profile.spotify_access_token = token_info["access_token"]
            # Spotify only sometimes rotates the refresh token
            if token_info.get("refresh_token"):
                profile.spotify_refresh_token = token_info["refresh_token"]
            profile.spotify_token_expires_at = self._expiry(token_info)

        logger.info(f"Refreshed Spotify token for {user_id}")
        return token_info["access_token"]

    def disconnect(self, user_id):
        with get_db(self.session_factory) as db:
            profile = db.get(Profile, user_id)
            if profile is None:
                return False
            profile.spotify_access_token = None
            profile.spotify_refresh_token = None
            profile.spotify_token_expires_at = None
        return True
