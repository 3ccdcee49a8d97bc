"""
Spotify streaming player adapter.

The browser runs the Web Playback SDK and registers its device id with us;
everything else (play, pause, seek, volume, polling the playback state) goes
through the Spotify Web API with the user's own token.
"""

import logging
import requests
import spotipy
from spotipy.exceptions import SpotifyException
from soundboard.errors import SoundboardError
from .adapter import TrackSourceAdapter, clamp_volume
from .detector import EndOfTrackDetector
from .poller import IntervalPoller

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
API_ERRORS = (SpotifyException, requests.exceptions.RequestException)


def rejects_request(error):
    """True when Spotify answered but refused the request itself (e.g. unplayable uri)"""
    if not isinstance(error, SpotifyException):
        return False
    if error.http_status not in (400, 404):
        return False
    # A missing device is a connectivity problem, not a bad track
    return "device" not in str(error.msg).lower()


def default_client_factory(access_token):
    return spotipy.Spotify(auth=access_token, requests_timeout=5, retries=0)


class StreamingPlayer(TrackSourceAdapter):
    kind = "spotify"

    def __init__(self, token_provider, token_refresher=None, notify=None,
                 client_factory=None, detector=None, poll_interval=DEFAULT_POLL_INTERVAL,
                 poll=True):
        super().__init__(notify)
        self.token_provider = token_provider
        self.token_refresher = token_refresher
        self.client_factory = client_factory or default_client_factory
        self.detector = detector or EndOfTrackDetector()
        self.poll_interval = poll_interval
        self.poll = poll
        self.device_id = None
        self._token = None
        self._client = None
        self._poller = None
        self._started_for = None
        self.rejection = None

    @property
    def is_connected(self):
        return self._token is not None

    @property
    def is_ready(self):
        return self.device_id is not None

    def _use_token(self, token):
        self._token = token
        self._client = self.client_factory(token) if token else None
        return token is not None

    def connect(self):
        """Load the user's Spotify token; False means the user still has to connect"""
        try:
            token = self.token_provider()
        except SoundboardError as e:
            logger.info(f"Spotify not connected: {e}")
            token = None
        except requests.exceptions.RequestException as e:
            logger.error(f"Error checking Spotify connection: {e}")
            self.notify("error", "Could not reach Spotify")
            token = None
        return self._use_token(token)

    def reconnect(self):
        """Force a fresh token after Spotify rejected a request"""
        refresher = self.token_refresher or self.token_provider
        try:
            token = refresher()
        except (SoundboardError, requests.exceptions.RequestException) as e:
            logger.error(f"Spotify reconnect failed: {e}")
            self._use_token(None)
            return False
        logger.info("Reconnected to Spotify with a fresh token")
        return self._use_token(token)

    def register_device(self, device_id):
        """The browser SDK reported ready"""
        self.device_id = device_id
        logger.info(f"Spotify player ready with device ID: {device_id}")
        self.notify("success", "Spotify connected")

    def unregister_device(self):
        logger.info(f"Device has gone offline: {self.device_id}")
        self.device_id = None
        self._stop_polling()

    def identifier_for(self, entry):
        return f"spotify:track:{entry.source_track_id}"

    def _call(self, action, method, *args, **kwargs):
        """
        Run a Web API call; on failure reconnect once and retry.

        A request Spotify refuses for its content (bad or unavailable track)
        is not retried and is kept in ``rejection``. Anything else counts as
        a connectivity problem.
        """
        self.rejection = None
        try:
            method(self._client, *args, **kwargs)
            return True
        except API_ERRORS as e:
            if rejects_request(e):
                logger.warning(f"Spotify refused {action}: {e}")
                self.rejection = e
                return False
            logger.warning(f"Spotify {action} failed, reconnecting: {e}")

        if not self.reconnect():
            self.notify("error", f"Spotify {action} failed")
            return False

        try:
            method(self._client, *args, **kwargs)
            return True
        except API_ERRORS as e:
            if rejects_request(e):
                self.rejection = e
            logger.error(f"Spotify {action} failed after reconnect: {e}")
            self.notify("error", f"Spotify {action} failed")
            return False

    def _load(self, identifier):
        self.detector.reset()
        self._started_for = None
        played = self._call(
            "play",
            lambda client: client.start_playback(device_id=self.device_id, uris=[identifier]),
        )
        if not played:
            # Only a refused track is the track's fault; an outage leaves the queue alone
            if self.rejection is not None:
                self._signal_error(f"Could not play {identifier}")
            return False

        self.is_paused = False
        self._start_polling()
        return True

    def pause(self):
        if not self._available("pause"):
            return False
        if self._call("pause", lambda client: client.pause_playback(device_id=self.device_id)):
            self.is_paused = True
            return True
        return False

    def resume(self):
        if not self._available("resume"):
            return False
        if self._call("resume", lambda client: client.start_playback(device_id=self.device_id)):
            self.is_paused = False
            return True
        return False

    def seek(self, position_ms):
        if not self._available("seek"):
            return False
        if self._call("seek", lambda client: client.seek_track(int(position_ms), device_id=self.device_id)):
            self.position_ms = int(position_ms)
            return True
        return False

    def skip_to_previous(self):
        if not self._available("previous"):
            return False
        return self._call("previous", lambda client: client.previous_track(device_id=self.device_id))

    def skip_to_next(self):
        if not self._available("next"):
            return False
        return self._call("next", lambda client: client.next_track(device_id=self.device_id))

    def set_volume(self, volume):
        if not self._available("volume"):
            return False
        percent = int(round(clamp_volume(volume) * 100))
        return self._call("volume", lambda client: client.volume(percent, device_id=self.device_id))

    # End-of-track polling

    def _start_polling(self):
        if not self.poll:
            return
        if self._poller is None:
            self._poller = IntervalPoller(self.poll_interval, self.sample_playback, name="spotify-poller")
        self._poller.start()

    def _stop_polling(self):
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    def sample_playback(self):
        """One poll of the playback state; returns True if it ended the track"""
        if self._client is None or self._loaded_id is None:
            return False

        try:
            state = self._client.current_playback()
        except API_ERRORS as e:
            logger.warning(f"Could not read Spotify playback state: {e}")
            return False

        item = (state or {}).get("item")
        if not item or item.get("uri") != self._loaded_id:
            return False

        position = state.get("progress_ms") or 0
        duration = item.get("duration_ms") or 0
        paused = not state.get("is_playing", False)
        self.position_ms, self.duration_ms, self.is_paused = position, duration, paused
        self._signal_progress()

        if not paused and self._started_for != self._loaded_id:
            self._started_for = self._loaded_id
            self._signal_started()

        if self.detector.sample(position, duration, paused):
            return self._signal_end()
        return False

    def unload(self):
        self._stop_polling()
        super().unload()

    def close(self):
        self.unload()
        self.device_id = None
