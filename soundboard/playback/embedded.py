"""
Embedded YouTube player adapter.

The IFrame player lives in the browser tab; this adapter drives it with
``video_player`` commands and listens to the state reports the tab sends
back. Every track swap destroys the previous player instance and creates a
new one, and reports carrying an older instance id are ignored.
"""

import logging
from .adapter import TrackSourceAdapter, clamp_volume

logger = logging.getLogger(__name__)

# YouTube IFrame API player states
UNSTARTED = -1
ENDED = 0
PLAYING = 1
PAUSED = 2
BUFFERING = 3
CUED = 5


class EmbeddedVideoPlayer(TrackSourceAdapter):
    kind = "youtube"

    def __init__(self, send, notify=None):
        super().__init__(notify)
        self.send = send
        self.api_ready = False
        self.instance_id = 0
        self.instance_live = False
        self.player_state = UNSTARTED

    @property
    def is_connected(self):
        # No account needed for embedded videos
        return True

    @property
    def is_ready(self):
        return self.api_ready

    def mark_api_ready(self):
        """The tab finished loading the IFrame API (happens once per page)"""
        if not self.api_ready:
            logger.info("YouTube IFrame API ready")
        self.api_ready = True

    def identifier_for(self, entry):
        return entry.youtube_video_id

    def _command(self, action, **payload):
        payload.update(action=action, instance_id=self.instance_id)
        self.send("video_player", payload)

    def _destroy_instance(self):
        if self.instance_live:
            self._command("destroy")
            self.instance_live = False

    def _load(self, identifier):
        self._destroy_instance()
        self.instance_id += 1
        self.instance_live = True
        self.player_state = UNSTARTED
        self.position_ms = 0
        self.duration_ms = 0
        self.is_paused = False
        self._command("create", video_id=identifier, autoplay=True)
        logger.info(f"Created video player #{self.instance_id} for {identifier}")
        return True

    def _is_current(self, instance_id):
        if instance_id != self.instance_id:
            logger.debug(f"Ignoring report from stale video player #{instance_id}")
            return False
        return True

    def handle_state_change(self, instance_id, state):
        """State report from the tab's player"""
        if not self._is_current(instance_id):
            return False

        self.player_state = state
        if state == PLAYING:
            self.is_paused = False
            self._signal_started()
        elif state == PAUSED:
            self.is_paused = True
        elif state == ENDED:
            self.is_paused = True
            return self._signal_end()
        return False

    def handle_progress(self, instance_id, current_time, duration):
        """Progress report in seconds, as getCurrentTime()/getDuration() give them"""
        if not self._is_current(instance_id):
            return False
        self.position_ms = int(current_time * 1000)
        self.duration_ms = int(duration * 1000)
        self._signal_progress()
        return True

    def handle_error(self, instance_id, code):
        if not self._is_current(instance_id):
            return False
        logger.error(f"Video player #{instance_id} error {code} for {self._loaded_id}")
        self.notify("error", "Video could not be played")
        self._signal_error(f"YouTube error {code}")
        return True

    def get_current_time(self):
        return self.position_ms / 1000

    def get_duration(self):
        return self.duration_ms / 1000

    def pause(self):
        if not self._available("pause"):
            return False
        self._command("pause")
        self.is_paused = True
        return True

    def resume(self):
        if not self._available("resume"):
            return False
        self._command("resume")
        self.is_paused = False
        return True

    def seek(self, position_ms):
        if not self._available("seek"):
            return False
        self._command("seek", seconds=position_ms / 1000)
        self.position_ms = int(position_ms)
        return True

    def set_volume(self, volume):
        if not self._available("volume"):
            return False
        self._command("volume", volume=int(round(clamp_volume(volume) * 100)))
        return True

    def unload(self):
        self._destroy_instance()
        super().unload()
