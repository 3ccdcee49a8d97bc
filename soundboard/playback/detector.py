"""
End-of-track detection for players that never announce the end of a track.

The detector is fed one sample per poll and walks a small state machine:

    ARMED --near end & stalled--> COUNTING(1) --...--> COUNTING(n) --> FIRED
      ^                              |                                  |
      +-------- any other sample ----+        position back near zero --+

A single near-end sample is normal jitter; only ``required_samples``
consecutive near-end samples while the position is stalled (or playback
is paused) count as the track having ended.
"""

from enum import Enum

DEFAULT_TOLERANCE_MS = 2000
DEFAULT_REQUIRED_SAMPLES = 3


class DetectorState(Enum):
    ARMED = "armed"
    COUNTING = "counting"
    FIRED = "fired"


class EndOfTrackDetector:
    def __init__(self, tolerance_ms=DEFAULT_TOLERANCE_MS, required_samples=DEFAULT_REQUIRED_SAMPLES):
        if required_samples < 1:
            raise ValueError("required_samples must be at least 1")
        self.tolerance_ms = tolerance_ms
        self.required_samples = required_samples
        self.reset()

    def reset(self):
        """Rearm for a freshly loaded track"""
        self.state = DetectorState.ARMED
        self.count = 0
        self.last_position_ms = None

    def sample(self, position_ms, duration_ms, paused):
        """Feed one playback sample; True exactly when the track is declared ended"""
        previous = self.last_position_ms
        self.last_position_ms = position_ms

        if self.state is DetectorState.FIRED:
            if position_ms <= self.tolerance_ms and (previous is None or position_ms < previous):
                self.reset()
                self.last_position_ms = position_ms
            return False

        near_end = duration_ms > 0 and duration_ms - position_ms <= self.tolerance_ms
        stalled = paused or (previous is not None and position_ms <= previous)

        if not (near_end and stalled):
            self.state = DetectorState.ARMED
            self.count = 0
            return False

        self.count += 1
        if self.count >= self.required_samples:
            self.state = DetectorState.FIRED
            return True

        self.state = DetectorState.COUNTING
        return False
