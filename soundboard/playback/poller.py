"""
Fixed-interval background poller.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class IntervalPoller:
    """Calls ``tick`` every ``interval`` seconds on a daemon thread until stopped"""

    def __init__(self, interval, tick, name="poller"):
        self.interval = interval
        self.tick = tick
        self.name = name
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"{self.name} tick failed: {e}")

    def stop(self):
        self._stop.set()
        thread = self._thread
        self._thread = None
        # A tick may stop its own poller
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval * 4)
