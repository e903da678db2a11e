"""One-tick-per-second timer driving the elapsed recording counter."""

import logging
from threading import Thread, Event, current_thread
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ElapsedTimer:
    """Calls a tick callback at a fixed interval on a background thread."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self.stop_event = Event()
        self.thread: Optional[Thread] = None

    def start(self) -> None:
        if self.thread and self.thread.is_alive():
            return
        self.stop_event.clear()
        self.thread = Thread(target=self._run, daemon=True)
        self.thread.name = "ElapsedTimerThread"
        self.thread.start()

    def stop(self) -> None:
        self.stop_event.set()
        if self.thread and self.thread is not current_thread():
            self.thread.join(timeout=self.interval + 1.0)
            if self.thread.is_alive():
                logger.warning("Elapsed timer thread did not stop cleanly")

    def _run(self) -> None:
        while not self.stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Elapsed timer callback raised: {e}", exc_info=True)
