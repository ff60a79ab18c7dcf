"""
Debounced execution of a callable.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Run a function once after calls have been quiet for ``delay`` seconds.

    Each trigger() restarts the countdown; cancel() drops a pending call.
    """

    def __init__(self, fn: Callable[[], None], delay: float):
        self.fn = fn
        self.delay = delay
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            if self.delay <= 0:
                self._timer = None
                run_now = True
            else:
                self._timer = threading.Timer(self.delay, self._fire)
                self._timer.daemon = True
                self._timer.start()
                run_now = False
        if run_now:
            self.fn()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self.fn()
        except Exception:
            logger.error("Debounced call failed", exc_info=True)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
