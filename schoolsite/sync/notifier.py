"""
In-process change notification for the site document.
"""
import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class Subscription:
    """Handle returned by ChangeNotifier.subscribe; call unsubscribe() to stop."""

    def __init__(self, notifier: "ChangeNotifier", listener: Listener):
        self._notifier = notifier
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._notifier._remove(self.listener)
            self.active = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()
        return False


class ChangeNotifier:
    """
    Publish/subscribe channel for "the document changed" signals.

    Listeners receive the name of the changed top-level field. Delivery is
    best effort: a failing listener is logged and the others still run.
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Subscription:
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, changed_field: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(changed_field)
            except Exception:
                logger.warning(f"Change listener {listener!r} failed", exc_info=True)
