"""Collapse bursts of triggers into one delayed call."""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Run only the most recent action once the quiescence window elapses."""

    def __init__(
        self,
        delay: float = 0.5,
        timer_factory: Callable[[float, Callable[[], None]], threading.Timer] = threading.Timer,
    ):
        """Initialize debouncer.

        Args:
            delay: Quiescence window in seconds
            timer_factory: Builds a startable, cancellable timer
        """
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None

    def trigger(self, action: Callable[[], None]):
        """Cancel any pending action and schedule ``action`` after the window."""
        timer = self._timer_factory(self.delay, action)
        timer.daemon = True
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = timer
            timer.start()

    def cancel(self):
        """Drop the pending action, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
