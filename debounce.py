"""Debounced invocation of the location search.

Each keystroke restarts the timer.  Only the last value typed before the
input goes quiet for the full interval is passed to the callback; every
superseded value is dropped without a call.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _thread_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class Debouncer(Generic[T]):
    """Coalesce rapid ``trigger`` calls into one delayed ``callback(value)``.

    ``timer_factory(interval, fn)`` must return an object with ``start()``
    and ``cancel()`` (``threading.Timer`` by default).  A timer that has
    already started to fire when it is superseded still checks its
    generation under the lock and returns without calling ``callback``.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[T], None],
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.interval = interval
        self._callback = callback
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.Lock()
        self._generation = 0
        self._timer: Any = None
        self._pending: Optional[T] = None
        self._has_pending = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def trigger(self, value: T) -> None:
        """Schedule ``callback(value)``, cancelling any pending invocation."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation
            self._pending = value
            self._has_pending = True
            self._timer = self._timer_factory(
                self.interval, lambda: self._fire(generation),
            )
            self._timer.start()

    def cancel(self) -> None:
        """Drop the pending invocation, if any."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1

    def flush(self) -> None:
        """Run the pending invocation now instead of waiting for the timer."""
        with self._lock:
            if not self._has_pending:
                return
            generation = self._generation
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._fire(generation)

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self._has_pending = False

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._has_pending:
                LOGGER.debug("Skipping superseded debounced call (generation %d)", generation)
                return
            value = self._pending
            self._timer = None
            self._pending = None
            self._has_pending = False
        self._callback(value)  # type: ignore[arg-type]
