"""
Periodic scheduling for the tracking loop.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger('keycompass.scheduler')


class RepeatingTimer:
    """
    Calls a function every `interval` seconds on a daemon thread.

    The first call happens one interval after start(). Exceptions raised by
    the callback are logged and do not end the timer.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str = 'repeating-timer'):
        if interval <= 0:
            raise ValueError('Interval must be positive')
        self.interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True, name=name)

    def start(self) -> 'RepeatingTimer':
        self._thread.start()
        return self

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Timer callback failed: {e}")

    def cancel(self) -> None:
        """
        Stop the timer. Safe to call more than once, including from the callback.

        Does not wait for a callback already in progress; use join() for that.
        """
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)

    @property
    def is_active(self) -> bool:
        return self._thread.is_alive() and not self._stop_event.is_set()


class ThreadScheduler:
    """Creates one RepeatingTimer thread per schedule."""

    def __init__(self, thread_name: Optional[str] = None):
        self._thread_name = thread_name or 'tracking-timer'

    def call_every(self, interval: float, callback: Callable[[], None]) -> RepeatingTimer:
        """
        Run callback every interval seconds until the returned handle is cancelled.

        Returns:
            Handle exposing cancel().
        """
        return RepeatingTimer(interval, callback, name=self._thread_name).start()
