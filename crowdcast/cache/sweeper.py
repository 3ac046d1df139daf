"""
Background sweep timer.

Runs a sweep callback on a fixed interval in a daemon thread. Each timer
owns one thread and stops via an Event, so stop() does not wait out a
full interval.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SweepTimer:
    """
    Calls sweep() every interval seconds until stopped.

    The first sweep happens one interval after start(). Errors raised by
    a sweep are logged and the loop keeps going.
    """

    def __init__(self, sweep: Callable[[], int], interval: float, name: str = 'cache-sweeper'):
        if interval <= 0:
            raise ValueError(f'interval must be positive, got {interval}')

        self._sweep = sweep
        self.interval = interval
        self.name = name

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._run_count = 0
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self) -> None:
        logger.info(f'{self.name} started (interval={self.interval}s)')

        while not self._stop_event.wait(self.interval):
            try:
                self._sweep()
                self._run_count += 1
            except Exception as e:
                self._error_count += 1
                logger.error(f'{self.name} sweep failed: {e}')

        logger.info(f'{self.name} stopped')

    def start(self) -> None:
        """Start sweeping in a background thread."""
        if self.is_running:
            logger.warning(f'{self.name} already running')
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5) -> None:
        """Stop the background thread."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def stats(self) -> dict:
        return {
            'run_count': self._run_count,
            'error_count': self._error_count,
            'interval': self.interval,
            'running': self.is_running,
        }
