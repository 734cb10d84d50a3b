"""
Periodic background tasks.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run a callable on a fixed interval in a daemon thread.

    The thread blocks only on its interval and the stop signal. A cycle
    that has started always runs to completion before ``stop()`` returns.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Any],
        run_immediately: bool = False,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.func = func
        self.run_immediately = run_immediately
        self.cycles = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"Started periodic task {self.name} (every {self.interval}s)")

    def _run(self) -> None:
        if self.run_immediately:
            self._cycle()
        while not self._stop.wait(self.interval):
            self._cycle()

    def _cycle(self) -> None:
        try:
            self.func()
        except Exception as e:
            # One bad cycle must not kill the task
            logger.error(f"Periodic task {self.name} failed: {e}", exc_info=e)
        finally:
            self.cycles += 1

    def stop(self, timeout: float | None = None) -> None:
        """Signal shutdown and wait for the in-flight cycle to finish."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
            logger.debug(f"Stopped periodic task {self.name}")
