"""Periodic timer driving the cosmetic current-flow indicator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class FlowTimer(Protocol):
    """Something that calls back at a fixed interval until stopped."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    @property
    def running(self) -> bool: ...


TimerFactory = Callable[[float, Callable[[], None]], FlowTimer]


class ThreadedFlowTimer:
    """Daemon thread calling ``callback`` every ``interval`` seconds.

    ``stop()`` wakes the thread immediately and waits for it to exit, so no
    callback runs after ``stop()`` returns.
    """

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self._interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="flow-timer", daemon=True)
        self._thread.start()
        logger.debug("Flow timer started (interval=%.3fs)", self._interval)

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=2.0)
        self._thread = None
        logger.debug("Flow timer stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Flow timer callback failed")
