"""Particle id generators, injected into the transition rules."""

from __future__ import annotations

import itertools
import threading
import uuid
from collections.abc import Callable

IdFactory = Callable[[str], str]


class SequentialIds:
    """Deterministic ids: ``ion-1``, ``electron-2``, ``electron-3``, ...

    One counter is shared by every prefix so ids stay unique across kinds.
    """

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            return f"{prefix}-{next(self._counter)}"


def random_ids(prefix: str) -> str:
    """Globally unique ids for sessions that outlive a process."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
