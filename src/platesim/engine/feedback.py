"""Feedback dispatch: user-facing notifications and sound cues for transitions.

The transition rules describe *what happened* as ``Feedback`` records; the
presentation layer subscribes to a ``FeedbackDispatcher`` to show toasts and
play sounds. Rejections (circuit open, anode depleted, ...) travel the same
route: they are never raised as exceptions.
"""

from __future__ import annotations

import collections
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class Rejection(StrEnum):
    """Recoverable conditions that turn a requested transition into a no-op."""

    CIRCUIT_NOT_COMPLETE = "circuit_not_complete"
    ANODE_DEPLETED = "anode_depleted"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    OUT_OF_BOUNDS = "out_of_bounds"
    NO_WAITING_ELECTRON = "no_waiting_electron"


class FeedbackKind(StrEnum):
    """Every notification the simulation can emit."""

    # Rejections share their values with Rejection
    CIRCUIT_NOT_COMPLETE = "circuit_not_complete"
    ANODE_DEPLETED = "anode_depleted"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    OUT_OF_BOUNDS = "out_of_bounds"
    NO_WAITING_ELECTRON = "no_waiting_electron"

    ION_RELEASED = "ion_released"
    ELECTRON_AT_BATTERY = "electron_at_battery"
    ELECTRON_AT_CATHODE = "electron_at_cathode"
    ION_AT_CATHODE = "ion_at_cathode"
    PLATED = "plated"
    ANODE_CONNECTED = "anode_connected"
    CATHODE_CONNECTED = "cathode_connected"
    PLATING_COMPLETE = "plating_complete"


class SoundCue(StrEnum):
    """Short sounds the front-end synthesises."""

    SUCCESS = "success"
    ERROR = "error"
    PLATING = "plating"
    WIN = "win"
    CONNECT = "connect"
    POP = "pop"


class Variant(StrEnum):
    """Toast styling hint."""

    DEFAULT = "default"
    DESTRUCTIVE = "destructive"
    SUCCESS = "success"
    INFO = "info"


@dataclass(frozen=True)
class FeedbackSpec:
    """Catalogue entry describing how one kind of feedback is presented."""

    title: str
    description: str
    variant: Variant
    sound: SoundCue
    toast: bool = True  # False: sound only


CATALOGUE: dict[FeedbackKind, FeedbackSpec] = {
    FeedbackKind.CIRCUIT_NOT_COMPLETE: FeedbackSpec(
        "Circuit Open",
        "Connect the wires to the battery first!",
        Variant.DESTRUCTIVE,
        SoundCue.ERROR,
    ),
    FeedbackKind.ANODE_DEPLETED: FeedbackSpec(
        "Anode Depleted",
        "The silver anode has run out of material!",
        Variant.DESTRUCTIVE,
        SoundCue.ERROR,
    ),
    FeedbackKind.CAPACITY_EXCEEDED: FeedbackSpec(
        "Too Many Particles",
        "Maximum 5 particles allowed. Wait for some to complete.",
        Variant.DESTRUCTIVE,
        SoundCue.ERROR,
    ),
    FeedbackKind.OUT_OF_BOUNDS: FeedbackSpec(
        "Stay in Solution!",
        "Ions can only move within the electrolyte solution.",
        Variant.DESTRUCTIVE,
        SoundCue.ERROR,
    ),
    FeedbackKind.NO_WAITING_ELECTRON: FeedbackSpec(
        "Wait for Electron",
        "An electron must be at the cathode first!",
        Variant.DESTRUCTIVE,
        SoundCue.ERROR,
    ),
    FeedbackKind.ION_RELEASED: FeedbackSpec(
        "Ion Released",
        "An Ag+ ion entered the solution and an electron left on the wire.",
        Variant.DEFAULT,
        SoundCue.POP,
        toast=False,
    ),
    FeedbackKind.ELECTRON_AT_BATTERY: FeedbackSpec(
        "Electron at Battery",
        "Drag from -ve terminal to cathode!",
        Variant.INFO,
        SoundCue.SUCCESS,
    ),
    FeedbackKind.ELECTRON_AT_CATHODE: FeedbackSpec(
        "Electron at Cathode",
        "The electron is waiting at the copper ring.",
        Variant.DEFAULT,
        SoundCue.SUCCESS,
        toast=False,
    ),
    FeedbackKind.ION_AT_CATHODE: FeedbackSpec(
        "Ion at Cathode",
        "The ion reached the copper ring.",
        Variant.DEFAULT,
        SoundCue.SUCCESS,
        toast=False,
    ),
    FeedbackKind.PLATED: FeedbackSpec(
        "Plating Successful!",
        "Silver deposited on cathode!",
        Variant.SUCCESS,
        SoundCue.PLATING,
    ),
    FeedbackKind.ANODE_CONNECTED: FeedbackSpec(
        "Anode Connected",
        "Wire attached to silver anode.",
        Variant.DEFAULT,
        SoundCue.CONNECT,
    ),
    FeedbackKind.CATHODE_CONNECTED: FeedbackSpec(
        "Cathode Connected",
        "Wire attached to copper ring.",
        Variant.DEFAULT,
        SoundCue.CONNECT,
    ),
    FeedbackKind.PLATING_COMPLETE: FeedbackSpec(
        "Electroplating Complete!",
        "Copper ring has been successfully electroplated with silver!",
        Variant.SUCCESS,
        SoundCue.WIN,
    ),
}


@dataclass(frozen=True)
class Feedback:
    """One notification emitted by a transition.

    Attributes:
        kind: What happened.
        title: Toast title.
        description: Toast body.
        variant: Toast styling hint.
        sound: Sound cue to play.
        toast: Whether a toast should be shown at all.
        context: Extra detail such as particle ids or pair counts.
    """

    kind: FeedbackKind
    title: str
    description: str
    variant: Variant
    sound: SoundCue
    toast: bool = True
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_rejection(self) -> bool:
        return self.kind.value in Rejection._value2member_map_


def make_feedback(kind: FeedbackKind | Rejection, **context: Any) -> Feedback:
    """Build a Feedback record from the catalogue entry for ``kind``."""
    kind = FeedbackKind(kind.value)
    entry = CATALOGUE[kind]
    return Feedback(
        kind=kind,
        title=entry.title,
        description=entry.description,
        variant=entry.variant,
        sound=entry.sound,
        toast=entry.toast,
        context=context,
    )


FeedbackListener = Callable[[Feedback], None]


class FeedbackDispatcher:
    """Delivers feedback to subscribed listeners and remembers recent items.

    A listener that raises is logged and skipped; the remaining listeners
    still receive the feedback and the simulation carries on.

    Example:
        >>> dispatcher = FeedbackDispatcher()
        >>> unsubscribe = dispatcher.subscribe(print)
        >>> dispatcher.dispatch(make_feedback(FeedbackKind.PLATED))
        >>> unsubscribe()
    """

    def __init__(self, max_history: int = 50) -> None:
        self._listeners: list[FeedbackListener] = []
        self._history: collections.deque[Feedback] = collections.deque(maxlen=max_history)
        self._lock = threading.Lock()

    def subscribe(self, listener: FeedbackListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            A callable that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, feedback: Feedback) -> None:
        if feedback.is_rejection:
            logger.info("Rejected: %s", feedback.kind.value, extra=feedback.context)
        else:
            logger.debug("Feedback: %s", feedback.kind.value, extra=feedback.context)

        with self._lock:
            self._history.append(feedback)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(feedback)
            except Exception:
                logger.exception("Feedback listener failed on %s", feedback.kind.value)

    def dispatch_all(self, items: list[Feedback]) -> None:
        for feedback in items:
            self.dispatch(feedback)

    def recent(self, limit: int | None = None) -> list[Feedback]:
        """Most recent feedback, oldest first."""
        with self._lock:
            items = list(self._history)
        return items if limit is None else items[-limit:]

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
