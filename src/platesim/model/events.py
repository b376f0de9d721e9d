"""Input events accepted by the transition reducer.

Each user gesture or timer firing maps to exactly one event; the reducer
turns ``(state, event)`` into the next state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from platesim.model.geometry import Point
from platesim.model.layout import Anchors, Layout


class WireSide(StrEnum):
    """Which electrode a wire handle attaches to."""

    ANODE = "anode"
    CATHODE = "cathode"


@dataclass(frozen=True)
class SpawnIon:
    """Click on the anode: release one ion and one electron."""


@dataclass(frozen=True)
class DragElectron:
    """Pointer moved while dragging an electron."""

    particle_id: str
    point: Point


@dataclass(frozen=True)
class ReleaseElectron:
    """Electron drag finished."""

    particle_id: str


@dataclass(frozen=True)
class MoveIon:
    """Pointer moved while dragging an ion."""

    particle_id: str
    point: Point


@dataclass(frozen=True)
class DropIon:
    """Ion drag finished at ``point``."""

    particle_id: str
    point: Point


@dataclass(frozen=True)
class ConnectWire:
    """Latch a wire as connected."""

    side: WireSide


@dataclass(frozen=True)
class DropWireHandle:
    """A wire handle was dropped; it connects only near its electrode."""

    side: WireSide
    point: Point


@dataclass(frozen=True)
class UpdateLayout:
    """Replace the whole layout (regions and wire paths)."""

    layout: Layout


@dataclass(frozen=True)
class UpdateAnchors:
    """Anchor elements moved; rebuild both wire paths from them."""

    anchors: Anchors


@dataclass(frozen=True)
class Tick:
    """One firing of the flow indicator timer."""


@dataclass(frozen=True)
class Restart:
    """Reset particles, ledger and latches to their initial values."""


Event = (
    SpawnIon
    | DragElectron
    | ReleaseElectron
    | MoveIon
    | DropIon
    | ConnectWire
    | DropWireHandle
    | UpdateLayout
    | UpdateAnchors
    | Tick
    | Restart
)
