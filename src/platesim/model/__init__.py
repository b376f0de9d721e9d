"""Domain model: particles, geometry, layout, ledger, events and state."""

from platesim.model.events import (
    ConnectWire,
    DragElectron,
    DropIon,
    DropWireHandle,
    Event,
    MoveIon,
    ReleaseElectron,
    Restart,
    SpawnIon,
    Tick,
    UpdateAnchors,
    UpdateLayout,
    WireSide,
)
from platesim.model.geometry import Point, Rect, WirePath
from platesim.model.layout import Anchors, Layout
from platesim.model.ledger import Ledger
from platesim.model.particle import Electron, Ion, Particle, Segment, Status
from platesim.model.state import SimState

__all__ = [
    "Anchors",
    "ConnectWire",
    "DragElectron",
    "DropIon",
    "DropWireHandle",
    "Electron",
    "Event",
    "Ion",
    "Layout",
    "Ledger",
    "MoveIon",
    "Particle",
    "Point",
    "Rect",
    "ReleaseElectron",
    "Restart",
    "Segment",
    "SimState",
    "SpawnIon",
    "Status",
    "Tick",
    "UpdateAnchors",
    "UpdateLayout",
    "WirePath",
    "WireSide",
]
