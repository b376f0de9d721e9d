"""Particle dataclasses: free-moving ions and wire-bound electrons."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

from platesim.model.geometry import Point


class Status(StrEnum):
    """Particle lifecycle status. Consumed particles are simply removed."""

    ACTIVE = "active"
    WAITING = "waiting"


class Segment(StrEnum):
    """The wire an electron is currently bound to."""

    ANODE_WIRE = "anode_wire"
    CATHODE_WIRE = "cathode_wire"


@dataclass
class Ion:
    """A dissolved silver cation, dragged freely inside the electrolyte."""

    id: str
    position: Point
    status: Status = Status.ACTIVE
    arrival: int | None = None  # order of entering WAITING, used for pairing

    kind: ClassVar[str] = "ion"


@dataclass
class Electron:
    """An electron travelling one way along a wire segment.

    ``progress`` runs from 0.0 (start of the segment) to 1.0 (its end) and
    never decreases while the electron stays on the same segment.
    """

    id: str
    position: Point
    segment: Segment
    progress: float = 0.0
    status: Status = Status.ACTIVE
    arrival: int | None = None

    kind: ClassVar[str] = "electron"


Particle = Ion | Electron
