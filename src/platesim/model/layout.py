"""Layout dataclasses: where the front-end has placed the apparatus.

The engine never measures the screen. The presentation layer reports anchor
positions and regions in logical coordinates and the engine derives the wire
paths from them.
"""

from __future__ import annotations

from dataclasses import dataclass

from platesim.model.geometry import Point, Rect, WirePath


@dataclass(frozen=True)
class Anchors:
    """Centres of the four elements the wires attach to."""

    plus_terminal: Point
    minus_terminal: Point
    anode_connector: Point
    cathode_connector: Point


@dataclass(frozen=True)
class Layout:
    """Geometry the simulation rules consult.

    Wire paths stay ``None`` until the front-end has reported anchors; until
    then electrons cannot be dragged.
    """

    electrolyte: Rect = Rect(200.0, 290.0, 800.0, 580.0)
    cathode_target: Rect = Rect(640.0, 330.0, 720.0, 470.0)
    anode_electrode: Rect = Rect(280.0, 300.0, 320.0, 500.0)
    cathode_electrode: Rect = Rect(640.0, 330.0, 720.0, 470.0)
    ion_origin: Point = Point(330.0, 400.0)
    anode_wire: WirePath | None = None
    cathode_wire: WirePath | None = None
