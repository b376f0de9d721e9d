"""Geometry value types: Point, Rect and WirePath in the logical frame.

The logical frame is the 1000x600 viewBox the front-end draws into; device
pixels are mapped onto it before any event reaches the engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Point:
    """A 2-D coordinate in the logical frame."""

    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def lerp(self, other: Point, t: float) -> Point:
        """Linear interpolation from self (t=0) to other (t=1)."""
        return Point(self.x + (other.x - self.x) * t, self.y + (other.y - self.y) * t)


ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned region, edges inclusive."""

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        if self.right < self.left or self.bottom < self.top:
            raise ValueError(f"Degenerate rect: {self}")

    def contains(self, point: Point) -> bool:
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom

    def expanded(self, margin: float) -> Rect:
        """Grow the rect by ``margin`` on every side."""
        return Rect(
            self.left - margin,
            self.top - margin,
            self.right + margin,
            self.bottom + margin,
        )


@dataclass(frozen=True)
class WirePath:
    """An ordered polyline of at least two waypoints.

    Progress along the path is parametric: each of the ``n - 1`` segments
    takes an equal share of [0, 1] regardless of its physical length.
    """

    waypoints: tuple[Point, ...]

    def __post_init__(self) -> None:
        if len(self.waypoints) < 2:
            raise ValueError(f"A wire path needs at least 2 waypoints, got {len(self.waypoints)}")

    @classmethod
    def through(cls, *points: Point | tuple[float, float]) -> WirePath:
        """Build a path from points or (x, y) pairs."""
        return cls(tuple(p if isinstance(p, Point) else Point(*p) for p in points))

    @property
    def start(self) -> Point:
        return self.waypoints[0]

    @property
    def end(self) -> Point:
        return self.waypoints[-1]

    @property
    def segment_count(self) -> int:
        return len(self.waypoints) - 1
