"""Path geometry: positions along wire polylines and the nearest-progress search.

Progress along a path is parametric, not arc-length: a path of ``n``
waypoints is split into ``n - 1`` segments that each own an equal share of
[0, 1]. The nearest-progress search samples the path uniformly and never
returns less than the caller's current progress, which is what makes
electron travel one-way.
"""

from __future__ import annotations

import math

from platesim.model.geometry import Point, WirePath
from platesim.model.layout import Anchors

DEFAULT_SAMPLES = 101
DEFAULT_CLEARANCE = 40.0


def point_at_progress(path: WirePath, t: float) -> Point:
    """Position at fractional progress ``t`` along ``path``.

    Args:
        path: The wire polyline.
        t: Progress; values outside [0, 1] clamp to the end waypoints.

    Returns:
        Linearly interpolated point within segment ``floor(t * (n - 1))``.
    """
    if t <= 0:
        return path.start
    if t >= 1:
        return path.end

    scaled = t * path.segment_count
    index = math.floor(scaled)
    last = len(path.waypoints) - 1
    start = path.waypoints[min(index, last)]
    end = path.waypoints[min(index + 1, last)]
    return start.lerp(end, scaled - index)


def nearest_progress(
    path: WirePath,
    point: Point,
    current: float,
    samples: int = DEFAULT_SAMPLES,
) -> float:
    """Progress along ``path`` closest to ``point``, never below ``current``.

    Scans ``samples`` evenly spaced values of t in [0, 1]; the first sample
    at the minimum distance wins.
    """
    if samples < 2:
        raise ValueError(f"samples must be at least 2, got {samples}")

    best_t = current
    best_distance = math.inf
    for i in range(samples):
        t = i / (samples - 1)
        distance = point_at_progress(path, t).distance_to(point)
        if distance < best_distance:
            best_distance = distance
            best_t = t

    return max(current, best_t)


def build_wire_paths(
    anchors: Anchors,
    clearance: float = DEFAULT_CLEARANCE,
) -> tuple[WirePath, WirePath]:
    """Route both wires from the anchor positions.

    Each wire rises vertically from its electrode connector to a shared run
    ``clearance`` above the higher battery terminal, then goes across to the
    terminal. The anode wire ends at the plus terminal; the cathode wire
    starts at the minus terminal.

    Returns:
        (anode_wire, cathode_wire)
    """
    top = min(anchors.plus_terminal.y, anchors.minus_terminal.y) - clearance
    anode = anchors.anode_connector
    cathode = anchors.cathode_connector

    anode_wire = WirePath.through(
        anode,
        Point(anode.x, top),
        Point(anchors.plus_terminal.x, top),
    )
    cathode_wire = WirePath.through(
        Point(anchors.minus_terminal.x, top),
        Point(cathode.x, top),
        cathode,
    )
    return anode_wire, cathode_wire


def flow_indicator_position(
    anode_wire: WirePath | None,
    cathode_wire: WirePath | None,
    progress: float,
) -> Point | None:
    """Map one progress value across the anode wire followed by the cathode wire.

    Each wire is weighted by its segment count as a stand-in for length.

    Returns:
        The indicator position, or None if neither wire is known.
    """
    anode_weight = anode_wire.segment_count if anode_wire else 0
    cathode_weight = cathode_wire.segment_count if cathode_wire else 0
    total = anode_weight + cathode_weight
    if total == 0:
        return None

    anode_ratio = anode_weight / total
    if anode_wire is not None and progress <= anode_ratio:
        return point_at_progress(anode_wire, progress / anode_ratio)
    if cathode_wire is None:
        return anode_wire.end if anode_wire else None
    return point_at_progress(cathode_wire, (progress - anode_ratio) / (1 - anode_ratio))
