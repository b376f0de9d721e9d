"""Drag resolution: pointer coordinates to progress along an electron's wire."""

from __future__ import annotations

from typing import TYPE_CHECKING

from platesim.engine.paths import DEFAULT_SAMPLES, nearest_progress, point_at_progress

if TYPE_CHECKING:
    from platesim.model.geometry import Point, WirePath
    from platesim.model.particle import Electron


def resolve_drag(
    electron: Electron,
    path: WirePath,
    point: Point,
    samples: int = DEFAULT_SAMPLES,
) -> tuple[float, Point]:
    """Where a dragged electron ends up for a pointer at ``point``.

    The electron snaps to the sampled path position nearest the pointer,
    but never moves backwards: dragging behind it leaves it in place.

    Returns:
        (new_progress, new_position)
    """
    progress = nearest_progress(path, point, electron.progress, samples)
    return progress, point_at_progress(path, progress)


def has_arrived(electron: Electron, threshold: float) -> bool:
    """Whether the electron is close enough to the end of its wire to count."""
    return electron.progress >= threshold
