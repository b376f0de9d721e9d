"""Frame projection: simulation state to visual frame snapshots."""

from platesim.projection.projector import (
    Frame,
    GaugeVisual,
    ParticleVisual,
    WireVisual,
    anode_atoms,
    plated_atoms,
    project,
    ring_color,
)

__all__ = [
    "Frame",
    "GaugeVisual",
    "ParticleVisual",
    "WireVisual",
    "anode_atoms",
    "plated_atoms",
    "project",
    "ring_color",
]
