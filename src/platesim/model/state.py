"""SimState dataclass: the single owned container for simulation state."""

from __future__ import annotations

from dataclasses import dataclass, field

from platesim.model.geometry import WirePath
from platesim.model.layout import Layout
from platesim.model.ledger import Ledger
from platesim.model.particle import Electron, Ion, Particle, Segment, Status


@dataclass
class SimState:
    """Everything the transition rules read and write.

    ``particles`` is keyed by id and keeps insertion order. Ions and
    electrons share the registry so the active-particle cap covers both.
    """

    particles: dict[str, Particle] = field(default_factory=dict)
    ledger: Ledger = field(default_factory=Ledger)
    layout: Layout = field(default_factory=Layout)

    # Wire latches
    anode_connected: bool = False
    cathode_connected: bool = False

    # Cosmetic current-flow indicator, 0.0 to 1.0 across both wires
    flow_progress: float = 0.0

    # Next arrival number handed to a particle entering WAITING
    arrival_seq: int = 0

    @property
    def circuit_complete(self) -> bool:
        return self.anode_connected and self.cathode_connected

    @property
    def ions(self) -> list[Ion]:
        return [p for p in self.particles.values() if isinstance(p, Ion)]

    @property
    def electrons(self) -> list[Electron]:
        return [p for p in self.particles.values() if isinstance(p, Electron)]

    def active_count(self) -> int:
        return sum(1 for p in self.particles.values() if p.status == Status.ACTIVE)

    def waiting(self, kind: type[Ion] | type[Electron]) -> list[Particle]:
        """Waiting particles of one kind, earliest arrival first."""
        found = [
            p for p in self.particles.values() if isinstance(p, kind) and p.status == Status.WAITING
        ]
        return sorted(found, key=lambda p: p.arrival if p.arrival is not None else 0)

    def path_for(self, segment: Segment) -> WirePath | None:
        """Wire path an electron on ``segment`` follows, or None if unknown."""
        if segment == Segment.ANODE_WIRE:
            return self.layout.anode_wire
        return self.layout.cathode_wire
