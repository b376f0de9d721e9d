"""Frame projector: simulation state to a visual Frame for rendering.

A Frame is a plain snapshot holding everything the front-end draws: the
particles, both wires, the flow dot, the electrode gauges and the colour of
the copper ring as it turns silver.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from platesim.engine.paths import flow_indicator_position
from platesim.model.particle import Electron, Ion, Status

if TYPE_CHECKING:
    from platesim.model.geometry import WirePath
    from platesim.model.ledger import Ledger
    from platesim.model.particle import Particle
    from platesim.model.state import SimState

COPPER_RGB = (184, 115, 51)
SILVER_RGB = (195, 207, 226)
SILVER_GRADIENT_START = "#f5f7fa"
SILVER_GRADIENT_END = "#c3cfe2"

# Atomic view grids are 4x4
ATOM_GRID_SIZE = 16
PLATED_ATOMS_PER_PLATING = 2.7

PARTICLE_COLORS: dict[str, str] = {
    "ion": "#94a3b8",  # Silver grey
    "anode_wire": "#facc15",  # Yellow
    "cathode_wire": "#3b82f6",  # Blue
}

WIRE_COLORS: dict[str, str] = {
    "anode_wire": "#ef4444",  # Red, to the plus terminal
    "cathode_wire": "#1e293b",  # Black, from the minus terminal
}


@dataclass
class ParticleVisual:
    """A particle as drawn: ions are labelled Ag+, electrons e-."""

    id: str
    kind: str  # "ion" or "electron"
    label: str
    x: float
    y: float
    status: str
    color: str
    segment: str | None = None
    progress: float | None = None
    draggable: bool = True


@dataclass
class WireVisual:
    """A wire polyline and whether its handle has been connected."""

    id: str
    points: list[tuple[float, float]] = field(default_factory=list)
    connected: bool = False
    color: str = "#1e293b"


@dataclass
class GaugeVisual:
    """Mass read-out for one electrode, with a fill fraction for its bar."""

    name: str
    mass: float
    fill: float  # 0.0 to 1.0
    color: str


@dataclass
class Frame:
    """A complete visual frame for rendering."""

    particles: list[ParticleVisual] = field(default_factory=list)
    wires: list[WireVisual] = field(default_factory=list)
    gauges: list[GaugeVisual] = field(default_factory=list)
    flow_dot: tuple[float, float] | None = None
    circuit_complete: bool = False
    plated_count: int = 0
    plating_goal: int = 0
    plating_percent: int = 0
    ring_color: str = ""
    anode_atoms: int = ATOM_GRID_SIZE
    plated_atoms: int = 0
    completed: bool = False


def project(state: SimState) -> Frame:
    """Project simulation state into a visual Frame.

    Args:
        state: The simulation state.

    Returns:
        Frame containing all visual elements for rendering.
    """
    ledger = state.ledger
    layout = state.layout
    fraction = ledger.plating_fraction

    frame = Frame(
        circuit_complete=state.circuit_complete,
        plated_count=ledger.plated_count,
        plating_goal=ledger.plating_goal,
        plating_percent=_round_half_up(fraction * 100),
        ring_color=ring_color(fraction),
        anode_atoms=anode_atoms(ledger),
        plated_atoms=plated_atoms(ledger.plated_count),
        completed=ledger.completed,
    )

    for particle in state.particles.values():
        frame.particles.append(_project_particle(particle))

    frame.wires.append(_project_wire("anode_wire", layout.anode_wire, state.anode_connected))
    frame.wires.append(
        _project_wire("cathode_wire", layout.cathode_wire, state.cathode_connected)
    )

    frame.gauges = _project_gauges(ledger, frame.ring_color)

    if state.circuit_complete:
        dot = flow_indicator_position(layout.anode_wire, layout.cathode_wire, state.flow_progress)
        if dot is not None:
            frame.flow_dot = (dot.x, dot.y)

    return frame


def _project_particle(particle: Particle) -> ParticleVisual:
    if isinstance(particle, Electron):
        return ParticleVisual(
            id=particle.id,
            kind=particle.kind,
            label="e-",
            x=particle.position.x,
            y=particle.position.y,
            status=particle.status.value,
            color=PARTICLE_COLORS[particle.segment.value],
            segment=particle.segment.value,
            progress=particle.progress,
            draggable=particle.status == Status.ACTIVE,
        )
    return ParticleVisual(
        id=particle.id,
        kind=Ion.kind,
        label="Ag+",
        x=particle.position.x,
        y=particle.position.y,
        status=particle.status.value,
        color=PARTICLE_COLORS["ion"],
        draggable=particle.status == Status.ACTIVE,
    )


def _project_wire(wire_id: str, path: WirePath | None, connected: bool) -> WireVisual:
    points = [(p.x, p.y) for p in path.waypoints] if path is not None else []
    return WireVisual(id=wire_id, points=points, connected=connected, color=WIRE_COLORS[wire_id])


def _project_gauges(ledger: Ledger, cathode_color: str) -> list[GaugeVisual]:
    """Anode bar shows remaining share of its start mass; the cathode bar is
    measured against everything the cell holds."""
    anode_fill = ledger.anode_mass / ledger.anode_start_mass if ledger.anode_start_mass else 0.0
    cell_total = ledger.cathode_start_mass + ledger.anode_start_mass
    cathode_fill = ledger.cathode_mass / cell_total if cell_total else 0.0
    return [
        GaugeVisual("anode", ledger.anode_mass, _clamp(anode_fill), "#6b7280"),
        GaugeVisual("cathode", ledger.cathode_mass, _clamp(cathode_fill), cathode_color),
    ]


def _round_half_up(value: float) -> int:
    # Browser rounding: halves go up, not to even
    return math.floor(value + 0.5)


def ring_color(fraction: float) -> str:
    """Colour of the copper ring after ``fraction`` of the plating goal.

    Interpolates copper towards silver; a finished ring takes the silver
    gradient end colour.
    """
    if fraction >= 1:
        return SILVER_GRADIENT_END
    fraction = max(0.0, fraction)
    r, g, b = (
        _round_half_up(copper + (silver - copper) * fraction)
        for copper, silver in zip(COPPER_RGB, SILVER_RGB)
    )
    return f"rgb({r}, {g}, {b})"


def anode_atoms(ledger: Ledger) -> int:
    """Atoms still shown on the anode surface grid."""
    if ledger.anode_start_mass <= 0:
        return 0
    remaining = ledger.anode_mass / ledger.anode_start_mass
    return min(ATOM_GRID_SIZE, math.ceil(remaining * ATOM_GRID_SIZE))


def plated_atoms(plated_count: int) -> int:
    """Silver atoms shown on the cathode surface grid."""
    return min(ATOM_GRID_SIZE, math.floor(plated_count * PLATED_ATOMS_PER_PLATING))


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
