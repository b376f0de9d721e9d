"""Shared fixtures for the simulation tests.

The standard apparatus puts the battery terminals at y=100 with the anode
connector on the left and the cathode connector on the right, so the wires
route as:

    anode wire:   (300, 300) -> (300, 60) -> (400, 60)
    cathode wire: (600, 60)  -> (680, 60) -> (680, 330)
"""

from __future__ import annotations

import pytest

from platesim.config import SimulationSettings
from platesim.engine.ids import SequentialIds
from platesim.engine.simulation import Simulation
from platesim.model.events import WireSide
from platesim.model.geometry import Point
from platesim.model.layout import Anchors

ANCHORS = Anchors(
    plus_terminal=Point(400.0, 100.0),
    minus_terminal=Point(600.0, 100.0),
    anode_connector=Point(300.0, 300.0),
    cathode_connector=Point(680.0, 330.0),
)

# Inside both the electrolyte and the cathode target of the default layout
CATHODE_DROP = Point(680.0, 400.0)
# Inside the electrolyte, away from the cathode
SOLUTION_DROP = Point(450.0, 450.0)
# Outside the electrolyte
OUTSIDE_DROP = Point(100.0, 100.0)


@pytest.fixture
def settings() -> SimulationSettings:
    """Default settings, ignoring any .env file."""
    return SimulationSettings(_env_file=None)


@pytest.fixture
def sim(settings: SimulationSettings) -> Simulation:
    """A simulation with routed wires but the circuit still open."""
    simulation = Simulation(settings=settings, new_id=SequentialIds())
    simulation.update_anchors(ANCHORS)
    return simulation


@pytest.fixture
def live_sim(sim: Simulation) -> Simulation:
    """A simulation with both wires connected."""
    sim.connect_wire(WireSide.ANODE)
    sim.connect_wire(WireSide.CATHODE)
    return sim


def electron_to_cathode(sim: Simulation, electron_id: str) -> str:
    """Walk a freshly spawned electron over both wires until it waits.

    Returns:
        The id of the electron now waiting at the cathode.
    """
    state = sim.state
    sim.drag_electron(electron_id, state.layout.anode_wire.end)
    result = sim.release_electron(electron_id)
    handed_off_id = result.feedback[0].context["electron_id"]
    sim.drag_electron(handed_off_id, state.layout.cathode_wire.end)
    sim.release_electron(handed_off_id)
    return handed_off_id


def plate_once(sim: Simulation) -> None:
    """Spawn a pair and carry it through to plating."""
    result = sim.spawn()
    assert result.accepted, result.rejection
    ion_id = result.feedback[0].context["ion_id"]
    electron_id = result.feedback[0].context["electron_id"]
    electron_to_cathode(sim, electron_id)
    sim.drop_ion(ion_id, CATHODE_DROP)
