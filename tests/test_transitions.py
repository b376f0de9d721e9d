"""Tests for the transition reducer: spawn, drag, hand-off, drops and pairing."""

from __future__ import annotations

import random

import pytest

from platesim.config import SimulationSettings
from platesim.engine.feedback import FeedbackKind, Rejection
from platesim.engine.ids import SequentialIds
from platesim.engine.paths import build_wire_paths
from platesim.engine.transitions import RuleContext, initial_state, transition
from platesim.model.events import (
    ConnectWire,
    DragElectron,
    DropIon,
    DropWireHandle,
    MoveIon,
    ReleaseElectron,
    Restart,
    SpawnIon,
    Tick,
    UpdateAnchors,
    WireSide,
)
from platesim.model.geometry import Point
from platesim.model.layout import Anchors
from platesim.model.particle import Electron, Ion, Segment, Status
from platesim.model.state import SimState
from tests.conftest import ANCHORS, CATHODE_DROP, OUTSIDE_DROP, SOLUTION_DROP


def make_context(**overrides) -> RuleContext:
    """Rule context with default settings and deterministic ids."""
    settings = SimulationSettings(_env_file=None, **overrides)
    return RuleContext(settings=settings, new_id=SequentialIds())


def make_state(context: RuleContext, connected: bool = True) -> SimState:
    """State with routed wires, optionally with the circuit closed."""
    state = initial_state(context.settings)
    state = transition(state, UpdateAnchors(ANCHORS), context).state
    if connected:
        state = transition(state, ConnectWire(WireSide.ANODE), context).state
        state = transition(state, ConnectWire(WireSide.CATHODE), context).state
    return state


def spawn(state: SimState, context: RuleContext) -> tuple[SimState, Ion, Electron]:
    """Spawn a pair and return the new state with the new ion and electron."""
    result = transition(state, SpawnIon(), context)
    assert result.accepted
    ion, electron = list(result.state.particles.values())[-2:]
    return result.state, ion, electron


def to_cathode(state: SimState, context: RuleContext, electron_id: str) -> tuple[SimState, str]:
    """Carry an anode electron over both wires; returns the waiting electron id."""
    state = transition(state, DragElectron(electron_id, state.layout.anode_wire.end), context).state
    state = transition(state, ReleaseElectron(electron_id), context).state
    handed_off = list(state.particles.values())[-1]
    state = transition(
        state, DragElectron(handed_off.id, state.layout.cathode_wire.end), context
    ).state
    state = transition(state, ReleaseElectron(handed_off.id), context).state
    return state, handed_off.id


class TestSpawnIon:
    """Tests for releasing ions from the anode."""

    def test_rejected_while_circuit_open(self) -> None:
        """Spawning before both wires connect is rejected with no mutation."""
        context = make_context()
        state = make_state(context, connected=False)

        result = transition(state, SpawnIon(), context)

        assert result.rejection == Rejection.CIRCUIT_NOT_COMPLETE
        assert result.state.particles == {}
        assert result.state.ledger.anode_mass == 50
        assert result.feedback[0].kind == FeedbackKind.CIRCUIT_NOT_COMPLETE

    def test_rejected_with_one_wire(self) -> None:
        context = make_context()
        state = make_state(context, connected=False)
        state = transition(state, ConnectWire(WireSide.ANODE), context).state

        assert transition(state, SpawnIon(), context).rejection == Rejection.CIRCUIT_NOT_COMPLETE

    def test_spawn_adds_ion_and_anode_electron(self) -> None:
        context = make_context()
        state = make_state(context)

        state, ion, electron = spawn(state, context)

        assert isinstance(ion, Ion)
        assert ion.status == Status.ACTIVE
        assert ion.position == state.layout.ion_origin
        assert isinstance(electron, Electron)
        assert electron.segment == Segment.ANODE_WIRE
        assert electron.progress == 0.0
        assert electron.position == state.layout.anode_wire.start
        assert state.ledger.anode_mass == 45

    def test_spawn_without_wire_paths_starts_at_origin(self) -> None:
        """Before the front-end reports anchors the electron sits at (0, 0)."""
        context = make_context()
        state = initial_state(context.settings)
        state.anode_connected = state.cathode_connected = True

        state, _, electron = spawn(state, context)

        assert electron.position == Point(0.0, 0.0)

    def test_ids_are_unique(self) -> None:
        context = make_context()
        state = make_state(context)
        state, ion_a, electron_a = spawn(state, context)
        state, ion_b, electron_b = spawn(state, context)

        assert len({ion_a.id, electron_a.id, ion_b.id, electron_b.id}) == 4

    def test_rejected_when_anode_depleted(self) -> None:
        """anode_mass at the threshold blocks spawning and changes nothing."""
        context = make_context()
        state = make_state(context)
        state.ledger.anode_mass = 10

        result = transition(state, SpawnIon(), context)

        assert result.rejection == Rejection.ANODE_DEPLETED
        assert result.state.particles == {}
        assert result.state.ledger.anode_mass == 10

    def test_rejected_at_capacity(self) -> None:
        """Five active particles already: spawning is refused."""
        context = make_context()
        state = make_state(context)
        for i in range(5):
            state.particles[f"ion-x{i}"] = Ion(id=f"ion-x{i}", position=Point(400, 400))

        result = transition(state, SpawnIon(), context)

        assert result.rejection == Rejection.CAPACITY_EXCEEDED
        assert len(result.state.particles) == 5
        assert result.state.ledger.anode_mass == 50

    def test_spawn_never_exceeds_active_cap(self) -> None:
        """A third back-to-back spawn would need six active slots."""
        context = make_context()
        state = make_state(context)
        state, _, _ = spawn(state, context)
        state, _, _ = spawn(state, context)

        result = transition(state, SpawnIon(), context)

        assert result.rejection == Rejection.CAPACITY_EXCEEDED
        assert result.state.active_count() == 4

    def test_waiting_particles_do_not_count_towards_cap(self) -> None:
        context = make_context()
        state = make_state(context)
        state, _, electron = spawn(state, context)
        state, _ = to_cathode(state, context, electron.id)
        state, _, _ = spawn(state, context)

        # One waiting electron, three active particles: room for one more pair
        assert state.active_count() == 3
        result = transition(state, SpawnIon(), context)
        assert result.accepted
        assert result.state.active_count() == 5
        assert len(result.state.particles) == 6

    def test_rejection_order(self) -> None:
        """An open circuit is reported before depletion."""
        context = make_context()
        state = make_state(context, connected=False)
        state.ledger.anode_mass = 0

        assert transition(state, SpawnIon(), context).rejection == Rejection.CIRCUIT_NOT_COMPLETE


class TestElectronDrag:
    """Tests for dragging electrons along their wire."""

    def test_drag_advances_progress_and_position(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)

        # Halfway: the corner of the anode wire at (300, 60)
        state = transition(state, DragElectron(electron.id, Point(300, 60)), context).state

        dragged = state.particles[electron.id]
        assert dragged.progress == pytest.approx(0.5)
        assert dragged.position == Point(300, 60)

    def test_drag_backwards_is_ignored(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state = transition(state, DragElectron(electron.id, Point(300, 60)), context).state

        state = transition(state, DragElectron(electron.id, Point(300, 300)), context).state

        assert state.particles[electron.id].progress == pytest.approx(0.5)

    def test_progress_never_decreases(self) -> None:
        """Random pointer sweeps never move an electron backwards."""
        rng = random.Random(7)
        context = make_context()
        state, _, electron = spawn(make_state(context), context)

        last = 0.0
        for _ in range(50):
            point = Point(rng.uniform(250, 450), rng.uniform(0, 350))
            state = transition(state, DragElectron(electron.id, point), context).state
            progress = state.particles[electron.id].progress
            assert progress >= last
            last = progress

    def test_unknown_electron_is_noop(self) -> None:
        context = make_context()
        state = make_state(context)

        result = transition(state, DragElectron("electron-404", Point(0, 0)), context)

        assert result.accepted
        assert result.state == state

    def test_drag_without_path_is_noop(self) -> None:
        context = make_context()
        state = initial_state(context.settings)
        state.anode_connected = state.cathode_connected = True
        state, _, electron = spawn(state, context)

        state = transition(state, DragElectron(electron.id, Point(300, 60)), context).state

        assert state.particles[electron.id].progress == 0.0

    def test_drag_on_ion_is_noop(self) -> None:
        context = make_context()
        state, ion, _ = spawn(make_state(context), context)

        state = transition(state, DragElectron(ion.id, Point(300, 60)), context).state

        assert state.particles[ion.id].position == state.layout.ion_origin


class TestReleaseElectron:
    """Tests for finishing an electron drag."""

    def test_hand_off_at_battery_creates_new_identity(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state = transition(
            state, DragElectron(electron.id, state.layout.anode_wire.end), context
        ).state

        result = transition(state, ReleaseElectron(electron.id), context)

        assert electron.id not in result.state.particles
        handed_off = list(result.state.particles.values())[-1]
        assert isinstance(handed_off, Electron)
        assert handed_off.id != electron.id
        assert handed_off.segment == Segment.CATHODE_WIRE
        assert handed_off.progress == 0.0
        assert handed_off.position == result.state.layout.cathode_wire.start
        assert result.feedback[0].kind == FeedbackKind.ELECTRON_AT_BATTERY

    def test_release_short_of_threshold_leaves_electron(self) -> None:
        """No snap-back: an electron released mid-wire stays where it is."""
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state = transition(state, DragElectron(electron.id, Point(300, 60)), context).state

        result = transition(state, ReleaseElectron(electron.id), context)

        assert result.state.particles[electron.id] == state.particles[electron.id]
        assert result.feedback == []

    def test_cathode_arrival_waits_and_clamps(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state, waiting_id = to_cathode(state, context, electron.id)

        waiting = state.particles[waiting_id]
        assert waiting.status == Status.WAITING
        assert waiting.progress == 1.0
        assert waiting.position == state.layout.cathode_wire.end

    def test_threshold_is_inclusive(self) -> None:
        """Progress 0.95 exactly is close enough."""
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state.particles[electron.id].progress = 0.95

        result = transition(state, ReleaseElectron(electron.id), context)

        assert electron.id not in result.state.particles

    def test_release_twice_is_idempotent(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state, waiting_id = to_cathode(state, context, electron.id)

        result = transition(state, ReleaseElectron(waiting_id), context)

        assert result.state == state
        assert result.feedback == []

    def test_waiting_electron_cannot_be_dragged(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state, waiting_id = to_cathode(state, context, electron.id)

        result = transition(state, DragElectron(waiting_id, Point(0, 0)), context)

        assert result.state == state


class TestDropIon:
    """Tests for finishing an ion drag."""

    def test_drop_outside_solution_resets_to_origin(self) -> None:
        context = make_context()
        state, ion, _ = spawn(make_state(context), context)
        state = transition(state, MoveIon(ion.id, OUTSIDE_DROP), context).state

        result = transition(state, DropIon(ion.id, OUTSIDE_DROP), context)

        assert result.rejection == Rejection.OUT_OF_BOUNDS
        reset = result.state.particles[ion.id]
        assert reset.position == state.layout.ion_origin
        assert reset.status == Status.ACTIVE

    def test_drop_on_cathode_without_electron_is_rejected(self) -> None:
        context = make_context()
        state, ion, _ = spawn(make_state(context), context)
        state = transition(state, MoveIon(ion.id, CATHODE_DROP), context).state

        result = transition(state, DropIon(ion.id, CATHODE_DROP), context)

        assert result.rejection == Rejection.NO_WAITING_ELECTRON
        assert result.state == state
        assert result.state.particles[ion.id].position == CATHODE_DROP

    def test_drop_in_solution_stays_active(self) -> None:
        context = make_context()
        state, ion, _ = spawn(make_state(context), context)

        result = transition(state, DropIon(ion.id, SOLUTION_DROP), context)

        assert result.accepted
        dropped = result.state.particles[ion.id]
        assert dropped.status == Status.ACTIVE
        assert dropped.position == SOLUTION_DROP

    def test_drop_on_cathode_with_waiting_electron_plates(self) -> None:
        context = make_context()
        state, ion, electron = spawn(make_state(context), context)
        state, _ = to_cathode(state, context, electron.id)

        result = transition(state, DropIon(ion.id, CATHODE_DROP), context)

        assert result.state.particles == {}
        assert result.state.ledger.cathode_mass == 30
        assert result.state.ledger.plated_count == 1
        kinds = [f.kind for f in result.feedback]
        assert kinds == [FeedbackKind.ION_AT_CATHODE, FeedbackKind.PLATED]


class TestPairing:
    """Tests for the pairing check run after every mutation."""

    def test_end_to_end_plating(self) -> None:
        """Spawn, carry the electron across both wires, drop the ion: plated."""
        context = make_context()
        state = make_state(context)
        assert (state.ledger.anode_mass, state.ledger.cathode_mass) == (50, 25)

        state, ion, electron = spawn(state, context)
        assert state.ledger.anode_mass == 45
        assert len(state.particles) == 2

        state = transition(
            state, DragElectron(electron.id, state.layout.anode_wire.end), context
        ).state
        state = transition(state, ReleaseElectron(electron.id), context).state
        cathode_electron = list(state.particles.values())[-1]
        assert cathode_electron.segment == Segment.CATHODE_WIRE
        assert cathode_electron.progress == 0.0

        state = transition(
            state, DragElectron(cathode_electron.id, state.layout.cathode_wire.end), context
        ).state
        state = transition(state, ReleaseElectron(cathode_electron.id), context).state
        assert state.particles[cathode_electron.id].status == Status.WAITING

        state = transition(state, DropIon(ion.id, CATHODE_DROP), context).state

        assert state.particles == {}
        assert state.ledger.cathode_mass == 30
        assert state.ledger.plated_count == 1

    def test_batch_pairs_earliest_arrivals_first(self) -> None:
        context = make_context()
        state = make_state(context)
        for i, arrival in enumerate([3, 1, 2]):
            state.particles[f"ion-w{i}"] = Ion(
                id=f"ion-w{i}", position=CATHODE_DROP, status=Status.WAITING, arrival=arrival
            )
        state.particles["electron-w"] = Electron(
            id="electron-w",
            position=Point(680, 330),
            segment=Segment.CATHODE_WIRE,
            progress=1.0,
            status=Status.WAITING,
            arrival=4,
        )

        # Any event triggers the pairing check
        result = transition(state, Tick(), context)

        assert "ion-w1" not in result.state.particles
        assert set(result.state.particles) == {"ion-w0", "ion-w2"}
        assert result.state.ledger.plated_count == 1

    def test_multiple_pairs_in_one_batch(self) -> None:
        context = make_context()
        state = make_state(context)
        for i in range(2):
            state.particles[f"ion-{i}"] = Ion(
                id=f"ion-{i}", position=CATHODE_DROP, status=Status.WAITING, arrival=i
            )
            state.particles[f"electron-{i}"] = Electron(
                id=f"electron-{i}",
                position=Point(680, 330),
                segment=Segment.CATHODE_WIRE,
                progress=1.0,
                status=Status.WAITING,
                arrival=10 + i,
            )

        result = transition(state, Tick(), context)

        assert result.state.particles == {}
        assert result.state.ledger.plated_count == 2
        assert result.state.ledger.cathode_mass == 35
        plated = [f for f in result.feedback if f.kind == FeedbackKind.PLATED]
        assert len(plated) == 1
        assert plated[0].context["pairs"] == 2

    def test_no_waiting_pairs_survive_any_event(self) -> None:
        """After every transition one of the waiting lists is empty."""
        rng = random.Random(11)
        context = make_context()
        state = make_state(context)
        ids: list[str] = []

        for _ in range(200):
            choice = rng.random()
            if choice < 0.2:
                result = transition(state, SpawnIon(), context)
                if result.accepted:
                    ids.extend(list(result.state.particles)[-2:])
                state = result.state
            elif ids:
                target = rng.choice(ids)
                point = Point(rng.uniform(0, 1000), rng.uniform(0, 600))
                event = rng.choice(
                    [
                        DragElectron(target, point),
                        ReleaseElectron(target),
                        DropIon(target, CATHODE_DROP),
                        DropIon(target, point),
                    ]
                )
                state = transition(state, event, context).state

            assert min(len(state.waiting(Ion)), len(state.waiting(Electron))) == 0


class TestCompletion:
    """Tests for the one-time plating-complete signal."""

    def test_complete_fires_exactly_once(self) -> None:
        context = make_context(plating_goal=1)
        state = make_state(context)

        state, ion, electron = spawn(state, context)
        state, _ = to_cathode(state, context, electron.id)
        first = transition(state, DropIon(ion.id, CATHODE_DROP), context)
        state = first.state

        state, ion, electron = spawn(state, context)
        state, _ = to_cathode(state, context, electron.id)
        second = transition(state, DropIon(ion.id, CATHODE_DROP), context)

        assert [f.kind for f in first.feedback].count(FeedbackKind.PLATING_COMPLETE) == 1
        assert FeedbackKind.PLATING_COMPLETE not in [f.kind for f in second.feedback]
        assert second.state.ledger.plated_count == 2
        assert second.state.ledger.completed is True

    def test_complete_reports_anode_consumed(self) -> None:
        context = make_context(plating_goal=1)
        state, ion, electron = spawn(make_state(context), context)
        state, _ = to_cathode(state, context, electron.id)

        result = transition(state, DropIon(ion.id, CATHODE_DROP), context)

        complete = next(f for f in result.feedback if f.kind == FeedbackKind.PLATING_COMPLETE)
        assert complete.context["anode_consumed"] == 5


class TestCircuitAndClock:
    """Tests for wire latches, the flow tick and restart."""

    def test_connect_is_a_latch(self) -> None:
        context = make_context()
        state = make_state(context, connected=False)
        state = transition(state, ConnectWire(WireSide.ANODE), context).state

        result = transition(state, ConnectWire(WireSide.ANODE), context)

        assert result.state.anode_connected is True
        assert result.feedback == []

    def test_wire_handle_connects_near_electrode(self) -> None:
        context = make_context()
        state = make_state(context, connected=False)
        near = Point(state.layout.anode_electrode.left - 40, state.layout.anode_electrode.top)

        result = transition(state, DropWireHandle(WireSide.ANODE, near), context)

        assert result.state.anode_connected is True
        assert result.feedback[0].kind == FeedbackKind.ANODE_CONNECTED

    def test_wire_handle_far_away_does_nothing(self) -> None:
        context = make_context()
        state = make_state(context, connected=False)

        result = transition(state, DropWireHandle(WireSide.CATHODE, Point(0, 0)), context)

        assert result.state.cathode_connected is False
        assert result.feedback == []

    def test_tick_advances_and_wraps(self) -> None:
        context = make_context(flow_step=0.4)
        state = make_state(context)

        state = transition(state, Tick(), context).state
        assert state.flow_progress == pytest.approx(0.4)
        state = transition(state, Tick(), context).state
        state = transition(state, Tick(), context).state

        # 1.2 wraps around to the start
        assert state.flow_progress == 0.0

    def test_tick_with_open_circuit_resets_flow(self) -> None:
        context = make_context()
        state = make_state(context, connected=False)
        state.flow_progress = 0.5

        assert transition(state, Tick(), context).state.flow_progress == 0.0

    def test_restart_resets_everything_but_layout(self) -> None:
        context = make_context()
        state, _, _ = spawn(make_state(context), context)

        result = transition(state, Restart(), context)

        assert result.state.particles == {}
        assert result.state.ledger.anode_mass == 50
        assert result.state.ledger.plated_count == 0
        assert result.state.circuit_complete is False
        assert result.state.layout == state.layout


class TestLayoutUpdates:
    """Tests for wire re-routing when anchors move."""

    def test_anchor_move_repositions_electrons(self) -> None:
        context = make_context()
        state, _, electron = spawn(make_state(context), context)
        state = transition(state, DragElectron(electron.id, Point(300, 60)), context).state

        moved = Anchors(
            plus_terminal=Point(420, 120),
            minus_terminal=Point(620, 120),
            anode_connector=Point(320, 320),
            cathode_connector=Point(700, 350),
        )
        state = transition(state, UpdateAnchors(moved), context).state

        anode_wire, _ = build_wire_paths(moved)
        repositioned = state.particles[electron.id]
        assert state.layout.anode_wire == anode_wire
        assert repositioned.progress == pytest.approx(0.5)
        assert repositioned.position == anode_wire.waypoints[1]


class TestReducerContract:
    """Tests for the reducer's purity and error reporting."""

    def test_input_state_is_not_mutated(self) -> None:
        context = make_context()
        state = make_state(context)

        transition(state, SpawnIon(), context)

        assert state.particles == {}
        assert state.ledger.anode_mass == 50

    def test_unknown_event_raises(self) -> None:
        context = make_context()
        with pytest.raises(TypeError, match="Unknown event type"):
            transition(make_state(context), object(), context)
