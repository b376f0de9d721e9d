"""Transition rules: the reducer that turns (state, event) into the next state.

Every input event goes through ``transition``:

1. Copy the state (the caller's state is never touched)
2. Run the handler for the event type
3. Run the pairing check: plate waiting ions against waiting electrons
4. Return the new state with the feedback it produced

Handlers check every precondition before mutating anything, so a rejected
event leaves the registry and ledger exactly as they were. The only
rejection with a visible effect is an out-of-bounds ion drop, which sends
the ion back to its origin.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from platesim.engine.drag import has_arrived, resolve_drag
from platesim.engine.feedback import Feedback, FeedbackKind, Rejection, make_feedback
from platesim.engine.ids import IdFactory, SequentialIds
from platesim.engine.ledger import new_ledger, record_plating, record_spawn
from platesim.engine.paths import build_wire_paths, point_at_progress
from platesim.model.events import (
    ConnectWire,
    DragElectron,
    DropIon,
    DropWireHandle,
    Event,
    MoveIon,
    ReleaseElectron,
    Restart,
    SpawnIon,
    Tick,
    UpdateAnchors,
    UpdateLayout,
    WireSide,
)
from platesim.model.geometry import ORIGIN
from platesim.model.particle import Electron, Ion, Segment, Status
from platesim.model.state import SimState

if TYPE_CHECKING:
    from platesim.config import SimulationSettings
    from platesim.model.layout import Layout

logger = logging.getLogger(__name__)

# Particles added by one successful spawn: an ion and its electron
PARTICLES_PER_SPAWN = 2


@dataclass
class RuleContext:
    """Dependencies the handlers need besides the state itself."""

    settings: SimulationSettings
    new_id: IdFactory = field(default_factory=SequentialIds)


@dataclass
class Transition:
    """Outcome of applying one event.

    Attributes:
        state: The next state (the input state when nothing changed).
        feedback: Notifications to dispatch, in order.
        rejection: Set when the event was refused.
    """

    state: SimState
    feedback: list[Feedback] = field(default_factory=list)
    rejection: Rejection | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


Handler = Callable[[SimState, Event, RuleContext, list[Feedback]], Rejection | None]


def initial_state(settings: SimulationSettings, layout: Layout | None = None) -> SimState:
    """State at simulation start: empty registry, full anode, open circuit."""
    state = SimState(ledger=new_ledger(settings))
    if layout is not None:
        state.layout = layout
    return state


def transition(state: SimState, event: Event, context: RuleContext) -> Transition:
    """Apply one event to ``state``.

    Args:
        state: Current state; not modified.
        event: The input event.
        context: Settings and id factory.

    Returns:
        Transition holding the next state and its feedback.

    Raises:
        TypeError: If ``event`` is not a known event type.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown event type: {type(event).__name__}")

    next_state = copy.deepcopy(state)
    feedback: list[Feedback] = []
    rejection = handler(next_state, event, context, feedback)

    if rejection is not None:
        feedback.append(make_feedback(rejection, **_event_context(event)))
    else:
        _pair_waiting(next_state, feedback)

    logger.debug(
        "Applied %s: particles=%d, rejection=%s",
        type(event).__name__,
        len(next_state.particles),
        rejection.value if rejection else None,
    )
    return Transition(state=next_state, feedback=feedback, rejection=rejection)


def _event_context(event: Event) -> dict[str, str]:
    particle_id = getattr(event, "particle_id", None)
    return {"particle_id": particle_id} if particle_id else {}


def _next_arrival(state: SimState) -> int:
    state.arrival_seq += 1
    return state.arrival_seq


# Particle registry


def _spawn_ion(
    state: SimState, event: SpawnIon, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Release an ion into the solution and an electron onto the anode wire."""
    if not state.circuit_complete:
        return Rejection.CIRCUIT_NOT_COMPLETE
    if state.ledger.depleted:
        return Rejection.ANODE_DEPLETED
    if state.active_count() + PARTICLES_PER_SPAWN > context.settings.max_active_particles:
        return Rejection.CAPACITY_EXCEEDED

    record_spawn(state.ledger)

    ion = Ion(id=context.new_id("ion"), position=state.layout.ion_origin)
    wire = state.layout.anode_wire
    electron = Electron(
        id=context.new_id("electron"),
        position=wire.start if wire else ORIGIN,
        segment=Segment.ANODE_WIRE,
    )
    state.particles[ion.id] = ion
    state.particles[electron.id] = electron

    feedback.append(
        make_feedback(FeedbackKind.ION_RELEASED, ion_id=ion.id, electron_id=electron.id)
    )
    return None


def _drag_electron(
    state: SimState, event: DragElectron, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Advance an active electron towards the pointer along its wire."""
    electron = state.particles.get(event.particle_id)
    if not isinstance(electron, Electron) or electron.status != Status.ACTIVE:
        return None
    path = state.path_for(electron.segment)
    if path is None:
        return None

    electron.progress, electron.position = resolve_drag(
        electron, path, event.point, context.settings.drag_samples
    )
    return None


def _release_electron(
    state: SimState, event: ReleaseElectron, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Finish an electron drag.

    At the end of the anode wire the electron is handed over at the battery:
    it is replaced by a new electron at the start of the cathode wire. At the
    end of the cathode wire it waits for an ion. Anywhere else it stays put.
    """
    electron = state.particles.get(event.particle_id)
    if not isinstance(electron, Electron) or electron.status != Status.ACTIVE:
        return None
    if not has_arrived(electron, context.settings.completion_threshold):
        return None

    if electron.segment == Segment.ANODE_WIRE:
        del state.particles[electron.id]
        wire = state.layout.cathode_wire
        handed_off = Electron(
            id=context.new_id("electron"),
            position=wire.start if wire else ORIGIN,
            segment=Segment.CATHODE_WIRE,
        )
        state.particles[handed_off.id] = handed_off
        feedback.append(
            make_feedback(
                FeedbackKind.ELECTRON_AT_BATTERY,
                particle_id=electron.id,
                electron_id=handed_off.id,
            )
        )
        return None

    electron.status = Status.WAITING
    electron.progress = 1.0
    wire = state.layout.cathode_wire
    if wire is not None:
        electron.position = wire.end
    electron.arrival = _next_arrival(state)
    feedback.append(make_feedback(FeedbackKind.ELECTRON_AT_CATHODE, particle_id=electron.id))
    return None


def _move_ion(
    state: SimState, event: MoveIon, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    ion = state.particles.get(event.particle_id)
    if isinstance(ion, Ion) and ion.status == Status.ACTIVE:
        ion.position = event.point
    return None


def _drop_ion(
    state: SimState, event: DropIon, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Finish an ion drag.

    Outside the electrolyte the ion goes back to its origin. On the cathode
    it waits for plating, provided an electron is already waiting there.
    """
    ion = state.particles.get(event.particle_id)
    if not isinstance(ion, Ion) or ion.status != Status.ACTIVE:
        return None

    layout = state.layout
    if not layout.electrolyte.contains(event.point):
        ion.position = layout.ion_origin
        return Rejection.OUT_OF_BOUNDS

    if layout.cathode_target.contains(event.point):
        if not state.waiting(Electron):
            return Rejection.NO_WAITING_ELECTRON
        ion.position = event.point
        ion.status = Status.WAITING
        ion.arrival = _next_arrival(state)
        feedback.append(make_feedback(FeedbackKind.ION_AT_CATHODE, particle_id=ion.id))
        return None

    ion.position = event.point
    return None


# Circuit


def _latch_wire(state: SimState, side: WireSide, feedback: list[Feedback]) -> None:
    if side == WireSide.ANODE:
        if state.anode_connected:
            return
        state.anode_connected = True
        feedback.append(make_feedback(FeedbackKind.ANODE_CONNECTED))
    else:
        if state.cathode_connected:
            return
        state.cathode_connected = True
        feedback.append(make_feedback(FeedbackKind.CATHODE_CONNECTED))

    if state.circuit_complete:
        logger.info("Circuit complete")


def _connect_wire(
    state: SimState, event: ConnectWire, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    _latch_wire(state, event.side, feedback)
    return None


def _drop_wire_handle(
    state: SimState, event: DropWireHandle, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Connect a wire if its handle was dropped on or near its electrode."""
    if event.side == WireSide.ANODE:
        electrode = state.layout.anode_electrode
    else:
        electrode = state.layout.cathode_electrode
    if electrode.expanded(context.settings.connect_margin).contains(event.point):
        _latch_wire(state, event.side, feedback)
    return None


# Layout


def _reposition_electrons(state: SimState) -> None:
    """Re-derive every electron's position from its progress on the new wires."""
    for electron in state.electrons:
        path = state.path_for(electron.segment)
        if path is not None:
            electron.position = point_at_progress(path, electron.progress)


def _update_layout(
    state: SimState, event: UpdateLayout, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    state.layout = event.layout
    _reposition_electrons(state)
    return None


def _update_anchors(
    state: SimState, event: UpdateAnchors, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    anode_wire, cathode_wire = build_wire_paths(event.anchors, context.settings.wire_clearance)
    state.layout = replace(state.layout, anode_wire=anode_wire, cathode_wire=cathode_wire)
    _reposition_electrons(state)
    return None


# Clock and restart


def _tick(
    state: SimState, event: Tick, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Move the flow indicator one step; it wraps back to 0 past the end."""
    if not state.circuit_complete:
        state.flow_progress = 0.0
        return None
    advanced = state.flow_progress + context.settings.flow_step
    state.flow_progress = 0.0 if advanced > 1.0 else advanced
    return None


def _restart(
    state: SimState, event: Restart, context: RuleContext, feedback: list[Feedback]
) -> Rejection | None:
    """Reset particles, ledger, latches and flow; keep the measured layout."""
    state.particles = {}
    state.ledger = new_ledger(context.settings)
    state.anode_connected = False
    state.cathode_connected = False
    state.flow_progress = 0.0
    state.arrival_seq = 0
    logger.info("Simulation restarted")
    return None


# Pairing


def _pair_waiting(state: SimState, feedback: list[Feedback]) -> None:
    """Plate as many waiting ion/electron pairs as possible in one batch.

    Earliest arrivals pair first. Afterwards at least one of the two waiting
    lists is empty.
    """
    waiting_ions = state.waiting(Ion)
    waiting_electrons = state.waiting(Electron)
    pairs = min(len(waiting_ions), len(waiting_electrons))
    if pairs == 0:
        return

    plated = [(ion.id, electron.id) for ion, electron in zip(waiting_ions, waiting_electrons)]
    for ion_id, electron_id in plated:
        del state.particles[ion_id]
        del state.particles[electron_id]

    completed_now = record_plating(state.ledger, pairs)
    logger.info(
        "Plated %d pair(s): plated=%d/%d, cathode=%.1fg",
        pairs,
        state.ledger.plated_count,
        state.ledger.plating_goal,
        state.ledger.cathode_mass,
    )
    feedback.append(
        make_feedback(
            FeedbackKind.PLATED,
            pairs=pairs,
            plated_count=state.ledger.plated_count,
        )
    )
    if completed_now:
        feedback.append(
            make_feedback(
                FeedbackKind.PLATING_COMPLETE,
                anode_consumed=state.ledger.anode_consumed,
            )
        )


_HANDLERS: dict[type, Handler] = {
    SpawnIon: _spawn_ion,
    DragElectron: _drag_electron,
    ReleaseElectron: _release_electron,
    MoveIon: _move_ion,
    DropIon: _drop_ion,
    ConnectWire: _connect_wire,
    DropWireHandle: _drop_wire_handle,
    UpdateLayout: _update_layout,
    UpdateAnchors: _update_anchors,
    Tick: _tick,
    Restart: _restart,
}
