"""Simulation facade: owns the state, applies events and dispatches feedback.

``Simulation`` is the object the presentation layer talks to. Each call maps
to one event passed through the transition reducer; the resulting state is
swapped in under a lock and its feedback handed to the dispatcher. The flow
indicator timer runs exactly while the circuit is complete.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import TYPE_CHECKING

from platesim.config import SimulationSettings, get_settings
from platesim.engine.feedback import FeedbackDispatcher
from platesim.engine.ids import SequentialIds
from platesim.engine.paths import flow_indicator_position
from platesim.engine.transitions import RuleContext, Transition, initial_state, transition
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
    UpdateLayout,
    WireSide,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from platesim.engine.feedback import FeedbackListener
    from platesim.engine.ids import IdFactory
    from platesim.engine.timer import FlowTimer, TimerFactory
    from platesim.model.events import Event
    from platesim.model.geometry import Point
    from platesim.model.layout import Anchors, Layout
    from platesim.model.ledger import Ledger
    from platesim.model.particle import Particle
    from platesim.model.state import SimState

logger = logging.getLogger(__name__)


class Simulation:
    """Single-session electroplating simulation.

    Args:
        settings: Tunables; defaults to ``get_settings()``.
        new_id: Particle id factory; defaults to ``SequentialIds()``.
        dispatcher: Feedback dispatcher; a new one is created if omitted.
        timer_factory: Builds the flow timer as ``factory(interval, callback)``.
            Without one the owner drives the indicator by calling ``tick()``.
        layout: Initial layout.

    Example:
        >>> sim = Simulation()
        >>> sim.connect_wire(WireSide.ANODE)
        >>> sim.connect_wire(WireSide.CATHODE)
        >>> sim.spawn().accepted
        True
    """

    def __init__(
        self,
        settings: SimulationSettings | None = None,
        new_id: IdFactory | None = None,
        dispatcher: FeedbackDispatcher | None = None,
        timer_factory: TimerFactory | None = None,
        layout: Layout | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or FeedbackDispatcher()
        self._context = RuleContext(settings=self.settings, new_id=new_id or SequentialIds())
        self._state = initial_state(self.settings, layout=layout)
        self._lock = threading.RLock()
        self._timer_factory = timer_factory
        self._timer: FlowTimer | None = None
        self._timer_lock = threading.Lock()

    # Event application

    def apply(self, event: Event) -> Transition:
        """Apply one event, publish the new state and dispatch its feedback."""
        result = self._apply(event)
        self._sync_flow_timer()
        return result

    def _apply(self, event: Event) -> Transition:
        with self._lock:
            result = transition(self._state, event, self._context)
            self._state = result.state
        self.dispatcher.dispatch_all(result.feedback)
        return result

    def _on_flow_timer(self) -> None:
        # Ticks never change the circuit, so the timer need not be re-synced
        self._apply(Tick())

    def spawn(self) -> Transition:
        return self.apply(SpawnIon())

    def drag_electron(self, particle_id: str, point: Point) -> Transition:
        return self.apply(DragElectron(particle_id, point))

    def release_electron(self, particle_id: str) -> Transition:
        return self.apply(ReleaseElectron(particle_id))

    def move_ion(self, particle_id: str, point: Point) -> Transition:
        return self.apply(MoveIon(particle_id, point))

    def drop_ion(self, particle_id: str, point: Point) -> Transition:
        return self.apply(DropIon(particle_id, point))

    def connect_wire(self, side: WireSide) -> Transition:
        return self.apply(ConnectWire(side))

    def drop_wire_handle(self, side: WireSide, point: Point) -> Transition:
        return self.apply(DropWireHandle(side, point))

    def update_layout(self, layout: Layout) -> Transition:
        return self.apply(UpdateLayout(layout))

    def update_anchors(self, anchors: Anchors) -> Transition:
        return self.apply(UpdateAnchors(anchors))

    def tick(self) -> Transition:
        return self.apply(Tick())

    def restart(self) -> Transition:
        return self.apply(Restart())

    # Queries

    @property
    def state(self) -> SimState:
        """A copy of the current state."""
        with self._lock:
            return copy.deepcopy(self._state)

    @property
    def particles(self) -> list[Particle]:
        with self._lock:
            return copy.deepcopy(list(self._state.particles.values()))

    def get_particle(self, particle_id: str) -> Particle | None:
        with self._lock:
            particle = self._state.particles.get(particle_id)
            return copy.deepcopy(particle) if particle is not None else None

    @property
    def ledger(self) -> Ledger:
        with self._lock:
            return copy.deepcopy(self._state.ledger)

    @property
    def circuit_complete(self) -> bool:
        with self._lock:
            return self._state.circuit_complete

    @property
    def plating_fraction(self) -> float:
        with self._lock:
            return self._state.ledger.plating_fraction

    @property
    def flow_position(self) -> Point | None:
        """Where the current-flow dot is drawn, or None while the circuit is open."""
        with self._lock:
            if not self._state.circuit_complete:
                return None
            layout = self._state.layout
            return flow_indicator_position(
                layout.anode_wire, layout.cathode_wire, self._state.flow_progress
            )

    def subscribe(self, listener: FeedbackListener) -> Callable[[], None]:
        return self.dispatcher.subscribe(listener)

    # Flow timer lifecycle

    @property
    def flow_timer_running(self) -> bool:
        with self._timer_lock:
            return self._timer is not None

    def _sync_flow_timer(self) -> None:
        """Start the timer when the circuit closes, stop it when it opens."""
        if self._timer_factory is None:
            return
        with self._timer_lock:
            # Read under the timer lock: the last sync to run sees the latest circuit
            circuit_complete = self.circuit_complete
            if circuit_complete and self._timer is None:
                self._timer = self._timer_factory(
                    self.settings.flow_interval, self._on_flow_timer
                )
                self._timer.start()
                logger.debug("Flow indicator started")
            elif not circuit_complete and self._timer is not None:
                self._timer.stop()
                self._timer = None
                logger.debug("Flow indicator stopped")

    def close(self) -> None:
        """Stop the flow timer if it is running."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.stop()
                self._timer = None
