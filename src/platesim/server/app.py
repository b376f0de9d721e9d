"""FastAPI server driving one local simulation session.

Provides:
- REST actions for every input gesture (spawn, drag, drop, connect, restart)
- REST queries for state, rendered frames and recent feedback
- WebSocket /ws/frames: stream Frame snapshots at ~20 FPS

The browser front-end maps pointer coordinates into the logical 1000x600
frame before calling these endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field, model_validator

from platesim.config import get_settings
from platesim.engine.ids import random_ids
from platesim.engine.simulation import Simulation
from platesim.engine.timer import ThreadedFlowTimer
from platesim.model.events import WireSide
from platesim.model.geometry import Point, Rect, WirePath
from platesim.model.layout import Anchors, Layout
from platesim.model.particle import Electron, Ion
from platesim.projection.projector import project

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from platesim.engine.feedback import Feedback
    from platesim.engine.transitions import Transition
    from platesim.model.ledger import Ledger
    from platesim.model.particle import Particle

logger = logging.getLogger(__name__)

FRAME_RATE = 20.0


# Global simulation session
_simulation: Simulation | None = None


def get_simulation() -> Simulation:
    """Get or create the global simulation."""
    global _simulation
    if _simulation is None:
        _simulation = Simulation(
            settings=get_settings(), new_id=random_ids, timer_factory=ThreadedFlowTimer
        )
    return _simulation


def reset_simulation() -> None:
    """Drop the global simulation, stopping its timer. Used by tests."""
    global _simulation
    if _simulation is not None:
        _simulation.close()
    _simulation = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the session on startup and stop its flow timer on shutdown."""
    get_simulation()
    logger.info("Simulation session ready")
    yield
    reset_simulation()


app = FastAPI(
    title="PlateSim",
    description="Interactive silver electroplating simulation",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/response models


class PointModel(BaseModel):
    """A point in the logical 1000x600 frame."""

    x: float = Field(description="X coordinate")
    y: float = Field(description="Y coordinate")

    def to_point(self) -> Point:
        return Point(self.x, self.y)


class RectModel(BaseModel):
    """Axis-aligned region in logical coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @model_validator(mode="after")
    def check_extent(self) -> RectModel:
        if self.right < self.left or self.bottom < self.top:
            raise ValueError("right/bottom must not be less than left/top")
        return self

    def to_rect(self) -> Rect:
        return Rect(self.left, self.top, self.right, self.bottom)


class LayoutRequest(BaseModel):
    """Full apparatus geometry reported by the front-end."""

    electrolyte: RectModel
    cathode_target: RectModel
    anode_electrode: RectModel
    cathode_electrode: RectModel
    ion_origin: PointModel
    anode_wire: list[PointModel] | None = Field(default=None, min_length=2)
    cathode_wire: list[PointModel] | None = Field(default=None, min_length=2)

    def to_layout(self) -> Layout:
        return Layout(
            electrolyte=self.electrolyte.to_rect(),
            cathode_target=self.cathode_target.to_rect(),
            anode_electrode=self.anode_electrode.to_rect(),
            cathode_electrode=self.cathode_electrode.to_rect(),
            ion_origin=self.ion_origin.to_point(),
            anode_wire=_to_path(self.anode_wire),
            cathode_wire=_to_path(self.cathode_wire),
        )


class AnchorsRequest(BaseModel):
    """Centres of the battery terminals and electrode connectors."""

    plus_terminal: PointModel
    minus_terminal: PointModel
    anode_connector: PointModel
    cathode_connector: PointModel

    def to_anchors(self) -> Anchors:
        return Anchors(
            plus_terminal=self.plus_terminal.to_point(),
            minus_terminal=self.minus_terminal.to_point(),
            anode_connector=self.anode_connector.to_point(),
            cathode_connector=self.cathode_connector.to_point(),
        )


class ParticleResponse(BaseModel):
    """Response model for one particle."""

    id: str = Field(description="Particle ID")
    kind: str = Field(description="ion or electron")
    status: str = Field(description="active or waiting")
    x: float = Field(description="X position")
    y: float = Field(description="Y position")
    segment: str | None = Field(default=None, description="Wire an electron is on")
    progress: float | None = Field(default=None, description="Progress along the wire")


class LedgerResponse(BaseModel):
    """Response model for electrode masses and plating progress."""

    anode_mass: float
    cathode_mass: float
    plated_count: int
    plating_goal: int
    plating_fraction: float
    completed: bool


class StateResponse(BaseModel):
    """Response model for the whole simulation state."""

    anode_connected: bool
    cathode_connected: bool
    circuit_complete: bool
    flow_position: PointModel | None
    ledger: LedgerResponse
    particles: list[ParticleResponse]


class FeedbackResponse(BaseModel):
    """Response model for one feedback notification."""

    kind: str
    title: str
    description: str
    variant: str
    sound: str
    toast: bool
    context: dict[str, Any] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    """Outcome of an action. Rejections are normal outcomes, not HTTP errors."""

    accepted: bool = Field(description="False when the action was rejected")
    rejection: str | None = Field(default=None, description="Rejection code if rejected")
    feedback: list[FeedbackResponse] = Field(default_factory=list)


def _to_path(points: list[PointModel] | None) -> WirePath | None:
    if points is None:
        return None
    return WirePath(tuple(p.to_point() for p in points))


def _particle_response(particle: Particle) -> ParticleResponse:
    response = ParticleResponse(
        id=particle.id,
        kind=particle.kind,
        status=particle.status.value,
        x=particle.position.x,
        y=particle.position.y,
    )
    if isinstance(particle, Electron):
        response.segment = particle.segment.value
        response.progress = particle.progress
    return response


def _ledger_response(ledger: Ledger) -> LedgerResponse:
    return LedgerResponse(
        anode_mass=ledger.anode_mass,
        cathode_mass=ledger.cathode_mass,
        plated_count=ledger.plated_count,
        plating_goal=ledger.plating_goal,
        plating_fraction=ledger.plating_fraction,
        completed=ledger.completed,
    )


def _feedback_response(feedback: Feedback) -> FeedbackResponse:
    return FeedbackResponse(
        kind=feedback.kind.value,
        title=feedback.title,
        description=feedback.description,
        variant=feedback.variant.value,
        sound=feedback.sound.value,
        toast=feedback.toast,
        context=feedback.context,
    )


def _action_response(result: Transition) -> ActionResponse:
    return ActionResponse(
        accepted=result.accepted,
        rejection=result.rejection.value if result.rejection else None,
        feedback=[_feedback_response(f) for f in result.feedback],
    )


def _require(sim: Simulation, particle_id: str, kind: type[Ion] | type[Electron]) -> None:
    """Raise 404 unless ``particle_id`` names a live particle of ``kind``."""
    if not isinstance(sim.get_particle(particle_id), kind):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind.kind.capitalize()} '{particle_id}' not found",
        )


# Queries


@app.get("/api/state", response_model=StateResponse, tags=["state"])
async def get_state() -> StateResponse:
    """Get the current particles, ledger and circuit status."""
    sim = get_simulation()
    state = sim.state
    flow = sim.flow_position
    return StateResponse(
        anode_connected=state.anode_connected,
        cathode_connected=state.cathode_connected,
        circuit_complete=state.circuit_complete,
        flow_position=PointModel(x=flow.x, y=flow.y) if flow else None,
        ledger=_ledger_response(state.ledger),
        particles=[_particle_response(p) for p in state.particles.values()],
    )


@app.get("/api/frame", tags=["state"])
async def get_frame() -> dict[str, Any]:
    """Get a rendered frame snapshot."""
    return asdict(project(get_simulation().state))


@app.get("/api/feedback", response_model=list[FeedbackResponse], tags=["state"])
async def get_feedback(limit: int = Query(default=20, ge=1, le=50)) -> list[FeedbackResponse]:
    """Get the most recent feedback notifications, oldest first."""
    recent = get_simulation().dispatcher.recent(limit)
    return [_feedback_response(f) for f in recent]


# Actions
#
# Plain functions: any action can stop the flow timer, which joins its thread,
# so they run in the threadpool rather than on the event loop.


@app.post("/api/spawn", response_model=ActionResponse, tags=["particles"])
def spawn() -> ActionResponse:
    """Release an ion and an electron from the anode."""
    return _action_response(get_simulation().spawn())


@app.post(
    "/api/electrons/{particle_id}/drag", response_model=ActionResponse, tags=["particles"]
)
def drag_electron(particle_id: str, point: PointModel) -> ActionResponse:
    """Move an electron along its wire towards ``point``."""
    sim = get_simulation()
    _require(sim, particle_id, Electron)
    return _action_response(sim.drag_electron(particle_id, point.to_point()))


@app.post(
    "/api/electrons/{particle_id}/release", response_model=ActionResponse, tags=["particles"]
)
def release_electron(particle_id: str) -> ActionResponse:
    """Finish dragging an electron."""
    sim = get_simulation()
    _require(sim, particle_id, Electron)
    return _action_response(sim.release_electron(particle_id))


@app.post("/api/ions/{particle_id}/move", response_model=ActionResponse, tags=["particles"])
def move_ion(particle_id: str, point: PointModel) -> ActionResponse:
    """Track an ion being dragged."""
    sim = get_simulation()
    _require(sim, particle_id, Ion)
    return _action_response(sim.move_ion(particle_id, point.to_point()))


@app.post("/api/ions/{particle_id}/drop", response_model=ActionResponse, tags=["particles"])
def drop_ion(particle_id: str, point: PointModel) -> ActionResponse:
    """Finish dragging an ion at ``point``."""
    sim = get_simulation()
    _require(sim, particle_id, Ion)
    return _action_response(sim.drop_ion(particle_id, point.to_point()))


@app.post("/api/wires/{side}/connect", response_model=ActionResponse, tags=["circuit"])
def connect_wire(side: WireSide) -> ActionResponse:
    """Latch a wire as connected."""
    return _action_response(get_simulation().connect_wire(side))


@app.post("/api/wires/{side}/drop", response_model=ActionResponse, tags=["circuit"])
def drop_wire_handle(side: WireSide, point: PointModel) -> ActionResponse:
    """Drop a wire handle; it connects when close enough to its electrode."""
    return _action_response(get_simulation().drop_wire_handle(side, point.to_point()))


@app.post("/api/layout", response_model=ActionResponse, tags=["layout"])
def update_layout(request: LayoutRequest) -> ActionResponse:
    """Replace the apparatus geometry."""
    return _action_response(get_simulation().update_layout(request.to_layout()))


@app.post("/api/anchors", response_model=ActionResponse, tags=["layout"])
def update_anchors(request: AnchorsRequest) -> ActionResponse:
    """Re-route both wires from new anchor positions."""
    return _action_response(get_simulation().update_anchors(request.to_anchors()))


@app.post("/api/restart", response_model=ActionResponse, tags=["state"])
def restart() -> ActionResponse:
    """Start a new experiment."""
    result = get_simulation().restart()
    logger.info("Simulation restarted via API")
    return _action_response(result)


# Frame streaming


@app.websocket("/ws/frames")
async def websocket_frames(websocket: WebSocket) -> None:
    """Stream rendered frames at ~20 FPS until the client disconnects."""
    await websocket.accept()
    logger.info("Frame client connected")
    sim = get_simulation()
    interval = 1.0 / FRAME_RATE

    try:
        while True:
            loop_time = asyncio.get_running_loop().time
            start = loop_time()
            await websocket.send_json(asdict(project(sim.state)))
            await asyncio.sleep(max(0.0, interval - (loop_time() - start)))
    except WebSocketDisconnect:
        logger.info("Frame client disconnected")
    except Exception as e:
        logger.error("Frame streaming error: %s", str(e))


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
