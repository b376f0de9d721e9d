"""Simulation engine: path geometry, drag resolution, transition rules, ledger, feedback."""

from platesim.engine.drag import has_arrived, resolve_drag
from platesim.engine.feedback import (
    Feedback,
    FeedbackDispatcher,
    FeedbackKind,
    Rejection,
    SoundCue,
    Variant,
    make_feedback,
)
from platesim.engine.ids import SequentialIds, random_ids
from platesim.engine.ledger import new_ledger, record_plating, record_spawn
from platesim.engine.paths import (
    build_wire_paths,
    flow_indicator_position,
    nearest_progress,
    point_at_progress,
)
from platesim.engine.simulation import Simulation
from platesim.engine.timer import ThreadedFlowTimer
from platesim.engine.transitions import RuleContext, Transition, initial_state, transition

__all__ = [
    "Feedback",
    "FeedbackDispatcher",
    "FeedbackKind",
    "Rejection",
    "RuleContext",
    "SequentialIds",
    "Simulation",
    "SoundCue",
    "ThreadedFlowTimer",
    "Transition",
    "Variant",
    "build_wire_paths",
    "flow_indicator_position",
    "has_arrived",
    "initial_state",
    "make_feedback",
    "nearest_progress",
    "new_ledger",
    "point_at_progress",
    "random_ids",
    "record_plating",
    "record_spawn",
    "resolve_drag",
    "transition",
]
