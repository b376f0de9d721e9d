"""Simulation settings loaded from the environment.

All tunables of the plating simulation live here so the engine never reads
the environment directly. Values come from ``PLATESIM_*`` environment
variables or a ``.env`` file and are validated by pydantic.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class SimulationSettings(BaseSettings):
    """Tunable constants for the electroplating simulation.

    Environment Variables:
        PLATESIM_ANODE_START_MASS: Initial silver anode mass in grams (default: 50)
        PLATESIM_CATHODE_START_MASS: Initial copper ring mass in grams (default: 25)
        PLATESIM_MASS_PER_UNIT: Mass moved by one ion (default: 5)
        PLATESIM_PLATING_GOAL: Platings needed to finish (default: 6)
        PLATESIM_DEPLETION_THRESHOLD: Anode mass at/below which spawning stops (default: 10)
        PLATESIM_MAX_ACTIVE_PARTICLES: Cap on simultaneously active particles (default: 5)
        PLATESIM_COMPLETION_THRESHOLD: Progress counted as end of wire (default: 0.95)
        PLATESIM_DRAG_SAMPLES: Samples used by the nearest-progress search (default: 101)
        PLATESIM_FLOW_INTERVAL: Seconds between flow indicator ticks (default: 0.05)
        PLATESIM_FLOW_STEP: Flow indicator progress per tick (default: 0.01)
        PLATESIM_WIRE_CLEARANCE: Height of wire runs above the battery (default: 40)
        PLATESIM_CONNECT_MARGIN: Slack around electrodes for wire handles (default: 50)
        PLATESIM_HOST / PLATESIM_PORT: Server bind address

    Example:
        >>> settings = SimulationSettings(plating_goal=3)
        >>> settings.plating_goal
        3
    """

    model_config = SettingsConfigDict(
        env_prefix="PLATESIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reservoirs
    anode_start_mass: float = Field(default=50.0, gt=0, description="Initial anode mass (g)")
    cathode_start_mass: float = Field(default=25.0, ge=0, description="Initial cathode mass (g)")
    mass_per_unit: float = Field(default=5.0, gt=0, description="Mass carried by one ion (g)")
    plating_goal: int = Field(default=6, ge=1, description="Platings needed for completion")
    depletion_threshold: float = Field(
        default=10.0,
        ge=0,
        description="Anode mass at or below which spawning is blocked",
    )

    # Registry
    max_active_particles: int = Field(
        default=5,
        ge=2,
        le=100,
        description="Maximum particles in active status (a spawn adds two)",
    )

    # Wires and dragging
    completion_threshold: float = Field(
        default=0.95,
        gt=0.0,
        le=1.0,
        description="Progress at which a released electron counts as arrived",
    )
    drag_samples: int = Field(
        default=101,
        ge=2,
        le=10001,
        description="Uniform samples used to find the nearest progress",
    )
    wire_clearance: float = Field(
        default=40.0,
        ge=0,
        description="Distance wires run above the higher battery terminal",
    )
    connect_margin: float = Field(
        default=50.0,
        ge=0,
        description="Slack around an electrode that still accepts a wire handle",
    )

    # Flow indicator
    flow_interval: float = Field(default=0.05, gt=0, description="Seconds per flow tick")
    flow_step: float = Field(default=0.01, gt=0, le=1.0, description="Flow progress per tick")

    # Server
    host: str = Field(default="127.0.0.1", description="Server bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server bind port")

    @model_validator(mode="after")
    def check_reservoirs(self) -> SimulationSettings:
        """Reject settings that would make the anode unusable from the start."""
        if self.depletion_threshold >= self.anode_start_mass:
            raise ValueError("depletion_threshold must be below anode_start_mass")
        return self


@lru_cache
def get_settings() -> SimulationSettings:
    """Get cached simulation settings.

    To reload from the environment, call ``get_settings.cache_clear()`` first.
    """
    settings = SimulationSettings()
    logger.info(
        "Loaded simulation settings: goal=%d, anode=%.1fg, cathode=%.1fg",
        settings.plating_goal,
        settings.anode_start_mass,
        settings.cathode_start_mass,
    )
    return settings
