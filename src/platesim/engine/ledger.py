"""Mass/progress ledger updates for spawn and plating events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from platesim.model.ledger import Ledger

if TYPE_CHECKING:
    from platesim.config import SimulationSettings

logger = logging.getLogger(__name__)


def new_ledger(settings: SimulationSettings) -> Ledger:
    """A fresh ledger at the configured starting masses."""
    return Ledger(
        anode_mass=settings.anode_start_mass,
        cathode_mass=settings.cathode_start_mass,
        anode_start_mass=settings.anode_start_mass,
        cathode_start_mass=settings.cathode_start_mass,
        plated_count=0,
        plating_goal=settings.plating_goal,
        mass_per_unit=settings.mass_per_unit,
        depletion_threshold=settings.depletion_threshold,
    )


def record_spawn(ledger: Ledger) -> None:
    """Take one unit of silver off the anode."""
    ledger.anode_mass = max(0.0, ledger.anode_mass - ledger.mass_per_unit)


def record_plating(ledger: Ledger, pairs: int) -> bool:
    """Credit ``pairs`` plated ions to the cathode.

    Returns:
        True only on the call that first brings ``plated_count`` up to the
        goal; later calls return False even if more pairs are plated.
    """
    if pairs <= 0:
        return False

    ledger.cathode_mass += pairs * ledger.mass_per_unit
    ledger.plated_count += pairs

    if ledger.completed or ledger.plated_count < ledger.plating_goal:
        return False

    ledger.completed = True
    logger.info(
        "Plating goal reached: plated=%d, cathode=%.1fg, anode=%.1fg",
        ledger.plated_count,
        ledger.cathode_mass,
        ledger.anode_mass,
    )
    return True
