"""Ledger dataclass: electrode reservoir masses and plating progress."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Ledger:
    """Mass held by each electrode plus how far the plating has come.

    The anode loses ``mass_per_unit`` per released ion; the cathode gains it
    per plated ion. ``completed`` latches the first time ``plated_count``
    reaches ``plating_goal`` so the completion signal fires only once.
    """

    anode_mass: float = 50.0
    cathode_mass: float = 25.0
    anode_start_mass: float = 50.0
    cathode_start_mass: float = 25.0
    plated_count: int = 0
    plating_goal: int = 6
    mass_per_unit: float = 5.0
    depletion_threshold: float = 10.0
    completed: bool = False

    @property
    def depleted(self) -> bool:
        return self.anode_mass <= self.depletion_threshold

    @property
    def anode_consumed(self) -> float:
        return self.anode_start_mass - self.anode_mass

    @property
    def plating_fraction(self) -> float:
        """Share of the plating goal achieved, capped at 1.0."""
        return min(1.0, self.plated_count / self.plating_goal)
