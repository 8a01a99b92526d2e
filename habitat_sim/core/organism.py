"""
Organisms for the Habitat Destruction Simulator.

Two species compete for habitat cells:
  - Species C: superior competitor, inferior disperser. Can colonize empty
    cells and displace species D.
  - Species D: superior disperser, inferior competitor. Can colonize empty
    cells only.

An organism is an immutable record of its species and rates. It has no
per-instance state; reproduction makes a copy with the same species and rates.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from habitat_sim.core.config import SpeciesConfig


class Species(Enum):
    """Species tag."""
    C = "C"
    D = "D"

    @classmethod
    def parse(cls, value: Species | str) -> Species:
        """
        Convert a Species or its name ("C"/"D", case-insensitive) to a Species.

        Raises:
            ValueError: If the value names no species.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValueError(f"Unknown species {value!r}, expected 'C' or 'D'")


@dataclass(frozen=True, slots=True)
class Organism:
    """
    A species-tagged organism occupying one habitat cell.

    Attributes:
        species: Species tag.
        colonization_rate: Probability of attempting colonization per round [0, 1].
        extinction_rate: Probability of local extinction per round [0, 1].
    """
    species: Species
    colonization_rate: float
    extinction_rate: float

    def __post_init__(self) -> None:
        if not isinstance(self.species, Species):
            raise ValueError(f"species must be a Species, got {self.species!r}")
        for name in ("colonization_rate", "extinction_rate"):
            rate = getattr(self, name)
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {rate}")

    def offspring(self) -> Organism:
        """Create a new organism of the same species with the same rates."""
        return Organism(self.species, self.colonization_rate, self.extinction_rate)

    def can_colonize(self, occupant: Optional[Organism]) -> bool:
        """
        Whether this organism may colonize a non-destroyed cell holding `occupant`.

        Empty cells (occupant None) are open to both species. Species C may
        also take a cell held by species D.
        """
        if occupant is None:
            return True
        return self.species is Species.C and occupant.species is Species.D


class SpeciesRates:
    """
    Rate table mapping each species to its (colonization, extinction) rates.

    Builds new organisms for the populators and the simulation facade.
    """

    def __init__(self, config: Optional[SpeciesConfig] = None):
        if config is None:
            config = SpeciesConfig()
        errors = config.validate()
        if errors:
            raise ValueError("Invalid species rates:\n" + "\n".join(f"  - {e}" for e in errors))
        self._rates: dict[Species, tuple[float, float]] = {
            Species.C: (config.c_colonization_rate, config.c_extinction_rate),
            Species.D: (config.d_colonization_rate, config.d_extinction_rate),
        }

    def rates_for(self, species: Species | str) -> tuple[float, float]:
        """(colonization_rate, extinction_rate) for a species."""
        return self._rates[Species.parse(species)]

    def create(self, species: Species | str) -> Organism:
        """Create a new organism of the given species."""
        species = Species.parse(species)
        colonization_rate, extinction_rate = self._rates[species]
        return Organism(species, colonization_rate, extinction_rate)

    def __repr__(self) -> str:
        c_col, c_ext = self._rates[Species.C]
        d_col, d_ext = self._rates[Species.D]
        return f"SpeciesRates(C=({c_col}, {c_ext}), D=({d_col}, {d_ext}))"
