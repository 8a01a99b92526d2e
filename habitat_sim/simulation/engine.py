"""
Simulation Engine for the Habitat Destruction Simulator.

HabitatSimulation owns one grid, one random generator and at most one
phased-destruction schedule, and exposes the operations a driver needs:
destroy, populate, step, query.

A run is a strict sequence:
  initialize grid → apply or queue destruction → populate →
  repeat { phased-destruction round (if active), ecology round } → census
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from habitat_sim.core.config import SimConfig, SpeciesConfig
from habitat_sim.core.destruction import DestructionPattern, PhasedDestruction
from habitat_sim.core.grid import Grid
from habitat_sim.core.organism import Organism, Species, SpeciesRates
from habitat_sim.simulation.census import CellCounts, count_cells
from habitat_sim.simulation.ecology import EcologyStats, update_ecology
from habitat_sim.simulation.population import populate
from habitat_sim.utils.sampling import make_rng


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------

@dataclass
class CensusRecord:
    """Census taken after one update."""
    update: int
    counts: CellCounts
    cells_destroyed: int = 0

    def as_row(self) -> dict:
        return {
            "update": self.update,
            **self.counts.as_dict(),
            "cells_destroyed": self.cells_destroyed,
        }


@dataclass
class RunResult:
    """Result of a complete simulation run."""
    seed: Optional[int]
    updates: int = 0
    final_counts: CellCounts = field(default_factory=CellCounts)
    cells_destroyed_during_run: int = 0
    history: list[CensusRecord] = field(default_factory=list)
    ecology_stats: list[EcologyStats] = field(default_factory=list)

    @property
    def extinct(self) -> bool:
        """True if no organism of either species is left."""
        return self.final_counts.occupied == 0


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

class HabitatSimulation:
    """
    Two-species metapopulation on a destroyable grid.

    Attributes:
        grid: The habitat grid.
        rng: The run's only random generator.
        rates: Species rate table used to create organisms.
        phased: Phased-destruction controller for this grid.
        update_count: Ecology rounds run so far.
        on_update: Optional callback invoked after each update(update_number, sim).
    """

    def __init__(
        self,
        width: int,
        height: int,
        rng: np.random.Generator,
        species_rates: Optional[SpeciesRates | SpeciesConfig] = None,
        seed: Optional[int] = None,
    ):
        """
        Create a simulation with an all-empty grid.

        Args:
            width, height: Grid dimensions (positive).
            rng: Seeded random generator shared by every operation.
            species_rates: Rate table or species config. None = default rates.
            seed: The seed rng was built from, kept for reporting.

        Raises:
            ValueError: On non-positive dimensions or invalid rates.
        """
        self.grid = Grid(width, height)
        self.rng = rng
        self.seed = seed
        if isinstance(species_rates, SpeciesRates):
            self.rates = species_rates
        else:
            self.rates = SpeciesRates(species_rates)
        self.phased = PhasedDestruction(self.grid)
        self.update_count = 0
        self.on_update: Optional[Callable[[int, "HabitatSimulation"], None]] = None

    @classmethod
    def from_config(cls, config: SimConfig, seed: Optional[int] = None) -> HabitatSimulation:
        """
        Build a simulation from a config (grid size, seed, species rates).

        Args:
            config: Simulation configuration.
            seed: Random seed override. None = use config.world.seed.
        """
        if seed is None:
            seed = config.world.seed
        return cls(
            config.world.width,
            config.world.height,
            make_rng(seed),
            species_rates=config.species,
            seed=seed,
        )

    # ------------------------------------------------------------------
    # Destruction
    # ------------------------------------------------------------------

    def destroy_random(self, destruction_percentage: float) -> int:
        """Destroy exactly floor(W*H*p) random cells (after a full reset)."""
        return self.phased.initialize(destruction_percentage, 0, DestructionPattern.RANDOM, self.rng)

    def destroy_gradient(self, destruction_percentage: float) -> int:
        """Destroy cells along the column gradient (after a full reset)."""
        return self.phased.initialize(destruction_percentage, 0, DestructionPattern.GRADIENT, self.rng)

    def init_phased(
        self,
        destruction_percentage: float,
        rounds: int,
        pattern: DestructionPattern | int | str,
    ) -> int:
        """
        Queue destruction over `rounds` rounds (0 = destroy immediately).

        Returns:
            Cells destroyed immediately.
        """
        return self.phased.initialize(destruction_percentage, rounds, pattern, self.rng)

    def process_phased_round(self) -> int:
        """Destroy the next scheduled batch. Returns cells destroyed."""
        return self.phased.process_round()

    def is_phased_active(self) -> bool:
        return self.phased.is_active()

    def apply_destruction(
        self,
        destruction_percentage: float,
        pattern: DestructionPattern | int | str = DestructionPattern.GRADIENT,
        rounds: int = 0,
    ) -> int:
        """Immediate or phased destruction, chosen by rounds."""
        return self.init_phased(destruction_percentage, rounds, pattern)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def add_organism(self, pos: int, species: Species | str) -> Organism:
        """
        Place a new organism of the given species on an empty habitat cell.

        Raises:
            ValueError: On an unknown species or an occupied, destroyed or
                out-of-range cell.
        """
        organism = self.rates.create(species)
        self.grid.add_organism(pos, organism)
        return organism

    def remove_organism(self, pos: int) -> Optional[Organism]:
        return self.grid.remove_organism(pos)

    def populate(self, mode: str = "both", initial_occupancy: float = 0.5) -> tuple[int, int]:
        """
        Clear organisms and seed the initial population.

        Returns:
            (species_c_added, species_d_added).
        """
        return populate(self.grid, self.rng, self.rates, mode=mode, initial_occupancy=initial_occupancy)

    def is_occupied(self, pos: int) -> bool:
        return self.grid.is_occupied(pos)

    def is_destroyed(self, pos: int) -> bool:
        return self.grid.is_destroyed(pos)

    def is_available(self, pos: int) -> bool:
        return self.grid.is_available(pos)

    def neighbors(self, pos: int) -> list[int]:
        return self.grid.neighbors(pos)

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def update_ecology(self) -> EcologyStats:
        """Run one ecology round."""
        stats = update_ecology(self.grid, self.rng)
        self.update_count += 1
        return stats

    def step(self) -> tuple[int, EcologyStats]:
        """
        One full update: a phased-destruction round if one is pending,
        then an ecology round.

        Returns:
            (cells_destroyed_this_update, ecology_stats).
        """
        destroyed = 0
        if self.phased.is_active():
            destroyed = self.phased.process_round()
        stats = self.update_ecology()

        if self.on_update is not None:
            self.on_update(self.update_count, self)
        return destroyed, stats

    def run(self, updates: int, record_every: int = 1) -> RunResult:
        """
        Run several updates, recording the census along the way.

        The census is recorded every `record_every` updates and always after
        the last one.

        Args:
            updates: Number of updates to run (>= 0).
            record_every: Census interval in updates (>= 1).

        Returns:
            RunResult with final counts and census history.
        """
        if updates < 0:
            raise ValueError(f"updates must be >= 0, got {updates}")
        if record_every < 1:
            raise ValueError(f"record_every must be >= 1, got {record_every}")

        result = RunResult(seed=self.seed)
        pending_destroyed = 0

        for i in range(1, updates + 1):
            destroyed, stats = self.step()
            result.cells_destroyed_during_run += destroyed
            result.ecology_stats.append(stats)
            pending_destroyed += destroyed

            if i % record_every == 0 or i == updates:
                result.history.append(CensusRecord(
                    update=self.update_count,
                    counts=self.count_cells(),
                    cells_destroyed=pending_destroyed,
                ))
                pending_destroyed = 0

        result.updates = updates
        result.final_counts = self.count_cells()
        return result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def count_cells(self) -> CellCounts:
        return count_cells(self.grid)

    def __repr__(self) -> str:
        counts = self.count_cells()
        return (
            f"HabitatSimulation(size={self.grid.width}x{self.grid.height}, "
            f"update={self.update_count}, C={counts.species_c}, D={counts.species_d}, "
            f"empty={counts.empty}, destroyed={counts.destroyed}, "
            f"phased={self.is_phased_active()})"
        )


def run_from_config(config: SimConfig, seed: Optional[int] = None) -> tuple[HabitatSimulation, RunResult]:
    """
    Build, destroy, populate and run a simulation as a config describes.

    With destruction.rounds > 0 the population is seeded before any cell is
    destroyed, and destruction proceeds alongside the ecology rounds.

    Returns:
        (simulation, run_result).
    """
    sim = HabitatSimulation.from_config(config, seed=seed)
    d = config.destruction
    sim.init_phased(d.percentage, d.rounds, d.pattern)
    sim.populate(config.population.mode, config.population.initial_occupancy)
    result = sim.run(config.run.updates, record_every=config.run.record_every)
    return sim, result
