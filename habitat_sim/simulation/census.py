"""
Census for the Habitat Destruction Simulator.

Counts every cell of the grid into exactly one category: species C,
species D, empty or destroyed.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict

from habitat_sim.core.grid import Grid
from habitat_sim.core.organism import Species


@dataclass(frozen=True)
class CellCounts:
    """Cell counts by category. The four counts sum to the grid size."""
    species_c: int = 0
    species_d: int = 0
    empty: int = 0
    destroyed: int = 0

    @property
    def occupied(self) -> int:
        return self.species_c + self.species_d

    @property
    def total(self) -> int:
        return self.species_c + self.species_d + self.empty + self.destroyed

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

    @staticmethod
    def column_names() -> list[str]:
        return ["species_c", "species_d", "empty", "destroyed"]


def count_cells(grid: Grid) -> CellCounts:
    """Single pass over the grid. Pure query."""
    species_c = species_d = empty = destroyed = 0

    for pos in range(grid.size):
        if grid.is_destroyed(pos):
            destroyed += 1
            continue
        species = grid.species_at(pos)
        if species is None:
            empty += 1
        elif species is Species.C:
            species_c += 1
        else:
            species_d += 1

    return CellCounts(species_c=species_c, species_d=species_d, empty=empty, destroyed=destroyed)
