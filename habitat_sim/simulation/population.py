"""
Initial population for the Habitat Destruction Simulator.

Populators clear existing organisms, shuffle the available (non-destroyed)
cells, and fill the first ones in shuffled order.
"""

from __future__ import annotations

import numpy as np

from habitat_sim.core.grid import Grid
from habitat_sim.core.organism import Species, SpeciesRates
from habitat_sim.utils.sampling import shuffle_in_place


def _shuffled_available(grid: Grid, rng: np.random.Generator) -> list[int]:
    grid.clear_organisms()
    cells = grid.available_positions()
    shuffle_in_place(rng, cells)
    return cells


def populate_both_species(
    grid: Grid,
    rng: np.random.Generator,
    rates: SpeciesRates,
    fraction_per_species: float = 0.25,
) -> tuple[int, int]:
    """
    Give each species the same share of the available habitat.

    Species C takes the first floor(n * fraction) shuffled cells, species D
    the next floor(n * fraction).

    Returns:
        (species_c_added, species_d_added).
    """
    if not 0.0 <= fraction_per_species <= 0.5:
        raise ValueError(f"fraction_per_species must be in [0, 0.5], got {fraction_per_species}")

    cells = _shuffled_available(grid, rng)
    per_species = int(len(cells) * fraction_per_species)

    for pos in cells[:per_species]:
        grid.add_organism(pos, rates.create(Species.C))
    for pos in cells[per_species:2 * per_species]:
        grid.add_organism(pos, rates.create(Species.D))

    return per_species, per_species


def populate_species_d(
    grid: Grid,
    rng: np.random.Generator,
    rates: SpeciesRates,
    initial_occupancy: float = 0.5,
) -> int:
    """
    Fill a fraction of the available habitat with species D only.

    Returns:
        Number of organisms added.
    """
    if not 0.0 <= initial_occupancy <= 1.0:
        raise ValueError(f"initial_occupancy must be in [0, 1], got {initial_occupancy}")

    cells = _shuffled_available(grid, rng)
    target = int(len(cells) * initial_occupancy)

    for pos in cells[:target]:
        grid.add_organism(pos, rates.create(Species.D))
    return target


def populate(
    grid: Grid,
    rng: np.random.Generator,
    rates: SpeciesRates,
    mode: str = "both",
    initial_occupancy: float = 0.5,
) -> tuple[int, int]:
    """
    Populate by mode name.

    "both" splits initial_occupancy evenly between the species;
    "species_d" seeds species D only.

    Returns:
        (species_c_added, species_d_added).

    Raises:
        ValueError: On an unknown mode.
    """
    if mode == "both":
        return populate_both_species(grid, rng, rates, fraction_per_species=initial_occupancy / 2)
    if mode == "species_d":
        return 0, populate_species_d(grid, rng, rates, initial_occupancy=initial_occupancy)
    raise ValueError(f"Unknown population mode {mode!r}, expected 'both' or 'species_d'")
