"""
Ecology stepper for the Habitat Destruction Simulator.

One ecology round visits every occupied cell once, in a fresh random order.
Each visited organism:
  1. Goes extinct with probability extinction_rate (cell becomes Empty).
  2. Otherwise attempts colonization with probability colonization_rate:
     picks a uniformly random valid neighbor and places an offspring there.
     Species C may displace species D; species D only takes empty cells.

Draw order per organism is fixed: extinction draw, colonization draw,
then the target draw (only when there is at least one valid target).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

import numpy as np

from habitat_sim.core.grid import Grid
from habitat_sim.utils.sampling import bernoulli, shuffle_in_place, uniform_index


class Outcome(Enum):
    """What happened to one organism in one round."""
    EXTINCT = auto()
    IDLE = auto()           # colonization draw failed
    NO_TARGET = auto()      # colonization draw succeeded, no valid neighbor
    COLONIZED = auto()      # offspring placed on an empty cell
    DISPLACED = auto()      # offspring replaced a species D organism


@dataclass
class EcologyStats:
    """Counters collected during one ecology round."""
    processed: int = 0
    extinctions: int = 0
    colonizations: int = 0
    displacements: int = 0
    failed_colonizations: int = 0

    def record(self, outcome: Outcome) -> None:
        self.processed += 1
        if outcome is Outcome.EXTINCT:
            self.extinctions += 1
        elif outcome is Outcome.COLONIZED:
            self.colonizations += 1
        elif outcome is Outcome.DISPLACED:
            self.colonizations += 1
            self.displacements += 1
        elif outcome is Outcome.NO_TARGET:
            self.failed_colonizations += 1


def colonization_targets(grid: Grid, pos: int) -> list[int]:
    """
    Valid colonization targets for the organism at pos.

    Non-destroyed neighbors that are empty, plus (for species C only)
    neighbors held by species D.
    """
    organism = grid.organism_at(pos)
    if organism is None or grid.is_destroyed(pos):
        return []
    return [
        n for n in grid.neighbors(pos)
        if grid.is_available(n) and organism.can_colonize(grid.organism_at(n))
    ]


def try_colonize(grid: Grid, pos: int, rng: np.random.Generator) -> Outcome:
    """
    Colonization attempt by the organism at pos.

    Returns:
        IDLE, NO_TARGET, COLONIZED or DISPLACED.
    """
    organism = grid.organism_at(pos)
    if organism is None or grid.is_destroyed(pos):
        return Outcome.IDLE

    if not bernoulli(rng, organism.colonization_rate):
        return Outcome.IDLE

    targets = colonization_targets(grid, pos)
    if not targets:
        return Outcome.NO_TARGET

    target = targets[uniform_index(rng, len(targets))]
    displaced = grid.replace_organism(target, organism.offspring())
    return Outcome.DISPLACED if displaced is not None else Outcome.COLONIZED


def process_organism(grid: Grid, pos: int, rng: np.random.Generator) -> Outcome:
    """Run the extinction check, then (if it survives) a colonization attempt."""
    organism = grid.organism_at(pos)
    if bernoulli(rng, organism.extinction_rate):
        grid.remove_organism(pos)
        return Outcome.EXTINCT
    return try_colonize(grid, pos, rng)


def update_ecology(grid: Grid, rng: np.random.Generator) -> EcologyStats:
    """
    Run one ecology round over the whole grid.

    Positions occupied at the start of the round are shuffled, then each is
    re-checked just before acting. A cell vacated earlier in the round is
    skipped, so an extinct or displaced organism never acts.

    Returns:
        EcologyStats for this round.
    """
    stats = EcologyStats()
    positions = grid.occupied_positions()
    shuffle_in_place(rng, positions)

    for pos in positions:
        if not grid.is_occupied(pos) or grid.is_destroyed(pos):
            continue
        stats.record(process_organism(grid, pos, rng))

    return stats
