"""
Habitat destruction for the Habitat Destruction Simulator.

Three policies remove habitat cells from a Grid:
  - Random: exactly floor(W*H*p) distinct cells, drawn uniformly.
  - Gradient: per-column destruction probability falling linearly from the
    left edge to the right edge; the destroyed count matches the target
    only in expectation.
  - Phased: the full set of cells selected by either policy is queued and
    destroyed a few cells per round over a fixed number of rounds.

Every entry point resets the grid to all-Empty before selecting cells.
Destroyed cells stay destroyed for the rest of the campaign.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from habitat_sim.core.grid import Grid
from habitat_sim.utils.sampling import bernoulli, shuffle_in_place, uniform_index


GRADIENT_SPREAD = 0.5


class DestructionPattern(Enum):
    """Spatial pattern of habitat loss."""
    RANDOM = 0
    GRADIENT = 1

    @classmethod
    def parse(cls, value: DestructionPattern | int | str) -> DestructionPattern:
        """
        Accept a pattern, its numeric code (0/1) or name ("random"/"gradient").

        Raises:
            ValueError: If the value names no pattern.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
        elif isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass
        raise ValueError(f"Unknown destruction pattern {value!r}, expected 'random' or 'gradient'")


def validate_percentage(destruction_percentage: float) -> float:
    """
    Check a destruction percentage lies in [0, 1].

    Raises:
        ValueError: If it is outside [0, 1] or NaN. Values are never clamped.
    """
    p = float(destruction_percentage)
    if math.isnan(p) or not 0.0 <= p <= 1.0:
        raise ValueError(f"destruction_percentage must be in [0, 1], got {destruction_percentage}")
    return p


def target_cell_count(total_cells: int, destruction_percentage: float) -> int:
    """Number of cells an exact-count policy destroys: floor(total * p)."""
    return int(total_cells * destruction_percentage)


# ---------------------------------------------------------------------------
# Gradient math
# ---------------------------------------------------------------------------

def gradient_bounds(destruction_percentage: float) -> tuple[float, float]:
    """
    Column-0 and last-column destruction probabilities for a target percentage.

    The bounds are p + 0.25 and p - 0.25. When one bound leaves [0, 1] it is
    pinned and the excess is moved to the other bound, keeping the 0.5 spread
    where possible.

    Returns:
        (max_destruction, min_destruction).
    """
    p = validate_percentage(destruction_percentage)
    max_d = p + GRADIENT_SPREAD / 2
    min_d = p - GRADIENT_SPREAD / 2

    if max_d > 1.0:
        excess = max_d - 1.0
        max_d = 1.0
        min_d = max(0.0, min_d - excess)

    if min_d < 0.0:
        deficit = -min_d
        min_d = 0.0
        max_d = min(1.0, max_d + deficit)

    return max_d, min_d


def column_probabilities(width: int, destruction_percentage: float) -> list[float]:
    """
    Destruction probability of each column, linear from max (column 0) to min.

    A single-column grid uses the max bound.
    """
    max_d, min_d = gradient_bounds(destruction_percentage)
    if width == 1:
        return [max_d]
    step = (max_d - min_d) / (width - 1)
    return [max_d - c * step for c in range(width)]


# ---------------------------------------------------------------------------
# Cell selection
# ---------------------------------------------------------------------------

def select_gradient_cells(
    grid: Grid,
    destruction_percentage: float,
    rng: np.random.Generator,
) -> list[int]:
    """
    Pick cells for gradient destruction with one Bernoulli draw per cell.

    Columns are visited left to right, rows top to bottom within a column.

    Returns:
        Selected positions in visiting order.
    """
    selected = []
    probabilities = column_probabilities(grid.width, destruction_percentage)
    for x, prob in enumerate(probabilities):
        for y in range(grid.height):
            if bernoulli(rng, prob):
                selected.append(grid.to_pos(x, y))
    return selected


def select_shuffled_cells(
    grid: Grid,
    destruction_percentage: float,
    rng: np.random.Generator,
) -> list[int]:
    """
    Pick floor(W*H*p) distinct cells by shuffling every position.

    Returns:
        Selected positions in shuffled order.
    """
    positions = list(range(grid.size))
    shuffle_in_place(rng, positions)
    return positions[:target_cell_count(grid.size, destruction_percentage)]


# ---------------------------------------------------------------------------
# Immediate policies
# ---------------------------------------------------------------------------

def destroy_random(
    grid: Grid,
    destruction_percentage: float,
    rng: np.random.Generator,
) -> int:
    """
    Reset the grid, then destroy exactly floor(W*H*p) distinct random cells.

    Positions are drawn uniformly with replacement; repeats are redrawn.

    Returns:
        Number of cells destroyed.
    """
    p = validate_percentage(destruction_percentage)
    grid.reset()

    to_destroy = target_cell_count(grid.size, p)
    destroyed = 0
    while destroyed < to_destroy:
        pos = uniform_index(rng, grid.size)
        if grid.destroy_cell(pos):
            destroyed += 1
    return destroyed


def destroy_gradient(
    grid: Grid,
    destruction_percentage: float,
    rng: np.random.Generator,
) -> int:
    """
    Reset the grid, then destroy cells along a left-to-right gradient.

    Returns:
        Number of cells destroyed (random; p * W * H only in expectation).
    """
    p = validate_percentage(destruction_percentage)
    grid.reset()

    destroyed = 0
    for pos in select_gradient_cells(grid, p, rng):
        if grid.destroy_cell(pos):
            destroyed += 1
    return destroyed


def destroy(
    grid: Grid,
    destruction_percentage: float,
    pattern: DestructionPattern | int | str,
    rng: np.random.Generator,
) -> int:
    """Apply an immediate policy by pattern."""
    pattern = DestructionPattern.parse(pattern)
    if pattern is DestructionPattern.RANDOM:
        return destroy_random(grid, destruction_percentage, rng)
    return destroy_gradient(grid, destruction_percentage, rng)


# ---------------------------------------------------------------------------
# Phased destruction
# ---------------------------------------------------------------------------

@dataclass
class DestructionSchedule:
    """
    Cells still pending destruction under phased destruction.

    Attributes:
        pending: Positions in destruction order.
        rounds_remaining: Rounds left to process.
        cells_per_round: Base number of cells destroyed per round.
        extra_rounds_remaining: Upcoming rounds that destroy one extra cell.
        total_to_destroy: Size of the schedule when it was created.
    """
    pending: deque[int] = field(default_factory=deque)
    rounds_remaining: int = 0
    cells_per_round: int = 0
    extra_rounds_remaining: int = 0
    total_to_destroy: int = 0

    @classmethod
    def build(cls, positions: list[int], rounds: int) -> DestructionSchedule:
        """Spread positions over `rounds` rounds as evenly as possible."""
        if rounds < 1:
            raise ValueError(f"rounds must be >= 1 for a schedule, got {rounds}")
        per_round, remainder = divmod(len(positions), rounds)
        return cls(
            pending=deque(positions),
            rounds_remaining=rounds,
            cells_per_round=per_round,
            extra_rounds_remaining=remainder,
            total_to_destroy=len(positions),
        )

    @property
    def active(self) -> bool:
        return self.rounds_remaining > 0

    def next_batch_size(self) -> int:
        """Number of cells the next round destroys."""
        if not self.active:
            return 0
        extra = 1 if self.extra_rounds_remaining > 0 else 0
        return min(self.cells_per_round + extra, len(self.pending))


class PhasedDestruction:
    """
    Incremental destruction spread over several rounds.

    Usage:
        phased = PhasedDestruction(grid)
        phased.initialize(0.4, rounds=50, pattern="random", rng=rng)
        while phased.is_active():
            phased.process_round()

    Attributes:
        grid: The grid being destroyed.
        schedule: Pending destruction schedule (empty when inactive).
        destroyed_total: Cells destroyed by this campaign so far.
    """

    def __init__(self, grid: Grid):
        self.grid = grid
        self.schedule = DestructionSchedule()
        self.destroyed_total = 0

    def initialize(
        self,
        destruction_percentage: float,
        rounds: int,
        pattern: DestructionPattern | int | str,
        rng: np.random.Generator,
    ) -> int:
        """
        Reset destruction state and queue the cells to destroy.

        With rounds == 0 the matching immediate policy runs instead and no
        schedule is kept.

        Args:
            destruction_percentage: Fraction of the habitat to destroy, in [0, 1].
            rounds: Rounds to spread destruction over (0 = immediate).
            pattern: Random or gradient selection.
            rng: The run's random generator.

        Returns:
            Number of cells destroyed immediately (0 when a schedule is queued).

        Raises:
            ValueError: On a bad percentage, negative rounds or unknown pattern.
        """
        p = validate_percentage(destruction_percentage)
        pattern = DestructionPattern.parse(pattern)
        if int(rounds) != rounds or rounds < 0:
            raise ValueError(f"rounds must be a non-negative integer, got {rounds}")
        rounds = int(rounds)

        self.schedule = DestructionSchedule()
        self.destroyed_total = 0
        self.grid.reset()

        if rounds == 0:
            self.destroyed_total = destroy(self.grid, p, pattern, rng)
            return self.destroyed_total

        if pattern is DestructionPattern.RANDOM:
            positions = select_shuffled_cells(self.grid, p, rng)
        else:
            # Spread the column-ordered picks so rounds are not column-biased
            positions = select_gradient_cells(self.grid, p, rng)
            shuffle_in_place(rng, positions)

        self.schedule = DestructionSchedule.build(positions, rounds)
        return 0

    def process_round(self) -> int:
        """
        Destroy the next batch of queued cells.

        Returns:
            Cells destroyed this round (0 once the schedule is exhausted).
        """
        schedule = self.schedule
        if not schedule.active:
            return 0

        batch = schedule.next_batch_size()
        destroyed = 0
        for _ in range(batch):
            if self.grid.destroy_cell(schedule.pending.popleft()):
                destroyed += 1

        if schedule.extra_rounds_remaining > 0:
            schedule.extra_rounds_remaining -= 1
        schedule.rounds_remaining -= 1
        self.destroyed_total += destroyed
        return destroyed

    def is_active(self) -> bool:
        """True while scheduled rounds remain."""
        return self.schedule.active

    @property
    def rounds_remaining(self) -> int:
        return self.schedule.rounds_remaining

    @property
    def pending_count(self) -> int:
        return len(self.schedule.pending)

    def __repr__(self) -> str:
        return (
            f"PhasedDestruction(rounds_remaining={self.schedule.rounds_remaining}, "
            f"pending={self.pending_count}, destroyed={self.destroyed_total})"
        )
