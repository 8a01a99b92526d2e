"""
Grid (habitat) for the Habitat Destruction Simulator.

A fixed-size rectangular array of habitat cells. Each cell is in exactly
one state:
  - Empty: available, unoccupied habitat
  - Destroyed: unavailable habitat, never occupiable
  - Occupied: holds exactly one Organism

Storage is dense and indexed by flat position (pos = y * width + x):
  - _organisms[pos] → Organism or None
  - _destroyed[pos] → bool (numpy mask)

A cell is never both destroyed and occupied: destroy_cell() evicts first,
and add_organism() refuses destroyed cells.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from habitat_sim.core.organism import Organism, Species
from habitat_sim.utils.spatial import moore_neighbors, pos_to_xy, xy_to_pos


class Grid:
    """
    The habitat grid.

    Out-of-range positions never raise in queries: they read as destroyed,
    unavailable and unoccupied.

    Attributes:
        width: Grid width (immutable).
        height: Grid height (immutable).
        size: Number of cells (width * height).
    """

    def __init__(self, width: int, height: int):
        """
        Create an all-empty grid.

        Args:
            width, height: Grid dimensions, both >= 1.

        Raises:
            ValueError: If either dimension is not a positive integer.
        """
        if int(width) != width or int(height) != height or width < 1 or height < 1:
            raise ValueError(f"Grid dimensions must be positive integers, got {width}x{height}")

        self._width = int(width)
        self._height = int(height)
        self._organisms: list[Optional[Organism]] = [None] * self.size
        self._destroyed: NDArray[np.bool_] = np.zeros(self.size, dtype=bool)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> int:
        return self._width * self._height

    def in_range(self, pos: int) -> bool:
        """True if pos is a valid cell index."""
        return 0 <= pos < self.size

    def to_xy(self, pos: int) -> tuple[int, int]:
        return pos_to_xy(pos, self._width)

    def to_pos(self, x: int, y: int) -> int:
        return xy_to_pos(x, y, self._width)

    # ------------------------------------------------------------------
    # Cell queries
    # ------------------------------------------------------------------

    def is_occupied(self, pos: int) -> bool:
        """True if the cell holds an organism."""
        return self.in_range(pos) and self._organisms[pos] is not None

    def is_destroyed(self, pos: int) -> bool:
        """True if the cell is destroyed habitat (or out of range)."""
        if not self.in_range(pos):
            return True
        return bool(self._destroyed[pos])

    def is_available(self, pos: int) -> bool:
        """True if the cell is habitat that has not been destroyed."""
        return self.in_range(pos) and not self._destroyed[pos]

    def is_empty(self, pos: int) -> bool:
        """True if the cell is available and unoccupied."""
        return self.is_available(pos) and self._organisms[pos] is None

    def organism_at(self, pos: int) -> Optional[Organism]:
        """The organism at a cell, or None."""
        if not self.in_range(pos):
            return None
        return self._organisms[pos]

    def species_at(self, pos: int) -> Optional[Species]:
        """Species of the organism at a cell, or None."""
        organism = self.organism_at(pos)
        return organism.species if organism is not None else None

    def neighbors(self, pos: int) -> list[int]:
        """In-bounds Moore neighbors of a cell (3-8 positions, fixed order)."""
        return moore_neighbors(pos, self._width, self._height)

    # ------------------------------------------------------------------
    # Organism management
    # ------------------------------------------------------------------

    def add_organism(self, pos: int, organism: Organism) -> None:
        """
        Place an organism on an empty, non-destroyed cell.

        Raises:
            ValueError: If pos is out of range, destroyed or already occupied.
        """
        if not self.in_range(pos):
            raise ValueError(f"Position {pos} is outside the {self._width}x{self._height} grid")
        if self._destroyed[pos]:
            raise ValueError(f"Cannot place organism on destroyed cell {pos}")
        if self._organisms[pos] is not None:
            raise ValueError(f"Cannot place organism on occupied cell {pos}")
        self._organisms[pos] = organism

    def remove_organism(self, pos: int) -> Optional[Organism]:
        """
        Evict the organism at a cell, if any. Idempotent on empty cells.

        Returns:
            The evicted organism, or None.
        """
        if not self.in_range(pos):
            return None
        organism = self._organisms[pos]
        self._organisms[pos] = None
        return organism

    def replace_organism(self, pos: int, organism: Organism) -> Optional[Organism]:
        """
        Evict any occupant of an available cell and place a new organism.

        Returns:
            The displaced organism, or None if the cell was empty.

        Raises:
            ValueError: If pos is out of range or destroyed.
        """
        displaced = self.remove_organism(pos)
        self.add_organism(pos, organism)
        return displaced

    def clear_organisms(self) -> None:
        """Remove every organism; destroyed cells stay destroyed."""
        self._organisms = [None] * self.size

    # ------------------------------------------------------------------
    # Destruction state
    # ------------------------------------------------------------------

    def destroy_cell(self, pos: int) -> bool:
        """
        Destroy a cell, evicting any organism first.

        Returns:
            True if the cell was newly destroyed, False if it already was.

        Raises:
            IndexError: If pos is out of range.
        """
        if not self.in_range(pos):
            raise IndexError(f"Position {pos} is outside the {self._width}x{self._height} grid")
        if self._destroyed[pos]:
            return False
        self._organisms[pos] = None
        self._destroyed[pos] = True
        return True

    def reset(self) -> None:
        """Return every cell to Empty (no organisms, nothing destroyed)."""
        self.clear_organisms()
        self._destroyed[:] = False

    @property
    def destroyed_count(self) -> int:
        return int(np.count_nonzero(self._destroyed))

    @property
    def destroyed_mask(self) -> NDArray[np.bool_]:
        """Read-only copy of the destroyed mask."""
        return self._destroyed.copy()

    # ------------------------------------------------------------------
    # Bulk queries
    # ------------------------------------------------------------------

    def available_positions(self) -> list[int]:
        """All non-destroyed positions in index order."""
        return [int(p) for p in np.flatnonzero(~self._destroyed)]

    def occupied_positions(self) -> list[int]:
        """All occupied, non-destroyed positions in index order."""
        return [
            pos for pos, organism in enumerate(self._organisms)
            if organism is not None and not self._destroyed[pos]
        ]

    def state_codes(self) -> list[str]:
        """
        One character per cell in position order: 'X' destroyed, '.' empty,
        or the occupant's species tag.
        """
        codes = []
        for pos, organism in enumerate(self._organisms):
            if self._destroyed[pos]:
                codes.append("X")
            elif organism is None:
                codes.append(".")
            else:
                codes.append(organism.species.value)
        return codes

    def __repr__(self) -> str:
        occupied = sum(1 for o in self._organisms if o is not None)
        return (
            f"Grid(size={self._width}x{self._height}, "
            f"occupied={occupied}, destroyed={self.destroyed_count})"
        )
