"""
Spatial utilities for the Habitat Destruction Simulator.

Provides bounded (non-wrapping) grid math: position/coordinate conversion,
bounds checks and Moore-neighborhood enumeration.

Cells are addressed by a flat position index `pos = y * width + x`.
Cells outside [0, width) x [0, height) do not exist; nothing wraps.
"""

from __future__ import annotations


# Moore neighborhood offsets, column-major (dx outer, dy inner)
MOORE_OFFSETS: tuple[tuple[int, int], ...] = tuple(
    (dx, dy)
    for dx in (-1, 0, 1)
    for dy in (-1, 0, 1)
    if not (dx == 0 and dy == 0)
)


def pos_to_xy(pos: int, width: int) -> tuple[int, int]:
    """
    Convert a flat position index to (x, y) coordinates.

    Args:
        pos: Flat position index.
        width: Grid width.

    Returns:
        (x, y) tuple.
    """
    return pos % width, pos // width


def xy_to_pos(x: int, y: int, width: int) -> int:
    """Convert (x, y) coordinates to a flat position index."""
    return y * width + x


def in_bounds(x: int, y: int, width: int, height: int) -> bool:
    """True if (x, y) lies inside [0, width) x [0, height)."""
    return 0 <= x < width and 0 <= y < height


def moore_neighbors(pos: int, width: int, height: int) -> list[int]:
    """
    Enumerate the in-bounds Moore neighbors of a position.

    The order is fixed by MOORE_OFFSETS, so the result is deterministic
    for a given position. Corner cells have 3 neighbors, edge cells 5,
    interior cells 8.

    Args:
        pos: Center position (flat index).
        width, height: Grid dimensions.

    Returns:
        List of neighbor positions (flat indices). Empty if pos is out of range.
    """
    if not 0 <= pos < width * height:
        return []

    x, y = pos_to_xy(pos, width)
    neighbors = []
    for dx, dy in MOORE_OFFSETS:
        nx = x + dx
        ny = y + dy
        if in_bounds(nx, ny, width, height):
            neighbors.append(xy_to_pos(nx, ny, width))
    return neighbors
