"""
Unit tests for the bounded-grid spatial utilities.

Tests cover:
- Position <-> coordinate conversion
- Bounds checks
- Moore neighborhood size at corners, edges and interior
- Clipping (no wrap-around)
- Deterministic neighbor order
"""

import pytest

from habitat_sim.utils.spatial import (
    MOORE_OFFSETS,
    in_bounds,
    moore_neighbors,
    pos_to_xy,
    xy_to_pos,
)


class TestConversion:
    def test_pos_to_xy(self):
        assert pos_to_xy(0, 10) == (0, 0)
        assert pos_to_xy(9, 10) == (9, 0)
        assert pos_to_xy(10, 10) == (0, 1)
        assert pos_to_xy(37, 10) == (7, 3)

    def test_xy_to_pos(self):
        assert xy_to_pos(0, 0, 10) == 0
        assert xy_to_pos(7, 3, 10) == 37

    @pytest.mark.parametrize("pos", [0, 1, 13, 24, 99])
    def test_roundtrip(self, pos):
        x, y = pos_to_xy(pos, 7)
        assert xy_to_pos(x, y, 7) == pos

    def test_in_bounds(self):
        assert in_bounds(0, 0, 5, 4)
        assert in_bounds(4, 3, 5, 4)
        assert not in_bounds(5, 0, 5, 4)
        assert not in_bounds(0, 4, 5, 4)
        assert not in_bounds(-1, 0, 5, 4)


class TestMooreNeighbors:
    def test_offsets_exclude_center(self):
        assert len(MOORE_OFFSETS) == 8
        assert (0, 0) not in MOORE_OFFSETS

    def test_interior_has_eight(self):
        assert len(moore_neighbors(xy_to_pos(2, 2, 5), 5, 5)) == 8

    def test_corner_has_three(self):
        for x, y in [(0, 0), (4, 0), (0, 4), (4, 4)]:
            assert len(moore_neighbors(xy_to_pos(x, y, 5), 5, 5)) == 3

    def test_edge_has_five(self):
        for x, y in [(2, 0), (0, 2), (4, 2), (2, 4)]:
            assert len(moore_neighbors(xy_to_pos(x, y, 5), 5, 5)) == 5

    def test_no_wraparound(self):
        # Top-left corner of a 5x5 grid must not see the opposite edges
        neighbors = moore_neighbors(0, 5, 5)
        assert sorted(neighbors) == [1, 5, 6]

    def test_center_order_is_fixed(self):
        assert moore_neighbors(4, 3, 3) == [0, 3, 6, 1, 7, 2, 5, 8]

    def test_corner_order_is_fixed(self):
        assert moore_neighbors(0, 3, 3) == [3, 1, 4]

    def test_single_cell_grid(self):
        assert moore_neighbors(0, 1, 1) == []

    def test_single_row(self):
        assert moore_neighbors(0, 4, 1) == [1]
        assert sorted(moore_neighbors(2, 4, 1)) == [1, 3]

    def test_out_of_range_is_empty(self):
        assert moore_neighbors(-1, 3, 3) == []
        assert moore_neighbors(9, 3, 3) == []

    def test_symmetric(self):
        width, height = 6, 4
        for pos in range(width * height):
            for n in moore_neighbors(pos, width, height):
                assert pos in moore_neighbors(n, width, height)
