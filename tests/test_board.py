"""
Tests for checkmate.calibration.board.
"""

import numpy as np
import pytest

from checkmate.calibration.board import (
    ROTATION_INDICES,
    find_corners,
    generate_board_image,
    generate_object_points,
    opposite_corner_grid,
    outer_square_centers,
    reorder_grid,
)
from checkmate.types import BoardConfig, MarkerGrid


def make_grid(rows, columns, spacing=10.0, origin=(100.0, 50.0)):
    """Axis-aligned grid: columns along +x, rows along +y."""
    r, c = np.meshgrid(np.arange(rows), np.arange(columns), indexing="ij")
    points = np.stack(
        [origin[0] + c.ravel() * spacing, origin[1] + r.ravel() * spacing], axis=1
    ).astype(np.float32)
    return MarkerGrid(points=points, rows=rows, columns=columns)


class TestGenerateObjectPoints:
    @pytest.mark.parametrize("rows,columns", [(1, 1), (2, 3), (7, 7), (5, 9)])
    def test_length_and_plane(self, rows, columns):
        obj = generate_object_points(rows, columns, 2.5)
        assert obj.shape == (rows * columns, 3)
        assert np.all(obj[:, 2] == 0)

    def test_row_major_coordinates(self):
        s = 0.04
        obj = generate_object_points(3, 4, s)
        for r in range(3):
            for c in range(4):
                np.testing.assert_allclose(obj[r * 4 + c], [r * s, c * s, 0.0], rtol=1e-6)

    def test_deterministic(self):
        a = generate_object_points(7, 7, 1.0)
        b = generate_object_points(7, 7, 1.0)
        np.testing.assert_array_equal(a, b)

    @pytest.mark.parametrize("rows,columns", [(0, 5), (5, 0), (-1, 3)])
    def test_rejects_non_positive_dimensions(self, rows, columns):
        with pytest.raises(ValueError):
            generate_object_points(rows, columns, 1.0)


class TestReorderGrid:
    @pytest.mark.parametrize("k", ROTATION_INDICES)
    def test_is_a_bijection(self, k):
        grid = make_grid(4, 6)
        out = reorder_grid(grid, k)
        assert len(out) == grid.rows * grid.columns
        original = {tuple(p) for p in grid.points}
        reordered = {tuple(p) for p in out.points}
        assert original == reordered

    def test_index_zero_is_identity(self):
        grid = make_grid(3, 5)
        np.testing.assert_array_equal(reorder_grid(grid, 0).points, grid.points)

    def test_origin_moves_to_named_corner(self):
        grid = make_grid(3, 5)
        cols = grid.columns
        expected_origin = {
            0: grid.points[0],
            1: grid.points[cols - 1],
            2: grid.points[(grid.rows - 1) * cols],
            3: grid.points[-1],
        }
        for k, origin in expected_origin.items():
            np.testing.assert_array_equal(reorder_grid(grid, k).points[0], origin)

    @pytest.mark.parametrize("k", ROTATION_INDICES)
    def test_reorder_twice_restores_order(self, k):
        grid = make_grid(4, 6)
        np.testing.assert_array_equal(reorder_grid(reorder_grid(grid, k), k).points, grid.points)

    @pytest.mark.parametrize("k", ROTATION_INDICES)
    def test_complementary_reorder_is_half_turn(self, k):
        grid = make_grid(4, 6)
        composed = reorder_grid(reorder_grid(grid, k), 3 - k)
        np.testing.assert_array_equal(composed.points, reorder_grid(grid, 3).points)

    def test_opposite_corner_starts_at_far_corner(self):
        grid = make_grid(4, 4)
        oriented = reorder_grid(grid, 1)
        h8 = opposite_corner_grid(oriented)
        # Oriented origin is raw TR; the far corner of that is raw BL
        np.testing.assert_array_equal(h8.points[0], grid.points[3 * 4])
        np.testing.assert_array_equal(h8.points, reorder_grid(grid, 3 - 1).points)

    def test_does_not_mutate_input(self):
        grid = make_grid(3, 3)
        before = grid.points.copy()
        reorder_grid(grid, 3)
        np.testing.assert_array_equal(grid.points, before)

    def test_rejects_bad_index(self):
        with pytest.raises(ValueError):
            reorder_grid(make_grid(3, 3), 4)


class TestMarkerGrid:
    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            MarkerGrid(points=np.zeros((5, 2), dtype=np.float32), rows=2, columns=3)

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValueError):
            MarkerGrid(points=np.zeros((0, 2), dtype=np.float32), rows=0, columns=3)


class TestOuterSquareCenters:
    def test_half_step_beyond_extreme_corners(self):
        grid = make_grid(3, 4, spacing=10.0, origin=(100.0, 50.0))
        centers = outer_square_centers(grid)
        np.testing.assert_allclose(centers[0], [95.0, 45.0])
        np.testing.assert_allclose(centers[1], [135.0, 45.0])
        np.testing.assert_allclose(centers[2], [95.0, 75.0])
        np.testing.assert_allclose(centers[3], [135.0, 75.0])


class TestBoardImage:
    def test_dimensions(self, board):
        img = generate_board_image(board, square_px=40)
        # 8 squares + one square of margin on each side
        assert img.shape == (400, 400, 3)

    def test_marker_is_darkest_outer_square(self, board):
        img = generate_board_image(board, square_px=40, marker_shade=0, corner_shade=110)
        gray = img[:, :, 0]
        assert gray[60, 60] == 0  # Marker (top-left square)
        assert gray[340, 340] == 110  # Opposite dark square, lightened
        assert gray[60, 340] == 255
        assert gray[340, 60] == 255

    def test_find_corners_on_rendered_board(self, board):
        img = generate_board_image(board, square_px=40)
        grid = find_corners(img, board)

        assert grid is not None
        assert grid.rows == 7 and grid.columns == 7
        assert len(grid) == 49
        # Inner corners sit on the square lattice, 80..320 px
        assert grid.points.min() > 70
        assert grid.points.max() < 330

    def test_find_corners_returns_none_on_blank(self, board):
        blank = np.full((480, 640, 3), 255, dtype=np.uint8)
        assert find_corners(blank, board) is None

    def test_find_corners_accepts_grayscale(self):
        board = BoardConfig(columns=5, rows=4, square_size=1.0)
        img = generate_board_image(board, square_px=40)[:, :, 0]
        grid = find_corners(img, board)
        assert grid is not None
        assert grid.points.shape == (20, 2)
