"""
Chessboard model, corner detection and grid reordering.

Pure functions - no classes, no state.
"""

from __future__ import annotations

import cv2
import numpy as np

from ..types import BoardConfig, MarkerGrid


# Origin corner names, indexed by rotation index
ORIGIN_CORNERS = ("top-left", "top-right", "bottom-left", "bottom-right")

ROTATION_INDICES = (0, 1, 2, 3)

SUBPIX_CRITERIA = (cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER, 30, 0.1)


# ============================================================================
# Object Model
# ============================================================================


def generate_object_points(rows: int, columns: int, square_size: float) -> np.ndarray:
    """
    Generate the planar 3D model of the chessboard corners.

    Point (r, c) maps to (r * square_size, c * square_size, 0), emitted
    row-major so that it lines up with an oriented MarkerGrid.

    Args:
        rows: Inner corners along Y
        columns: Inner corners along X
        square_size: Edge length of one square

    Returns:
        (rows * columns, 3) float32 array
    """
    if rows <= 0 or columns <= 0:
        raise ValueError(f"Board dimensions must be positive, got {rows}x{columns}")

    r, c = np.meshgrid(np.arange(rows), np.arange(columns), indexing="ij")
    obj = np.zeros((rows * columns, 3), dtype=np.float32)
    obj[:, 0] = r.ravel() * square_size
    obj[:, 1] = c.ravel() * square_size
    return obj


def board_object_points(board: BoardConfig) -> np.ndarray:
    """Object points for a BoardConfig."""
    return generate_object_points(board.rows, board.columns, board.square_size)


# ============================================================================
# Grid Reordering
# ============================================================================


def reorder_grid(grid: MarkerGrid, rotation_index: int) -> MarkerGrid:
    """
    Reorder a grid so the outer corner named by rotation_index becomes the origin.

    0 keeps the order, 1 reverses columns, 2 reverses rows, 3 reverses both.
    Every reorder is its own inverse.

    Args:
        grid: Grid to reorder (not modified)
        rotation_index: 0=TL, 1=TR, 2=BL, 3=BR

    Returns:
        New MarkerGrid with the same points in the new order
    """
    if rotation_index not in ROTATION_INDICES:
        raise ValueError(f"rotation_index must be 0-3, got {rotation_index}")

    table = grid.points.reshape(grid.rows, grid.columns, 2)
    if rotation_index in (1, 3):
        table = table[:, ::-1]
    if rotation_index in (2, 3):
        table = table[::-1, :]

    return MarkerGrid(
        points=np.ascontiguousarray(table.reshape(-1, 2)),
        rows=grid.rows,
        columns=grid.columns,
    )


def opposite_corner_grid(oriented: MarkerGrid) -> MarkerGrid:
    """
    Ordering of an oriented grid that starts from the corner diagonally
    opposite its origin (the "H8" corner).

    Equivalent to reordering the raw grid by 3 - k when the oriented grid
    came from rotation index k.
    """
    return reorder_grid(oriented, 3)


# ============================================================================
# Outer Squares
# ============================================================================


def outer_square_centers(grid: MarkerGrid) -> np.ndarray:
    """
    Centres of the four outer corner squares of the board.

    Extrapolates half a square step beyond the extreme grid corners along
    both grid axes.

    Args:
        grid: Grid in any order (indices follow the grid's own scan)

    Returns:
        (4, 2) array ordered TL, TR, BL, BR
    """
    if grid.rows < 2 or grid.columns < 2:
        raise ValueError("Outer squares need at least a 2x2 grid")

    pts = grid.points.astype(np.float64)
    cols = grid.columns
    tl = pts[0]
    tr = pts[cols - 1]
    bl = pts[(grid.rows - 1) * cols]
    br = pts[-1]
    dx = (tr - tl) / (cols - 1)
    dy = (bl - tl) / (grid.rows - 1)

    return np.array([
        tl - dx / 2 - dy / 2,
        tr + dx / 2 - dy / 2,
        bl - dx / 2 + dy / 2,
        br + dx / 2 + dy / 2,
    ])


# ============================================================================
# Detection
# ============================================================================


def find_corners(frame: np.ndarray, board: BoardConfig) -> MarkerGrid | None:
    """
    Detect chessboard inner corners and refine them to subpixel accuracy.

    Args:
        frame: BGR or grayscale image
        board: BoardConfig describing the target

    Returns:
        Unoriented MarkerGrid, or None if the board was not found
    """
    gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    found, corners = cv2.findChessboardCorners(gray, board.pattern_size)
    if not found or corners is None:
        return None

    corners = cv2.cornerSubPix(gray, corners, (11, 11), (-1, -1), SUBPIX_CRITERIA)

    return MarkerGrid(
        points=corners.reshape(-1, 2).astype(np.float32),
        rows=board.rows,
        columns=board.columns,
    )


# ============================================================================
# Board Image
# ============================================================================


def generate_board_image(
    board: BoardConfig,
    square_px: int = 60,
    margin_px: int | None = None,
    marker_shade: int = 0,
    corner_shade: int = 110,
) -> np.ndarray:
    """
    Render a printable chessboard with a single marker square.

    Dark outer corner squares other than the top-left one are drawn in a
    lighter shade so that only the marker is the darkest outer square.

    Args:
        board: BoardConfig (inner corners, so squares are one more per axis)
        square_px: Square edge in pixels
        margin_px: White border, defaults to one square
        marker_shade: Gray level of the marker square
        corner_shade: Gray level of the other dark outer squares

    Returns:
        BGR image as numpy array
    """
    if margin_px is None:
        margin_px = square_px

    n_rows = board.rows + 1
    n_cols = board.columns + 1
    height = n_rows * square_px + 2 * margin_px
    width = n_cols * square_px + 2 * margin_px
    img = np.full((height, width), 255, dtype=np.uint8)

    outer = {(0, 0), (0, n_cols - 1), (n_rows - 1, 0), (n_rows - 1, n_cols - 1)}

    for i in range(n_rows):
        for j in range(n_cols):
            if (i + j) % 2:
                continue
            if (i, j) == (0, 0):
                shade = marker_shade
            elif (i, j) in outer:
                shade = corner_shade
            else:
                shade = 0
            y0 = margin_px + i * square_px
            x0 = margin_px + j * square_px
            img[y0:y0 + square_px, x0:x0 + square_px] = shade

    return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
