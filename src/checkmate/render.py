"""
Overlay drawing for previews and the final frame.

Draw functions mutate the image they are given; callers pass a copy of
any frame that is still needed for detection.
"""

from __future__ import annotations

import cv2
import numpy as np

from .calibration.board import board_object_points
from .calibration.orientation import solve_pose
from .types import BoardConfig, CalibrationResult, MarkerGrid, OrientationCandidate

# BGR
RED = (0, 0, 255)
GREEN = (0, 255, 0)
BLUE = (255, 0, 0)
YELLOW = (0, 255, 255)
ORANGE = (0, 165, 255)
CYAN = (255, 255, 0)
WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

FONT = cv2.FONT_HERSHEY_SIMPLEX

NO_DISTORTION = np.zeros(5, dtype=np.float64)


def _pt(p: np.ndarray) -> tuple[int, int]:
    return int(round(float(p[0]))), int(round(float(p[1])))


def _project(points, rvec, tvec, camera_matrix, distortion) -> np.ndarray:
    projected, _ = cv2.projectPoints(
        np.asarray(points, dtype=np.float32).reshape(-1, 3),
        rvec,
        tvec,
        camera_matrix,
        distortion,
    )
    return projected.reshape(-1, 2)


def outer_corner_offset(square_size: float) -> np.ndarray:
    """Model coordinates of the board's outer corner next to the origin square."""
    return np.array([-square_size, -square_size, 0.0], dtype=np.float32)


def draw_axes(image, camera_matrix, distortion, rvec, tvec, offset, length: float = 4.0) -> None:
    """
    Draw the board's X (green), Y (red) and Z (blue) axes from offset.
    Z is drawn towards the camera.
    """
    axes = np.array([
        [0.0, 0.0, 0.0],
        [0.0, length, 0.0],
        [length, 0.0, 0.0],
        [0.0, 0.0, -length],
    ], dtype=np.float32) + offset
    proj = _project(axes, rvec, tvec, camera_matrix, distortion)

    cv2.line(image, _pt(proj[0]), _pt(proj[1]), RED, 2)
    cv2.line(image, _pt(proj[0]), _pt(proj[2]), GREEN, 2)
    cv2.line(image, _pt(proj[0]), _pt(proj[3]), BLUE, 2)


def draw_cube(image, camera_matrix, distortion, rvec, tvec, base, color, size: float = 1.0) -> None:
    """Draw a wireframe cube standing on the board at base."""
    bx, by, bz = (float(v) for v in base)
    cube = np.array([
        [bx, by, bz],
        [bx, by + size, bz],
        [bx + size, by, bz],
        [bx, by, bz - size],
        [bx + size, by + size, bz],
        [bx, by + size, bz - size],
        [bx + size, by, bz - size],
        [bx + size, by + size, bz - size],
    ], dtype=np.float32)
    proj = _project(cube, rvec, tvec, camera_matrix, distortion)

    edges = (
        (0, 1), (1, 4), (4, 2), (2, 0),  # bottom
        (3, 5), (5, 7), (7, 6), (6, 3),  # top
        (0, 3), (1, 5), (2, 6), (4, 7),  # verticals
    )
    for i, j in edges:
        cv2.line(image, _pt(proj[i]), _pt(proj[j]), color, 2)


def draw_labels(image, board: BoardConfig, camera_matrix, distortion, rvec, tvec, offset) -> None:
    """Draw rank letters (A, B, ...) and file numbers (1, 2, ...) around the board."""
    s = board.square_size
    for y in range(board.rows + 1):
        pt = offset + np.array([-0.5 * s, (y + 0.5) * s, 0.0], dtype=np.float32)
        proj = _project(pt, rvec, tvec, camera_matrix, distortion)[0]
        cv2.putText(image, chr(ord("A") + y), _pt(proj), FONT, 1.0, BLACK, 2, cv2.LINE_AA)

    for x in range(board.columns + 1):
        pt = offset + np.array([(x + 0.5) * s, -0.5 * s, 0.0], dtype=np.float32)
        proj = _project(pt, rvec, tvec, camera_matrix, distortion)[0]
        cv2.putText(image, str(x + 1), _pt(proj), FONT, 1.0, BLACK, 2, cv2.LINE_AA)


def draw_status(image, message: str, color=RED, position=(30, 30)) -> None:
    cv2.putText(image, message, position, FONT, 0.8, color, 2)


def draw_accepted_overlay(
    image: np.ndarray,
    candidate: OrientationCandidate,
    board: BoardConfig,
    camera_matrix: np.ndarray,
) -> None:
    """Corners, axes and labels for a frame that was just accepted."""
    cv2.drawChessboardCorners(
        image,
        board.pattern_size,
        candidate.grid.points.reshape(-1, 1, 2).astype(np.float32),
        True,
    )
    offset = outer_corner_offset(board.square_size)
    draw_axes(image, camera_matrix, NO_DISTORTION, candidate.rvec, candidate.tvec, offset,
              length=4.0 * board.square_size)
    draw_labels(image, board, camera_matrix, NO_DISTORTION, candidate.rvec, candidate.tvec, offset)


def render_final_frame(
    frame: np.ndarray,
    result: CalibrationResult,
    grid: MarkerGrid,
    board: BoardConfig,
) -> np.ndarray | None:
    """
    Annotate a copy of the last accepted frame using the calibrated camera.

    Args:
        frame: Clean frame (not modified)
        result: Calibration to draw with
        grid: Oriented grid detected in frame
        board: Board description

    Returns:
        Annotated copy, or None if the pose could not be solved
    """
    K, dist = result.camera_matrix, result.distortion
    pose = solve_pose(board_object_points(board), grid.points, K, dist)
    if pose is None:
        return None
    rvec, tvec = pose

    out = frame.copy()
    s = board.square_size
    offset = outer_corner_offset(s)
    draw_axes(out, K, dist, rvec, tvec, offset, length=4.0 * s)
    draw_labels(out, board, K, dist, rvec, tvec, offset)

    e1 = np.array([-s, 3 * s, 0.0], dtype=np.float32)
    e8 = e1 + np.array([board.rows * s, 0.0, 0.0], dtype=np.float32)
    draw_cube(out, K, dist, rvec, tvec, e1, WHITE, size=s)
    draw_cube(out, K, dist, rvec, tvec, e8, BLACK, size=s)

    origin = _project(offset, rvec, tvec, K, dist)[0]
    cv2.circle(out, _pt(origin), 10, RED, -1)
    cv2.putText(out, "Chessboard base", (30, 30), FONT, 1.0, WHITE, 2)
    return out
