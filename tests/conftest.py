"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def board():
    """Standard 8x8 chessboard (7x7 inner corners), unit squares."""
    from checkmate.types import BoardConfig
    return BoardConfig(columns=7, rows=7, square_size=1.0)


@pytest.fixture
def image_size():
    """(width, height) of synthetic frames."""
    return (640, 480)


@pytest.fixture
def true_camera_matrix():
    """Ground-truth intrinsics of the synthetic camera."""
    return np.array([
        [800.0, 0.0, 320.0],
        [0.0, 800.0, 240.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


@pytest.fixture
def sample_distortion():
    """Typical distortion coefficients (k1, k2, p1, p2, k3)."""
    return np.array([0.1, -0.25, 0.001, -0.001, 0.1], dtype=np.float64)


@pytest.fixture
def sample_result(true_camera_matrix, sample_distortion, image_size):
    """Sample CalibrationResult dataclass."""
    from checkmate.types import CalibrationResult
    return CalibrationResult(
        camera_matrix=true_camera_matrix,
        distortion=sample_distortion,
        error=0.25,
        image_size=image_size,
        sample_count=12,
    )


@pytest.fixture
def synthetic_poses(board):
    """
    Twelve board poses facing away from the camera, board centred in view.

    Returns list of (rvec, tvec) float64 arrays of shape (3, 1).
    """
    angles = [
        (0.00, 0.00, 0.00),
        (0.30, 0.00, 0.10),
        (-0.30, 0.05, -0.10),
        (0.00, 0.30, 0.20),
        (0.05, -0.30, -0.20),
        (0.25, 0.25, 0.40),
        (-0.25, 0.25, -0.40),
        (0.25, -0.25, 0.60),
        (-0.25, -0.25, -0.60),
        (0.15, 0.10, 1.00),
        (-0.10, 0.20, -1.00),
        (0.20, -0.15, 0.00),
    ]
    distances = [14.0, 15.0, 16.0, 14.5, 15.5, 16.5, 14.0, 15.0, 16.0, 14.5, 15.5, 16.5]

    center = np.array(
        [(board.rows - 1) * board.square_size / 2, (board.columns - 1) * board.square_size / 2, 0.0]
    )
    poses = []
    for angle, distance in zip(angles, distances):
        rvec = np.array(angle, dtype=np.float64).reshape(3, 1)
        R = cv2.Rodrigues(rvec)[0]
        tvec = (np.array([0.0, 0.0, distance]) - R @ center).reshape(3, 1)
        poses.append((rvec, tvec))
    return poses


@pytest.fixture
def project_board(board):
    """
    Project the oriented board model through a camera.

    Returns a function (rvec, tvec, camera_matrix) -> (n, 2) float32 points
    in oriented row-major order.
    """
    from checkmate.calibration.board import board_object_points

    def _project(rvec, tvec, camera_matrix):
        projected, _ = cv2.projectPoints(
            board_object_points(board),
            rvec,
            tvec,
            camera_matrix,
            np.zeros(5),
        )
        return projected.reshape(-1, 2).astype(np.float32)

    return _project


@pytest.fixture
def marker_frame(board, image_size):
    """
    White frame with dark discs painted at the given outer squares.

    Returns a function (grid, dark_indices, shade=20) -> BGR image.
    """
    from checkmate.calibration.board import outer_square_centers

    def _frame(grid, dark_indices, shade=20):
        width, height = image_size
        img = np.full((height, width, 3), 230, dtype=np.uint8)
        centers = outer_square_centers(grid)
        for i in dark_indices:
            x, y = centers[i]
            cv2.circle(img, (int(round(x)), int(round(y))), 8, (shade, shade, shade), -1)
        return img

    return _frame
