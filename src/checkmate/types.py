"""
Core data structures for checkmate.

All types are frozen dataclasses for immutability.
Logic is in separate pure functions - these are data containers only.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


# ============================================================================
# Board Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class BoardConfig:
    """
    Physical description of the chessboard target.

    Dimensions count inner corners, so a classic 8x8 board is 7x7.
    """

    columns: int = 7  # Inner corners along the detector's X scan
    rows: int = 7  # Inner corners along the detector's Y scan
    square_size: float = 1.0  # Arbitrary units, carried into extrinsics

    @property
    def corner_count(self) -> int:
        return self.rows * self.columns

    @property
    def pattern_size(self) -> tuple[int, int]:
        """(columns, rows) as expected by cv2.findChessboardCorners."""
        return (self.columns, self.rows)


@dataclass(frozen=True, slots=True)
class OrientationPolicy:
    """
    Acceptance thresholds used while resolving the board orientation.
    """

    max_reprojection_error: float = 15.0  # Pixels, hard gate
    brightness_tolerance: float = 10.0  # Intensity units above the darkest square
    not_sampled_value: float = 1e6  # Brightness reported for unsampled squares
    sample_window: int = 5  # Side of the square brightness window
    border_margin: int = 2  # Minimum distance from the image edge
    provisional_focal_length: float = 1000.0  # Pixels
    tie_tolerance: float = 1e-9  # Pixel error differences below this count as equal


# ============================================================================
# Grid Data
# ============================================================================


@dataclass(frozen=True, slots=True)
class MarkerGrid:
    """
    Rectangular grid of detected 2D corners.

    Points are row-major (column index fastest). Before orientation the
    origin is whichever corner the detector started from.
    """

    points: np.ndarray  # (rows * columns, 2) float32
    rows: int
    columns: int

    def __post_init__(self) -> None:
        if self.rows <= 0 or self.columns <= 0:
            raise ValueError(
                f"Grid dimensions must be positive, got {self.rows}x{self.columns}"
            )
        if self.points.shape != (self.rows * self.columns, 2):
            raise ValueError(
                f"Expected {self.rows * self.columns} points of shape (n, 2), "
                f"got {self.points.shape}"
            )

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True, slots=True)
class OrientationCandidate:
    """
    One of the four corner relabelings evaluated for a single frame.
    """

    rotation_index: int  # 0=TL, 1=TR, 2=BL, 3=BR origin
    grid: MarkerGrid  # Grid reordered under rotation_index
    rvec: np.ndarray | None  # (3, 1) Rodrigues rotation, None if no pose
    tvec: np.ndarray | None  # (3, 1) translation, None if no pose
    reprojection_error: float  # Mean pixel distance, inf if not computed
    converged: bool  # Pose solver succeeded
    normal_ok: bool  # Board Z axis points away from the camera
    valid: bool  # Passed every hard gate


# ============================================================================
# Calibration Data
# ============================================================================


@dataclass(frozen=True, slots=True)
class CalibrationSample:
    """
    Oriented 2D grid and its matching 3D model points for one accepted frame.
    """

    grid: MarkerGrid
    object_points: np.ndarray  # (n, 3) float32, Z=0

    @property
    def image_points(self) -> np.ndarray:
        return self.grid.points


@dataclass(frozen=True, slots=True)
class CalibrationResult:
    """
    Intrinsic calibration produced from all accepted samples.
    """

    camera_matrix: np.ndarray  # 3x3
    distortion: np.ndarray  # (5,) k1, k2, p1, p2, k3
    error: float  # RMS reprojection error reported by the solver
    image_size: tuple[int, int]  # (width, height)
    sample_count: int


# ============================================================================
# Session Configuration
# ============================================================================


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """
    Complete session configuration.
    Loaded from TOML file.
    """

    board: BoardConfig
    policy: OrientationPolicy
    required_frames: int = 12  # Accepted frames to collect from a live camera
    camera_name: str = "default"
    output_dir: str = "."
    verbose: bool = False


# ============================================================================
# Pure functions for computed properties
# ============================================================================


def rotation_matrix(rvec: np.ndarray) -> np.ndarray:
    """
    Convert a Rodrigues vector to a 3x3 rotation matrix.
    """
    import cv2

    return cv2.Rodrigues(np.asarray(rvec, dtype=np.float64))[0]


def board_normal_faces_away(rvec: np.ndarray) -> bool:
    """
    True when the board's local Z axis has a positive component along the
    camera's viewing axis.
    """
    return bool(rotation_matrix(rvec)[2, 2] > 0)
