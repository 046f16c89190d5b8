"""
Board orientation resolution.

The chessboard's outer squares look alike except for one dark marker, so a
detected corner grid can be labelled from any of its four outer corners.
Brightness of the outer squares is only a hint; the orientation is chosen
by trying all four labelings and keeping the one whose pose reprojects best.

Pure functions - no drawing, no I/O.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

import cv2
import numpy as np

from ..types import MarkerGrid, OrientationCandidate, OrientationPolicy, board_normal_faces_away
from .board import ROTATION_INDICES, generate_object_points, outer_square_centers, reorder_grid

logger = logging.getLogger(__name__)

DEFAULT_POLICY = OrientationPolicy()

PoseSolver = Callable[
    [np.ndarray, np.ndarray, np.ndarray, np.ndarray],
    "tuple[np.ndarray, np.ndarray] | None",
]


# ============================================================================
# Provisional Intrinsics
# ============================================================================


def make_provisional_intrinsics(
    width: int,
    height: int,
    focal_length: float = DEFAULT_POLICY.provisional_focal_length,
) -> np.ndarray:
    """
    Fixed camera matrix guess used only to judge candidate poses.

    Never use this in place of calibrated intrinsics.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        focal_length: Assumed focal length in pixels

    Returns:
        3x3 float64 camera matrix centred on the image
    """
    return np.array([
        [focal_length, 0.0, width / 2.0],
        [0.0, focal_length, height / 2.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


# ============================================================================
# Photometric Marker Hint
# ============================================================================


def sample_outer_brightness(
    gray: np.ndarray,
    grid: MarkerGrid,
    policy: OrientationPolicy = DEFAULT_POLICY,
) -> np.ndarray:
    """
    Mean brightness around each outer square centre.

    Squares whose centre lies within policy.border_margin of the image
    edge are not sampled and report policy.not_sampled_value.

    Args:
        gray: Grayscale image
        grid: Detected grid (any order)
        policy: Window size, margin and sentinel

    Returns:
        (4,) float64 array ordered TL, TR, BL, BR
    """
    height, width = gray.shape[:2]
    margin = policy.border_margin
    half = policy.sample_window // 2
    values = np.full(4, policy.not_sampled_value, dtype=np.float64)

    for i, (x, y) in enumerate(outer_square_centers(grid)):
        if x < margin or y < margin or x > width - 1 - margin or y > height - 1 - margin:
            continue

        x0 = max(int(round(x - half)), 0)
        y0 = max(int(round(y - half)), 0)
        roi = gray[y0:y0 + policy.sample_window, x0:x0 + policy.sample_window]
        values[i] = float(roi.mean())

    return values


def candidates_from_brightness(
    values: Sequence[float],
    policy: OrientationPolicy = DEFAULT_POLICY,
) -> list[int]:
    """
    Indices whose brightness lies within policy.brightness_tolerance of the
    darkest sampled square. Empty if nothing was sampled.
    """
    sampled = [(i, v) for i, v in enumerate(values) if v < policy.not_sampled_value]
    if not sampled:
        return []

    min_val = min(v for _, v in sampled)
    return [i for i, v in sampled if v < min_val + policy.brightness_tolerance]


def locate_marker_candidates(
    gray: np.ndarray,
    grid: MarkerGrid,
    policy: OrientationPolicy = DEFAULT_POLICY,
) -> list[int]:
    """
    Rotation indices whose outer square could be the dark marker.

    Args:
        gray: Grayscale image
        grid: Detected grid (any order)
        policy: Thresholds

    Returns:
        Sorted list of rotation indices, possibly empty
    """
    return candidates_from_brightness(sample_outer_brightness(gray, grid, policy), policy)


# ============================================================================
# Geometric Consistency
# ============================================================================


def solve_pose(
    object_points: np.ndarray,
    image_points: np.ndarray,
    camera_matrix: np.ndarray,
    distortion: np.ndarray,
) -> tuple[np.ndarray, np.ndarray] | None:
    """
    Perspective-n-point pose of the board.

    Returns:
        (rvec, tvec) or None if the solver did not converge
    """
    try:
        ok, rvec, tvec = cv2.solvePnP(
            object_points,
            image_points,
            camera_matrix,
            distortion,
            flags=cv2.SOLVEPNP_ITERATIVE,
        )
    except cv2.error as e:
        logger.debug("solvePnP failed: %s", e)
        return None

    if not ok:
        return None
    return rvec, tvec


def mean_reprojection_error(
    object_points: np.ndarray,
    image_points: np.ndarray,
    rvec: np.ndarray,
    tvec: np.ndarray,
    camera_matrix: np.ndarray,
    distortion: np.ndarray,
) -> float:
    """
    Mean Euclidean distance in pixels between projected model points and
    their detections.
    """
    projected, _ = cv2.projectPoints(object_points, rvec, tvec, camera_matrix, distortion)
    residuals = projected.reshape(-1, 2) - np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    return float(np.linalg.norm(residuals, axis=1).mean())


def evaluate_orientation(
    raw_grid: MarkerGrid,
    rotation_index: int,
    object_points: np.ndarray,
    camera_matrix: np.ndarray,
    policy: OrientationPolicy = DEFAULT_POLICY,
    solver: PoseSolver = solve_pose,
) -> OrientationCandidate:
    """
    Score a single relabeling of the raw grid.

    A candidate is valid only if the pose converges, the board faces away
    from the camera, and the mean reprojection error is below
    policy.max_reprojection_error.
    """
    grid = reorder_grid(raw_grid, rotation_index)
    distortion = np.zeros(5, dtype=np.float64)

    pose = solver(object_points, grid.points, camera_matrix, distortion)
    if pose is None:
        return OrientationCandidate(
            rotation_index=rotation_index,
            grid=grid,
            rvec=None,
            tvec=None,
            reprojection_error=float("inf"),
            converged=False,
            normal_ok=False,
            valid=False,
        )

    rvec, tvec = pose
    normal_ok = board_normal_faces_away(rvec)
    error = float("inf")
    if normal_ok:
        error = mean_reprojection_error(
            object_points, grid.points, rvec, tvec, camera_matrix, distortion
        )

    return OrientationCandidate(
        rotation_index=rotation_index,
        grid=grid,
        rvec=rvec,
        tvec=tvec,
        reprojection_error=error,
        converged=True,
        normal_ok=normal_ok,
        valid=normal_ok and error < policy.max_reprojection_error,
    )


def evaluate_orientations(
    raw_grid: MarkerGrid,
    object_points: np.ndarray,
    camera_matrix: np.ndarray,
    policy: OrientationPolicy = DEFAULT_POLICY,
    solver: PoseSolver = solve_pose,
) -> list[OrientationCandidate]:
    """All four candidates, in rotation index order."""
    return [
        evaluate_orientation(raw_grid, k, object_points, camera_matrix, policy, solver)
        for k in ROTATION_INDICES
    ]


def select_best_candidate(
    candidates: Sequence[OrientationCandidate],
    tie_tolerance: float = DEFAULT_POLICY.tie_tolerance,
) -> OrientationCandidate | None:
    """
    Valid candidate with the lowest reprojection error.

    A strictly lower error wins. Differences below tie_tolerance (solver
    noise) are treated as equal and the lower rotation index wins.
    """
    best = None
    for candidate in sorted(candidates, key=lambda c: c.rotation_index):
        if not candidate.valid:
            continue
        if best is None or candidate.reprojection_error < best.reprojection_error - tie_tolerance:
            best = candidate
    return best


def resolve_pose(
    raw_grid: MarkerGrid,
    image: np.ndarray | None,
    camera_matrix: np.ndarray,
    square_size: float = 1.0,
    policy: OrientationPolicy = DEFAULT_POLICY,
    solver: PoseSolver = solve_pose,
    brightness: Sequence[float] | None = None,
) -> OrientationCandidate | None:
    """
    Resolve the physical orientation of a detected grid.

    Args:
        raw_grid: Grid as returned by the detector
        image: Grayscale or BGR frame, only used for brightness diagnostics
        camera_matrix: Provisional intrinsics (see make_provisional_intrinsics)
        square_size: Board square size for the object model
        policy: Acceptance thresholds
        solver: Pose solver, cv2.solvePnP by default
        brightness: Outer square brightness already sampled by the caller;
            image is not sampled again when given

    Returns:
        Winning OrientationCandidate, or None if no relabeling is valid
    """
    object_points = generate_object_points(raw_grid.rows, raw_grid.columns, square_size)
    candidates = evaluate_orientations(raw_grid, object_points, camera_matrix, policy, solver)

    if logger.isEnabledFor(logging.DEBUG):
        if brightness is None and image is not None:
            gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            brightness = sample_outer_brightness(gray, raw_grid, policy)
        elif brightness is None:
            brightness = [policy.not_sampled_value] * 4
        for c in candidates:
            logger.debug(
                "A1 candidate %d: pixel value=%.1f, solvePnP=%s, z_outwards=%s, reprojErr=%.3f (%s)",
                c.rotation_index,
                brightness[c.rotation_index],
                c.converged,
                c.normal_ok,
                c.reprojection_error,
                "OK" if c.valid else "FAIL",
            )

    return select_best_candidate(candidates, policy.tie_tolerance)
