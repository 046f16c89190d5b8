"""
Intrinsic camera calibration.

SampleStore collects accepted correspondences for one session;
calibrate_intrinsics is a pure function over its contents.
"""

from __future__ import annotations

import logging
from typing import Iterator, Sequence

import cv2
import numpy as np

from ..types import CalibrationResult, CalibrationSample, MarkerGrid
from .orientation import mean_reprojection_error, solve_pose

logger = logging.getLogger(__name__)


class InsufficientDataError(ValueError):
    """Calibration was requested without any accepted samples."""


class CalibrationError(RuntimeError):
    """The calibration solver rejected the accumulated samples."""


# ============================================================================
# Sample Store
# ============================================================================


def _frozen_copy(array: np.ndarray, dtype=np.float32) -> np.ndarray:
    out = np.array(array, dtype=dtype, copy=True)
    out.setflags(write=False)
    return out


class SampleStore:
    """
    Ordered, append-only collection of CalibrationSample for one session.
    """

    def __init__(self) -> None:
        self._samples: list[CalibrationSample] = []

    def add(self, grid: MarkerGrid, object_points: np.ndarray) -> CalibrationSample:
        """
        Append one oriented grid and its model points.

        Args:
            grid: Oriented MarkerGrid
            object_points: (n, 3) model points in the same order

        Returns:
            The stored CalibrationSample
        """
        if len(grid) == 0 or len(object_points) == 0:
            raise ValueError("Cannot add an empty calibration sample")
        if len(object_points) != len(grid):
            raise ValueError(
                f"Point count mismatch: {len(grid)} image points, "
                f"{len(object_points)} object points"
            )

        sample = CalibrationSample(
            grid=MarkerGrid(
                points=_frozen_copy(grid.points),
                rows=grid.rows,
                columns=grid.columns,
            ),
            object_points=_frozen_copy(np.asarray(object_points).reshape(-1, 3)),
        )
        self._samples.append(sample)
        return sample

    def count(self) -> int:
        return len(self._samples)

    def all(self) -> tuple[CalibrationSample, ...]:
        """Samples in acceptance order."""
        return tuple(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[CalibrationSample]:
        return iter(tuple(self._samples))


# ============================================================================
# Calibration
# ============================================================================


def calibrate_intrinsics(
    samples: SampleStore | Sequence[CalibrationSample],
    image_size: tuple[int, int],
) -> CalibrationResult:
    """
    Calibrate camera intrinsics from all accepted samples.

    Per-view extrinsics returned by the solver are discarded.

    Args:
        samples: SampleStore or sequence of CalibrationSample
        image_size: (width, height) of the frames

    Returns:
        CalibrationResult with the solver's RMS reprojection error

    Raises:
        InsufficientDataError: If there are no samples
        CalibrationError: If the image size is not positive or the solver fails
    """
    views = samples.all() if isinstance(samples, SampleStore) else tuple(samples)
    if not views:
        raise InsufficientDataError("Insufficient data for calibration: no accepted samples")

    object_points = [s.object_points.astype(np.float32) for s in views]
    image_points = [s.image_points.astype(np.float32) for s in views]
    width, height = (int(v) for v in image_size)
    if width <= 0 or height <= 0:
        raise CalibrationError(f"Invalid image size for calibration: {width}x{height}")

    logger.info("Calibrating from %d samples at %dx%d", len(views), width, height)

    try:
        error, matrix, dist, _rvecs, _tvecs = cv2.calibrateCamera(
            object_points,
            image_points,
            (width, height),
            None,
            None,
        )
    except cv2.error as e:
        raise CalibrationError(f"Calibration solver failed: {e}") from e

    return CalibrationResult(
        camera_matrix=matrix,
        distortion=dist.ravel(),
        error=float(error),
        image_size=(width, height),
        sample_count=len(views),
    )


def compute_reprojection_error(
    sample: CalibrationSample,
    result: CalibrationResult,
) -> float | None:
    """
    Mean reprojection error of one sample under calibrated intrinsics.

    Returns:
        Error in pixels, or None if the pose can't be solved
    """
    pose = solve_pose(
        sample.object_points,
        sample.image_points,
        result.camera_matrix,
        result.distortion,
    )
    if pose is None:
        return None

    rvec, tvec = pose
    return mean_reprojection_error(
        sample.object_points,
        sample.image_points,
        rvec,
        tvec,
        result.camera_matrix,
        result.distortion,
    )
