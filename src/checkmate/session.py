"""
Calibration session: the single-threaded frame loop.

Each frame goes blur gate -> corner detection -> orientation resolution ->
SampleStore. Per-frame failures are reported and the loop moves on; only
finish() can fail, when no frame was accepted or the solver rejects the
samples.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable

import numpy as np

from .calibration.board import ORIGIN_CORNERS, board_object_points, find_corners, opposite_corner_grid
from .calibration.intrinsic import SampleStore, calibrate_intrinsics
from .calibration.orientation import (
    PoseSolver,
    candidates_from_brightness,
    make_provisional_intrinsics,
    resolve_pose,
    sample_outer_brightness,
    solve_pose,
)
from .frame_source import FrameSource
from .frame_utils import is_blurred, to_gray
from .types import BoardConfig, CalibrationResult, MarkerGrid, OrientationCandidate, OrientationPolicy

logger = logging.getLogger(__name__)

Detector = Callable[[np.ndarray], "MarkerGrid | None"]


class FrameStatus(Enum):
    ACCEPTED = "Accepted"
    BLURRED = "Frame is blurred"
    NOT_FOUND = "Chessboard not found"
    POSE_INVALID = "Pose not valid"


@dataclass(frozen=True, slots=True)
class FrameReport:
    """
    Outcome of processing one frame.
    """

    index: int
    status: FrameStatus
    candidate: OrientationCandidate | None = None
    marker_candidates: tuple[int, ...] = ()
    brightness: tuple[float, ...] = ()
    camera_matrix: np.ndarray | None = None  # Provisional intrinsics used for the pose

    @property
    def accepted(self) -> bool:
        return self.status is FrameStatus.ACCEPTED


@dataclass(frozen=True, slots=True)
class AcceptedGrids:
    """Oriented grid of an accepted frame and its opposite-corner ordering."""

    a1: MarkerGrid
    h8: MarkerGrid


class CalibrationSession:
    """
    Drives frames through orientation resolution into a SampleStore.

    Not thread-safe; one session per calibration run.
    """

    def __init__(
        self,
        board: BoardConfig,
        policy: OrientationPolicy | None = None,
        detector: Detector | None = None,
        blur_mode: str | None = "stills",
        required_frames: int = 12,
        solver: PoseSolver = solve_pose,
    ):
        """
        Args:
            board: Target description
            policy: Orientation thresholds (defaults if None)
            detector: frame -> unoriented MarkerGrid or None
                (cv2.findChessboardCorners if None)
            blur_mode: "stills", "camera", or None to skip the blur gate
            required_frames: Accepted frames to collect from unbounded sources
            solver: Pose solver used for each orientation candidate
        """
        self.board = board
        self.policy = policy or OrientationPolicy()
        self.detector = detector or partial(find_corners, board=board)
        self.blur_mode = blur_mode
        self.required_frames = required_frames
        self.solver = solver

        self.store = SampleStore()
        self.object_points = board_object_points(board)
        self.accepted_grids: list[AcceptedGrids] = []
        self.last_accepted_frame: np.ndarray | None = None
        self.frames_seen = 0

    # ------------------------------------------------------------------
    # Per-frame processing
    # ------------------------------------------------------------------

    def process_frame(self, frame: np.ndarray) -> FrameReport:
        """
        Run one frame through the pipeline. Never raises for per-frame
        failures; the frame itself is not modified.
        """
        index = self.frames_seen
        self.frames_seen += 1
        gray = to_gray(frame)

        if self.blur_mode is not None and is_blurred(gray, self.blur_mode):
            logger.debug("Frame %d: blurred", index)
            return FrameReport(index=index, status=FrameStatus.BLURRED)

        grid = self.detector(frame)
        if grid is None:
            logger.debug("Frame %d: chessboard not found", index)
            return FrameReport(index=index, status=FrameStatus.NOT_FOUND)

        brightness = sample_outer_brightness(gray, grid, self.policy)
        marker_candidates = tuple(candidates_from_brightness(brightness, self.policy))

        height, width = gray.shape[:2]
        camera_matrix = make_provisional_intrinsics(
            width, height, self.policy.provisional_focal_length
        )
        candidate = resolve_pose(
            grid,
            gray,
            camera_matrix,
            self.board.square_size,
            self.policy,
            self.solver,
            brightness=brightness,
        )

        report_args = dict(
            index=index,
            marker_candidates=marker_candidates,
            brightness=tuple(float(v) for v in brightness),
            camera_matrix=camera_matrix,
        )

        if candidate is None:
            logger.info("Frame %d: pose not valid", index)
            return FrameReport(status=FrameStatus.POSE_INVALID, **report_args)

        if marker_candidates and candidate.rotation_index not in marker_candidates:
            logger.debug(
                "Frame %d: geometry chose corner %d, brightness suggested %s",
                index,
                candidate.rotation_index,
                list(marker_candidates),
            )

        self.store.add(candidate.grid, self.object_points)
        self.last_accepted_frame = frame.copy()
        self.accepted_grids.append(
            AcceptedGrids(
                a1=candidate.grid,
                h8=opposite_corner_grid(candidate.grid),
            )
        )

        logger.info(
            "Frame %d: accepted for calibration (origin %s, reprojection error %.3f px)",
            index,
            ORIGIN_CORNERS[candidate.rotation_index],
            candidate.reprojection_error,
        )
        return FrameReport(status=FrameStatus.ACCEPTED, candidate=candidate, **report_args)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(
        self,
        source: FrameSource,
        should_stop: Callable[[], bool] | None = None,
        on_frame: Callable[[np.ndarray, FrameReport], None] | None = None,
    ) -> list[FrameReport]:
        """
        Process frames until the source is exhausted, enough frames are
        collected, or should_stop() returns True between frames.

        Finite sources are read to the end; unbounded sources stop after
        required_frames accepted frames.

        Args:
            source: Where frames come from
            should_stop: Polled before each frame
            on_frame: Called with each frame and its report

        Returns:
            Reports for every processed frame
        """
        total = source.frame_count()
        reports = []

        while True:
            if total is None and self.store.count() >= self.required_frames:
                break
            if total is not None and len(reports) >= total:
                break
            if should_stop is not None and should_stop():
                logger.info("Exit requested")
                break

            frame = source.next_frame()
            if frame is None:
                break

            report = self.process_frame(frame)
            reports.append(report)
            if on_frame is not None:
                on_frame(frame, report)

        logger.info(
            "Processed %d frames, accepted %d", len(reports), self.store.count()
        )
        return reports

    def finish(self, image_size: tuple[int, int]) -> CalibrationResult:
        """
        Calibrate from everything collected so far.

        Raises:
            InsufficientDataError: If no frame was accepted
            CalibrationError: If the solver rejects the samples
        """
        result = calibrate_intrinsics(self.store, image_size)
        logger.info("Calibration RMS reprojection error: %.4f", result.error)
        return result
