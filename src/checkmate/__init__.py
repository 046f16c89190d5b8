# checkmate - Chessboard orientation and camera calibration

__version__ = "0.1.0"

# Core types
from checkmate.types import (
    BoardConfig,
    OrientationPolicy,
    MarkerGrid,
    OrientationCandidate,
    CalibrationSample,
    CalibrationResult,
    SessionConfig,
)

# Calibration
from checkmate.calibration import (
    generate_object_points,
    reorder_grid,
    find_corners,
    locate_marker_candidates,
    make_provisional_intrinsics,
    resolve_pose,
    select_best_candidate,
    SampleStore,
    CalibrationError,
    InsufficientDataError,
    calibrate_intrinsics,
)

# Session
from checkmate.session import (
    CalibrationSession,
    FrameReport,
    FrameStatus,
)

# Frame sources
from checkmate.frame_source import (
    FrameSource,
    CameraFrameSource,
    ImageSequenceSource,
    ArrayFrameSource,
    FrameSourceError,
)

# Configuration
from checkmate.config import (
    load_session_config,
    save_session_config,
    save_calibration,
    load_calibration,
    save_intrinsics,
    load_intrinsics,
)

__all__ = [
    # Core types
    "BoardConfig",
    "OrientationPolicy",
    "MarkerGrid",
    "OrientationCandidate",
    "CalibrationSample",
    "CalibrationResult",
    "SessionConfig",
    # Calibration
    "generate_object_points",
    "reorder_grid",
    "find_corners",
    "locate_marker_candidates",
    "make_provisional_intrinsics",
    "resolve_pose",
    "select_best_candidate",
    "SampleStore",
    "CalibrationError",
    "InsufficientDataError",
    "calibrate_intrinsics",
    # Session
    "CalibrationSession",
    "FrameReport",
    "FrameStatus",
    # Frame sources
    "FrameSource",
    "CameraFrameSource",
    "ImageSequenceSource",
    "ArrayFrameSource",
    "FrameSourceError",
    # Configuration
    "load_session_config",
    "save_session_config",
    "save_calibration",
    "load_calibration",
    "save_intrinsics",
    "load_intrinsics",
]
