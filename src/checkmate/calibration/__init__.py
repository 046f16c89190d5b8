"""
Calibration module for checkmate.

Board model, orientation resolution and intrinsic calibration.
Everything except SampleStore is a pure function.
"""

from .board import (
    ORIGIN_CORNERS,
    ROTATION_INDICES,
    board_object_points,
    find_corners,
    generate_board_image,
    generate_object_points,
    opposite_corner_grid,
    outer_square_centers,
    reorder_grid,
)

from .orientation import (
    candidates_from_brightness,
    evaluate_orientation,
    evaluate_orientations,
    locate_marker_candidates,
    make_provisional_intrinsics,
    mean_reprojection_error,
    resolve_pose,
    sample_outer_brightness,
    select_best_candidate,
    solve_pose,
)

from .intrinsic import (
    CalibrationError,
    InsufficientDataError,
    SampleStore,
    calibrate_intrinsics,
    compute_reprojection_error,
)

__all__ = [
    # Board
    "ORIGIN_CORNERS",
    "ROTATION_INDICES",
    "board_object_points",
    "find_corners",
    "generate_board_image",
    "generate_object_points",
    "opposite_corner_grid",
    "outer_square_centers",
    "reorder_grid",
    # Orientation
    "candidates_from_brightness",
    "evaluate_orientation",
    "evaluate_orientations",
    "locate_marker_candidates",
    "make_provisional_intrinsics",
    "mean_reprojection_error",
    "resolve_pose",
    "sample_outer_brightness",
    "select_best_candidate",
    "solve_pose",
    # Intrinsic
    "CalibrationError",
    "InsufficientDataError",
    "SampleStore",
    "calibrate_intrinsics",
    "compute_reprojection_error",
]
