"""
Configuration loading/saving.

Pure functions operating on dataclasses.
- TOML for session configuration
- OpenCV FileStorage YAML for calibration results
- SQLite for camera intrinsics (keyed by camera_name + resolution)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import cv2
import numpy as np
import rtoml

from .types import BoardConfig, CalibrationResult, OrientationPolicy, SessionConfig


# ============================================================================
# TOML Session Configuration
# ============================================================================


def load_session_config(path: Path) -> SessionConfig:
    """
    Load session configuration from TOML file.

    Missing keys fall back to the defaults of each dataclass.

    Args:
        path: Path to config.toml file

    Returns:
        SessionConfig dataclass
    """
    data = rtoml.load(Path(path))
    defaults = create_default_session_config()

    board_data = data.get("board", {})
    board = BoardConfig(
        columns=board_data.get("columns", defaults.board.columns),
        rows=board_data.get("rows", defaults.board.rows),
        square_size=float(board_data.get("square_size", defaults.board.square_size)),
    )

    policy_data = data.get("policy", {})
    p = defaults.policy
    policy = OrientationPolicy(
        max_reprojection_error=float(policy_data.get("max_reprojection_error", p.max_reprojection_error)),
        brightness_tolerance=float(policy_data.get("brightness_tolerance", p.brightness_tolerance)),
        not_sampled_value=float(policy_data.get("not_sampled_value", p.not_sampled_value)),
        sample_window=policy_data.get("sample_window", p.sample_window),
        border_margin=policy_data.get("border_margin", p.border_margin),
        provisional_focal_length=float(policy_data.get("provisional_focal_length", p.provisional_focal_length)),
        tie_tolerance=float(policy_data.get("tie_tolerance", p.tie_tolerance)),
    )

    return SessionConfig(
        board=board,
        policy=policy,
        required_frames=data.get("required_frames", defaults.required_frames),
        camera_name=data.get("camera_name", defaults.camera_name),
        output_dir=data.get("output_dir", defaults.output_dir),
        verbose=data.get("verbose", defaults.verbose),
    )


def save_session_config(config: SessionConfig, path: Path) -> None:
    """
    Save session configuration to TOML file.

    Args:
        config: SessionConfig dataclass
        path: Path to save config.toml
    """
    policy = config.policy
    data = {
        "required_frames": config.required_frames,
        "camera_name": config.camera_name,
        "output_dir": config.output_dir,
        "verbose": config.verbose,
        "board": {
            "columns": config.board.columns,
            "rows": config.board.rows,
            "square_size": config.board.square_size,
        },
        "policy": {
            "max_reprojection_error": policy.max_reprojection_error,
            "brightness_tolerance": policy.brightness_tolerance,
            "not_sampled_value": policy.not_sampled_value,
            "sample_window": policy.sample_window,
            "border_margin": policy.border_margin,
            "provisional_focal_length": policy.provisional_focal_length,
            "tie_tolerance": policy.tie_tolerance,
        },
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(data, f)


def create_default_session_config() -> SessionConfig:
    """
    Default session: 8x8 board (7x7 inner corners), unit squares, 12 frames.
    """
    return SessionConfig(
        board=BoardConfig(columns=7, rows=7, square_size=1.0),
        policy=OrientationPolicy(),
    )


# ============================================================================
# Calibration Result File (OpenCV FileStorage)
# ============================================================================


def save_calibration(result: CalibrationResult, path: Path) -> Path:
    """
    Write a calibration result with OpenCV FileStorage.

    The file is written next to its destination and renamed into place,
    so a failed write never leaves a partial result.

    Args:
        result: CalibrationResult to save
        path: Output filename, .yml/.yaml/.xml/.json

    Returns:
        The written path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.stem}.tmp{path.suffix}")

    fs = cv2.FileStorage(str(tmp), cv2.FILE_STORAGE_WRITE)
    if not fs.isOpened():
        raise OSError(f"Could not open {tmp} for writing")
    try:
        fs.write("cameraMatrix", np.asarray(result.camera_matrix, dtype=np.float64))
        fs.write("distCoeffs", np.asarray(result.distortion, dtype=np.float64).reshape(-1, 1))
        fs.write("reprojectionError", float(result.error))
        fs.write("imageWidth", int(result.image_size[0]))
        fs.write("imageHeight", int(result.image_size[1]))
        fs.write("sampleCount", int(result.sample_count))
    finally:
        fs.release()

    tmp.replace(path)
    return path


def load_calibration(path: Path) -> CalibrationResult | None:
    """
    Read a calibration result written by save_calibration.

    Returns:
        CalibrationResult, or None if the file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        return None

    fs = cv2.FileStorage(str(path), cv2.FILE_STORAGE_READ)
    try:
        matrix = fs.getNode("cameraMatrix").mat()
        dist = fs.getNode("distCoeffs").mat()
        error = fs.getNode("reprojectionError").real()
        width = int(fs.getNode("imageWidth").real())
        height = int(fs.getNode("imageHeight").real())
        count = int(fs.getNode("sampleCount").real())
    finally:
        fs.release()

    if matrix is None or dist is None:
        return None

    return CalibrationResult(
        camera_matrix=matrix,
        distortion=dist.ravel(),
        error=error,
        image_size=(width, height),
        sample_count=count,
    )


# ============================================================================
# SQLite Intrinsics Database
# ============================================================================

DEFAULT_INTRINSICS_DB = Path.home() / ".checkmate" / "intrinsics.db"


def get_default_intrinsics_db() -> Path:
    """Get the default intrinsics database path."""
    return DEFAULT_INTRINSICS_DB


def init_intrinsics_db(db_path: Path = DEFAULT_INTRINSICS_DB) -> None:
    """
    Initialize the intrinsics database if it doesn't exist.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS intrinsics (
            camera_name TEXT NOT NULL,
            width INTEGER NOT NULL,
            height INTEGER NOT NULL,
            matrix BLOB NOT NULL,
            distortion BLOB NOT NULL,
            error REAL NOT NULL,
            sample_count INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (camera_name, width, height)
        )
    """)
    conn.commit()
    conn.close()


def save_intrinsics(
    camera_name: str,
    result: CalibrationResult,
    db_path: Path = DEFAULT_INTRINSICS_DB,
) -> None:
    """
    Save a calibration result to the database.

    Uses INSERT OR REPLACE to update existing entries.

    Args:
        camera_name: Key identifying the camera
        result: CalibrationResult to store
        db_path: Path to SQLite database file
    """
    init_intrinsics_db(db_path)

    conn = sqlite3.connect(db_path)
    conn.execute(
        """
        INSERT OR REPLACE INTO intrinsics
        (camera_name, width, height, matrix, distortion, error, sample_count)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    """,
        (
            camera_name,
            result.image_size[0],
            result.image_size[1],
            np.asarray(result.camera_matrix, dtype=np.float64).tobytes(),
            np.asarray(result.distortion, dtype=np.float64).tobytes(),
            result.error,
            result.sample_count,
        ),
    )
    conn.commit()
    conn.close()


def load_intrinsics(
    camera_name: str,
    image_size: tuple[int, int],
    db_path: Path = DEFAULT_INTRINSICS_DB,
) -> CalibrationResult | None:
    """
    Load a stored calibration result.

    Args:
        camera_name: Camera key
        image_size: (width, height) tuple
        db_path: Path to SQLite database file

    Returns:
        CalibrationResult if found, None otherwise
    """
    if not db_path.exists():
        return None

    conn = sqlite3.connect(db_path)
    cursor = conn.execute(
        """
        SELECT matrix, distortion, error, sample_count
        FROM intrinsics
        WHERE camera_name = ? AND width = ? AND height = ?
    """,
        (camera_name, image_size[0], image_size[1]),
    )

    row = cursor.fetchone()
    conn.close()

    if row is None:
        return None

    return CalibrationResult(
        camera_matrix=np.frombuffer(row[0], dtype=np.float64).reshape(3, 3),
        distortion=np.frombuffer(row[1], dtype=np.float64),
        error=row[2],
        image_size=tuple(image_size),
        sample_count=row[3],
    )


def list_intrinsics(
    db_path: Path = DEFAULT_INTRINSICS_DB,
) -> list[tuple[str, int, int, float]]:
    """
    List all stored intrinsics.

    Returns:
        List of (camera_name, width, height, error) tuples
    """
    if not db_path.exists():
        return []

    conn = sqlite3.connect(db_path)
    cursor = conn.execute("""
        SELECT camera_name, width, height, error
        FROM intrinsics
        ORDER BY camera_name, width, height
    """)

    rows = cursor.fetchall()
    conn.close()

    return rows


def delete_intrinsics(
    camera_name: str,
    image_size: tuple[int, int] | None = None,
    db_path: Path = DEFAULT_INTRINSICS_DB,
) -> int:
    """
    Delete intrinsics from database.

    Args:
        camera_name: Camera key
        image_size: Optional (width, height) - if None, deletes all for camera
        db_path: Path to SQLite database file

    Returns:
        Number of rows deleted
    """
    if not db_path.exists():
        return 0

    conn = sqlite3.connect(db_path)

    if image_size is not None:
        cursor = conn.execute(
            """
            DELETE FROM intrinsics
            WHERE camera_name = ? AND width = ? AND height = ?
        """,
            (camera_name, image_size[0], image_size[1]),
        )
    else:
        cursor = conn.execute(
            "DELETE FROM intrinsics WHERE camera_name = ?",
            (camera_name,),
        )

    deleted = cursor.rowcount
    conn.commit()
    conn.close()

    return deleted
