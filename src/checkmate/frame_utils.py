"""
Frame helpers: grayscale conversion, blur gate, output filenames.
"""

from __future__ import annotations

from datetime import datetime

import cv2
import numpy as np

# Minimum variance of the Laplacian for a frame to count as sharp
BLUR_THRESHOLDS = {
    "stills": 100.0,
    "camera": 70.0,  # Webcam frames are softer
}


def to_gray(frame: np.ndarray) -> np.ndarray:
    """
    Convert a BGR frame to grayscale. Grayscale input is returned as-is.
    """
    if frame.ndim == 2:
        return frame
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


def laplacian_variance(gray: np.ndarray) -> float:
    lap = cv2.Laplacian(gray, cv2.CV_64F)
    _, stddev = cv2.meanStdDev(lap)
    return float(stddev[0, 0] ** 2)


def is_blurred(gray: np.ndarray, mode: str = "stills") -> bool:
    """
    Check whether a grayscale frame is too blurred to use.

    Args:
        gray: Grayscale image
        mode: "stills" or "camera"

    Returns:
        True if the Laplacian variance is below the mode's threshold
    """
    if mode not in BLUR_THRESHOLDS:
        raise ValueError(f"Unknown blur mode: {mode!r}")
    return laplacian_variance(gray) < BLUR_THRESHOLDS[mode]


def timestamped_filename(prefix: str, ext: str, now: datetime | None = None) -> str:
    """
    Build "<prefix>_YYYYmmdd_HHMMSS.<ext>".
    """
    now = now or datetime.now()
    return f"{prefix}_{now:%Y%m%d_%H%M%S}.{ext}"
