"""
Frame source abstraction.

Provides a unified interface for the calibration loop:
- Live cameras (cv2.VideoCapture)
- Still images from a directory
- In-memory frames for tests and scripting
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class FrameSourceError(RuntimeError):
    """A frame source could not be opened."""


class FrameSource(ABC):
    """Abstract base class for frame sources."""

    @abstractmethod
    def next_frame(self) -> np.ndarray | None:
        """Next BGR frame, or None at end of stream."""
        ...

    @abstractmethod
    def frame_size(self) -> tuple[int, int]:
        """(width, height) of the frames."""
        ...

    @abstractmethod
    def frame_count(self) -> int | None:
        """Total number of frames, or None if unbounded."""
        ...

    @abstractmethod
    def is_opened(self) -> bool:
        ...

    def release(self) -> None:
        """Release any held resources."""

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class CameraFrameSource(FrameSource):
    """Live camera via cv2.VideoCapture."""

    def __init__(self, device_id: int = 0):
        self.device_id = device_id
        if sys.platform == "win32":
            self.cap = cv2.VideoCapture(device_id, cv2.CAP_DSHOW)
        else:
            self.cap = cv2.VideoCapture(device_id)

        if not self.cap.isOpened():
            raise FrameSourceError(
                f"Could not open camera device {device_id}. "
                "Check device permissions or try another ID."
            )

        self._size = (
            int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    def next_frame(self) -> np.ndarray | None:
        if self.cap is None or not self.cap.isOpened():
            return None
        ok, frame = self.cap.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def frame_size(self) -> tuple[int, int]:
        return self._size

    def frame_count(self) -> int | None:
        return None

    def is_opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class ImageSequenceSource(FrameSource):
    """Still frames read from a directory in sorted filename order."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise FrameSourceError(f"Frames directory not found: {self.directory}")

        self.filenames = sorted(p for p in self.directory.iterdir() if p.is_file())
        if not self.filenames:
            raise FrameSourceError(f"No images found in {self.directory}")

        self._index = 0
        self._size = (0, 0)
        for path in self.filenames:
            first = cv2.imread(str(path))
            if first is not None:
                self._size = (first.shape[1], first.shape[0])
                break
        else:
            raise FrameSourceError(f"No readable images in {self.directory}")

    def next_frame(self) -> np.ndarray | None:
        while self._index < len(self.filenames):
            path = self.filenames[self._index]
            self._index += 1
            frame = cv2.imread(str(path))
            if frame is not None:
                return frame
            logger.warning("Skipping unreadable image %s", path)
        return None

    def frame_size(self) -> tuple[int, int]:
        return self._size

    def frame_count(self) -> int | None:
        return len(self.filenames)

    def is_opened(self) -> bool:
        return bool(self.filenames)


class ArrayFrameSource(FrameSource):
    """Frames held in memory."""

    def __init__(self, frames: Iterable[np.ndarray], frame_size: tuple[int, int] | None = None):
        self.frames = list(frames)
        self._index = 0
        if frame_size is None and self.frames:
            frame_size = (self.frames[0].shape[1], self.frames[0].shape[0])
        self._size = frame_size or (0, 0)

    def next_frame(self) -> np.ndarray | None:
        if self._index >= len(self.frames):
            return None
        frame = self.frames[self._index]
        self._index += 1
        return frame

    def frame_size(self) -> tuple[int, int]:
        return self._size

    def frame_count(self) -> int | None:
        return len(self.frames)

    def is_opened(self) -> bool:
        return True


def enumerate_camera_devices(max_devices: int = 10) -> list[tuple[int, str]]:
    """
    Try camera indices and return the ones that open.

    Returns:
        List of (device_index, display_name)
    """
    devices = []
    for i in range(max_devices):
        cap = cv2.VideoCapture(i)
        if cap.isOpened():
            devices.append((i, f"Device {i}"))
        cap.release()
    return devices
