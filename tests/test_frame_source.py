"""
Tests for checkmate.frame_source and checkmate.frame_utils.
"""

from datetime import datetime

import cv2
import numpy as np
import pytest

from checkmate.calibration.board import generate_board_image
from checkmate.frame_source import ArrayFrameSource, FrameSourceError, ImageSequenceSource
from checkmate.frame_utils import BLUR_THRESHOLDS, is_blurred, timestamped_filename, to_gray


class TestBlurGate:
    def test_sharp_board_is_not_blurred(self, board):
        gray = to_gray(generate_board_image(board, square_px=40))
        assert not is_blurred(gray, "stills")
        assert not is_blurred(gray, "camera")

    def test_flat_image_is_blurred(self):
        gray = np.full((480, 640), 128, dtype=np.uint8)
        assert is_blurred(gray)

    def test_smoothed_board_is_blurred(self, board):
        gray = to_gray(generate_board_image(board, square_px=40))
        smooth = cv2.GaussianBlur(gray, (0, 0), 10)
        assert is_blurred(smooth, "stills")

    def test_camera_threshold_is_more_lenient(self):
        assert BLUR_THRESHOLDS["camera"] < BLUR_THRESHOLDS["stills"]

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            is_blurred(np.zeros((10, 10), dtype=np.uint8), "video")


class TestFrameUtils:
    def test_to_gray_passes_grayscale_through(self):
        gray = np.zeros((4, 4), dtype=np.uint8)
        assert to_gray(gray) is gray

    def test_to_gray_converts_bgr(self):
        bgr = np.zeros((4, 6, 3), dtype=np.uint8)
        assert to_gray(bgr).shape == (4, 6)

    def test_timestamped_filename(self):
        now = datetime(2024, 3, 5, 14, 7, 9)
        assert timestamped_filename("frame", "png", now) == "frame_20240305_140709.png"


class TestArrayFrameSource:
    def test_yields_frames_then_none(self):
        frames = [np.full((48, 64, 3), i, dtype=np.uint8) for i in range(3)]
        source = ArrayFrameSource(frames)

        assert source.frame_count() == 3
        assert source.frame_size() == (64, 48)
        assert [source.next_frame()[0, 0, 0] for _ in range(3)] == [0, 1, 2]
        assert source.next_frame() is None

    def test_empty(self):
        source = ArrayFrameSource([])
        assert source.frame_count() == 0
        assert source.frame_size() == (0, 0)
        assert source.next_frame() is None


class TestImageSequenceSource:
    def test_reads_in_sorted_order(self, temp_dir):
        for i in (2, 0, 1):
            img = np.full((30, 40, 3), i * 50, dtype=np.uint8)
            cv2.imwrite(str(temp_dir / f"frame_{i:02d}.png"), img)

        with ImageSequenceSource(temp_dir) as source:
            assert source.frame_count() == 3
            assert source.frame_size() == (40, 30)
            values = []
            while (frame := source.next_frame()) is not None:
                values.append(int(frame[0, 0, 0]))

        assert values == [0, 50, 100]

    def test_skips_unreadable_files(self, temp_dir):
        cv2.imwrite(str(temp_dir / "a.png"), np.zeros((10, 10, 3), dtype=np.uint8))
        (temp_dir / "b.txt").write_text("not an image")
        cv2.imwrite(str(temp_dir / "c.png"), np.full((10, 10, 3), 200, dtype=np.uint8))

        source = ImageSequenceSource(temp_dir)
        first = source.next_frame()
        second = source.next_frame()

        assert first[0, 0, 0] == 0
        assert second[0, 0, 0] == 200
        assert source.next_frame() is None

    def test_size_from_first_readable_image(self, temp_dir):
        (temp_dir / "NOTES.txt").write_text("capture notes")
        cv2.imwrite(str(temp_dir / "frame_00.png"), np.zeros((30, 40, 3), dtype=np.uint8))

        source = ImageSequenceSource(temp_dir)

        assert source.filenames[0].name == "NOTES.txt"
        assert source.frame_size() == (40, 30)
        assert source.next_frame().shape == (30, 40, 3)
        assert source.next_frame() is None

    def test_no_readable_images_raises(self, temp_dir):
        (temp_dir / "README").write_text("no frames here")
        with pytest.raises(FrameSourceError):
            ImageSequenceSource(temp_dir)

    def test_missing_directory_raises(self, temp_dir):
        with pytest.raises(FrameSourceError):
            ImageSequenceSource(temp_dir / "nope")

    def test_empty_directory_raises(self, temp_dir):
        with pytest.raises(FrameSourceError):
            ImageSequenceSource(temp_dir)
