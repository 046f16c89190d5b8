#!/usr/bin/env python3
"""
Checkmate CLI - chessboard camera calibration.

Usage:
    checkmate                      - Calibrate from still frames in res/frames
    checkmate calibrate [DIR]      - Calibrate from still frames or a camera (--device)
    checkmate devices              - List camera devices
    checkmate board                - Write a printable board image
    checkmate intrinsics ACTION    - List, show or delete stored intrinsics
    checkmate --help               - Show this help
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path

from .calibration.board import generate_board_image
from .calibration.intrinsic import CalibrationError, InsufficientDataError
from .config import (
    create_default_session_config,
    delete_intrinsics,
    get_default_intrinsics_db,
    list_intrinsics,
    load_intrinsics,
    load_session_config,
    save_calibration,
    save_intrinsics,
)
from .frame_source import CameraFrameSource, FrameSourceError, ImageSequenceSource, enumerate_camera_devices
from .frame_utils import timestamped_filename
from .logging_utils import add_file_handler, setup_logging
from .types import SessionConfig

logger = logging.getLogger("checkmate.cli")

WINDOW_NAME = "Checkmate"
KEY_ESCAPE = 27
DEFAULT_FRAMES_DIR = "res/frames"


# ============================================================================
# calibrate
# ============================================================================


def _build_calibrate_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="checkmate calibrate", description="Calibrate a camera")
    ap.add_argument("frames_dir", nargs="?", default=DEFAULT_FRAMES_DIR,
                    help="Directory of still frames")
    ap.add_argument("--device", type=int, help="Camera index (overrides frames_dir)")
    ap.add_argument("--config", type=Path, help="Session TOML file")
    ap.add_argument("--output", type=Path, help="Directory for results")
    ap.add_argument("--db", type=Path, nargs="?", const=get_default_intrinsics_db(),
                    help="Also store intrinsics in SQLite (default ~/.checkmate/intrinsics.db)")
    ap.add_argument("--required-frames", type=int)
    ap.add_argument("--no-display", action="store_true")
    ap.add_argument("--log-file")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap


def _load_config(args: argparse.Namespace) -> SessionConfig:
    config = load_session_config(args.config) if args.config else create_default_session_config()
    overrides = {}
    if args.output is not None:
        overrides["output_dir"] = str(args.output)
    if args.required_frames is not None:
        overrides["required_frames"] = args.required_frames
    if args.verbose:
        overrides["verbose"] = True
    return replace(config, **overrides)


def calibrate_main(argv: list[str]) -> int:
    from .session import CalibrationSession, FrameStatus

    args = _build_calibrate_parser().parse_args(argv)
    config = _load_config(args)
    root_logger = setup_logging(config.verbose)
    if args.log_file:
        add_file_handler(root_logger, args.log_file)

    use_camera = args.device is not None
    try:
        if use_camera:
            source = CameraFrameSource(args.device)
        else:
            source = ImageSequenceSource(args.frames_dir)
            logger.info("Loaded %d frames from disk", source.frame_count())
    except FrameSourceError as e:
        logger.error("%s", e)
        return 1

    display = not args.no_display
    if display:
        import cv2

        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_AUTOSIZE)

    stop_requested = False

    def request_stop(*_):
        nonlocal stop_requested
        stop_requested = True

    previous_handler = signal.signal(signal.SIGINT, request_stop)

    session = CalibrationSession(
        config.board,
        config.policy,
        blur_mode="camera" if use_camera else "stills",
        required_frames=config.required_frames,
    )

    def show(frame, report):
        nonlocal stop_requested
        if not display:
            return

        import cv2
        from .render import CYAN, ORANGE, RED, YELLOW, draw_accepted_overlay, draw_status

        view = frame.copy()
        if use_camera:
            left = config.required_frames - session.store.count()
            draw_status(view, f"Frames left: {left}", CYAN, (30, 60))

        colors = {
            FrameStatus.BLURRED: RED,
            FrameStatus.NOT_FOUND: YELLOW,
            FrameStatus.POSE_INVALID: ORANGE,
        }
        if report.accepted:
            draw_accepted_overlay(view, report.candidate, config.board, report.camera_matrix)
        else:
            draw_status(view, report.status.value, colors[report.status])

        cv2.imshow(WINDOW_NAME, view)
        if cv2.waitKey(1) == KEY_ESCAPE:
            stop_requested = True
            return

        # Hold accepted frames (and every still) on screen for a moment
        if not use_camera or report.accepted:
            if cv2.waitKey(1000) == KEY_ESCAPE:
                stop_requested = True

    try:
        with source:
            session.run(source, should_stop=lambda: stop_requested, on_frame=show)
            image_size = source.frame_size()
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    try:
        result = session.finish(image_size)
    except (InsufficientDataError, CalibrationError) as e:
        logger.error("%s", e)
        return 1

    output_dir = Path(config.output_dir)
    calib_path = save_calibration(result, output_dir / timestamped_filename("calibration", "yml"))
    logger.info("Calibration saved as %s", calib_path)

    if args.db is not None:
        save_intrinsics(config.camera_name, result, args.db)
        logger.info("Intrinsics stored in %s", args.db)

    if session.last_accepted_frame is not None:
        import cv2
        from .render import render_final_frame

        final = render_final_frame(
            session.last_accepted_frame,
            result,
            session.accepted_grids[-1].a1,
            config.board,
        )
        if final is not None:
            final_path = output_dir / timestamped_filename("final_frame", "png")
            cv2.imwrite(str(final_path), final)
            logger.info("Final frame saved as %s", final_path)

            if display:
                cv2.imshow(WINDOW_NAME, final)
                while cv2.waitKey(0) not in (KEY_ESCAPE, ord("q")):
                    pass

    if display:
        import cv2

        cv2.destroyAllWindows()
    return 0


# ============================================================================
# devices / board
# ============================================================================


def devices_main(argv: list[str]) -> int:
    print("Available input sources:")
    print(f"  [-] Still frames from disk ({DEFAULT_FRAMES_DIR})")
    for index, name in enumerate_camera_devices():
        print(f"  [{index}] {name}")
    return 0


def board_main(argv: list[str]) -> int:
    import cv2

    ap = argparse.ArgumentParser(prog="checkmate board", description="Write a board image")
    ap.add_argument("--output", type=Path, default=Path("board.png"))
    ap.add_argument("--square-px", type=int, default=60)
    ap.add_argument("--config", type=Path)
    args = ap.parse_args(argv)

    config = load_session_config(args.config) if args.config else create_default_session_config()
    img = generate_board_image(config.board, square_px=args.square_px)
    cv2.imwrite(str(args.output), img)
    print(f"Board written to {args.output}")
    return 0


# ============================================================================
# intrinsics
# ============================================================================


def _parse_size(text: str) -> tuple[int, int]:
    width, _, height = text.lower().partition("x")
    try:
        return int(width), int(height)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {text!r}") from None


def intrinsics_main(argv: list[str]) -> int:
    ap = argparse.ArgumentParser(prog="checkmate intrinsics", description="Manage stored intrinsics")
    ap.add_argument("--db", type=Path, default=get_default_intrinsics_db())
    sub = ap.add_subparsers(dest="action", required=True)
    sub.add_parser("list", help="List stored cameras")
    show = sub.add_parser("show", help="Print one stored calibration")
    show.add_argument("camera_name")
    show.add_argument("size", type=_parse_size, help="WIDTHxHEIGHT")
    delete = sub.add_parser("delete", help="Delete stored calibrations")
    delete.add_argument("camera_name")
    delete.add_argument("size", type=_parse_size, nargs="?", help="WIDTHxHEIGHT (all if omitted)")
    args = ap.parse_args(argv)

    if args.action == "list":
        rows = list_intrinsics(args.db)
        if not rows:
            print(f"No intrinsics stored in {args.db}")
        for name, width, height, error in rows:
            print(f"  {name}  {width}x{height}  error={error:.4f}")
        return 0

    if args.action == "show":
        result = load_intrinsics(args.camera_name, args.size, args.db)
        if result is None:
            print(f"No intrinsics for {args.camera_name} at {args.size[0]}x{args.size[1]}")
            return 1
        print(f"camera_matrix:\n{result.camera_matrix}")
        print(f"distortion: {result.distortion}")
        print(f"error: {result.error:.4f} ({result.sample_count} samples)")
        return 0

    deleted = delete_intrinsics(args.camera_name, args.size, args.db)
    print(f"Deleted {deleted} entries")
    return 0 if deleted else 1


def main():
    if len(sys.argv) < 2:
        return calibrate_main([])

    if sys.argv[1] in ("-h", "--help"):
        print(__doc__)
        print("Commands:")
        print("  calibrate  Collect frames and calibrate (see 'checkmate calibrate --help')")
        print("  devices    List camera devices")
        print("  board      Write a board image with the dark marker square")
        print("  intrinsics List, show or delete stored intrinsics")
        print()
        return 0

    command = sys.argv[1]
    argv = sys.argv[2:]

    if command == "calibrate":
        return calibrate_main(argv)

    elif command == "devices":
        return devices_main(argv)

    elif command == "board":
        return board_main(argv)

    elif command == "intrinsics":
        return intrinsics_main(argv)

    else:
        print(f"Unknown command: {command}")
        print("Run 'checkmate --help' for usage")
        return 1


if __name__ == "__main__":
    sys.exit(main())
