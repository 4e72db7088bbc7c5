"""ScreenSync command line entry point.

Subcommands:
- detect: run screen detection on a reference and a probe image
- preview: capture an averaged frame from a camera or monitor
- render: write one animation canvas frame to an image
"""

import argparse
import sys
from typing import Optional

import numpy as np
from PIL import Image

from screensync.core.animations import ANIMATIONS, render_animation
from screensync.core.capture import (
    CameraCapture,
    CaptureError,
    CaptureSource,
    DesktopCapture,
    capture_averaged,
    save_frame_preview,
)
from screensync.core.constants import CANVAS_SIZE, CAPTURE_COUNT_DEFAULT
from screensync.core.detection import ScreenDetector
from screensync.core.logging import LogEntry, LogLevel, get_logger
from screensync.core.model import DetectionConfig
from screensync.core.validation import validate_config, validate_frames


def load_frame(path: str) -> np.ndarray:
    """Load an image file as an RGBA frame."""
    with Image.open(path) as img:
        return np.asarray(img.convert("RGBA"), dtype=np.uint8)


def _attach_console(verbose: bool) -> None:
    """Print log entries to stderr as they are written."""
    min_level = LogLevel.DEBUG if verbose else LogLevel.INFO

    def listener(entry: LogEntry) -> None:
        if entry.level.value >= min_level.value:
            print(entry.format(), file=sys.stderr)

    get_logger().buffer.add_listener(listener)


def _config_from_args(args: argparse.Namespace) -> DetectionConfig:
    changes = {}
    if args.threshold is not None:
        changes["brightness_threshold"] = args.threshold
    if args.min_blob is not None:
        changes["min_blob_size"] = args.min_blob
    if args.blur is not None:
        changes["blur_radius"] = args.blur
    return DetectionConfig().replace(**changes)


def cmd_detect(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    validation = validate_config(config)
    if not validation:
        for error in validation.errors:
            print(f"error: {error}", file=sys.stderr)
        return 2

    reference = load_frame(args.reference)
    probe = load_frame(args.probe)
    validation = validate_frames([reference, probe])
    if not validation:
        for error in validation.errors:
            print(f"error: {error}", file=sys.stderr)
        return 2

    debug = ScreenDetector(config).analyze(reference, probe)

    if args.mask:
        save_frame_preview(debug.mask, args.mask)
    if args.diff:
        save_frame_preview(debug.blurred, args.diff)

    detection = debug.detection
    if detection is None:
        print("not detected")
        return 1

    print(f"center: {detection.center.x:.4f} {detection.center.y:.4f}")
    if detection.area is not None:
        area = detection.area
        print(f"area: {area.x:.4f} {area.y:.4f} {area.width:.4f} {area.height:.4f}")
    print(f"pixels: {detection.pixel_count}")
    return 0


def _open_source(args: argparse.Namespace) -> CaptureSource:
    if args.monitor is not None:
        return DesktopCapture(args.monitor)
    return CameraCapture(args.camera)


def cmd_preview(args: argparse.Namespace) -> int:
    try:
        with _open_source(args) as source:
            frame = capture_averaged(source, args.frames, args.interval)
    except CaptureError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    save_frame_preview(frame, args.output)
    print(f"saved {frame.shape[1]}x{frame.shape[0]} frame to {args.output}")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    canvas = render_animation(args.animation, args.size, args.time)
    save_frame_preview(canvas, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screensync",
        description="Locate phone screens in a camera image and preview animations.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug log entries")
    sub = parser.add_subparsers(dest="command", required=True)

    detect = sub.add_parser("detect", help="Detect a screen from a reference/probe image pair")
    detect.add_argument("reference", help="Image with every screen off")
    detect.add_argument("probe", help="Image with one screen lit")
    detect.add_argument("--mask", help="Write the binary mask to this file")
    detect.add_argument("--diff", help="Write the blurred difference map to this file")
    detect.add_argument("-t", "--threshold", type=float, default=None,
                        help="Minimum brightness threshold")
    detect.add_argument("--min-blob", dest="min_blob", type=int, default=None,
                        help="Smallest blob size in pixels")
    detect.add_argument("--blur", type=int, default=None, help="Blur radius")
    detect.set_defaults(func=cmd_detect)

    preview = sub.add_parser("preview", help="Save an averaged camera or monitor frame")
    preview.add_argument("output", help="Output image file")
    preview.add_argument("-c", "--camera", type=int, default=0, help="Camera index")
    preview.add_argument("-m", "--monitor", type=int, default=None,
                         help="Capture this monitor instead of a camera")
    preview.add_argument("-n", "--frames", type=int, default=CAPTURE_COUNT_DEFAULT,
                         help="Frames to average")
    preview.add_argument("-i", "--interval", type=float, default=0.05,
                         help="Seconds between frames")
    preview.set_defaults(func=cmd_preview)

    render = sub.add_parser("render", help="Render one animation frame")
    render.add_argument("animation", choices=sorted(ANIMATIONS))
    render.add_argument("output", help="Output image file")
    render.add_argument("--time", type=float, default=0.0, help="Animation time in seconds")
    render.add_argument("--size", type=int, default=CANVAS_SIZE, help="Canvas size")
    render.set_defaults(func=cmd_render)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, 1 if no screen was detected, 2 on error).
    """
    args = build_parser().parse_args(argv)
    _attach_console(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
