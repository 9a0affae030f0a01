"""
Command-line entry point and logging setup.

Usage:
    python -m photo_ratio_tool.app photo.jpg --ratio 3:4 --rotation 12
    photo-ratio-tool *.png --ratio A4 --zoom 0.8 --no-restrict   (after pip install)
"""

import argparse
import logging
import os
import sys
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

from photo_ratio_tool.config import (
    DEFAULT_FILL_COLOR, JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING_DEFAULT, JPEG_SUBSAMPLING_MAP,
    IMAGE_EXTENSIONS, OUTPUT_FORMAT_DEFAULT, OUTPUT_FORMATS, ZOOM_DEFAULT,
)
from photo_ratio_tool.ratios import load_presets, parse_ratio, preset_value
from photo_ratio_tool.worker import export_worker

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the root logger once for console output."""
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Suppress verbose libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _parse_crop(text: str) -> tuple[float, float, float, float]:
    parts = text.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("crop must be x,y,w,h")
    try:
        return tuple(float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"crop values must be numbers: {text!r}") from None


def _parse_pan(text: str) -> tuple[float, float]:
    parts = text.split(",")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("pan must be x,y")
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"pan values must be numbers: {text!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-ratio-tool",
        description="Crop, rotate and pad photos to an exact aspect ratio.",
    )
    parser.add_argument("inputs", nargs="*", type=Path, help="Source image files")
    parser.add_argument("-o", "--output", type=Path, default=Path("."), help="Output directory")
    parser.add_argument(
        "-r", "--ratio",
        help="Aspect ratio: preset label (e.g. 'A4', '3x4 cm'), 'W:H' or a number; "
             "defaults to the image's own aspect",
    )
    parser.add_argument("--crop", type=_parse_crop, help="Explicit crop x,y,w,h in rotated-image pixels")
    parser.add_argument("--rotation", type=float, default=0.0, help="Clockwise rotation in degrees")
    parser.add_argument("--zoom", type=float, default=ZOOM_DEFAULT, help="Zoom factor (0.1 - 3)")
    parser.add_argument("--pan", type=_parse_pan, default=(0.0, 0.0), help="Pan offset x,y in pixels")
    parser.add_argument(
        "--no-restrict", dest="restrict", action="store_false",
        help="Allow the image to shrink inside the frame, padding with the fill colour",
    )
    parser.add_argument("--flip-h", action="store_true", help="Mirror horizontally")
    parser.add_argument("--flip-v", action="store_true", help="Mirror vertically")
    parser.add_argument("--fill", default=DEFAULT_FILL_COLOR, help="Background colour for padding")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, default=OUTPUT_FORMAT_DEFAULT)
    parser.add_argument("--quality", type=int, default=JPEG_QUALITY_DEFAULT, help="JPEG quality (1-100)")
    parser.add_argument(
        "--subsampling", choices=list(JPEG_SUBSAMPLING_MAP), default=JPEG_SUBSAMPLING_DEFAULT,
    )
    parser.add_argument("-j", "--jobs", type=int, default=0, help="Worker processes (0 = auto)")
    parser.add_argument("--list-presets", action="store_true", help="Print aspect ratio presets and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def build_worker_args(index: int, path: Path, opts: argparse.Namespace, ratio: float | None) -> dict:
    return {
        "index": index,
        "path": str(path),
        "output_dir": str(opts.output),
        "crop": opts.crop,
        "ratio": ratio,
        "rotation": opts.rotation,
        "zoom": opts.zoom,
        "pan": opts.pan,
        "restrict": opts.restrict,
        "flip_h": opts.flip_h,
        "flip_v": opts.flip_v,
        "fill": opts.fill,
        "export": {
            "format": opts.format,
            "quality": opts.quality,
            "subsampling": opts.subsampling,
        },
    }


def run_batch(args_list: list[dict], workers: int) -> list[dict]:
    """Export every job, in-process for a single job or through a process pool."""
    if len(args_list) == 1 or workers == 1:
        return [export_worker(args) for args in args_list]

    results = []
    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(export_worker, args): args["index"] for args in args_list}
        for future in as_completed(futures):
            results.append(future.result())
    return sorted(results, key=lambda r: r["index"])


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    opts = parser.parse_args(argv)
    setup_logging(logging.DEBUG if opts.verbose else logging.INFO)

    presets = load_presets()
    if opts.list_presets:
        for preset in presets:
            print(f"{preset['label']:<10} {preset_value(preset):.4f}  {preset['group']:<8} {preset.get('desc', '')}")
        return 0

    if not opts.inputs:
        parser.error("at least one input image is required")

    ratio = None
    if opts.ratio:
        try:
            ratio = parse_ratio(opts.ratio, presets)
        except ValueError as exc:
            parser.error(str(exc))

    for path in opts.inputs:
        if path.suffix.lower() not in IMAGE_EXTENSIONS:
            logger.warning("%s: unrecognised image extension, trying to decode anyway", path.name)

    workers = opts.jobs or max(1, (os.cpu_count() or 4) - 1)
    args_list = [build_worker_args(i, p, opts, ratio) for i, p in enumerate(opts.inputs)]
    results = run_batch(args_list, workers)

    errors = [r for r in results if not r["success"]]
    for result in results:
        if result["success"]:
            logger.info(
                "%s -> %s (%dx%d)", result["name"], result["output"], result["width"], result["height"],
            )
        else:
            logger.error("%s: %s", result["name"], result["error"])

    logger.info("Export complete (%d/%d). Output: %s", len(results) - len(errors), len(results), opts.output)
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
