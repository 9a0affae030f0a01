"""
Export worker function for parallel image processing.

This module is imported in child processes spawned by
``concurrent.futures.ProcessPoolExecutor``, so its arguments and
results are plain picklable dicts.
"""

from pathlib import Path

from photo_ratio_tool.config import (
    DEFAULT_FILL_COLOR, JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING_DEFAULT, OUTPUT_FORMAT_DEFAULT,
    ZOOM_DEFAULT,
)
from photo_ratio_tool.crop_area import crop_for_aspect
from photo_ratio_tool.image_io import export_filename, open_image, write_unique
from photo_ratio_tool.models import CropRect, FlipState
from photo_ratio_tool.transform import render


def resolve_crop(args: dict, img_w: int, img_h: int) -> CropRect:
    """Explicit ``crop`` if given, otherwise the crop a cropper would report for ``ratio``."""
    crop = args.get("crop")
    if crop:
        return CropRect(*crop)
    ratio = args.get("ratio")
    if ratio is None:
        ratio = img_w / img_h
    return crop_for_aspect(
        img_w, img_h, ratio,
        rotation=args.get("rotation", 0.0),
        zoom=args.get("zoom", ZOOM_DEFAULT),
        pan=tuple(args.get("pan", (0.0, 0.0))),
        restrict=args.get("restrict", True),
    )


def export_worker(args: dict) -> dict:
    """Render one source and save it. Runs in a separate process.

    Never raises: failures are returned as ``{"success": False, "error": ...}``.
    """
    idx = args["index"]
    img_path = Path(args["path"])
    output_dir = Path(args["output_dir"])
    export = args.get("export", {})

    fmt = export.get("format", OUTPUT_FORMAT_DEFAULT)
    quality = export.get("quality", JPEG_QUALITY_DEFAULT)
    subsampling = export.get("subsampling", JPEG_SUBSAMPLING_DEFAULT)

    try:
        img = open_image(img_path)
        crop = resolve_crop(args, img.width, img.height)
        output = render(
            img, crop,
            rotation=args.get("rotation", 0.0),
            flip=FlipState(args.get("flip_h", False), args.get("flip_v", False)),
            fill_color=args.get("fill", DEFAULT_FILL_COLOR),
            fmt=fmt, quality=quality, subsampling=subsampling,
        )
        output_dir.mkdir(parents=True, exist_ok=True)
        out_path = write_unique(output_dir / export_filename(fmt), output.data)
        return {
            "index": idx, "success": True, "name": img_path.name,
            "output": str(out_path), "width": output.width, "height": output.height,
        }
    except Exception as e:
        return {"index": idx, "success": False, "name": img_path.name, "error": str(e)}
