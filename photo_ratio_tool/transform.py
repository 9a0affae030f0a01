"""
Crop/rotate/flip export pipeline.

``render_raster`` turns a source image plus a crop rectangle in rotated-image
coordinates into a PIL raster of exactly the requested size:

1. the rotated bounding box of the source is computed and allocated,
   pre-filled with the background colour;
2. the source is flipped, rotated about its centre and composited into it;
3. the crop rectangle is copied onto an output raster that is also
   pre-filled, so any part of the crop outside the bounding box shows the
   background colour.

``render`` adds the final encoding step and returns an ``OutputImage``.
Quarter turns use exact transposition; other angles use bicubic resampling.
No state is kept between calls and inputs are never modified.
"""

import asyncio
import logging
import math

from PIL import Image, ImageColor

from photo_ratio_tool.config import (
    DEFAULT_FILL_COLOR, JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING_DEFAULT, OUTPUT_FORMAT_DEFAULT,
)
from photo_ratio_tool.image_io import encode_image, load_source
from photo_ratio_tool.models import (
    CropRect, FlipState, OutputImage, normalize_rotation, rotate_size, round_half_up,
)

logger = logging.getLogger(__name__)

_TRANSPARENT = (0, 0, 0, 0)

# Clockwise quarter turns expressed as Pillow transpositions (Pillow's ROTATE_* are counter-clockwise)
_QUARTER_TURNS = {
    0: None,
    1: Image.Transpose.ROTATE_270,
    2: Image.Transpose.ROTATE_180,
    3: Image.Transpose.ROTATE_90,
}


# =============================================================================
# Helpers
# =============================================================================
def parse_color(color) -> tuple[int, int, int, int]:
    """Return an RGBA tuple for a colour name, ``#hex`` string, or RGB(A) tuple."""
    if isinstance(color, str):
        return ImageColor.getcolor(color, "RGBA")
    values = tuple(color)
    if len(values) == 3:
        values += (255,)
    if len(values) != 4 or not all(isinstance(v, int) and 0 <= v <= 255 for v in values):
        raise ValueError(f"Colour must be 3 or 4 integers in 0..255, got {color!r}")
    return values


def bounding_box(width: int, height: int, rotation: float) -> tuple[int, int]:
    """Pixel size of the raster holding a width×height image rotated by *rotation* degrees."""
    bw, bh = rotate_size(width, height, rotation)
    return max(1, round_half_up(bw)), max(1, round_half_up(bh))


def _affine_coefficients(
    src_w: int, src_h: int, box_w: int, box_h: int, rad: float, flip: FlipState,
) -> tuple[float, ...]:
    """Inverse mapping (output pixel -> source pixel) for ``Image.transform``.

    Forward: translate to box centre, rotate clockwise, mirror, centre the source.
    """
    cos_a = math.cos(rad)
    sin_a = math.sin(rad)
    fx = -1.0 if flip.horizontal else 1.0
    fy = -1.0 if flip.vertical else 1.0
    cx, cy = box_w / 2, box_h / 2
    return (
        fx * cos_a, fx * sin_a, fx * (-cx * cos_a - cy * sin_a) + src_w / 2,
        -fy * sin_a, fy * cos_a, fy * (cx * sin_a - cy * cos_a) + src_h / 2,
    )


def _draw_rotated(
    src: Image.Image, angle: float, flip: FlipState, fill: tuple[int, int, int, int],
) -> Image.Image:
    """Return the intermediate raster: the whole rotated source on a filled background."""
    box_w, box_h = bounding_box(src.width, src.height, angle)
    canvas = Image.new("RGBA", (box_w, box_h), fill)

    if angle % 90 == 0:
        layer = src
        if flip.horizontal:
            layer = layer.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if flip.vertical:
            layer = layer.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        method = _QUARTER_TURNS[int(angle // 90)]
        if method is not None:
            layer = layer.transpose(method)
        offset = ((box_w - layer.width) // 2, (box_h - layer.height) // 2)
    else:
        coeffs = _affine_coefficients(src.width, src.height, box_w, box_h, math.radians(angle), flip)
        layer = src.transform(
            (box_w, box_h), Image.Transform.AFFINE, coeffs,
            resample=Image.Resampling.BICUBIC, fillcolor=_TRANSPARENT,
        )
        offset = (0, 0)

    canvas.alpha_composite(layer, offset)
    return canvas


def _extract(
    rotated: Image.Image, box: tuple[int, int, int, int], fill: tuple[int, int, int, int],
) -> Image.Image:
    """Copy the crop box out of *rotated*, padding the uncovered part with *fill*."""
    x, y, w, h = box
    out = Image.new("RGBA", (w, h), fill)
    left, top = max(x, 0), max(y, 0)
    right, bottom = min(x + w, rotated.width), min(y + h, rotated.height)
    if right > left and bottom > top:
        out.paste(rotated.crop((left, top, right, bottom)), (left - x, top - y))
    return out


# =============================================================================
# Public API
# =============================================================================
def render_raster(
    source,
    crop: CropRect,
    rotation: float = 0.0,
    flip: FlipState | None = None,
    fill_color=DEFAULT_FILL_COLOR,
) -> Image.Image:
    """Render the cropped, rotated and flipped source as a PIL raster.

    Parameters
    ----------
    source
        PIL Image, encoded bytes, ``data:`` URI, or file path.
    crop : CropRect
        Rectangle in the coordinate space of the rotated image.  It may
        extend past the rotated bounding box.
    rotation : float
        Clockwise angle in degrees; any finite value.
    flip : FlipState
        Mirror flags, applied before rotation.
    fill_color
        Background for every pixel not covered by the source.

    The result is ``round(crop.w) × round(crop.h)`` pixels, RGB when the
    fill colour is opaque and RGBA otherwise.  Raises ``DecodeError`` for an
    undecodable source and ``InvalidGeometryError`` for an unusable crop.
    """
    box = crop.rounded()
    angle = normalize_rotation(rotation)
    flip = flip or FlipState()
    fill = parse_color(fill_color)
    image = load_source(source)

    logger.debug(
        "Rendering %dx%d crop at (%d, %d) from %dx%d source, rotation %.2f°, flip %s",
        box[2], box[3], box[0], box[1], image.width, image.height, angle, flip,
    )

    # convert() always returns a new image, the caller's source is left untouched
    src = image.convert("RGBA")
    rotated = _draw_rotated(src, angle, flip, fill)
    out = _extract(rotated, box, fill)
    return out.convert("RGB") if fill[3] == 255 else out


def render(
    source,
    crop: CropRect,
    rotation: float = 0.0,
    flip: FlipState | None = None,
    fill_color=DEFAULT_FILL_COLOR,
    fmt: str = OUTPUT_FORMAT_DEFAULT,
    quality: int = JPEG_QUALITY_DEFAULT,
    subsampling: str = JPEG_SUBSAMPLING_DEFAULT,
) -> OutputImage:
    """Render and encode the crop; see ``render_raster`` for the geometry.

    The export is a JPEG at quality 92 unless the caller asks otherwise.
    ``fmt="PNG"`` is an opt-in lossless output that keeps a transparent fill.
    """
    raster = render_raster(source, crop, rotation, flip, fill_color)
    data = encode_image(raster, fmt, quality=quality, subsampling=subsampling)
    return OutputImage(data=data, width=raster.width, height=raster.height, format=fmt)


async def render_async(source, crop: CropRect, rotation: float = 0.0, **kwargs) -> OutputImage:
    """Run ``render`` in a worker thread so an event loop stays responsive."""
    return await asyncio.to_thread(render, source, crop, rotation, **kwargs)
