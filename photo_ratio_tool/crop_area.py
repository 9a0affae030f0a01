"""
Crop-surface geometry: display space to source pixel space.

An interactive cropper shows the source scaled to fit a container, lets the
user pan (offset of the media centre, in display pixels), zoom and rotate
it under a fixed crop window of a locked aspect ratio, and reports the area
under the window in source pixels.  These functions are that computation,
free of any UI so the CLI and tests can produce the same crop rectangles.

With ``restrict=True`` the crop window never leaves the image ("fill" mode).
With ``restrict=False`` the image may be zoomed out below the window
("margins" mode); the resulting CropRect then extends past the rotated
bounding box and the transform engine pads it with the fill colour.
"""

import math

from photo_ratio_tool.config import ZOOM_DEFAULT, ZOOM_MAX, ZOOM_MIN
from photo_ratio_tool.errors import InvalidGeometryError
from photo_ratio_tool.models import CropRect, rotate_size, round_half_up


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _limit_area(limit: float, value: float) -> float:
    return min(limit, max(0.0, value))


def _no_limit(_limit: float, value: float) -> float:
    return value


def clamp_zoom(zoom: float) -> float:
    """Clamp a zoom factor into the range the crop surface allows."""
    return _clamp(zoom, ZOOM_MIN, ZOOM_MAX)


def fit_media_size(
    natural_w: float, natural_h: float, container_w: float, container_h: float,
) -> tuple[float, float]:
    """Displayed size of the media when fitted into the container ("contain")."""
    scale = min(container_w / natural_w, container_h / natural_h)
    return natural_w * scale, natural_h * scale


def get_crop_size(
    media_w: float, media_h: float,
    container_w: float, container_h: float,
    aspect: float, rotation: float = 0.0,
) -> tuple[float, float]:
    """Largest crop window of *aspect* fitting both the rotated media and the container."""
    width, height = rotate_size(media_w, media_h, rotation)
    fitting_w = min(width, container_w)
    fitting_h = min(height, container_h)
    if fitting_w > fitting_h * aspect:
        return fitting_h * aspect, fitting_h
    return fitting_w, fitting_w / aspect


def _restrict_coord(position: float, media: float, crop: float, zoom: float) -> float:
    max_position = media * zoom / 2 - crop / 2
    return _clamp(position, -max_position, max_position)


def restrict_position(
    pan: tuple[float, float],
    media_size: tuple[float, float],
    crop_size: tuple[float, float],
    zoom: float,
    rotation: float = 0.0,
) -> tuple[float, float]:
    """Clamp the pan offset so the crop window stays over the zoomed media."""
    width, height = rotate_size(media_size[0], media_size[1], rotation)
    return (
        _restrict_coord(pan[0], width, crop_size[0], zoom),
        _restrict_coord(pan[1], height, crop_size[1], zoom),
    )


def compute_cropped_area(
    pan: tuple[float, float],
    media_size: tuple[float, float],
    natural_size: tuple[float, float],
    crop_size: tuple[float, float],
    aspect: float,
    zoom: float,
    rotation: float = 0.0,
    restrict: bool = True,
) -> tuple[CropRect, CropRect]:
    """Return ``(percentages, pixels)`` for the area under the crop window.

    *media_size* is the displayed size, *natural_size* the source size in
    pixels.  Both results are relative to the rotated bounding box; the
    first in percent of it, the second in source pixels (rounded half-up,
    with the size locked to *aspect*).
    """
    limit = _limit_area if restrict else _no_limit
    bbox_w, bbox_h = rotate_size(media_size[0], media_size[1], rotation)
    natural_w, natural_h = rotate_size(natural_size[0], natural_size[1], rotation)
    crop_w, crop_h = crop_size

    percentages = CropRect(
        x=limit(100, ((bbox_w - crop_w / zoom) / 2 - pan[0] / zoom) / bbox_w * 100),
        y=limit(100, ((bbox_h - crop_h / zoom) / 2 - pan[1] / zoom) / bbox_h * 100),
        w=limit(100, crop_w / bbox_w * 100 / zoom),
        h=limit(100, crop_h / bbox_h * 100 / zoom),
    )

    width_px = round_half_up(limit(natural_w, percentages.w * natural_w / 100))
    height_px = round_half_up(limit(natural_h, percentages.h * natural_h / 100))
    # Lock the pixel size to the aspect, driven by whichever side binds
    if natural_w >= natural_h * aspect:
        size_w, size_h = round_half_up(height_px * aspect), height_px
    else:
        size_w, size_h = width_px, round_half_up(width_px / aspect)

    pixels = CropRect(
        x=round_half_up(limit(natural_w - size_w, percentages.x * natural_w / 100)),
        y=round_half_up(limit(natural_h - size_h, percentages.y * natural_h / 100)),
        w=size_w,
        h=size_h,
    )
    return percentages, pixels


def crop_for_aspect(
    natural_w: int,
    natural_h: int,
    aspect: float,
    rotation: float = 0.0,
    zoom: float = ZOOM_DEFAULT,
    pan: tuple[float, float] = (0.0, 0.0),
    restrict: bool = True,
    container: tuple[float, float] | None = None,
) -> CropRect:
    """Pixel crop a cropper would report for the given view state.

    The container defaults to the natural image size, i.e. one display
    pixel per source pixel, so *pan* is then in source pixels.
    """
    if not math.isfinite(aspect) or aspect <= 0:
        raise InvalidGeometryError(f"Aspect ratio must be a positive number, got {aspect!r}")
    container_w, container_h = container or (natural_w, natural_h)
    media = fit_media_size(natural_w, natural_h, container_w, container_h)
    crop_size = get_crop_size(media[0], media[1], container_w, container_h, aspect, rotation)
    zoom = clamp_zoom(zoom)
    if restrict:
        pan = restrict_position(pan, media, crop_size, zoom, rotation)
    _, pixels = compute_cropped_area(
        pan, media, (natural_w, natural_h), crop_size, aspect, zoom, rotation, restrict,
    )
    return pixels
