"""
Data models and crop-geometry utilities.

CropRect, FlipState and OutputImage are the data structures passed between
the crop surface, the transform engine and the export front end.  A CropRect
is always expressed in the coordinate space of the *rotated* source, with the
origin at the top-left corner of the rotated bounding box.
"""

import base64
import math
from dataclasses import dataclass

from photo_ratio_tool.config import OUTPUT_MIME_TYPES
from photo_ratio_tool.errors import InvalidGeometryError


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in rotated-image pixel coordinates.

    Values may be fractional and the rectangle may extend past the rotated
    bounding box; it is snapped to the pixel grid by ``rounded()``.
    """
    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0

    def rounded(self) -> tuple[int, int, int, int]:
        """Return ``(x, y, w, h)`` rounded half-up, validating the size.

        Raises InvalidGeometryError for non-finite values or a width/height
        that is not positive after rounding.
        """
        values = (self.x, self.y, self.w, self.h)
        if not all(math.isfinite(v) for v in values):
            raise InvalidGeometryError(f"Crop rectangle has non-finite values: {values!r}")
        x, y, w, h = (round_half_up(v) for v in values)
        if w <= 0 or h <= 0:
            raise InvalidGeometryError(
                f"Crop size must be positive after rounding, got {w}x{h} from {self.w!r}x{self.h!r}"
            )
        return x, y, w, h


@dataclass(frozen=True)
class FlipState:
    """Mirror flags, applied to the source before rotation."""
    horizontal: bool = False
    vertical: bool = False


@dataclass(frozen=True)
class OutputImage:
    """Encoded export result and its pixel dimensions."""
    data: bytes
    width: int
    height: int
    format: str = "JPEG"

    @property
    def mime_type(self) -> str:
        return OUTPUT_MIME_TYPES[self.format]

    def to_data_uri(self) -> str:
        """Return the encoded bytes as a base64 ``data:`` URI."""
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


# =============================================================================
# Geometry helpers
# =============================================================================
def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up. 2.5 → 3, -2.5 → -2"""
    return int(math.floor(value + 0.5))


def normalize_rotation(degrees: float) -> float:
    """Map any finite angle into [0, 360)."""
    if not math.isfinite(degrees):
        raise InvalidGeometryError(f"Rotation must be finite, got {degrees!r}")
    angle = math.fmod(degrees, 360.0)
    if angle < 0:
        angle += 360.0
    # fmod(-1e-17, 360) + 360 rounds to 360.0
    return 0.0 if angle >= 360.0 else angle


def rotate_size(width: float, height: float, degrees: float) -> tuple[float, float]:
    """Return the bounding box size of a width×height rectangle rotated by *degrees*.

    The result is not rounded; callers snap it to pixels once, at allocation.
    """
    rad = math.radians(normalize_rotation(degrees))
    cos_a = abs(math.cos(rad))
    sin_a = abs(math.sin(rad))
    return width * cos_a + height * sin_a, width * sin_a + height * cos_a

