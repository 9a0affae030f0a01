"""
Exceptions raised by the crop pipeline.

Only two conditions are failures: a source that cannot be decoded and a
crop rectangle that has no usable size. Everything else, including crops
that extend past the image, renders to a padded result.
"""


class CropToolError(Exception):
    """Base class for all photo_ratio_tool errors."""


class DecodeError(CropToolError):
    """The source image could not be decoded into pixel data."""


class InvalidGeometryError(CropToolError, ValueError):
    """Crop or rotation values that cannot describe an output raster."""
