"""
Image I/O utilities.

Provides helpers to decode sources (files, raw bytes, data URIs, and PSD
via psd-tools), encode export rasters, build timestamped export names,
and generate unique file paths.  Safe to import in worker processes.
"""

import base64
import binascii
import io
import logging
import time
from pathlib import Path

from PIL import Image, ImageOps
from psd_tools import PSDImage

from photo_ratio_tool.config import (
    EXPORT_FILENAME_PREFIX,
    JPEG_QUALITY_DEFAULT, JPEG_QUALITY_MAX, JPEG_QUALITY_MIN,
    JPEG_SUBSAMPLING_DEFAULT, JPEG_SUBSAMPLING_MAP,
    OUTPUT_EXTENSIONS, OUTPUT_FORMATS, PNG_COMPRESS_LEVEL,
)
from photo_ratio_tool.errors import DecodeError

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

# Every PSD/PSB file starts with this signature
_PSD_SIGNATURE = b"8BPS"

# Errors Pillow raises for unreadable or truncated data
_PIL_DECODE_ERRORS = (OSError, ValueError, SyntaxError)


# =============================================================================
# Decoding
# =============================================================================
def _composite_psd(fp) -> Image.Image:
    """Flatten a PSD file (path or file object) into a single PIL Image."""
    try:
        psd = PSDImage.open(fp)
        image = psd.composite()
    except Exception as exc:
        raise DecodeError(f"Cannot decode PSD data: {exc}") from exc
    if image is None:
        raise DecodeError("PSD file has no compositable content")
    return image


def _load_pillow(fp) -> Image.Image:
    """Open and fully decode an image with Pillow so corrupt data fails here.

    The EXIF Orientation tag is applied, so the pixel grid is the upright
    image a viewer shows and crop coordinates refer to that.
    """
    try:
        image = Image.open(fp)
        image.load()
        return ImageOps.exif_transpose(image)
    except _PIL_DECODE_ERRORS as exc:
        raise DecodeError(f"Cannot decode image data: {exc}") from exc


def decode_image(data: bytes) -> Image.Image:
    """Decode an encoded image held in memory."""
    if not data:
        raise DecodeError("Image data is empty")
    if data[:4] == _PSD_SIGNATURE:
        return _composite_psd(io.BytesIO(data))
    return _load_pillow(io.BytesIO(data))


def read_data_uri(uri: str) -> bytes:
    """Return the payload of a ``data:`` URI (base64 or plain)."""
    if not uri.startswith("data:") or "," not in uri:
        raise DecodeError("Not a data URI")
    header, payload = uri[5:].split(",", 1)
    if not header.endswith(";base64"):
        return payload.encode("latin-1")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Invalid base64 payload in data URI: {exc}") from exc


def open_image(path: Path) -> Image.Image:
    """Open an image file, using psd-tools for PSD and Pillow for the rest."""
    if not path.is_file():
        raise DecodeError(f"No such image file: {path}")
    if path.suffix.lower() == ".psd":
        return _composite_psd(str(path))
    return _load_pillow(path)


def load_source(source) -> Image.Image:
    """Turn any supported source into a decoded PIL Image.

    *source* may be a PIL Image (returned as-is), encoded ``bytes``, a
    ``data:`` URI string, or a filesystem path.
    """
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return decode_image(bytes(source))
    if isinstance(source, str) and source.startswith("data:"):
        return decode_image(read_data_uri(source))
    if isinstance(source, (str, Path)):
        return open_image(Path(source))
    raise DecodeError(f"Unsupported image source type: {type(source).__name__}")


# =============================================================================
# Encoding
# =============================================================================
def encode_image(
    image: Image.Image,
    fmt: str = "JPEG",
    quality: int = JPEG_QUALITY_DEFAULT,
    subsampling: str = JPEG_SUBSAMPLING_DEFAULT,
) -> bytes:
    """Encode a raster as JPEG or PNG bytes.

    JPEG output is flattened to RGB; any alpha in the raster is dropped.
    """
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format {fmt!r}, expected one of {OUTPUT_FORMATS}")
    buf = io.BytesIO()
    if fmt == "JPEG":
        if not JPEG_QUALITY_MIN <= quality <= JPEG_QUALITY_MAX:
            raise ValueError(
                f"JPEG quality must be within {JPEG_QUALITY_MIN}..{JPEG_QUALITY_MAX}, got {quality!r}"
            )
        if subsampling not in JPEG_SUBSAMPLING_MAP:
            raise ValueError(f"Unknown JPEG subsampling {subsampling!r}")
        image.convert("RGB").save(
            buf, "JPEG",
            quality=quality,
            subsampling=JPEG_SUBSAMPLING_MAP[subsampling],
        )
    else:
        image.save(buf, "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return buf.getvalue()


# =============================================================================
# Export file naming
# =============================================================================
def export_filename(fmt: str = "JPEG", timestamp_ms: int | None = None) -> str:
    """Return a timestamp-based export file name, e.g. ``cropped-image-1700000000000.jpg``."""
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    return f"{EXPORT_FILENAME_PREFIX}-{timestamp_ms}{OUTPUT_EXTENSIONS[fmt]}"


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


def write_unique(out_path: Path, data: bytes) -> Path:
    """Write *data* to a path derived from *out_path* that did not exist before.

    Uses exclusive creation so concurrent writers never overwrite each other.
    """
    while True:
        candidate = unique_path(out_path)
        try:
            with open(candidate, "xb") as f:
                f.write(data)
        except FileExistsError:
            continue
        logger.debug("Wrote %d bytes to %s", len(data), candidate)
        return candidate
