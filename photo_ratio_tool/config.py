"""
Application constants and configuration.

DEFAULT_PRESETS provides the built-in aspect-ratio presets. User presets
are loaded from presets.json via the ratios module. All other constants
control the crop surface limits, export encoding, and file handling.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence code.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "photo-ratio-tool"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# DEFAULT PRESETS — Built-in fallback when presets.json is missing or corrupt
# =============================================================================
DEFAULT_PRESETS = [
    # Standard ratios
    {"label": "1:1", "ratio_w": 1, "ratio_h": 1, "group": "standard", "desc": "Square"},
    {"label": "9:16", "ratio_w": 9, "ratio_h": 16, "group": "standard", "desc": "Stories"},
    {"label": "16:9", "ratio_w": 16, "ratio_h": 9, "group": "standard", "desc": "Screen"},
    {"label": "3:4", "ratio_w": 3, "ratio_h": 4, "group": "standard", "desc": "Portrait photo"},
    {"label": "4:3", "ratio_w": 4, "ratio_h": 3, "group": "standard", "desc": "Photo"},
    {"label": "2:3", "ratio_w": 2, "ratio_h": 3, "group": "standard", "desc": "10x15"},
    {"label": "3:2", "ratio_w": 3, "ratio_h": 2, "group": "standard", "desc": "Classic"},
    {"label": "9:21", "ratio_w": 9, "ratio_h": 21, "group": "standard", "desc": "Portrait cinema"},
    {"label": "21:9", "ratio_w": 21, "ratio_h": 9, "group": "standard", "desc": "Cinema"},
    # Documents
    {"label": "3x4 cm", "ratio_w": 3, "ratio_h": 4, "group": "docs", "desc": "Document"},
    {"label": "3.5x4.5", "ratio_w": 3.5, "ratio_h": 4.5, "group": "docs", "desc": "Passport"},
    {"label": "5x5 cm", "ratio_w": 5, "ratio_h": 5, "group": "docs", "desc": "Visa"},
    {"label": "A4", "ratio_w": 210, "ratio_h": 297, "group": "docs", "desc": "Sheet"},
]

PRESET_GROUPS = ("standard", "docs")

# Two aspect values closer than this are treated as the same preset
PRESET_MATCH_TOLERANCE = 0.01

# Screen pixels per centimetre used for custom ratios entered in cm
CM_TO_PX = 37.8
UNITS = ("px", "cm")

# =============================================================================
# CROP SURFACE
# =============================================================================
ZOOM_MIN = 0.1
ZOOM_MAX = 3.0
ZOOM_DEFAULT = 1.0

# =============================================================================
# EXPORT
# =============================================================================
# Background used where the crop extends past the image
DEFAULT_FILL_COLOR = "#ffffff"

# JPEG export defaults
JPEG_QUALITY_DEFAULT = 92
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100
JPEG_SUBSAMPLING_DEFAULT = "4:4:4"

# Map subsampling labels to Pillow integer values
JPEG_SUBSAMPLING_MAP = {"4:4:4": 0, "4:2:2": 1, "4:2:0": 2}

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# Output format options
OUTPUT_FORMATS = ["JPEG", "PNG"]
OUTPUT_FORMAT_DEFAULT = "JPEG"
OUTPUT_EXTENSIONS = {"JPEG": ".jpg", "PNG": ".png"}
OUTPUT_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png"}

# Export files are named "<prefix>-<epoch ms><ext>"
EXPORT_FILENAME_PREFIX = "cropped-image"

# Supported input extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".psd"}
