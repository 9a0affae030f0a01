"""
Aspect-ratio presets: lookup, custom ratios, validation, and persistence.

Presets are stored in a JSON file in the user's config directory (provided
by ``config.config_dir()``).  On first use (or if the file is missing or
corrupt), the file is created from DEFAULT_PRESETS.

The on-disk format uses a versioned envelope::

    {"version": 1, "presets": [ ... ]}

Each preset is ``{"label", "ratio_w", "ratio_h", "group", "desc"}``; the
sides may be fractional (e.g. 3.5 x 4.5 cm passport photos).
"""

import json
import logging
import math
from copy import deepcopy
from pathlib import Path

from photo_ratio_tool.config import (
    CM_TO_PX, DEFAULT_PRESETS, PRESET_GROUPS, PRESET_MATCH_TOLERANCE, UNITS, config_dir,
)

logger = logging.getLogger(__name__)

_PRESETS_FILENAME = "presets.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"label", "ratio_w", "ratio_h", "group"}
_SIDE_KEYS = ("ratio_w", "ratio_h")


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def _is_positive_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value > 0
    )


def preset_value(preset: dict) -> float:
    """Aspect (width / height) of a preset. {"ratio_w": 16, "ratio_h": 9} → 1.777…"""
    return preset["ratio_w"] / preset["ratio_h"]


def custom_ratio(width: float, height: float, unit: str = "px") -> float:
    """Aspect of a custom frame size given in pixels or centimetres.

    Raises ValueError unless both sides are finite and positive.
    """
    if unit not in UNITS:
        raise ValueError(f"Unknown unit {unit!r}, expected one of {UNITS}")
    if not (_is_positive_number(width) and _is_positive_number(height)):
        raise ValueError(f"Custom size must be two positive numbers, got {width!r} x {height!r}")
    if unit == "cm":
        width, height = width * CM_TO_PX, height * CM_TO_PX
    return width / height


def find_preset(label: str, presets: list[dict] | None = None) -> dict | None:
    """Return the preset with the given label (case-insensitive), or None."""
    wanted = label.strip().lower()
    for preset in presets if presets is not None else DEFAULT_PRESETS:
        if preset["label"].lower() == wanted:
            return preset
    return None


def match_preset(aspect: float, presets: list[dict] | None = None) -> dict | None:
    """Return the first preset whose aspect is within tolerance of *aspect*."""
    for preset in presets if presets is not None else DEFAULT_PRESETS:
        if abs(aspect - preset_value(preset)) < PRESET_MATCH_TOLERANCE:
            return preset
    return None


def presets_in_group(group: str, presets: list[dict] | None = None) -> list[dict]:
    return [p for p in (presets if presets is not None else DEFAULT_PRESETS) if p["group"] == group]


def parse_ratio(text: str, presets: list[dict] | None = None) -> float:
    """
    Parse an aspect ratio given as a preset label, ``"W:H"``, ``"WxH"`` or a number.

    Raises ValueError if the text is none of these or the ratio is not positive.
    """
    preset = find_preset(text, presets)
    if preset is not None:
        return preset_value(preset)

    cleaned = text.strip().lower()
    for sep in (":", "x", "/"):
        if sep in cleaned:
            left, _, right = cleaned.partition(sep)
            try:
                return custom_ratio(float(left), float(right))
            except ValueError:
                raise ValueError(f"Invalid aspect ratio {text!r}") from None
    try:
        value = float(cleaned)
    except ValueError:
        raise ValueError(f"Invalid aspect ratio {text!r}") from None
    if not _is_positive_number(value):
        raise ValueError(f"Aspect ratio must be positive, got {text!r}")
    return value


# =============================================================================
# Validation
# =============================================================================
def validate_presets(data: object) -> list[str]:
    """
    Validate a presets data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Presets data must be a list")
        return errors

    labels_seen: set[str] = set()

    for i, preset in enumerate(data):
        prefix = f"Preset #{i + 1}"

        if not isinstance(preset, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        missing = _REQUIRED_KEYS - preset.keys()
        if missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(missing))}")
            continue

        label = preset["label"]
        if not isinstance(label, str) or not label.strip():
            errors.append(f"{prefix}: label must be a non-empty string")
        elif label.strip().lower() in labels_seen:
            errors.append(f"{prefix}: duplicate label '{label}'")
        else:
            labels_seen.add(label.strip().lower())

        for key in _SIDE_KEYS:
            val = preset[key]
            if not _is_positive_number(val):
                errors.append(f"{prefix}: {key} must be a positive number, got {val!r}")

        if preset["group"] not in PRESET_GROUPS:
            errors.append(f"{prefix}: group must be one of {', '.join(PRESET_GROUPS)}")

        desc = preset.get("desc", "")
        if not isinstance(desc, str):
            errors.append(f"{prefix}: desc must be a string")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def _presets_path() -> Path:
    """Return the full path to presets.json."""
    return config_dir() / _PRESETS_FILENAME


def load_presets() -> list[dict]:
    """
    Load presets from presets.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _presets_path()

    if not path.exists():
        logger.info("presets.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read presets.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "presets" not in raw:
        logger.warning("presets.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    data = raw["presets"]
    errors = validate_presets(data)
    if errors:
        logger.warning(
            "presets.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_PRESETS)

    return data


def save_presets(presets: list[dict]) -> None:
    """
    Validate and write presets to presets.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_presets(presets)
    if errors:
        raise ValueError("Invalid presets data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "presets": presets}
    path = _presets_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d preset(s) to %s", len(presets), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_PRESETS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "presets": deepcopy(DEFAULT_PRESETS)}
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write default presets to %s: %s", path, exc)
