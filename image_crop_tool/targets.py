"""
Output-target presets: load, save, and validate target configuration.

A target is a named output size (e.g. "Instagram Story", 1080×1920).  Its
width/height ratio is the aspect constraint of the crop editor and its
size is what the crop is resampled to on export.

Runtime targets are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file
is missing/corrupt), the file is created from DEFAULT_TARGETS.  This
module is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "targets": [ ... ]}
"""

import json
import logging
from copy import deepcopy
from math import gcd
from pathlib import Path

from image_crop_tool.config import DEFAULT_TARGETS, config_dir

logger = logging.getLogger(__name__)

_TARGETS_FILENAME = "targets.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"id", "name", "width", "height"}
_STR_KEYS = ("id", "name")
_INT_KEYS = ("width", "height")


# =============================================================================
# Aspect-ratio helpers
# =============================================================================
def normalize_ratio(w: int, h: int) -> tuple[int, int]:
    """Reduce ratio to simplest form via GCD. (1080, 1920) → (9, 16)"""
    g = gcd(w, h)
    return w // g, h // g


def aspect_label(w: int, h: int) -> str:
    """Human-readable reduced ratio. (1200, 628) → '300:157'"""
    nw, nh = normalize_ratio(w, h)
    return f"{nw}:{nh}"


def target_aspect(target: dict) -> float:
    """Width/height ratio of a target preset."""
    return target["width"] / target["height"]


def find_target(targets: list[dict], target_id: str) -> dict | None:
    """Return the target with *target_id*, or None."""
    for target in targets:
        if target.get("id") == target_id:
            return target
    return None


def _targets_path() -> Path:
    """Return the full path to targets.json."""
    return config_dir() / _TARGETS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_targets(data: object) -> list[str]:
    """
    Validate a targets data structure.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, list):
        errors.append("Targets data must be a list")
        return errors

    if not data:
        errors.append("Targets list must not be empty")
        return errors

    ids_seen: dict[str, int] = {}  # id -> 1-based position

    for i, target in enumerate(data):
        prefix = f"Target #{i + 1}"

        if not isinstance(target, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        missing = _REQUIRED_KEYS - target.keys()
        if missing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(missing))}")
            continue

        for key in _STR_KEYS:
            val = target.get(key)
            if not isinstance(val, str) or not val.strip():
                errors.append(f"{prefix}: {key} must be a non-empty string")

        # bool is an int subclass; reject it explicitly
        for key in _INT_KEYS:
            val = target.get(key)
            if isinstance(val, bool) or not isinstance(val, int) or val <= 0:
                errors.append(f"{prefix}: {key} must be a positive integer, got {val!r}")

        target_id = target.get("id")
        if isinstance(target_id, str) and target_id.strip():
            if target_id in ids_seen:
                errors.append(
                    f"{prefix}: duplicate id '{target_id}' (also used by target #{ids_seen[target_id]})"
                )
            else:
                ids_seen[target_id] = i + 1

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_targets() -> list[dict]:
    """
    Load targets from targets.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _targets_path()

    if not path.exists():
        logger.info("targets.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return deepcopy(DEFAULT_TARGETS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read targets.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return deepcopy(DEFAULT_TARGETS)

    if not isinstance(raw, dict) or "version" not in raw or "targets" not in raw:
        logger.warning("targets.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return deepcopy(DEFAULT_TARGETS)

    data = raw["targets"]
    errors = validate_targets(data)
    if errors:
        logger.warning(
            "targets.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return deepcopy(DEFAULT_TARGETS)

    return data


def save_targets(targets: list[dict]) -> None:
    """
    Validate and write targets to targets.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_targets(targets)
    if errors:
        raise ValueError("Invalid targets data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "targets": targets}
    path = _targets_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d target(s) to %s", len(targets), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_TARGETS to targets.json in versioned envelope."""
    try:
        save_targets(deepcopy(DEFAULT_TARGETS))
    except OSError as exc:
        logger.error("Could not write default targets to %s: %s", path, exc)
