"""
Application constants and configuration.

DEFAULT_TARGETS provides the built-in output presets. Runtime presets are
loaded from targets.json via the targets module. All other constants control
crop-editor behaviour, upload validation, and export defaults.

The ``config_dir()`` helper returns the platform-appropriate config
directory used by the persistence helpers.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "image-crop-tool"


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
# DEFAULT TARGETS — Built-in fallback when targets.json is missing or corrupt
# =============================================================================
DEFAULT_TARGETS = [
    {"id": "toppbild-1932x828", "name": "Toppbild", "width": 1932, "height": 828},
    {"id": "brodtextbild-1200x800", "name": "Brödtextbild", "width": 1200, "height": 800},
    {"id": "linkedin-liggande-1200x628", "name": "LinkedIn, liggande", "width": 1200, "height": 628},
    {"id": "linkedin-kvadratisk-1200x1200", "name": "LinkedIn, kvadratisk", "width": 1200, "height": 1200},
    {"id": "linkedin-staende-4-5-1200x1500", "name": "LinkedIn, stående (4:5)", "width": 1200, "height": 1500},
    {"id": "instagram-kvadratisk-1080x1080", "name": "Instagram, kvadratisk", "width": 1080, "height": 1080},
    {"id": "instagram-staende-4-5-1080x1350", "name": "Instagram, stående (4:5)", "width": 1080, "height": 1350},
    {"id": "instagram-story-9-16-1080x1920", "name": "Instagram Story (9:16)", "width": 1080, "height": 1920},
]

# Label of the pseudo-target that keeps the image's own aspect ratio
ORIGINAL_TARGET_NAME = "Original"

# =============================================================================
# CROP EDITOR
# =============================================================================
# Minimum crop size (display units)
MIN_SIZE = 20

# Initial crop covers this fraction of the shorter bounds dimension
INITIAL_COVERAGE = 0.8

# Half-extent of the square hit box around each corner handle (screen pixels)
HANDLE_SIZE = 6

# Float slack used when comparing sizes against bounds
GEOMETRY_EPSILON = 1e-9

# Nudge amounts (display units)
NUDGE_SMALL = 1
NUDGE_LARGE = 10

# =============================================================================
# UPLOAD VALIDATION
# =============================================================================
# Pillow format names accepted for loading
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP"}

# Maximum accepted file size (10 MB)
MAX_FILE_SIZE = 10 * 1024 * 1024

# File dialog filter
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

# =============================================================================
# EXPORT
# =============================================================================
# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# JPEG export defaults
JPEG_QUALITY_DEFAULT = 95
JPEG_SUBSAMPLING_DEFAULT = "4:4:4"

# Map subsampling labels to Pillow integer values
JPEG_SUBSAMPLING_MAP = {"4:4:4": 0, "4:2:2": 1, "4:2:0": 2}

# Output format options
OUTPUT_FORMATS = ["PNG", "JPEG"]
OUTPUT_FORMAT_DEFAULT = "PNG"

# Export file name suffix when no target preset is selected
DEFAULT_EXPORT_SUFFIX = "crop"

# =============================================================================
# DISPLAY
# =============================================================================
# Shown when no capture date could be read
EXIF_DATE_PLACEHOLDER = "—"
