"""
Qt-free image I/O utilities.

Reads raw bytes for metadata parsing, validates uploads, opens images with
their EXIF orientation applied, and performs the export step: cropping a
source window, resampling to the target size, and saving.
"""

import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from image_crop_tool.config import (
    ALLOWED_FORMATS, JPEG_QUALITY_DEFAULT, MAX_FILE_SIZE, PNG_COMPRESS_LEVEL,
)
from image_crop_tool.models import SourceCropWindow

logger = logging.getLogger(__name__)


def read_image_bytes(path: Path) -> bytes:
    """Read the raw file contents (used for EXIF parsing)."""
    return Path(path).read_bytes()


def validate_image_file(path: Path) -> str:
    """
    Check that *path* is an accepted image upload and return its Pillow format.

    Raises ValueError with a user-facing message for oversized or
    unsupported files.  Raises OSError if the file cannot be read.
    """
    path = Path(path)
    size = path.stat().st_size
    if size > MAX_FILE_SIZE:
        raise ValueError(f"File size must be less than {MAX_FILE_SIZE // (1024 * 1024)}MB")

    try:
        with Image.open(path) as img:
            fmt = img.format
    except UnidentifiedImageError:
        fmt = None
    if fmt not in ALLOWED_FORMATS:
        raise ValueError("Please upload a valid image file (JPG, PNG, or WebP)")
    return fmt


def open_image(path: Path) -> Image.Image:
    """Open an image with its EXIF orientation applied, fully loaded."""
    with Image.open(path) as img:
        img.load()
        return ImageOps.exif_transpose(img)


def get_image_size(path: Path) -> tuple[int, int]:
    """Get displayed image dimensions (orientation applied) without decoding pixels."""
    with Image.open(path) as img:
        w, h = img.size
        orientation = img.getexif().get(0x0112, 1)
    # Orientations 5-8 swap width and height
    if orientation in (5, 6, 7, 8):
        return h, w
    return w, h


def crop_and_resize(
    image: Image.Image,
    window: SourceCropWindow,
    output_size: tuple[int, int] | None = None,
) -> Image.Image:
    """Crop *window* out of *image* and resample it to *output_size* if given."""
    cropped = image.crop(window.box())
    if output_size is not None and cropped.size != tuple(output_size):
        cropped = cropped.resize(output_size, Image.Resampling.LANCZOS)
    return cropped


def save_image(
    image: Image.Image,
    out_path: Path,
    fmt: str = "PNG",
    *,
    compress_level: int = PNG_COMPRESS_LEVEL,
    jpeg_quality: int = JPEG_QUALITY_DEFAULT,
    jpeg_subsampling: int = 0,
    jpeg_optimize: bool = True,
) -> Path:
    """Save *image* as PNG or JPEG and return the written path."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "JPEG":
        image.convert("RGB").save(
            str(out_path), "JPEG",
            quality=jpeg_quality,
            optimize=jpeg_optimize,
            subsampling=jpeg_subsampling,
        )
    elif fmt == "PNG":
        image.save(str(out_path), "PNG", compress_level=compress_level)
    else:
        raise ValueError(f"Unsupported output format: {fmt}")
    logger.info("Exported %dx%d %s to %s", image.width, image.height, fmt, out_path)
    return out_path


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
