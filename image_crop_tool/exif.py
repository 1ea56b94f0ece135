"""
Minimal EXIF reader for the capture date of a JPEG.

Walks the JPEG marker segments up to the first APP1/Exif segment and
reads DateTimeOriginal from the Exif sub-IFD, falling back to DateTime in
IFD0.  Malformed or non-JPEG input is an ordinary "no date" result: the
parser returns None instead of raising.  This module is Qt-free.
"""

import logging
import re
import struct

from image_crop_tool.config import EXIF_DATE_PLACEHOLDER

logger = logging.getLogger(__name__)

_SOI = b"\xff\xd8"
_MARKER_APP1 = 0xE1
_MARKER_SOS = 0xDA
_MARKER_EOI = 0xD9
_EXIF_SIGNATURE = b"Exif\x00\x00"

_TAG_EXIF_IFD = 0x8769
_TAG_DATETIME_ORIGINAL = 0x9003
_TAG_DATETIME = 0x0132
_TYPE_ASCII = 2
_ENTRY_SIZE = 12

# YYYY:MM:DD HH:MM[:SS], date and time separated by a space or "T"
_EXIF_DATE_RE = re.compile(r"^(\d{4}):(\d{2}):(\d{2})[ T](\d{2}):(\d{2})(?::\d{2})?$")


# =============================================================================
# TIFF structure
# =============================================================================
class _TiffReader:
    """Bounds-checked reads from a TIFF structure in a fixed byte order."""

    def __init__(self, data: bytes):
        self._data = data
        order = data[:2]
        if order == b"II":
            self._prefix = "<"
        elif order == b"MM":
            self._prefix = ">"
        else:
            raise ValueError(f"unknown byte order {order!r}")

    def _unpack(self, fmt: str, offset: int) -> int | None:
        size = struct.calcsize(fmt)
        if offset < 0 or offset + size > len(self._data):
            return None
        return struct.unpack_from(self._prefix + fmt, self._data, offset)[0]

    def u16(self, offset: int) -> int | None:
        return self._unpack("H", offset)

    def u32(self, offset: int) -> int | None:
        return self._unpack("I", offset)

    def ifd0_offset(self) -> int | None:
        return self.u32(4)

    def find_entry(self, ifd_offset: int, tag: int) -> int | None:
        """Return the offset of the directory entry for *tag*, or None."""
        count = self.u16(ifd_offset)
        if count is None:
            return None
        for i in range(count):
            entry = ifd_offset + 2 + i * _ENTRY_SIZE
            entry_tag = self.u16(entry)
            if entry_tag is None:
                return None
            if entry_tag == tag:
                return entry
        return None

    def read_ascii(self, ifd_offset: int, tag: int) -> str | None:
        """Read an ASCII-typed tag, stopping at the first NUL byte."""
        entry = self.find_entry(ifd_offset, tag)
        if entry is None:
            return None
        if self.u16(entry + 2) != _TYPE_ASCII:
            return None
        count = self.u32(entry + 4)
        if count is None or count == 0:
            return None

        if count <= 4:
            start = entry + 8
        else:
            start = self.u32(entry + 8)
            if start is None:
                return None
        raw = self._data[start:start + count]
        if len(raw) < count:
            return None

        raw = raw.split(b"\x00", 1)[0]
        if not raw:
            return None
        try:
            return raw.decode("ascii")
        except UnicodeDecodeError:
            return None


def _read_tiff_date(tiff: bytes) -> str | None:
    """Extract DateTimeOriginal (or DateTime) from a TIFF structure."""
    try:
        reader = _TiffReader(tiff)
    except ValueError:
        return None

    ifd0 = reader.ifd0_offset()
    if ifd0 is None:
        return None

    exif_entry = reader.find_entry(ifd0, _TAG_EXIF_IFD)
    if exif_entry is not None:
        exif_ifd = reader.u32(exif_entry + 8)
        if exif_ifd is not None:
            value = reader.read_ascii(exif_ifd, _TAG_DATETIME_ORIGINAL)
            if value is not None:
                return value

    return reader.read_ascii(ifd0, _TAG_DATETIME)


# =============================================================================
# JPEG segment walk
# =============================================================================
def parse_exif_date(data: bytes) -> str | None:
    """
    Return the "date taken" string of a JPEG (``YYYY:MM:DD HH:MM:SS``), or None.

    None covers every structural problem: wrong start-of-image marker,
    truncated or malformed segments, no Exif APP1 segment, missing tags, or
    tags that are not ASCII-typed.
    """
    if data[:2] != _SOI:
        return None

    offset = 2
    while offset + 4 <= len(data):
        if data[offset] != 0xFF:
            break
        marker = data[offset + 1]
        if marker in (_MARKER_SOS, _MARKER_EOI):
            break
        length = struct.unpack_from(">H", data, offset + 2)[0]
        if length < 2:
            break
        end = offset + 2 + length
        if end > len(data):
            logger.debug("Truncated JPEG segment 0x%02X at offset %d", marker, offset)
            break

        if marker == _MARKER_APP1:
            payload = data[offset + 4:end]
            if payload.startswith(_EXIF_SIGNATURE):
                return _read_tiff_date(payload[len(_EXIF_SIGNATURE):])

        offset = end

    return None


# =============================================================================
# Display
# =============================================================================
def format_exif_date(value: str | None) -> str:
    """Render an EXIF date as ``YYYY-MM-DD HH:MM``.

    Values in another shape are returned unchanged; a missing value becomes
    the placeholder dash.
    """
    if value is None:
        return EXIF_DATE_PLACEHOLDER
    match = _EXIF_DATE_RE.match(value)
    if not match:
        return value
    year, month, day, hour, minute = match.groups()
    return f"{year}-{month}-{day} {hour}:{minute}"
