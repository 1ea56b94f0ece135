from __future__ import annotations

import io
import struct

import pytest
from PIL import Image

from image_crop_tool.exif import format_exif_date, parse_exif_date

DATE = b"2023:07:04 12:30:00\x00"


def build_tiff(ifd0=(), exif=None, byte_order=b"II") -> bytes:
    """Lay out a TIFF header, IFD0, an optional Exif sub-IFD and a data area.

    Entries are ``(tag, type, raw_value)``; values longer than four bytes go
    to the data area and the entry stores their offset.
    """
    p = "<" if byte_order == b"II" else ">"
    ifd0 = list(ifd0)
    n0 = len(ifd0) + (1 if exif is not None else 0)
    ifd0_off = 8
    exif_off = ifd0_off + 2 + 12 * n0 + 4
    data_off = exif_off + (2 + 12 * len(exif) + 4 if exif is not None else 0)
    data = bytearray()

    def encode(entries, pointer=None):
        out = bytearray(struct.pack(p + "H", len(entries) + (pointer is not None)))
        for tag, typ, value in entries:
            if len(value) <= 4:
                field = value.ljust(4, b"\x00")
            else:
                field = struct.pack(p + "I", data_off + len(data))
                data.extend(value)
            out += struct.pack(p + "HHI", tag, typ, len(value)) + field
        if pointer is not None:
            out += struct.pack(p + "HHII", 0x8769, 4, 1, pointer)
        out += struct.pack(p + "I", 0)
        return bytes(out)

    body = encode(ifd0, exif_off if exif is not None else None)
    if exif is not None:
        body += encode(exif)
    return byte_order + struct.pack(p + "HI", 42, ifd0_off) + body + bytes(data)


def segment(marker: int, payload: bytes) -> bytes:
    return bytes([0xFF, marker]) + struct.pack(">H", len(payload) + 2) + payload


def build_jpeg(*segments: bytes) -> bytes:
    jfif = segment(0xE0, b"JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00")
    scan = segment(0xDA, b"\x00" * 10) + b"\x12\x34\x56" + b"\xff\xd9"
    return b"\xff\xd8" + jfif + b"".join(segments) + scan


def exif_segment(tiff: bytes) -> bytes:
    return segment(0xE1, b"Exif\x00\x00" + tiff)


# =============================================================================
# parse_exif_date
# =============================================================================
def test_date_time_original_is_read_from_exif_ifd() -> None:
    data = build_jpeg(exif_segment(build_tiff(exif=[(0x9003, 2, DATE)])))

    assert parse_exif_date(data) == "2023:07:04 12:30:00"


def test_big_endian_tiff() -> None:
    data = build_jpeg(exif_segment(build_tiff(exif=[(0x9003, 2, DATE)], byte_order=b"MM")))

    assert parse_exif_date(data) == "2023:07:04 12:30:00"


def test_falls_back_to_ifd0_date_time() -> None:
    data = build_jpeg(exif_segment(build_tiff(ifd0=[(0x0132, 2, b"2019:01:02 03:04:05\x00")])))

    assert parse_exif_date(data) == "2019:01:02 03:04:05"


def test_date_time_original_wins_over_date_time() -> None:
    tiff = build_tiff(
        ifd0=[(0x0132, 2, b"2019:01:02 03:04:05\x00")],
        exif=[(0x9003, 2, DATE)],
    )

    assert parse_exif_date(build_jpeg(exif_segment(tiff))) == "2023:07:04 12:30:00"


def test_exif_without_date_tags_is_absent() -> None:
    tiff = build_tiff(ifd0=[(0x010F, 2, b"Canon\x00")], exif=[(0x829A, 5, b"\x00" * 8)])

    assert parse_exif_date(build_jpeg(exif_segment(tiff))) is None


def test_non_ascii_typed_tag_is_absent() -> None:
    tiff = build_tiff(exif=[(0x9003, 7, DATE)])

    assert parse_exif_date(build_jpeg(exif_segment(tiff))) is None


def test_inline_ascii_value() -> None:
    tiff = build_tiff(ifd0=[(0x0132, 2, b"ab\x00")])

    assert parse_exif_date(build_jpeg(exif_segment(tiff))) == "ab"


def test_wrong_soi_is_absent() -> None:
    data = build_jpeg(exif_segment(build_tiff(exif=[(0x9003, 2, DATE)])))

    assert parse_exif_date(b"\x89PNG" + data[2:]) is None


@pytest.mark.parametrize("data", [b"", b"\xff", b"\xff\xd8", b"not an image at all"])
def test_short_or_garbage_input_is_absent(data: bytes) -> None:
    assert parse_exif_date(data) is None


def test_app1_without_exif_signature_is_skipped() -> None:
    xmp = segment(0xE1, b"http://ns.adobe.com/xap/1.0/\x00<x:xmpmeta/>")
    data = build_jpeg(xmp, exif_segment(build_tiff(exif=[(0x9003, 2, DATE)])))

    assert parse_exif_date(data) == "2023:07:04 12:30:00"


def test_truncated_segment_is_absent() -> None:
    data = build_jpeg(exif_segment(build_tiff(exif=[(0x9003, 2, DATE)])))
    app1_at = data.index(b"\xff\xe1")

    assert parse_exif_date(data[:app1_at + 30]) is None


def test_malformed_segment_length_stops_walk() -> None:
    bad = b"\xff\xe0\x00\x01"
    data = b"\xff\xd8" + bad + exif_segment(build_tiff(exif=[(0x9003, 2, DATE)]))

    assert parse_exif_date(data) is None


def test_value_offset_outside_tiff_is_absent() -> None:
    tiff = bytearray(build_tiff(exif=[(0x9003, 2, DATE)]))
    # Point the DateTimeOriginal value far past the end of the structure
    entry = tiff.index(struct.pack("<H", 0x9003))
    tiff[entry + 8:entry + 12] = struct.pack("<I", 0xFFFF)

    assert parse_exif_date(build_jpeg(exif_segment(bytes(tiff)))) is None


def test_unknown_byte_order_is_absent() -> None:
    tiff = b"XX" + build_tiff(exif=[(0x9003, 2, DATE)])[2:]

    assert parse_exif_date(build_jpeg(exif_segment(tiff))) is None


def test_reads_date_from_pillow_written_jpeg() -> None:
    exif = Image.Exif()
    exif[0x0132] = "2021:05:06 07:08:09"
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "red").save(buf, "JPEG", exif=exif.tobytes())

    assert parse_exif_date(buf.getvalue()) == "2021:05:06 07:08:09"


def test_png_bytes_are_absent() -> None:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8)).save(buf, "PNG")

    assert parse_exif_date(buf.getvalue()) is None


# =============================================================================
# format_exif_date
# =============================================================================
@pytest.mark.parametrize("value, expected", [
    ("2023:07:04 12:30:00", "2023-07-04 12:30"),
    ("2023:07:04T12:30:00", "2023-07-04 12:30"),
    ("2023:07:04 12:30", "2023-07-04 12:30"),
    ("sometime in July", "sometime in July"),
    ("2023-07-04 12:30:00", "2023-07-04 12:30:00"),
    ("2023:07:04 12:30:00garbage", "2023:07:04 12:30:00garbage"),
    ("2023:07:04 12:30:00+02:00", "2023:07:04 12:30:00+02:00"),
    (None, "—"),
])
def test_format_exif_date(value, expected) -> None:
    assert format_exif_date(value) == expected
