from __future__ import annotations

import pytest
from PIL import Image

from image_crop_tool import image_io
from image_crop_tool.geometry import GeometryEngine, fit_image_box
from image_crop_tool.models import SourceCropWindow


def _save(path, size=(40, 20), fmt=None, **kwargs):
    img = Image.new("RGB", size, (200, 30, 30))
    img.save(path, fmt, **kwargs)
    return path


def test_validate_accepts_supported_formats(tmp_path) -> None:
    assert image_io.validate_image_file(_save(tmp_path / "a.png")) == "PNG"
    assert image_io.validate_image_file(_save(tmp_path / "a.jpg")) == "JPEG"
    assert image_io.validate_image_file(_save(tmp_path / "a.webp")) == "WEBP"


def test_validate_uses_content_not_extension(tmp_path) -> None:
    path = _save(tmp_path / "disguised.jpg", fmt="PNG")

    assert image_io.validate_image_file(path) == "PNG"


def test_validate_rejects_unsupported_format(tmp_path) -> None:
    with pytest.raises(ValueError, match="valid image file"):
        image_io.validate_image_file(_save(tmp_path / "a.gif"))


def test_validate_rejects_non_images(tmp_path) -> None:
    path = tmp_path / "notes.jpg"
    path.write_text("hello", encoding="utf-8")

    with pytest.raises(ValueError, match="valid image file"):
        image_io.validate_image_file(path)


def test_validate_rejects_oversized_files(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(image_io, "MAX_FILE_SIZE", 10)

    with pytest.raises(ValueError, match="File size"):
        image_io.validate_image_file(_save(tmp_path / "a.png"))


def test_validate_missing_file_raises_oserror(tmp_path) -> None:
    with pytest.raises(OSError):
        image_io.validate_image_file(tmp_path / "missing.png")


def test_read_image_bytes(tmp_path) -> None:
    path = _save(tmp_path / "a.png")

    assert image_io.read_image_bytes(path) == path.read_bytes()


def test_orientation_is_applied(tmp_path) -> None:
    exif = Image.Exif()
    exif[0x0112] = 6
    path = _save(tmp_path / "rotated.jpg", size=(40, 20), exif=exif.tobytes())

    assert image_io.get_image_size(path) == (20, 40)
    assert image_io.open_image(path).size == (20, 40)


def test_crop_and_resize() -> None:
    img = Image.new("RGB", (100, 80))
    window = SourceCropWindow(10, 10, 50, 40)

    assert image_io.crop_and_resize(img, window).size == (50, 40)
    assert image_io.crop_and_resize(img, window, (120, 96)).size == (120, 96)


def test_save_image_formats(tmp_path) -> None:
    img = Image.new("RGBA", (10, 10), (0, 0, 255, 128))

    png = image_io.save_image(img, tmp_path / "out" / "a.png", "PNG")
    jpg = image_io.save_image(img, tmp_path / "out" / "a.jpg", "JPEG", jpeg_quality=80)

    with Image.open(png) as reopened:
        assert reopened.format == "PNG"
    with Image.open(jpg) as reopened:
        assert reopened.format == "JPEG"
        assert reopened.mode == "RGB"


def test_save_image_rejects_unknown_format(tmp_path) -> None:
    with pytest.raises(ValueError, match="Unsupported output format"):
        image_io.save_image(Image.new("RGB", (4, 4)), tmp_path / "a.tif", "TIFF")


def test_unique_path(tmp_path) -> None:
    first = tmp_path / "crop.png"
    assert image_io.unique_path(first) == first

    first.touch()
    second = image_io.unique_path(first)
    assert second == tmp_path / "crop-01.png"

    second.touch()
    assert image_io.unique_path(first) == tmp_path / "crop-02.png"


def test_display_crop_exports_at_target_size(tmp_path) -> None:
    path = _save(tmp_path / "photo.jpg", size=(1600, 1200))
    src_w, src_h = image_io.get_image_size(path)
    box = fit_image_box(800, 500, src_w, src_h)
    engine = GeometryEngine()
    engine.initialize(box, 1080 / 1350)

    window = engine.source_window(box, src_w, src_h)
    out = image_io.crop_and_resize(image_io.open_image(path), window, (1080, 1350))
    saved = image_io.save_image(out, tmp_path / "photo-crop.png")

    assert window.sx + window.sw <= src_w
    assert window.sy + window.sh <= src_h
    assert window.sw / window.sh == pytest.approx(1080 / 1350, rel=0.01)
    with Image.open(saved) as result:
        assert result.size == (1080, 1350)
