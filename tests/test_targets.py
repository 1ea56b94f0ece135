from __future__ import annotations

import json

import pytest

from image_crop_tool import targets
from image_crop_tool.config import DEFAULT_TARGETS


@pytest.fixture
def cfg_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(targets, "config_dir", lambda: tmp_path)
    return tmp_path


def _write(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_defaults_are_valid() -> None:
    assert targets.validate_targets(DEFAULT_TARGETS) == []


def test_load_creates_defaults_when_missing(cfg_dir) -> None:
    loaded = targets.load_targets()

    assert loaded == DEFAULT_TARGETS
    on_disk = json.loads((cfg_dir / "targets.json").read_text(encoding="utf-8"))
    assert on_disk == {"version": 1, "targets": DEFAULT_TARGETS}


def test_load_returns_defaults_when_file_cannot_be_written(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(targets, "config_dir", lambda: tmp_path / "missing")

    assert targets.load_targets() == DEFAULT_TARGETS
    assert not (tmp_path / "missing").exists()


def test_load_returns_copy_of_defaults(cfg_dir) -> None:
    loaded = targets.load_targets()
    loaded[0]["width"] = 1

    assert DEFAULT_TARGETS[0]["width"] != 1


def test_load_restores_defaults_for_corrupt_json(cfg_dir) -> None:
    (cfg_dir / "targets.json").write_text("{not json", encoding="utf-8")

    assert targets.load_targets() == DEFAULT_TARGETS
    assert json.loads((cfg_dir / "targets.json").read_text(encoding="utf-8"))["version"] == 1


def test_load_restores_defaults_without_envelope(cfg_dir) -> None:
    _write(cfg_dir / "targets.json", DEFAULT_TARGETS)

    assert targets.load_targets() == DEFAULT_TARGETS


def test_load_restores_defaults_for_invalid_targets(cfg_dir) -> None:
    _write(cfg_dir / "targets.json", {"version": 1, "targets": [{"id": "x", "name": "X", "width": 0, "height": 5}]})

    assert targets.load_targets() == DEFAULT_TARGETS


def test_save_then_load(cfg_dir) -> None:
    custom = [{"id": "banner", "name": "Banner", "width": 1500, "height": 500}]

    targets.save_targets(custom)

    assert targets.load_targets() == custom


def test_save_rejects_invalid_data(cfg_dir) -> None:
    with pytest.raises(ValueError, match="duplicate id 'a'"):
        targets.save_targets([
            {"id": "a", "name": "A", "width": 10, "height": 10},
            {"id": "a", "name": "B", "width": 20, "height": 10},
        ])
    assert not (cfg_dir / "targets.json").exists()


@pytest.mark.parametrize("data, fragment", [
    ("nope", "must be a list"),
    ([], "must not be empty"),
    (["x"], "must be a dict"),
    ([{"id": "a", "name": "A", "width": 10}], "missing keys: height"),
    ([{"id": "a", "name": " ", "width": 10, "height": 10}], "name must be a non-empty string"),
    ([{"id": "a", "name": "A", "width": True, "height": 10}], "width must be a positive integer"),
    ([{"id": "a", "name": "A", "width": 10, "height": 2.5}], "height must be a positive integer"),
])
def test_validate_reports_problems(data, fragment) -> None:
    errors = targets.validate_targets(data)

    assert any(fragment in e for e in errors), errors


def test_aspect_helpers() -> None:
    story = targets.find_target(DEFAULT_TARGETS, "instagram-story-9-16-1080x1920")

    assert story is not None
    assert targets.target_aspect(story) == pytest.approx(9 / 16)
    assert targets.aspect_label(1080, 1920) == "9:16"
    assert targets.normalize_ratio(1200, 800) == (3, 2)
    assert targets.find_target(DEFAULT_TARGETS, "missing") is None
