"""Tests for the focus_preview command line script."""

import json
import os
from unittest.mock import patch

import pytest
from PIL import Image

from stepframe.scripts.focus_preview import build_report, main, parse_viewport
from stepframe.focus.config import FocusConfig
from stepframe.focus.focus_override import apply_overrides
from stepframe.focus.focus_transform import compute_focus_transform
from stepframe.focus.models import (
    FocusOverride,
    PixelRect,
    RegionOfInterestHint,
    ScreenshotOverridesV1,
    Size,
    SourceImage,
    UnitPoint,
)

HINTS = {
    "algorithm": "focus_hints_v1",
    "source": "radar",
    "safe_crop_rect": {
        "x": 400,
        "y": 200,
        "width": 100,
        "height": 80,
        "coordinate_space": "step_image_pixels_v1",
    },
}


@pytest.fixture
def screenshot(tmp_path):
    path = tmp_path / "step.png"
    Image.new("RGB", (1000, 600), (255, 255, 255)).save(path)
    return path


def write_json(tmp_path, name, data):
    path = tmp_path / name
    path.write_text(json.dumps(data))
    return str(path)


def test_parse_viewport():
    assert parse_viewport("1280x720") == Size(1280.0, 720.0)
    assert parse_viewport(None) is None
    with pytest.raises(ValueError):
        parse_viewport("0x720")
    with pytest.raises(ValueError):
        parse_viewport("wide")


def test_build_report_prefers_override():
    overrides = ScreenshotOverridesV1(focus=FocusOverride(UnitPoint(0.5, 0.5), 2.0))
    hint = RegionOfInterestHint(safe_crop_rect=PixelRect(400, 200, 100, 80))

    config = FocusConfig(context_margin_factor=0.0)
    source = SourceImage(1000, 600)
    effective = apply_overrides(source, overrides, hint)
    focus = compute_focus_transform(source, None, effective.hints, effective.radar, config)

    report = build_report(source, None, effective, focus, config)

    assert report["focus_source"] == "manual_override"
    assert report["focus"]["zoom_scale"] == 2.0
    assert report["focus"]["transform_origin_percent"] == {"x": 50.0, "y": 50.0}
    assert report["canvas"] == {"scale": 2.0, "position_x": -500.0, "position_y": -300.0}


def test_json_output(screenshot, tmp_path, capsys):
    hints = write_json(tmp_path, "hints.json", HINTS)

    with patch.dict(os.environ, {"STEPFRAME_CONTEXT_MARGIN": "0.25"}, clear=True):
        main([str(screenshot), "--hints", hints, "--json"])

    report = json.loads(capsys.readouterr().out)
    assert report["focus_source"] == "render_hints"
    assert report["focus"]["has_focus_crop"] is True
    assert report["focus"]["zoom_scale"] == 4.0
    assert report["focus"]["transform_origin_percent"] == {"x": 45.0, "y": 40.0}
    assert report["focus"]["crop_rect"] == {"x": 375.0, "y": 180.0, "width": 150.0, "height": 120.0}
    assert report["masks"] == []


def test_margin_flag_overrides_env(screenshot, tmp_path, capsys):
    hints = write_json(tmp_path, "hints.json", HINTS)

    main([str(screenshot), "--hints", hints, "--margin", "0", "--json"])

    report = json.loads(capsys.readouterr().out)
    assert report["focus"]["crop_rect"] == {"x": 400.0, "y": 200.0, "width": 100.0, "height": 80.0}


def test_text_output_without_hints(screenshot, capsys):
    with patch.dict(os.environ, {}, clear=True):
        main([str(screenshot)])

    out = capsys.readouterr().out
    assert "Image: 1000x600" in out
    assert "Focus source: center_fallback" in out
    # 1.25 center zoom divided by the 1.08 default margin compensation
    assert "Zoom: 1.157" in out
    assert "Origin: 50.00%, 50.00%" in out


def test_radar_without_hints_frames_click_point(screenshot, tmp_path, capsys):
    radar = write_json(tmp_path, "radar.json", {"x": 450, "y": 240, "coordinate_space": "step_image_pixels_v1"})

    main([str(screenshot), "--radar", radar, "--kind", "click_target", "--margin", "0", "--json"])

    report = json.loads(capsys.readouterr().out)
    assert report["focus_source"] == "radar"
    assert report["focus"]["has_focus_crop"] is True
    assert report["focus"]["zoom_scale"] == pytest.approx(1.85)
    assert report["focus"]["transform_origin_percent"] == {"x": 45.0, "y": 40.0}


def test_weak_hints_on_click_step_fall_back_to_radar(screenshot, tmp_path, capsys):
    hints = write_json(tmp_path, "hints.json", HINTS)
    radar = write_json(tmp_path, "radar.json", {"x": 450, "y": 240, "coordinate_space": "step_image_pixels_v1"})

    main([str(screenshot), "--hints", hints, "--radar", radar, "--kind", "click_target", "--json"])

    report = json.loads(capsys.readouterr().out)
    assert report["focus_source"] == "radar"


def test_preview_written(screenshot, tmp_path, capsys):
    hints = write_json(tmp_path, "hints.json", HINTS)
    masks = write_json(
        tmp_path,
        "masks.json",
        [{"id": "mask_1", "kind": "solid", "rect": {"x": 0, "y": 0, "width": 0.25, "height": 0.25}}],
    )
    radar = write_json(tmp_path, "radar.json", {"x": 450, "y": 240, "coordinate_space": "step_image_pixels_v1"})
    preview = tmp_path / "preview.png"

    main([str(screenshot), "--hints", hints, "--masks", masks, "--radar", radar, "--preview", str(preview), "--json"])

    report = json.loads(capsys.readouterr().out)
    assert report["preview"] == str(preview)
    assert len(report["masks"]) == 1
    assert report["radar_percent"] == {"left": 45.0, "top": 40.0}
    with Image.open(preview) as img:
        assert img.size == (1000, 600)


def test_missing_image_exits_2(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "missing.png")])

    assert exc.value.code == 2
    assert "Error: Image not found" in capsys.readouterr().err


def test_bad_json_exits_2(screenshot, tmp_path, capsys):
    bad = tmp_path / "hints.json"
    bad.write_text("{not json")

    with pytest.raises(SystemExit) as exc:
        main([str(screenshot), "--hints", str(bad)])

    assert exc.value.code == 2
    assert "Error: Could not read input" in capsys.readouterr().err


def test_non_utf8_json_exits_2(screenshot, tmp_path, capsys):
    bad = tmp_path / "masks.json"
    bad.write_bytes(b"\xff\xfe{")

    with pytest.raises(SystemExit) as exc:
        main([str(screenshot), "--masks", str(bad)])

    assert exc.value.code == 2
    assert "Error: Could not read input" in capsys.readouterr().err


def test_bad_env_config_exits_2(screenshot, capsys):
    with patch.dict(os.environ, {"STEPFRAME_MAX_SCALE": "abc"}, clear=True):
        with pytest.raises(SystemExit) as exc:
            main([str(screenshot)])

    assert exc.value.code == 2
    assert "Error: Invalid configuration" in capsys.readouterr().err


def test_bad_viewport_exits_2(screenshot, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(screenshot), "--viewport", "big"])

    assert exc.value.code == 2


def test_invalid_margin_exits_2(screenshot, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(screenshot), "--margin", "-1"])

    assert exc.value.code == 2
    assert "context_margin_factor" in capsys.readouterr().err
