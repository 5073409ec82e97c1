"""Tests for boundary parsing of focus/redaction value types."""

import io
import logging

import pytest
from PIL import Image

from stepframe.focus.models import (
    STEP_IMAGE_COORDINATE_SPACE,
    CanvasSnapshot,
    CursorOverride,
    FocusOverride,
    GuideStep,
    PixelRect,
    Point,
    RadarPoint,
    RedactionMask,
    RegionOfInterestHint,
    ScreenshotOverridesV1,
    Size,
    SourceImage,
    StepImage,
    UnitPoint,
    UnitRect,
    normalize_color,
    parse_masks,
)


class TestSourceImage:
    def test_from_dict_valid(self):
        image = SourceImage.from_dict({"width": 1920, "height": 1080, "url": "x.png"})
        assert image == SourceImage(1920.0, 1080.0)
        assert image.is_valid

    @pytest.mark.parametrize(
        "data",
        [
            {"width": 0, "height": 10},
            {"width": 10, "height": -1},
            {"width": float("nan"), "height": 10},
            {"width": "10", "height": 10},
            {"width": True, "height": 10},
            None,
            [],
        ],
    )
    def test_from_dict_invalid(self, data):
        assert SourceImage.from_dict(data) is None

    def test_from_image_pil(self):
        img = Image.new("RGB", (320, 200))
        assert SourceImage.from_image(img) == SourceImage(320.0, 200.0)

    def test_from_image_bytes(self):
        buf = io.BytesIO()
        Image.new("RGB", (64, 48)).save(buf, format="PNG")
        assert SourceImage.from_image(buf.getvalue()) == SourceImage(64.0, 48.0)

    def test_from_image_path(self, tmp_path):
        path = tmp_path / "shot.png"
        Image.new("RGB", (10, 20)).save(path)
        assert SourceImage.from_image(path).size == Size(10.0, 20.0)


class TestRadarPoint:
    def test_parses_and_is_usable(self):
        radar = RadarPoint.from_dict(
            {
                "x": 10,
                "y": 20,
                "coordinate_space": STEP_IMAGE_COORDINATE_SPACE,
                "confidence": 0.8,
                "reason_code": "click",
            }
        )
        assert radar == RadarPoint(10.0, 20.0, STEP_IMAGE_COORDINATE_SPACE, 0.8, "click")
        assert radar.is_usable

    def test_foreign_space_parses_but_is_unusable(self):
        radar = RadarPoint.from_dict({"x": 10, "y": 20, "coordinate_space": "css_pixels"})
        assert radar is not None
        assert not radar.is_usable

    def test_missing_fields(self):
        assert RadarPoint.from_dict({"x": 10, "coordinate_space": STEP_IMAGE_COORDINATE_SPACE}) is None
        assert RadarPoint.from_dict({"x": 10, "y": 1}) is None

    def test_to_dict_omits_missing_optionals(self):
        radar = RadarPoint(1.0, 2.0, STEP_IMAGE_COORDINATE_SPACE)
        assert radar.to_dict() == {"x": 1.0, "y": 2.0, "coordinate_space": STEP_IMAGE_COORDINATE_SPACE}


class TestRegionOfInterestHint:
    def test_parses_pixel_geometry(self):
        hint = RegionOfInterestHint.from_dict(
            {
                "algorithm": "focus_hints_v1",
                "source": "radar",
                "confidence": 0.9,
                "safe_crop_rect": {
                    "x": 400,
                    "y": 200,
                    "width": 100,
                    "height": 80,
                    "coordinate_space": STEP_IMAGE_COORDINATE_SPACE,
                },
                "focus_center": {"x": 450, "y": 240, "coordinate_space": STEP_IMAGE_COORDINATE_SPACE},
                "recommended_zoom_scale": 2,
            }
        )
        assert hint.safe_crop_rect == PixelRect(400.0, 200.0, 100.0, 80.0)
        assert hint.focus_center == Point(450.0, 240.0)
        assert hint.recommended_zoom_scale == 2.0
        assert hint.source == "radar"

    def test_drops_foreign_space_geometry(self):
        hint = RegionOfInterestHint.from_dict(
            {
                "safe_crop_rect": {"x": 0, "y": 0, "width": 10, "height": 10, "coordinate_space": "unit"},
                "focus_center": {"x": 0.5, "y": 0.5, "coordinate_space": "unit"},
                "recommended_zoom_scale": 2,
            }
        )
        assert hint.safe_crop_rect is None
        assert hint.focus_center is None
        assert hint.bounding_box(1000, 600) is None

    def test_drops_degenerate_rect(self):
        hint = RegionOfInterestHint.from_dict(
            {"safe_crop_rect": {"x": 0, "y": 0, "width": 0, "height": 10, "coordinate_space": STEP_IMAGE_COORDINATE_SPACE}}
        )
        assert hint.safe_crop_rect is None

    def test_bounding_box_prefers_safe_rect(self):
        hint = RegionOfInterestHint(
            safe_crop_rect=PixelRect(1, 2, 3, 4),
            focus_center=Point(500, 300),
            recommended_zoom_scale=2.0,
        )
        assert hint.bounding_box(1000, 600) == PixelRect(1, 2, 3, 4)

    def test_bounding_box_from_center_and_zoom(self):
        hint = RegionOfInterestHint(focus_center=Point(500, 300), recommended_zoom_scale=2.0)
        assert hint.bounding_box(1000, 600) == PixelRect(250.0, 150.0, 500.0, 300.0)

    def test_bounding_box_needs_zoom_above_one(self):
        hint = RegionOfInterestHint(focus_center=Point(500, 300), recommended_zoom_scale=1.0)
        assert hint.bounding_box(1000, 600) is None

    def test_to_dict_tags_coordinate_space(self):
        hint = RegionOfInterestHint(focus_center=Point(1, 2), recommended_zoom_scale=2.0)
        data = hint.to_dict()
        assert data["focus_center"]["coordinate_space"] == STEP_IMAGE_COORDINATE_SPACE
        assert RegionOfInterestHint.from_dict(data) == hint


class TestOverrides:
    def test_round_trip(self):
        overrides = ScreenshotOverridesV1(
            focus=FocusOverride(UnitPoint(0.25, 0.75), 2.5),
            cursor=CursorOverride(UnitPoint(0.1, 0.2)),
        )
        assert ScreenshotOverridesV1.from_dict(overrides.to_dict()) == overrides

    def test_unit_point_is_clamped(self):
        override = FocusOverride.from_dict({"center_unit": {"x": 1.5, "y": -0.5}, "zoom_scale": 2})
        assert override.center_unit == UnitPoint(1.0, 0.0)

    def test_zoom_below_one_is_raised_to_one(self):
        override = FocusOverride.from_dict({"center_unit": {"x": 0.5, "y": 0.5}, "zoom_scale": 0.5})
        assert override.zoom_scale == 1.0

    def test_invalid_parts(self):
        assert ScreenshotOverridesV1.from_dict({"focus": None, "cursor": None}) is None
        assert ScreenshotOverridesV1.from_dict({"focus": {"center_unit": {"x": 0.5}}}) is None
        partial = ScreenshotOverridesV1.from_dict({"cursor": {"point_unit": {"x": 0.3, "y": 0.4}}})
        assert partial.focus is None
        assert partial.cursor.point_unit == UnitPoint(0.3, 0.4)


class TestRedactionMask:
    def test_parses_solid_mask(self):
        mask = RedactionMask.from_dict(
            {
                "id": "mask_1",
                "kind": "solid",
                "rect": {"x": 0.25, "y": 0.5, "width": 0.25, "height": 0.25},
                "strength": 2,
                "color": "#FF00AA",
            }
        )
        assert mask.rect == UnitRect(0.25, 0.5, 0.25, 0.25)
        assert mask.strength == 1.0
        assert mask.color == "#ff00aa"

    def test_color_only_kept_for_solid(self):
        mask = RedactionMask.from_dict(
            {"id": "m", "kind": "blur", "rect": {"x": 0, "y": 0, "width": 0.5, "height": 0.5}, "color": "#ffffff"}
        )
        assert mask.color is None

    def test_unknown_kind_rejected(self):
        data = {"id": "m", "kind": "sepia", "rect": {"x": 0, "y": 0, "width": 0.5, "height": 0.5}}
        assert RedactionMask.from_dict(data) is None

    def test_rect_is_clipped_to_unit_square(self):
        mask = RedactionMask.from_dict(
            {"id": "m", "kind": "pixelate", "rect": {"x": 0.5, "y": 0.5, "width": 1, "height": 1}}
        )
        assert mask.rect == UnitRect(0.5, 0.5, 0.5, 0.5)

    def test_negative_extent_is_logged(self, caplog):
        data = {"id": "m", "kind": "blur", "rect": {"x": 0.5, "y": 0.5, "width": -0.2, "height": 0.3}}

        with caplog.at_level(logging.DEBUG, logger="stepframe.focus.models"):
            assert RedactionMask.from_dict(data) is None

        assert "Negative unit rect extent" in caplog.text

    def test_small_masks_rejected(self):
        data = {"id": "m", "kind": "blur", "rect": {"x": 0, "y": 0, "width": 0.005, "height": 0.5}}
        assert RedactionMask.from_dict(data) is None

    def test_parse_masks_drops_invalid_and_duplicates(self):
        rect = {"x": 0, "y": 0, "width": 0.5, "height": 0.5}
        masks = parse_masks(
            [
                {"id": "a", "kind": "blur", "rect": rect},
                {"id": "a", "kind": "solid", "rect": rect},
                {"id": "", "kind": "blur", "rect": rect},
                "junk",
                {"id": "b", "kind": "pixelate", "rect": rect},
            ]
        )
        assert [mask.id for mask in masks] == ["a", "b"]
        assert masks[0].kind == "blur"

    def test_parse_masks_non_list(self):
        assert parse_masks({"id": "a"}) == []
        assert parse_masks(None) == []


def test_normalize_color():
    assert normalize_color(" #AbCdEf ") == "#abcdef"
    assert normalize_color("#fff") is None
    assert normalize_color("red") is None
    assert normalize_color(None) is None


def test_canvas_snapshot_is_savable():
    good = CanvasSnapshot(1.5, -10, 20, Size(800, 600), Size(800, 450))
    assert good.is_savable

    assert not CanvasSnapshot(1.5, 0, 0, Size(0, 600), Size(800, 450)).is_savable
    assert not CanvasSnapshot(1.5, 0, 0, Size(800, 600), Size(800, 0)).is_savable
    assert not CanvasSnapshot(0, 0, 0, Size(800, 600), Size(800, 450)).is_savable
    assert not CanvasSnapshot(float("nan"), 0, 0, Size(800, 600), Size(800, 450)).is_savable
    assert not CanvasSnapshot(1.0, float("inf"), 0, Size(800, 600), Size(800, 450)).is_savable


class TestGuideStep:
    def test_from_dict(self):
        step = GuideStep.from_dict(
            {
                "id": "step_1",
                "kind": "type_into_field",
                "expected_event": {"type": "input"},
                "screenshot_overrides": {"cursor": {"point_unit": {"x": 0.6, "y": 0.4}}},
            }
        )
        assert step.expected_event_type == "input"
        assert step.overrides.cursor.point_unit == UnitPoint(0.6, 0.4)
        assert not step.is_click_like

    @pytest.mark.parametrize(
        "kind, event_type, expected",
        [
            ("click_target", None, True),
            (" DRAG_DROP ", None, True),
            ("scroll", None, False),
            ("something_new", None, False),
            (None, "click", True),
            ("click_target", "keypress", False),
            ("manual", "click", True),
        ],
    )
    def test_is_click_like(self, kind, event_type, expected):
        assert GuideStep("s", kind=kind, expected_event_type=event_type).is_click_like is expected

    def test_missing_id(self):
        assert GuideStep.from_dict({"kind": "click_target"}) is None
        assert GuideStep.from_dict({"id": "", "kind": "click_target"}) is None


class TestStepImage:
    def test_dimensions_from_record(self):
        image = StepImage.from_dict({"step_id": "s", "width": 1000, "height": 800})
        assert image.dimensions == SourceImage(1000.0, 800.0)

    def test_dimensions_fall_back_to_variants(self):
        image = StepImage.from_dict(
            {
                "step_id": "s",
                "height": 0,
                "variants": {"full": {"width": 1000}, "preview": {"width": 320, "height": 200}},
            }
        )
        assert image.dimensions == SourceImage(1000.0, 200.0)

    def test_unknown_dimensions(self):
        assert StepImage.from_dict({"step_id": "s", "variants": None}).dimensions is None

    def test_parses_radar_hints_and_capture_time(self):
        image = StepImage.from_dict(
            {
                "step_id": "s",
                "capture_t_s": 12.5,
                "radar": {"x": 1, "y": 2, "coordinate_space": STEP_IMAGE_COORDINATE_SPACE},
                "render_hints": {"source": "radar", "confidence": 0.8},
            }
        )
        assert image.capture_t_s == 12.5
        assert image.radar.is_usable
        assert image.render_hints.confidence == 0.8

    def test_missing_step_id(self):
        assert StepImage.from_dict({"width": 10, "height": 10}) is None
