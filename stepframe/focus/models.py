"""Value types for screenshot focus, cursor overrides and redaction masks.

Everything that crosses the package boundary as JSON is parsed here exactly
once. ``from_dict`` constructors return ``None`` for malformed payloads
instead of raising, so callers degrade to a neutral presentation; code past
the boundary trusts the parsed values.

Examples:
    Parsing a radar point:
        >>> radar = RadarPoint.from_dict(
        ...     {"x": 120, "y": 80, "coordinate_space": "step_image_pixels_v1"}
        ... )
        >>> radar.is_usable
        True

    Persisted overrides round-trip through plain dicts:
        >>> overrides = ScreenshotOverridesV1(
        ...     focus=FocusOverride(UnitPoint(0.5, 0.4), 2.0), cursor=None
        ... )
        >>> ScreenshotOverridesV1.from_dict(overrides.to_dict()) == overrides
        True
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, Union

from PIL import Image

from .units import (
    clamp,
    clamp_unit,
    is_finite_number,
    is_finite_positive,
    positive_or_none,
)

logger = logging.getLogger(__name__)

STEP_IMAGE_COORDINATE_SPACE = "step_image_pixels_v1"

MaskKind = Literal["blur", "solid", "pixelate"]
MASK_KINDS: tuple[str, ...] = ("blur", "solid", "pixelate")

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def _as_mapping(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def normalize_color(value: Any) -> Optional[str]:
    """Return a lower-cased ``#rrggbb`` color or None."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _HEX_COLOR.match(text):
        return None
    return text.lower()


@dataclass(frozen=True)
class Size:
    """Width/height pair in some pixel space."""

    width: float
    height: float

    @property
    def is_valid(self) -> bool:
        return is_finite_positive(self.width) and is_finite_positive(self.height)

    def to_dict(self) -> dict[str, float]:
        return {"width": self.width, "height": self.height}


ZERO_SIZE = Size(0.0, 0.0)


@dataclass(frozen=True)
class SourceImage:
    """Pixel dimensions of a captured screenshot."""

    width: float
    height: float

    @property
    def is_valid(self) -> bool:
        return is_finite_positive(self.width) and is_finite_positive(self.height)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def to_dict(self) -> dict[str, float]:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[SourceImage]:
        """Parse ``{width, height}``; None unless both are finite and > 0."""
        record = _as_mapping(data)
        if record is None:
            return None
        width = positive_or_none(record.get("width"))
        height = positive_or_none(record.get("height"))
        if width is None or height is None:
            logger.debug("Rejected source image dimensions: %s", data)
            return None
        return cls(width=width, height=height)

    @classmethod
    def from_image(cls, image: Union[Image.Image, bytes, str, Path]) -> SourceImage:
        """Read dimensions from a Pillow image, encoded bytes or a file path."""
        if isinstance(image, Image.Image):
            width, height = image.size
        elif isinstance(image, bytes):
            with Image.open(io.BytesIO(image)) as img:
                width, height = img.size
        else:
            with Image.open(image) as img:
                width, height = img.size
        return cls(width=float(width), height=float(height))


@dataclass(frozen=True)
class Point:
    """A point in a pixel space (source, rendered or viewport)."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class UnitPoint:
    """A point in [0, 1] unit space."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[UnitPoint]:
        """Parse ``{x, y}``, clamping finite values into [0, 1]."""
        record = _as_mapping(data)
        if record is None:
            return None
        x, y = record.get("x"), record.get("y")
        if not is_finite_number(x) or not is_finite_number(y):
            return None
        return cls(x=clamp_unit(x), y=clamp_unit(y))


@dataclass(frozen=True)
class PercentPoint:
    """Overlay position as CSS-style percentages of an image box."""

    left: float
    top: float

    def to_dict(self) -> dict[str, float]:
        return {"left": self.left, "top": self.top}


@dataclass(frozen=True)
class PixelRect:
    """Axis-aligned rectangle in source-pixel space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class UnitRect:
    """Axis-aligned rectangle in unit space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[UnitRect]:
        """Parse ``{x, y, width, height}`` and clip it into the unit square."""
        record = _as_mapping(data)
        if record is None:
            return None
        values = [record.get(key) for key in ("x", "y", "width", "height")]
        if not all(is_finite_number(value) for value in values):
            return None
        x, y, width, height = values
        if width < 0 or height < 0:
            logger.debug("Negative unit rect extent treated as empty: %s", data)
        left = clamp_unit(x)
        top = clamp_unit(y)
        right = clamp_unit(x + max(0.0, width))
        bottom = clamp_unit(y + max(0.0, height))
        return cls(x=left, y=top, width=right - left, height=bottom - top)


@dataclass(frozen=True)
class RadarPoint:
    """Where the recorded interaction happened, in source pixels.

    Only points tagged ``step_image_pixels_v1`` are usable; anything else is
    ignored by every consumer.
    """

    x: float
    y: float
    coordinate_space: str
    confidence: Optional[float] = None
    reason_code: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return (
            self.coordinate_space == STEP_IMAGE_COORDINATE_SPACE
            and is_finite_number(self.x)
            and is_finite_number(self.y)
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "x": self.x,
            "y": self.y,
            "coordinate_space": self.coordinate_space,
        }
        if self.confidence is not None:
            data["confidence"] = self.confidence
        if self.reason_code is not None:
            data["reason_code"] = self.reason_code
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional[RadarPoint]:
        record = _as_mapping(data)
        if record is None:
            return None
        x, y = record.get("x"), record.get("y")
        space = record.get("coordinate_space")
        if not is_finite_number(x) or not is_finite_number(y) or not isinstance(space, str):
            logger.debug("Rejected radar point: %s", data)
            return None
        confidence = record.get("confidence")
        reason_code = record.get("reason_code")
        return cls(
            x=float(x),
            y=float(y),
            coordinate_space=space,
            confidence=float(confidence) if is_finite_number(confidence) else None,
            reason_code=reason_code if isinstance(reason_code, str) else None,
        )


def _pixel_point_from_dict(data: Any) -> Optional[Point]:
    record = _as_mapping(data)
    if record is None or record.get("coordinate_space") != STEP_IMAGE_COORDINATE_SPACE:
        return None
    x, y = record.get("x"), record.get("y")
    if not is_finite_number(x) or not is_finite_number(y):
        return None
    return Point(float(x), float(y))


def _pixel_rect_from_dict(data: Any) -> Optional[PixelRect]:
    record = _as_mapping(data)
    if record is None or record.get("coordinate_space") != STEP_IMAGE_COORDINATE_SPACE:
        return None
    x, y = record.get("x"), record.get("y")
    width, height = record.get("width"), record.get("height")
    if not is_finite_number(x) or not is_finite_number(y):
        return None
    if not is_finite_positive(width) or not is_finite_positive(height):
        return None
    return PixelRect(float(x), float(y), float(width), float(height))


@dataclass(frozen=True)
class RegionOfInterestHint:
    """Upstream-computed region of interest in source pixels.

    Attributes:
        safe_crop_rect: Bounding box of the region, if provided.
        focus_center: Center of interest, if provided.
        recommended_zoom_scale: Zoom paired with ``focus_center``; the implied
            box is ``image / zoom`` centered on ``focus_center``.
        source: Upstream provenance label (radar, click_event, ...).
        confidence: Upstream confidence in [0, 1].
        algorithm: Upstream algorithm tag.
    """

    safe_crop_rect: Optional[PixelRect] = None
    focus_center: Optional[Point] = None
    recommended_zoom_scale: Optional[float] = None
    source: Optional[str] = None
    confidence: Optional[float] = None
    algorithm: Optional[str] = "focus_hints_v1"

    def bounding_box(self, image_width: float, image_height: float) -> Optional[PixelRect]:
        """Bounding box of the hint in pixels, or None when unusable.

        A safe crop rect wins; otherwise a focus center with a zoom above 1
        implies a box of ``image / zoom`` around the center.
        """
        if self.safe_crop_rect is not None:
            return self.safe_crop_rect
        zoom = self.recommended_zoom_scale
        if self.focus_center is None or not is_finite_positive(zoom) or zoom <= 1:
            return None
        width = image_width / zoom
        height = image_height / zoom
        return PixelRect(
            x=self.focus_center.x - width / 2,
            y=self.focus_center.y - height / 2,
            width=width,
            height=height,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "algorithm": self.algorithm,
            "source": self.source,
            "confidence": self.confidence,
            "focus_center": None,
            "safe_crop_rect": None,
            "recommended_zoom_scale": self.recommended_zoom_scale,
        }
        if self.focus_center is not None:
            data["focus_center"] = {
                **self.focus_center.to_dict(),
                "coordinate_space": STEP_IMAGE_COORDINATE_SPACE,
            }
        if self.safe_crop_rect is not None:
            data["safe_crop_rect"] = {
                **self.safe_crop_rect.to_dict(),
                "coordinate_space": STEP_IMAGE_COORDINATE_SPACE,
            }
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional[RegionOfInterestHint]:
        """Parse upstream render hints; geometry in foreign spaces is dropped."""
        record = _as_mapping(data)
        if record is None:
            return None
        confidence = record.get("confidence")
        source = record.get("source")
        algorithm = record.get("algorithm")
        return cls(
            safe_crop_rect=_pixel_rect_from_dict(record.get("safe_crop_rect")),
            focus_center=_pixel_point_from_dict(record.get("focus_center")),
            recommended_zoom_scale=positive_or_none(record.get("recommended_zoom_scale")),
            source=source if isinstance(source, str) else None,
            confidence=float(confidence) if is_finite_number(confidence) else None,
            algorithm=algorithm if isinstance(algorithm, str) else None,
        )


@dataclass(frozen=True)
class FocusTransformResult:
    """Normalized framing derived from a hint; never persisted directly.

    Attributes:
        has_focus_crop: Whether a usable hint produced a crop.
        zoom_scale: Zoom relative to fit, always >= 1.
        transform_origin_percent: Focus point as percent of the image.
        radar_percent_in_crop: Radar marker relative to the crop, or None
            when the marker lies outside it.
        crop_rect: Expanded crop box in source pixels.
    """

    has_focus_crop: bool
    zoom_scale: float
    transform_origin_percent: Point
    radar_percent_in_crop: Optional[PercentPoint]
    crop_rect: PixelRect

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_focus_crop": self.has_focus_crop,
            "zoom_scale": self.zoom_scale,
            "transform_origin_percent": self.transform_origin_percent.to_dict(),
            "radar_percent_in_crop": (
                self.radar_percent_in_crop.to_dict()
                if self.radar_percent_in_crop is not None
                else None
            ),
            "crop_rect": self.crop_rect.to_dict(),
        }


@dataclass(frozen=True)
class FocusOverride:
    center_unit: UnitPoint
    zoom_scale: float

    def to_dict(self) -> dict[str, Any]:
        return {"center_unit": self.center_unit.to_dict(), "zoom_scale": self.zoom_scale}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[FocusOverride]:
        record = _as_mapping(data)
        if record is None:
            return None
        center = UnitPoint.from_dict(record.get("center_unit"))
        zoom = positive_or_none(record.get("zoom_scale"))
        if center is None or zoom is None:
            return None
        return cls(center_unit=center, zoom_scale=max(1.0, zoom))


@dataclass(frozen=True)
class CursorOverride:
    point_unit: UnitPoint

    def to_dict(self) -> dict[str, Any]:
        return {"point_unit": self.point_unit.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> Optional[CursorOverride]:
        record = _as_mapping(data)
        if record is None:
            return None
        point = UnitPoint.from_dict(record.get("point_unit"))
        return cls(point_unit=point) if point is not None else None


@dataclass(frozen=True)
class ScreenshotOverridesV1:
    """Operator overrides persisted per step.

    ``focus`` replaces the upstream hint; ``cursor`` replaces the radar point.
    """

    focus: Optional[FocusOverride] = None
    cursor: Optional[CursorOverride] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "focus": self.focus.to_dict() if self.focus is not None else None,
            "cursor": self.cursor.to_dict() if self.cursor is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional[ScreenshotOverridesV1]:
        """Parse persisted overrides; None when neither part is valid."""
        record = _as_mapping(data)
        if record is None:
            return None
        focus = FocusOverride.from_dict(record.get("focus"))
        cursor = CursorOverride.from_dict(record.get("cursor"))
        if focus is None and cursor is None:
            return None
        return cls(focus=focus, cursor=cursor)


CLICK_STEP_KINDS = frozenset(
    {"click_target", "select_menu", "context_menu", "drag_drop", "multi_select", "table_action"}
)
NON_CLICK_EVENT_TYPES = frozenset({"keypress", "input", "navigation"})


@dataclass(frozen=True)
class GuideStep:
    """The parts of a guide step that shape its screenshot framing.

    Attributes:
        id: Step identifier, matched against ``StepImage.step_id``.
        kind: Step kind (``click_target``, ``type_into_field``, ...).
        expected_event_type: ``type`` of the step's expected event, if any.
        overrides: Persisted ``screenshot_overrides`` for the step.
    """

    id: str
    kind: Optional[str] = None
    expected_event_type: Optional[str] = None
    overrides: Optional[ScreenshotOverridesV1] = None

    @property
    def is_click_like(self) -> bool:
        """True when the step records a pointer interaction.

        An expected event type decides first; otherwise the kind does, and
        unknown kinds count as non-click.

        >>> GuideStep("s1", kind="Click_Target").is_click_like
        True
        >>> GuideStep("s2", kind="click_target", expected_event_type="input").is_click_like
        False
        """
        event_type = (self.expected_event_type or "").strip().lower()
        if event_type == "click":
            return True
        if event_type in NON_CLICK_EVENT_TYPES:
            return False
        return (self.kind or "").strip().lower() in CLICK_STEP_KINDS

    @classmethod
    def from_dict(cls, data: Any) -> Optional[GuideStep]:
        record = _as_mapping(data)
        if record is None:
            return None
        step_id = record.get("id")
        if not isinstance(step_id, str) or not step_id:
            return None
        kind = record.get("kind")
        expected_event = _as_mapping(record.get("expected_event")) or {}
        event_type = expected_event.get("type")
        return cls(
            id=step_id,
            kind=kind if isinstance(kind, str) else None,
            expected_event_type=event_type if isinstance(event_type, str) else None,
            overrides=ScreenshotOverridesV1.from_dict(record.get("screenshot_overrides")),
        )


@dataclass(frozen=True)
class StepImage:
    """A step's screenshot record as delivered by the capture backend.

    Dimensions may be missing on the record itself; ``dimensions`` falls
    back to the full and then the preview variant.
    """

    step_id: str
    width: Optional[float] = None
    height: Optional[float] = None
    full_size: Optional[Size] = None
    preview_size: Optional[Size] = None
    capture_t_s: Optional[float] = None
    radar: Optional[RadarPoint] = None
    render_hints: Optional[RegionOfInterestHint] = None

    @property
    def dimensions(self) -> Optional[SourceImage]:
        """Pixel size, resolved per axis; None when an axis is unknown.

        >>> StepImage("s1", height=800, full_size=Size(1000, 0)).dimensions
        SourceImage(width=1000.0, height=800.0)
        """
        variants = [v for v in (self.full_size, self.preview_size) if v is not None]
        width = _first_positive(self.width, *(v.width for v in variants))
        height = _first_positive(self.height, *(v.height for v in variants))
        if width is None or height is None:
            return None
        return SourceImage(width=width, height=height)

    @classmethod
    def from_dict(cls, data: Any) -> Optional[StepImage]:
        record = _as_mapping(data)
        if record is None:
            return None
        step_id = record.get("step_id")
        if not isinstance(step_id, str) or not step_id:
            return None
        variants = _as_mapping(record.get("variants")) or {}
        capture_t_s = record.get("capture_t_s")
        return cls(
            step_id=step_id,
            width=positive_or_none(record.get("width")),
            height=positive_or_none(record.get("height")),
            full_size=_variant_size_from_dict(variants.get("full")),
            preview_size=_variant_size_from_dict(variants.get("preview")),
            capture_t_s=float(capture_t_s) if is_finite_number(capture_t_s) else None,
            radar=RadarPoint.from_dict(record.get("radar")),
            render_hints=RegionOfInterestHint.from_dict(record.get("render_hints")),
        )


def _first_positive(*values: Any) -> Optional[float]:
    for value in values:
        if is_finite_positive(value):
            return float(value)
    return None


def _variant_size_from_dict(data: Any) -> Optional[Size]:
    record = _as_mapping(data)
    if record is None:
        return None
    width = positive_or_none(record.get("width"))
    height = positive_or_none(record.get("height"))
    if width is None and height is None:
        return None
    return Size(width or 0.0, height or 0.0)


@dataclass(frozen=True)
class CanvasTransformState:
    """Pan/zoom of one canvas, in viewport pixels."""

    scale: float = 1.0
    position_x: float = 0.0
    position_y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "scale": self.scale,
            "position_x": self.position_x,
            "position_y": self.position_y,
        }


@dataclass(frozen=True)
class CanvasSnapshot:
    """Live canvas state handed to the save path."""

    scale: float
    position_x: float
    position_y: float
    viewport_size: Size
    rendered_image_size: Size

    @property
    def transform(self) -> CanvasTransformState:
        return CanvasTransformState(self.scale, self.position_x, self.position_y)

    @property
    def is_savable(self) -> bool:
        return (
            self.viewport_size.is_valid
            and self.rendered_image_size.is_valid
            and is_finite_positive(self.scale)
            and is_finite_number(self.position_x)
            and is_finite_number(self.position_y)
        )


@dataclass(frozen=True)
class ContainerRect:
    """Bounding client rect of a DOM-like container."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class RedactionMask:
    """A rectangle to redact, in unit space.

    Attributes:
        id: Stable identifier within a step.
        kind: Effect to apply downstream (blur, solid, pixelate).
        rect: Region in unit space.
        strength: Effect strength in [0, 1].
        color: Fill color for solid masks (``#rrggbb``).
    """

    id: str
    kind: MaskKind
    rect: UnitRect
    strength: Optional[float] = None
    color: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "kind": self.kind, "rect": self.rect.to_dict()}
        if self.strength is not None:
            data["strength"] = self.strength
        if self.color is not None:
            data["color"] = self.color
        return data

    @classmethod
    def from_dict(cls, data: Any, min_size: float = 0.01) -> Optional[RedactionMask]:
        """Parse a persisted mask; None when malformed or smaller than min_size."""
        record = _as_mapping(data)
        if record is None:
            return None
        mask_id = record.get("id")
        kind = record.get("kind")
        if not isinstance(mask_id, str) or not mask_id.strip():
            return None
        if kind not in MASK_KINDS:
            logger.debug("Rejected mask %s with unknown kind %r", mask_id, kind)
            return None
        rect = UnitRect.from_dict(record.get("rect"))
        if rect is None or rect.width < min_size or rect.height < min_size:
            logger.debug("Rejected mask %s with rect %s", mask_id, record.get("rect"))
            return None
        strength = record.get("strength")
        return cls(
            id=mask_id.strip(),
            kind=kind,
            rect=rect,
            strength=clamp(float(strength), 0.0, 1.0) if is_finite_number(strength) else None,
            color=normalize_color(record.get("color")) if kind == "solid" else None,
        )


def parse_masks(data: Any, min_size: float = 0.01) -> list[RedactionMask]:
    """Parse a persisted mask list, dropping invalid entries and repeated ids."""
    if not isinstance(data, list):
        return []
    masks: list[RedactionMask] = []
    seen: set[str] = set()
    for item in data:
        mask = RedactionMask.from_dict(item, min_size=min_size)
        if mask is None or mask.id in seen:
            continue
        seen.add(mask.id)
        masks.append(mask)
    return masks
