"""Manual focus/cursor overrides and focus-source selection for step screenshots.

An operator frames the screenshot on an interactive canvas and saves; the
canvas snapshot is converted into a unit-space ``ScreenshotOverridesV1`` that
later replaces the upstream hint (focus) and radar point (cursor).

``derive_step_focus`` picks framing inputs for a whole guide at once, so a
step without its own pointer data can borrow the click point of a nearby
click step.

Round-tripping:
    The calculator grows every focus box by the context margin, which divides
    the zoom it reports by ``1 + 2 * context_margin_factor``. Saved zooms are
    multiplied by the same factor, so reopening a saved override reproduces
    the saved canvas scale and re-saving without edits writes the same values.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from .canvas_controller import InteractiveCanvasController
from .config import FocusConfig
from .focus_transform import compute_focus_transform
from .models import (
    STEP_IMAGE_COORDINATE_SPACE,
    CanvasSnapshot,
    CursorOverride,
    FocusOverride,
    FocusTransformResult,
    GuideStep,
    PercentPoint,
    Point,
    RadarPoint,
    RegionOfInterestHint,
    ScreenshotOverridesV1,
    SourceImage,
    StepImage,
    UnitPoint,
)
from .units import (
    clamp,
    clamp_unit,
    is_finite_number,
    is_finite_positive,
    unit_to_percent,
    unit_to_pixels,
)

logger = logging.getLogger(__name__)

FOCUS_SOURCE_MANUAL = "manual_override"
FOCUS_SOURCE_HINTS = "render_hints"
FOCUS_SOURCE_RADAR = "radar"
FOCUS_SOURCE_CLAMPED_CLICK = "clamped_click"
FOCUS_SOURCE_CENTER = "center_fallback"
FOCUS_SOURCE_NONE = "none"

DEFAULT_CLICK_ZOOM = 1.85
DEFAULT_CLAMPED_ZOOM = 1.4
DEFAULT_CENTER_ZOOM = 1.25
DEFAULT_RADAR_CONFIDENCE = 0.86
CENTER_CONFIDENCE = 0.35
MIN_POINTER_HINT_CONFIDENCE = 0.7
MIN_POINTER_HINT_ZOOM = 1.22
POINTER_HINT_SOURCES = ("radar", "click_event")


def snapshot_to_focus_override(
    snapshot: CanvasSnapshot,
    config: Optional[FocusConfig] = None,
) -> Optional[FocusOverride]:
    """Convert a live canvas snapshot into a persistable focus override.

    Args:
        snapshot: Canvas state with viewport and rendered image sizes.
        config: Geometry limits (defaults used if None).

    Returns:
        FocusOverride, or None unless sizes and scale are finite and > 0.

    Examples:
        >>> from stepframe.focus.models import Size
        >>> snap = CanvasSnapshot(2.0, -400.0, -300.0, Size(800, 600), Size(800, 600))
        >>> snapshot_to_focus_override(snap, FocusConfig(context_margin_factor=0.25))
        FocusOverride(center_unit=UnitPoint(x=0.5, y=0.5), zoom_scale=3.0)
    """
    cfg = config or FocusConfig()
    if not snapshot.is_savable:
        logger.debug("Snapshot not savable: %s", snapshot)
        return None

    viewport = snapshot.viewport_size
    image = snapshot.rendered_image_size
    scale = snapshot.scale

    focus_x = (viewport.width / 2 - snapshot.position_x) / scale
    focus_y = (viewport.height / 2 - snapshot.position_y) / scale

    normalized_scale = max(1.0, scale)
    if normalized_scale > 1:
        compensated = normalized_scale * cfg.context_margin_compensation
    else:
        compensated = normalized_scale

    return FocusOverride(
        center_unit=UnitPoint(
            x=clamp_unit(focus_x / image.width),
            y=clamp_unit(focus_y / image.height),
        ),
        zoom_scale=min(cfg.max_saved_zoom_scale, compensated),
    )


@dataclass(frozen=True)
class EffectiveFocusInputs:
    """Hint and radar to feed the calculator after applying overrides.

    Attributes:
        hints: Effective region-of-interest hint.
        radar: Effective radar point.
        focus_source: One of the ``FOCUS_SOURCE_*`` labels.
        clamped_from_step_id: Step whose click point was borrowed, for
            ``clamped_click``.
    """

    hints: Optional[RegionOfInterestHint]
    radar: Optional[RadarPoint]
    focus_source: str
    clamped_from_step_id: Optional[str] = None


def _manual_focus_hints(focus: FocusOverride, image: SourceImage) -> RegionOfInterestHint:
    x, y = unit_to_pixels(focus.center_unit.x, focus.center_unit.y, image.width, image.height)
    return RegionOfInterestHint(
        focus_center=Point(x, y),
        recommended_zoom_scale=max(1.0, focus.zoom_scale),
        source=FOCUS_SOURCE_MANUAL,
        confidence=1.0,
    )


def _manual_cursor_radar(cursor: CursorOverride, image: SourceImage) -> RadarPoint:
    x, y = unit_to_pixels(cursor.point_unit.x, cursor.point_unit.y, image.width, image.height)
    return RadarPoint(
        x=x,
        y=y,
        coordinate_space=STEP_IMAGE_COORDINATE_SPACE,
        confidence=1.0,
        reason_code=FOCUS_SOURCE_MANUAL,
    )


def apply_overrides(
    image: SourceImage,
    overrides: Optional[ScreenshotOverridesV1],
    hints: Optional[RegionOfInterestHint] = None,
    radar: Optional[RadarPoint] = None,
) -> EffectiveFocusInputs:
    """Let persisted overrides supersede the upstream hint and radar point."""
    effective_hints = hints
    effective_radar = radar
    focus_source = FOCUS_SOURCE_HINTS if hints is not None else FOCUS_SOURCE_NONE

    if overrides is not None and image.is_valid:
        if overrides.focus is not None:
            effective_hints = _manual_focus_hints(overrides.focus, image)
            focus_source = FOCUS_SOURCE_MANUAL
        if overrides.cursor is not None:
            effective_radar = _manual_cursor_radar(overrides.cursor, image)

    return EffectiveFocusInputs(
        hints=effective_hints,
        radar=effective_radar,
        focus_source=focus_source,
    )


def is_strong_pointer_hint(step: GuideStep, hints: RegionOfInterestHint) -> bool:
    """Whether upstream hints are trustworthy enough to frame a step.

    For non-click steps any real zoom (above 1.05) or a crop box counts.
    Click steps need a pointer-derived source plus either confidence of at
    least 0.7 or a zoom of at least 1.22.

    >>> hint = RegionOfInterestHint(focus_center=Point(10, 10), recommended_zoom_scale=1.1,
    ...                             source="radar", confidence=0.5)
    >>> is_strong_pointer_hint(GuideStep("s1", kind="click_target"), hint)
    False
    >>> is_strong_pointer_hint(GuideStep("s2", kind="scroll"), hint)
    True
    """
    zoom = hints.recommended_zoom_scale if is_finite_positive(hints.recommended_zoom_scale) else 1.0
    if not step.is_click_like:
        return zoom > 1.05 or hints.safe_crop_rect is not None

    source = (hints.source or "").strip().lower()
    if source not in POINTER_HINT_SOURCES:
        return False
    confidence = hints.confidence
    if is_finite_number(confidence) and confidence >= MIN_POINTER_HINT_CONFIDENCE:
        return True
    return zoom >= MIN_POINTER_HINT_ZOOM


def _radar_in_image(radar: Optional[RadarPoint], image: SourceImage) -> bool:
    return (
        radar is not None
        and radar.is_usable
        and 0 <= radar.x <= image.width
        and 0 <= radar.y <= image.height
    )


def _effective_radar(step: GuideStep, step_image: StepImage, image: SourceImage) -> Optional[RadarPoint]:
    if step.overrides is not None and step.overrides.cursor is not None:
        return _manual_cursor_radar(step.overrides.cursor, image)
    return step_image.radar


@dataclass(frozen=True)
class _ClickCandidate:
    step_id: str
    index: int
    capture_t_s: Optional[float]
    center: Point
    confidence: float


def _collect_click_candidates(
    steps: Sequence[GuideStep], images: dict[str, StepImage]
) -> list[_ClickCandidate]:
    candidates = []
    for index, step in enumerate(steps):
        step_image = images.get(step.id)
        if step_image is None or not step.is_click_like:
            continue
        image = step_image.dimensions
        if image is None:
            continue
        radar = _effective_radar(step, step_image, image)
        if not _radar_in_image(radar, image):
            continue
        candidates.append(
            _ClickCandidate(
                step_id=step.id,
                index=index,
                capture_t_s=step_image.capture_t_s,
                center=Point(radar.x, radar.y),
                confidence=(
                    radar.confidence
                    if is_finite_number(radar.confidence)
                    else DEFAULT_RADAR_CONFIDENCE
                ),
            )
        )
    return candidates


def _nearest_candidate(
    candidates: list[_ClickCandidate],
    index: int,
    capture_t_s: Optional[float],
) -> Optional[_ClickCandidate]:
    """Closest click step by capture time when both sides have one, else by position."""
    if capture_t_s is not None:
        timed = [c for c in candidates if c.capture_t_s is not None]
        if timed:
            return min(timed, key=lambda c: (abs(c.capture_t_s - capture_t_s), c.index, c.step_id))
    if not candidates:
        return None
    return min(candidates, key=lambda c: (abs(c.index - index), c.index, c.step_id))


def derive_step_focus(
    steps: Sequence[GuideStep],
    step_images: Iterable[StepImage],
) -> dict[str, EffectiveFocusInputs]:
    """Pick the framing inputs for every step that has a screenshot.

    Sources are tried in order:

    1. the step's manual focus override;
    2. upstream render hints, when ``is_strong_pointer_hint`` accepts them;
    3. the step's own radar point (manual cursor first), zoomed to 1.85 for
       click steps and 1.4 otherwise;
    4. the click point of the nearest click step with a usable radar point,
       nearest by capture time and then by position in the guide;
    5. the image center at zoom 1.25.

    Steps whose screenshot has no known size keep their upstream hints.

    Args:
        steps: Guide steps in guide order.
        step_images: Screenshot records; matched to steps by ``step_id``.

    Returns:
        Mapping of step id to effective inputs for ``compute_focus_transform``.
    """
    images = {image.step_id: image for image in step_images}
    candidates = _collect_click_candidates(steps, images)

    derived: dict[str, EffectiveFocusInputs] = {}
    for index, step in enumerate(steps):
        step_image = images.get(step.id)
        if step_image is None:
            continue
        image = step_image.dimensions
        if image is None:
            logger.debug("Step %s has no image dimensions; keeping upstream hints", step.id)
            derived[step.id] = EffectiveFocusInputs(
                hints=step_image.render_hints,
                radar=step_image.radar,
                focus_source=(
                    FOCUS_SOURCE_HINTS if step_image.render_hints is not None else FOCUS_SOURCE_NONE
                ),
            )
            continue
        derived[step.id] = _derive_one(step, index, step_image, image, candidates)
    return derived


def _derive_one(
    step: GuideStep,
    index: int,
    step_image: StepImage,
    image: SourceImage,
    candidates: list[_ClickCandidate],
) -> EffectiveFocusInputs:
    radar = _effective_radar(step, step_image, image)
    click_like = step.is_click_like
    pointer_zoom = DEFAULT_CLICK_ZOOM if click_like else DEFAULT_CLAMPED_ZOOM

    if step.overrides is not None and step.overrides.focus is not None:
        return EffectiveFocusInputs(
            _manual_focus_hints(step.overrides.focus, image), radar, FOCUS_SOURCE_MANUAL
        )

    hints = step_image.render_hints
    if hints is not None and is_strong_pointer_hint(step, hints):
        return EffectiveFocusInputs(hints, radar, FOCUS_SOURCE_HINTS)

    if _radar_in_image(radar, image):
        radar_hints = RegionOfInterestHint(
            focus_center=Point(radar.x, radar.y),
            recommended_zoom_scale=pointer_zoom,
            source="radar",
            confidence=(
                radar.confidence if is_finite_number(radar.confidence) else DEFAULT_RADAR_CONFIDENCE
            ),
        )
        return EffectiveFocusInputs(radar_hints, radar, FOCUS_SOURCE_RADAR)

    others = [c for c in candidates if c.step_id != step.id]
    candidate = _nearest_candidate(others, index, step_image.capture_t_s)
    if candidate is not None:
        logger.debug("Step %s borrows the click point of step %s", step.id, candidate.step_id)
        clamped_hints = RegionOfInterestHint(
            focus_center=candidate.center,
            recommended_zoom_scale=pointer_zoom,
            source="click_event",
            confidence=clamp(candidate.confidence * 0.85, 0.1, 1.0),
        )
        return EffectiveFocusInputs(
            clamped_hints, radar, FOCUS_SOURCE_CLAMPED_CLICK, clamped_from_step_id=candidate.step_id
        )

    center_hints = RegionOfInterestHint(
        focus_center=Point(image.width / 2, image.height / 2),
        recommended_zoom_scale=DEFAULT_CENTER_ZOOM,
        source="click_event" if click_like else "center",
        confidence=CENTER_CONFIDENCE,
    )
    return EffectiveFocusInputs(center_hints, radar, FOCUS_SOURCE_CENTER)


class FocusOverrideEditor:
    """Editing session for one step's focus and cursor overrides.

    The editor frames the image with the viewport equal to the source size,
    so saved zooms are relative to the screenshot rather than to whatever
    canvas happened to display it.

    Usage:
        editor = FocusOverrideEditor(image, render_hints, auto_cursor, on_save=store)
        canvas = editor.attach_canvas()
        canvas.set_viewport_size(1200, 700)
        canvas.set_rendered_image_size(1200, 675)
        editor.open(persisted_overrides)
        ...
        editor.save()
    """

    def __init__(
        self,
        image: SourceImage,
        render_hints: Optional[RegionOfInterestHint] = None,
        auto_cursor: Optional[UnitPoint] = None,
        config: Optional[FocusConfig] = None,
        on_save: Optional[Callable[[ScreenshotOverridesV1], None]] = None,
        on_reset: Optional[Callable[[], None]] = None,
    ):
        self._image = image
        self._render_hints = render_hints
        self._auto_cursor = auto_cursor
        self._config = config or FocusConfig()
        self._on_save = on_save
        self._on_reset = on_reset

        self._initial_overrides: Optional[ScreenshotOverridesV1] = None
        self._cursor_point: Optional[UnitPoint] = auto_cursor
        self._cursor_touched = False
        self._capture_click_point = False
        self._is_open = False
        self._canvas: Optional[InteractiveCanvasController] = None

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def cursor_point(self) -> Optional[UnitPoint]:
        return self._cursor_point

    @property
    def cursor_touched(self) -> bool:
        return self._cursor_touched

    @property
    def capture_click_point(self) -> bool:
        return self._capture_click_point

    @property
    def cursor_percent(self) -> Optional[PercentPoint]:
        if self._cursor_point is None:
            return None
        return PercentPoint(
            left=unit_to_percent(self._cursor_point.x),
            top=unit_to_percent(self._cursor_point.y),
        )

    @property
    def focus_transform(self) -> FocusTransformResult:
        effective = apply_overrides(self._image, self._initial_overrides, self._render_hints)
        return compute_focus_transform(
            self._image,
            self._image.size,
            effective.hints,
            None,
            self._config,
        )

    @property
    def canvas(self) -> Optional[InteractiveCanvasController]:
        return self._canvas

    def attach_canvas(
        self, canvas: Optional[InteractiveCanvasController] = None
    ) -> InteractiveCanvasController:
        """Wire a canvas to this editor, creating one when none is given."""
        if canvas is None:
            canvas = InteractiveCanvasController(
                self.focus_transform,
                self._image.size,
                config=self._config,
            )
        canvas.on_capture_click_point = self.capture_point
        canvas.capture_click_point = self._capture_click_point
        self._canvas = canvas
        return canvas

    def open(self, initial_overrides: Optional[ScreenshotOverridesV1] = None) -> None:
        """Start a session from the persisted overrides (if any)."""
        self._initial_overrides = initial_overrides
        override_point = (
            initial_overrides.cursor.point_unit
            if initial_overrides is not None and initial_overrides.cursor is not None
            else None
        )
        self._cursor_point = override_point or self._auto_cursor
        self._cursor_touched = override_point is not None
        self._set_capture(False)
        self._is_open = True
        if self._canvas is not None:
            self._canvas.set_image(self.focus_transform, self._image.size)
            self._canvas.activate()

    def close(self) -> None:
        self._is_open = False
        self._set_capture(False)
        if self._canvas is not None:
            self._canvas.deactivate()

    def _set_capture(self, enabled: bool) -> None:
        self._capture_click_point = enabled
        if self._canvas is not None:
            self._canvas.capture_click_point = enabled

    def toggle_capture_click_point(self) -> bool:
        self._set_capture(not self._capture_click_point)
        return self._capture_click_point

    def capture_point(self, point: UnitPoint) -> None:
        """Record an operator-chosen cursor point."""
        self._cursor_touched = True
        self._cursor_point = UnitPoint(clamp_unit(point.x), clamp_unit(point.y))
        self._set_capture(False)

    def revert_cursor(self) -> None:
        """Drop the custom point and fall back to the automatic one."""
        self._cursor_touched = False
        self._cursor_point = self._auto_cursor
        self._set_capture(False)

    def build_overrides(self, snapshot: CanvasSnapshot) -> Optional[ScreenshotOverridesV1]:
        focus = snapshot_to_focus_override(snapshot, self._config)
        if focus is None:
            return None
        cursor = (
            CursorOverride(point_unit=self._cursor_point)
            if self._cursor_touched and self._cursor_point is not None
            else None
        )
        return ScreenshotOverridesV1(focus=focus, cursor=cursor)

    def save(self, snapshot: Optional[CanvasSnapshot] = None) -> Optional[ScreenshotOverridesV1]:
        """Persist the current framing; a no-op when the snapshot is unusable."""
        if snapshot is None:
            if self._canvas is None:
                logger.debug("Save ignored: no snapshot and no canvas attached")
                return None
            snapshot = self._canvas.snapshot()

        overrides = self.build_overrides(snapshot)
        if overrides is None:
            logger.debug("Save ignored: snapshot %s", snapshot)
            return None

        logger.info(
            "Saving focus override: center=%s zoom=%.3f cursor=%s",
            overrides.focus.center_unit,
            overrides.focus.zoom_scale,
            overrides.cursor.point_unit if overrides.cursor else None,
        )
        if self._on_save is not None:
            self._on_save(overrides)
        self.close()
        return overrides

    def reset_to_auto(self) -> None:
        """Discard persisted overrides and return to the automatic framing."""
        logger.info("Resetting screenshot overrides to automatic framing")
        if self._on_reset is not None:
            self._on_reset()
        self.close()
