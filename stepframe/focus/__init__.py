from .config import FocusConfig, OverlayStyle
from .models import (
    STEP_IMAGE_COORDINATE_SPACE,
    MASK_KINDS,
    Size,
    SourceImage,
    Point,
    UnitPoint,
    PercentPoint,
    PixelRect,
    UnitRect,
    RadarPoint,
    RegionOfInterestHint,
    FocusTransformResult,
    FocusOverride,
    CursorOverride,
    ScreenshotOverridesV1,
    CanvasTransformState,
    CanvasSnapshot,
    ContainerRect,
    RedactionMask,
    GuideStep,
    StepImage,
    parse_masks,
)
from .radar import resolve_radar_percent
from .focus_transform import compute_focus_transform
from .canvas_transform import (
    clamp_canvas_scale,
    compute_canvas_focus_transform,
    image_to_viewport,
    viewport_to_image,
)
from .canvas_controller import InteractiveCanvasController
from .focus_override import (
    FocusOverrideEditor,
    EffectiveFocusInputs,
    apply_overrides,
    derive_step_focus,
    is_strong_pointer_hint,
    snapshot_to_focus_override,
)
from .redaction import RedactionMaskEditor, normalize_rect, sort_masks_for_render
from .overlay_renderer import render_focus_preview

__all__ = [
    "FocusConfig",
    "OverlayStyle",
    "STEP_IMAGE_COORDINATE_SPACE",
    "MASK_KINDS",
    "Size",
    "SourceImage",
    "Point",
    "UnitPoint",
    "PercentPoint",
    "PixelRect",
    "UnitRect",
    "RadarPoint",
    "RegionOfInterestHint",
    "FocusTransformResult",
    "FocusOverride",
    "CursorOverride",
    "ScreenshotOverridesV1",
    "CanvasTransformState",
    "CanvasSnapshot",
    "ContainerRect",
    "RedactionMask",
    "GuideStep",
    "StepImage",
    "parse_masks",
    "resolve_radar_percent",
    "compute_focus_transform",
    "clamp_canvas_scale",
    "compute_canvas_focus_transform",
    "image_to_viewport",
    "viewport_to_image",
    "InteractiveCanvasController",
    "FocusOverrideEditor",
    "EffectiveFocusInputs",
    "apply_overrides",
    "derive_step_focus",
    "is_strong_pointer_hint",
    "snapshot_to_focus_override",
    "RedactionMaskEditor",
    "normalize_rect",
    "sort_masks_for_render",
    "render_focus_preview",
]
