"""Mapping between a normalized focus transform and concrete canvas pixels.

The canvas draws the rendered image at ``position + point * scale``; the
helpers here produce that transform for a focus point and invert it for
pointer input.

Examples:
    Center the focus point in a 800x600 viewport:
        >>> from stepframe.focus.models import FocusTransformResult, PixelRect, Point
        >>> focus = FocusTransformResult(
        ...     has_focus_crop=True, zoom_scale=2.0,
        ...     transform_origin_percent=Point(25.0, 50.0),
        ...     radar_percent_in_crop=None, crop_rect=PixelRect(0, 0, 400, 300),
        ... )
        >>> compute_canvas_focus_transform(focus, 800, 600, 800, 600, 1.0, 4.0)
        CanvasTransformState(scale=2.0, position_x=0.0, position_y=-300.0)

    Non-finite scales fall back to the minimum:
        >>> clamp_canvas_scale(float("nan"), 1.0, 4.0)
        1.0
"""

from __future__ import annotations

from .models import CanvasTransformState, FocusTransformResult, Point
from .units import clamp, is_finite_number


def clamp_canvas_scale(scale: float, min_scale: float, max_scale: float) -> float:
    """Clamp scale into [min_scale, max_scale]; non-finite input yields min_scale."""
    if not is_finite_number(scale):
        return min_scale
    return clamp(scale, min_scale, max_scale)


def compute_canvas_focus_transform(
    focus_transform: FocusTransformResult,
    viewport_width: float,
    viewport_height: float,
    image_width: float,
    image_height: float,
    min_scale: float,
    max_scale: float,
) -> CanvasTransformState:
    """Canvas transform that centers the focus origin in the viewport.

    Args:
        focus_transform: Normalized framing from the calculator.
        viewport_width: Canvas container width in pixels.
        viewport_height: Canvas container height in pixels.
        image_width: Width of the image as laid out on the canvas.
        image_height: Height of the image as laid out on the canvas.
        min_scale: Lower zoom bound.
        max_scale: Upper zoom bound.

    Returns:
        CanvasTransformState with the clamped scale and pan offsets.
    """
    scale = clamp_canvas_scale(focus_transform.zoom_scale, min_scale, max_scale)
    origin = focus_transform.transform_origin_percent
    focus_x = origin.x / 100 * image_width
    focus_y = origin.y / 100 * image_height
    return CanvasTransformState(
        scale=scale,
        position_x=viewport_width / 2 - focus_x * scale,
        position_y=viewport_height / 2 - focus_y * scale,
    )


def image_to_viewport(point: Point, transform: CanvasTransformState) -> Point:
    """Project an image-space point (rendered pixels) into the viewport."""
    return Point(
        x=point.x * transform.scale + transform.position_x,
        y=point.y * transform.scale + transform.position_y,
    )


def viewport_to_image(point: Point, transform: CanvasTransformState) -> Point:
    """Inverse of image_to_viewport.

    The transform scale must be finite and non-zero; callers check the
    canvas state before inverting.
    """
    return Point(
        x=(point.x - transform.position_x) / transform.scale,
        y=(point.y - transform.position_y) / transform.scale,
    )
