"""Default zoom/pan framing derived from a region-of-interest hint.

The calculator turns an upstream hint (a bounding box, or a center plus a
recommended zoom) into a normalized focus transform: a zoom relative to
"fit" and a transform origin in image percentages. The hint box is grown by
a context margin on every side so the crop keeps some surrounding UI.

Examples:
    >>> from stepframe.focus.config import FocusConfig
    >>> from stepframe.focus.models import PixelRect, RegionOfInterestHint, Size, SourceImage
    >>> result = compute_focus_transform(
    ...     SourceImage(1000, 600),
    ...     Size(1000, 600),
    ...     RegionOfInterestHint(safe_crop_rect=PixelRect(400, 200, 100, 80)),
    ...     config=FocusConfig(context_margin_factor=0.25),
    ... )
    >>> result.zoom_scale, result.transform_origin_percent
    (4.0, Point(x=45.0, y=40.0))
"""

import logging
from typing import Optional

from .config import FocusConfig
from .models import (
    FocusTransformResult,
    PercentPoint,
    PixelRect,
    Point,
    RadarPoint,
    RegionOfInterestHint,
    Size,
    SourceImage,
)
from .radar import resolve_radar_percent
from .units import clamp, clamp_percent, is_finite_number, is_finite_positive

logger = logging.getLogger(__name__)

_ALMOST_EQUAL_EPSILON = 0.001


def _almost_equal(a: float, b: float) -> bool:
    return abs(a - b) <= _ALMOST_EQUAL_EPSILON


def clamp_rect_to_image(rect: PixelRect, image_width: float, image_height: float) -> PixelRect:
    """Fit rect inside the image, shifting it and shrinking only if larger.

    Examples:
        >>> clamp_rect_to_image(PixelRect(-10, 550, 100, 100), 1000, 600)
        PixelRect(x=0, y=500, width=100, height=100)
    """
    width = clamp(rect.width, 1, image_width)
    height = clamp(rect.height, 1, image_height)
    x = clamp(rect.x, 0, max(0, image_width - width))
    y = clamp(rect.y, 0, max(0, image_height - height))
    return PixelRect(x=x, y=y, width=width, height=height)


def expand_with_context_margin(
    rect: PixelRect,
    image_width: float,
    image_height: float,
    margin_factor: float,
) -> PixelRect:
    """Grow rect by margin_factor of its size on each side, kept in the image.

    Examples:
        >>> expand_with_context_margin(PixelRect(400, 200, 100, 80), 1000, 600, 0.25)
        PixelRect(x=375.0, y=180.0, width=150.0, height=120.0)
    """
    if not is_finite_positive(margin_factor):
        return rect
    center = rect.center
    width = rect.width * (1 + margin_factor * 2)
    height = rect.height * (1 + margin_factor * 2)
    return clamp_rect_to_image(
        PixelRect(
            x=center.x - width / 2,
            y=center.y - height / 2,
            width=width,
            height=height,
        ),
        image_width,
        image_height,
    )


def _radar_percent_in_crop(
    radar: Optional[RadarPoint], crop: PixelRect
) -> Optional[PercentPoint]:
    if radar is None or not radar.is_usable:
        return None
    x = (radar.x - crop.x) / crop.width
    y = (radar.y - crop.y) / crop.height
    if x < 0 or x > 1 or y < 0 or y > 1:
        # Markers outside the crop are suppressed rather than drawn off-frame
        return None
    return PercentPoint(left=x * 100, top=y * 100)


def _is_focused_rect(rect: PixelRect, image_width: float, image_height: float) -> bool:
    return not (
        _almost_equal(rect.x, 0)
        and _almost_equal(rect.y, 0)
        and _almost_equal(rect.width, image_width)
        and _almost_equal(rect.height, image_height)
    )


def _no_crop_result(
    image_width: float,
    image_height: float,
    radar: Optional[RadarPoint],
) -> FocusTransformResult:
    full = PixelRect(0, 0, image_width, image_height)
    radar_percent = resolve_radar_percent(radar, image_width, image_height)
    origin = (
        Point(radar_percent.left, radar_percent.top)
        if radar_percent is not None
        else Point(50.0, 50.0)
    )
    return FocusTransformResult(
        has_focus_crop=False,
        zoom_scale=1.0,
        transform_origin_percent=origin,
        radar_percent_in_crop=_radar_percent_in_crop(radar, full),
        crop_rect=full,
    )


def compute_focus_transform(
    image: Optional[SourceImage],
    viewport: Optional[Size] = None,
    hints: Optional[RegionOfInterestHint] = None,
    radar: Optional[RadarPoint] = None,
    config: Optional[FocusConfig] = None,
) -> FocusTransformResult:
    """Compute the default focus framing for a screenshot.

    Args:
        image: Source image dimensions.
        viewport: Nominal target size; the image size is used when missing
            or invalid.
        hints: Region-of-interest hint, or None.
        radar: Radar point, or None.
        config: Geometry limits (defaults used if None).

    Returns:
        FocusTransformResult. Without a usable hint (or with invalid image
        dimensions) the result has no crop, zoom 1 and an origin at the radar
        point or the image center.
    """
    cfg = config or FocusConfig()

    if image is None or not image.is_valid:
        logger.debug("Focus transform skipped: invalid image %s", image)
        return FocusTransformResult(
            has_focus_crop=False,
            zoom_scale=1.0,
            transform_origin_percent=Point(50.0, 50.0),
            radar_percent_in_crop=None,
            crop_rect=PixelRect(0, 0, 1, 1),
        )

    image_width, image_height = image.width, image.height
    box = hints.bounding_box(image_width, image_height) if hints is not None else None
    if box is None:
        return _no_crop_result(image_width, image_height, radar)

    viewport_width = image_width
    viewport_height = image_height
    if viewport is not None and viewport.is_valid:
        viewport_width, viewport_height = viewport.width, viewport.height

    crop = clamp_rect_to_image(box, image_width, image_height)
    crop = expand_with_context_margin(
        crop, image_width, image_height, cfg.context_margin_factor
    )

    zoom_scale = clamp(
        min(viewport_width / crop.width, viewport_height / crop.height),
        1.0,
        cfg.max_scale,
    )

    # An explicit focus center wins over the crop center so a saved manual
    # center survives edge shifting of the expanded box.
    center = hints.focus_center
    if center is not None and is_finite_number(center.x) and is_finite_number(center.y):
        origin_x, origin_y = center.x, center.y
    else:
        origin_x, origin_y = crop.center.x, crop.center.y

    has_focus_crop = _is_focused_rect(crop, image_width, image_height)
    result = FocusTransformResult(
        has_focus_crop=has_focus_crop,
        zoom_scale=zoom_scale if has_focus_crop else 1.0,
        transform_origin_percent=Point(
            clamp_percent(origin_x * 100 / image_width),
            clamp_percent(origin_y * 100 / image_height),
        ),
        radar_percent_in_crop=_radar_percent_in_crop(radar, crop),
        crop_rect=crop,
    )
    logger.debug(
        "Focus transform: crop=%s zoom=%.3f origin=%s",
        crop,
        result.zoom_scale,
        result.transform_origin_percent,
    )
    return result
