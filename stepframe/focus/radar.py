"""Radar point to overlay percentage conversion."""

import logging
from typing import Optional

from .models import PercentPoint, RadarPoint
from .units import is_finite_positive, pixel_to_percent

logger = logging.getLogger(__name__)


def resolve_radar_percent(
    radar: Optional[RadarPoint],
    width: float,
    height: float,
) -> Optional[PercentPoint]:
    """Convert a radar point into clamped image percentages.

    Args:
        radar: Radar point in source pixels, or None.
        width: Source image width in pixels.
        height: Source image height in pixels.

    Returns:
        PercentPoint in [0, 100]^2, or None when the point is missing, tagged
        with a foreign coordinate space, non-finite, or the dimensions are
        not finite and positive.

    Examples:
        >>> radar = RadarPoint(500, 30, "step_image_pixels_v1")
        >>> resolve_radar_percent(radar, 100, 60)
        PercentPoint(left=100.0, top=50.0)
    """
    if radar is None or not radar.is_usable:
        return None
    if not is_finite_positive(width) or not is_finite_positive(height):
        logger.debug("Radar ignored: invalid dimensions %sx%s", width, height)
        return None
    return PercentPoint(
        left=pixel_to_percent(radar.x, width),
        top=pixel_to_percent(radar.y, height),
    )
