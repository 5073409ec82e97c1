"""Numeric guards and conversions between coordinate spaces.

Spaces used throughout the package:
- source pixels: pixel coordinates of the captured screenshot
- rendered pixels: the screenshot as laid out on screen, before zoom
- viewport pixels: coordinates inside the canvas container
- unit space: [0, 1] relative to image width/height
- percent: [0, 100] relative to image width/height

Examples:
    >>> clamp(5, 0, 4)
    4
    >>> pixel_to_percent(500, 100)
    100.0
    >>> unit_to_pixels(0.25, 0.5, 800, 600)
    (200.0, 300.0)
"""

from __future__ import annotations

import math
from typing import Any, Optional, Tuple


def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_finite_positive(value: Any) -> bool:
    """True for real, finite numbers strictly greater than zero."""
    return is_finite_number(value) and value > 0


def positive_or_none(value: Any) -> Optional[float]:
    """Return value as float when finite and > 0, else None."""
    return float(value) if is_finite_positive(value) else None


def clamp(value: float, min_value: float, max_value: float) -> float:
    """Clamp value into [min_value, max_value]."""
    return min(max(value, min_value), max_value)


def clamp_unit(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def clamp_percent(value: float) -> float:
    return clamp(value, 0.0, 100.0)


def pixel_to_percent(value: float, extent: float) -> float:
    """Convert a pixel coordinate to a clamped percentage of extent."""
    return clamp_percent(value * 100.0 / extent)


def unit_to_percent(value: float) -> float:
    return clamp_percent(value * 100.0)


def unit_to_pixels(
    x: float, y: float, width: float, height: float
) -> Tuple[float, float]:
    """Convert a unit-space point to pixels, clamping the unit point first."""
    return (clamp_unit(x) * width, clamp_unit(y) * height)


def pixels_to_unit(
    x: float, y: float, width: float, height: float
) -> Tuple[float, float]:
    """Convert a pixel point to a clamped unit-space point."""
    return (clamp_unit(x / width), clamp_unit(y / height))
