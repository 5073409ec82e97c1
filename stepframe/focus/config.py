"""Configuration for the focus/redaction geometry engine.

Numeric limits that the calculator, canvas controller and editors share are
collected here so callers can pass them explicitly and tests stay
deterministic.
"""

import math
import os
from dataclasses import dataclass, field


@dataclass
class FocusConfig:
    """Geometry limits and interaction steps.

    Attributes:
        min_scale: Smallest canvas zoom (1.0 = fit).
        max_scale: Largest canvas zoom and calculator zoom cap.
        context_margin_factor: Padding added on each side of a focus box,
            as a fraction of the box size.
        max_saved_zoom_scale: Cap on the zoom written into a saved override.
        pan_step_px: Arrow-key pan distance in viewport pixels.
        zoom_step: Relative zoom change per wheel notch.
        button_zoom_step: Relative zoom change for +/- buttons and keys.
        animation_ms: Transition time for animated transforms.
        min_mask_size: Minimum unit width/height for a redaction mask.
        default_mask_strength: Strength assigned to newly drawn masks.
        default_solid_color: Fill color assigned to new solid masks.
    """

    min_scale: float = 1.0
    max_scale: float = 4.0
    context_margin_factor: float = 0.04
    max_saved_zoom_scale: float = 4.0
    pan_step_px: float = 40.0
    zoom_step: float = 0.12
    button_zoom_step: float = 0.5
    animation_ms: int = 180
    min_mask_size: float = 0.01
    default_mask_strength: float = 0.7
    default_solid_color: str = "#000000"

    @property
    def context_margin_compensation(self) -> float:
        """Zoom multiplier that undoes the calculator's context margin.

        The calculator grows a focus box by ``1 + 2 * factor`` in both
        dimensions, which divides the resulting zoom by the same amount.
        """
        return 1.0 + 2.0 * self.context_margin_factor

    def validate(self) -> None:
        """Validate numeric limits.

        Raises:
            ValueError: If a limit is non-finite or out of order.
        """
        for name in (
            "min_scale",
            "max_scale",
            "context_margin_factor",
            "max_saved_zoom_scale",
            "pan_step_px",
            "zoom_step",
            "button_zoom_step",
            "min_mask_size",
            "default_mask_strength",
        ):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")

        if self.min_scale <= 0:
            raise ValueError(f"min_scale must be > 0, got {self.min_scale}")
        if self.max_scale < self.min_scale:
            raise ValueError(
                f"max_scale ({self.max_scale}) must be >= min_scale ({self.min_scale})"
            )
        if self.context_margin_factor < 0:
            raise ValueError(
                f"context_margin_factor must be >= 0, got {self.context_margin_factor}"
            )
        if self.max_saved_zoom_scale < 1:
            raise ValueError(
                f"max_saved_zoom_scale must be >= 1, got {self.max_saved_zoom_scale}"
            )
        if not (0.0 < self.min_mask_size < 1.0):
            raise ValueError(
                f"min_mask_size must be in (0, 1), got {self.min_mask_size}"
            )
        if not (0.0 <= self.default_mask_strength <= 1.0):
            raise ValueError(
                f"default_mask_strength must be in [0, 1], got {self.default_mask_strength}"
            )
        if self.animation_ms < 0:
            raise ValueError(f"animation_ms must be >= 0, got {self.animation_ms}")

    @classmethod
    def from_env(cls) -> "FocusConfig":
        """Load configuration from environment variables with defaults."""
        return cls(
            min_scale=float(os.getenv("STEPFRAME_MIN_SCALE", "1.0")),
            max_scale=float(os.getenv("STEPFRAME_MAX_SCALE", "4.0")),
            context_margin_factor=float(os.getenv("STEPFRAME_CONTEXT_MARGIN", "0.04")),
            max_saved_zoom_scale=float(os.getenv("STEPFRAME_MAX_SAVED_ZOOM", "4.0")),
            pan_step_px=float(os.getenv("STEPFRAME_PAN_STEP_PX", "40")),
            zoom_step=float(os.getenv("STEPFRAME_ZOOM_STEP", "0.12")),
            button_zoom_step=float(os.getenv("STEPFRAME_BUTTON_ZOOM_STEP", "0.5")),
            animation_ms=int(os.getenv("STEPFRAME_ANIMATION_MS", "180")),
            min_mask_size=float(os.getenv("STEPFRAME_MIN_MASK_SIZE", "0.01")),
            default_mask_strength=float(os.getenv("STEPFRAME_MASK_STRENGTH", "0.7")),
            default_solid_color=os.getenv("STEPFRAME_SOLID_COLOR", "#000000"),
        )


@dataclass
class OverlayStyle:
    """Colors and widths for the preview overlay.

    Attributes:
        crop_color: RGBA outline for the focus crop box.
        crop_width: Crop box line width in pixels.
        marker_color: RGBA fill for the cursor/radar marker.
        marker_inner_radius: Radius of the solid marker dot.
        marker_outer_radius: Radius of the translucent halo.
        mask_width: Mask outline width in pixels.
        kind_styles: Per mask kind outline/fill overrides.
    """

    crop_color: tuple[int, int, int, int] = (255, 87, 51, 200)
    crop_width: int = 3
    marker_color: tuple[int, int, int, int] = (255, 87, 51, 230)
    marker_inner_radius: int = 6
    marker_outer_radius: int = 12
    mask_width: int = 2

    # Example: {"blur": {"outline": (8, 145, 178, 255)}}
    kind_styles: dict[str, dict] = field(default_factory=dict)

    def get_style_for_kind(self, kind: str) -> dict:
        """Get effective outline/fill for a mask kind.

        Args:
            kind: Mask kind (blur, solid, pixelate).

        Returns:
            Dict with ``outline``, ``fill`` and ``width`` keys.
        """
        defaults = {
            "blur": {"outline": (8, 145, 178, 255), "fill": (6, 182, 212, 51)},
            "solid": {"outline": (15, 23, 42, 255), "fill": (15, 23, 42, 166)},
            "pixelate": {"outline": (124, 58, 237, 255), "fill": (139, 92, 246, 51)},
        }
        style = {"width": self.mask_width, **defaults.get(kind, defaults["blur"])}
        return {**style, **self.kind_styles.get(kind, {})}
