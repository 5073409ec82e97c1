"""Pillow preview of focus crops, redaction masks and cursor markers.

Draws outlines on a copy of the screenshot so the stored geometry can be
inspected outside the editor. Mask regions are outlined and tinted, never
blurred or pixelated.
"""

import io
import logging
from typing import Optional, Union

from PIL import Image, ImageDraw

from .config import OverlayStyle
from .models import (
    FocusTransformResult,
    PixelRect,
    RadarPoint,
    RedactionMask,
    SourceImage,
)
from .radar import resolve_radar_percent
from .redaction import sort_masks_for_render

logger = logging.getLogger(__name__)


def draw_crop_box(
    image: Image.Image,
    crop: PixelRect,
    color: tuple[int, int, int, int],
    width: int,
    source_scale: tuple[float, float] = (1.0, 1.0),
) -> Image.Image:
    """Draw the focus crop outline.

    Args:
        image: PIL Image to draw on (modified in place).
        crop: Crop box in source pixels.
        color: RGBA outline color.
        width: Line width in pixels.
        source_scale: (x, y) factors from source pixels to image pixels.

    Returns:
        Modified image (same object as input).
    """
    draw = ImageDraw.Draw(image, "RGBA")
    sx, sy = source_scale
    x0 = int(crop.x * sx)
    y0 = int(crop.y * sy)
    x1 = int((crop.x + crop.width) * sx)
    y1 = int((crop.y + crop.height) * sy)
    draw.rectangle([(x0, y0), (x1, y1)], outline=color, width=width)
    return image


def draw_mask_outline(image: Image.Image, mask: RedactionMask, style: dict) -> Image.Image:
    """Outline and tint a unit-space mask rectangle."""
    draw = ImageDraw.Draw(image, "RGBA")
    img_w, img_h = image.size
    rect = mask.rect
    x0 = int(rect.x * img_w)
    y0 = int(rect.y * img_h)
    x1 = int((rect.x + rect.width) * img_w)
    y1 = int((rect.y + rect.height) * img_h)
    draw.rectangle(
        [(x0, y0), (x1, y1)],
        fill=style["fill"],
        outline=style["outline"],
        width=style["width"],
    )
    return image


def draw_radar_marker(
    image: Image.Image,
    center: tuple[int, int],
    color: tuple[int, int, int, int],
    inner_radius: int,
    outer_radius: int,
) -> Image.Image:
    """Draw a dot with a translucent halo at center (image pixels)."""
    draw = ImageDraw.Draw(image, "RGBA")
    cx, cy = center
    halo = (color[0], color[1], color[2], max(0, color[3] // 4))
    draw.ellipse(
        [(cx - outer_radius, cy - outer_radius), (cx + outer_radius, cy + outer_radius)],
        fill=halo,
    )
    draw.ellipse(
        [(cx - inner_radius, cy - inner_radius), (cx + inner_radius, cy + inner_radius)],
        fill=color,
    )
    return image


def render_focus_preview(
    image: Union[Image.Image, bytes],
    source: Optional[SourceImage] = None,
    focus: Optional[FocusTransformResult] = None,
    masks: Optional[list[RedactionMask]] = None,
    radar: Optional[RadarPoint] = None,
    style: Optional[OverlayStyle] = None,
) -> bytes:
    """Render crop, masks and marker on a copy of the screenshot.

    Args:
        image: PIL Image or encoded bytes (may be a resized variant).
        source: Source dimensions the crop and radar refer to; defaults to
            the image size.
        focus: Focus transform whose crop box is outlined when it has a crop.
        masks: Redaction masks, drawn largest first.
        radar: Cursor/radar point in source pixels.
        style: Overlay colors and widths.

    Returns:
        Annotated image as PNG bytes.
    """
    if isinstance(image, bytes):
        image = Image.open(io.BytesIO(image))
    canvas = image.convert("RGBA")
    cfg = style or OverlayStyle()

    img_w, img_h = canvas.size
    src = source if source is not None and source.is_valid else SourceImage(img_w, img_h)
    source_scale = (img_w / src.width, img_h / src.height)

    for mask in sort_masks_for_render(masks or []):
        draw_mask_outline(canvas, mask, cfg.get_style_for_kind(mask.kind))

    if focus is not None and focus.has_focus_crop:
        draw_crop_box(canvas, focus.crop_rect, cfg.crop_color, cfg.crop_width, source_scale)

    percent = resolve_radar_percent(radar, src.width, src.height)
    if percent is not None:
        center = (int(percent.left / 100 * img_w), int(percent.top / 100 * img_h))
        draw_radar_marker(
            canvas,
            center,
            cfg.marker_color,
            cfg.marker_inner_radius,
            cfg.marker_outer_radius,
        )
    elif radar is not None:
        logger.debug("Radar marker skipped: %s", radar)

    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    return buf.getvalue()
