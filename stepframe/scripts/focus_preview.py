#!/usr/bin/env python3
"""
focus_preview.py - Inspect the default framing of a step screenshot

Computes the focus transform a viewer would open a screenshot with, taking
persisted operator overrides into account, and optionally writes a preview
PNG with the focus crop, redaction masks and cursor marker outlined.

Usage:
    python focus_preview.py <image> [--hints hints.json] [--radar radar.json]
                            [--overrides overrides.json] [--masks masks.json]
                            [--kind click_target] [--viewport 1280x720]
                            [--preview out.png] [--json]

Options:
    --hints        Region-of-interest hint JSON (render_hints payload)
    --radar        Radar point JSON ({x, y, coordinate_space})
    --overrides    Persisted screenshot overrides JSON
    --masks        Persisted redaction mask list JSON
    --kind         Step kind; click steps need stronger hints and zoom closer
    --viewport     Target viewport WxH (default: image size)
    --margin       Context margin factor (default: STEPFRAME_CONTEXT_MARGIN or 0.04)
    --preview      Write an annotated preview PNG to this path
    --json         Output result as JSON
    --verbose      Enable debug logging

Exit codes:
    0 on success, 2 on unreadable input.

Dependencies:
    - PIL/Pillow
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from stepframe.focus.canvas_transform import compute_canvas_focus_transform
from stepframe.focus.config import FocusConfig
from stepframe.focus.focus_override import EffectiveFocusInputs, derive_step_focus
from stepframe.focus.focus_transform import compute_focus_transform
from stepframe.focus.models import (
    FocusTransformResult,
    GuideStep,
    RadarPoint,
    RegionOfInterestHint,
    ScreenshotOverridesV1,
    Size,
    SourceImage,
    StepImage,
    parse_masks,
)
from stepframe.focus.overlay_renderer import render_focus_preview
from stepframe.focus.radar import resolve_radar_percent

logger = logging.getLogger(__name__)


def load_json(path: Optional[Path]) -> Any:
    """Load a JSON file; None when no path is given."""
    if path is None:
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def parse_viewport(value: Optional[str]) -> Optional[Size]:
    """Parse ``WxH`` into a Size.

    Raises:
        ValueError: If the value is not two positive numbers separated by x.
    """
    if not value:
        return None
    width_str, height_str = value.lower().split("x")
    size = Size(float(width_str), float(height_str))
    if not size.is_valid:
        raise ValueError(f"Viewport must be positive, got {value}")
    return size


def build_report(
    source: SourceImage,
    viewport: Optional[Size],
    effective: EffectiveFocusInputs,
    focus: FocusTransformResult,
    config: FocusConfig,
) -> dict[str, Any]:
    """Collect the effective framing into a JSON-ready dict."""
    target = viewport if viewport is not None else source.size
    canvas = compute_canvas_focus_transform(
        focus,
        target.width,
        target.height,
        source.width,
        source.height,
        config.min_scale,
        config.max_scale,
    )
    radar_percent = resolve_radar_percent(effective.radar, source.width, source.height)
    return {
        "image": source.to_dict(),
        "viewport": target.to_dict(),
        "focus_source": effective.focus_source,
        "focus": focus.to_dict(),
        "canvas": canvas.to_dict(),
        "radar_percent": radar_percent.to_dict() if radar_percent else None,
        "effective_radar": effective.radar.to_dict() if effective.radar else None,
    }


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Compute the default focus framing of a step screenshot"
    )
    parser.add_argument("image", type=Path, help="Screenshot path")
    parser.add_argument("--hints", type=Path, help="Region-of-interest hint JSON")
    parser.add_argument("--radar", type=Path, help="Radar point JSON")
    parser.add_argument("--overrides", type=Path, help="Screenshot overrides JSON")
    parser.add_argument("--masks", type=Path, help="Redaction mask list JSON")
    parser.add_argument("--kind", type=str, help="Step kind (e.g. click_target)")
    parser.add_argument("--viewport", type=str, help="Target viewport WxH")
    parser.add_argument("--margin", type=float, help="Context margin factor")
    parser.add_argument("--preview", type=Path, help="Write annotated preview PNG")
    parser.add_argument("--json", action="store_true", help="Output result as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.image.exists():
        print(f"Error: Image not found: {args.image}", file=sys.stderr)
        sys.exit(2)

    try:
        config = FocusConfig.from_env()
        if args.margin is not None:
            config.context_margin_factor = args.margin
        config.validate()
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        viewport = parse_viewport(args.viewport)
    except ValueError:
        print("Error: --viewport must be in format WxH (e.g., 1280x720)", file=sys.stderr)
        sys.exit(2)

    try:
        source = SourceImage.from_image(args.image)
        hints = RegionOfInterestHint.from_dict(load_json(args.hints))
        radar = RadarPoint.from_dict(load_json(args.radar))
        overrides = ScreenshotOverridesV1.from_dict(load_json(args.overrides))
        masks = parse_masks(load_json(args.masks), min_size=config.min_mask_size)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        print(f"Error: Could not read input: {e}", file=sys.stderr)
        sys.exit(2)

    step = GuideStep(id=args.image.stem, kind=args.kind, overrides=overrides)
    step_image = StepImage(
        step_id=step.id,
        width=source.width,
        height=source.height,
        radar=radar,
        render_hints=hints,
    )
    effective = derive_step_focus([step], [step_image])[step.id]
    focus = compute_focus_transform(source, viewport, effective.hints, effective.radar, config)
    report = build_report(source, viewport, effective, focus, config)
    report["masks"] = [mask.to_dict() for mask in masks]

    if args.preview:
        with Image.open(args.image) as img:
            png = render_focus_preview(img, source, focus, masks, effective.radar)
        with open(args.preview, "wb") as f:
            f.write(png)
        logger.info("Preview written to %s", args.preview)
        report["preview"] = str(args.preview)

    if args.json:
        print(json.dumps(report))
    else:
        summary = report["focus"]
        origin = summary["transform_origin_percent"]
        print(f"Image: {int(source.width)}x{int(source.height)}")
        print(f"Focus source: {report['focus_source']}")
        print(f"Focus crop: {summary['has_focus_crop']}")
        print(f"Zoom: {summary['zoom_scale']:.3f}")
        print(f"Origin: {origin['x']:.2f}%, {origin['y']:.2f}%")
        print(f"Masks: {len(masks)}")
        if args.preview:
            print(f"Preview: {args.preview}")


if __name__ == "__main__":
    main()
