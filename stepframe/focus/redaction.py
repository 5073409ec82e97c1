"""Freehand rectangle authoring for screenshot redaction masks.

Masks are drawn in unit space over the displayed screenshot, so they stay
valid for every render size. Only where an effect applies is recorded here;
blurring or pixelating pixels happens downstream.
"""

import logging
import uuid
from typing import Callable, Optional

from .config import FocusConfig
from .models import (
    MASK_KINDS,
    ContainerRect,
    RedactionMask,
    UnitPoint,
    UnitRect,
    normalize_color,
)
from .units import clamp_unit, is_finite_number, is_finite_positive

logger = logging.getLogger(__name__)

MaskListListener = Callable[[list[RedactionMask]], None]


def new_mask_id() -> str:
    return f"mask_{uuid.uuid4().hex[:8]}"


def normalize_rect(start: UnitPoint, current: UnitPoint) -> UnitRect:
    """Rectangle spanned by two corners, independent of drag direction.

    Examples:
        >>> normalize_rect(UnitPoint(0.75, 0.5), UnitPoint(0.25, 0.125))
        UnitRect(x=0.25, y=0.125, width=0.5, height=0.375)
    """
    left = clamp_unit(min(start.x, current.x))
    top = clamp_unit(min(start.y, current.y))
    right = clamp_unit(max(start.x, current.x))
    bottom = clamp_unit(max(start.y, current.y))
    return UnitRect(x=left, y=top, width=right - left, height=bottom - top)


def sort_masks_for_render(masks: list[RedactionMask]) -> list[RedactionMask]:
    """Largest area first, so smaller masks draw on top of larger ones."""
    return sorted(masks, key=lambda mask: mask.rect.area, reverse=True)


class RedactionMaskEditor:
    """Authoring state for one screenshot's redaction masks.

    Every change to the mask list is reported through ``on_change`` with the
    full new list, ready to persist.
    """

    def __init__(
        self,
        masks: Optional[list[RedactionMask]] = None,
        config: Optional[FocusConfig] = None,
        on_change: Optional[MaskListListener] = None,
        id_factory: Callable[[], str] = new_mask_id,
        disabled: bool = False,
    ):
        self._config = config or FocusConfig()
        self._masks: list[RedactionMask] = list(masks or [])
        self._on_change = on_change
        self._id_factory = id_factory
        self._kind = "blur"
        self._start: Optional[UnitPoint] = None
        self._draft: Optional[UnitRect] = None
        self.disabled = disabled

    @property
    def masks(self) -> list[RedactionMask]:
        return list(self._masks)

    @property
    def selected_kind(self) -> str:
        return self._kind

    @property
    def draft_rect(self) -> Optional[UnitRect]:
        return self._draft

    @property
    def is_drawing(self) -> bool:
        return self._start is not None

    def render_order(self) -> list[RedactionMask]:
        return sort_masks_for_render(self._masks)

    def set_kind(self, kind: str) -> None:
        """Select the style for the next drawn mask.

        Raises:
            ValueError: If kind is not blur, solid or pixelate.
        """
        if kind not in MASK_KINDS:
            raise ValueError(f"Mask kind must be one of {MASK_KINDS}, got '{kind}'")
        self._kind = kind

    def set_masks(self, masks: list[RedactionMask]) -> None:
        """Replace the list from persisted state without emitting a change."""
        self._masks = list(masks)
        self.cancel()

    # ------------------ pointer input ------------------

    @staticmethod
    def pointer_to_unit_point(
        client_x: float, client_y: float, container: ContainerRect
    ) -> Optional[UnitPoint]:
        if not is_finite_positive(container.width) or not is_finite_positive(container.height):
            return None
        if not all(is_finite_number(v) for v in (client_x, client_y, container.left, container.top)):
            return None
        return UnitPoint(
            x=clamp_unit((client_x - container.left) / container.width),
            y=clamp_unit((client_y - container.top) / container.height),
        )

    def pointer_down(
        self,
        client_x: float,
        client_y: float,
        container: ContainerRect,
        button: int = 0,
    ) -> bool:
        """Begin a drag with the primary button; returns True when started."""
        if self.disabled or button != 0:
            return False
        point = self.pointer_to_unit_point(client_x, client_y, container)
        if point is None:
            return False
        self._start = point
        self._draft = UnitRect(point.x, point.y, 0.0, 0.0)
        return True

    def pointer_move(self, client_x: float, client_y: float, container: ContainerRect) -> None:
        if self._start is None:
            return
        point = self.pointer_to_unit_point(client_x, client_y, container)
        if point is None:
            return
        self._draft = normalize_rect(self._start, point)

    def pointer_up(self) -> Optional[RedactionMask]:
        """Finish the drag; returns the new mask, or None if it was too small."""
        if self._start is None:
            return None
        rect = self._draft
        self.cancel()
        if rect is None:
            return None

        min_size = self._config.min_mask_size
        if rect.width < min_size or rect.height < min_size:
            logger.debug("Dropped mask below minimum size: %s", rect)
            return None

        mask = RedactionMask(
            id=self._id_factory(),
            kind=self._kind,
            rect=rect,
            strength=self._config.default_mask_strength,
            color=self._config.default_solid_color if self._kind == "solid" else None,
        )
        logger.info("Added %s mask %s at %s", mask.kind, mask.id, rect)
        self._emit([*self._masks, mask])
        return mask

    def cancel(self) -> None:
        """Discard the in-progress drag (pointer cancel, close, step switch)."""
        self._start = None
        self._draft = None

    # ------------------ list edits ------------------

    def update_mask(
        self,
        mask_id: str,
        kind: Optional[str] = None,
        color: Optional[str] = None,
    ) -> bool:
        """Change a mask's style and/or color; returns False if id is unknown.

        Switching to ``solid`` keeps an existing color (black otherwise);
        switching away from ``solid`` clears it. Colors apply to solid masks
        only and must be ``#rrggbb``.
        """
        if kind is not None and kind not in MASK_KINDS:
            raise ValueError(f"Mask kind must be one of {MASK_KINDS}, got '{kind}'")

        updated: list[RedactionMask] = []
        found = False
        for mask in self._masks:
            if mask.id != mask_id:
                updated.append(mask)
                continue
            found = True
            next_kind = kind or mask.kind
            next_color = mask.color
            if color is not None:
                next_color = normalize_color(color) or next_color
            if next_kind == "solid":
                next_color = next_color or self._config.default_solid_color
            else:
                next_color = None
            updated.append(
                RedactionMask(
                    id=mask.id,
                    kind=next_kind,
                    rect=mask.rect,
                    strength=mask.strength,
                    color=next_color,
                )
            )

        if not found:
            logger.debug("Update ignored: unknown mask %s", mask_id)
            return False
        self._emit(updated)
        return True

    def remove_mask(self, mask_id: str) -> bool:
        remaining = [mask for mask in self._masks if mask.id != mask_id]
        if len(remaining) == len(self._masks):
            return False
        logger.info("Removed mask %s", mask_id)
        self._emit(remaining)
        return True

    def clear(self) -> None:
        if not self._masks:
            return
        logger.info("Cleared %d masks", len(self._masks))
        self._emit([])

    def _emit(self, masks: list[RedactionMask]) -> None:
        self._masks = masks
        if self._on_change is not None:
            self._on_change(list(masks))
