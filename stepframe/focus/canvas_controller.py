"""Stateful pan/zoom controller for a single screenshot canvas.

The controller owns one CanvasTransformState and mutates it in response to
pointer drags, wheel and pinch gestures, keyboard shortcuts and toolbar
actions. Sizes come from resize callbacks; while the viewport or the rendered
image has no area, transform operations are ignored.

Usage:
    controller = InteractiveCanvasController(focus, Size(1920, 1080))
    controller.set_viewport_size(800, 450)
    controller.set_rendered_image_size(800, 450)
    controller.activate()          # jumps to the focus crop
    controller.handle_key("+")     # zoom in
    snapshot = controller.snapshot()
"""

import logging
import math
from typing import Callable, Optional

from .canvas_transform import (
    clamp_canvas_scale,
    compute_canvas_focus_transform,
    viewport_to_image,
)
from .config import FocusConfig
from .models import (
    ZERO_SIZE,
    CanvasSnapshot,
    CanvasTransformState,
    ContainerRect,
    FocusTransformResult,
    Point,
    Size,
    UnitPoint,
)
from .units import clamp_unit, is_finite_number, is_finite_positive

logger = logging.getLogger(__name__)

GESTURE_DRAG = "drag"
GESTURE_PINCH = "pinch"
GESTURE_WHEEL = "wheel"

TransformListener = Callable[[CanvasSnapshot], None]


class InteractiveCanvasController:
    """Pan/zoom state machine over a CanvasTransformState.

    Attributes:
        capture_click_point: When True, click() converts the pointer position
            into an image unit point and reports it instead of doing nothing.
        on_capture_click_point: Callback receiving captured unit points.
    """

    def __init__(
        self,
        focus_transform: FocusTransformResult,
        source_image_size: Size,
        config: Optional[FocusConfig] = None,
        auto_focus_on_active: bool = True,
        prefers_reduced_motion: bool = False,
    ):
        self._config = config or FocusConfig()
        self._focus_transform = focus_transform
        self._source_size = source_image_size
        self._auto_focus_on_active = auto_focus_on_active
        self._prefers_reduced_motion = prefers_reduced_motion

        self._state = CanvasTransformState()
        self._viewport_size = ZERO_SIZE
        self._rendered_size = ZERO_SIZE
        self._active = False
        self._pending_activation = False
        self._last_animation_ms = 0

        self._gesture: Optional[str] = None
        self._drag_start: Optional[tuple[float, float, float, float]] = None
        self._pinch_start: Optional[tuple[float, float, Point]] = None

        self._listeners: list[TransformListener] = []
        self.capture_click_point = False
        self.on_capture_click_point: Optional[Callable[[UnitPoint], None]] = None

    # ------------------ state access ------------------

    @property
    def config(self) -> FocusConfig:
        return self._config

    @property
    def state(self) -> CanvasTransformState:
        return self._state

    @property
    def focus_transform(self) -> FocusTransformResult:
        return self._focus_transform

    @property
    def active(self) -> bool:
        return self._active

    @property
    def gesture(self) -> Optional[str]:
        return self._gesture

    @property
    def is_panning(self) -> bool:
        return self._gesture == GESTURE_DRAG

    @property
    def last_animation_ms(self) -> int:
        """Duration of the most recent committed transition (0 = instant)."""
        return self._last_animation_ms

    @property
    def can_focus(self) -> bool:
        return self._focus_transform.has_focus_crop

    @property
    def zoom_label(self) -> str:
        return f"{round(self._state.scale * 100)}%"

    @property
    def pan_hint(self) -> Optional[str]:
        """Overlay text shown while zoomed in, None at fit."""
        if self._state.scale <= 1.02:
            return None
        return "Panning..." if self.is_panning else "Drag to pan"

    def snapshot(self) -> CanvasSnapshot:
        return CanvasSnapshot(
            scale=self._state.scale,
            position_x=self._state.position_x,
            position_y=self._state.position_y,
            viewport_size=self._viewport_size,
            rendered_image_size=self._rendered_size,
        )

    def add_listener(self, listener: TransformListener) -> None:
        """Register a callback invoked with a snapshot after every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: TransformListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------ lifecycle ------------------

    def set_viewport_size(self, width: float, height: float) -> None:
        """Resize callback for the canvas container."""
        self._viewport_size = Size(width, height)
        self._resume_pending_activation()

    def set_rendered_image_size(self, width: float, height: float) -> None:
        """Resize callback for the laid-out image."""
        self._rendered_size = Size(width, height)
        self._resume_pending_activation()

    def set_reduced_motion(self, enabled: bool) -> None:
        self._prefers_reduced_motion = enabled

    def set_image(self, focus_transform: FocusTransformResult, source_image_size: Size) -> None:
        """Switch to another screenshot; discards the current transform."""
        self._focus_transform = focus_transform
        self._source_size = source_image_size
        self._reset_state()
        if self._active:
            self._apply_activation()

    def activate(self) -> None:
        """The canvas became the visible one."""
        self._active = True
        self._reset_state()
        self._apply_activation()

    def deactivate(self) -> None:
        self._active = False
        self._pending_activation = False
        self._reset_state()

    def _reset_state(self) -> None:
        self._cancel_gesture()
        self._state = CanvasTransformState()
        self._last_animation_ms = 0

    def _apply_activation(self) -> None:
        if not self._sizes_ready():
            self._pending_activation = True
            return
        self._pending_activation = False
        if self._auto_focus_on_active and self._focus_transform.has_focus_crop:
            self.jump_to_focus()
        else:
            self.reset_to_fit()

    def _resume_pending_activation(self) -> None:
        if self._active and self._pending_activation and self._sizes_ready():
            self._apply_activation()

    def _sizes_ready(self) -> bool:
        return self._viewport_size.is_valid and self._rendered_size.is_valid

    # ------------------ transform operations ------------------

    def set_transform(
        self,
        position_x: float,
        position_y: float,
        scale: float,
        animated: bool = True,
    ) -> bool:
        """Commit a transform; returns False when the operation was ignored."""
        if not self._sizes_ready():
            logger.debug("Transform ignored: viewport=%s image=%s", self._viewport_size, self._rendered_size)
            return False
        if not is_finite_number(position_x) or not is_finite_number(position_y):
            logger.debug("Transform ignored: non-finite position (%s, %s)", position_x, position_y)
            return False

        self._state = CanvasTransformState(
            scale=clamp_canvas_scale(scale, self._config.min_scale, self._config.max_scale),
            position_x=float(position_x),
            position_y=float(position_y),
        )
        if animated and not self._prefers_reduced_motion:
            self._last_animation_ms = self._config.animation_ms
        else:
            self._last_animation_ms = 0

        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
        return True

    def zoom_to(
        self,
        scale: float,
        anchor: Optional[Point] = None,
        animated: bool = True,
    ) -> bool:
        """Zoom keeping the image point under ``anchor`` (viewport px) fixed.

        The viewport center is used when no anchor is given.
        """
        if not self._sizes_ready():
            return False
        if anchor is None:
            anchor = Point(self._viewport_size.width / 2, self._viewport_size.height / 2)
        new_scale = clamp_canvas_scale(scale, self._config.min_scale, self._config.max_scale)
        image_point = viewport_to_image(anchor, self._state)
        return self.set_transform(
            anchor.x - image_point.x * new_scale,
            anchor.y - image_point.y * new_scale,
            new_scale,
            animated=animated,
        )

    def zoom_in(self) -> bool:
        return self.zoom_to(self._state.scale * (1 + self._config.button_zoom_step))

    def zoom_out(self) -> bool:
        return self.zoom_to(self._state.scale / (1 + self._config.button_zoom_step))

    def set_zoom_scale(self, scale: float) -> bool:
        """Zoom slider; the value is clamped into the configured range."""
        return self.zoom_to(scale)

    def actual_size(self) -> bool:
        """The "100%" action."""
        return self.zoom_to(1.0)

    def reset_to_fit(self) -> bool:
        """The "Fit" / "Reset" actions and the ``0`` key: scale 1, centered.

        Scale 1 is the rendered (fitted) image size; it is only moved when
        the configured limits exclude it.
        """
        if not self._sizes_ready():
            return False
        scale = clamp_canvas_scale(1.0, self._config.min_scale, self._config.max_scale)
        return self.set_transform(
            (self._viewport_size.width - self._rendered_size.width * scale) / 2,
            (self._viewport_size.height - self._rendered_size.height * scale) / 2,
            scale,
        )

    def jump_to_focus(self) -> bool:
        """The "Focus" action and the ``f`` key."""
        if not self._focus_transform.has_focus_crop:
            return self.reset_to_fit()
        if not self._sizes_ready():
            return False
        focused = compute_canvas_focus_transform(
            self._focus_transform,
            self._viewport_size.width,
            self._viewport_size.height,
            self._rendered_size.width,
            self._rendered_size.height,
            self._config.min_scale,
            self._config.max_scale,
        )
        return self.set_transform(focused.position_x, focused.position_y, focused.scale)

    def pan_by(self, dx: float, dy: float, animated: bool = True) -> bool:
        return self.set_transform(
            self._state.position_x + dx,
            self._state.position_y + dy,
            self._state.scale,
            animated=animated,
        )

    def handle_key(self, key: str) -> bool:
        """Keyboard shortcuts; returns True when the key was consumed."""
        step = self._config.pan_step_px
        if key in ("+", "="):
            self.zoom_in()
            return True
        if key == "-":
            self.zoom_out()
            return True
        if key == "0":
            self.reset_to_fit()
            return True
        if key.lower() == "f":
            self.jump_to_focus()
            return True

        arrows = {
            "ArrowLeft": (step, 0.0),
            "ArrowRight": (-step, 0.0),
            "ArrowUp": (0.0, step),
            "ArrowDown": (0.0, -step),
        }
        if key in arrows:
            dx, dy = arrows[key]
            self.pan_by(dx, dy)
            return True
        return False

    # ------------------ gestures ------------------

    def _cancel_gesture(self) -> None:
        self._gesture = None
        self._drag_start = None
        self._pinch_start = None

    def begin_drag(self, client_x: float, client_y: float) -> bool:
        if self._gesture is not None or not self._sizes_ready():
            return False
        self._gesture = GESTURE_DRAG
        self._drag_start = (
            client_x,
            client_y,
            self._state.position_x,
            self._state.position_y,
        )
        return True

    def drag_to(self, client_x: float, client_y: float) -> bool:
        if self._gesture != GESTURE_DRAG or self._drag_start is None:
            return False
        start_x, start_y, origin_x, origin_y = self._drag_start
        return self.set_transform(
            origin_x + (client_x - start_x),
            origin_y + (client_y - start_y),
            self._state.scale,
            animated=False,
        )

    def end_drag(self) -> None:
        if self._gesture == GESTURE_DRAG:
            self._cancel_gesture()

    def wheel(
        self,
        delta_y: float,
        client_x: float,
        client_y: float,
        container: ContainerRect,
    ) -> bool:
        """Zoom one wheel notch around the pointer; negative delta zooms in."""
        if self._gesture is not None or not is_finite_number(delta_y) or delta_y == 0:
            return False
        self._gesture = GESTURE_WHEEL
        try:
            factor = 1 + self._config.zoom_step
            scale = self._state.scale * factor if delta_y < 0 else self._state.scale / factor
            anchor = Point(client_x - container.left, client_y - container.top)
            return self.zoom_to(scale, anchor=anchor, animated=False)
        finally:
            self._gesture = None

    def begin_pinch(
        self,
        distance: float,
        client_x: float,
        client_y: float,
        container: ContainerRect,
    ) -> bool:
        """Start a two-finger pinch; (client_x, client_y) is the midpoint."""
        if self._gesture is not None or not is_finite_positive(distance):
            return False
        if not self._sizes_ready():
            return False
        midpoint = Point(client_x - container.left, client_y - container.top)
        self._gesture = GESTURE_PINCH
        self._pinch_start = (
            distance,
            self._state.scale,
            viewport_to_image(midpoint, self._state),
        )
        return True

    def pinch_to(
        self,
        distance: float,
        client_x: float,
        client_y: float,
        container: ContainerRect,
    ) -> bool:
        """Scale by the distance ratio and keep the pinched point under the midpoint."""
        if self._gesture != GESTURE_PINCH or self._pinch_start is None:
            return False
        if not is_finite_positive(distance):
            return False
        start_distance, start_scale, image_point = self._pinch_start
        scale = clamp_canvas_scale(
            start_scale * distance / start_distance,
            self._config.min_scale,
            self._config.max_scale,
        )
        midpoint = Point(client_x - container.left, client_y - container.top)
        return self.set_transform(
            midpoint.x - image_point.x * scale,
            midpoint.y - image_point.y * scale,
            scale,
            animated=False,
        )

    def end_pinch(self) -> None:
        if self._gesture == GESTURE_PINCH:
            self._cancel_gesture()

    # ------------------ click capture ------------------

    def client_to_image_unit(
        self,
        client_x: float,
        client_y: float,
        container: ContainerRect,
    ) -> Optional[UnitPoint]:
        """Invert a pointer position into a clamped image unit point.

        Normalizes by the rendered image size, or by the source size when the
        rendered size is unknown. Returns None when neither is usable.
        """
        scale = self._state.scale
        if not is_finite_positive(scale):
            return None
        size = self._rendered_size if self._rendered_size.is_valid else self._source_size
        if not size.is_valid:
            return None
        viewport_point = Point(client_x - container.left, client_y - container.top)
        image_point = viewport_to_image(viewport_point, self._state)
        if not math.isfinite(image_point.x) or not math.isfinite(image_point.y):
            return None
        return UnitPoint(
            x=clamp_unit(image_point.x / size.width),
            y=clamp_unit(image_point.y / size.height),
        )

    def click(
        self,
        client_x: float,
        client_y: float,
        container: ContainerRect,
    ) -> Optional[UnitPoint]:
        """Handle a click; only acts in capture-click-point mode."""
        if not self.capture_click_point:
            return None
        point = self.client_to_image_unit(client_x, client_y, container)
        if point is None:
            return None
        logger.debug("Captured click point %s", point)
        if self.on_capture_click_point is not None:
            self.on_capture_click_point(point)
        return point
