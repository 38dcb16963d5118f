"""
Interactive photo transform: the editing state and the engine that maps
pointer input onto it.

Translation (tx, ty) is kept in image-pixel space, so drag speed does not
depend on zoom level or on the on-screen size of the photo box.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from PIL import Image

from id_card_studio.config import StudioConfig
from id_card_studio.geometry import TargetFrame, cover_scale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DragAnchor:
    pointer: Tuple[float, float]
    tx: float
    ty: float


@dataclass
class TransformState:
    image: Optional[Image.Image] = None
    scale: float = 1.0
    rotation: float = 0.0
    tx: float = 0.0
    ty: float = 0.0
    drag_anchor: Optional[DragAnchor] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def snapshot(self) -> "TransformState":
        """Consistent copy for the export pipeline; drops drag bookkeeping.

        The image is shared, not copied: images are replaced wholesale and
        never mutated in place.
        """
        return replace(self, drag_anchor=None)


class CoordinateEngine:
    """Turns zoom/rotate/drag commands into TransformState updates.

    Every operation is a no-op when no image is loaded; none of them raise.
    """

    def __init__(self, state: Optional[TransformState] = None, frame: Optional[TargetFrame] = None,
                 config: Optional[StudioConfig] = None, visible_box_width: Optional[float] = None):
        self.config = config or StudioConfig()
        self.state = state if state is not None else TransformState()
        self.frame = frame or self.config.photo_frame
        if visible_box_width is None:
            visible_box_width = self.config.preview_box_size[0]
        self.visible_box_width = float(visible_box_width)
        self.show_grid = False

    # -------------------------
    # Image lifecycle
    # -------------------------
    def load_image(self, image: Image.Image):
        """Replace the photo and start from a fresh transform."""
        self.state = TransformState(image=image)
        logger.debug("Loaded photo %sx%s", image.width, image.height)

    def clear(self):
        self.state = TransformState()

    # -------------------------
    # Overlay
    # -------------------------
    def toggle_grid(self):
        self.show_grid = not self.show_grid

    def set_grid(self, visible):
        """Editor overlay only; never part of the exported state."""
        self.show_grid = bool(visible)

    # -------------------------
    # Zoom / rotate
    # -------------------------
    def _clamp_zoom(self, value):
        return min(self.config.max_zoom, max(self.config.min_zoom, value))

    def zoom_in(self):
        if not self.state.has_image:
            return
        self.state.scale = self._clamp_zoom(self.state.scale * self.config.zoom_step)

    def zoom_out(self):
        if not self.state.has_image:
            return
        self.state.scale = self._clamp_zoom(self.state.scale / self.config.zoom_step)

    def rotate_left(self):
        if not self.state.has_image:
            return
        self.state.rotation -= self.config.rotation_step

    def rotate_right(self):
        if not self.state.has_image:
            return
        self.state.rotation += self.config.rotation_step

    def reset_transform(self):
        self.state.scale = 1.0
        self.state.rotation = 0.0
        self.state.tx = 0.0
        self.state.ty = 0.0

    def snap_to_center(self):
        if not self.state.has_image:
            return
        self.state.tx = 0.0
        self.state.ty = 0.0

    # -------------------------
    # Dragging
    # -------------------------
    @property
    def is_dragging(self) -> bool:
        return self.state.drag_anchor is not None

    def render_scale(self) -> float:
        img = self.state.image
        w, h = self.frame.pixel_size
        return cover_scale(w, h, img.width, img.height) * self.state.scale

    def screen_to_image_delta(self, dx, dy, visible_box_width=None):
        """Convert a pointer delta in screen pixels to image pixels."""
        box_w = visible_box_width or self.visible_box_width
        factor = self.frame.width_px / box_w
        render = self.render_scale()
        return dx * factor / render, dy * factor / render

    def begin_drag(self, pointer):
        if not self.state.has_image:
            return
        self.state.drag_anchor = DragAnchor(
            pointer=(float(pointer[0]), float(pointer[1])),
            tx=self.state.tx,
            ty=self.state.ty,
        )

    def continue_drag(self, pointer, visible_box_width=None):
        anchor = self.state.drag_anchor
        if anchor is None or not self.state.has_image:
            return
        dx = pointer[0] - anchor.pointer[0]
        dy = pointer[1] - anchor.pointer[1]
        image_dx, image_dy = self.screen_to_image_delta(dx, dy, visible_box_width)
        self.state.tx = anchor.tx + image_dx
        self.state.ty = anchor.ty + image_dy

    def end_drag(self):
        self.state.drag_anchor = None
