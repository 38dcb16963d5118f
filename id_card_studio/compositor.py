"""
Photo compositing.

Preview and export share one algorithm, parameterised only by output size:

    fill background -> translate to center -> rotate -> scale by
    cover * user scale -> draw the source at (-tx - w/2, -ty - h/2)

The preview never composites at screen resolution; it renders at the export
frame size and downsamples, so what the operator sees is what gets printed.
"""
import math
import logging
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from id_card_studio.geometry import TargetFrame, cover_scale
from id_card_studio.transform import TransformState

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)


# ----------------------------
# Core algorithm
# ----------------------------
def affine_matrix(state: TransformState, size: Tuple[int, int]) -> np.ndarray:
    """2x3 matrix mapping source pixel indices to output pixel indices."""
    out_w, out_h = size
    img_w, img_h = state.image.size
    s = cover_scale(out_w, out_h, img_w, img_h) * state.scale
    c, sn = math.cos(state.rotation), math.sin(state.rotation)
    a = s * np.array([[c, -sn], [sn, c]], dtype=np.float64)

    # continuous coordinates: out = center + A @ (p + d)
    d = np.array([-state.tx - img_w / 2.0, -state.ty - img_h / 2.0])
    b = np.array([out_w / 2.0, out_h / 2.0]) + a @ d

    # pixel centers sit at index + 0.5 on both sides
    b = b + a @ np.array([0.5, 0.5]) - 0.5
    return np.hstack([a, b.reshape(2, 1)])


def _source_arrays(image: Image.Image):
    """RGB array plus optional alpha array for a PIL image."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)
    if has_alpha:
        rgba = np.asarray(image.convert("RGBA"))
        return np.ascontiguousarray(rgba[:, :, :3]), np.ascontiguousarray(rgba[:, :, 3])
    return np.asarray(image.convert("RGB")), None


def compose(state: TransformState, size: Tuple[int, int], background=WHITE) -> np.ndarray:
    """Render ``state`` into a new ``size`` RGB array (H x W x 3, uint8).

    Output pixels whose centers fall outside the source image keep the
    background color. Without an image the result is plain background.
    """
    out_w, out_h = int(size[0]), int(size[1])
    if out_w <= 0 or out_h <= 0:
        raise ValueError(f"Output size must be positive, got {out_w}x{out_h}")

    canvas = np.empty((out_h, out_w, 3), dtype=np.uint8)
    canvas[:, :] = background
    if state.image is None:
        return canvas

    m = affine_matrix(state, (out_w, out_h))
    rgb, alpha = _source_arrays(state.image)

    # Replicated borders keep bilinear sampling from bleeding background into
    # edge pixels; the nearest-neighbour coverage mask decides what is inside.
    warped = cv2.warpAffine(rgb, m, (out_w, out_h), flags=cv2.INTER_LINEAR,
                            borderMode=cv2.BORDER_REPLICATE)
    inside = np.full(rgb.shape[:2], 255, dtype=np.uint8)
    coverage = cv2.warpAffine(inside, m, (out_w, out_h), flags=cv2.INTER_NEAREST,
                              borderMode=cv2.BORDER_CONSTANT, borderValue=0)

    weight = coverage.astype(np.float32) / 255.0
    if alpha is not None:
        warped_alpha = cv2.warpAffine(alpha, m, (out_w, out_h), flags=cv2.INTER_LINEAR,
                                      borderMode=cv2.BORDER_REPLICATE)
        weight *= warped_alpha.astype(np.float32) / 255.0

    if alpha is None and coverage.all():
        return warped

    weight = weight[:, :, None]
    blended = warped.astype(np.float32) * weight + canvas.astype(np.float32) * (1.0 - weight)
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def downsample(arr: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    w, h = int(size[0]), int(size[1])
    if (arr.shape[1], arr.shape[0]) == (w, h):
        return arr
    interpolation = cv2.INTER_AREA if w <= arr.shape[1] else cv2.INTER_LINEAR
    return cv2.resize(arr, (w, h), interpolation=interpolation)


# ----------------------------
# Compositors
# ----------------------------
class ExportCompositor:
    """Renders the photo region at the full export resolution."""

    def __init__(self, frame: TargetFrame, background=WHITE):
        self.frame = frame
        self.background = background

    def render_array(self, state: TransformState) -> np.ndarray:
        return compose(state, self.frame.pixel_size, self.background)

    def render(self, state: TransformState) -> Image.Image:
        w, h = self.frame.pixel_size
        logger.debug("Composing photo region at %sx%s (%s DPI)", w, h, self.frame.dpi)
        return Image.fromarray(self.render_array(state), "RGB")


class PreviewCompositor:
    """Live preview: export-resolution render, downsampled to the box size."""

    def __init__(self, frame: TargetFrame, box_size: Tuple[int, int], background=WHITE):
        self.export = ExportCompositor(frame, background)
        self.box_size = (int(box_size[0]), int(box_size[1]))

    @property
    def frame(self) -> TargetFrame:
        return self.export.frame

    def resize(self, box_size: Tuple[int, int]):
        """Viewport changed; the next render uses the new box size."""
        self.box_size = (max(1, int(box_size[0])), max(1, int(box_size[1])))

    def render(self, state: TransformState, box_size: Optional[Tuple[int, int]] = None) -> Image.Image:
        size = box_size or self.box_size
        full = self.export.render_array(state)
        return Image.fromarray(downsample(full, size), "RGB")
