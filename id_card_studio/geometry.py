"""
Geometry / unit helpers shared by the editor and the exporters.
"""
import math
from dataclasses import dataclass

PT_PER_INCH = 72.0
MM_PER_INCH = 25.4

# Relative tolerance when comparing aspect ratios of frames and layout boxes
ASPECT_TOLERANCE = 1e-3


def mm_to_pt(mm: float) -> float:
    return mm * PT_PER_INCH / MM_PER_INCH


def in_to_pt(inches: float) -> float:
    return inches * PT_PER_INCH


def cover_scale(target_w, target_h, img_w, img_h) -> float:
    """Smallest uniform scale that makes an img_w x img_h image fill the target."""
    if img_w <= 0 or img_h <= 0:
        raise ValueError(f"Image size must be positive, got {img_w}x{img_h}")
    return max(target_w / img_w, target_h / img_h)


def aspect_matches(w1, h1, w2, h2, tolerance=ASPECT_TOLERANCE) -> bool:
    a = w1 / h1
    b = w2 / h2
    return math.isclose(a, b, rel_tol=tolerance)


@dataclass(frozen=True)
class TargetFrame:
    """A physical rectangle rendered at a fixed DPI.

    The pixel size is derived once from ``width_in * dpi`` and
    ``height_in * dpi`` and reused by every compositor.
    """
    width_in: float
    height_in: float
    dpi: int

    def __post_init__(self):
        if self.width_in <= 0 or self.height_in <= 0:
            raise ValueError("TargetFrame dimensions must be positive")
        if self.dpi <= 0:
            raise ValueError("TargetFrame DPI must be positive")

    @property
    def width_px(self) -> int:
        return int(round(self.width_in * self.dpi))

    @property
    def height_px(self) -> int:
        return int(round(self.height_in * self.dpi))

    @property
    def pixel_size(self) -> tuple:
        return self.width_px, self.height_px

    @property
    def aspect(self) -> float:
        return self.width_in / self.height_in

    @property
    def size_pt(self) -> tuple:
        return in_to_pt(self.width_in), in_to_pt(self.height_in)

    def matches_box(self, box_w, box_h) -> bool:
        return aspect_matches(self.width_in, self.height_in, box_w, box_h)


def grid_lines(box, divisions=3):
    """Segments (x0, y0, x1, y1) splitting ``box`` into ``divisions`` equal rows and columns."""
    x, y, w, h = box
    lines = []
    for i in range(1, divisions):
        gx = x + w * i / divisions
        gy = y + h * i / divisions
        lines.append((gx, y, gx, y + h))
        lines.append((x, gy, x + w, gy))
    return lines
