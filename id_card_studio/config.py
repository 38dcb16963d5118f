"""
Shared configuration for the editor and the export pipeline.

Every size the pipeline needs is derived from the physical dimensions and the
single DPI value held here.
"""
import os
import math
from dataclasses import dataclass, field, replace

from id_card_studio.geometry import TargetFrame

# ----------------------------
# Defaults
# ----------------------------
DEFAULT_DPI = 1200

# ID-1 card, portrait
CARD_WIDTH_IN = 2.125
CARD_HEIGHT_IN = 3.375

# Layout units of the card template (one face is 230 x 365 units)
LAYOUT_WIDTH = 230
LAYOUT_HEIGHT = 365

# Photo box on the front face, in layout units
PHOTO_BOX = (0, 89, 230, 276)  # x, y, w, h

ZOOM_STEP = 1.12
MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
ROTATION_STEP = math.pi / 12

MAX_PHOTO_BYTES = 5 * 1024 * 1024
ACCEPTED_PHOTO_FORMATS = ("JPEG", "PNG")


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class StudioConfig:
    dpi: int = DEFAULT_DPI
    card_width_in: float = CARD_WIDTH_IN
    card_height_in: float = CARD_HEIGHT_IN
    layout_width: int = LAYOUT_WIDTH
    layout_height: int = LAYOUT_HEIGHT
    photo_box: tuple = PHOTO_BOX
    zoom_step: float = ZOOM_STEP
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    rotation_step: float = ROTATION_STEP
    preview_scale: float = 1.0  # screen pixels per layout unit in the editor
    max_photo_bytes: int = MAX_PHOTO_BYTES
    accepted_formats: tuple = ACCEPTED_PHOTO_FORMATS
    fetch_timeout: float = 15.0
    cloudinary_cloud_name: str = ""
    cloudinary_upload_preset: str = ""
    background: tuple = field(default=(255, 255, 255))

    @classmethod
    def from_env(cls, **overrides) -> "StudioConfig":
        """Build a config from ``ID_CARD_*`` environment variables."""
        cfg = cls(
            dpi=int(_env_float("ID_CARD_DPI", DEFAULT_DPI)),
            fetch_timeout=_env_float("ID_CARD_FETCH_TIMEOUT", 15.0),
            cloudinary_cloud_name=os.environ.get("ID_CARD_CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_upload_preset=os.environ.get("ID_CARD_CLOUDINARY_UPLOAD_PRESET", ""),
        )
        return replace(cfg, **overrides) if overrides else cfg

    # -------------------------
    # Derived sizes
    # -------------------------
    @property
    def units_per_inch(self) -> float:
        return self.layout_width / self.card_width_in

    @property
    def photo_frame(self) -> TargetFrame:
        """Physical photo slot derived from the layout box, at the shared DPI."""
        _, _, w, h = self.photo_box
        return TargetFrame(
            width_in=w / self.units_per_inch,
            height_in=h / self.units_per_inch,
            dpi=self.dpi,
        )

    @property
    def card_frame(self) -> TargetFrame:
        return TargetFrame(width_in=self.card_width_in, height_in=self.card_height_in, dpi=self.dpi)

    @property
    def snapshot_scale(self) -> float:
        """Output pixels per layout unit when flattening a face."""
        return self.dpi / self.units_per_inch

    @property
    def preview_box_size(self) -> tuple:
        _, _, w, h = self.photo_box
        return max(1, round(w * self.preview_scale)), max(1, round(h * self.preview_scale))

    @property
    def background_removal_enabled(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_upload_preset)
