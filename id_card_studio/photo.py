"""
Photo input: validate and decode the operator's photograph.
"""
import io
import os
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from PIL import Image, ImageOps, UnidentifiedImageError

from id_card_studio.config import StudioConfig
from id_card_studio.errors import PhotoInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadedPhoto:
    image: Image.Image
    data: bytes
    format: str
    name: str = "photo"


def decode_photo(data: bytes, name="photo", config: Optional[StudioConfig] = None, check_size=True) -> LoadedPhoto:
    """Check size and type, then decode fully (EXIF orientation applied)."""
    config = config or StudioConfig()
    if not data:
        raise PhotoInputError(f"{name} is empty")
    if check_size and len(data) > config.max_photo_bytes:
        raise PhotoInputError(
            f"File too large ({len(data) // 1024} KB). Max {config.max_photo_bytes // 1024} KB.")
    try:
        img = Image.open(io.BytesIO(data))
        fmt = img.format
        if fmt not in config.accepted_formats:
            raise PhotoInputError(f"Unsupported image type {fmt}. Use {' / '.join(config.accepted_formats)}.")
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise PhotoInputError(f"Could not read {name}: {e}") from e

    img = ImageOps.exif_transpose(img)
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "transparency" in img.info or img.mode in ("LA", "PA") else "RGB")
    logger.info("Accepted photo %s (%s, %sx%s)", name, fmt, img.width, img.height)
    return LoadedPhoto(image=img, data=data, format=fmt, name=name)


def load_photo(path, config: Optional[StudioConfig] = None) -> LoadedPhoto:
    try:
        with open(path, "rb") as fh:
            data = fh.read()
    except OSError as e:
        raise PhotoInputError(f"Could not open {path}: {e}") from e
    return decode_photo(data, name=os.path.basename(path), config=config)


def load_photo_url(url, session: Optional[requests.Session] = None, config: Optional[StudioConfig] = None) -> LoadedPhoto:
    """Load a previously stored photo by URL."""
    config = config or StudioConfig()
    session = session or requests.Session()
    try:
        response = session.get(url, timeout=config.fetch_timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PhotoInputError(f"Could not download photo: {e}") from e
    return decode_photo(response.content, name=url.rsplit("/", 1)[-1] or "photo", config=config)
