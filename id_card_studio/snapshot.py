"""
Card snapshotting: flatten a card face into one print-resolution bitmap.

Before flattening, the face is cloned with
  * the photo slot filled from the export-resolution photo bitmap, and
  * every image element resolved to an embedded, fully decoded copy.
An element that is still unresolved when flattening starts fails the
capture instead of producing a half-drawn card.
"""
import io
import base64
import logging
from dataclasses import replace
from typing import Dict, Optional

import requests
from PIL import Image, ImageDraw, UnidentifiedImageError

from id_card_studio.card import CardFace, ImageElement, PhotoSlot, RuleElement, TextElement
from id_card_studio.config import StudioConfig
from id_card_studio.errors import CaptureError
from id_card_studio.fonts import load_font

logger = logging.getLogger(__name__)

# Embedded sources kept per snapshotter; oldest dropped first
MAX_EMBEDDED = 32


def _decode(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class CardSnapshotter:
    def __init__(self, config: Optional[StudioConfig] = None, session: Optional[requests.Session] = None,
                 max_embedded=MAX_EMBEDDED):
        self.config = config or StudioConfig()
        self.session = session or requests.Session()
        self.max_embedded = max_embedded
        self._embedded: Dict[str, bytes] = {}

    @property
    def scale(self) -> float:
        """Output pixels per layout unit."""
        return self.config.snapshot_scale

    # -------------------------
    # Image resolution
    # -------------------------
    def embed(self, source: str) -> bytes:
        """Fetch a hosted or local image once and keep its bytes inline."""
        if source in self._embedded:
            return self._embedded[source]
        if source.startswith("data:"):
            _, _, payload = source.partition(",")
            data = base64.b64decode(payload)
        elif source.startswith(("http://", "https://")):
            response = self.session.get(source, timeout=self.config.fetch_timeout)
            response.raise_for_status()
            data = response.content
        else:
            with open(source, "rb") as fh:
                data = fh.read()
        if len(self._embedded) >= self.max_embedded:
            self._embedded.pop(next(iter(self._embedded)))
        self._embedded[source] = data
        return data

    def prefetch(self, face: CardFace):
        """Fetch every string source on a face before any pixels are drawn."""
        for el in face.image_elements():
            if not isinstance(el.source, str):
                continue
            try:
                self.embed(el.source)
            except (requests.RequestException, OSError, ValueError) as e:
                raise CaptureError(f"could not load image '{el.name}' on the {face.kind} face: {e}") from e

    def _load(self, el: ImageElement) -> Image.Image:
        src = el.source
        if isinstance(src, Image.Image):
            img = src.copy()
            img.load()
            return img
        if isinstance(src, (bytes, bytearray)):
            return _decode(bytes(src))
        if isinstance(src, str):
            return _decode(self.embed(src))
        raise TypeError(f"unsupported image source {type(src).__name__}")

    def resolve_images(self, face: CardFace) -> CardFace:
        """Clone of ``face`` whose image elements all hold decoded images."""
        elements = []
        for el in face.elements:
            if isinstance(el, ImageElement) and not el.resolved:
                try:
                    el = replace(el, image=self._load(el))
                except (requests.RequestException, OSError, UnidentifiedImageError, ValueError, TypeError) as e:
                    raise CaptureError(f"could not load image '{el.name}' on the {face.kind} face: {e}") from e
            elements.append(el)
        return face.with_elements(elements)

    # -------------------------
    # Flattening
    # -------------------------
    def _px(self, v) -> int:
        return int(round(v * self.scale))

    def _px_box(self, box):
        x, y, w, h = box
        x0, y0 = self._px(x), self._px(y)
        return x0, y0, self._px(x + w), self._px(y + h)

    def canvas_size(self, face: CardFace):
        """Physical card size at the configured DPI.

        A full layout box maps onto the whole card frame. The 230 x 365 box is
        a hair shorter than the ID-1 aspect, so the height is taken from the
        card frame rather than from ``face.height * scale``.
        """
        frame = self.config.card_frame
        return (int(round(frame.width_px * face.width / self.config.layout_width)),
                int(round(frame.height_px * face.height / self.config.layout_height)))

    def snapshot(self, face: CardFace, photo: Optional[Image.Image] = None) -> Image.Image:
        """Flatten ``face``; ``photo`` fills the photo slot of the front face."""
        face = self.resolve_images(face)
        pending = [el.name for el in face.image_elements() if not el.resolved]
        if pending:
            raise CaptureError(f"images still loading on the {face.kind} face: {', '.join(pending)}")

        size = self.canvas_size(face)
        canvas = Image.new("RGB", size, face.background)
        draw = ImageDraw.Draw(canvas)
        for el in face.elements:
            if isinstance(el, PhotoSlot):
                self._draw_photo(canvas, el, photo)
            elif isinstance(el, ImageElement):
                self._draw_image(canvas, el)
            elif isinstance(el, TextElement):
                self._draw_text(draw, el)
            elif isinstance(el, RuleElement):
                self._draw_rule(draw, el)
        logger.debug("Flattened %s face at %sx%s", face.kind, size[0], size[1])
        return canvas

    def _draw_photo(self, canvas, slot: PhotoSlot, photo):
        x0, y0, x1, y1 = self._px_box(slot.box)
        w, h = x1 - x0, y1 - y0
        radius = self._px(slot.radius)
        mask = Image.new("L", (w, h), 0)
        ImageDraw.Draw(mask).rounded_rectangle((0, 0, w - 1, h - 1), radius=radius, fill=255)
        if photo is None:
            fill = Image.new("RGB", (w, h), slot.fill)
            canvas.paste(fill, (x0, y0), mask)
            return
        if not self.config.photo_frame.matches_box(slot.box[2], slot.box[3]):
            raise CaptureError(
                f"photo frame {self.config.photo_frame.pixel_size} does not match the photo box aspect "
                f"{slot.box[2]}x{slot.box[3]}")
        tile = photo.convert("RGB")
        if tile.size != (w, h):
            tile = tile.resize((w, h), Image.LANCZOS)
        canvas.paste(tile, (x0, y0), mask)

    def _draw_image(self, canvas, el: ImageElement):
        """Contain-fit, centered horizontally, top aligned."""
        x0, y0, x1, y1 = self._px_box(el.box)
        box_w, box_h = x1 - x0, y1 - y0
        img = el.image
        scale = min(box_w / img.width, box_h / img.height)
        new_w, new_h = max(1, int(img.width * scale)), max(1, int(img.height * scale))
        img = img.convert("RGBA").resize((new_w, new_h), Image.LANCZOS)
        canvas.paste(img, (x0 + (box_w - new_w) // 2, y0), img)

    def _draw_text(self, draw, el: TextElement):
        x0, y0, x1, _ = self._px_box(el.box)
        size = el.size * self.scale
        font = load_font(size, el.bold)
        line_px = size * el.line_height
        for i, line in enumerate(el.lines):
            top = y0 + i * line_px + (line_px - size) / 2
            if el.align == "center":
                draw.text(((x0 + x1) / 2, top), line, font=font, fill=el.color, anchor="ma")
            else:
                draw.text((x0, top), line, font=font, fill=el.color, anchor="la")

    def _draw_rule(self, draw, el: RuleElement):
        y = self._px(el.y)
        x0, x1 = self._px(el.x0), self._px(el.x1)
        width = max(1, self._px(1))
        if not el.dashed:
            draw.line((x0, y, x1, y), fill=el.color, width=width)
            return
        dash = max(1, self._px(3))
        x = x0
        while x < x1:
            draw.line((x, y, min(x + dash, x1), y), fill=el.color, width=width)
            x += dash * 2
