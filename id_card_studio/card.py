"""
Card face templates.

A face is a flat list of elements positioned in layout units on a
230 x 365 box (one ID-1 card, portrait). Faces are built from a record and
branding and handed explicitly to the snapshotter.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from id_card_studio.config import StudioConfig
from id_card_studio.fonts import load_font, wrap_text
from id_card_studio.geometry import TargetFrame

FRONT = "front"
BACK = "back"

TEXT_COLOR = (17, 24, 39)
DIVIDER_COLOR = (229, 231, 235)
PHOTO_BOX_FILL = (243, 244, 246)
EMPTY_VALUE = "—"

Box = Tuple[float, float, float, float]  # x, y, w, h in layout units


# ----------------------------
# Record / branding
# ----------------------------
@dataclass
class EmployeeRecord:
    full_name: str = ""
    employee_id: str = ""
    blood_group: str = ""
    branch: str = ""
    emergency_contact: str = ""
    country_code: str = "+91"
    photo_url: Optional[str] = None

    @property
    def emergency_display(self) -> str:
        if self.country_code and self.emergency_contact:
            return f"{self.country_code} {self.emergency_contact}"
        return self.emergency_contact or EMPTY_VALUE


@dataclass
class BranchInfo:
    name: str
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""


@dataclass
class Branding:
    organisation_name: str = "Clove Technologies Pvt. Ltd."
    front_logo: Any = None  # PIL image, bytes, file path, data URI or http(s) URL
    back_logo: Any = None
    contact_phone: str = ""
    contact_email: str = ""
    contact_website: str = ""
    branches: Dict[str, BranchInfo] = field(default_factory=dict)

    def branch(self, name) -> Optional[BranchInfo]:
        return self.branches.get(name)


# ----------------------------
# Elements
# ----------------------------
@dataclass(frozen=True)
class ImageElement:
    name: str
    box: Box
    source: Any
    image: Any = None  # decoded PIL image once resolved

    @property
    def resolved(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class TextElement:
    box: Box
    lines: Tuple[str, ...]
    size: float
    bold: bool = False
    align: str = "left"
    color: Tuple[int, int, int] = TEXT_COLOR
    line_height: float = 1.5


@dataclass(frozen=True)
class RuleElement:
    x0: float
    x1: float
    y: float
    dashed: bool = True
    color: Tuple[int, int, int] = DIVIDER_COLOR


@dataclass(frozen=True)
class PhotoSlot:
    box: Box
    radius: float = 8.0
    fill: Tuple[int, int, int] = PHOTO_BOX_FILL


@dataclass(frozen=True)
class CardFace:
    kind: str
    elements: Tuple[Any, ...]
    width: float = 230
    height: float = 365
    background: Tuple[int, int, int] = (255, 255, 255)

    def photo_slot(self) -> Optional[PhotoSlot]:
        for el in self.elements:
            if isinstance(el, PhotoSlot):
                return el
        return None

    def image_elements(self) -> List[ImageElement]:
        return [el for el in self.elements if isinstance(el, ImageElement)]

    def with_elements(self, elements) -> "CardFace":
        return replace(self, elements=tuple(elements))


def _text(box, text, size, **kwargs) -> TextElement:
    """Text element wrapped to its box width."""
    font = load_font(size, kwargs.get("bold", False))
    return TextElement(box=box, lines=tuple(wrap_text(text, font, box[2])), size=size, **kwargs)


def _block_height(el: TextElement) -> float:
    return len(el.lines) * el.size * el.line_height


# ----------------------------
# Templates
# ----------------------------
def build_front_face(record: EmployeeRecord, branding: Branding, config: Optional[StudioConfig] = None,
                     frame: Optional[TargetFrame] = None) -> CardFace:
    """Front face; ``frame`` is the export photo frame the slot will receive."""
    config = config or StudioConfig()
    frame = frame or config.photo_frame
    _, _, box_w, box_h = config.photo_box
    if not frame.matches_box(box_w, box_h):
        raise ValueError(
            f"Photo frame {frame.width_in:g}x{frame.height_in:g} in does not match the photo box {box_w}x{box_h}")
    width, height = config.layout_width, config.layout_height
    elements = []
    if branding.front_logo is not None:
        elements.append(ImageElement(name="front_logo", box=((width - 100) / 2, 20, 100, 40), source=branding.front_logo))

    name = (record.full_name or "FULL NAME").upper()
    elements.append(_text((12, 60, width - 24, 24), name, 15, bold=True, align="center", line_height=1.4))
    elements.append(PhotoSlot(box=tuple(config.photo_box)))
    return CardFace(kind=FRONT, elements=tuple(elements), width=width, height=height)


def build_back_face(record: EmployeeRecord, branding: Branding, config: Optional[StudioConfig] = None) -> CardFace:
    config = config or StudioConfig()
    width, height = config.layout_width, config.layout_height
    left, inner_w = 12, width - 24
    elements = []
    if branding.back_logo is not None:
        elements.append(ImageElement(name="back_logo", box=((width - 120) / 2, 12, 120, 48), source=branding.back_logo))

    # Detail rows: label | colon | value
    rows = [
        ("Emp ID", record.employee_id or EMPTY_VALUE),
        ("Blood Group", record.blood_group or EMPTY_VALUE),
        ("Emergency No", record.emergency_display),
    ]
    y = 84.0
    for label, value in rows:
        elements.append(_text((left, y, 92, 16.5), label, 11, bold=True))
        elements.append(_text((left + 96, y, 16, 16.5), ":", 11))
        value_el = _text((left + 108, y, inner_w - 108, 16.5), value, 11)
        elements.append(value_el)
        y += max(16.5, _block_height(value_el)) + 4
    y += 2

    elements.append(RuleElement(left, left + inner_w, y + 6))
    y += 18

    branch = branding.branch(record.branch)
    blocks = [
        _text((left, y, inner_w, 0), "IF FOUND PLEASE RETURN TO :", 8.8),
        _text((left, 0, inner_w, 0), branding.organisation_name, 9.8, bold=True),
    ]
    if branch is not None and branch.address:
        blocks.append(_text((left, 0, inner_w, 0), branch.address, 8.8, line_height=1.25))
    else:
        blocks.append(_text((left, 0, inner_w, 0), f"Address not configured for {record.branch}", 8.8))
    y = _stack(elements, blocks, y, gap=6)

    elements.append(RuleElement(left, left + inner_w, y + 6))
    y += 18

    phone = (branch.phone if branch else "") or branding.contact_phone or EMPTY_VALUE
    email = (branch.email if branch else "") or branding.contact_email or EMPTY_VALUE
    website = (branch.website if branch else "") or branding.contact_website or EMPTY_VALUE
    contacts = [
        _text((left, 0, inner_w, 0), f"Tel : {phone}", 8.8, bold=True),
        _text((left, 0, inner_w, 0), email, 8.8, bold=True),
        _text((left, 0, inner_w, 0), website, 8.8, bold=True),
    ]
    _stack(elements, contacts, y, gap=6)
    return CardFace(kind=BACK, elements=tuple(elements), width=width, height=height)


def _stack(elements, blocks, y, gap):
    """Place text blocks top to bottom starting at y; returns the next y."""
    for block in blocks:
        h = _block_height(block)
        x, _, w, _ = block.box
        elements.append(replace(block, box=(x, y, w, h)))
        y += h + gap
    return y - gap
