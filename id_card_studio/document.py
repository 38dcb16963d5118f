"""
Document assembly: two-page card PDF, standalone PNGs and the ZIP bundle.
"""
import io
import os
import re
import zipfile
import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from id_card_studio.card import EmployeeRecord
from id_card_studio.errors import AssembleError, EncodeError, OutputError
from id_card_studio.geometry import in_to_pt

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9]")


def sanitize_name(value: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _UNSAFE.sub("_", value)


def record_stem(record: EmployeeRecord) -> str:
    stem = sanitize_name(record.full_name or "employee")
    if record.employee_id:
        stem = f"{stem}_{sanitize_name(record.employee_id)}"
    return stem


@dataclass(frozen=True)
class ExportArtifact:
    front: Image.Image
    back: Image.Image
    pdf_bytes: bytes
    front_png: bytes
    back_png: bytes
    archive_bytes: bytes
    stem: str

    @property
    def pdf_name(self) -> str:
        return f"{self.stem}_ID_Card.pdf"

    @property
    def front_name(self) -> str:
        return f"{self.stem}_Front.png"

    @property
    def back_name(self) -> str:
        return f"{self.stem}_Back.png"

    @property
    def archive_name(self) -> str:
        return f"{self.stem}_ID_Card.zip"

    @property
    def entry_names(self) -> Tuple[str, str, str]:
        return self.pdf_name, self.front_name, self.back_name


class DocumentAssembler:
    def __init__(self, card_width_in: float, card_height_in: float):
        self.page_size = (in_to_pt(card_width_in), in_to_pt(card_height_in))

    def encode_png(self, bitmap: Image.Image, label: str) -> bytes:
        buf = io.BytesIO()
        try:
            bitmap.save(buf, format="PNG")
        except (OSError, ValueError) as e:
            raise EncodeError(f"could not encode {label} image as PNG: {e}") from e
        data = buf.getvalue()
        if not data:
            raise EncodeError(f"{label} image encoded to an empty file")
        return data

    def build_pdf(self, front: Image.Image, back: Image.Image) -> bytes:
        """Two uncompressed pages, each face stretched to the full card."""
        page_w, page_h = self.page_size
        buf = io.BytesIO()
        try:
            c = canvas.Canvas(buf, pagesize=(page_w, page_h), pageCompression=0)
            c.setTitle("ID Card")
            for face in (front, back):
                c.drawImage(ImageReader(face.convert("RGB")), 0, 0, width=page_w, height=page_h)
                c.showPage()
            c.save()
        except (OSError, ValueError) as e:
            raise EncodeError(f"could not build card PDF: {e}") from e
        return buf.getvalue()

    def build_archive(self, entries) -> bytes:
        """ZIP of (name, bytes) pairs; built fully in memory or not at all."""
        buf = io.BytesIO()
        try:
            with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for name, data in entries:
                    if not data:
                        raise AssembleError(f"archive entry {name} is empty")
                    zf.writestr(name, data)
        except (OSError, ValueError, zipfile.BadZipFile) as e:
            raise AssembleError(f"could not build archive: {e}") from e
        return buf.getvalue()

    def assemble(self, front: Image.Image, back: Image.Image, record: EmployeeRecord) -> ExportArtifact:
        front_png = self.encode_png(front, "front")
        back_png = self.encode_png(back, "back")
        pdf_bytes = self.build_pdf(front, back)
        stem = record_stem(record)
        archive = self.build_archive([
            (f"{stem}_ID_Card.pdf", pdf_bytes),
            (f"{stem}_Front.png", front_png),
            (f"{stem}_Back.png", back_png),
        ])
        artifact = ExportArtifact(front, back, pdf_bytes, front_png, back_png, archive, stem)
        logger.info("Assembled %s (%d bytes)", artifact.archive_name, len(archive))
        return artifact


def write_file(path, data: bytes) -> str:
    """Write an artifact, creating its folder; disk errors become OutputError."""
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "wb") as fh:
            fh.write(data)
    except OSError as e:
        raise OutputError(f"could not write {path}: {e}") from e
    logger.info("Wrote %s (%d bytes)", path, len(data))
    return path
