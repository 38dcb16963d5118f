"""
Font lookup for card text.
"""
import os
import platform
import logging
from functools import lru_cache

from PIL import ImageFont

logger = logging.getLogger(__name__)


def _candidate_paths(bold):
    system = platform.system()
    if system == "Windows":
        win_fonts = os.path.join(os.environ.get("WINDIR", "C:\\Windows"), "Fonts")
        names = ["arialbd.ttf", "segoeuib.ttf"] if bold else ["arial.ttf", "segoeui.ttf"]
        return [os.path.join(win_fonts, n) for n in names]
    if system == "Darwin":
        base = "/System/Library/Fonts/Supplemental"
        names = ["Arial Bold.ttf"] if bold else ["Arial.ttf"]
        return [os.path.join(base, n) for n in names] + ["/System/Library/Fonts/Helvetica.ttc"]
    if bold:
        return [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
            "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
            "DejaVuSans-Bold.ttf",
        ]
    return [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "DejaVuSans.ttf",
    ]


@lru_cache(maxsize=None)
def font_path(bold=False):
    """First installed TrueType font for the weight, or None."""
    for path in _candidate_paths(bold):
        try:
            ImageFont.truetype(path, 10)
        except OSError:
            continue
        return path
    logger.warning("No TrueType %s font found; using Pillow's default font", "bold" if bold else "regular")
    return None


@lru_cache(maxsize=256)
def load_font(size: float, bold=False):
    size = max(1.0, float(size))
    path = font_path(bold)
    if path is None:
        return ImageFont.load_default(size=size)
    return ImageFont.truetype(path, size)


def wrap_text(text, font, max_width):
    """Greedy word wrap; explicit newlines are kept."""
    lines = []
    for paragraph in str(text).split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if font.getlength(candidate) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines
