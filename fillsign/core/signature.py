"""
Signature capture: freehand drawing, uploaded images and typed signatures.

Every mode produces PNG bytes that become the payload of a stamp annotation.
"""
import logging
import math
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PyQt5.QtCore import QBuffer, QByteArray, QIODevice, QPointF, Qt
from PyQt5.QtGui import (QColor, QFont, QFontDatabase, QFontMetricsF, QImage,
                         QPainter, QPen, QTransform)

from fillsign.config import Settings
from fillsign.core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
TYPED_LINE_SPACING = 1.2
FALLBACK_FAMILIES = ["Helvetica", "Arial", "sans-serif"]

ColorLike = Union[str, QColor]


def image_to_png(image: QImage) -> bytes:
    """Encode a QImage as PNG bytes."""
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data)


def decode_image(data: bytes) -> QImage:
    """
    Decode raster image bytes.

    Raises:
        ImageDecodeError: If the bytes are not a readable image
    """
    image = QImage.fromData(data) if data else QImage()
    if image.isNull():
        raise ImageDecodeError("Signature image could not be decoded")
    return image


def load_font_file(path: Union[str, Path]) -> Optional[str]:
    """
    Register a font file with Qt.

    Returns:
        The first family name it provides, or None if loading failed
    """
    font_id = QFontDatabase.addApplicationFont(str(path))
    if font_id < 0:
        logger.warning("Could not load font file %s", path)
        return None
    families = QFontDatabase.applicationFontFamilies(font_id)
    return families[0] if families else None


def contain_fit(image_size: Tuple[int, int],
                box_size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """
    Fit an image inside a box, preserving aspect ratio and centring it.

    Returns:
        Tuple of (x, y, width, height) within the box
    """
    iw, ih = image_size
    bw, bh = box_size
    scale = min(bw / iw, bh / ih)
    dw = max(1, math.floor(iw * scale))
    dh = max(1, math.floor(ih * scale))
    return (bw - dw) // 2, (bh - dh) // 2, dw, dh


def _transparent_image(width: int, height: int) -> QImage:
    image = QImage(width, height, QImage.Format_ARGB32_Premultiplied)
    image.fill(Qt.transparent)
    return image


class FreehandPad:
    """Fixed-size transparent surface that accumulates pointer strokes."""

    def __init__(self, width: int = 290, height: int = 140,
                 stroke_width: float = 2.0, color: ColorLike = "#1111FF"):
        self.width = width
        self.height = height
        self.stroke_width = stroke_width
        self.color = QColor(color)
        self.image = _transparent_image(width, height)
        self._last: Optional[QPointF] = None
        self._has_ink = False

    @property
    def is_drawing(self) -> bool:
        return self._last is not None

    @property
    def is_empty(self) -> bool:
        return not self._has_ink

    def begin_stroke(self, x: float, y: float) -> None:
        self._last = QPointF(x, y)

    def extend_stroke(self, x: float, y: float) -> None:
        if self._last is None:
            return
        point = QPointF(x, y)
        painter = QPainter(self.image)
        painter.setRenderHint(QPainter.Antialiasing)
        pen = QPen(self.color, self.stroke_width)
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        painter.setPen(pen)
        painter.drawLine(self._last, point)
        painter.end()
        self._last = point
        self._has_ink = True

    def end_stroke(self) -> None:
        self._last = None

    def clear(self) -> None:
        self.image.fill(Qt.transparent)
        self._last = None
        self._has_ink = False

    def to_png(self) -> bytes:
        return image_to_png(self.image)


def _split_lines(text: str) -> List[str]:
    return re.split(r"\r?\n", text)


def render_typed_signature(text: str, family: str, size_px: int,
                           color: ColorLike = "#1111FF", slant_deg: float = 0.0,
                           padding: int = 12) -> Optional[bytes]:
    """
    Draw typed text into a tightly fitted transparent PNG.

    Each line is measured with the chosen font; the canvas is the union of
    the line boxes plus padding. Baselines are spaced ``size * 1.2`` apart.
    A non-zero slant shears the glyphs horizontally, and the canvas grows
    by the shear so no ink is clipped.

    Returns:
        PNG bytes, or None for empty or whitespace-only text
    """
    if not text.strip():
        return None

    # Only blank lines around the text are dropped; indentation is kept
    lines = _split_lines(text.strip("\r\n"))
    line_height = round(size_px * TYPED_LINE_SPACING)

    font = QFont(family)
    font.setFamilies([family] + FALLBACK_FAMILIES)
    font.setPixelSize(size_px)
    fm = QFontMetricsF(font)

    max_w = max_asc = max_desc = 0
    for line in lines:
        rect = fm.tightBoundingRect(line or " ")
        if rect.isEmpty():
            asc, desc, w = size_px * 0.8, size_px * 0.2, 0.0
        else:
            # Ink is measured from the pen origin so leading spaces count
            asc, desc, w = -rect.top(), rect.bottom(), max(rect.right(), rect.width())
        max_w = max(max_w, math.ceil(w))
        max_asc = max(max_asc, math.ceil(asc))
        max_desc = max(max_desc, math.ceil(desc))

    height = max(1, padding * 2 + max_asc + max_desc + (len(lines) - 1) * line_height)
    shear = math.tan(math.radians(slant_deg))
    extra = math.ceil(abs(shear) * height)
    width = max(1, max_w + padding * 2) + extra

    image = _transparent_image(width, height)
    painter = QPainter(image)
    painter.setRenderHint(QPainter.Antialiasing)
    painter.setRenderHint(QPainter.TextAntialiasing)
    painter.setFont(font)
    painter.setPen(QColor(color))

    if slant_deg:
        # Tops lean right for positive slant; bottoms stay at the padding
        offset = extra if shear < 0 else 0
        painter.setTransform(QTransform(1, 0, -shear, 1, shear * height + offset, 0))

    y = padding + max_asc
    for line in lines:
        painter.drawText(QPointF(padding, y), line)
        y += line_height
    painter.end()

    return image_to_png(image)


class SignatureCapture:
    """
    Holds the current signature payload and the freehand drawing pad.

    A payload is only replaced by a successful capture; failed or empty
    captures leave the previous one in place.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.pad = FreehandPad(self.settings.pad_width_px,
                               self.settings.pad_height_px,
                               self.settings.pad_stroke_width,
                               self.settings.text_color)
        self.payload: Optional[bytes] = None
        self.typed_family = self.settings.typed_font_family

    def load_typed_font(self, path: Union[str, Path]) -> bool:
        """Register a font file and use its family for typed signatures."""
        family = load_font_file(path)
        if not family:
            return False
        self.typed_family = family
        return True

    @property
    def has_payload(self) -> bool:
        return self.payload is not None

    def payload_size(self) -> Optional[Tuple[int, int]]:
        if self.payload is None:
            return None
        image = decode_image(self.payload)
        return image.width(), image.height()

    def set_color(self, color: ColorLike) -> None:
        self.pad.color = QColor(color)

    def save_freehand(self) -> bool:
        """Rasterise the pad into the payload. An untouched pad is ignored."""
        if self.pad.is_empty:
            return False
        self.payload = self.pad.to_png()
        return True

    def upload(self, data: bytes) -> bytes:
        """
        Use an image file's bytes as the payload.

        PNG bytes are kept as-is; other raster formats are re-encoded to PNG.

        Raises:
            ImageDecodeError: If the bytes are not an image
        """
        image = decode_image(data)
        self.payload = data if data.startswith(PNG_SIGNATURE) else image_to_png(image)
        return self.payload

    def upload_file(self, path: Union[str, Path]) -> bytes:
        with open(path, 'rb') as f:
            return self.upload(f.read())

    def make_typed(self, text: str, family: Optional[str] = None,
                   size_px: Optional[int] = None, color: Optional[ColorLike] = None,
                   slant_deg: Optional[float] = None) -> bool:
        """
        Create a typed signature payload.

        Returns:
            False (payload untouched) if the text is empty or whitespace
        """
        png = render_typed_signature(
            text,
            family or self.typed_family,
            self.settings.clamp_typed_size(size_px if size_px is not None else self.settings.typed_size_px),
            color if color is not None else self.pad.color,
            self.settings.clamp_slant(slant_deg if slant_deg is not None else self.settings.typed_slant_deg),
            self.settings.typed_padding_px,
        )
        if png is None:
            return False
        self.payload = png
        return True

    def clear(self) -> None:
        self.pad.clear()
        self.payload = None
