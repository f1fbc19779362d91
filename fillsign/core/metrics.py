"""
Font and box-model measurements of the live text editing control.

Exported text has to land on the same baseline the user saw in the editor.
The editor box hangs from the annotation anchor (its top-left corner), and
the first glyph baseline sits below that corner by the chrome's padding and
border plus the top half-leading and the font ascent. This module measures
those quantities on a hidden mirror of the editor chrome.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from PyQt5.QtCore import QObject, QTimer, pyqtSignal
from PyQt5.QtGui import QFont, QFontMetricsF
from PyQt5.QtWidgets import QFrame, QPlainTextEdit

logger = logging.getLogger(__name__)

PROBE_TEXT = "Mg"
PROBE_PIXEL_SIZE = 100
NORMAL_LINE_HEIGHT = 1.2


@dataclass(frozen=True)
class FontMetricsSnapshot:
    """Size-independent font ratios and the editor chrome offset (px)."""

    ascent_ratio: float = 0.8
    descent_ratio: float = 0.2
    line_height_ratio: float = NORMAL_LINE_HEIGHT
    struct_left_px: float = 12.0
    struct_top_px: float = 8.0

    def baseline_within_line_px(self, font_px: float) -> float:
        """Distance from the top of a line box to its baseline."""
        ascent = self.ascent_ratio * font_px
        descent = self.descent_ratio * font_px
        line = self.line_height_ratio * font_px
        return (line - (ascent + descent)) / 2 + ascent

    def structural_offset_pt(self, pixels_per_point: float) -> float:
        return self.struct_left_px / pixels_per_point

    def baseline_correction_pt(self, size_pt: float, pixels_per_point: float) -> float:
        """
        Signed y shift from the anchor to the first baseline, in points.

        Negative: the baseline lies below the anchor and PDF y grows upward.
        """
        font_px = size_pt * pixels_per_point
        return -(self.struct_top_px + self.baseline_within_line_px(font_px)) / pixels_per_point

    def text_origin_pt(self, x_pt: float, y_pt: float, size_pt: float,
                       pixels_per_point: float) -> Tuple[float, float]:
        """Exported baseline origin of the first line for an anchor."""
        return (x_pt + self.structural_offset_pt(pixels_per_point),
                y_pt + self.baseline_correction_pt(size_pt, pixels_per_point))

    def line_spacing_pt(self, size_pt: float) -> float:
        return self.line_height_ratio * size_pt


def measure_structure(wrapper: QFrame, editor: QPlainTextEdit) -> Tuple[float, float]:
    """
    Sum the padding and borders between the wrapper's corner and the text origin.

    QFrame reports its frame width through ``contentsMargins``; the layout
    margins of the wrapper and the document margin of the editor add to it.

    Returns:
        Tuple of (left, top) in logical pixels
    """
    wrapper.ensurePolished()
    editor.ensurePolished()

    wm = wrapper.contentsMargins()
    left = float(wm.left())
    top = float(wm.top())

    layout = wrapper.layout()
    if layout is not None:
        lm = layout.contentsMargins()
        left += lm.left()
        top += lm.top()

    em = editor.contentsMargins()
    doc_margin = editor.document().documentMargin()
    left += em.left() + doc_margin
    top += em.top() + doc_margin
    return left, top


def measure_font(font: QFont, line_height: Optional[float] = None) -> Tuple[float, float, float]:
    """
    Measure ascent, descent and line-height ratios for a font.

    The probe string is drawn at a fixed reference size and the tight ink
    bounding box is read, so the ratios reflect the glyphs rather than the
    font's nominal metrics.

    Args:
        font: Resolved font of the editing control
        line_height: Line height as a multiple of font size; None means normal

    Returns:
        Tuple of (ascent_ratio, descent_ratio, line_height_ratio)
    """
    probe = QFont(font)
    probe.setPixelSize(PROBE_PIXEL_SIZE)
    rect = QFontMetricsF(probe).tightBoundingRect(PROBE_TEXT)

    if rect.isEmpty():
        logger.debug("Empty probe bounds for %s, using default ratios", probe.family())
        ascent, descent = 0.8, 0.2
    else:
        ascent = -rect.top() / PROBE_PIXEL_SIZE
        descent = max(0.0, rect.bottom()) / PROBE_PIXEL_SIZE

    ratio = line_height if line_height and line_height > 0 else NORMAL_LINE_HEIGHT
    return ascent, descent, ratio


MirrorFactory = Callable[[], Tuple[QFrame, QPlainTextEdit]]


class FontMetricsProbe(QObject):
    """
    Keeps a :class:`FontMetricsSnapshot` of the editor chrome up to date.

    The mirror widgets come from the same factory as the visible editor
    boxes so padding, borders and fonts match. Measurements must be
    repeated after the editor font changes and after application fonts
    are registered; :meth:`schedule_remeasure` defers to the next event
    loop turn so style sheets and fonts have settled.
    """

    metrics_changed = pyqtSignal(object)  # FontMetricsSnapshot

    def __init__(self, mirror_factory: MirrorFactory,
                 line_height: Optional[float] = NORMAL_LINE_HEIGHT, parent=None):
        super().__init__(parent)
        self._mirror_factory = mirror_factory
        self._line_height = line_height
        self._mirror: Optional[Tuple[QFrame, QPlainTextEdit]] = None
        self._font: Optional[QFont] = None
        self._pending = False
        self.snapshot = FontMetricsSnapshot()

    def set_editor_font(self, font: QFont) -> None:
        """Apply the live editor's font to the mirror and re-measure later."""
        self._font = QFont(font)
        self.schedule_remeasure()

    def set_line_height(self, line_height: Optional[float]) -> None:
        self._line_height = line_height
        self.schedule_remeasure()

    def _ensure_mirror(self) -> Tuple[QFrame, QPlainTextEdit]:
        if self._mirror is None:
            wrapper, editor = self._mirror_factory()
            wrapper.hide()
            self._mirror = (wrapper, editor)
        return self._mirror

    def measure(self) -> FontMetricsSnapshot:
        """Measure now and publish the snapshot."""
        self._pending = False
        wrapper, editor = self._ensure_mirror()
        if self._font is not None:
            editor.setFont(self._font)

        left, top = measure_structure(wrapper, editor)
        ascent, descent, line_height = measure_font(editor.font(), self._line_height)

        snapshot = FontMetricsSnapshot(
            ascent_ratio=ascent,
            descent_ratio=descent,
            line_height_ratio=line_height,
            struct_left_px=left,
            struct_top_px=top,
        )
        if snapshot != self.snapshot:
            logger.debug("Editor metrics updated: %s", snapshot)
            self.snapshot = snapshot
            self.metrics_changed.emit(snapshot)
        return snapshot

    def schedule_remeasure(self) -> None:
        """Measure on the next event loop iteration, coalescing repeated calls."""
        if self._pending:
            return
        self._pending = True
        QTimer.singleShot(0, self.measure)
