"""
On-page annotation boxes.

The text box chrome is built by :func:`build_editor_chrome`, which is also
used for the hidden mirror the font metrics probe measures, so the probe
always sees the same borders and padding as the visible boxes.
"""
from PyQt5.QtCore import QEvent, QPoint, Qt, pyqtSignal
from PyQt5.QtGui import QFont, QPixmap
from PyQt5.QtWidgets import QFrame, QLabel, QPlainTextEdit, QVBoxLayout

from fillsign.config import rgb01_to_hex
from fillsign.core.annotations import StampAnnotation, TextAnnotation
from fillsign.core.drag import HitRegion

HANDLE_MARGIN = 6
EDITOR_PADDING = 2

WRAPPER_STYLE = """
    QFrame#AnnotationBox {
        background: rgba(255, 255, 255, 40);
        border: 1px dashed #7A899C;
        border-radius: 3px;
    }
    QFrame#AnnotationBox[active="true"] {
        border: 1px solid #3D7BFD;
    }
"""


def install_editor_chrome(wrapper: QFrame) -> QPlainTextEdit:
    """
    Give a frame the text box border and padding and add the editing control.

    Returns:
        The editor placed inside the frame
    """
    wrapper.setObjectName("AnnotationBox")
    wrapper.setFrameShape(QFrame.Box)
    wrapper.setLineWidth(1)
    wrapper.setStyleSheet(WRAPPER_STYLE)

    layout = QVBoxLayout(wrapper)
    layout.setContentsMargins(HANDLE_MARGIN, HANDLE_MARGIN, HANDLE_MARGIN, HANDLE_MARGIN)
    layout.setSpacing(0)

    editor = QPlainTextEdit(wrapper)
    editor.setFrameShape(QFrame.NoFrame)
    editor.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
    editor.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
    editor.setLineWrapMode(QPlainTextEdit.NoWrap)
    editor.setContentsMargins(0, 0, 0, 0)
    editor.document().setDocumentMargin(EDITOR_PADDING)
    editor.setStyleSheet("QPlainTextEdit { background: transparent; }")
    layout.addWidget(editor)
    return editor


def build_editor_chrome(parent=None):
    """
    Create a standalone wrapper frame and editing control of a text box.

    Returns:
        Tuple of (wrapper QFrame, QPlainTextEdit)
    """
    wrapper = QFrame(parent)
    return wrapper, install_editor_chrome(wrapper)


class AnnotationBox(QFrame):
    """Base for boxes that forward pointer drags to the page editor."""

    # Signals
    drag_pressed = pyqtSignal(str, QPoint, object)  # id, pos in page, HitRegion
    drag_moved = pyqtSignal(QPoint)
    drag_released = pyqtSignal()

    def __init__(self, annotation_id: str, parent=None):
        super().__init__(parent)
        self.annotation_id = annotation_id

    def _page_pos(self, event) -> QPoint:
        return self.mapToParent(event.pos())

    def hit_region(self) -> HitRegion:
        return HitRegion.HANDLE

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.drag_pressed.emit(self.annotation_id, self._page_pos(event), self.hit_region())
            event.accept()
        else:
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        self.drag_moved.emit(self._page_pos(event))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.drag_released.emit()

    def set_active(self, active: bool):
        self.setProperty("active", "true" if active else "false")
        self.style().unpolish(self)
        self.style().polish(self)


class TextAnnotationBox(AnnotationBox):
    """
    Editable text box whose top-left corner sits on the annotation anchor.

    Presses on the border drag the box; presses inside the editor are left
    to the editor for caret placement and selection.
    """

    text_edited = pyqtSignal(str, str)  # id, text
    focused = pyqtSignal(str)

    def __init__(self, annotation: TextAnnotation, parent=None):
        super().__init__(annotation.id, parent)
        self._updating = False
        self.editor = install_editor_chrome(self)
        self.editor.setPlainText(annotation.text)
        self.editor.textChanged.connect(self._on_text_changed)
        self.editor.installEventFilter(self)

    def eventFilter(self, obj, event):
        if obj is self.editor and event.type() == QEvent.FocusIn:
            self.focused.emit(self.annotation_id)
        return super().eventFilter(obj, event)

    def _on_text_changed(self):
        if not self._updating:
            self.text_edited.emit(self.annotation_id, self.editor.toPlainText())
            self.adjust_size()

    def apply(self, annotation: TextAnnotation, pixels_per_point: float, font: QFont):
        """Sync text, font size and colour from the annotation."""
        self._updating = True
        try:
            if self.editor.toPlainText() != annotation.text:
                self.editor.setPlainText(annotation.text)
            font = QFont(font)
            font.setPixelSize(max(1, round(annotation.size_pt * pixels_per_point)))
            self.editor.setFont(font)
            self.editor.setStyleSheet(
                "QPlainTextEdit { background: transparent; color: %s; }"
                % rgb01_to_hex(annotation.color))
        finally:
            self._updating = False
        self.adjust_size()

    def adjust_size(self):
        fm = self.editor.fontMetrics()
        lines = self.editor.toPlainText().split("\n") or [""]
        text_w = max(fm.horizontalAdvance(line) for line in lines) + fm.averageCharWidth()
        text_h = fm.lineSpacing() * len(lines)
        margins = self.contentsMargins()
        lm = self.layout().contentsMargins()
        pad = self.editor.document().documentMargin() * 2
        self.resize(int(text_w + pad + margins.left() + margins.right() + lm.left() + lm.right()),
                    int(text_h + pad + margins.top() + margins.bottom() + lm.top() + lm.bottom()))


class StampAnnotationBox(AnnotationBox):
    """Shows a stamp image scaled to its width; the whole image is a drag handle."""

    def __init__(self, annotation: StampAnnotation, parent=None):
        super().__init__(annotation.id, parent)
        self.setObjectName("AnnotationBox")
        self.setStyleSheet(WRAPPER_STYLE)
        self._label = QLabel(self)
        self._label.setAttribute(Qt.WA_TransparentForMouseEvents)
        self._label.setScaledContents(True)
        self._pixmap = QPixmap()
        self._pixmap.loadFromData(annotation.image)
        self.setCursor(Qt.SizeAllCursor)

    def hit_region(self) -> HitRegion:
        return HitRegion.BODY

    @property
    def aspect(self) -> float:
        if self._pixmap.isNull() or self._pixmap.width() == 0:
            return 1.0
        return self._pixmap.height() / self._pixmap.width()

    def apply(self, annotation: StampAnnotation, pixels_per_point: float):
        width = max(1, round(annotation.width_pt * pixels_per_point))
        height = max(1, round(width * self.aspect))
        self.resize(width, height)
        self._label.setGeometry(0, 0, width, height)
        self._label.setPixmap(self._pixmap)
