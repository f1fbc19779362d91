"""
Signature capture widgets: the freehand pad and the payload preview.
"""
from PyQt5.QtCore import QRect, QSize, Qt, pyqtSignal
from PyQt5.QtGui import QColor, QImage, QPainter, QPen
from PyQt5.QtWidgets import QSizePolicy, QWidget

from fillsign.core.signature import FreehandPad, contain_fit


class SignaturePadWidget(QWidget):
    """Draws strokes into a :class:`FreehandPad` under the pointer."""

    stroke_finished = pyqtSignal()

    def __init__(self, pad: FreehandPad, parent=None):
        super().__init__(parent)
        self.pad = pad
        self.setFixedSize(pad.width, pad.height)
        self.setCursor(Qt.CrossCursor)

    def clear(self):
        self.pad.clear()
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(255, 255, 255))
        painter.setPen(QPen(QColor("#C8CDD4"), 1, Qt.DashLine))
        baseline = int(self.height() * 0.75)
        painter.drawLine(12, baseline, self.width() - 12, baseline)
        painter.drawImage(0, 0, self.pad.image)
        painter.end()

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.pad.begin_stroke(event.pos().x(), event.pos().y())

    def mouseMoveEvent(self, event):
        if self.pad.is_drawing:
            self.pad.extend_stroke(event.pos().x(), event.pos().y())
            self.update()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton and self.pad.is_drawing:
            self.pad.end_stroke()
            self.stroke_finished.emit()


class SignaturePreview(QWidget):
    """Shows the current signature payload scaled to fit, centred."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._image = QImage()
        self.setMinimumSize(120, 60)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

    def sizeHint(self):
        return QSize(240, 80)

    def set_payload(self, payload):
        self._image = QImage.fromData(payload) if payload else QImage()
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(250, 250, 250))
        if self._image.isNull():
            painter.setPen(QColor("#7A899C"))
            painter.drawText(self.rect(), Qt.AlignCenter, "No signature")
        else:
            x, y, w, h = contain_fit((self._image.width(), self._image.height()),
                                     (self.width(), self.height()))
            painter.setRenderHint(QPainter.SmoothPixmapTransform)
            painter.drawImage(QRect(x, y, w, h), self._image)
        painter.end()
