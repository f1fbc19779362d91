"""
Page surface that shows the rendered page with live annotation boxes on top.
"""
import logging
from typing import Dict, Optional

from PyQt5.QtCore import QPoint, QRectF, Qt
from PyQt5.QtGui import QColor, QFont, QPainter, QPixmap
from PyQt5.QtWidgets import QWidget

from fillsign.controllers import FillSignController, Tool
from fillsign.core.annotations import AnnotationKind
from fillsign.core.document.renderer import RenderResult
from fillsign.core.geometry import to_css_point
from fillsign.ui.text_box import AnnotationBox, StampAnnotationBox, TextAnnotationBox

logger = logging.getLogger(__name__)


class PageEditorWidget(QWidget):
    """
    Paints the page raster and keeps one child box per annotation on the page.

    Boxes are positioned from the annotation anchors through the current
    geometry, so zoom and resize changes move them along with the raster.
    Pointer drags on boxes are handed to the controller's drag handling.
    """

    def __init__(self, controller: FillSignController, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.page_pixmap: Optional[QPixmap] = None
        self._boxes: Dict[str, AnnotationBox] = {}
        self._editor_font = QFont(controller.settings.editor_font_family)

        self.setMouseTracking(False)
        self.setFocusPolicy(Qt.StrongFocus)
        self.setMinimumSize(controller.settings.min_view_width_px, 100)

        controller.set_pointer_release(self._release_pointer)
        controller.annotations_changed.connect(self.sync_annotations)
        controller.annotation_selected.connect(self._on_selected)
        controller.geometry_changed.connect(lambda _g: self.sync_annotations())
        controller.page_changed.connect(lambda _p: self.sync_annotations())
        controller.source_changed.connect(self._on_source_changed)

    @property
    def editor_font(self) -> QFont:
        return self._editor_font

    def set_editor_font(self, font: QFont):
        self._editor_font = QFont(font)
        self.sync_annotations()

    # ------------------------------------------------------------------
    # Raster
    # ------------------------------------------------------------------

    def set_render_result(self, result: RenderResult):
        """Show a completed render and adopt its layout size."""
        geometry = result.geometry
        self.page_pixmap = QPixmap.fromImage(result.image)
        self.page_pixmap.setDevicePixelRatio(result.device_pixel_ratio)
        self.setFixedSize(geometry.css_width, geometry.css_height)
        self.controller.set_layout(geometry.base_width_css, result.device_pixel_ratio)
        self.sync_annotations()
        self.update()

    def _on_source_changed(self, _source):
        self.page_pixmap = None
        self._clear_boxes()
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(255, 255, 255))
        if self.page_pixmap is not None:
            painter.setRenderHint(QPainter.SmoothPixmapTransform)
            painter.drawPixmap(QRectF(self.rect()), self.page_pixmap,
                               QRectF(self.page_pixmap.rect()))
        painter.end()

    # ------------------------------------------------------------------
    # Annotation boxes
    # ------------------------------------------------------------------

    def _clear_boxes(self):
        for box in self._boxes.values():
            box.deleteLater()
        self._boxes.clear()

    def sync_annotations(self):
        """Create, update and remove boxes to match the current page."""
        controller = self.controller
        geometry = controller.geometry
        ppp = geometry.pixels_per_point
        visible = {a.id: a for a in controller.annotations_on_page()}

        for annotation_id in list(self._boxes):
            if annotation_id not in visible:
                self._boxes.pop(annotation_id).deleteLater()

        for annotation in visible.values():
            box = self._boxes.get(annotation.id)
            if box is None:
                box = self._create_box(annotation)
                self._boxes[annotation.id] = box

            x, y = to_css_point(annotation.x_pt, annotation.y_pt, geometry)
            if annotation.kind is AnnotationKind.TEXT:
                box.apply(annotation, ppp, self._editor_font)
                # Top-left corner on the anchor
                box.move(round(x), round(y))
            else:
                box.apply(annotation, ppp)
                # Bottom-left corner on the anchor
                box.move(round(x), round(y - box.height()))
            box.set_active(annotation.id == controller.store.active_id)
            box.show()

    def _create_box(self, annotation) -> AnnotationBox:
        if annotation.kind is AnnotationKind.TEXT:
            box = TextAnnotationBox(annotation, self)
            box.text_edited.connect(self.controller.set_text)
            box.focused.connect(self.controller.select)
        else:
            box = StampAnnotationBox(annotation, self)
        box.drag_pressed.connect(self._on_drag_pressed)
        box.drag_moved.connect(self._on_drag_moved)
        box.drag_released.connect(self.controller.end_drag)
        return box

    def _on_selected(self, annotation_id):
        for box_id, box in self._boxes.items():
            box.set_active(box_id == annotation_id)

    # ------------------------------------------------------------------
    # Pointer handling
    # ------------------------------------------------------------------

    def _on_drag_pressed(self, annotation_id: str, pos: QPoint, region):
        if self.controller.begin_drag(annotation_id, pos.x(), pos.y(), region):
            box = self._boxes.get(annotation_id)
            if box is not None:
                box.grabMouse(Qt.ClosedHandCursor)
        else:
            self.controller.select(annotation_id)

    def _on_drag_moved(self, pos: QPoint):
        self.controller.drag_to(pos.x(), pos.y())

    def _release_pointer(self):
        grabber = QWidget.mouseGrabber()
        if grabber is not None:
            grabber.releaseMouse()

    def mousePressEvent(self, event):
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return
        if self.controller.tool is Tool.SELECT:
            self.controller.select(None)
            self.setFocus()
            return
        annotation_id = self.controller.place_at(event.pos().x(), event.pos().y())
        box = self._boxes.get(annotation_id) if annotation_id else None
        if isinstance(box, TextAnnotationBox):
            box.editor.setFocus()
            box.editor.selectAll()

    def mouseReleaseEvent(self, event):
        # The grabbing box may be gone if its annotation was removed mid-drag
        if event.button() == Qt.LeftButton:
            self.controller.end_drag()
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):
        if event.key() in (Qt.Key_Delete, Qt.Key_Backspace):
            if self.controller.remove_active():
                return
        elif event.key() == Qt.Key_Escape:
            self.controller.end_drag()
            self.controller.set_tool(Tool.SELECT)
            return
        super().keyPressEvent(event)
