"""
Controller for one Fill & Sign editing session.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from PyQt5.QtCore import QObject, pyqtSignal

from fillsign.config import Settings, hex_to_rgb01
from fillsign.core.annotations import (AnnotationKind, AnnotationStore, StampAnnotation,
                                       TextAnnotation, new_annotation_id)
from fillsign.core.document.exporter import ExportCompositor
from fillsign.core.document.source import SourceDocument
from fillsign.core.drag import DragController, HitRegion
from fillsign.core.errors import ExportError, FillSignError, ImageDecodeError
from fillsign.core.export.export_worker import ExportWorker
from fillsign.core.geometry import (GeometryContext, clamp_zoom, step_zoom,
                                    to_pdf_point)
from fillsign.core.metrics import FontMetricsProbe, FontMetricsSnapshot
from fillsign.core.signature import SignatureCapture

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = (612.0, 792.0)  # US Letter


class Tool(Enum):
    SELECT = "select"
    TEXT = "text"
    STAMP = "stamp"


class FillSignController(QObject):
    """
    Ties the annotation store, drag handling, geometry and export together.

    The store and drag controller belong to the current source document;
    switching documents starts a new session with an empty store.
    """

    # Signals
    annotations_changed = pyqtSignal()
    annotation_selected = pyqtSignal(object)  # annotation id or None
    source_changed = pyqtSignal(object)  # SourceDocument or None
    page_changed = pyqtSignal(int)
    geometry_changed = pyqtSignal(object)  # GeometryContext
    tool_changed = pyqtSignal(object)  # Tool
    signature_changed = pyqtSignal(bool)  # has payload
    error_occurred = pyqtSignal(str)
    export_finished = pyqtSignal(bool, str)

    def __init__(self, settings: Optional[Settings] = None,
                 probe: Optional[FontMetricsProbe] = None, parent=None):
        super().__init__(parent)
        self.settings = settings or Settings()
        self.probe = probe
        self.capture = SignatureCapture(self.settings)
        self.compositor = ExportCompositor(self.settings.unicode_font_file)

        self.source: Optional[SourceDocument] = None
        self.page_index = 0
        self.geometry = GeometryContext(*DEFAULT_PAGE_SIZE)
        self.tool = Tool.TEXT

        self.text_size_pt = self.settings.clamp_text_size(self.settings.text_size_pt)
        self.text_color = self.settings.text_color
        self.stamp_width_pt = self.settings.clamp_stamp_width(self.settings.stamp_width_pt)

        self._release_pointer = None
        self._export_worker: Optional[ExportWorker] = None
        self.last_export_error: Optional[ExportError] = None
        self._new_session()

        if self.settings.typed_font_file:
            self.load_signature_font(self.settings.typed_font_file)

    # ------------------------------------------------------------------
    # Session / source
    # ------------------------------------------------------------------

    def _new_session(self) -> None:
        self.store = AnnotationStore()
        self.drag = DragController(self.store, lambda: self.pixels_per_point,
                                   self._on_release_pointer)

    def set_pointer_release(self, callback) -> None:
        """Register how the view releases a grabbed pointer at drag end."""
        self._release_pointer = callback

    def _on_release_pointer(self) -> None:
        if self._release_pointer is not None:
            self._release_pointer()

    def set_source(self, source: Optional[SourceDocument]) -> None:
        """Switch documents, discarding the annotations of the previous one."""
        self.drag.end()
        self.source = source
        self._new_session()
        self.page_index = 0
        self._update_page_geometry()
        self.source_changed.emit(source)
        self.annotations_changed.emit()
        self.annotation_selected.emit(None)
        self.page_changed.emit(self.page_index)

    def open_path(self, path: Union[str, Path]) -> bool:
        try:
            source = SourceDocument.from_path(path)
        except FillSignError as e:
            logger.error("Could not open %s: %s", path, e)
            self.error_occurred.emit(str(e))
            return False
        self.set_source(source)
        return True

    def open_bytes(self, data: bytes, name: str = "document.pdf") -> bool:
        try:
            source = SourceDocument.from_bytes(data, name)
        except FillSignError as e:
            logger.error("Could not open %s: %s", name, e)
            self.error_occurred.emit(str(e))
            return False
        self.set_source(source)
        return True

    @property
    def page_count(self) -> int:
        return self.source.page_count if self.source else 1

    def set_page(self, page_index: int) -> int:
        """Go to a page, clamping the index into the document. Returns the page shown."""
        page_index = max(0, min(self.page_count - 1, page_index))
        if page_index != self.page_index:
            self.drag.end()
            self.page_index = page_index
            self._update_page_geometry()
            self.page_changed.emit(page_index)
        return page_index

    def _update_page_geometry(self) -> None:
        if self.source is not None:
            width, height = self.source.page_size(self.page_index)
        else:
            width, height = DEFAULT_PAGE_SIZE
        g = self.geometry
        self.geometry = GeometryContext(width, height, g.base_width_css, g.zoom, g.device_pixel_ratio)
        self.geometry_changed.emit(self.geometry)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def pixels_per_point(self) -> float:
        return self.geometry.pixels_per_point

    @property
    def zoom(self) -> float:
        return self.geometry.zoom

    def set_zoom(self, zoom: float) -> float:
        zoom = clamp_zoom(zoom, self.settings.zoom_min, self.settings.zoom_max)
        if zoom != self.geometry.zoom:
            self.geometry = self.geometry.with_zoom(zoom)
            self.geometry_changed.emit(self.geometry)
        return zoom

    def zoom_in(self) -> float:
        return self.set_zoom(step_zoom(self.zoom, self.settings.zoom_step,
                                       self.settings.zoom_min, self.settings.zoom_max))

    def zoom_out(self) -> float:
        return self.set_zoom(step_zoom(self.zoom, -self.settings.zoom_step,
                                       self.settings.zoom_min, self.settings.zoom_max))

    def fit_width(self) -> float:
        return self.set_zoom(1.0)

    def set_layout(self, base_width_css: float, device_pixel_ratio: float = 1.0) -> None:
        """Record the fit-to-width size reported by the last completed render."""
        g = self.geometry
        if base_width_css == g.base_width_css and device_pixel_ratio == g.device_pixel_ratio:
            return
        self.geometry = GeometryContext(g.page_width_pt, g.page_height_pt,
                                        base_width_css, g.zoom, device_pixel_ratio)
        self.geometry_changed.emit(self.geometry)

    # ------------------------------------------------------------------
    # Tools and defaults
    # ------------------------------------------------------------------

    def set_tool(self, tool: Tool) -> None:
        if tool is Tool.STAMP and not self.capture.has_payload:
            return
        if tool is not self.tool:
            self.tool = tool
            self.tool_changed.emit(tool)

    def set_text_size(self, size_pt: float) -> float:
        self.text_size_pt = self.settings.clamp_text_size(size_pt)
        return self.text_size_pt

    def set_text_color(self, color: str) -> None:
        hex_to_rgb01(color)
        self.text_color = color
        self.capture.set_color(color)

    def set_stamp_width(self, width_pt: float) -> float:
        self.stamp_width_pt = self.settings.clamp_stamp_width(width_pt)
        return self.stamp_width_pt

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    def place_at(self, x_css: float, y_css: float) -> Optional[str]:
        """
        Place a new annotation with the current tool at an editor point.

        Returns:
            The new annotation id, or None if the tool does not place anything
        """
        if self.tool is Tool.SELECT:
            return None
        x_pt, y_pt = to_pdf_point(x_css, y_css, self.geometry)

        if self.tool is Tool.TEXT:
            annotation = TextAnnotation(
                id=new_annotation_id(),
                page_index=self.page_index,
                x_pt=x_pt,
                y_pt=y_pt,
                text=self.settings.default_text,
                size_pt=self.text_size_pt,
                color=hex_to_rgb01(self.text_color),
            )
        elif self.capture.payload is not None:
            annotation = StampAnnotation(
                id=new_annotation_id(),
                page_index=self.page_index,
                x_pt=x_pt,
                y_pt=y_pt,
                image=self.capture.payload,
                width_pt=self.stamp_width_pt,
            )
        else:
            return None

        self.store.add(annotation)
        self.store.set_active(annotation.id)
        self.annotations_changed.emit()
        self.annotation_selected.emit(annotation.id)
        self.set_tool(Tool.SELECT)
        return annotation.id

    def select(self, annotation_id: Optional[str]) -> None:
        if self.store.set_active(annotation_id):
            self.annotation_selected.emit(annotation_id)

    def set_text(self, annotation_id: str, text: str) -> bool:
        annotation = self.store.get(annotation_id)
        if annotation is None or annotation.kind is not AnnotationKind.TEXT:
            return False
        return self.store.update(annotation_id, text=text)

    def remove(self, annotation_id: str) -> bool:
        if self.drag.dragged_id == annotation_id:
            self.drag.end()
        was_active = self.store.active_id == annotation_id
        if not self.store.remove(annotation_id):
            return False
        self.annotations_changed.emit()
        if was_active:
            self.annotation_selected.emit(None)
        return True

    def remove_active(self) -> bool:
        active = self.store.active_id
        return active is not None and self.remove(active)

    def clear_annotations(self) -> None:
        self.drag.end()
        self.store.clear()
        self.annotations_changed.emit()
        self.annotation_selected.emit(None)

    def annotations_on_page(self):
        return self.store.list_for_page(self.page_index)

    # ------------------------------------------------------------------
    # Dragging
    # ------------------------------------------------------------------

    def begin_drag(self, annotation_id: str, x_css: float, y_css: float,
                   region: HitRegion = HitRegion.HANDLE) -> bool:
        if self.tool is not Tool.SELECT:
            return False
        started = self.drag.begin(annotation_id, (x_css, y_css), region)
        if started:
            self.annotation_selected.emit(annotation_id)
        return started

    def drag_to(self, x_css: float, y_css: float) -> bool:
        moved = self.drag.move((x_css, y_css))
        if moved:
            self.annotations_changed.emit()
        return moved

    def end_drag(self) -> Optional[str]:
        return self.drag.end()

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def save_freehand_signature(self) -> bool:
        saved = self.capture.save_freehand()
        if saved:
            self.signature_changed.emit(True)
        return saved

    def upload_signature(self, path: Union[str, Path]) -> bool:
        try:
            self.capture.upload_file(path)
        except (ImageDecodeError, OSError) as e:
            logger.error("Could not use %s as signature: %s", path, e)
            self.error_occurred.emit(f"Could not use image as signature: {e}")
            return False
        self.signature_changed.emit(True)
        return True

    def make_typed_signature(self, text: str, family: Optional[str] = None,
                             size_px: Optional[int] = None,
                             slant_deg: Optional[float] = None,
                             color: Optional[str] = None) -> bool:
        """Create a typed signature and switch to the stamp tool on success."""
        if not self.capture.make_typed(text, family, size_px, color, slant_deg):
            return False
        self.signature_changed.emit(True)
        self.set_tool(Tool.STAMP)
        return True

    def load_signature_font(self, path: Union[str, Path]) -> bool:
        """Register a font file for typed signatures and re-measure the editor."""
        if not self.capture.load_typed_font(path):
            self.error_occurred.emit(f"Could not load font {path}")
            return False
        # Registered fonts can change how the editor family resolves
        if self.probe is not None:
            self.probe.schedule_remeasure()
        return True

    def clear_signature(self) -> None:
        self.capture.clear()
        if self.tool is Tool.STAMP:
            self.set_tool(Tool.SELECT)
        self.signature_changed.emit(False)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    @property
    def metrics(self) -> FontMetricsSnapshot:
        return self.probe.snapshot if self.probe is not None else FontMetricsSnapshot()

    def export_bytes(self) -> bytes:
        """
        Composite all annotations into the current source.

        Raises:
            ExportError: If there is no source or compositing fails
        """
        if self.source is None:
            raise ExportError("No source document loaded")
        return self.compositor.compose(self.source.data, self.store.all(),
                                       self.metrics, self.pixels_per_point)

    def start_export(self, output_path: Union[str, Path]) -> Optional[ExportWorker]:
        """Export in a background thread; result arrives on ``export_finished``."""
        if self.source is None:
            self.error_occurred.emit("No source document loaded")
            return None
        if self._export_worker is not None and self._export_worker.isRunning():
            return None

        worker = ExportWorker(self.source.data, self.store.all(), output_path,
                              self.metrics, self.pixels_per_point, self.compositor)
        self.last_export_error = None
        worker.failed.connect(self._on_export_failed)
        worker.finished_export.connect(self._on_export_finished)
        self._export_worker = worker
        worker.start()
        return worker

    def _on_export_failed(self, error: ExportError) -> None:
        self.last_export_error = error

    def _on_export_finished(self, success: bool, message: str) -> None:
        self.export_finished.emit(success, message)
