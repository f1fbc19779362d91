"""
Page rasterisation with supersede-and-discard semantics.

Every render request takes a new paint token. A render that finishes after
a newer request started is dropped instead of painted, so rapid zoom, page
or resize changes never paint an out-of-date raster.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

import fitz  # PyMuPDF
from PyQt5.QtCore import QObject, QThread, pyqtSignal
from PyQt5.QtGui import QImage

from fillsign.core.document.source import SourceDocument, open_pdf_bytes
from fillsign.core.errors import PageOutOfRange, RenderCancelled
from fillsign.core.geometry import RenderGeometry, compute_render_geometry

logger = logging.getLogger(__name__)


def _never_cancelled() -> bool:
    return False


def render_page_image(pdf_bytes: bytes, page_index: int, scale: float,
                      is_cancelled: Callable[[], bool] = _never_cancelled) -> QImage:
    """
    Render one page to an RGB image at ``scale`` device pixels per point.

    The cancel predicate is checked before each expensive step.

    Raises:
        SourceLoadError: If the document cannot be parsed
        PageOutOfRange: If the page does not exist
        RenderCancelled: If the predicate reports cancellation
    """
    if is_cancelled():
        raise RenderCancelled()

    doc = open_pdf_bytes(pdf_bytes)
    try:
        if not 0 <= page_index < doc.page_count:
            raise PageOutOfRange(page_index, doc.page_count)
        page = doc.load_page(page_index)
        if is_cancelled():
            raise RenderCancelled()

        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        if is_cancelled():
            raise RenderCancelled()

        # Copy so the image owns its pixels once the pixmap is released
        return QImage(pix.samples, pix.width, pix.height, pix.stride,
                      QImage.Format_RGB888).copy()
    finally:
        doc.close()


@dataclass
class RenderResult:
    token: int
    page_index: int
    image: QImage
    geometry: RenderGeometry
    device_pixel_ratio: float


class RenderWorker(QThread):
    """Worker thread that rasterises one page without blocking the UI."""

    # Signals
    rendered = pyqtSignal(int, object)  # token, QImage
    failed = pyqtSignal(int, object)  # token, exception

    def __init__(self, token: int, pdf_bytes: bytes, page_index: int,
                 scale: float, parent=None):
        super().__init__(parent)
        self.token = token
        self._pdf_bytes = pdf_bytes
        self._page_index = page_index
        self._scale = scale
        self._cancelled = False

    def cancel(self):
        """Ask the render to stop at its next check point."""
        self._cancelled = True

    def is_cancelled(self) -> bool:
        return self._cancelled

    def run(self):
        try:
            image = render_page_image(self._pdf_bytes, self._page_index,
                                      self._scale, self.is_cancelled)
        except RenderCancelled:
            logger.debug("Render %d cancelled", self.token)
            return
        except Exception as e:
            self.failed.emit(self.token, e)
            return
        self.rendered.emit(self.token, image)


class PageRenderer(QObject):
    """Owns the paint token and the in-flight render for one page surface."""

    page_rendered = pyqtSignal(object)  # RenderResult
    render_failed = pyqtSignal(object)  # exception

    def __init__(self, parent=None):
        super().__init__(parent)
        self._paint_token = 0
        self._current: Optional[RenderWorker] = None
        self._pending: dict = {}
        self._workers: Set[RenderWorker] = set()

    @property
    def paint_token(self) -> int:
        return self._paint_token

    def request_render(self, source: SourceDocument, page_index: int,
                       available_width: float, zoom: float,
                       device_pixel_ratio: float = 1.0) -> int:
        """
        Start rendering a page, superseding any render in flight.

        Raises:
            PageOutOfRange: If the page does not exist

        Returns:
            The paint token of the new render
        """
        width_pt, height_pt = source.page_size(page_index)
        geometry = compute_render_geometry(width_pt, height_pt, available_width,
                                           zoom, device_pixel_ratio)

        self._paint_token += 1
        token = self._paint_token
        self.cancel_in_flight()

        worker = RenderWorker(token, source.data, page_index, geometry.render_scale)
        worker.rendered.connect(self._on_rendered)
        worker.failed.connect(self._on_failed)
        worker.finished.connect(lambda w=worker: self._on_worker_finished(w))
        self._pending[token] = (page_index, geometry, max(1.0, device_pixel_ratio or 1.0))
        self._workers.add(worker)
        self._current = worker
        worker.start()
        return token

    def cancel_in_flight(self) -> None:
        """Best-effort cancel of the running render; correctness relies on the token."""
        if self._current is not None:
            self._current.cancel()
            self._current = None

    def invalidate(self) -> None:
        """Discard whatever is in flight without starting a new render."""
        self._paint_token += 1
        self.cancel_in_flight()

    def deliver(self, token: int, image: QImage) -> Optional[RenderResult]:
        """
        Turn a completed render into a result, or drop it if it is stale.

        Returns:
            The result that was emitted, or None if discarded
        """
        meta = self._pending.pop(token, None)
        if token != self._paint_token or meta is None:
            logger.debug("Discarding stale render %d (current %d)", token, self._paint_token)
            return None
        page_index, geometry, dpr = meta
        image.setDevicePixelRatio(dpr)
        result = RenderResult(token, page_index, image, geometry, dpr)
        self.page_rendered.emit(result)
        return result

    def _on_rendered(self, token: int, image: QImage):
        self.deliver(token, image)

    def _on_failed(self, token: int, error: Exception):
        self._pending.pop(token, None)
        if token != self._paint_token:
            logger.debug("Ignoring failure of stale render %d: %s", token, error)
            return
        logger.error("Page render failed: %s", error)
        self.render_failed.emit(error)

    def _on_worker_finished(self, worker: RenderWorker):
        if worker.token != self._paint_token:
            self._pending.pop(worker.token, None)
        self._workers.discard(worker)
        if self._current is worker:
            self._current = None
        worker.deleteLater()

    def shutdown(self, timeout_ms: int = 2000) -> None:
        """Cancel everything and wait for worker threads to exit."""
        self.invalidate()
        for worker in list(self._workers):
            worker.cancel()
            worker.wait(timeout_ms)
