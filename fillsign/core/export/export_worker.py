# fillsign/core/export/export_worker.py

import copy
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from PyQt5.QtCore import QThread, pyqtSignal

from fillsign.core.annotations import Annotation
from fillsign.core.document.exporter import ExportCompositor
from fillsign.core.errors import ExportError
from fillsign.core.metrics import FontMetricsSnapshot

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """Worker thread for baking annotations into a PDF without freezing the UI."""

    # Signals
    finished_export = pyqtSignal(bool, str)  # success, message
    progress = pyqtSignal(str)  # status message
    failed = pyqtSignal(object)  # ExportError

    def __init__(self, source_bytes: bytes, annotations: Iterable[Annotation],
                 output_path: Union[str, Path],
                 metrics: Optional[FontMetricsSnapshot] = None,
                 pixels_per_point: float = 1.0,
                 compositor: Optional[ExportCompositor] = None,
                 parent=None):
        super().__init__(parent)
        self.source_bytes = source_bytes
        # The UI thread keeps editing the live records; export works on copies
        self.annotations = [copy.deepcopy(a) for a in annotations]
        self.output_path = Path(output_path)
        self.metrics = metrics
        self.pixels_per_point = pixels_per_point
        self.compositor = compositor or ExportCompositor()
        self.written_path: Optional[Path] = None

    def run(self):
        """Execute the export in a background thread."""
        self.progress.emit("Exporting annotations...")
        try:
            self.written_path = self.compositor.export_to_file(
                self.source_bytes,
                self.annotations,
                self.output_path,
                self.metrics,
                self.pixels_per_point,
            )
        except ExportError as e:
            logger.error("Export failed: %s", e)
            self.failed.emit(e)
            self.finished_export.emit(False, f"Failed to save PDF: {e}")
            return
        except Exception as e:
            # An exception escaping QThread.run aborts the process
            logger.exception("Unexpected error during export")
            self.failed.emit(ExportError(f"Unexpected error: {e}", e))
            self.finished_export.emit(False, f"Failed to save PDF: {e}")
            return

        logger.info("Exported %d annotation(s) to %s", len(self.annotations), self.written_path)
        self.finished_export.emit(True, f"Saved to {self.written_path}")
