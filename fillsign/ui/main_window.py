import logging
import os

from PyQt5.QtCore import Qt, QTimer
from PyQt5.QtGui import QColor, QIcon, QIntValidator
from PyQt5.QtWidgets import (
    QButtonGroup, QColorDialog, QDockWidget, QFileDialog, QFrame, QHBoxLayout,
    QLabel, QLineEdit, QMainWindow, QMessageBox, QPlainTextEdit, QProgressDialog,
    QPushButton, QScrollArea, QSlider, QSpinBox, QToolButton, QVBoxLayout, QWidget
)

from fillsign.config import Settings
from fillsign.controllers import FillSignController, Tool
from fillsign.core.document.renderer import PageRenderer
from fillsign.core.metrics import FontMetricsProbe
from fillsign.ui.page_editor import PageEditorWidget
from fillsign.ui.signature_pad import SignaturePadWidget, SignaturePreview
from fillsign.ui.text_box import build_editor_chrome
from fillsign.ui.warning_manager import WarningManager, WarningType
from fillsign.utils.resource_loader import get_resource_path

logger = logging.getLogger(__name__)

PAGE_MARGIN = 24
RESIZE_DEBOUNCE_MS = 120


class MainWindow(QMainWindow):
    def __init__(self, settings: Settings = None, file_path=None):
        super().__init__()

        self.settings = settings or Settings()
        icon_path = get_resource_path("resources/icons/fillsign.ico")
        if os.path.exists(icon_path):
            self.setWindowIcon(QIcon(icon_path))
        self.setWindowTitle("Fill & Sign")

        self.probe = FontMetricsProbe(build_editor_chrome, self.settings.text_line_height, self)
        self.controller = FillSignController(self.settings, self.probe, self)
        self.renderer = PageRenderer(self)
        self.warnings = WarningManager()
        self.export_worker = None

        self._resize_timer = QTimer(self)
        self._resize_timer.setSingleShot(True)
        self._resize_timer.timeout.connect(self.request_render)

        self.setup_ui()
        self._connect_signals()

        self.probe.set_editor_font(self.page_editor.editor_font)
        self._update_controls()

        if file_path:
            self.open_file(file_path)

    def create_tool_button(self, text, tooltip, parent=None, checkable=False):
        """Helper to create flat toolbar buttons."""
        btn = QToolButton(parent)
        btn.setText(text)
        btn.setToolTip(tooltip)
        btn.setCheckable(checkable)
        btn.setMinimumHeight(30)
        return btn

    def setup_ui(self):
        # TOP TOOLBAR
        self.top_frame = QFrame()
        self.top_frame.setObjectName("TopFrame")
        self.top_layout = QHBoxLayout(self.top_frame)
        self.top_layout.setContentsMargins(10, 8, 10, 8)
        self.top_layout.setSpacing(8)

        self.open_button = self.create_tool_button("Open", "Open PDF (Ctrl+O)", self.top_frame)
        self.open_button.clicked.connect(self.open_pdf)
        self.top_layout.addWidget(self.open_button)

        # Page navigation
        self.prev_button = self.create_tool_button("<", "Previous page", self.top_frame)
        self.prev_button.clicked.connect(lambda: self.go_to_page(self.controller.page_index - 1))
        self.page_input = QLineEdit("1")
        self.page_input.setFixedWidth(44)
        self.page_input.setAlignment(Qt.AlignCenter)
        self.page_input.setValidator(QIntValidator(1, 9999))
        self.page_input.returnPressed.connect(self.page_number_changed)
        self.page_count_label = QLabel("/ 1")
        self.next_button = self.create_tool_button(">", "Next page", self.top_frame)
        self.next_button.clicked.connect(lambda: self.go_to_page(self.controller.page_index + 1))
        for w in (self.prev_button, self.page_input, self.page_count_label, self.next_button):
            self.top_layout.addWidget(w)

        # Zoom
        self.zoom_out_button = self.create_tool_button("-", "Zoom out", self.top_frame)
        self.zoom_out_button.clicked.connect(lambda: self.adjust_zoom(self.controller.zoom_out))
        self.zoom_label = QLabel("100%")
        self.zoom_label.setFixedWidth(48)
        self.zoom_label.setAlignment(Qt.AlignCenter)
        self.zoom_in_button = self.create_tool_button("+", "Zoom in", self.top_frame)
        self.zoom_in_button.clicked.connect(lambda: self.adjust_zoom(self.controller.zoom_in))
        self.fit_button = self.create_tool_button("Fit", "Fit to width", self.top_frame)
        self.fit_button.clicked.connect(lambda: self.adjust_zoom(self.controller.fit_width))
        for w in (self.zoom_out_button, self.zoom_label, self.zoom_in_button, self.fit_button):
            self.top_layout.addWidget(w)

        # Tools
        self.tool_group = QButtonGroup(self)
        self.tool_group.setExclusive(True)
        self.tool_buttons = {}
        for tool, label, tip in ((Tool.SELECT, "Select", "Select and move annotations"),
                                 (Tool.TEXT, "Text", "Click the page to add text"),
                                 (Tool.STAMP, "Stamp", "Click the page to place the signature")):
            btn = self.create_tool_button(label, tip, self.top_frame, checkable=True)
            btn.clicked.connect(lambda _checked, t=tool: self.controller.set_tool(t))
            self.tool_group.addButton(btn)
            self.tool_buttons[tool] = btn
            self.top_layout.addWidget(btn)

        # Text defaults
        self.size_spin = QSpinBox()
        self.size_spin.setRange(int(self.settings.text_size_min_pt), int(self.settings.text_size_max_pt))
        self.size_spin.setValue(int(self.controller.text_size_pt))
        self.size_spin.setSuffix(" pt")
        self.size_spin.setToolTip("Text size")
        self.size_spin.valueChanged.connect(self.controller.set_text_size)
        self.top_layout.addWidget(self.size_spin)

        self.color_button = self.create_tool_button("Colour", "Text and ink colour", self.top_frame)
        self.color_button.clicked.connect(self.choose_color)
        self.top_layout.addWidget(self.color_button)

        self.top_layout.addStretch()

        self.delete_button = self.create_tool_button("Delete", "Delete selected annotation (Del)", self.top_frame)
        self.delete_button.clicked.connect(self.controller.remove_active)
        self.clear_button = self.create_tool_button("Clear", "Remove all annotations", self.top_frame)
        self.clear_button.clicked.connect(self.clear_annotations)
        self.save_button = self.create_tool_button("Save", "Save filled PDF (Ctrl+S)", self.top_frame)
        self.save_button.clicked.connect(self.save_pdf)
        for w in (self.delete_button, self.clear_button, self.save_button):
            self.top_layout.addWidget(w)

        # PAGE AREA
        self.page_editor = PageEditorWidget(self.controller)
        self.scroll_area = QScrollArea()
        self.scroll_area.setWidget(self.page_editor)
        self.scroll_area.setAlignment(Qt.AlignHCenter | Qt.AlignTop)
        self.scroll_area.setWidgetResizable(False)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self.top_frame)
        layout.addWidget(self.scroll_area)
        self.setCentralWidget(central)

        self.setup_signature_dock()
        self.statusBar()

    def setup_signature_dock(self):
        panel = QWidget()
        layout = QVBoxLayout(panel)
        layout.setContentsMargins(10, 10, 10, 10)

        layout.addWidget(QLabel("Draw"))
        self.signature_pad = SignaturePadWidget(self.controller.capture.pad)
        layout.addWidget(self.signature_pad)
        row = QHBoxLayout()
        save_drawing = QPushButton("Use drawing")
        save_drawing.clicked.connect(self.save_drawing)
        clear_pad = QPushButton("Clear pad")
        clear_pad.clicked.connect(self.signature_pad.clear)
        row.addWidget(save_drawing)
        row.addWidget(clear_pad)
        layout.addLayout(row)

        upload = QPushButton("Upload image...")
        upload.clicked.connect(self.upload_signature)
        layout.addWidget(upload)

        layout.addWidget(QLabel("Type"))
        self.typed_input = QPlainTextEdit()
        self.typed_input.setPlaceholderText("Your name")
        self.typed_input.setFixedHeight(60)
        layout.addWidget(self.typed_input)

        row = QHBoxLayout()
        self.typed_size_spin = QSpinBox()
        self.typed_size_spin.setRange(self.settings.typed_size_min_px, self.settings.typed_size_max_px)
        self.typed_size_spin.setValue(self.settings.typed_size_px)
        self.typed_size_spin.setSuffix(" px")
        self.slant_slider = QSlider(Qt.Horizontal)
        limit = int(self.settings.typed_slant_limit_deg)
        self.slant_slider.setRange(-limit, limit)
        self.slant_slider.setValue(int(self.settings.typed_slant_deg))
        self.slant_slider.setToolTip("Slant")
        row.addWidget(self.typed_size_spin)
        row.addWidget(self.slant_slider)
        layout.addLayout(row)

        create_typed = QPushButton("Create typed signature")
        create_typed.clicked.connect(self.create_typed_signature)
        layout.addWidget(create_typed)

        layout.addWidget(QLabel("Current signature"))
        self.signature_preview = SignaturePreview()
        layout.addWidget(self.signature_preview)

        row = QHBoxLayout()
        row.addWidget(QLabel("Stamp width"))
        self.stamp_width_spin = QSpinBox()
        self.stamp_width_spin.setRange(int(self.settings.stamp_width_min_pt), int(self.settings.stamp_width_max_pt))
        self.stamp_width_spin.setValue(int(self.controller.stamp_width_pt))
        self.stamp_width_spin.setSuffix(" pt")
        self.stamp_width_spin.valueChanged.connect(self.controller.set_stamp_width)
        row.addWidget(self.stamp_width_spin)
        layout.addLayout(row)

        clear_signature = QPushButton("Clear signature")
        clear_signature.clicked.connect(self.clear_signature)
        layout.addWidget(clear_signature)
        layout.addStretch()

        self.signature_dock = QDockWidget("Signature", self)
        self.signature_dock.setObjectName("SignatureDock")
        self.signature_dock.setWidget(panel)
        self.signature_dock.setFeatures(QDockWidget.DockWidgetMovable)
        self.addDockWidget(Qt.RightDockWidgetArea, self.signature_dock)

    def _connect_signals(self):
        c = self.controller
        c.tool_changed.connect(lambda _t: self._update_controls())
        c.page_changed.connect(lambda _p: self._update_controls())
        c.source_changed.connect(lambda _s: self._update_controls())
        c.signature_changed.connect(self._on_signature_changed)
        c.error_occurred.connect(self.show_error)
        c.export_finished.connect(self._on_export_finished)

        self.renderer.page_rendered.connect(self.page_editor.set_render_result)
        self.renderer.render_failed.connect(lambda e: self.show_error(f"Could not render page: {e}"))

    def _update_controls(self):
        c = self.controller
        self.page_input.setText(str(c.page_index + 1))
        self.page_count_label.setText(f"/ {c.page_count}")
        self.prev_button.setEnabled(c.page_index > 0)
        self.next_button.setEnabled(c.page_index < c.page_count - 1)
        self.zoom_label.setText(f"{round(c.zoom * 100)}%")
        self.tool_buttons[Tool.STAMP].setEnabled(c.capture.has_payload)
        self.tool_buttons[c.tool].setChecked(True)
        has_source = c.source is not None
        self.save_button.setEnabled(has_source)
        self.clear_button.setEnabled(has_source)

    # ------------------------------------------------------------------
    # Document and rendering
    # ------------------------------------------------------------------

    def open_pdf(self):
        file_path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if file_path:
            self.open_file(file_path)

    def open_file(self, file_path):
        if len(self.controller.store) and not self.warnings.confirm(
                self, WarningType.SWITCH_SOURCE, "Open Another PDF",
                "Opening another document discards the annotations placed so far. Continue?"):
            return
        self.renderer.invalidate()
        if self.controller.open_path(file_path):
            self.setWindowTitle(f"Fill & Sign - {self.controller.source.name}")
            self.request_render()

    def request_render(self):
        source = self.controller.source
        if source is None:
            return
        available = max(0, self.scroll_area.viewport().width() - PAGE_MARGIN * 2)
        self.renderer.request_render(source, self.controller.page_index, available,
                                     self.controller.zoom, self.devicePixelRatioF())

    def go_to_page(self, page_index):
        self.controller.set_page(page_index)
        self._update_controls()
        self.request_render()

    def page_number_changed(self):
        text = self.page_input.text()
        if text.isdigit():
            self.go_to_page(int(text) - 1)

    def adjust_zoom(self, step):
        step()
        self._update_controls()
        self.request_render()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._resize_timer.start(RESIZE_DEBOUNCE_MS)

    # ------------------------------------------------------------------
    # Annotations and signatures
    # ------------------------------------------------------------------

    def choose_color(self):
        color = QColorDialog.getColor(QColor(self.controller.text_color), self, "Choose Colour")
        if color.isValid():
            self.controller.set_text_color(color.name())
            self.signature_pad.update()

    def clear_annotations(self):
        if not len(self.controller.store):
            return
        if self.warnings.confirm(self, WarningType.CLEAR_ANNOTATIONS, "Clear Annotations",
                                 "Remove all text and signatures from the document?"):
            self.controller.clear_annotations()

    def save_drawing(self):
        if not self.controller.save_freehand_signature():
            self.statusBar().showMessage("Draw a signature on the pad first", 3000)

    def upload_signature(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Signature Image", "", "Images (*.png *.jpg *.jpeg *.bmp *.gif)")
        if file_path:
            self.controller.upload_signature(file_path)

    def create_typed_signature(self):
        created = self.controller.make_typed_signature(
            self.typed_input.toPlainText(),
            size_px=self.typed_size_spin.value(),
            slant_deg=self.slant_slider.value(),
        )
        if not created:
            self.statusBar().showMessage("Type a name first", 3000)

    def clear_signature(self):
        self.controller.clear_signature()
        self.signature_pad.update()

    def _on_signature_changed(self, _has_payload):
        self.signature_preview.set_payload(self.controller.capture.payload)
        self._update_controls()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def save_pdf(self):
        """Save the filled document using a background thread."""
        if self.controller.source is None:
            QMessageBox.warning(self, "No PDF", "No PDF document is currently loaded.")
            return False

        output_path, _ = QFileDialog.getSaveFileName(
            self, "Save Filled PDF", self.settings.output_name, "PDF Files (*.pdf)")
        if not output_path:
            return False

        # Editor metrics must reflect the current fonts before baking text
        self.probe.measure()
        worker = self.controller.start_export(output_path)
        if worker is None:
            return False

        progress = QProgressDialog("Saving PDF...", None, 0, 0, self)
        progress.setWindowTitle("Saving PDF")
        progress.setWindowModality(Qt.WindowModal)
        progress.setMinimumDuration(0)
        progress.setCancelButton(None)
        worker.progress.connect(progress.setLabelText)
        worker.finished.connect(progress.close)
        progress.show()
        self.export_worker = worker
        return True

    def _on_export_finished(self, success, message):
        if success:
            self.statusBar().showMessage(message, 5000)
        else:
            QMessageBox.critical(self, "Save Failed", message)
        if self.export_worker is not None:
            self.export_worker.deleteLater()
            self.export_worker = None

    def show_error(self, message):
        logger.error(message)
        QMessageBox.critical(self, "Error", message)

    def keyPressEvent(self, event):
        if event.modifiers() & Qt.ControlModifier:
            if event.key() == Qt.Key_O:
                self.open_pdf()
                return
            if event.key() == Qt.Key_S:
                self.save_pdf()
                return
            if event.key() in (Qt.Key_Plus, Qt.Key_Equal):
                self.adjust_zoom(self.controller.zoom_in)
                return
            if event.key() == Qt.Key_Minus:
                self.adjust_zoom(self.controller.zoom_out)
                return
        super().keyPressEvent(event)

    def closeEvent(self, event):
        self.renderer.shutdown()
        if self.export_worker is not None and self.export_worker.isRunning():
            self.export_worker.wait()
        event.accept()
