"""
Tests for the Fill & Sign session controller.
"""

import fitz  # PyMuPDF
import pytest

from conftest import make_pdf, make_png
from fillsign.config import Settings
from fillsign.controllers import FillSignController, Tool
from fillsign.core.annotations import AnnotationKind
from fillsign.core.drag import HitRegion
from fillsign.core.errors import ExportError


@pytest.fixture
def controller(qapp, two_page_pdf):
    controller = FillSignController(Settings())
    assert controller.open_bytes(two_page_pdf, "form.pdf")
    return controller


class TestSource:
    """Opening and switching documents."""

    def test_open_bytes(self, controller):
        assert controller.page_count == 2
        assert controller.source.name == "form.pdf"
        assert controller.geometry.page_height_pt == 792

    def test_bad_document_reports_error(self, qapp):
        controller = FillSignController()
        errors = []
        controller.error_occurred.connect(errors.append)
        assert controller.open_bytes(b"not a pdf") is False
        assert controller.source is None
        assert len(errors) == 1

    def test_switching_source_discards_annotations(self, controller):
        controller.place_at(10, 10)
        old_store = controller.store
        assert len(old_store) == 1

        controller.open_bytes(make_pdf(((300, 400),)), "other.pdf")
        assert len(controller.store) == 0
        assert controller.store is not old_store
        assert controller.page_index == 0
        assert controller.geometry.page_height_pt == 400

    def test_set_page_clamps(self, controller):
        pages = []
        controller.page_changed.connect(pages.append)
        assert controller.set_page(7) == 1
        assert controller.set_page(-2) == 0
        assert pages == [1, 0]


class TestZoom:
    """Zoom stepping through the controller."""

    def test_zoom_steps_and_clamps(self, controller):
        assert controller.zoom_in() == pytest.approx(1.1)
        for _ in range(40):
            controller.zoom_in()
        assert controller.zoom == 3.0
        assert controller.fit_width() == 1.0
        for _ in range(40):
            controller.zoom_out()
        assert controller.zoom == 0.5

    def test_layout_changes_scale(self, controller):
        controller.set_layout(306)
        assert controller.pixels_per_point == pytest.approx(0.5)


class TestPlacement:
    """Placing annotations with the active tool."""

    def test_place_text(self, controller):
        controller.set_tool(Tool.TEXT)
        annotation_id = controller.place_at(100, 92)
        ann = controller.store.get(annotation_id)
        assert ann.kind is AnnotationKind.TEXT
        assert ann.text == "Text"
        assert ann.size_pt == 14
        assert (ann.x_pt, ann.y_pt) == (pytest.approx(100), pytest.approx(700))
        assert controller.store.active_id == annotation_id
        # Placement hands control back to the select tool
        assert controller.tool is Tool.SELECT

    def test_select_tool_places_nothing(self, controller):
        controller.set_tool(Tool.SELECT)
        assert controller.place_at(10, 10) is None
        assert len(controller.store) == 0

    def test_text_defaults(self, controller):
        assert controller.set_text_size(100) == 48
        controller.set_text_color("#FF0000")
        controller.set_tool(Tool.TEXT)
        ann = controller.store.get(controller.place_at(0, 0))
        assert ann.size_pt == 48
        assert ann.color == (1.0, 0.0, 0.0)

    def test_stamp_needs_signature(self, controller):
        controller.set_tool(Tool.SELECT)
        controller.set_tool(Tool.STAMP)
        assert controller.tool is Tool.SELECT

    def test_place_stamp(self, controller, tmp_path):
        path = tmp_path / "sig.png"
        path.write_bytes(make_png(200, 100))
        assert controller.upload_signature(path)
        controller.set_stamp_width(10)
        controller.set_tool(Tool.STAMP)
        annotation_id = controller.place_at(50, 742)
        ann = controller.store.get(annotation_id)
        assert ann.kind is AnnotationKind.STAMP
        assert ann.width_pt == 60
        assert (ann.x_pt, ann.y_pt) == (pytest.approx(50), pytest.approx(50))

    def test_typed_signature_selects_stamp_tool(self, controller):
        assert controller.make_typed_signature("Jane Doe", family="Helvetica")
        assert controller.tool is Tool.STAMP

    def test_blank_typed_signature(self, controller):
        assert controller.make_typed_signature("   ") is False
        assert controller.capture.payload is None

    def test_clear_signature_leaves_stamp_tool(self, controller):
        controller.make_typed_signature("Jane", family="Helvetica")
        controller.clear_signature()
        assert controller.tool is Tool.SELECT
        assert not controller.capture.has_payload


class TestEditing:
    """Editing, dragging and removing annotations."""

    def test_set_text(self, controller):
        controller.set_tool(Tool.TEXT)
        annotation_id = controller.place_at(10, 10)
        assert controller.set_text(annotation_id, "Jane")
        assert controller.store.get(annotation_id).text == "Jane"

    def test_remove_active(self, controller):
        selections = []
        controller.annotation_selected.connect(selections.append)
        controller.set_tool(Tool.TEXT)
        controller.place_at(10, 10)
        assert controller.remove_active()
        assert len(controller.store) == 0
        assert controller.store.active_id is None
        assert selections[-1] is None

    def test_drag_only_with_select_tool(self, controller):
        controller.set_tool(Tool.TEXT)
        annotation_id = controller.place_at(100, 100)
        controller.set_tool(Tool.TEXT)
        assert controller.begin_drag(annotation_id, 100, 100) is False

        controller.set_tool(Tool.SELECT)
        assert controller.begin_drag(annotation_id, 100, 100, HitRegion.HANDLE)
        controller.drag_to(120, 90)
        assert controller.end_drag() == annotation_id
        ann = controller.store.get(annotation_id)
        assert ann.x_pt == pytest.approx(120)
        assert ann.y_pt == pytest.approx(792 - 90)

    def test_clear_annotations(self, controller):
        controller.set_tool(Tool.TEXT)
        controller.place_at(1, 1)
        controller.set_tool(Tool.TEXT)
        controller.place_at(2, 2)
        controller.clear_annotations()
        assert len(controller.store) == 0

    def test_annotations_on_page(self, controller):
        controller.set_tool(Tool.TEXT)
        controller.place_at(1, 1)
        controller.set_page(1)
        assert controller.annotations_on_page() == []
        controller.set_page(0)
        assert len(controller.annotations_on_page()) == 1


class TestExport:
    """Exporting through the controller."""

    def test_export_without_source(self, qapp):
        with pytest.raises(ExportError):
            FillSignController().export_bytes()

    def test_export_bytes(self, controller):
        controller.set_tool(Tool.TEXT)
        controller.place_at(100, 92)
        doc = fitz.open(stream=controller.export_bytes(), filetype="pdf")
        try:
            assert doc.page_count == 2
            assert "Text" in doc[0].get_text()
        finally:
            doc.close()

    def test_start_export_writes_file(self, controller, tmp_path):
        controller.set_tool(Tool.TEXT)
        controller.place_at(100, 92)
        worker = controller.start_export(tmp_path / "signed")
        assert worker is not None
        assert worker.wait(10000)
        assert worker.written_path == tmp_path / "signed.pdf"
        assert worker.written_path.exists()

    def test_failed_export_reports_error(self, qapp, controller, tmp_path):
        results = []
        controller.export_finished.connect(lambda ok, msg: results.append(ok))
        worker = controller.start_export(tmp_path / "missing" / "signed.pdf")
        assert worker is not None
        assert worker.wait(10000)
        qapp.processEvents()
        assert worker.written_path is None
        assert results == [False]
        assert isinstance(controller.last_export_error, ExportError)


class TestDragRemoval:
    """Removing an annotation while it is being dragged."""

    def test_remove_dragged_annotation_ends_drag(self, controller):
        released = []
        controller.set_pointer_release(lambda: released.append(True))
        controller.set_tool(Tool.TEXT)
        first = controller.place_at(100, 100)
        controller.set_tool(Tool.TEXT)
        second = controller.place_at(200, 200)

        assert controller.begin_drag(first, 100, 100)
        assert controller.remove(first)
        assert not controller.drag.is_dragging
        assert released == [True]
        assert controller.begin_drag(second, 200, 200)

    def test_removing_another_annotation_keeps_drag(self, controller):
        controller.set_tool(Tool.TEXT)
        first = controller.place_at(100, 100)
        controller.set_tool(Tool.TEXT)
        second = controller.place_at(200, 200)

        assert controller.begin_drag(first, 100, 100)
        controller.remove(second)
        assert controller.drag.dragged_id == first


class RecordingProbe:
    def __init__(self):
        self.remeasures = 0

    def schedule_remeasure(self):
        self.remeasures += 1


class TestSignatureFont:
    """Registering fonts for typed signatures."""

    def test_loaded_font_triggers_remeasure(self, qapp, monkeypatch):
        probe = RecordingProbe()
        controller = FillSignController(Settings(), probe)
        monkeypatch.setattr(controller.capture, "load_typed_font", lambda path: True)
        assert controller.load_signature_font("Signature.ttf")
        assert probe.remeasures == 1

    def test_configured_font_loads_on_start(self, qapp, monkeypatch):
        loaded = []
        monkeypatch.setattr("fillsign.core.signature.SignatureCapture.load_typed_font",
                            lambda self, path: loaded.append(path) or True)
        probe = RecordingProbe()
        FillSignController(Settings(typed_font_file="Signature.ttf"), probe)
        assert loaded == ["Signature.ttf"]
        assert probe.remeasures == 1

    def test_bad_font_reports_error(self, qapp, tmp_path):
        bogus = tmp_path / "bogus.ttf"
        bogus.write_bytes(b"not a font")
        probe = RecordingProbe()
        controller = FillSignController(Settings(), probe)
        errors = []
        controller.error_occurred.connect(errors.append)
        assert controller.load_signature_font(bogus) is False
        assert probe.remeasures == 0
        assert len(errors) == 1
