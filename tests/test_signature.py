"""
Tests for signature capture (freehand, upload, typed).
"""

import pytest
from PyQt5.QtCore import QBuffer, QByteArray, QIODevice
from PyQt5.QtGui import QImage

from conftest import make_png
from fillsign.config import Settings
from fillsign.core.errors import ImageDecodeError
from fillsign.core.signature import (
    PNG_SIGNATURE,
    SignatureCapture,
    contain_fit,
    render_typed_signature,
)


def encode(image, fmt):
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.WriteOnly)
    image.save(buffer, fmt)
    buffer.close()
    return bytes(data)


class TestContainFit:
    """Tests for contain_fit."""

    def test_wide_image_in_square_box(self):
        assert contain_fit((200, 100), (100, 100)) == (0, 25, 100, 50)

    def test_tall_image(self):
        assert contain_fit((50, 100), (100, 100)) == (25, 0, 50, 100)


class TestFreehand:
    """Tests for the freehand pad."""

    def test_empty_pad_does_not_save(self, qapp):
        capture = SignatureCapture()
        assert capture.save_freehand() is False
        assert capture.payload is None

    def test_stroke_then_save(self, qapp):
        capture = SignatureCapture()
        pad = capture.pad
        pad.begin_stroke(10, 10)
        pad.extend_stroke(100, 60)
        pad.extend_stroke(200, 20)
        pad.end_stroke()
        assert not pad.is_empty

        assert capture.save_freehand()
        assert capture.payload.startswith(PNG_SIGNATURE)
        assert capture.payload_size() == (290, 140)

    def test_pad_background_is_transparent(self, qapp):
        capture = SignatureCapture()
        capture.pad.begin_stroke(10, 10)
        capture.pad.extend_stroke(20, 10)
        capture.save_freehand()
        image = QImage.fromData(capture.payload)
        assert image.pixelColor(280, 130).alpha() == 0

    def test_clear_pad(self, qapp):
        capture = SignatureCapture()
        capture.pad.begin_stroke(0, 0)
        capture.pad.extend_stroke(5, 5)
        capture.pad.clear()
        assert capture.pad.is_empty
        assert capture.save_freehand() is False


class TestUpload:
    """Tests for uploaded signature images."""

    def test_png_is_kept_as_is(self, qapp):
        png = make_png(40, 20)
        capture = SignatureCapture()
        assert capture.upload(png) == png
        assert capture.payload == png

    def test_other_formats_become_png(self, qapp):
        image = QImage(30, 10, QImage.Format_RGB32)
        image.fill(0xFF00FF)
        capture = SignatureCapture()
        payload = capture.upload(encode(image, "BMP"))
        assert payload.startswith(PNG_SIGNATURE)
        assert capture.payload_size() == (30, 10)

    def test_undecodable_upload_keeps_previous_payload(self, qapp):
        capture = SignatureCapture()
        capture.upload(make_png(10, 10))
        previous = capture.payload
        with pytest.raises(ImageDecodeError):
            capture.upload(b"definitely not an image")
        assert capture.payload == previous

    def test_upload_file(self, qapp, tmp_path):
        path = tmp_path / "sig.png"
        path.write_bytes(make_png(12, 6))
        capture = SignatureCapture()
        capture.upload_file(path)
        assert capture.payload_size() == (12, 6)


class TestTypedSignature:
    """Tests for typed signatures."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    def test_blank_text_leaves_payload(self, qapp, text):
        """Whitespace produces nothing and keeps the existing stamp image."""
        capture = SignatureCapture()
        capture.upload(make_png(10, 10))
        previous = capture.payload
        assert capture.make_typed(text) is False
        assert capture.payload == previous

    def test_blank_text_renders_nothing(self, qapp):
        assert render_typed_signature("  ", "Helvetica", 72) is None

    def test_typed_png_is_transparent_outside_ink(self, qapp):
        png = render_typed_signature("Jane Doe", "Helvetica", 48)
        image = QImage.fromData(png)
        assert image.hasAlphaChannel()
        assert image.pixelColor(0, 0).alpha() == 0
        assert image.pixelColor(image.width() - 1, image.height() - 1).alpha() == 0

    def test_lines_are_spaced_by_size(self, qapp):
        """Each extra line adds round(size * 1.2) px of height."""
        one = QImage.fromData(render_typed_signature("Jane", "Helvetica", 50))
        two = QImage.fromData(render_typed_signature("Jane\nJane", "Helvetica", 50))
        assert two.height() - one.height() == 60
        assert two.width() == one.width()

    def test_slant_widens_canvas(self, qapp):
        """Sheared glyphs get extra room instead of being clipped."""
        upright = QImage.fromData(render_typed_signature("Jane", "Helvetica", 48))
        slanted = QImage.fromData(render_typed_signature("Jane", "Helvetica", 48, slant_deg=20))
        back = QImage.fromData(render_typed_signature("Jane", "Helvetica", 48, slant_deg=-20))
        assert slanted.width() > upright.width()
        assert back.width() == slanted.width()

    def test_make_typed_sets_payload(self, qapp):
        capture = SignatureCapture(Settings(typed_font_family="Helvetica"))
        assert capture.make_typed("Jane", size_px=1000)
        assert capture.payload.startswith(PNG_SIGNATURE)
        # Size is clamped to the configured maximum
        _, height = capture.payload_size()
        assert height < 200 * 2

    def test_indentation_is_kept(self, qapp):
        """Leading spaces on the first line are drawn, not stripped."""
        plain = QImage.fromData(render_typed_signature("Jane", "Helvetica", 48))
        indented = QImage.fromData(render_typed_signature("    Jane", "Helvetica", 48))
        assert indented.width() > plain.width()
        assert indented.height() == plain.height()

    def test_surrounding_blank_lines_are_dropped(self, qapp):
        plain = QImage.fromData(render_typed_signature("Jane", "Helvetica", 48))
        padded = QImage.fromData(render_typed_signature("\r\nJane\n\n", "Helvetica", 48))
        assert padded.height() == plain.height()

    def test_unloadable_font_keeps_family(self, qapp, tmp_path):
        bogus = tmp_path / "bogus.ttf"
        bogus.write_bytes(b"not a font")
        capture = SignatureCapture(Settings(typed_font_family="Helvetica"))
        assert capture.load_typed_font(bogus) is False
        assert capture.typed_family == "Helvetica"
