import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # PyMuPDF
import pytest
from PyQt5.QtWidgets import QApplication


def make_pdf(page_sizes=((612, 792),), texts=None):
    """Build an in-memory PDF, optionally with one line of text per page."""
    doc = fitz.open()
    for i, (width, height) in enumerate(page_sizes):
        page = doc.new_page(width=width, height=height)
        if texts and i < len(texts) and texts[i]:
            page.insert_text((72, 72), texts[i], fontsize=12, fontname="helv")
    data = doc.tobytes()
    doc.close()
    return data


def make_png(width=200, height=100, color=(0, 0, 255, 255)):
    """Build an opaque (by default) RGBA PNG of the given size."""
    pix = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), 1)
    pix.set_rect(pix.irect, color)
    return pix.tobytes("png")


@pytest.fixture(scope="session")
def qapp():
    """Shared QApplication running on the offscreen platform."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def letter_pdf():
    return make_pdf()


@pytest.fixture
def two_page_pdf():
    return make_pdf(((612, 792), (612, 792)))


@pytest.fixture
def png_200x100():
    return make_png(200, 100)
