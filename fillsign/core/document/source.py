"""
Source PDF documents held as bytes with cached page geometry.
"""
import logging
from pathlib import Path
from typing import List, Tuple, Union

import fitz  # PyMuPDF

from fillsign.core.errors import PageOutOfRange, SourceLoadError

logger = logging.getLogger(__name__)


def open_pdf_bytes(data: bytes) -> fitz.Document:
    """
    Open PDF bytes with PyMuPDF.

    Raises:
        SourceLoadError: If the bytes are not a readable PDF
    """
    if not data:
        raise SourceLoadError("Document is empty")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise SourceLoadError(f"Failed to read PDF: {e}") from e
    if doc.page_count == 0:
        doc.close()
        raise SourceLoadError("Document has no pages")
    return doc


class SourceDocument:
    """A PDF the user is filling in. Holds no open document handle."""

    def __init__(self, data: bytes, name: str, page_sizes: List[Tuple[float, float]]):
        self.data = data
        self.name = name
        self._page_sizes = page_sizes

    @classmethod
    def from_bytes(cls, data: bytes, name: str = "document.pdf") -> "SourceDocument":
        """
        Parse a PDF once to validate it and record page sizes.

        Raises:
            SourceLoadError: If the bytes are not a readable PDF
        """
        doc = open_pdf_bytes(data)
        try:
            sizes = [(page.rect.width, page.rect.height) for page in doc]
        finally:
            doc.close()
        logger.debug("Loaded %s with %d pages", name, len(sizes))
        return cls(bytes(data), name, sizes)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SourceDocument":
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise SourceLoadError(f"Failed to read {path}: {e}") from e
        return cls.from_bytes(data, path.name)

    @property
    def page_count(self) -> int:
        return len(self._page_sizes)

    def check_page(self, page_index: int) -> None:
        if not 0 <= page_index < self.page_count:
            raise PageOutOfRange(page_index, self.page_count)

    def page_size(self, page_index: int) -> Tuple[float, float]:
        """
        Get the size of a page in points.

        Raises:
            PageOutOfRange: If the page does not exist
        """
        self.check_page(page_index)
        return self._page_sizes[page_index]

    def clamp_page(self, page_index: int) -> int:
        return max(0, min(self.page_count - 1, page_index))
