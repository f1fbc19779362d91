"""
Error types raised by the Fill & Sign core.
"""
from typing import Optional


class FillSignError(Exception):
    """Base class for all Fill & Sign failures."""


class SourceLoadError(FillSignError):
    """The source document bytes could not be parsed."""


class PageOutOfRange(FillSignError):
    """A page index does not exist in the source document."""

    def __init__(self, page_index: int, page_count: int):
        super().__init__(
            f"Page index {page_index} is out of range (document has {page_count} pages)"
        )
        self.page_index = page_index
        self.page_count = page_count


class ImageDecodeError(FillSignError):
    """A stamp payload is not a decodable raster image."""


class RenderCancelled(FillSignError):
    """A page render was superseded. Never shown to the user."""


class ExportError(FillSignError):
    """Compositing annotations into the document failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
