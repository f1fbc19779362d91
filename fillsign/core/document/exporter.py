"""
Bakes text and stamp annotations into a PDF as permanent page content.
"""
import logging
import os
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import fitz  # PyMuPDF

from fillsign.core.annotations import (Annotation, AnnotationKind, StampAnnotation,
                                       TextAnnotation)
from fillsign.core.document.source import open_pdf_bytes
from fillsign.core.errors import ExportError, FillSignError, ImageDecodeError
from fillsign.core.metrics import FontMetricsSnapshot

logger = logging.getLogger(__name__)

BUILTIN_FONT = "helv"
FALLBACK_UNICODE_FONT = "cjk"


def normalize_pdf_name(name: str) -> str:
    """Make sure an output file name ends in ``.pdf``."""
    name = name.strip() or "document.pdf"
    return name if name.lower().endswith(".pdf") else f"{name}.pdf"


def _fits_builtin_encoding(text: str) -> bool:
    # Base-14 fonts are written with a Latin single-byte encoding
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def _covers(font: fitz.Font, text: str) -> bool:
    return all(font.has_glyph(ord(c)) for c in text if not c.isspace())


class ExportCompositor:
    """
    Composites annotations onto a copy of the source document.

    Stamps go down first on every page so text is never hidden under a
    signature placed later. Text that Helvetica's Latin encoding can
    represent uses the built-in font; anything else is written with an
    embedded Unicode font, and embedded fonts are subset before saving.
    """

    def __init__(self, unicode_font_file: Optional[Union[str, Path]] = None):
        self.unicode_font_file = str(unicode_font_file) if unicode_font_file else None
        self._unicode_fonts: Optional[List[fitz.Font]] = None

    def compose(self, source_bytes: bytes, annotations: Iterable[Annotation],
                metrics: Optional[FontMetricsSnapshot] = None,
                pixels_per_point: float = 1.0) -> bytes:
        """
        Produce new document bytes with all annotations drawn in.

        Args:
            source_bytes: Original PDF bytes
            annotations: Annotations for any pages; ones on missing pages are dropped
            metrics: Editor metrics used to move text anchors onto the baseline
                shown in the editor; None draws text with the anchor as baseline
            pixels_per_point: Editor scale the metrics were taken at

        Returns:
            Bytes of the annotated PDF

        Raises:
            ExportError: If the source cannot be parsed, a stamp cannot be
                decoded or writing fails. Nothing partial is returned.
        """
        try:
            doc = open_pdf_bytes(source_bytes)
        except FillSignError as e:
            raise ExportError(str(e), e) from e

        try:
            embedded = False
            for page_index, page_annotations in sorted(self._group_by_page(annotations).items()):
                if page_index >= doc.page_count:
                    logger.debug("Dropping %d annotation(s) for missing page %d",
                                 len(page_annotations), page_index)
                    continue
                page = doc[page_index]

                for ann in page_annotations:
                    if ann.kind is AnnotationKind.STAMP:
                        self._draw_stamp(page, ann)
                for ann in page_annotations:
                    if ann.kind is AnnotationKind.TEXT:
                        embedded |= self._draw_text(page, ann, metrics, pixels_per_point)

            if embedded:
                doc.subset_fonts()
            return doc.tobytes(garbage=4, deflate=True)
        except FillSignError as e:
            raise ExportError(str(e), e) from e
        except Exception as e:
            raise ExportError(f"Failed to export annotations to PDF: {e}", e) from e
        finally:
            doc.close()

    def export_to_file(self, source_bytes: bytes, annotations: Iterable[Annotation],
                       output_path: Union[str, Path],
                       metrics: Optional[FontMetricsSnapshot] = None,
                       pixels_per_point: float = 1.0) -> Path:
        """
        Compose and write the result, replacing ``output_path`` atomically.

        Returns:
            The path written (with a ``.pdf`` suffix enforced)
        """
        output_path = Path(output_path)
        output_path = output_path.with_name(normalize_pdf_name(output_path.name))
        data = self.compose(source_bytes, annotations, metrics, pixels_per_point)

        output_dir = output_path.parent if str(output_path.parent) else Path(".")
        temp_path = None
        try:
            temp_fd, temp_path = tempfile.mkstemp(suffix='.pdf', dir=str(output_dir))
            with os.fdopen(temp_fd, 'wb') as f:
                f.write(data)
            os.replace(temp_path, output_path)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
            raise ExportError(f"Failed to write {output_path}: {e}", e) from e
        return output_path

    @staticmethod
    def _group_by_page(annotations: Iterable[Annotation]) -> Dict[int, List[Annotation]]:
        by_page: Dict[int, List[Annotation]] = defaultdict(list)
        for ann in annotations:
            by_page[ann.page_index].append(ann)
        return by_page

    @staticmethod
    def _to_page_point(page: fitz.Page, x_pt: float, y_pt: float) -> fitz.Point:
        """PDF points (bottom-left origin) to PyMuPDF page space (top-left origin)."""
        return fitz.Point(x_pt, page.rect.height - y_pt)

    def _draw_stamp(self, page: fitz.Page, ann: StampAnnotation) -> None:
        try:
            pix = fitz.Pixmap(ann.image)
        except Exception as e:
            raise ImageDecodeError(f"Stamp {ann.id} image could not be decoded: {e}") from e
        if pix.width <= 0 or pix.height <= 0:
            raise ImageDecodeError(f"Stamp {ann.id} image is empty")

        width = ann.width_pt
        height = ann.width_pt * pix.height / pix.width
        bottom_left = self._to_page_point(page, ann.x_pt, ann.y_pt)
        rect = fitz.Rect(bottom_left.x, bottom_left.y - height,
                         bottom_left.x + width, bottom_left.y)
        page.insert_image(rect, stream=ann.image, keep_proportion=False)

    def _draw_text(self, page: fitz.Page, ann: TextAnnotation,
                   metrics: Optional[FontMetricsSnapshot],
                   pixels_per_point: float) -> bool:
        """
        Draw a text annotation line by line.

        Returns:
            True if an embedded font was used
        """
        if not ann.text.strip():
            return False

        if metrics is not None:
            x_pt, y_pt = metrics.text_origin_pt(ann.x_pt, ann.y_pt, ann.size_pt, pixels_per_point)
            spacing = metrics.line_spacing_pt(ann.size_pt)
        else:
            x_pt, y_pt = ann.x_pt, ann.y_pt
            spacing = FontMetricsSnapshot().line_spacing_pt(ann.size_pt)

        origins = [self._to_page_point(page, x_pt, y_pt - i * spacing)
                   for i in range(len(ann.lines))]

        if _fits_builtin_encoding(ann.text):
            for origin, line in zip(origins, ann.lines):
                if line:
                    page.insert_text(origin, line, fontsize=ann.size_pt,
                                     fontname=BUILTIN_FONT, color=ann.color)
            return False

        font = self._unicode_font_for(ann.text)
        writer = fitz.TextWriter(page.rect)
        for origin, line in zip(origins, ann.lines):
            if line:
                writer.append(origin, line, font=font, fontsize=ann.size_pt)
        writer.write_text(page, color=ann.color)
        return True

    def _load_unicode_fonts(self) -> List[fitz.Font]:
        if self._unicode_fonts is None:
            fonts = []
            if self.unicode_font_file:
                try:
                    fonts.append(fitz.Font(fontfile=self.unicode_font_file))
                except Exception as e:
                    logger.warning("Could not load font %s: %s", self.unicode_font_file, e)
            fonts.append(fitz.Font(BUILTIN_FONT))
            fonts.append(fitz.Font(FALLBACK_UNICODE_FONT))
            self._unicode_fonts = fonts
        return self._unicode_fonts

    def _unicode_font_for(self, text: str) -> fitz.Font:
        fonts = self._load_unicode_fonts()
        for font in fonts:
            if _covers(font, text):
                return font
        logger.warning("No available font covers all characters of %r", text[:40])
        return fonts[-1]


def compose_annotations(source_bytes: bytes, annotations: Iterable[Annotation],
                        metrics: Optional[FontMetricsSnapshot] = None,
                        pixels_per_point: float = 1.0,
                        unicode_font_file: Optional[str] = None) -> bytes:
    """Convenience wrapper around :meth:`ExportCompositor.compose`."""
    return ExportCompositor(unicode_font_file).compose(
        source_bytes, annotations, metrics, pixels_per_point)


def page_text_origins(pdf_bytes: bytes, page_index: int) -> List[Tuple[str, float, float]]:
    """
    List text spans on a page as (text, x, y) baseline origins in PDF points.

    Useful for checking where exported text landed.
    """
    doc = open_pdf_bytes(pdf_bytes)
    try:
        page = doc[page_index]
        height = page.rect.height
        spans = []
        for block in page.get_text("dict")["blocks"]:
            for line in block.get("lines", []):
                for span in line["spans"]:
                    ox, oy = span["origin"]
                    spans.append((span["text"], ox, height - oy))
        return spans
    finally:
        doc.close()
