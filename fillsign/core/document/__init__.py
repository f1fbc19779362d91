"""
Source documents, page rendering and export compositing.
"""
from .exporter import ExportCompositor, compose_annotations, normalize_pdf_name
from .renderer import PageRenderer, RenderResult, RenderWorker, render_page_image
from .source import SourceDocument

__all__ = [
    'ExportCompositor',
    'compose_annotations',
    'normalize_pdf_name',
    'PageRenderer',
    'RenderResult',
    'RenderWorker',
    'render_page_image',
    'SourceDocument',
]
