"""
UI package - main window, page editor and signature widgets.
"""
from .main_window import MainWindow
from .page_editor import PageEditorWidget
from .signature_pad import SignaturePadWidget, SignaturePreview
from .text_box import build_editor_chrome

__all__ = [
    'MainWindow',
    'PageEditorWidget',
    'SignaturePadWidget',
    'SignaturePreview',
    'build_editor_chrome',
]
