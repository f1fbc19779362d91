"""
Core Fill & Sign engine: geometry, annotations, drag, metrics, signatures.
"""
from .annotations import (Annotation, AnnotationKind, AnnotationStore,
                          StampAnnotation, TextAnnotation, new_annotation_id)
from .drag import DragController, HitRegion
from .geometry import GeometryContext, to_css_point, to_pdf_point

__all__ = [
    'Annotation',
    'AnnotationKind',
    'AnnotationStore',
    'StampAnnotation',
    'TextAnnotation',
    'new_annotation_id',
    'DragController',
    'HitRegion',
    'GeometryContext',
    'to_css_point',
    'to_pdf_point',
]
