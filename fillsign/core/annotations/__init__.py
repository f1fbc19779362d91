"""
Annotation records and their session store.
"""
from .models import (
    Annotation,
    AnnotationKind,
    StampAnnotation,
    TextAnnotation,
    new_annotation_id,
)
from .store import AnnotationStore

__all__ = [
    'Annotation',
    'AnnotationKind',
    'StampAnnotation',
    'TextAnnotation',
    'new_annotation_id',
    'AnnotationStore',
]
