"""
Annotation records placed on PDF pages.

Annotations form a closed union of two kinds, :class:`TextAnnotation` and
:class:`StampAnnotation`. Code that handles them switches on ``kind``.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union

RGB = Tuple[float, float, float]


class AnnotationKind(Enum):
    TEXT = "text"
    STAMP = "stamp"


def new_annotation_id() -> str:
    """Generate a fresh, session-unique annotation identifier."""
    return uuid.uuid4().hex


def _check_page_index(page_index: int) -> None:
    if page_index < 0:
        raise ValueError(f"page_index must be non-negative, got {page_index}")


def _check_positive(name: str, value: float) -> None:
    if not value > 0:
        raise ValueError(f"{name} must be positive, got {value}")


def _check_color(color: RGB) -> None:
    if len(color) != 3 or any(not 0.0 <= c <= 1.0 for c in color):
        raise ValueError(f"color channels must be within 0-1, got {color}")


@dataclass
class TextAnnotation:
    """Freeform text. The anchor is the top-left of the editor box for the first line."""

    id: str
    page_index: int
    x_pt: float
    y_pt: float
    text: str = ""
    size_pt: float = 14.0
    color: RGB = (0.0, 0.0, 0.0)
    kind: AnnotationKind = field(default=AnnotationKind.TEXT, init=False)

    def __post_init__(self):
        _check_page_index(self.page_index)
        _check_positive("size_pt", self.size_pt)
        self.color = tuple(float(c) for c in self.color)
        _check_color(self.color)

    @property
    def lines(self):
        return self.text.splitlines() or [""]


@dataclass
class StampAnnotation:
    """Raster image (usually a signature). The anchor is the bottom-left corner."""

    id: str
    page_index: int
    x_pt: float
    y_pt: float
    image: bytes = field(repr=False, default=b"")
    width_pt: float = 180.0
    kind: AnnotationKind = field(default=AnnotationKind.STAMP, init=False)

    def __post_init__(self):
        _check_page_index(self.page_index)
        _check_positive("width_pt", self.width_pt)


Annotation = Union[TextAnnotation, StampAnnotation]


def validate_field(annotation: Annotation, name: str, value) -> None:
    """Check one patched field against the record's invariants."""
    if name == "page_index":
        _check_page_index(value)
    elif name in ("size_pt", "width_pt"):
        _check_positive(name, value)
    elif name == "color":
        _check_color(tuple(value))
