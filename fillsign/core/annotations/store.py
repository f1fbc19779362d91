"""
Session-owned collection of annotations with a single active selection.
"""
import logging
from typing import Dict, Iterator, List, Optional, Set

from .models import Annotation, validate_field

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = frozenset({"id", "kind"})


class AnnotationStore:
    """
    Ordered annotations for one editing session.

    Every operation is total: unknown identifiers are ignored and reported
    through the boolean return value rather than an exception.
    """

    def __init__(self):
        self._annotations: Dict[str, Annotation] = {}
        self._used_ids: Set[str] = set()
        self._active_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._annotations)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._annotations.values()))

    def __contains__(self, annotation_id: str) -> bool:
        return annotation_id in self._annotations

    def get(self, annotation_id: Optional[str]) -> Optional[Annotation]:
        if annotation_id is None:
            return None
        return self._annotations.get(annotation_id)

    def all(self) -> List[Annotation]:
        return list(self._annotations.values())

    def list_for_page(self, page_index: int) -> List[Annotation]:
        """
        Get all annotations for a page in insertion order.

        Args:
            page_index: 0-based page index

        Returns:
            Annotations on that page
        """
        return [a for a in self._annotations.values() if a.page_index == page_index]

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Annotation]:
        return self.get(self._active_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, annotation: Annotation) -> bool:
        """
        Append an annotation.

        Returns:
            False if the identifier is already used in this session
        """
        if annotation.id in self._used_ids:
            logger.warning("Refusing to reuse annotation id %s", annotation.id)
            return False
        self._used_ids.add(annotation.id)
        self._annotations[annotation.id] = annotation
        return True

    def update(self, annotation_id: str, **patch) -> bool:
        """
        Merge the given fields into an annotation in place.

        Raises:
            AttributeError: If a field does not exist on that annotation kind
            ValueError: If a value breaks an invariant (e.g. non-positive size)

        Returns:
            False if the identifier is unknown
        """
        annotation = self._annotations.get(annotation_id)
        if annotation is None:
            return False

        for name, value in patch.items():
            if name in IMMUTABLE_FIELDS:
                raise AttributeError(f"'{name}' cannot be changed")
            if not hasattr(annotation, name):
                raise AttributeError(
                    f"{type(annotation).__name__} has no field '{name}'"
                )
            validate_field(annotation, name, value)

        for name, value in patch.items():
            setattr(annotation, name, tuple(value) if name == "color" else value)
        return True

    def remove(self, annotation_id: str) -> bool:
        """Remove an annotation permanently; clears the selection if it was active."""
        if self._annotations.pop(annotation_id, None) is None:
            return False
        if self._active_id == annotation_id:
            self._active_id = None
        return True

    def clear(self) -> None:
        """Remove all annotations. Used identifiers stay retired."""
        self._annotations.clear()
        self._active_id = None

    def set_active(self, annotation_id: Optional[str]) -> bool:
        """
        Select an annotation, or clear the selection with None.

        Returns:
            False if the identifier is unknown (selection is left unchanged)
        """
        if annotation_id is not None and annotation_id not in self._annotations:
            return False
        self._active_id = annotation_id
        return True
