"""
Pointer-drag state machine for moving annotations.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from fillsign.core.annotations import AnnotationKind, AnnotationStore
from fillsign.core.geometry import css_delta_to_pdf

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class HitRegion(Enum):
    """Which part of an annotation's on-screen box a pointer went down on."""

    HANDLE = "handle"  # border / drag handle
    BODY = "body"  # stamp image
    EDITOR = "editor"  # inside the editable text control


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    annotation_id: str
    start_css: Point
    start_pt: Point


DragState = Union[Idle, Dragging]

IDLE = Idle()


class DragController:
    """
    Translates pointer deltas in editor pixels into annotation moves.

    Only one drag session exists at a time. The pixels-per-point ratio is
    read through a callable so zoom changes mid-drag are honoured.
    """

    def __init__(self, store: AnnotationStore,
                 pixels_per_point: Callable[[], float],
                 release_pointer: Optional[Callable[[], None]] = None):
        self.store = store
        self._pixels_per_point = pixels_per_point
        self._release_pointer = release_pointer
        self.state: DragState = IDLE

    @property
    def is_dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    @property
    def dragged_id(self) -> Optional[str]:
        return self.state.annotation_id if isinstance(self.state, Dragging) else None

    def begin(self, annotation_id: str, css_point: Point,
              region: HitRegion = HitRegion.HANDLE) -> bool:
        """
        Start dragging an annotation.

        Args:
            annotation_id: Annotation under the pointer
            css_point: Pointer position in editor pixels
            region: Part of the annotation that was hit

        Returns:
            True if a drag session started
        """
        if self.is_dragging:
            return False

        annotation = self.store.get(annotation_id)
        if annotation is None:
            return False

        # Leave text selection inside the editor alone
        if annotation.kind is AnnotationKind.TEXT and region is HitRegion.EDITOR:
            return False

        self.store.set_active(annotation_id)
        self.state = Dragging(
            annotation_id=annotation_id,
            start_css=(float(css_point[0]), float(css_point[1])),
            start_pt=(annotation.x_pt, annotation.y_pt),
        )
        return True

    def move(self, css_point: Point) -> bool:
        """
        Move the dragged annotation so it follows the pointer.

        Returns:
            True if an annotation was moved
        """
        state = self.state
        if not isinstance(state, Dragging):
            return False

        ppp = self._pixels_per_point()
        if not ppp > 0:
            return False

        dx_pt, dy_pt = css_delta_to_pdf(css_point[0] - state.start_css[0],
                                        css_point[1] - state.start_css[1], ppp)
        return self.store.update(state.annotation_id,
                                 x_pt=state.start_pt[0] + dx_pt,
                                 y_pt=state.start_pt[1] + dy_pt)

    def end(self) -> Optional[str]:
        """
        Finish (or cancel) the current drag.

        Always releases the pointer and resets, even if the annotation has
        been removed in the meantime.

        Returns:
            The identifier that was being dragged, if any
        """
        dragged = self.dragged_id
        self.state = IDLE
        if dragged is not None and self._release_pointer is not None:
            self._release_pointer()
        return dragged

    cancel = end
