"""
Unit tests for the drag state machine.
"""

import pytest

from fillsign.core.annotations import AnnotationStore, StampAnnotation, TextAnnotation
from fillsign.core.drag import DragController, Dragging, HitRegion, IDLE


@pytest.fixture
def store():
    store = AnnotationStore()
    store.add(TextAnnotation(id="t", page_index=0, x_pt=100, y_pt=700, text="Hello"))
    store.add(StampAnnotation(id="s", page_index=0, x_pt=50, y_pt=50, image=b"png", width_pt=100))
    return store


class Scale:
    """Mutable pixels-per-point source."""

    def __init__(self, value):
        self.value = value

    def __call__(self):
        return self.value


class TestDragController:
    """Tests for DragController."""

    def test_begin_and_move(self, store):
        drag = DragController(store, Scale(2.0))
        assert drag.begin("s", (10, 10), HitRegion.BODY)
        assert isinstance(drag.state, Dragging)
        assert store.active_id == "s"

        drag.move((30, 50))
        ann = store.get("s")
        assert ann.x_pt == pytest.approx(50 + 20 / 2.0)
        assert ann.y_pt == pytest.approx(50 - 40 / 2.0)

    @pytest.mark.parametrize("ppp", [0.5, 1.0, 2.5])
    def test_delta_independent_of_zoom(self, store, ppp):
        """Moving by (dx, dy) px changes the anchor by (dx/ppp, -dy/ppp)."""
        drag = DragController(store, Scale(ppp))
        drag.begin("t", (100, 100))
        drag.move((100 + 15, 100 + 9))
        ann = store.get("t")
        assert ann.x_pt == pytest.approx(100 + 15 / ppp)
        assert ann.y_pt == pytest.approx(700 - 9 / ppp)

    def test_moves_are_relative_to_start(self, store):
        """Repeated moves do not accumulate."""
        drag = DragController(store, Scale(1.0))
        drag.begin("t", (0, 0))
        drag.move((10, 0))
        drag.move((10, 0))
        assert store.get("t").x_pt == pytest.approx(110)

    def test_second_drag_is_ignored(self, store):
        """Only one drag session at a time."""
        drag = DragController(store, Scale(1.0))
        assert drag.begin("t", (0, 0))
        assert drag.begin("s", (5, 5), HitRegion.BODY) is False
        assert drag.dragged_id == "t"
        drag.move((4, 0))
        assert store.get("s").x_pt == 50

        drag.end()
        assert drag.begin("s", (5, 5), HitRegion.BODY)

    def test_text_editor_region_does_not_drag(self, store):
        """Presses inside the text editor are left to text selection."""
        drag = DragController(store, Scale(1.0))
        assert drag.begin("t", (0, 0), HitRegion.EDITOR) is False
        assert drag.state is IDLE

    def test_unknown_annotation(self, store):
        drag = DragController(store, Scale(1.0))
        assert drag.begin("nope", (0, 0)) is False
        assert drag.move((5, 5)) is False

    def test_end_releases_pointer_after_removal(self, store):
        """Ending a drag resets and releases even if the annotation vanished."""
        released = []
        drag = DragController(store, Scale(1.0), lambda: released.append(True))
        drag.begin("t", (0, 0))
        store.remove("t")
        assert drag.move((5, 5)) is False
        assert drag.end() == "t"
        assert released == [True]
        assert drag.state is IDLE

    def test_end_when_idle_does_not_release(self, store):
        released = []
        drag = DragController(store, Scale(1.0), lambda: released.append(True))
        assert drag.end() is None
        assert released == []

    def test_zoom_change_mid_drag(self, store):
        """The current scale is read on every move."""
        scale = Scale(1.0)
        drag = DragController(store, scale)
        drag.begin("s", (0, 0), HitRegion.BODY)
        scale.value = 2.0
        drag.move((20, 0))
        assert store.get("s").x_pt == pytest.approx(60)
