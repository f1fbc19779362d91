"""
Unit tests for annotation records and the annotation store.
"""

import pytest

from fillsign.core.annotations import (
    AnnotationKind,
    AnnotationStore,
    StampAnnotation,
    TextAnnotation,
    new_annotation_id,
)


def text(annotation_id="t1", page_index=0, **kwargs):
    return TextAnnotation(id=annotation_id, page_index=page_index, x_pt=10, y_pt=20,
                          text=kwargs.pop("text", "Hi"), **kwargs)


def stamp(annotation_id="s1", page_index=0):
    return StampAnnotation(id=annotation_id, page_index=page_index, x_pt=10, y_pt=20,
                           image=b"png", width_pt=100)


class TestModels:
    """Tests for the annotation dataclasses."""

    def test_kind_is_fixed(self):
        """Each record carries its own kind tag."""
        assert text().kind is AnnotationKind.TEXT
        assert stamp().kind is AnnotationKind.STAMP

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            text(size_pt=0)
        with pytest.raises(ValueError):
            text(page_index=-1)
        with pytest.raises(ValueError):
            text(color=(0, 0, 2))
        with pytest.raises(ValueError):
            StampAnnotation(id="s", page_index=0, x_pt=0, y_pt=0, width_pt=-5)

    def test_lines(self):
        """Text splits into lines; empty text still has one line."""
        assert text(text="a\nb").lines == ["a", "b"]
        assert text(text="").lines == [""]

    def test_new_ids_are_unique(self):
        assert len({new_annotation_id() for _ in range(100)}) == 100


class TestAnnotationStore:
    """Tests for AnnotationStore."""

    def test_add_preserves_order(self):
        store = AnnotationStore()
        store.add(text("a"))
        store.add(stamp("b"))
        store.add(text("c"))
        assert [a.id for a in store.all()] == ["a", "b", "c"]

    def test_list_for_page(self):
        store = AnnotationStore()
        store.add(text("a", page_index=0))
        store.add(text("b", page_index=1))
        store.add(stamp("c", page_index=0))
        assert [a.id for a in store.list_for_page(0)] == ["a", "c"]
        assert [a.id for a in store.list_for_page(1)] == ["b"]
        assert store.list_for_page(7) == []

    def test_update_merges_fields(self):
        """Only the given fields change."""
        store = AnnotationStore()
        store.add(text("a"))
        assert store.update("a", x_pt=99.0)
        ann = store.get("a")
        assert ann.x_pt == 99.0
        assert ann.y_pt == 20
        assert ann.text == "Hi"

    def test_operations_on_unknown_id_are_noops(self):
        """Unknown identifiers never raise."""
        store = AnnotationStore()
        assert store.update("missing", x_pt=1) is False
        assert store.remove("missing") is False
        assert store.set_active("missing") is False
        assert store.get("missing") is None

    def test_update_rejects_bad_fields(self):
        store = AnnotationStore()
        store.add(stamp("s"))
        with pytest.raises(AttributeError):
            store.update("s", id="other")
        with pytest.raises(AttributeError):
            store.update("s", text="stamps have no text")
        with pytest.raises(ValueError):
            store.update("s", width_pt=0)
        # Failed update leaves the record untouched
        assert store.get("s").width_pt == 100

    def test_removing_active_clears_selection(self):
        """No dangling active id after removing the active annotation."""
        store = AnnotationStore()
        store.add(text("a"))
        store.set_active("a")
        assert store.active_id == "a"
        store.remove("a")
        assert store.active_id is None
        assert store.active is None

    def test_removing_other_keeps_selection(self):
        store = AnnotationStore()
        store.add(text("a"))
        store.add(text("b"))
        store.set_active("a")
        store.remove("b")
        assert store.active_id == "a"

    def test_clear(self):
        store = AnnotationStore()
        store.add(text("a"))
        store.set_active("a")
        store.clear()
        assert len(store) == 0
        assert store.active_id is None

    def test_ids_are_not_reused(self):
        """An id stays retired after removal or clear."""
        store = AnnotationStore()
        store.add(text("a"))
        store.remove("a")
        assert store.add(text("a")) is False
        store.add(text("b"))
        store.clear()
        assert store.add(text("b")) is False
        assert len(store) == 0

    def test_set_active_none(self):
        store = AnnotationStore()
        store.add(text("a"))
        store.set_active("a")
        assert store.set_active(None)
        assert store.active_id is None
