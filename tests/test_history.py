"""Tests for snapshot-based undo/redo."""

from core.annotation_store import AnnotationStore
from core.history import HistoryManager
from models.annotation import PathAnnotation, Point, TextAnnotation

DOC = "doc.pdf"


def _page(store):
    return [annotation.serialize() for annotation in store.get_page(DOC, 1)]


def _edit(store, history, step):
    history.snapshot_before_edit(DOC, 1)
    if step % 2 == 0:
        store.append(DOC, 1, PathAnnotation(points=[Point(step, step), Point(step + 1, step)]))
    else:
        store.mutate_in_place(store.get_page(DOC, 1)[0], 1.0, 2.0)


def test_undo_all_then_redo_all_restores_each_state() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    states = [_page(store)]
    for step in range(6):
        _edit(store, history, step)
        states.append(_page(store))

    for expected in reversed(states[:-1]):
        assert history.undo(DOC, 1) is not None
        assert _page(store) == expected

    for expected in states[1:]:
        assert history.redo(DOC, 1) is not None
        assert _page(store) == expected


def test_undo_on_empty_stack_is_noop() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    store.append(DOC, 1, TextAnnotation(text="keep", x=1.0, y=1.0))

    assert history.undo(DOC, 1) is None
    assert history.redo(DOC, 1) is None
    assert history.undo("never-seen.pdf", 4) is None
    assert [a.text for a in store.get_page(DOC, 1)] == ["keep"]


def test_new_edit_clears_redo() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    _edit(store, history, 0)
    history.undo(DOC, 1)
    assert history.can_redo(DOC, 1)

    _edit(store, history, 2)

    assert not history.can_redo(DOC, 1)


def test_snapshot_is_a_deep_copy() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    text = TextAnnotation(text="move me", x=0.0, y=0.0)
    store.append(DOC, 1, text)

    history.snapshot_before_edit(DOC, 1)
    store.mutate_in_place(text, 10.0, 10.0)
    history.undo(DOC, 1)

    restored = store.get_page(DOC, 1)[0]
    assert (restored.x, restored.y) == (0.0, 0.0)


def test_history_is_per_page() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    history.snapshot_before_edit(DOC, 1)
    store.append(DOC, 1, PathAnnotation(points=[Point(1, 1)]))

    assert history.undo(DOC, 2) is None
    assert len(store.get_page(DOC, 1)) == 1
    assert history.snapshot_before_edit(None, 1) is False


def test_clear_by_document() -> None:
    store = AnnotationStore()
    history = HistoryManager(store)
    history.snapshot_before_edit("a.pdf", 1)
    history.snapshot_before_edit("b.pdf", 1)

    history.clear("a.pdf")

    assert not history.can_undo("a.pdf", 1)
    assert history.can_undo("b.pdf", 1)
