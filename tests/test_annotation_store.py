"""Tests for the annotation model and the per-page store."""

import pytest

from core.annotation_store import AnnotationStore
from models.annotation import (
    AnnotationFactory,
    PathAnnotation,
    Point,
    TextAnnotation,
    annotations_equal,
)
from utils.geometry import Point2D


def _path(*coordinates, color="#ff0000") -> PathAnnotation:
    return PathAnnotation(color=color, points=[Point(x, y) for x, y in coordinates])


def test_append_without_document_is_noop() -> None:
    store = AnnotationStore()

    assert store.append(None, 1, _path((1, 1))) is False
    assert store.get_page(None, 1) == ()


def test_append_rejects_empty_path() -> None:
    store = AnnotationStore()

    assert store.append("a.pdf", 1, PathAnnotation(points=[])) is False
    assert store.get_page("a.pdf", 1) == ()


def test_get_page_defaults_to_empty_and_is_read_only() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 2, _path((1, 1)))

    assert store.get_page("a.pdf", 1) == ()
    assert isinstance(store.get_page("a.pdf", 2), tuple)
    assert len(store.get_page("a.pdf", 2)) == 1


def test_remove_at_out_of_range_is_noop() -> None:
    store = AnnotationStore()
    first = _path((1, 1))
    store.append("a.pdf", 1, first)

    assert store.remove_at("a.pdf", 1, 5) is None
    assert store.remove_at("missing.pdf", 1, 0) is None
    assert store.remove_at("a.pdf", 1, 0) is first
    assert store.get_page("a.pdf", 1) == ()


def test_mutate_in_place_moves_every_point_and_text_anchor() -> None:
    path = _path((1, 2), (3, 4))
    text = TextAnnotation(text="hi", x=10.0, y=20.0)

    AnnotationStore.mutate_in_place(path, 5.0, -1.0)
    AnnotationStore.mutate_in_place(text, 5.0, -1.0)

    assert path.points == [Point(6, 1), Point(8, 3)]
    assert (text.x, text.y) == (15.0, 19.0)


def test_merge_page_skips_near_duplicates() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 1, _path((1, 1), (2, 2)))

    added = store.merge_page("a.pdf", 1, [_path((1.0004, 1), (2, 2)), _path((9, 9))])

    assert added == 1
    assert len(store.get_page("a.pdf", 1)) == 2


def test_to_dict_uses_string_page_keys() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 3, TextAnnotation(text="ok", x=1.0, y=2.0, font_size=12.0, color="#00ff00"))

    assert store.to_dict() == {
        "a.pdf": {"3": [{"type": "text", "text": "ok", "x": 1.0, "y": 2.0, "size": 12.0, "color": "#00ff00"}]}
    }


def test_path_serialized_shape() -> None:
    path = PathAnnotation(color="#0000ff", stroke_width=3.0, points=[Point(1.5, 2.5)])

    assert path.serialize() == {
        "type": "path",
        "color": "#0000ff",
        "width": 3.0,
        "points": [{"x": 1.5, "y": 2.5}],
    }
    assert path.rgb == (0.0, 0.0, 1.0)


def test_factory_converts_view_input_to_document_space() -> None:
    path = AnnotationFactory.path_from_view(
        [Point2D(20, 40), Point2D(30, 50)], stroke_width=4.0, color="#ff0000", zoom=2.0
    )

    assert path.points == [Point(10, 20), Point(15, 25)]
    assert path.stroke_width == 2.0
    assert AnnotationFactory.path_from_view([], 2.0, "#ff0000", 1.0) is None


def test_factory_deserialize_rejects_unknown_and_empty() -> None:
    with pytest.raises(ValueError):
        AnnotationFactory.deserialize({"type": "stamp"})
    with pytest.raises(ValueError):
        AnnotationFactory.deserialize({"type": "path", "points": []})


def test_annotations_equal_compares_type_and_colour_first() -> None:
    text = TextAnnotation(text="a", x=1.0, y=1.0)

    assert annotations_equal(text, TextAnnotation(text="a", x=1.0005, y=1.0))
    assert not annotations_equal(text, TextAnnotation(text="a", x=1.0, y=1.0, color="#000000"))
    assert not annotations_equal(text, _path((1, 1)))
