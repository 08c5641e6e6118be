"""Tests for hit-testing and erasing."""

import pytest

from core.annotation_store import AnnotationStore
from core.hit_test import EraseEngine, HitTester
from models.annotation import PathAnnotation, Point, TextAnnotation
from utils.geometry import Point2D


def _dot(x, y) -> PathAnnotation:
    return PathAnnotation(points=[Point(x, y)])


def test_single_point_path_hit_radius() -> None:
    tester = HitTester()
    path = _dot(100, 100)

    assert tester.path_hit(path, Point2D(105, 100), 1.0)
    assert not tester.path_hit(path, Point2D(120, 100), 1.0)
    assert not tester.path_hit(path, Point2D(110, 100), 1.0)


def test_hit_radius_scales_with_zoom() -> None:
    tester = HitTester()
    path = _dot(100, 100)

    assert tester.hit_radius(2.0) == 20.0
    assert tester.path_hit(path, Point2D(215, 200), 2.0)
    assert not tester.path_hit(path, Point2D(105, 100), 2.0)


def test_text_bounds_left_to_right() -> None:
    bounds = HitTester().text_bounds(TextAnnotation(text="abc\nde", x=10.0, y=20.0, font_size=10.0), 1.0)

    assert bounds.left == 10.0
    assert bounds.top == 20.0
    assert bounds.right == pytest.approx(28.0)
    assert bounds.bottom == pytest.approx(44.0)


def test_hebrew_text_bounds_grow_leftwards() -> None:
    tester = HitTester()
    text = TextAnnotation(text="שלום", x=100.0, y=20.0, font_size=10.0)

    bounds = tester.text_bounds(text, 1.0)

    assert bounds.left == pytest.approx(76.0)
    assert bounds.right == pytest.approx(100.0)
    assert tester.text_hit(text, Point2D(80, 25), 1.0)
    assert not tester.text_hit(text, Point2D(105, 25), 1.0)


def test_find_annotation_at_prefers_topmost() -> None:
    bottom, top = _dot(100, 100), _dot(102, 100)

    hit = HitTester().find_annotation_at([bottom, top], Point2D(101, 100), 1.0)

    assert hit.index == 1
    assert hit.annotation is top
    assert HitTester().find_annotation_at([bottom, top], Point2D(300, 300), 1.0) is None


def test_erase_removes_every_overlapping_annotation() -> None:
    store = AnnotationStore()
    keep = _dot(300, 300)
    for annotation in (_dot(100, 100), keep, _dot(104, 100)):
        store.append("a.pdf", 1, annotation)

    removed = EraseEngine(store).erase_at("a.pdf", 1, Point2D(102, 100), 1.0)

    assert len(removed) == 2
    assert list(store.get_page("a.pdf", 1)) == [keep]


def test_erase_without_document_or_hits_changes_nothing() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 1, _dot(100, 100))
    engine = EraseEngine(store)

    assert engine.erase_at(None, 1, Point2D(100, 100), 1.0) == []
    assert engine.erase_at("a.pdf", 1, Point2D(400, 400), 1.0) == []
    assert len(store.get_page("a.pdf", 1)) == 1


def test_session_erase_requests_exactly_one_save(session, saves) -> None:
    session.add_annotation(_dot(100, 100))
    session.add_annotation(_dot(104, 100))
    saves.clear()

    removed = session.erase_at(Point2D(102, 100))

    assert len(removed) == 2
    assert len(saves) == 1


def test_session_erase_miss_does_not_save(session, saves) -> None:
    session.add_annotation(_dot(100, 100))
    saves.clear()

    assert session.erase_at(Point2D(500, 500)) == []
    assert saves == []
