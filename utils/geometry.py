from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Tuple
import math

from PyQt6.QtCore import QPointF
from PyQt6.QtGui import QTransform


@dataclass(frozen=True)
class Point2D:
    """Simple 2D point for geometry calculations."""
    x: float
    y: float

    def to_qpointf(self) -> QPointF:
        return QPointF(self.x, self.y)


@dataclass(frozen=True)
class Rect2D:
    """Axis-aligned rectangle stored as edges (top-left origin, y grows down)."""
    left: float
    top: float
    right: float
    bottom: float

    def contains_point(self, point: Point2D) -> bool:
        """Inclusive point-in-box test."""
        return (
            self.left <= point.x <= self.right
            and self.top <= point.y <= self.bottom
        )

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.left, self.top, self.right, self.bottom)


class ViewTransform:
    """
    Converts between document space and view space.

    Document space is the page at zoom 1.0 with a top-left origin. View space
    is the pixel grid of the page as currently rendered. Both share the same
    origin, so the transform is a pure uniform scale by the zoom factor.
    """

    def __init__(self, zoom: float = 1.0):
        if not zoom or zoom <= 0 or math.isnan(zoom):
            raise ValueError(f"Zoom must be positive, got {zoom!r}")
        self._zoom = float(zoom)
        self._transform = QTransform.fromScale(self._zoom, self._zoom)
        inverted, invertible = self._transform.inverted()
        self._inverse_transform = inverted if invertible else QTransform()

    @property
    def zoom(self) -> float:
        return self._zoom

    def to_view_space(self, point: Point2D) -> Point2D:
        """Map a document-space point onto the rendered page."""
        mapped = self._transform.map(point.to_qpointf())
        return Point2D(mapped.x(), mapped.y())

    def to_document_space(self, point: Point2D) -> Point2D:
        """Map a pointer position on the rendered page back to document space."""
        mapped = self._inverse_transform.map(point.to_qpointf())
        return Point2D(mapped.x(), mapped.y())

    def scale_distance(self, distance: float) -> float:
        """Scale a magnitude (stroke width, font size) from document to view space."""
        return distance * self._zoom

    def unscale_distance(self, distance: float) -> float:
        """Scale a magnitude from view to document space."""
        return distance / self._zoom


class PdfPageTransform:
    """
    Flips document space (top-left origin, y down) into PDF user space
    (bottom-left origin, y up) for a page of the given height.
    """

    def __init__(self, page_height: float):
        self._page_height = float(page_height)
        self._transform = QTransform(1.0, 0.0, 0.0, -1.0, 0.0, self._page_height)

    @property
    def page_height(self) -> float:
        return self._page_height

    def to_pdf_space(self, point: Point2D) -> Point2D:
        mapped = self._transform.map(point.to_qpointf())
        return Point2D(mapped.x(), mapped.y())


def to_document_space(view_point: Point2D, zoom: float) -> Point2D:
    return ViewTransform(zoom).to_document_space(view_point)


def to_view_space(document_point: Point2D, zoom: float) -> Point2D:
    return ViewTransform(zoom).to_view_space(document_point)


def point_distance(point1: Point2D, point2: Point2D) -> float:
    """Calculate the Euclidean distance between two points."""
    dx = point2.x - point1.x
    dy = point2.y - point1.y
    return math.sqrt(dx * dx + dy * dy)


def union_rects(rects: Iterable[Rect2D]) -> Rect2D:
    """Smallest rectangle enclosing all given rectangles."""
    rect_list: List[Rect2D] = list(rects)
    if not rect_list:
        return Rect2D(0.0, 0.0, 0.0, 0.0)
    return Rect2D(
        min(r.left for r in rect_list),
        min(r.top for r in rect_list),
        max(r.right for r in rect_list),
        max(r.bottom for r in rect_list),
    )
