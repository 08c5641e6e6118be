from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, List, Sequence, Tuple
import logging

from core.annotation_store import AnnotationStore
from core.bidi import contains_hebrew
from models.annotation import AnnotationBase, PathAnnotation, TextAnnotation
from models.settings import AnnotationSettings
from utils.geometry import Point2D, Rect2D, ViewTransform, point_distance, union_rects

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Hit:
    index: int
    annotation: AnnotationBase


class HitTester:
    """
    Geometric queries against stored annotations.

    Queries arrive in view pixels; stored geometry is scaled up by the zoom
    for comparison. Iteration is reverse z-order so the topmost entry wins.
    """

    def __init__(self, settings: Optional[AnnotationSettings] = None):
        self._settings = settings or AnnotationSettings()

    def hit_radius(self, zoom: float) -> float:
        return self._settings.hit_radius * zoom

    def text_bounds(self, annotation: TextAnnotation, zoom: float) -> Rect2D:
        """
        Approximate view-space box of a text note.

        Width is characters * font size * glyph factor per line; lines
        containing Hebrew grow leftwards from the anchor.
        """
        transform = ViewTransform(zoom)
        font_size = transform.scale_distance(annotation.font_size)
        line_height = font_size * self._settings.text_line_height
        anchor = transform.to_view_space(Point2D(annotation.x, annotation.y))
        lines = annotation.lines
        bottom = anchor.y + line_height * max(len(lines), 1)

        line_rects = []
        for line in lines:
            width = len(line) * font_size * self._settings.glyph_width_factor
            left = anchor.x - width if contains_hebrew(line) else anchor.x
            line_rects.append(Rect2D(left, anchor.y, left + width, bottom))
        return union_rects(line_rects)

    def path_hit(self, annotation: PathAnnotation, view_point: Point2D, zoom: float) -> bool:
        """Point-sampling test: any stored point closer than the hit radius."""
        transform = ViewTransform(zoom)
        radius = self.hit_radius(zoom)
        return any(
            point_distance(transform.to_view_space(p.to_point2d()), view_point) < radius
            for p in annotation.points
        )

    def text_hit(self, annotation: TextAnnotation, view_point: Point2D, zoom: float) -> bool:
        return self.text_bounds(annotation, zoom).contains_point(view_point)

    def hits(self, annotation: AnnotationBase, view_point: Point2D, zoom: float) -> bool:
        if isinstance(annotation, PathAnnotation):
            return self.path_hit(annotation, view_point, zoom)
        if isinstance(annotation, TextAnnotation):
            return self.text_hit(annotation, view_point, zoom)
        return False

    def find_annotation_at(
        self,
        annotations: Sequence[AnnotationBase],
        view_point: Point2D,
        zoom: float,
    ) -> Optional[Hit]:
        """Topmost annotation under the pointer, or None."""
        for index in range(len(annotations) - 1, -1, -1):
            if self.hits(annotations[index], view_point, zoom):
                return Hit(index=index, annotation=annotations[index])
        return None


class EraseEngine:
    """Removes every annotation under the eraser in one batch."""

    def __init__(self, store: AnnotationStore, hit_tester: Optional[HitTester] = None):
        self._store = store
        self._hit_tester = hit_tester or HitTester()

    def erase_at(
        self,
        document_id: Optional[str],
        page_number: int,
        view_point: Point2D,
        zoom: float,
    ) -> List[AnnotationBase]:
        """
        Delete all annotations hit at the point, topmost first.

        Returns the removed annotations; an empty list means nothing changed.
        """
        if document_id is None:
            return []

        annotations = self._store.get_page(document_id, page_number)
        doomed: List[Tuple[int, AnnotationBase]] = [
            (index, annotations[index])
            for index in range(len(annotations) - 1, -1, -1)
            if self._hit_tester.hits(annotations[index], view_point, zoom)
        ]

        # Indices are descending, so earlier removals don't shift later ones
        for index, _ in doomed:
            self._store.remove_at(document_id, page_number, index)

        if doomed:
            logger.debug(f"Erased {len(doomed)} annotation(s) on {document_id} page {page_number}")
        return [annotation for _, annotation in doomed]
