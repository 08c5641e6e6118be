from __future__ import annotations
from typing import Optional, Dict, List, Sequence
import logging

from models.annotation import (
    AnnotationBase,
    PathAnnotation,
    annotations_equal,
)

logger = logging.getLogger(__name__)

PageAnnotations = List[AnnotationBase]


class AnnotationStore:
    """
    Per-document, per-page ordered annotation lists in document space.

    List order is z-order: later entries draw on top and are hit first.
    Page numbers are 1-based.
    """

    def __init__(self):
        self._pages: Dict[str, Dict[int, PageAnnotations]] = {}

    def append(
        self,
        document_id: Optional[str],
        page_number: int,
        annotation: AnnotationBase,
    ) -> bool:
        """Push an annotation on top of the page. No-op without an active document."""
        if document_id is None:
            logger.debug("append ignored: no active document")
            return False
        if isinstance(annotation, PathAnnotation) and not annotation.is_valid:
            logger.warning("append ignored: path annotation has no points")
            return False

        self._page_list(document_id, page_number).append(annotation)
        return True

    def remove_at(self, document_id: Optional[str], page_number: int, index: int) -> Optional[AnnotationBase]:
        """Remove one entry; returns it, or None if the index is out of range."""
        annotations = self._existing_page(document_id, page_number)
        if annotations is None or not 0 <= index < len(annotations):
            return None
        return annotations.pop(index)

    def remove(self, document_id: Optional[str], page_number: int, annotation: AnnotationBase) -> bool:
        """Remove a specific annotation object (identity, not equality)."""
        annotations = self._existing_page(document_id, page_number)
        if annotations is None:
            return False
        for index, candidate in enumerate(annotations):
            if candidate is annotation:
                del annotations[index]
                return True
        return False

    @staticmethod
    def mutate_in_place(annotation: AnnotationBase, dx: float, dy: float) -> None:
        """
        Move an annotation by a document-space delta.

        The caller snapshots history before the first move of a drag gesture.
        """
        annotation.translate(dx, dy)

    def get_page(self, document_id: Optional[str], page_number: int) -> Sequence[AnnotationBase]:
        """Read-only view of a page; empty when nothing has been drawn."""
        annotations = self._existing_page(document_id, page_number)
        return tuple(annotations) if annotations else ()

    def index_of(self, document_id: Optional[str], page_number: int, annotation: AnnotationBase) -> int:
        annotations = self._existing_page(document_id, page_number) or []
        for index, candidate in enumerate(annotations):
            if candidate is annotation:
                return index
        return -1

    def replace_page(self, document_id: str, page_number: int, annotations: PageAnnotations) -> None:
        """Install a whole page list; used by undo/redo and session restore."""
        self._pages.setdefault(document_id, {})[page_number] = list(annotations)

    def merge_page(self, document_id: str, page_number: int, annotations: Sequence[AnnotationBase]) -> int:
        """Append annotations that are not already present (epsilon equality)."""
        existing = self._page_list(document_id, page_number)
        added = 0
        for annotation in annotations:
            if any(annotations_equal(current, annotation) for current in existing):
                continue
            existing.append(annotation)
            added += 1
        return added

    def clear(self) -> None:
        self._pages.clear()

    def to_dict(self) -> Dict[str, Dict[str, list]]:
        """Document-space values keyed documentId -> pageNumber -> list."""
        return {
            document_id: {
                str(page_number): [a.serialize() for a in annotations]
                for page_number, annotations in pages.items()
            }
            for document_id, pages in self._pages.items()
        }

    def _existing_page(self, document_id: Optional[str], page_number: int) -> Optional[PageAnnotations]:
        if document_id is None:
            return None
        return self._pages.get(document_id, {}).get(page_number)

    def _page_list(self, document_id: str, page_number: int) -> PageAnnotations:
        return self._pages.setdefault(document_id, {}).setdefault(page_number, [])
