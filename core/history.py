from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Tuple
import copy
import logging

from core.annotation_store import AnnotationStore, PageAnnotations

logger = logging.getLogger(__name__)

HistoryKey = Tuple[str, int]


@dataclass
class HistoryEntry:
    """Undo and redo stacks of deep page snapshots for one (document, page)."""

    undo_stack: List[PageAnnotations] = field(default_factory=list)
    redo_stack: List[PageAnnotations] = field(default_factory=list)


def _snapshot(annotations) -> PageAnnotations:
    return [copy.deepcopy(annotation) for annotation in annotations]


class HistoryManager:
    """
    Snapshot-based undo/redo over an AnnotationStore.

    Stacks are unbounded. Each logical user action must call
    snapshot_before_edit exactly once before its first mutation.
    """

    def __init__(self, store: AnnotationStore):
        self._store = store
        self._entries: Dict[HistoryKey, HistoryEntry] = {}

    def _entry(self, document_id: str, page_number: int) -> HistoryEntry:
        return self._entries.setdefault((document_id, page_number), HistoryEntry())

    def snapshot_before_edit(self, document_id: Optional[str], page_number: int) -> bool:
        """Record the pre-mutation page and invalidate redo history."""
        if document_id is None:
            return False
        entry = self._entry(document_id, page_number)
        entry.undo_stack.append(_snapshot(self._store.get_page(document_id, page_number)))
        entry.redo_stack.clear()
        return True

    def undo(self, document_id: Optional[str], page_number: int) -> Optional[PageAnnotations]:
        """Restore the previous snapshot; returns it, or None when nothing to undo."""
        entry = self._entries.get((document_id, page_number))
        if entry is None or not entry.undo_stack:
            logger.debug(f"Nothing to undo for {document_id} page {page_number}")
            return None

        entry.redo_stack.append(_snapshot(self._store.get_page(document_id, page_number)))
        previous = entry.undo_stack.pop()
        self._store.replace_page(document_id, page_number, previous)
        return previous

    def redo(self, document_id: Optional[str], page_number: int) -> Optional[PageAnnotations]:
        """Re-apply the most recently undone snapshot."""
        entry = self._entries.get((document_id, page_number))
        if entry is None or not entry.redo_stack:
            logger.debug(f"Nothing to redo for {document_id} page {page_number}")
            return None

        entry.undo_stack.append(_snapshot(self._store.get_page(document_id, page_number)))
        following = entry.redo_stack.pop()
        self._store.replace_page(document_id, page_number, following)
        return following

    def can_undo(self, document_id: Optional[str], page_number: int) -> bool:
        entry = self._entries.get((document_id, page_number))
        return entry is not None and bool(entry.undo_stack)

    def can_redo(self, document_id: Optional[str], page_number: int) -> bool:
        entry = self._entries.get((document_id, page_number))
        return entry is not None and bool(entry.redo_stack)

    def clear(self, document_id: Optional[str] = None) -> None:
        if document_id is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if k[0] == document_id]:
            del self._entries[key]
