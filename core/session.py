from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, List, Callable, Any, Sequence
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from core.annotation_store import AnnotationStore
from core.document_manager import DocumentManager
from core.error_types import ErrorSeverity, SerializationError
from core.hit_test import EraseEngine, HitTester, Hit
from core.history import HistoryManager
from core.render_engine import DrawCommand, OverlayRenderer
from models.annotation import AnnotationBase, AnnotationFactory
from models.document import DocumentMetadata, ViewContext
from models.grading import Rubric, ScoreBook, rubrics_equal
from models.settings import AppSettings
from utils.geometry import Point2D
from utils.validators import validate_page_number

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"

Confirm = Callable[[], bool]


def normalize_snapshot(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """
    Re-key a snapshot so every document id equals its filename.

    Annotation and score maps follow the renamed ids. A missing or
    malformed annotation bank becomes an empty list.
    """
    documents = []
    id_map: Dict[str, str] = {}
    for raw in snapshot.get("documents") or []:
        name = raw["name"]
        if raw.get("id") and raw["id"] != name:
            id_map[raw["id"]] = name
        documents.append(DocumentMetadata(id=name, name=name))

    def remap(mapping: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {id_map.get(key, key): value for key, value in (mapping or {}).items()}

    bank = snapshot.get("annotationBank")
    return {
        "documents": documents,
        "annotations": remap(snapshot.get("annotations")),
        "scores": remap(snapshot.get("scores")),
        "annotationBank": list(bank) if isinstance(bank, list) else [],
    }


def _deserialize_pages(pages: Dict[str, Any], document_id: str) -> Dict[int, List[AnnotationBase]]:
    result: Dict[int, List[AnnotationBase]] = {}
    for page_key, raw_annotations in (pages or {}).items():
        annotations = []
        for raw in raw_annotations or []:
            try:
                annotations.append(AnnotationFactory.deserialize(raw))
            except (ValueError, KeyError, TypeError) as exception:
                SerializationError(
                    message=f"Skipping annotation on {document_id} page {page_key}: {exception}",
                    data_type="annotation",
                    severity=ErrorSeverity.WARNING,
                ).log(logger)
        result[int(page_key)] = annotations
    return result


class GradingSession(QObject):
    """
    Owns everything a grading session mutates: the annotation store, its
    undo history, rubric scores and the annotation bank.

    annotations_changed asks the UI to redraw a page; save_requested hands
    a serializable snapshot to whatever persists sessions.
    """

    annotations_changed = pyqtSignal(str, int)
    save_requested = pyqtSignal(object)

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        documents: Optional[DocumentManager] = None,
    ):
        super().__init__()

        self.settings = settings or AppSettings()
        if documents is None:
            documents = DocumentManager(view_context=ViewContext(
                zoom=self.settings.viewer.default_zoom,
                zoom_step=self.settings.viewer.zoom_step,
                min_zoom=self.settings.viewer.min_zoom,
            ))
        self.documents = documents
        self.view = documents.view_context

        self.store = AnnotationStore()
        self.history = HistoryManager(self.store)
        self.hit_tester = HitTester(self.settings.annotation)
        self.erase_engine = EraseEngine(self.store, self.hit_tester)
        self.overlay = OverlayRenderer(self.settings.annotation)

        self.rubric = Rubric()
        self.scores = ScoreBook()
        self.annotation_bank: List[str] = []
        self.pending_bank_text: Optional[str] = None
        self.pending_restore_documents: List[DocumentMetadata] = []

    # Current page helpers

    @property
    def document_id(self) -> Optional[str]:
        return self.view.document_id

    @property
    def page_number(self) -> int:
        return self.view.page_number

    def current_annotations(self) -> Sequence[AnnotationBase]:
        return self.store.get_page(self.document_id, self.page_number)

    def snapshot_before_edit(self) -> bool:
        return self.history.snapshot_before_edit(self.document_id, self.page_number)

    def find_annotation_at(self, view_point: Point2D) -> Optional[Hit]:
        return self.hit_tester.find_annotation_at(
            self.current_annotations(), view_point, self.view.zoom
        )

    def render_overlay(self) -> List[DrawCommand]:
        return self.overlay.render_page(self.current_annotations(), self.view.zoom)

    # Notifications

    def notify_changed(self) -> None:
        if self.view.has_document:
            self.annotations_changed.emit(self.document_id, self.page_number)

    def request_save(self) -> None:
        self.save_requested.emit(self.build_snapshot())

    def _changed_and_save(self) -> None:
        self.notify_changed()
        self.request_save()

    # Edits

    def add_annotation(self, annotation: AnnotationBase) -> bool:
        """Store an annotation on the current page; the caller owns the snapshot."""
        if not self.store.append(self.document_id, self.page_number, annotation):
            return False
        self._changed_and_save()
        return True

    def erase_at(self, view_point: Point2D) -> List[AnnotationBase]:
        """Erase everything under the pointer; refresh and save only on change."""
        removed = self.erase_engine.erase_at(
            self.document_id, self.page_number, view_point, self.view.zoom
        )
        if removed:
            self._changed_and_save()
        return removed

    def undo(self) -> bool:
        if self.history.undo(self.document_id, self.page_number) is None:
            return False
        self._changed_and_save()
        return True

    def redo(self) -> bool:
        if self.history.redo(self.document_id, self.page_number) is None:
            return False
        self._changed_and_save()
        return True

    def go_to_page(self, page_number: int) -> bool:
        if validate_page_number(page_number).is_failure():
            return False
        renderer = self.documents.active_renderer
        if renderer is not None and page_number > renderer.page_count:
            return False
        self.view.page_number = page_number
        self.notify_changed()
        return True

    # Scores and bank

    def set_score(self, question_id: int, value: Optional[float]) -> bool:
        if self.document_id is None or self.rubric.find(question_id) is None:
            return False
        if value is None:
            self.scores.clear_score(self.document_id, question_id)
        else:
            self.scores.set_score(self.document_id, question_id, value)
        self.request_save()
        return True

    def add_to_bank(self, text: str) -> bool:
        text = (text or "").strip()
        if not text or text in self.annotation_bank:
            return False
        self.annotation_bank.append(text)
        return True

    def remove_from_bank(self, text: str) -> bool:
        if text not in self.annotation_bank:
            return False
        self.annotation_bank.remove(text)
        if self.pending_bank_text == text:
            self.pending_bank_text = None
        return True

    def select_bank_text(self, text: str) -> bool:
        """Queue a bank entry to prefill the next text editor."""
        if text not in self.annotation_bank:
            return False
        self.pending_bank_text = text
        return True

    def take_pending_bank_text(self) -> str:
        text, self.pending_bank_text = self.pending_bank_text, None
        return text or ""

    # Snapshots

    def build_snapshot(self) -> Dict[str, Any]:
        loaded = self.documents.documents
        documents = loaded if loaded else self.pending_restore_documents
        return {
            "version": SNAPSHOT_VERSION,
            "rubric": self.rubric.to_dict(),
            "documents": [d.to_dict() for d in documents],
            "annotations": self.store.to_dict(),
            "scores": self.scores.to_dict(),
            "autosavedAt": datetime.now().isoformat(),
            "annotationBank": list(self.annotation_bank),
        }

    def _missing_documents(self, documents: Sequence[DocumentMetadata]) -> List[DocumentMetadata]:
        loaded_names = {d.name for d in self.documents.documents}
        return [d for d in documents if d.name not in loaded_names]

    def apply_snapshot(self, snapshot: Dict[str, Any]) -> List[DocumentMetadata]:
        """
        Replace session state with a snapshot.

        Returns the snapshot's documents that are not loaded yet; they stay
        pending until their files are supplied again under the same name.
        """
        normalized = normalize_snapshot(snapshot)

        self.rubric = Rubric.from_dict(snapshot.get("rubric"))
        self.scores = ScoreBook(normalized["scores"])
        self.annotation_bank = normalized["annotationBank"]

        self.store.clear()
        self.history.clear()
        for document_id, pages in normalized["annotations"].items():
            for page_number, annotations in _deserialize_pages(pages, document_id).items():
                self.store.replace_page(document_id, page_number, annotations)

        missing = self._missing_documents(normalized["documents"])
        self.pending_restore_documents = missing
        logger.info(
            f"Applied session: {len(normalized['documents'])} document(s), {len(missing)} missing"
        )
        self.notify_changed()
        self.request_save()
        return missing

    def merge_snapshot(
        self,
        snapshot: Dict[str, Any],
        confirm_rubric_replace: Optional[Confirm] = None,
        confirm_bank_merge: Optional[Confirm] = None,
    ) -> List[DocumentMetadata]:
        """
        Merge a snapshot into the current session without losing work.

        Duplicate annotations are skipped, existing scores win, and rubric
        replacement or bank merging happen only when confirmed.
        """
        normalized = normalize_snapshot(snapshot)

        incoming_rubric = snapshot.get("rubric")
        if incoming_rubric:
            candidate = Rubric.from_dict(incoming_rubric)
            if not rubrics_equal(self.rubric, candidate):
                if confirm_rubric_replace is None or confirm_rubric_replace():
                    self.rubric = candidate

        if normalized["annotationBank"] and (confirm_bank_merge is None or confirm_bank_merge()):
            for text in normalized["annotationBank"]:
                if text not in self.annotation_bank:
                    self.annotation_bank.append(text)

        added = 0
        for document_id, pages in normalized["annotations"].items():
            for page_number, annotations in _deserialize_pages(pages, document_id).items():
                added += self.store.merge_page(document_id, page_number, annotations)

        for document_id, per_question in normalized["scores"].items():
            for question_id, value in (per_question or {}).items():
                self.scores.set_if_absent(document_id, int(question_id), value)

        known = {d.name for d in self.pending_restore_documents}
        for document in normalized["documents"]:
            if document.name not in known:
                self.pending_restore_documents.append(document)
                known.add(document.name)

        logger.info(f"Merged session: {added} new annotation(s)")
        self.notify_changed()
        self.request_save()
        return self._missing_documents(normalized["documents"])
