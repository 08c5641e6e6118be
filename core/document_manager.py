from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Dict, List, Callable, Any
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
import itertools
import logging

from PyQt6.QtCore import QObject, pyqtSignal

from core.error_types import (
    Result,
    Success,
    Failure,
    DocumentNotFoundError,
    DocumentLoadError,
    PickerCancelledError,
    capture_exception,
    try_execute,
)
from core.pdf_engine import PageRenderer, open_pdf_bytes
from models.document import DocumentMetadata, ViewContext

logger = logging.getLogger(__name__)

DocumentLoader = Callable[[bytes, str], Result[PageRenderer]]


class DocumentEventType(Enum):
    """Types of document events."""
    DOCUMENT_REGISTERED = auto()
    DOCUMENT_LOADING = auto()
    DOCUMENT_LOADED = auto()
    DOCUMENT_LOAD_ERROR = auto()
    STALE_LOAD_DISCARDED = auto()
    DOCUMENT_CLOSED = auto()


@dataclass(frozen=True)
class DocumentEvent:
    """Event emitted when document state changes."""

    event_type: DocumentEventType
    document_id: str
    data: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class DocumentEntry:
    metadata: DocumentMetadata
    data: bytes


@dataclass(frozen=True)
class LoadRequest:
    """Ticket for one load; only the most recent ticket may install its result."""

    request_id: int
    document_id: str


class DocumentManager(QObject):
    """
    Registry of graded documents and the single active decoded document.

    Selecting a document issues a new request id. A load that finishes
    after a newer selection is discarded instead of replacing the display.
    """

    document_event = pyqtSignal(object)

    def __init__(
        self,
        view_context: Optional[ViewContext] = None,
        loader: DocumentLoader = open_pdf_bytes,
        executor: Optional[Executor] = None,
    ):
        super().__init__()

        self._view_context = view_context or ViewContext()
        self._loader = loader
        self._executor = executor
        self._owns_executor = False

        self._documents: Dict[str, DocumentEntry] = {}
        self._request_ids = itertools.count(1)
        self._latest_request_id = 0
        self._active_renderer: Optional[PageRenderer] = None
        self._active_renderer_id: Optional[str] = None

    def _emit_event(
        self,
        event_type: DocumentEventType,
        document_id: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a document event signal."""
        self.document_event.emit(DocumentEvent(event_type, document_id, data))
        logger.debug(f"Emitted event: {event_type.name} for {document_id}")

    @property
    def view_context(self) -> ViewContext:
        return self._view_context

    @property
    def active_renderer(self) -> Optional[PageRenderer]:
        return self._active_renderer

    def register(self, filename: str, data: bytes) -> Optional[DocumentMetadata]:
        """Add a document keyed by filename; a name already present is skipped."""
        if filename in self._documents:
            logger.debug(f"Document already registered: {filename}")
            return None
        metadata = DocumentMetadata.for_filename(filename)
        self._documents[filename] = DocumentEntry(metadata=metadata, data=bytes(data))
        self._emit_event(DocumentEventType.DOCUMENT_REGISTERED, filename)
        return metadata

    def register_file(self, path: Optional[Path]) -> Result[Optional[DocumentMetadata]]:
        """
        Register a file chosen in a picker.

        None means the picker was dismissed. An unreadable file is a
        recoverable failure and leaves the registry unchanged.
        """
        if path is None:
            return Failure(PickerCancelledError(message="No file selected"))
        return try_execute(
            path.read_bytes,
            DocumentLoadError,
            f"Failed to read {path}",
            document_id=path.name,
        ).map(lambda data: self.register(path.name, data))

    @property
    def documents(self) -> List[DocumentMetadata]:
        return [entry.metadata for entry in self._documents.values()]

    def has_document(self, document_id: str) -> bool:
        return document_id in self._documents

    def get(self, document_id: str) -> Result[DocumentEntry]:
        entry = self._documents.get(document_id)
        if entry is None:
            return Failure(DocumentNotFoundError(
                message=f"Document not found: {document_id}",
                document_id=document_id,
            ))
        return Success(entry)

    def begin_load(self, document_id: str) -> Result[LoadRequest]:
        """Issue the request id a load of this document must carry."""
        if document_id not in self._documents:
            return Failure(DocumentNotFoundError(
                message=f"Document not found: {document_id}",
                document_id=document_id,
            ))

        self._latest_request_id = next(self._request_ids)
        self._emit_event(
            DocumentEventType.DOCUMENT_LOADING,
            document_id,
            {"request_id": self._latest_request_id},
        )
        return Success(LoadRequest(self._latest_request_id, document_id))

    def is_current(self, request: LoadRequest) -> bool:
        return request.request_id == self._latest_request_id

    def complete_load(self, request: LoadRequest, result: Result[PageRenderer]) -> bool:
        """
        Install a finished load unless a newer request superseded it.

        The view switches to the new document only on success; a failed
        load leaves the previous document and page displayed. Renderers
        that are replaced or discarded are closed.
        """
        if not self.is_current(request):
            logger.debug(
                f"Discarding stale load {request.request_id} for {request.document_id}"
            )
            if result.is_success():
                result.unwrap().close()
            self._emit_event(DocumentEventType.STALE_LOAD_DISCARDED, request.document_id)
            return False

        if result.is_failure():
            result.get_error().log(logger)
            self._emit_event(
                DocumentEventType.DOCUMENT_LOAD_ERROR,
                request.document_id,
                {"error": result.get_error().message},
            )
            return True

        previous = self._active_renderer
        self._active_renderer = result.unwrap()
        self._active_renderer_id = request.document_id
        self._view_context.document_id = request.document_id
        self._view_context.page_number = 1
        if previous is not None and previous is not self._active_renderer:
            previous.close()
        self._emit_event(
            DocumentEventType.DOCUMENT_LOADED,
            request.document_id,
            {"page_count": self._active_renderer.page_count},
        )
        return True

    def _run_loader(self, request: LoadRequest) -> Result[PageRenderer]:
        data = self._documents[request.document_id].data
        try:
            return self._loader(data, request.document_id)
        except Exception:
            return Failure(capture_exception(
                DocumentLoadError,
                f"Loader raised for {request.document_id}",
                document_id=request.document_id,
            ))

    def load_document(self, document_id: str) -> Result[PageRenderer]:
        """
        Select and decode a document synchronously.

        Re-selecting the document that is already displayed returns the
        current renderer without reloading.
        """
        if document_id == self._active_renderer_id and self._active_renderer is not None:
            self._view_context.document_id = document_id
            return Success(self._active_renderer)

        request_result = self.begin_load(document_id)
        if request_result.is_failure():
            return Failure(request_result.get_error())

        request = request_result.unwrap()
        result = self._run_loader(request)
        self.complete_load(request, result)
        return result

    def load_document_async(
        self,
        document_id: str,
        callback: Optional[Callable[[Result[PageRenderer]], None]] = None,
    ) -> Result[Future]:
        """
        Select a document and decode it on the executor.

        The callback only runs for a result that is still current.
        """
        request_result = self.begin_load(document_id)
        if request_result.is_failure():
            return Failure(request_result.get_error())
        request = request_result.unwrap()

        def on_done(future: Future) -> None:
            result = future.result()
            if self.complete_load(request, result) and callback is not None:
                callback(result)

        future = self._get_executor().submit(self._run_loader, request)
        future.add_done_callback(on_done)
        return Success(future)

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="DocumentManager")
            self._owns_executor = True
        return self._executor

    def close_document(self) -> bool:
        """
        Close the displayed document and clear the view.

        Returns False when nothing was open.
        """
        if self._active_renderer is None:
            return False

        document_id = self._active_renderer_id
        self._active_renderer.close()
        self._active_renderer = None
        self._active_renderer_id = None
        if self._view_context.document_id == document_id:
            self._view_context.document_id = None
            self._view_context.page_number = 1
        self._emit_event(DocumentEventType.DOCUMENT_CLOSED, document_id)
        return True

    def shutdown(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.close_document()
        logger.info("DocumentManager shutdown complete")
