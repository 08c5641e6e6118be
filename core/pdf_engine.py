from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Protocol
import logging

import fitz

from core.error_types import (
    Result,
    Success,
    Failure,
    DocumentLoadError,
    PageRenderError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSize:
    """Page dimensions in pixels at a given zoom."""

    width: float
    height: float


class PageRenderer(Protocol):
    """Decoded document able to report page dimensions at a zoom."""

    @property
    def page_count(self) -> int:
        ...

    def page_size(self, page_number: int, zoom: float) -> Result[PageSize]:
        ...

    def close(self) -> None:
        ...


@dataclass
class FitzPageRenderer:
    """PyMuPDF-backed page renderer. Page numbers are 1-based."""

    document: fitz.Document
    _size_cache: Dict[int, PageSize] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.document) if not self.document.is_closed else 0

    def page_size(self, page_number: int, zoom: float) -> Result[PageSize]:
        if page_number < 1 or page_number > self.page_count:
            return Failure(PageRenderError(
                message=f"Page number {page_number} out of range (1-{self.page_count})",
                page_number=page_number,
            ))

        base = self._size_cache.get(page_number)
        if base is None:
            try:
                rect = self.document[page_number - 1].rect
            except Exception as exception:
                return Failure(PageRenderError(
                    message=f"Failed to read page {page_number}: {exception}",
                    page_number=page_number,
                ))
            base = PageSize(rect.width, rect.height)
            self._size_cache[page_number] = base

        return Success(PageSize(base.width * zoom, base.height * zoom))

    def close(self) -> None:
        if not self.document.is_closed:
            self.document.close()


def open_pdf_bytes(data: bytes, document_id: Optional[str] = None) -> Result[FitzPageRenderer]:
    """
    Decode a document byte buffer for display.

    The buffer is copied so the caller's bytes stay usable for export.
    """
    try:
        fitz_document = fitz.open(stream=bytes(data), filetype="pdf")
    except Exception as exception:
        return Failure(DocumentLoadError(
            message=f"Failed to load PDF: {exception}",
            document_id=document_id,
        ))

    if fitz_document.needs_pass:
        fitz_document.close()
        return Failure(DocumentLoadError(
            message="PDF is encrypted and requires a password",
            document_id=document_id,
        ))

    logger.info(f"Loaded document: {document_id} ({len(fitz_document)} pages)")
    return Success(FitzPageRenderer(document=fitz_document))
