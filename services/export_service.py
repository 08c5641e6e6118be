"""
Export Service

Produces the graded copy of a document:
- Loads the Latin and Hebrew fonts used for text runs
- Renders stored annotations (and an optional grade summary) to draw primitives
- Writes those primitives onto a copy of the source PDF and returns its bytes
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence
import logging
import time

import fitz
from PyQt6.QtCore import QObject, pyqtSignal

from core.annotation_store import AnnotationStore
from core.error_types import (
    Result,
    Success,
    Failure,
    ExportError,
    FontLoadError,
    FontUnavailableError,
    capture_exception,
    try_execute,
)
from core.export_renderer import ExportFonts, ExportRenderer, GradeSummary
from core.render_engine import DrawCommand, DrawLine, DrawText
from models.grading import summary_lines
from models.settings import AnnotationSettings, ExportSettings
from utils.geometry import Point2D

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FitzFont:
    """A PyMuPDF font plus the name and file needed to embed it on a page."""

    name: str
    font: fitz.Font
    file: Optional[str] = None

    def width_of_text_at_size(self, text: str, size: float) -> float:
        return self.font.text_length(text, fontsize=size)


class FontProvider(Protocol):
    def load_fonts(self) -> Result[ExportFonts]:
        ...


class FitzFontProvider:
    """Loads the base-14 Latin font and a Hebrew-capable TrueType font."""

    HEBREW_FONT_NAME = "hebrew"

    def __init__(self, settings: Optional[ExportSettings] = None):
        self._settings = settings or ExportSettings()

    def load_fonts(self) -> Result[ExportFonts]:
        font_path = self._settings.hebrew_font_file
        if font_path is None:
            return Failure(FontUnavailableError(
                message="No Hebrew font configured for export",
                font_role="hebrew",
            ))

        hebrew = try_execute(
            lambda: fitz.Font(fontfile=str(font_path)),
            FontLoadError,
            "Failed to load Hebrew font",
            font_path=font_path,
        )
        if hebrew.is_failure():
            return Failure(hebrew.get_error())

        latin_name = self._settings.latin_font_name
        return try_execute(
            lambda: fitz.Font(latin_name),
            FontLoadError,
            f"Failed to load Latin font {latin_name}",
        ).map(lambda latin: ExportFonts(
            hebrew=FitzFont(self.HEBREW_FONT_NAME, hebrew.unwrap(), str(font_path)),
            latin=FitzFont(latin_name, latin),
        ))


class FitzPdfWriter:
    """
    Applies draw primitives to a copy of a PDF.

    Primitives arrive in bottom-left PDF coordinates; PyMuPDF draws in a
    top-left page space, so y is flipped back against the page height.
    """

    def __init__(self, source: bytes):
        self._document = fitz.open(stream=bytes(source), filetype="pdf")

    @property
    def page_count(self) -> int:
        return len(self._document)

    def page_height(self, page_index: int) -> float:
        return self._document[page_index].rect.height

    def _to_page_space(self, page: fitz.Page, point: Point2D) -> fitz.Point:
        return fitz.Point(point.x, page.rect.height - point.y)

    def draw_line(self, page_index: int, command: DrawLine) -> None:
        page = self._document[page_index]
        page.draw_line(
            self._to_page_space(page, command.start),
            self._to_page_space(page, command.end),
            color=command.color,
            width=command.width,
        )

    def draw_text(self, page_index: int, command: DrawText, fonts: ExportFonts) -> None:
        page = self._document[page_index]
        font = fonts.for_role(command.font)
        page.insert_text(
            self._to_page_space(page, Point2D(command.x, command.y)),
            command.text,
            fontsize=command.size,
            fontname=font.name,
            fontfile=font.file,
            color=command.color,
        )

    def apply(self, page_index: int, commands: Sequence[DrawCommand], fonts: ExportFonts) -> None:
        for command in commands:
            if isinstance(command, DrawLine):
                self.draw_line(page_index, command)
            elif isinstance(command, DrawText):
                self.draw_text(page_index, command, fonts)

    def save(self) -> bytes:
        return self._document.tobytes(garbage=3, deflate=True)

    def close(self) -> None:
        if not self._document.is_closed:
            self._document.close()


class ExportService(QObject):
    """
    Service for exporting graded documents.

    Signals:
        export_started: Emitted with the document id when export begins
        export_completed: Emitted with the document id and output size
        export_failed: Emitted with the document id and error message when
            an export that has started fails
    """

    export_started = pyqtSignal(str)
    export_completed = pyqtSignal(str, int)
    export_failed = pyqtSignal(str, str)

    def __init__(self, settings: Optional[AnnotationSettings] = None):
        super().__init__()
        self._renderer = ExportRenderer(settings)

    def export_document(
        self,
        store: AnnotationStore,
        document_id: str,
        source: bytes,
        font_provider: Optional[FontProvider],
        summary: Optional[GradeSummary] = None,
    ) -> Result[bytes]:
        """
        Export one document with its annotations drawn into the pages.

        Fonts are a precondition: without a provider nothing is written.
        Any failure raised while writing aborts this export only.
        """
        if font_provider is None:
            return Failure(FontUnavailableError(
                message="Font provider unavailable; cannot export",
            ))

        start_time = time.time()
        self.export_started.emit(document_id)

        fonts_result = font_provider.load_fonts().on_failure(lambda error: error.log(logger))
        if fonts_result.is_failure():
            self.export_failed.emit(document_id, fonts_result.get_error().message)
            return Failure(fonts_result.get_error())
        fonts = fonts_result.unwrap()

        writer: Optional[FitzPdfWriter] = None
        try:
            writer = FitzPdfWriter(source)
            rendered = self._renderer.render_document(
                store,
                document_id,
                writer.page_count,
                writer.page_height,
                fonts,
                summary,
            )
            for page_index, commands in rendered.items():
                writer.apply(page_index, commands, fonts)
            output = writer.save()
        except Exception as exception:
            error = capture_exception(
                ExportError,
                f"Export failed for {document_id}: {exception}",
                document_id=document_id,
            )
            error.log(logger)
            self.export_failed.emit(document_id, error.message)
            return Failure(error)
        finally:
            if writer is not None:
                writer.close()

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(f"Exported {document_id}: {len(output)} bytes in {elapsed_ms:.0f}ms")
        self.export_completed.emit(document_id, len(output))
        return Success(output)

    def export_session_document(
        self,
        session,
        document_id: str,
        font_provider: Optional[FontProvider],
        summary_position: Optional[Point2D] = None,
    ) -> Result[bytes]:
        """Export a registered document of a grading session, optionally with its grade summary."""
        summary = None
        if summary_position is not None:
            summary = GradeSummary(
                lines=summary_lines(session.rubric, session.scores.get(document_id)),
                x=summary_position.x,
                y=summary_position.y,
                font_size=session.settings.annotation.default_text_size,
            )

        return session.documents.get(document_id).flat_map(lambda entry: self.export_document(
            session.store,
            document_id,
            entry.data,
            font_provider,
            summary,
        ))
