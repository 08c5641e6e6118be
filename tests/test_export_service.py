"""Tests for the PyMuPDF-backed export collaborators."""

import fitz
import pytest

from conftest import make_pdf_bytes

from core.annotation_store import AnnotationStore
from core.error_types import ExportError, FontLoadError, FontUnavailableError, Success
from core.export_renderer import ExportFonts, ExportRenderer, GradeSummary
from core.render_engine import DrawLine, DrawText, FontRole
from models.annotation import PathAnnotation, Point, TextAnnotation
from models.settings import ExportSettings
from services.export_service import ExportService, FitzFont, FitzFontProvider, FitzPdfWriter
from utils.geometry import Point2D


class LatinOnlyProvider:
    """Uses Helvetica for both roles; enough for Latin-only content."""

    def load_fonts(self):
        helv = FitzFont("helv", fitz.Font("helv"))
        return Success(ExportFonts(hebrew=helv, latin=helv))


class ExplodingFont:
    def width_of_text_at_size(self, text, size):
        raise RuntimeError("metrics unavailable")


class ExplodingProvider:
    def load_fonts(self):
        return Success(ExportFonts(hebrew=ExplodingFont(), latin=ExplodingFont()))


def _page_text(data: bytes, index: int = 0) -> str:
    document = fitz.open(stream=data, filetype="pdf")
    try:
        return document[index].get_text()
    finally:
        document.close()


def _page_font_names(data: bytes, index: int = 0) -> list:
    document = fitz.open(stream=data, filetype="pdf")
    try:
        return [entry[4] for entry in document[index].get_fonts()]
    finally:
        document.close()


@pytest.fixture
def hebrew_font_path(tmp_path) -> str:
    """A real TrueType file on disk, taken from the fonts PyMuPDF ships."""
    path = tmp_path / "fallback.ttf"
    path.write_bytes(fitz.Font("cjk").buffer)
    return str(path)


def test_fitz_font_measures_text() -> None:
    font = FitzFont("helv", fitz.Font("helv"))

    narrow = font.width_of_text_at_size("i", 12)
    wide = font.width_of_text_at_size("WWW", 12)

    assert 0 < narrow < wide
    assert font.width_of_text_at_size("WWW", 24) == pytest.approx(wide * 2)


def test_font_provider_requires_configured_hebrew_font() -> None:
    result = FitzFontProvider(ExportSettings()).load_fonts()

    assert isinstance(result.get_error(), FontUnavailableError)


def test_font_provider_reports_unreadable_font(tmp_path) -> None:
    bogus = tmp_path / "broken.ttf"
    bogus.write_bytes(b"not a font")

    result = FitzFontProvider(ExportSettings(hebrew_font_path=str(bogus))).load_fonts()

    assert isinstance(result.get_error(), FontLoadError)
    assert result.get_error().is_recoverable


def test_writer_draws_in_top_left_page_space() -> None:
    writer = FitzPdfWriter(make_pdf_bytes(width=200, height=300))
    fonts = LatinOnlyProvider().load_fonts().unwrap()

    assert writer.page_count == 1
    assert writer.page_height(0) == 300
    writer.apply(0, [
        DrawLine(start=Point2D(10, 290), end=Point2D(50, 290), width=1.0, color=(1.0, 0.0, 0.0)),
        DrawText(text="Marked", x=20, y=250, size=12, font=FontRole.LATIN, color=(0.0, 0.0, 0.0)),
    ], fonts)
    output = writer.save()
    writer.close()

    assert output.startswith(b"%PDF")
    assert "Marked" in _page_text(output)


def test_export_requires_font_provider() -> None:
    result = ExportService().export_document(AnnotationStore(), "a.pdf", make_pdf_bytes(), None)

    assert isinstance(result.get_error(), FontUnavailableError)


def test_export_writes_annotations_and_summary() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 1, PathAnnotation(points=[Point(10, 10), Point(40, 40)]))
    store.append("a.pdf", 2, TextAnnotation(text="See margin", x=20.0, y=30.0, font_size=12.0))
    summary = GradeSummary(lines=["Q1: 4", "", "Total: 4 / 10"], x=20.0, y=200.0)
    service = ExportService()
    started, completed = [], []
    service.export_started.connect(started.append)
    service.export_completed.connect(lambda document_id, size: completed.append((document_id, size)))

    result = service.export_document(store, "a.pdf", make_pdf_bytes(pages=2), LatinOnlyProvider(), summary)

    output = result.unwrap()
    assert "Total: 4 / 10" in _page_text(output, 0)
    assert "See margin" in _page_text(output, 1)
    assert started == ["a.pdf"]
    assert completed == [("a.pdf", len(output))]


def test_export_wraps_writer_failures() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 1, TextAnnotation(text="boom", x=1.0, y=1.0))

    result = ExportService().export_document(store, "a.pdf", make_pdf_bytes(), ExplodingProvider())

    assert isinstance(result.get_error(), ExportError)
    assert result.get_error().document_id == "a.pdf"


def test_export_session_document(session) -> None:
    session.documents.register("real.pdf", make_pdf_bytes())
    session.documents.load_document("real.pdf")
    session.set_score(1, 9)

    result = ExportService().export_session_document(
        session, "real.pdf", LatinOnlyProvider(), summary_position=Point2D(20, 20)
    )

    assert "Total: 9 / 30" in _page_text(result.unwrap())
    assert session.documents.get("missing.pdf").is_failure()
    assert ExportService().export_session_document(session, "missing.pdf", LatinOnlyProvider()).is_failure()


def test_font_provider_loads_configured_truetype_file(hebrew_font_path) -> None:
    fonts = FitzFontProvider(ExportSettings(hebrew_font_path=hebrew_font_path)).load_fonts().unwrap()

    assert fonts.hebrew.name == FitzFontProvider.HEBREW_FONT_NAME
    assert fonts.hebrew.file == hebrew_font_path
    assert fonts.latin.name == "helv"
    assert fonts.latin.file is None
    assert fonts.hebrew.width_of_text_at_size("95", 12) > 0


def test_export_draws_hebrew_runs_with_embedded_font(hebrew_font_path) -> None:
    provider = FitzFontProvider(ExportSettings(hebrew_font_path=hebrew_font_path))
    fonts = provider.load_fonts().unwrap()
    note = TextAnnotation(text="ציון 95 (א)", x=150.0, y=30.0, font_size=12.0)

    commands = ExportRenderer().render_page([note], 300.0, fonts)

    assert any(c.font is FontRole.HEBREW for c in commands)
    right_edge = max(
        c.x + fonts.for_role(c.font).width_of_text_at_size(c.text, c.size) for c in commands
    )
    assert right_edge == pytest.approx(150.0)
    assert min(c.x for c in commands) < 150.0

    store = AnnotationStore()
    store.append("a.pdf", 1, note)
    output = ExportService().export_document(
        store, "a.pdf", make_pdf_bytes(width=200, height=300), provider
    ).unwrap()

    assert FitzFontProvider.HEBREW_FONT_NAME in _page_font_names(output)


def test_failed_export_emits_failure_signal() -> None:
    store = AnnotationStore()
    store.append("a.pdf", 1, TextAnnotation(text="boom", x=1.0, y=1.0))
    service = ExportService()
    completed, failed = [], []
    service.export_completed.connect(lambda document_id, size: completed.append(document_id))
    service.export_failed.connect(lambda document_id, message: failed.append((document_id, message)))

    service.export_document(store, "a.pdf", make_pdf_bytes(), ExplodingProvider())
    service.export_document(store, "b.pdf", make_pdf_bytes(), FitzFontProvider(ExportSettings()))

    assert completed == []
    assert [document_id for document_id, _ in failed] == ["a.pdf", "b.pdf"]
    assert "metrics unavailable" in failed[0][1]
