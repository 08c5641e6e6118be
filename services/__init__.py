"""
Services Package

PyMuPDF-backed collaborators used when exporting graded documents.
"""

from services.export_service import (
    ExportService,
    FitzFont,
    FitzFontProvider,
    FitzPdfWriter,
)

__all__ = [
    "ExportService",
    "FitzFont",
    "FitzFontProvider",
    "FitzPdfWriter",
]
