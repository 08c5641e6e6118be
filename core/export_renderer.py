from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence
import logging

from core.annotation_store import AnnotationStore
from core.bidi import DirectionalRun, layout_line, shape_for_display
from core.render_engine import DrawCommand, DrawLine, DrawText, FontRole
from models.annotation import AnnotationBase, PathAnnotation, TextAnnotation
from models.settings import AnnotationSettings
from utils.geometry import Point2D, PdfPageTransform

logger = logging.getLogger(__name__)


class FontHandle(Protocol):
    """A loaded font able to report advance widths."""

    def width_of_text_at_size(self, text: str, size: float) -> float:
        ...


@dataclass(frozen=True)
class ExportFonts:
    hebrew: FontHandle
    latin: FontHandle

    def for_role(self, role: FontRole) -> FontHandle:
        return self.hebrew if role is FontRole.HEBREW else self.latin


@dataclass(frozen=True)
class GradeSummary:
    """Grade summary block stamped on the first page, in document space."""

    lines: Sequence[str]
    x: float
    y: float
    font_size: float = 14.0
    color: str = "#000000"

    def as_annotation(self) -> TextAnnotation:
        return TextAnnotation(
            color=self.color,
            text="\n".join(self.lines),
            x=self.x,
            y=self.y,
            font_size=self.font_size,
        )


class ExportRenderer:
    """
    Turns stored annotations into draw primitives in PDF page space.

    Document space already equals the exported page's own units, so values
    are used as stored; only the vertical axis is flipped to the
    bottom-left origin.
    """

    def __init__(self, settings: Optional[AnnotationSettings] = None):
        self._settings = settings or AnnotationSettings()

    def render_page(
        self,
        annotations: Sequence[AnnotationBase],
        page_height: float,
        fonts: ExportFonts,
    ) -> List[DrawCommand]:
        page_transform = PdfPageTransform(page_height)
        commands: List[DrawCommand] = []
        for annotation in annotations:
            if isinstance(annotation, PathAnnotation):
                commands.extend(self._render_path(annotation, page_transform))
            elif isinstance(annotation, TextAnnotation):
                commands.extend(self._render_text(annotation, page_transform, fonts))
        return commands

    def render_document(
        self,
        store: AnnotationStore,
        document_id: str,
        page_count: int,
        page_height: Callable[[int], float],
        fonts: ExportFonts,
        summary: Optional[GradeSummary] = None,
    ) -> Dict[int, List[DrawCommand]]:
        """
        Primitives for every page that has something to draw.

        Keys are zero-based page indices; page_height is queried with the
        same index.
        """
        rendered: Dict[int, List[DrawCommand]] = {}
        for page_index in range(page_count):
            annotations = list(store.get_page(document_id, page_index + 1))
            if page_index == 0 and summary is not None:
                annotations.append(summary.as_annotation())
            if not annotations:
                continue
            rendered[page_index] = self.render_page(annotations, page_height(page_index), fonts)

        logger.debug(f"Rendered export primitives for {len(rendered)} page(s) of {document_id}")
        return rendered

    def _render_path(self, annotation: PathAnnotation, page_transform: PdfPageTransform) -> List[DrawLine]:
        color = annotation.rgb
        return [
            DrawLine(
                start=page_transform.to_pdf_space(start.to_point2d()),
                end=page_transform.to_pdf_space(end.to_point2d()),
                width=annotation.stroke_width,
                color=color,
            )
            for start, end in annotation.segments()
        ]

    def _render_text(
        self,
        annotation: TextAnnotation,
        page_transform: PdfPageTransform,
        fonts: ExportFonts,
    ) -> List[DrawText]:
        size = annotation.font_size
        color = annotation.rgb
        line_advance = size * self._settings.text_line_height

        def width_of(run: DirectionalRun) -> float:
            return fonts.for_role(FontRole.for_run(run)).width_of_text_at_size(run.text, size)

        commands = []
        for line_index, shaped in enumerate(shape_for_display(annotation.text)):
            baseline = page_transform.to_pdf_space(
                Point2D(annotation.x, annotation.y + size + line_index * line_advance)
            )
            for positioned in layout_line(shaped, annotation.x, width_of):
                if not positioned.run.text:
                    continue
                commands.append(DrawText(
                    text=positioned.run.text,
                    x=positioned.x,
                    y=baseline.y,
                    size=size,
                    font=FontRole.for_run(positioned.run),
                    color=color,
                ))
        return commands
