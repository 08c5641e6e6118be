from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional, Sequence, Tuple, Union

from core.bidi import DirectionalRun, layout_line, shape_for_display
from models.annotation import AnnotationBase, PathAnnotation, TextAnnotation
from models.settings import AnnotationSettings
from utils.geometry import Point2D, ViewTransform

RGB = Tuple[float, float, float]


class FontRole(Enum):
    """Which font a text run needs."""
    LATIN = auto()
    HEBREW = auto()

    @classmethod
    def for_run(cls, run: DirectionalRun) -> FontRole:
        return cls.HEBREW if run.is_right_to_left else cls.LATIN


@dataclass(frozen=True)
class DrawLine:
    """A single stroked segment."""

    start: Point2D
    end: Point2D
    width: float
    color: RGB


@dataclass(frozen=True)
class DrawPolyline:
    """A stroked open polyline with round caps and joins."""

    points: Tuple[Point2D, ...]
    width: float
    color: RGB


@dataclass(frozen=True)
class DrawText:
    """A text run drawn left to right from a baseline origin."""

    text: str
    x: float
    y: float
    size: float
    font: FontRole
    color: RGB


DrawCommand = Union[DrawLine, DrawPolyline, DrawText]

# (run, font size) -> advance width
RunMeasure = Callable[[DirectionalRun, float], float]


def approximate_measure(glyph_width_factor: float = 0.6) -> RunMeasure:
    """Monospace-ish width estimate used when no real font metrics exist."""
    def measure(run: DirectionalRun, size: float) -> float:
        return len(run.text) * size * glyph_width_factor
    return measure


class OverlayRenderer:
    """
    Produces view-space draw commands for the on-screen annotation layer.

    Every stored coordinate and size is multiplied by the zoom. The y of a
    text command is the baseline: the top of the line plus one font size.
    """

    def __init__(
        self,
        settings: Optional[AnnotationSettings] = None,
        measure: Optional[RunMeasure] = None,
    ):
        self._settings = settings or AnnotationSettings()
        self._measure = measure or approximate_measure(self._settings.glyph_width_factor)

    def render_page(self, annotations: Sequence[AnnotationBase], zoom: float) -> List[DrawCommand]:
        """Commands in z-order, bottom first."""
        transform = ViewTransform(zoom)
        commands: List[DrawCommand] = []
        for annotation in annotations:
            if isinstance(annotation, PathAnnotation):
                commands.append(self._render_path(annotation, transform))
            elif isinstance(annotation, TextAnnotation):
                commands.extend(self._render_text(annotation, transform))
        return commands

    def _render_path(self, annotation: PathAnnotation, transform: ViewTransform) -> DrawPolyline:
        return DrawPolyline(
            points=tuple(transform.to_view_space(p.to_point2d()) for p in annotation.points),
            width=transform.scale_distance(annotation.stroke_width),
            color=annotation.rgb,
        )

    def _render_text(self, annotation: TextAnnotation, transform: ViewTransform) -> List[DrawText]:
        font_size = transform.scale_distance(annotation.font_size)
        anchor = transform.to_view_space(Point2D(annotation.x, annotation.y))
        line_advance = font_size * self._settings.text_line_height

        commands = []
        for line_index, shaped in enumerate(shape_for_display(annotation.text)):
            baseline = anchor.y + font_size + line_index * line_advance
            for positioned in layout_line(shaped, anchor.x, lambda run: self._measure(run, font_size)):
                if not positioned.run.text:
                    continue
                commands.append(DrawText(
                    text=positioned.run.text,
                    x=positioned.x,
                    y=baseline,
                    size=font_size,
                    font=FontRole.for_run(positioned.run),
                    color=annotation.rgb,
                ))
        return commands
