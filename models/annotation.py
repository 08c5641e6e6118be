from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple, Type, Sequence

from utils.geometry import Point2D, ViewTransform


ANNOTATION_EPSILON = 0.001


class AnnotationType(Enum):
    """Annotation variants; the value is the serialized ``type`` tag."""
    PATH = "path"
    TEXT = "text"


@dataclass(frozen=True)
class Color:
    """Immutable RGB color representation."""

    red: int = 0
    green: int = 0
    blue: int = 0

    def to_unit_rgb(self) -> Tuple[float, float, float]:
        """Channels scaled to 0-1, as PDF drawing operators expect."""
        return (self.red / 255, self.green / 255, self.blue / 255)

    @classmethod
    def from_hex(cls, hex_string: str) -> Color:
        """Create color from a #RRGGBB string."""
        hex_string = hex_string.lstrip("#")
        if len(hex_string) != 6:
            raise ValueError(f"Invalid hex color: {hex_string}")
        return cls(
            red=int(hex_string[0:2], 16),
            green=int(hex_string[2:4], 16),
            blue=int(hex_string[4:6], 16),
        )


@dataclass(frozen=True)
class Point:
    """Immutable 2D point in document space."""

    x: float
    y: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    def to_point2d(self) -> Point2D:
        return Point2D(self.x, self.y)

    def offset(self, dx: float, dy: float) -> Point:
        return Point(self.x + dx, self.y + dy)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Point:
        return cls(float(data["x"]), float(data["y"]))


@dataclass
class AnnotationBase(ABC):
    """Abstract base class for annotations. All geometry is in document space."""

    color: str = "#ff0000"

    @property
    @abstractmethod
    def annotation_type(self) -> AnnotationType:
        pass

    @abstractmethod
    def translate(self, dx: float, dy: float) -> None:
        """Move the annotation by a document-space delta, in place."""
        pass

    @abstractmethod
    def serialize(self) -> Dict[str, Any]:
        """Serialize annotation to the session snapshot shape."""
        pass

    @classmethod
    @abstractmethod
    def deserialize(cls, data: Dict[str, Any]) -> AnnotationBase:
        pass

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return Color.from_hex(self.color).to_unit_rgb()


@dataclass
class PathAnnotation(AnnotationBase):
    """Freehand pen stroke."""

    stroke_width: float = 2.0
    points: List[Point] = field(default_factory=list)

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.PATH

    @property
    def is_valid(self) -> bool:
        return len(self.points) >= 1

    def translate(self, dx: float, dy: float) -> None:
        self.points = [p.offset(dx, dy) for p in self.points]

    def segments(self) -> List[Tuple[Point, Point]]:
        """Consecutive point pairs; a single-point path has none."""
        return list(zip(self.points, self.points[1:]))

    def serialize(self) -> Dict[str, Any]:
        return {
            "type": self.annotation_type.value,
            "color": self.color,
            "width": self.stroke_width,
            "points": [p.to_dict() for p in self.points],
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any]) -> PathAnnotation:
        return cls(
            color=data.get("color", "#ff0000"),
            stroke_width=float(data.get("width", 2.0)),
            points=[Point.from_dict(p) for p in data.get("points", [])],
        )


@dataclass
class TextAnnotation(AnnotationBase):
    """Text note anchored at the top-left of its first line."""

    text: str = ""
    x: float = 0.0
    y: float = 0.0
    font_size: float = 14.0

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.TEXT

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n")

    def translate(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def serialize(self) -> Dict[str, Any]:
        return {
            "type": self.annotation_type.value,
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "size": self.font_size,
            "color": self.color,
        }

    @classmethod
    def deserialize(cls, data: Dict[str, Any]) -> TextAnnotation:
        return cls(
            color=data.get("color", "#ff0000"),
            text=data.get("text", ""),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            font_size=float(data.get("size", 14.0)),
        )


def _close(a: float, b: float, epsilon: float) -> bool:
    return abs(a - b) <= epsilon


def annotations_equal(
    first: AnnotationBase,
    second: AnnotationBase,
    epsilon: float = ANNOTATION_EPSILON,
) -> bool:
    """Structural equality tolerant of float noise picked up by serialization."""
    if first.annotation_type != second.annotation_type:
        return False
    if first.color != second.color:
        return False

    if isinstance(first, TextAnnotation) and isinstance(second, TextAnnotation):
        return (
            first.text == second.text
            and _close(first.font_size, second.font_size, epsilon)
            and _close(first.x, second.x, epsilon)
            and _close(first.y, second.y, epsilon)
        )

    if isinstance(first, PathAnnotation) and isinstance(second, PathAnnotation):
        if not _close(first.stroke_width, second.stroke_width, epsilon):
            return False
        if len(first.points) != len(second.points):
            return False
        return all(
            _close(a.x, b.x, epsilon) and _close(a.y, b.y, epsilon)
            for a, b in zip(first.points, second.points)
        )

    return False


class AnnotationFactory:
    """Builds annotations from view-space input and from serialized data."""

    _type_map: Dict[str, Type[AnnotationBase]] = {
        AnnotationType.PATH.value: PathAnnotation,
        AnnotationType.TEXT.value: TextAnnotation,
    }

    @classmethod
    def path_from_view(
        cls,
        view_points: Sequence[Point2D],
        stroke_width: float,
        color: str,
        zoom: float,
    ) -> Optional[PathAnnotation]:
        """
        Create a path from pointer samples captured at the given zoom.

        Returns None when there are no samples, since an empty path must
        never be stored.
        """
        if not view_points:
            return None
        transform = ViewTransform(zoom)
        points = []
        for view_point in view_points:
            document_point = transform.to_document_space(view_point)
            points.append(Point(document_point.x, document_point.y))
        return PathAnnotation(
            color=color,
            stroke_width=transform.unscale_distance(stroke_width),
            points=points,
        )

    @classmethod
    def text_from_view(
        cls,
        view_anchor: Point2D,
        text: str,
        font_size: float,
        color: str,
        zoom: float,
    ) -> TextAnnotation:
        """Create a text note at a view-space anchor. The font size is already in document units."""
        transform = ViewTransform(zoom)
        anchor = transform.to_document_space(view_anchor)
        return TextAnnotation(
            color=color,
            text=text,
            x=anchor.x,
            y=anchor.y,
            font_size=font_size,
        )

    @classmethod
    def deserialize(cls, data: Dict[str, Any]) -> AnnotationBase:
        """
        Deserialize an annotation from dictionary data.

        Raises ValueError for unknown types and for paths without points.
        """
        type_name = data.get("type")
        annotation_class = cls._type_map.get(type_name)
        if annotation_class is None:
            raise ValueError(f"Unknown annotation type: {type_name}")

        annotation = annotation_class.deserialize(data)
        if isinstance(annotation, PathAnnotation) and not annotation.is_valid:
            raise ValueError("Path annotation has no points")
        return annotation
