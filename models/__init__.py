from models.document import (
    DocumentMetadata,
    ViewContext,
)
from models.annotation import (
    AnnotationType,
    AnnotationBase,
    PathAnnotation,
    TextAnnotation,
    Point,
    AnnotationFactory,
    annotations_equal,
)
from models.grading import (
    Rubric,
    RubricQuestion,
    ScoreBook,
    summary_lines,
    grade_rows,
)
from models.settings import (
    AppSettings,
    ViewerSettings,
    AnnotationSettings,
    ExportSettings,
)

__all__ = [
    "DocumentMetadata",
    "ViewContext",
    "AnnotationType",
    "AnnotationBase",
    "PathAnnotation",
    "TextAnnotation",
    "Point",
    "AnnotationFactory",
    "annotations_equal",
    "Rubric",
    "RubricQuestion",
    "ScoreBook",
    "summary_lines",
    "grade_rows",
    "AppSettings",
    "ViewerSettings",
    "AnnotationSettings",
    "ExportSettings",
]
