"""Core package - annotation engines, history, shaping and document management."""

__all__ = [
    "Result",
    "Success",
    "Failure",
    "AppError",
    "AnnotationStore",
    "HistoryManager",
    "HitTester",
    "EraseEngine",
    "ExportRenderer",
    "OverlayRenderer",
    "DocumentManager",
    "GradingSession",
    "GestureController",
]

# Lazy imports to avoid circular dependencies
def __getattr__(name):
    if name in ("Result", "Success", "Failure", "AppError"):
        from core import error_types
        return getattr(error_types, name)
    elif name == "AnnotationStore":
        from core.annotation_store import AnnotationStore
        return AnnotationStore
    elif name == "HistoryManager":
        from core.history import HistoryManager
        return HistoryManager
    elif name in ("HitTester", "EraseEngine"):
        from core import hit_test
        return getattr(hit_test, name)
    elif name == "ExportRenderer":
        from core.export_renderer import ExportRenderer
        return ExportRenderer
    elif name == "OverlayRenderer":
        from core.render_engine import OverlayRenderer
        return OverlayRenderer
    elif name == "DocumentManager":
        from core.document_manager import DocumentManager
        return DocumentManager
    elif name == "GradingSession":
        from core.session import GradingSession
        return GradingSession
    elif name == "GestureController":
        from core.gestures import GestureController
        return GestureController
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
