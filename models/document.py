from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Optional, Dict, Any
import logging

from utils.geometry import ViewTransform
from utils.validators import validate_zoom_level

logger = logging.getLogger(__name__)

DEFAULT_ZOOM = 1.0
ZOOM_STEP = 0.1
MIN_ZOOM = 0.2


@dataclass(frozen=True)
class DocumentMetadata:
    """
    Identity of a graded document. The id equals the filename so that
    annotations can be re-associated after a session reload.
    """

    id: str
    name: str

    @property
    def stem(self) -> str:
        """Filename without its extension, used as the student id in grade rows."""
        return PurePath(self.name).stem

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def for_filename(cls, filename: str) -> DocumentMetadata:
        return cls(id=filename, name=filename)


@dataclass
class ViewContext:
    """
    The active document, page and zoom. Passed explicitly to every engine
    that needs to know what is on screen.
    """

    document_id: Optional[str] = None
    page_number: int = 1
    zoom: float = DEFAULT_ZOOM
    zoom_step: float = ZOOM_STEP
    min_zoom: float = MIN_ZOOM
    _transform: Optional[ViewTransform] = field(default=None, init=False, repr=False, compare=False)

    @property
    def has_document(self) -> bool:
        return self.document_id is not None

    @property
    def transform(self) -> ViewTransform:
        if self._transform is None or self._transform.zoom != self.zoom:
            self._transform = ViewTransform(self.zoom)
        return self._transform

    def set_zoom(self, zoom: float) -> bool:
        """Install a new zoom; non-positive values are ignored."""
        result = validate_zoom_level(zoom)
        if result.is_failure():
            logger.warning(f"Ignoring zoom {zoom!r}: {result.get_error().message}")
            return False
        self.zoom = result.unwrap()
        return True

    def zoom_in(self) -> float:
        self.set_zoom(round(self.zoom + self.zoom_step, 6))
        return self.zoom

    def zoom_out(self) -> float:
        if self.zoom > self.min_zoom:
            self.set_zoom(max(self.min_zoom, round(self.zoom - self.zoom_step, 6)))
        return self.zoom
