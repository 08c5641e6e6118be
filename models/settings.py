from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any
import json
import logging

from PyQt6.QtCore import QSettings

logger = logging.getLogger(__name__)


@dataclass
class AnnotationSettings:
    """Settings for annotation tools and geometric queries."""

    pen_color: str = "#ff0000"
    pen_width: float = 2.0

    default_text_size: float = 14.0
    min_text_size: float = 6.0
    max_text_size: float = 72.0

    # Hit radius in view pixels at zoom 1.0
    hit_radius: float = 10.0
    drag_threshold: float = 2.0

    text_line_height: float = 1.2
    glyph_width_factor: float = 0.6

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        return {
            "pen_color": self.pen_color,
            "pen_width": self.pen_width,
            "default_text_size": self.default_text_size,
            "min_text_size": self.min_text_size,
            "max_text_size": self.max_text_size,
            "hit_radius": self.hit_radius,
            "drag_threshold": self.drag_threshold,
            "text_line_height": self.text_line_height,
            "glyph_width_factor": self.glyph_width_factor,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AnnotationSettings:
        """Create settings from dictionary."""
        return cls(
            pen_color=data.get("pen_color", "#ff0000"),
            pen_width=data.get("pen_width", 2.0),
            default_text_size=data.get("default_text_size", 14.0),
            min_text_size=data.get("min_text_size", 6.0),
            max_text_size=data.get("max_text_size", 72.0),
            hit_radius=data.get("hit_radius", 10.0),
            drag_threshold=data.get("drag_threshold", 2.0),
            text_line_height=data.get("text_line_height", 1.2),
            glyph_width_factor=data.get("glyph_width_factor", 0.6),
        )


@dataclass
class ViewerSettings:
    """Settings for the page view."""

    default_zoom: float = 1.0
    zoom_step: float = 0.1
    min_zoom: float = 0.2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_zoom": self.default_zoom,
            "zoom_step": self.zoom_step,
            "min_zoom": self.min_zoom,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ViewerSettings:
        return cls(
            default_zoom=data.get("default_zoom", 1.0),
            zoom_step=data.get("zoom_step", 0.1),
            min_zoom=data.get("min_zoom", 0.2),
        )


@dataclass
class ExportSettings:
    """Settings for producing the annotated copy."""

    hebrew_font_path: Optional[str] = None
    latin_font_name: str = "helv"
    output_prefix: str = "graded_"

    def output_name(self, document_name: str) -> str:
        return f"{self.output_prefix}{document_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hebrew_font_path": self.hebrew_font_path,
            "latin_font_name": self.latin_font_name,
            "output_prefix": self.output_prefix,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExportSettings:
        return cls(
            hebrew_font_path=data.get("hebrew_font_path"),
            latin_font_name=data.get("latin_font_name", "helv"),
            output_prefix=data.get("output_prefix", "graded_"),
        )

    @property
    def hebrew_font_file(self) -> Optional[Path]:
        return Path(self.hebrew_font_path) if self.hebrew_font_path else None


class AppSettings:
    """
    Grader settings backed by a QSettings store.

    The store is supplied by the caller; the core never picks a location.
    Without a store, defaults are used and save() is a no-op.
    """

    def __init__(self, qsettings: Optional[QSettings] = None):
        self._qsettings = qsettings

        self.annotation = self._load("settings/annotation", AnnotationSettings)
        self.viewer = self._load("settings/viewer", ViewerSettings)
        self.export = self._load("settings/export", ExportSettings)

    def _load(self, key: str, settings_class):
        if self._qsettings is None:
            return settings_class()
        data = self._qsettings.value(key)
        if data:
            try:
                return settings_class.from_dict(json.loads(data))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning(f"Discarding unreadable settings entry {key}")
        return settings_class()

    def save(self) -> None:
        """Save all settings to the backing store."""
        if self._qsettings is None:
            return
        self._qsettings.setValue("settings/annotation", json.dumps(self.annotation.to_dict()))
        self._qsettings.setValue("settings/viewer", json.dumps(self.viewer.to_dict()))
        self._qsettings.setValue("settings/export", json.dumps(self.export.to_dict()))
        self._qsettings.sync()

    def reset_to_defaults(self) -> None:
        """Reset all settings to defaults."""
        self.annotation = AnnotationSettings()
        self.viewer = ViewerSettings()
        self.export = ExportSettings()
