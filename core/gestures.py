from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, List, Callable
import logging

from core.session import GradingSession
from models.annotation import AnnotationBase, AnnotationFactory, TextAnnotation
from utils.geometry import Point2D, point_distance
from utils.validators import validate_color_hex, validate_positive_number

logger = logging.getLogger(__name__)


class Tool(Enum):
    CURSOR = "cursor"
    PEN = "pen"
    TEXT = "text"
    ERASER = "eraser"


class GestureState(Enum):
    IDLE = auto()
    DRAWING = auto()
    ERASING = auto()
    DRAGGING = auto()
    PANNING = auto()


class PointerButton(Enum):
    PRIMARY = auto()
    SECONDARY = auto()


@dataclass(frozen=True)
class PointerEvent:
    """Pointer position in view pixels of the current page."""

    position: Point2D
    button: PointerButton = PointerButton.PRIMARY


class GestureOutcomeKind(Enum):
    NONE = auto()
    OPEN_TEXT_EDITOR = auto()
    EDIT_TEXT = auto()


@dataclass(frozen=True)
class GestureOutcome:
    """
    What the UI must do after a pointer event, if anything.

    text is the editor's initial content: a queued bank entry for a new
    note, or the current text of the note being edited.
    """

    kind: GestureOutcomeKind = GestureOutcomeKind.NONE
    anchor: Optional[Point2D] = None
    annotation: Optional[TextAnnotation] = None
    text: str = ""


NO_OUTCOME = GestureOutcome()

PanHandler = Callable[[float, float], None]


class GestureController:
    """
    Toolkit-independent input state machine: Idle -> Drawing / Erasing /
    Dragging / Panning -> Idle.

    Each gesture records at most one history snapshot, taken right before
    its first real mutation, so one stroke, drag or erase pass undoes as a
    unit and gestures that change nothing leave no undo step.
    """

    def __init__(self, session: GradingSession, on_pan: Optional[PanHandler] = None):
        self._session = session
        self._on_pan = on_pan

        self.tool = Tool.CURSOR
        self.state = GestureState.IDLE

        self._last_position: Optional[Point2D] = None
        self._drag_origin: Optional[Point2D] = None
        self._drag_target: Optional[AnnotationBase] = None
        self._drag_moved = False
        self._gesture_snapshotted = False
        self._stroke: List[Point2D] = []

    @property
    def _settings(self):
        return self._session.settings.annotation

    def set_tool(self, tool: Tool) -> None:
        if self.state is not GestureState.IDLE:
            self._reset()
        self.tool = tool

    def _reset(self) -> None:
        self.state = GestureState.IDLE
        self._last_position = None
        self._drag_origin = None
        self._drag_target = None
        self._drag_moved = False
        self._gesture_snapshotted = False
        self._stroke = []

    def _snapshot_once(self) -> None:
        if not self._gesture_snapshotted:
            self._session.snapshot_before_edit()
            self._gesture_snapshotted = True

    # Pointer events

    def pointer_down(self, event: PointerEvent) -> GestureOutcome:
        if self._session.document_id is None:
            logger.debug("Pointer down ignored: no active document")
            return NO_OUTCOME

        self._reset()
        position = event.position
        self._last_position = position

        if event.button is PointerButton.SECONDARY:
            self.state = GestureState.PANNING
            return NO_OUTCOME

        if self.tool is Tool.CURSOR:
            hit = self._session.find_annotation_at(position)
            if hit is not None:
                self.state = GestureState.DRAGGING
                self._drag_origin = position
                self._drag_target = hit.annotation
            else:
                self.state = GestureState.PANNING
            return NO_OUTCOME

        if self.tool is Tool.PEN:
            self.state = GestureState.DRAWING
            self._stroke = [position]
            return NO_OUTCOME

        if self.tool is Tool.ERASER:
            self.state = GestureState.ERASING
            self._erase(position)
            return NO_OUTCOME

        if self.tool is Tool.TEXT:
            return GestureOutcome(
                kind=GestureOutcomeKind.OPEN_TEXT_EDITOR,
                anchor=position,
                text=self._session.take_pending_bank_text(),
            )

        return NO_OUTCOME

    def pointer_move(self, event: PointerEvent) -> GestureOutcome:
        position = event.position

        if self.state is GestureState.PANNING:
            if self._on_pan is not None and self._last_position is not None:
                self._on_pan(position.x - self._last_position.x, position.y - self._last_position.y)
            self._last_position = position
        elif self.state is GestureState.DRAGGING:
            self._drag(position)
        elif self.state is GestureState.DRAWING:
            self._stroke.append(position)
        elif self.state is GestureState.ERASING:
            self._erase(position)

        return NO_OUTCOME

    def pointer_up(self, event: PointerEvent) -> GestureOutcome:
        outcome = NO_OUTCOME

        if self.state is GestureState.DRAGGING:
            target = self._drag_target
            if not self._drag_moved and isinstance(target, TextAnnotation):
                outcome = GestureOutcome(
                    kind=GestureOutcomeKind.EDIT_TEXT,
                    annotation=target,
                    text=target.text,
                )
            elif self._drag_moved:
                self._session.request_save()
        elif self.state is GestureState.DRAWING:
            self._finish_stroke()

        self._reset()
        return outcome

    def _drag(self, position: Point2D) -> None:
        if not self._drag_moved:
            if point_distance(position, self._drag_origin) <= self._settings.drag_threshold:
                return
            self._drag_moved = True
            self._snapshot_once()

        transform = self._session.view.transform
        dx = transform.unscale_distance(position.x - self._last_position.x)
        dy = transform.unscale_distance(position.y - self._last_position.y)
        self._session.store.mutate_in_place(self._drag_target, dx, dy)
        self._last_position = position
        self._session.notify_changed()

    def _erase(self, position: Point2D) -> None:
        if not self._gesture_snapshotted:
            if self._session.find_annotation_at(position) is None:
                return
            self._snapshot_once()
        self._session.erase_at(position)

    def _finish_stroke(self) -> None:
        path = AnnotationFactory.path_from_view(
            self._stroke,
            stroke_width=self._settings.pen_width,
            color=self._settings.pen_color,
            zoom=self._session.view.zoom,
        )
        if path is None:
            return
        self._snapshot_once()
        self._session.add_annotation(path)

    # Text actions

    def select_bank_text(self, text: str) -> bool:
        """Arm the text tool with a bank entry for the next placement."""
        if not self._session.select_bank_text(text):
            return False
        self.set_tool(Tool.TEXT)
        return True

    def _clamp_size(self, font_size: Optional[float]) -> float:
        size = validate_positive_number(font_size, "font_size", allow_zero=False).unwrap_or(
            self._settings.default_text_size
        )
        return min(self._settings.max_text_size, max(self._settings.min_text_size, size))

    def _resolve_color(self, color: Optional[str], fallback: str) -> str:
        if not color:
            return fallback
        return validate_color_hex(color).unwrap_or(fallback)

    @staticmethod
    def _normalize_text(text: str) -> str:
        return (text or "").replace("\r\n", "\n").strip()

    def commit_text(
        self,
        view_anchor: Point2D,
        text: str,
        font_size: Optional[float] = None,
        color: Optional[str] = None,
    ) -> Optional[TextAnnotation]:
        """
        Place a new text note at a view-space anchor.

        The font size is in document units. Blank text is ignored. The tool
        reverts to the cursor whether or not anything was placed.
        """
        self.tool = Tool.CURSOR
        normalized = self._normalize_text(text)
        if not normalized or self._session.document_id is None:
            return None

        color = self._resolve_color(color, self._settings.pen_color)
        annotation = AnnotationFactory.text_from_view(
            view_anchor,
            normalized,
            font_size=self._clamp_size(font_size),
            color=color,
            zoom=self._session.view.zoom,
        )

        self._session.snapshot_before_edit()
        self._session.add_annotation(annotation)
        self._settings.pen_color = color
        return annotation

    def edit_text(
        self,
        annotation: TextAnnotation,
        text: str,
        font_size: Optional[float] = None,
        color: Optional[str] = None,
    ) -> bool:
        normalized = self._normalize_text(text)
        if not normalized:
            return False

        self._session.snapshot_before_edit()
        annotation.text = normalized
        annotation.font_size = self._clamp_size(font_size or annotation.font_size)
        if color:
            annotation.color = self._resolve_color(color, annotation.color)
            self._settings.pen_color = annotation.color
        self._session.notify_changed()
        self._session.request_save()
        return True

    def delete_annotation(self, annotation: AnnotationBase) -> bool:
        session = self._session
        if session.store.index_of(session.document_id, session.page_number, annotation) < 0:
            return False
        session.snapshot_before_edit()
        session.store.remove(session.document_id, session.page_number, annotation)
        session.notify_changed()
        session.request_save()
        return True
