"""
Bidirectional text shaping for mixed Hebrew/Latin annotations.

Converts logical-order text into visual order so that a renderer drawing
strictly left to right (an on-screen overlay or a PDF text operator) shows
Hebrew correctly while keeping Latin words and numbers readable.

This is a scoped heuristic, not the Unicode bidirectional algorithm: one
level of embedding only, no explicit directional controls, and only the
Hebrew block (U+0590-U+05FF) counts as right-to-left.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List
import re

HEBREW_BLOCK = "\u0590-\u05FF"

_HEBREW_CHAR = re.compile(f"[{HEBREW_BLOCK}]")

# Precedence is the alternation order: numeric expressions, Hebrew runs,
# Latin/digit runs, whitespace, then any other symbols.
_NUMERIC_EXPRESSION = r"[0-9]+(?:[.,:/\-][0-9]+)+"
_TOKEN_PATTERN = re.compile(
    f"(?P<numeric>{_NUMERIC_EXPRESSION})"
    f"|(?P<hebrew>[{HEBREW_BLOCK}]+)"
    r"|(?P<alnum>[A-Za-z0-9]+)"
    r"|(?P<space>\s+)"
    f"|(?P<other>[^{HEBREW_BLOCK}A-Za-z0-9\\s]+)"
)
_RUN_PATTERN = re.compile(f"[{HEBREW_BLOCK}]+|[^{HEBREW_BLOCK}]+")

BRACKET_MIRROR = str.maketrans({
    "(": ")",
    ")": "(",
    "[": "]",
    "]": "[",
    "{": "}",
    "}": "{",
})

# Token kinds that keep their internal character order after the line flip
_LEFT_TO_RIGHT_KINDS = frozenset({"numeric", "alnum"})


@dataclass(frozen=True)
class DirectionalRun:
    """A maximal substring of one direction class, in visual order."""

    text: str
    is_right_to_left: bool


@dataclass(frozen=True)
class ShapedLine:
    """One newline-delimited line after shaping."""

    logical_text: str
    runs: List[DirectionalRun]
    is_right_to_left: bool

    @property
    def visual_text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class PositionedRun:
    run: DirectionalRun
    x: float
    width: float


def contains_hebrew(text: str) -> bool:
    return bool(_HEBREW_CHAR.search(text or ""))


def tokenize(line: str) -> List[tuple]:
    """Split a line into (kind, text) tokens in logical order."""
    tokens = [(match.lastgroup, match.group()) for match in _TOKEN_PATTERN.finditer(line)]
    return tokens or [("other", line)]


def visual_order(line: str) -> str:
    """
    Reorder one logical line for left-to-right drawing.

    Lines without Hebrew are returned unchanged. Otherwise the token order is
    reversed, Hebrew and symbol tokens have their characters reversed, and
    every bracket is mirrored so pairs still face each other.
    """
    if not contains_hebrew(line):
        return line

    pieces = []
    for kind, text in reversed(tokenize(line)):
        if kind not in _LEFT_TO_RIGHT_KINDS:
            text = text[::-1]
        pieces.append(text.translate(BRACKET_MIRROR))
    return "".join(pieces)


def split_runs(visual_text: str) -> List[DirectionalRun]:
    """Split visually ordered text into alternating Hebrew/non-Hebrew runs."""
    return [
        DirectionalRun(text=run, is_right_to_left=contains_hebrew(run))
        for run in _RUN_PATTERN.findall(visual_text)
    ]


def shape_line(line: str) -> ShapedLine:
    if not contains_hebrew(line):
        return ShapedLine(
            logical_text=line,
            runs=[DirectionalRun(text=line, is_right_to_left=False)],
            is_right_to_left=False,
        )
    return ShapedLine(
        logical_text=line,
        runs=split_runs(visual_order(line)),
        is_right_to_left=True,
    )


def shape_for_display(logical_text: str) -> List[ShapedLine]:
    """Shape multi-line text line by line; lines never merge."""
    return [shape_line(line) for line in (logical_text or "").split("\n")]


def layout_line(
    shaped_line: ShapedLine,
    anchor_x: float,
    width_of: Callable[[DirectionalRun], float],
) -> List[PositionedRun]:
    """
    Assign an x position to every run of a shaped line.

    Left-to-right lines start at the anchor. Right-to-left lines end at the
    anchor: the cursor starts at anchor_x minus the total width and advances
    rightwards through the visually ordered runs.
    """
    widths = [width_of(run) for run in shaped_line.runs]
    cursor_x = anchor_x - sum(widths) if shaped_line.is_right_to_left else anchor_x

    positioned = []
    for run, width in zip(shaped_line.runs, widths):
        positioned.append(PositionedRun(run=run, x=cursor_x, width=width))
        cursor_x += width
    return positioned
