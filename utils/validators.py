from __future__ import annotations
from typing import Optional
import math
import re

from core.error_types import (
    Result,
    Success,
    Failure,
    ValidationError,
)

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]{6}$')


def validate_color_hex(color_hex: str) -> Result[str]:
    """
    Validate an RGB hex color string.

    Args:
        color_hex: Color string to validate (with or without #).

    Returns:
        Result containing the normalized color string (#rrggbb).
    """
    if not isinstance(color_hex, str):
        return Failure(ValidationError(
            message="Color must be a string",
            field_name="color",
            invalid_value=str(color_hex),
        ))

    color_hex = color_hex.strip()

    if color_hex.startswith("#"):
        color_hex = color_hex[1:]

    if not _HEX_PATTERN.match(color_hex):
        return Failure(ValidationError(
            message="Invalid hex color format. Use #RRGGBB",
            field_name="color",
            invalid_value=color_hex,
        ))

    return Success(f"#{color_hex.lower()}")


def validate_zoom_level(
    zoom_level: float,
    min_zoom: Optional[float] = None,
) -> Result[float]:
    """
    Validate a zoom factor.

    Non-positive values are always rejected since every capture path divides
    by the zoom. The optional minimum is the UI clamp.
    """
    if not isinstance(zoom_level, (int, float)) or math.isnan(zoom_level):
        return Failure(ValidationError(
            message="Zoom must be a number",
            field_name="zoom",
            invalid_value=str(zoom_level),
        ))

    if zoom_level <= 0:
        return Failure(ValidationError(
            message="Zoom must be positive",
            field_name="zoom",
            invalid_value=str(zoom_level),
        ))

    if min_zoom is not None and zoom_level < min_zoom:
        return Failure(ValidationError(
            message=f"Zoom must be at least {min_zoom}",
            field_name="zoom",
            invalid_value=str(zoom_level),
        ))

    return Success(float(zoom_level))


def validate_page_number(page_number: int) -> Result[int]:
    """Page numbers are 1-based."""
    if not isinstance(page_number, int) or isinstance(page_number, bool):
        return Failure(ValidationError(
            message="Page number must be an integer",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    if page_number < 1:
        return Failure(ValidationError(
            message="Page number must be at least 1",
            field_name="page_number",
            invalid_value=str(page_number),
        ))

    return Success(page_number)


def validate_positive_number(
    value: float,
    field_name: str,
    allow_zero: bool = True,
) -> Result[float]:
    """
    Validate that a number is positive.

    Args:
        value: Number to validate.
        field_name: Name of the field for error messages.
        allow_zero: Whether zero is allowed.

    Returns:
        Result containing validated number.
    """
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return Failure(ValidationError(
            message=f"{field_name} must be a number",
            field_name=field_name,
            invalid_value=str(value),
        ))

    if allow_zero:
        if value < 0:
            return Failure(ValidationError(
                message=f"{field_name} must be non-negative",
                field_name=field_name,
                invalid_value=str(value),
            ))
    else:
        if value <= 0:
            return Failure(ValidationError(
                message=f"{field_name} must be positive",
                field_name=field_name,
                invalid_value=str(value),
            ))

    return Success(float(value))
