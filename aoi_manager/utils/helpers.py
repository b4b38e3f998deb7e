"""Shared helper functions used by the session components.

Centralises the small parsing and formatting rules applied at the boundary
with the hosting form: coordinate text parsing, coordinate rounding and
area display.
"""

from __future__ import annotations

import math

from aoi_manager.core.constants import (
    COORDINATE_PRECISION,
    SQ_METRES_PER_HECTARE,
    SQ_METRES_PER_SQ_KM,
)


def parse_coordinate_text(text: str) -> float | None:
    """Parse a coordinate input field value.

    Args:
        text: Raw field text (e.g. ``" -6.314993 "``).

    Returns:
        The finite float value, or ``None`` when the text is empty, not a
        number, or not finite.
    """
    stripped = text.strip()
    if not stripped:
        return None
    try:
        value = float(stripped)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def round_coordinate(value: float, precision: int = COORDINATE_PRECISION) -> float:
    """Round a latitude or longitude for display and storage."""
    return round(value, precision)


def format_area(area_sq_m: float) -> str:
    """Format an area for display.

    Square kilometres with two decimals from 1 km² upwards, hectares with
    two decimals below that.
    """
    area_sq_km = area_sq_m / SQ_METRES_PER_SQ_KM
    if area_sq_km >= 1:
        return f"{area_sq_km:.2f} km²"
    return f"{area_sq_m / SQ_METRES_PER_HECTARE:.2f} hectares"
