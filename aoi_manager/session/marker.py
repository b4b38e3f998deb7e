"""Marker / coordinate synchronizer.

Keeps the single draggable location marker, the latitude/longitude input
fields and the authoritative boundary consistent:

- A resolved boundary moves the marker to its representative point and
  yields the viewport to fit.
- A drag, click or field edit is accepted only when it lands inside the
  authoritative boundary. Otherwise the marker silently returns to its
  last valid position.
- Without a boundary the marker is freely placeable. Such placements are
  plain coordinate output and never become boundary candidates.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_manager.core.constants import (
    COORDINATE_PRECISION,
    DEFAULT_FIT_MAX_ZOOM,
    DEFAULT_FIT_PADDING_PX,
)
from aoi_manager.core.exceptions import InvalidCoordinateError
from aoi_manager.geometry.kernel import compute_bbox, point_in_polygon, representative_point
from aoi_manager.models.geometry import Coordinate
from aoi_manager.session.view import Viewport
from aoi_manager.utils.helpers import parse_coordinate_text

if TYPE_CHECKING:
    from collections.abc import Callable

    from aoi_manager.models.geometry import Geometry

logger = logging.getLogger(__name__)

LAT_FIELD = "lat"
LNG_FIELD = "lng"


class MarkerSynchronizer:
    """Owns the marker position and confines it to the authoritative boundary.

    Args:
        initial: Starting marker position.
        on_move: Called with the new position after every accepted move.
        precision: Decimal places kept in emitted positions.
        padding_px: Viewport padding used by ``on_resolved``.
        max_zoom: Viewport zoom limit used by ``on_resolved``.
    """

    def __init__(
        self,
        initial: Coordinate,
        on_move: Callable[[Coordinate], None] | None = None,
        *,
        precision: int = COORDINATE_PRECISION,
        padding_px: int = DEFAULT_FIT_PADDING_PX,
        max_zoom: float = DEFAULT_FIT_MAX_ZOOM,
    ) -> None:
        self._position = initial.rounded(precision)
        self._boundary: Geometry | None = None
        self._on_move = on_move
        self._precision = precision
        self._padding_px = padding_px
        self._max_zoom = max_zoom

    @property
    def position(self) -> Coordinate:
        """Last accepted marker position."""
        return self._position

    @property
    def boundary(self) -> Geometry | None:
        return self._boundary

    # ------------------------------------------------------------------
    # Boundary changes
    # ------------------------------------------------------------------

    def on_resolved(self, geometry: Geometry) -> Viewport:
        """Bind to a new authoritative boundary and centre the marker on it."""
        self._boundary = geometry
        self._accept(representative_point(geometry))
        return Viewport(
            bbox=compute_bbox(geometry),
            padding_px=self._padding_px,
            max_zoom=self._max_zoom,
        )

    def clear_boundary(self) -> None:
        """Release the confinement; the marker keeps its position."""
        self._boundary = None

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------

    def drag(self, coordinate: Coordinate) -> bool:
        """Handle a marker drag end. Returns whether the position was accepted."""
        if self._boundary is not None and not point_in_polygon(coordinate, self._boundary):
            logger.debug(
                "Marker move rejected outside boundary | lat=%.6f | lng=%.6f",
                coordinate.lat,
                coordinate.lng,
            )
            return False
        self._accept(coordinate)
        return True

    def click(self, coordinate: Coordinate) -> bool:
        """Handle a map click; same confinement as a drag."""
        return self.drag(coordinate)

    def edit_field(self, field: str, text: str) -> bool:
        """Handle an edit of the latitude or longitude input field.

        Unparseable or out-of-range input is ignored.

        Raises:
            ValueError: If *field* is neither ``"lat"`` nor ``"lng"``.
        """
        if field not in (LAT_FIELD, LNG_FIELD):
            msg = f"Unknown coordinate field {field!r}; expected 'lat' or 'lng'"
            raise ValueError(msg)

        value = parse_coordinate_text(text)
        if value is None:
            return False

        try:
            if field == LAT_FIELD:
                candidate = Coordinate(lat=value, lng=self._position.lng)
            else:
                candidate = Coordinate(lat=self._position.lat, lng=value)
        except InvalidCoordinateError:
            return False
        return self.drag(candidate)

    def _accept(self, coordinate: Coordinate) -> None:
        self._position = coordinate.rounded(self._precision)
        if self._on_move is not None:
            self._on_move(self._position)
