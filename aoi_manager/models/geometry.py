"""Polygon geometry and coordinate models.

A ``Polygon`` is an ordered tuple of closed linear rings of ``(lon, lat)``
positions: ring 0 is the outer boundary, the rest are holes. A
``MultiPolygon`` is a tuple of ``Polygon`` members. A ``Coordinate`` is a
``(lat, lng)`` pair as shown in the coordinate input fields.

Positions follow GeoJSON axis order (longitude first). Coordinates follow
form order (latitude first). Conversions between the two are explicit
(``Coordinate.from_position`` / ``Coordinate.as_position``).

Design notes:
- All models are frozen dataclasses so candidates and resolved boundaries
  can be shared between components freely.
- Ring winding is not normalised; every algorithm in the geometry kernel
  is winding independent.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from aoi_manager.core.constants import (
    COORDINATE_PRECISION,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
    MIN_RING_POINTS,
)
from aoi_manager.core.exceptions import InvalidCoordinateError, InvalidGeometryError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aoi_manager.models.contracts import CoordinatesPayload

logger = logging.getLogger(__name__)

Position = tuple[float, float]
Ring = tuple[Position, ...]


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS 84 location in form order.

    Attributes:
        lat: Latitude in degrees, ``[-90, 90]``.
        lng: Longitude in degrees, ``[-180, 180]``.

    Raises:
        InvalidCoordinateError: If either value is non-finite or out of range.
    """

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            msg = f"Coordinate must be finite, got lat={self.lat!r}, lng={self.lng!r}"
            raise InvalidCoordinateError(msg)
        if not MIN_LATITUDE <= self.lat <= MAX_LATITUDE:
            msg = f"Latitude {self.lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}]"
            raise InvalidCoordinateError(msg)
        if not MIN_LONGITUDE <= self.lng <= MAX_LONGITUDE:
            msg = f"Longitude {self.lng} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}]"
            raise InvalidCoordinateError(msg)

    @classmethod
    def from_position(cls, position: Sequence[float]) -> Coordinate:
        """Build from a GeoJSON ``(lon, lat)`` position."""
        return cls(lat=float(position[1]), lng=float(position[0]))

    def as_position(self) -> Position:
        """Return the GeoJSON ``(lon, lat)`` position."""
        return (self.lng, self.lat)

    def rounded(self, precision: int = COORDINATE_PRECISION) -> Coordinate:
        """Return a copy rounded to *precision* decimal places."""
        return Coordinate(lat=round(self.lat, precision), lng=round(self.lng, precision))

    def to_dict(self, precision: int = COORDINATE_PRECISION) -> CoordinatesPayload:
        """Serialise to the ``{"lat", "lng"}`` form payload."""
        rounded = self.rounded(precision)
        return {"lat": rounded.lat, "lng": rounded.lng}


# ---------------------------------------------------------------------------
# Polygon / MultiPolygon
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Polygon:
    """A polygon as closed ``(lon, lat)`` rings; ring 0 is the outer boundary.

    Attributes:
        rings: Outer ring followed by zero or more hole rings.
    """

    geom_type: ClassVar[str] = "Polygon"

    rings: tuple[Ring, ...]

    @property
    def exterior(self) -> Ring:
        """The outer ring."""
        return self.rings[0] if self.rings else ()

    @property
    def holes(self) -> tuple[Ring, ...]:
        """Interior rings (holes)."""
        return self.rings[1:]

    @property
    def polygons(self) -> tuple[Polygon, ...]:
        """Uniform access with ``MultiPolygon.polygons``."""
        return (self,)

    @classmethod
    def from_coordinates(cls, coordinates: Sequence[Sequence[Sequence[float]]]) -> Polygon:
        """Build from GeoJSON ``Polygon.coordinates``.

        Unclosed rings are auto-closed. Positions beyond ``(lon, lat)``
        (e.g. altitude) are dropped.

        Raises:
            InvalidGeometryError: If there is no ring, a ring has fewer than
                four points after closing, or a position is out of range.
        """
        if not _is_sequence(coordinates) or not coordinates:
            msg = "Polygon has no rings"
            raise InvalidGeometryError(msg)
        return cls(rings=tuple(_normalise_ring(ring) for ring in coordinates))

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to a GeoJSON geometry mapping."""
        return {
            "type": self.geom_type,
            "coordinates": [[list(p) for p in ring] for ring in self.rings],
        }


@dataclass(frozen=True, slots=True)
class MultiPolygon:
    """A set of polygons treated as one boundary.

    Attributes:
        polygons: Member polygons, in source order.
    """

    geom_type: ClassVar[str] = "MultiPolygon"

    polygons: tuple[Polygon, ...]

    @classmethod
    def from_coordinates(
        cls, coordinates: Sequence[Sequence[Sequence[Sequence[float]]]]
    ) -> MultiPolygon:
        """Build from GeoJSON ``MultiPolygon.coordinates``.

        Raises:
            InvalidGeometryError: If there are no members or a member is invalid.
        """
        if not _is_sequence(coordinates) or not coordinates:
            msg = "MultiPolygon has no polygons"
            raise InvalidGeometryError(msg)
        return cls(polygons=tuple(Polygon.from_coordinates(p) for p in coordinates))

    def to_geojson(self) -> dict[str, Any]:
        """Serialise to a GeoJSON geometry mapping."""
        return {
            "type": self.geom_type,
            "coordinates": [
                [[list(p) for p in ring] for ring in polygon.rings] for polygon in self.polygons
            ],
        }


Geometry = Polygon | MultiPolygon


def geometry_from_geojson(data: object) -> Geometry:
    """Extract a polygonal geometry from any GeoJSON shape a collaborator returns.

    Accepts a JSON string, a bare ``Polygon``/``MultiPolygon`` geometry, a
    ``Feature`` or a ``FeatureCollection`` (its first feature with a
    geometry is used), matching what the persistence and conversion
    collaborators store and return.

    Raises:
        InvalidGeometryError: If no polygonal geometry can be extracted.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            msg = f"Boundary is not valid JSON: {exc}"
            raise InvalidGeometryError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Boundary must be a GeoJSON object, got {type(data).__name__}"
        raise InvalidGeometryError(msg)

    kind = data.get("type")
    if kind == "FeatureCollection":
        features = data.get("features")
        if not _is_sequence(features):
            features = []
        for feature in features:
            if isinstance(feature, dict) and feature.get("geometry"):
                return geometry_from_geojson(feature)
        msg = "FeatureCollection contains no feature with a geometry"
        raise InvalidGeometryError(msg)
    if kind == "Feature":
        return geometry_from_geojson(data.get("geometry"))

    coordinates = data.get("coordinates")
    if kind == "Polygon":
        return Polygon.from_coordinates(coordinates or [])
    if kind == "MultiPolygon":
        return MultiPolygon.from_coordinates(coordinates or [])

    msg = f"Unsupported geometry type {kind!r}; expected Polygon or MultiPolygon"
    raise InvalidGeometryError(msg)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalise_ring(raw: Sequence[Sequence[float]]) -> Ring:
    """Convert a raw ring to ``(lon, lat)`` tuples, closing it if needed."""
    if not _is_sequence(raw):
        msg = f"Ring must be a list of positions, got {type(raw).__name__}"
        raise InvalidGeometryError(msg)

    ring: list[Position] = []
    for position in raw:
        if not _is_sequence(position) or len(position) < 2:
            msg = f"Position {position!r} is not a list of at least two ordinates"
            raise InvalidGeometryError(msg)
        try:
            lon, lat = float(position[0]), float(position[1])
        except (TypeError, ValueError) as exc:
            msg = f"Position {position!r} has non-numeric ordinates"
            raise InvalidGeometryError(msg) from exc
        if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE and MIN_LATITUDE <= lat <= MAX_LATITUDE):
            msg = f"Position ({lon}, {lat}) is outside WGS 84 bounds"
            raise InvalidGeometryError(msg)
        ring.append((lon, lat))

    if ring and ring[0] != ring[-1]:
        logger.warning("Auto-closing unclosed ring | first=%s | last=%s", ring[0], ring[-1])
        ring.append(ring[0])

    if len(ring) < MIN_RING_POINTS:
        msg = (
            f"Ring has {len(ring)} point(s) including closure, "
            f"need at least {MIN_RING_POINTS}"
        )
        raise InvalidGeometryError(msg)
    return tuple(ring)


def _is_sequence(value: object) -> bool:
    return isinstance(value, (list, tuple))
