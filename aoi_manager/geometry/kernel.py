"""Geometry kernel: containment, area, representative point and validation.

Pure, deterministic functions over ``Polygon`` / ``MultiPolygon`` models.
No I/O and no shared state.

Algorithms:
- Containment uses the even-odd ray-casting rule in planar lon/lat, which
  is accurate at the scale of administrative containment checks (tens of
  kilometres) and independent of ring winding.
- Area is geodesic on the WGS 84 ellipsoid via ``pyproj.Geod``, taken as
  an absolute value per ring so either winding yields the same magnitude.
- The representative point is the arithmetic mean of the distinct outer
  ring vertices, not an area-weighted centroid. It places the location
  marker; it is not meant for analytic comparisons.
- Validation delegates to shapely (``is_valid`` / ``make_valid``) and
  rejects degenerate or zero-area boundaries before they reach the
  reconciliation state machine.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_manager.core.constants import MIN_DISTINCT_VERTICES, SQ_METRES_PER_SQ_KM
from aoi_manager.core.exceptions import InvalidGeometryError
from aoi_manager.models.geometry import (
    Coordinate,
    MultiPolygon,
    Polygon,
    geometry_from_geojson,
)

if TYPE_CHECKING:
    from aoi_manager.models.geometry import Geometry, Ring

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------


def point_in_polygon(point: Coordinate, geometry: Geometry) -> bool:
    """Return whether *point* lies inside *geometry*.

    For a ``MultiPolygon`` the point is inside when any member contains it.
    Points inside a hole are outside. Degenerate polygons contain nothing.
    """
    x, y = point.lng, point.lat
    return any(_polygon_contains(polygon, x, y) for polygon in geometry.polygons)


def _polygon_contains(polygon: Polygon, x: float, y: float) -> bool:
    if is_degenerate(polygon):
        return False
    if not _ring_contains(polygon.exterior, x, y):
        return False
    return not any(_ring_contains(hole, x, y) for hole in polygon.holes)


def _ring_contains(ring: Ring, x: float, y: float) -> bool:
    """Even-odd ray casting towards +x."""
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y):
            x_cross = (xj - xi) * (y - yi) / (yj - yi) + xi
            if x < x_cross:
                inside = not inside
        j = i
    return inside


# ---------------------------------------------------------------------------
# Area
# ---------------------------------------------------------------------------


def compute_area_sq_m(geometry: Geometry) -> float:
    """Compute the geodesic area of *geometry* in square metres.

    Holes are subtracted; multipolygon members are summed. Degenerate
    members contribute zero.
    """
    from pyproj import Geod

    geod = Geod(ellps="WGS84")
    total = 0.0
    for polygon in geometry.polygons:
        if is_degenerate(polygon):
            continue
        area = _ring_area(geod, polygon.exterior)
        for hole in polygon.holes:
            if len(set(hole)) >= MIN_DISTINCT_VERTICES:
                area -= _ring_area(geod, hole)
        total += max(area, 0.0)
    return total


def compute_area_sq_km(geometry: Geometry) -> float:
    """Compute the geodesic area of *geometry* in square kilometres."""
    return compute_area_sq_m(geometry) / SQ_METRES_PER_SQ_KM


def _ring_area(geod: object, ring: Ring) -> float:
    lons = [p[0] for p in ring]
    lats = [p[1] for p in ring]
    area_m2, _perimeter = geod.polygon_area_perimeter(lons, lats)  # type: ignore[attr-defined]
    return abs(area_m2)


# ---------------------------------------------------------------------------
# Representative point / bounds
# ---------------------------------------------------------------------------


def representative_point(geometry: Geometry) -> Coordinate:
    """Return the marker position for *geometry*.

    Mean of the outer ring's distinct vertices (the closing vertex is not
    counted twice). A ``MultiPolygon`` uses its first member.

    Raises:
        InvalidGeometryError: If the polygon is degenerate.
    """
    polygon = geometry.polygons[0] if geometry.polygons else None
    if polygon is None or is_degenerate(polygon):
        msg = "Cannot compute a representative point for a degenerate polygon"
        raise InvalidGeometryError(msg)

    ring = polygon.exterior
    vertices = ring[:-1] if ring[0] == ring[-1] else ring
    lng = sum(p[0] for p in vertices) / len(vertices)
    lat = sum(p[1] for p in vertices) / len(vertices)
    return Coordinate(lat=lat, lng=lng)


def compute_bbox(geometry: Geometry) -> tuple[float, float, float, float]:
    """Return ``(min_lon, min_lat, max_lon, max_lat)`` over all outer rings.

    Raises:
        InvalidGeometryError: If the geometry has no vertices.
    """
    positions = [p for polygon in geometry.polygons for p in polygon.exterior]
    if not positions:
        msg = "Cannot compute bounds of an empty geometry"
        raise InvalidGeometryError(msg)
    lons = [p[0] for p in positions]
    lats = [p[1] for p in positions]
    return (min(lons), min(lats), max(lons), max(lats))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def is_degenerate(polygon: Polygon) -> bool:
    """Whether the outer ring has fewer than three distinct vertices."""
    return len(set(polygon.exterior)) < MIN_DISTINCT_VERTICES


def validate_geometry(geometry: Geometry, *, context: str = "boundary") -> Geometry:
    """Validate a drawn or uploaded boundary, repairing it when possible.

    Self-intersecting rings are repaired with shapely ``make_valid()``;
    the repaired geometry is returned in place of the input.

    Raises:
        InvalidGeometryError: If a member is degenerate, has zero area, or
            cannot be repaired into a polygonal geometry.
    """
    repaired: list[Polygon] = []
    changed = False
    for polygon in geometry.polygons:
        if is_degenerate(polygon):
            msg = f"{context} has fewer than {MIN_DISTINCT_VERTICES} distinct vertices"
            raise InvalidGeometryError(msg)
        members = _validate_polygon(polygon, context)
        changed = changed or members != (polygon,)
        repaired.extend(members)

    if not changed:
        return geometry
    if len(repaired) == 1:
        return repaired[0]
    return MultiPolygon(polygons=tuple(repaired))


def _validate_polygon(polygon: Polygon, context: str) -> tuple[Polygon, ...]:
    from shapely.geometry import Polygon as ShapelyPolygon
    from shapely.geometry import mapping
    from shapely.validation import make_valid

    try:
        shape = ShapelyPolygon(polygon.exterior, list(polygon.holes))
    except Exception as exc:
        msg = f"Cannot build polygon for {context}: {exc}"
        raise InvalidGeometryError(msg) from exc

    result: tuple[Polygon, ...] = (polygon,)
    if not shape.is_valid:
        logger.warning("Invalid geometry | context=%s | attempting make_valid()", context)
        fixed = make_valid(shape)
        if fixed.is_empty:
            msg = f"{context} is empty after make_valid()"
            raise InvalidGeometryError(msg)
        if fixed.geom_type not in ("Polygon", "MultiPolygon"):
            msg = f"{context} became {fixed.geom_type} after make_valid()"
            raise InvalidGeometryError(msg)
        result = geometry_from_geojson(mapping(fixed)).polygons
        shape = fixed
        logger.info("Geometry repaired | context=%s | parts=%d", context, len(result))

    if shape.area == 0:
        msg = f"Zero-area polygon for {context}"
        raise InvalidGeometryError(msg)
    return result
