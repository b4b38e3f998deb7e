"""Geometry kernel: pure spatial algorithms over the geometry models."""

from aoi_manager.geometry.kernel import (
    compute_area_sq_km,
    compute_area_sq_m,
    compute_bbox,
    is_degenerate,
    point_in_polygon,
    representative_point,
    validate_geometry,
)

__all__ = [
    "compute_area_sq_km",
    "compute_area_sq_m",
    "compute_bbox",
    "is_degenerate",
    "point_in_polygon",
    "representative_point",
    "validate_geometry",
]
