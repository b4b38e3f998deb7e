"""Data models and schemas.

Defines the data structures used throughout the AOI manager:
- Coordinate, Polygon, MultiPolygon: geometry in GeoJSON axis order
- AOICandidate: a proposed boundary tagged persisted / drawn / uploaded
- LocationMetadata: derived district, province, LLG and area
- BoundaryLayer, LayerFeature, LayerEntry: reference and overlay layers
"""

from aoi_manager.models.candidate import AOICandidate, CandidateKind
from aoi_manager.models.geometry import (
    Coordinate,
    Geometry,
    MultiPolygon,
    Polygon,
    geometry_from_geojson,
)
from aoi_manager.models.layer import BoundaryLayer, LayerEntry, LayerFeature, LoadState
from aoi_manager.models.metadata import LocationMetadata, LocationResolution

__all__ = [
    "AOICandidate",
    "BoundaryLayer",
    "CandidateKind",
    "Coordinate",
    "Geometry",
    "LayerEntry",
    "LayerFeature",
    "LoadState",
    "LocationMetadata",
    "LocationResolution",
    "MultiPolygon",
    "Polygon",
    "geometry_from_geojson",
]
