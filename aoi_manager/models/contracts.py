"""Canonical payload contracts for collaborator and form boundaries.

Every payload exchanged with the hosting form, the persistence
collaborator, the layer source and the conversion service is defined here
as a ``TypedDict``. This module is the single source of truth for field
names on those boundaries.

Design notes:
- ``TypedDict`` was chosen over ``dataclass`` because every boundary here
  is JSON; TypedDicts need no conversion.
- Response contracts from external services use ``total=False`` because
  their shape differs between success and failure.
"""

from __future__ import annotations

from typing import Any, TypedDict

# ---------------------------------------------------------------------------
# GeoJSON (layer sources, conversion service, persistence)
# ---------------------------------------------------------------------------


class GeometryPayload(TypedDict):
    """A GeoJSON geometry object."""

    type: str
    coordinates: list[Any]


class FeaturePayload(TypedDict):
    """A GeoJSON feature; ``properties`` may be ``null`` on the wire."""

    type: str
    geometry: GeometryPayload | None
    properties: dict[str, Any] | None


class FeatureCollectionPayload(TypedDict):
    """A GeoJSON feature collection."""

    type: str
    features: list[FeaturePayload]


# ---------------------------------------------------------------------------
# Hosting form outputs
# ---------------------------------------------------------------------------


class CoordinatesPayload(TypedDict):
    """Argument of ``on_coordinates_change`` (6-decimal lat/lng)."""

    lat: float
    lng: float


class LocationMetadataPayload(TypedDict):
    """Metadata half of ``on_boundary_save``."""

    district: str | None
    province: str | None
    llg: str | None
    area_sq_km: float


class BoundarySavePayload(TypedDict):
    """Full record handed to the persistence collaborator."""

    geometry: GeometryPayload
    metadata: LocationMetadataPayload


# ---------------------------------------------------------------------------
# Conversion service (request / response)
# ---------------------------------------------------------------------------


class ConversionRequest(TypedDict):
    """Body posted to the conversion service."""

    fileName: str
    fileContent: str
    fileType: str


class ConversionResponse(TypedDict, total=False):
    """Body returned by the conversion service."""

    success: bool
    geoJson: FeatureCollectionPayload
    message: str
    error: str
