"""Collaborator adapters.

Implements the adapter pattern for the external services the AOI manager
depends on:
- ReverseGeocoder: province lookup (Mapbox, or a no-op adapter)
- GeometryConverter: uploaded-file conversion service client

The active geocoder is selected via configuration.
"""

from aoi_manager.providers.base import (
    ConversionError,
    GeocodeError,
    GeometryConverter,
    ProviderError,
    ReverseGeocoder,
)
from aoi_manager.providers.factory import (
    MAPBOX,
    NONE,
    get_geocoder,
    list_geocoders,
    register_geocoder,
)

__all__ = [
    "MAPBOX",
    "NONE",
    "ConversionError",
    "GeocodeError",
    "GeometryConverter",
    "ProviderError",
    "ReverseGeocoder",
    "get_geocoder",
    "list_geocoders",
    "register_geocoder",
]
