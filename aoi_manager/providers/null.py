"""No-op reverse geocoder.

Selected with ``AOI_GEOCODER=none`` or when no Mapbox token is configured.
Province resolution then relies on boundary-layer attributes alone.
"""

from __future__ import annotations

from aoi_manager.providers.base import ReverseGeocoder


class NullReverseGeocoder(ReverseGeocoder):
    """Reverse geocoder that never knows the province."""

    name = "none"

    async def reverse_geocode_province(self, lng: float, lat: float) -> str | None:  # noqa: ARG002
        return None
