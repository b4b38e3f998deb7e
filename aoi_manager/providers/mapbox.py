"""Mapbox reverse-geocoding adapter.

Resolves the province of a position through the Mapbox Geocoding v5
``mapbox.places`` endpoint restricted to ``types=region`` (first-level
administrative divisions, which are provinces in Papua New Guinea).

References:
    Mapbox Geocoding API v5:
        https://docs.mapbox.com/api/search/geocoding-v5/
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from aoi_manager.providers.base import GeocodeError, ReverseGeocoder

logger = logging.getLogger(__name__)

_DEFAULT_GEOCODER_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"


class MapboxReverseGeocoder(ReverseGeocoder):
    """Mapbox ``types=region`` reverse geocoder.

    Args:
        access_token: Mapbox public access token.
        base_url: Geocoding endpoint prefix (override for proxies and tests).
        timeout_seconds: Per-request timeout.
        client: Optional shared ``httpx.AsyncClient``. When omitted a
            short-lived client is created per lookup.
    """

    name = "mapbox"

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = _DEFAULT_GEOCODER_URL,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    async def reverse_geocode_province(self, lng: float, lat: float) -> str | None:
        """Return the ``text`` of the first region feature at ``(lng, lat)``.

        Raises:
            GeocodeError: On transport errors, non-2xx responses or
                malformed bodies.
        """
        url = f"{self._base_url}/{lng},{lat}.json"
        params = {"types": "region", "limit": "1", "access_token": self._access_token}

        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            body: Any = response.json()
        except httpx.HTTPError as exc:
            msg = f"Reverse geocode failed for ({lng}, {lat}): {exc}"
            raise GeocodeError(self.name, msg) from exc
        except ValueError as exc:
            msg = f"Reverse geocode returned non-JSON body for ({lng}, {lat})"
            raise GeocodeError(self.name, msg) from exc

        features = body.get("features") if isinstance(body, dict) else None
        if not isinstance(features, list):
            msg = f"Reverse geocode response has no feature list for ({lng}, {lat})"
            raise GeocodeError(self.name, msg)
        if not features:
            logger.debug("Reverse geocode found no region | lng=%s | lat=%s", lng, lat)
            return None

        text = features[0].get("text") if isinstance(features[0], dict) else None
        return str(text) if text else None
