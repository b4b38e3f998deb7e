"""Collaborator adapter base classes.

Defines the contracts the AOI manager uses to reach external services.
The map session and the location resolver interact exclusively with these
interfaces and never know which concrete service is behind them.

- ``ReverseGeocoder``   - province lookup for a ``(lng, lat)`` position.
- ``GeometryConverter`` - conversion of an uploaded geographic file
  (KML, KMZ, GPX, CSV, zipped shapefile, GeoJSON) into a GeoJSON
  ``FeatureCollection``.

Both are awaited from the single UI event loop; implementations must not
block it.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from aoi_manager.core.exceptions import AOIManagerError

if TYPE_CHECKING:
    from aoi_manager.models.contracts import FeatureCollectionPayload


class ReverseGeocoder(abc.ABC):
    """Abstract base class for reverse-geocoding adapters.

    Example usage::

        geocoder = get_geocoder("mapbox", config)
        province = await geocoder.reverse_geocode_province(147.18, -9.44)
    """

    #: Registry name of the adapter.
    name: str = ""

    @abc.abstractmethod
    async def reverse_geocode_province(self, lng: float, lat: float) -> str | None:
        """Return the province (first-level region) containing ``(lng, lat)``.

        Returns:
            The province name, or ``None`` when the service knows no region
            for the position.

        Raises:
            GeocodeError: On network or service failure.
        """


class GeometryConverter(abc.ABC):
    """Abstract base class for uploaded-file conversion adapters."""

    @abc.abstractmethod
    async def convert(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str = "",
    ) -> FeatureCollectionPayload:
        """Convert an uploaded geographic file to a GeoJSON feature collection.

        Args:
            file_bytes: Raw file content.
            file_name: Original file name; its extension selects the format.
            mime_type: Browser-reported MIME type, if any.

        Returns:
            A ``FeatureCollection`` with at least one feature.

        Raises:
            ConversionError: If the file is unsupported or conversion fails.
        """


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(AOIManagerError):
    """Base exception for collaborator adapter errors.

    Attributes:
        provider: Name of the adapter that raised the error.
        message: Human-readable error description.
        retryable: Whether repeating the call may succeed.
    """

    default_stage = "provider"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.provider = provider
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class GeocodeError(ProviderError):
    """Reverse-geocoding failure. Non-fatal: the province stays unresolved."""

    default_stage = "geocode"
    default_code = "GEOCODE_FAILED"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=True)


class ConversionError(ProviderError):
    """Uploaded file could not be converted. Reported as an upload rejection."""

    default_stage = "conversion"
    default_code = "CONVERSION_FAILED"
