"""Client for the geographic-file conversion service.

The service accepts an uploaded file as a base64 data URL and returns a
GeoJSON ``FeatureCollection``::

    POST {url}
    {"fileName": "site.kml", "fileContent": "data:...;base64,...", "fileType": "..."}

    200 {"success": true,  "geoJson": {...}, "message": "..."}
    400 {"success": false, "error": "..."}

Format detection happens on the service from the file extension; this
client rejects unsupported extensions before any network call so the user
gets immediate feedback.
"""

from __future__ import annotations

import base64
import logging
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

import httpx

from aoi_manager.providers.base import ConversionError, GeometryConverter

if TYPE_CHECKING:
    from aoi_manager.models.contracts import ConversionRequest, FeatureCollectionPayload

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {"geojson", "json", "kml", "kmz", "gpx", "csv", "zip"}
)
"""Extensions the conversion service understands (``zip`` = shapefile)."""

_PROVIDER_NAME = "conversion_service"


class ConversionServiceClient(GeometryConverter):
    """HTTP adapter for the conversion service.

    Args:
        url: Conversion endpoint.
        timeout_seconds: Request timeout.
        client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._client = client

    async def convert(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str = "",
    ) -> FeatureCollectionPayload:
        """Post the file to the service and return its feature collection.

        Raises:
            ConversionError: If the extension is unsupported, the file is
                empty, the service is unreachable, or the service reports
                a failure.
        """
        extension = PurePosixPath(file_name.lower()).suffix.lstrip(".")
        if extension not in SUPPORTED_EXTENSIONS:
            supported = ", ".join(f".{ext}" for ext in sorted(SUPPORTED_EXTENSIONS))
            msg = f"Unsupported file format: .{extension or '?'}. Supported formats: {supported}"
            raise ConversionError(_PROVIDER_NAME, msg)
        if not file_bytes:
            msg = f"Uploaded file {file_name!r} is empty"
            raise ConversionError(_PROVIDER_NAME, msg)
        if not self._url:
            msg = "No conversion service URL configured"
            raise ConversionError(_PROVIDER_NAME, msg)

        content_type = mime_type or "application/octet-stream"
        encoded = base64.b64encode(file_bytes).decode("ascii")
        request: ConversionRequest = {
            "fileName": file_name,
            "fileContent": f"data:{content_type};base64,{encoded}",
            "fileType": mime_type,
        }

        logger.info(
            "Converting upload | file=%s | bytes=%d | type=%s",
            file_name,
            len(file_bytes),
            content_type,
        )
        try:
            if self._client is not None:
                response = await self._client.post(self._url, json=request, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=request)
        except httpx.HTTPError as exc:
            msg = f"Conversion service unreachable for {file_name!r}: {exc}"
            raise ConversionError(_PROVIDER_NAME, msg, retryable=True) from exc

        try:
            body: Any = response.json()
        except ValueError as exc:
            msg = f"Conversion service returned non-JSON (HTTP {response.status_code})"
            raise ConversionError(_PROVIDER_NAME, msg) from exc

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            msg = str(error or f"Conversion failed with HTTP {response.status_code}")
            raise ConversionError(_PROVIDER_NAME, msg)

        collection = body.get("geoJson")
        if not isinstance(collection, dict) or not collection.get("features"):
            msg = f"Conversion of {file_name!r} produced no features"
            raise ConversionError(_PROVIDER_NAME, msg)

        logger.info(
            "Upload converted | file=%s | features=%d",
            file_name,
            len(collection["features"]),
        )
        return collection  # type: ignore[return-value]
