"""Layer data sources.

``LayerSourceLoader.load(name, source)`` fetches a named boundary or
overlay dataset as a GeoJSON ``FeatureCollection``. ``source`` is either an
``http(s)`` URL (fetched with httpx) or a local file path. Built-in layers
resolve their source from the configured GIS data base and the layer
catalogue in ``core.constants``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from aoi_manager.core.constants import DEFAULT_LAYER_FILES
from aoi_manager.core.exceptions import TransientError

logger = logging.getLogger(__name__)


class LayerLoadError(TransientError):
    """Raised when a layer cannot be fetched or parsed.

    Non-fatal: the layer is marked ``LOAD_FAILED`` and retried on the next
    request or visibility toggle.
    """

    default_stage = "layer_store"
    default_code = "LAYER_LOAD_FAILED"


def default_source(name: str, base: str) -> str:
    """Return the built-in source location for layer *name* under *base*.

    Raises:
        LayerLoadError: If *name* is not in the built-in catalogue.
    """
    file_name = DEFAULT_LAYER_FILES.get(name)
    if file_name is None:
        msg = f"Layer {name!r} has no built-in source; pass one explicitly"
        raise LayerLoadError(msg)
    return f"{base.rstrip('/')}/{file_name}"


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class LayerSourceLoader:
    """Fetch layer feature collections from URLs or local files.

    Args:
        base: GIS data base used when a layer is requested without a source.
        timeout_seconds: HTTP timeout.
        client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base: str = "/gis-data",
        *,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base = base
        self._timeout = timeout_seconds
        self._client = client

    async def load(self, name: str, source: str = "") -> dict[str, Any]:
        """Fetch and decode the layer's GeoJSON document.

        Raises:
            LayerLoadError: On transport, HTTP status, I/O or JSON errors.
        """
        location = source or default_source(name, self._base)
        logger.debug("Fetching layer | layer=%s | source=%s", name, location)

        if _is_url(location):
            return await self._load_url(name, location)
        return self._load_file(name, Path(location))

    async def _load_url(self, name: str, url: str) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                    response = await client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            msg = f"Error loading layer {name!r} from {url}: {exc}"
            raise LayerLoadError(msg) from exc
        except ValueError as exc:
            msg = f"Layer {name!r} at {url} is not valid JSON"
            raise LayerLoadError(msg) from exc
        return _expect_object(name, data)

    def _load_file(self, name: str, path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_bytes())
        except OSError as exc:
            msg = f"Cannot read layer {name!r} from {path}: {exc}"
            raise LayerLoadError(msg) from exc
        except ValueError as exc:
            msg = f"Layer {name!r} at {path} is not valid JSON"
            raise LayerLoadError(msg) from exc
        return _expect_object(name, data)


def _expect_object(name: str, data: object) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"Layer {name!r} document must be a JSON object, got {type(data).__name__}"
        raise LayerLoadError(msg)
    return data
