"""Geocoder factory - selects the active reverse geocoder by name.

The factory maintains a registry of known adapters. New adapters are
registered by adding an entry to ``_GEOCODER_REGISTRY`` or calling
``register_geocoder``.

Usage::

    from aoi_manager.providers.factory import get_geocoder

    geocoder = get_geocoder("mapbox", config)
    province = await geocoder.reverse_geocode_province(lng, lat)

The geocoder name is read from the ``AOI_GEOCODER`` environment variable
via ``AOIConfig.geocoder``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_manager.core.config import AOIConfig
from aoi_manager.providers.base import ProviderError, ReverseGeocoder

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Geocoder name constants
# ---------------------------------------------------------------------------

MAPBOX = "mapbox"
NONE = "none"

# ---------------------------------------------------------------------------
# Lazy-import adapter registry
# ---------------------------------------------------------------------------

# Each entry maps a geocoder name to a callable building the adapter from
# configuration. Imports are lazy so httpx is only loaded when a network
# geocoder is selected.

_GEOCODER_REGISTRY: dict[str, Callable[[AOIConfig], ReverseGeocoder]] = {}


def _register_builtin_geocoders() -> None:
    """Register the built-in geocoders. Called once on first use."""

    def _mapbox(config: AOIConfig) -> ReverseGeocoder:
        if not config.mapbox_access_token:
            logger.warning(
                "MAPBOX_ACCESS_TOKEN not set | province will come from layer attributes only"
            )
            return _none(config)

        from aoi_manager.providers.mapbox import MapboxReverseGeocoder

        return MapboxReverseGeocoder(
            config.mapbox_access_token,
            base_url=config.geocoder_url,
            timeout_seconds=config.http_timeout_seconds,
        )

    def _none(config: AOIConfig) -> ReverseGeocoder:  # noqa: ARG001
        from aoi_manager.providers.null import NullReverseGeocoder

        return NullReverseGeocoder()

    _GEOCODER_REGISTRY[MAPBOX] = _mapbox
    _GEOCODER_REGISTRY[NONE] = _none


def _ensure_registry() -> None:
    """Initialise the geocoder registry once (idempotent)."""
    if not _GEOCODER_REGISTRY:
        _register_builtin_geocoders()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_geocoder(
    name: str,
    builder: Callable[[AOIConfig], ReverseGeocoder],
) -> None:
    """Register a custom reverse-geocoding adapter.

    Args:
        name: Geocoder name (e.g. ``"nominatim"``).
        builder: Callable building the adapter from an ``AOIConfig``.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Geocoder name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _GEOCODER_REGISTRY[name] = builder
    logger.debug("Registered geocoder adapter: %s", name)


def get_geocoder(name: str, config: AOIConfig | None = None) -> ReverseGeocoder:
    """Create and return a reverse geocoder.

    Args:
        name: Geocoder identifier (``"mapbox"``, ``"none"``).
        config: Optional configuration; defaults to ``AOIConfig()``.

    Raises:
        ProviderError: If the named geocoder is not registered.
    """
    _ensure_registry()

    builder = _GEOCODER_REGISTRY.get(name)
    if builder is None:
        available = ", ".join(sorted(_GEOCODER_REGISTRY))
        msg = f"Unknown geocoder: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    geocoder = builder(config or AOIConfig())
    logger.info("Creating reverse geocoder: %s", geocoder.name or name)
    return geocoder


def list_geocoders() -> list[str]:
    """Return the names of all registered geocoders."""
    _ensure_registry()
    return sorted(_GEOCODER_REGISTRY)
