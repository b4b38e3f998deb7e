"""AOI manager configuration loaded from environment variables.

All configuration values have sensible defaults for a Papua New Guinea
permitting deployment. The hosting application's environment is the source
of truth.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric value
    is out of its valid range, so bad settings surface when the map session
    is created rather than on the first user interaction.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from aoi_manager.core.constants import (
    COORDINATE_PRECISION,
    DEFAULT_COUNTRY_LABEL,
    DEFAULT_FIT_MAX_ZOOM,
    DEFAULT_FIT_PADDING_PX,
    DEFAULT_MARKER_LAT,
    DEFAULT_MARKER_LNG,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from aoi_manager.core.exceptions import AOIManagerError


class ConfigValidationError(AOIManagerError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class AOIConfig:
    """Immutable AOI manager configuration.

    Loaded once when the map session is created.

    Attributes:
        gis_data_base: URL prefix or directory holding the built-in layer files.
        geocoder: Reverse-geocoding provider name (``mapbox`` or ``none``).
        mapbox_access_token: Token for the Mapbox geocoding API.
        geocoder_url: Base URL of the reverse-geocoding API.
        conversion_url: Endpoint of the geographic-file conversion service.
        http_timeout_seconds: Timeout applied to every collaborator HTTP call.
        coordinate_precision: Decimal places kept in emitted coordinates.
        fit_padding_px: Viewport padding when fitting to a boundary.
        fit_max_zoom: Maximum zoom when fitting to a boundary.
        default_lat: Initial marker latitude.
        default_lng: Initial marker longitude.
        country_label: Display fallback when the province is unresolved.
    """

    gis_data_base: str = "/gis-data"
    geocoder: str = "mapbox"
    mapbox_access_token: str = ""
    geocoder_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    conversion_url: str = ""
    http_timeout_seconds: float = 30.0
    coordinate_precision: int = COORDINATE_PRECISION
    fit_padding_px: int = DEFAULT_FIT_PADDING_PX
    fit_max_zoom: float = DEFAULT_FIT_MAX_ZOOM
    default_lat: float = DEFAULT_MARKER_LAT
    default_lng: float = DEFAULT_MARKER_LNG
    country_label: str = DEFAULT_COUNTRY_LABEL

    @classmethod
    def from_env(cls) -> AOIConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``AOI_HTTP_TIMEOUT_SECONDS=abc``).
        """
        config = cls(
            gis_data_base=os.getenv("AOI_GIS_DATA_BASE", "/gis-data"),
            geocoder=os.getenv("AOI_GEOCODER", "mapbox"),
            mapbox_access_token=os.getenv("MAPBOX_ACCESS_TOKEN", ""),
            geocoder_url=os.getenv(
                "AOI_GEOCODER_URL", "https://api.mapbox.com/geocoding/v5/mapbox.places"
            ),
            conversion_url=os.getenv("AOI_CONVERSION_URL", ""),
            http_timeout_seconds=float(os.getenv("AOI_HTTP_TIMEOUT_SECONDS", "30")),
            coordinate_precision=int(
                os.getenv("AOI_COORDINATE_PRECISION", str(COORDINATE_PRECISION))
            ),
            fit_padding_px=int(os.getenv("AOI_FIT_PADDING_PX", str(DEFAULT_FIT_PADDING_PX))),
            fit_max_zoom=float(os.getenv("AOI_FIT_MAX_ZOOM", str(DEFAULT_FIT_MAX_ZOOM))),
            default_lat=float(os.getenv("AOI_DEFAULT_LAT", str(DEFAULT_MARKER_LAT))),
            default_lng=float(os.getenv("AOI_DEFAULT_LNG", str(DEFAULT_MARKER_LNG))),
            country_label=os.getenv("AOI_COUNTRY_LABEL", DEFAULT_COUNTRY_LABEL),
        )
        _validate(config)
        return config


def _validate(config: AOIConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.gis_data_base:
        raise ConfigValidationError(
            "AOI_GIS_DATA_BASE",
            config.gis_data_base,
            "must not be empty",
        )

    if not config.geocoder:
        raise ConfigValidationError(
            "AOI_GEOCODER",
            config.geocoder,
            "must not be empty (use 'none' to disable reverse geocoding)",
        )

    if config.http_timeout_seconds <= 0:
        raise ConfigValidationError(
            "AOI_HTTP_TIMEOUT_SECONDS",
            config.http_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if not 0 <= config.coordinate_precision <= 10:
        raise ConfigValidationError(
            "AOI_COORDINATE_PRECISION",
            config.coordinate_precision,
            "must be between 0 and 10 (decimal places)",
        )

    if config.fit_padding_px < 0:
        raise ConfigValidationError(
            "AOI_FIT_PADDING_PX",
            config.fit_padding_px,
            "must be >= 0 (pixels)",
        )

    if not 0 <= config.fit_max_zoom <= 24:
        raise ConfigValidationError(
            "AOI_FIT_MAX_ZOOM",
            config.fit_max_zoom,
            "must be between 0 and 24",
        )

    if not MIN_LATITUDE <= config.default_lat <= MAX_LATITUDE:
        raise ConfigValidationError(
            "AOI_DEFAULT_LAT",
            config.default_lat,
            f"must be between {MIN_LATITUDE} and {MAX_LATITUDE} (degrees)",
        )

    if not MIN_LONGITUDE <= config.default_lng <= MAX_LONGITUDE:
        raise ConfigValidationError(
            "AOI_DEFAULT_LNG",
            config.default_lng,
            f"must be between {MIN_LONGITUDE} and {MAX_LONGITUDE} (degrees)",
        )
