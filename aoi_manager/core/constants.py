"""Shared AOI manager constants - single source of truth.

Centralises layer names, default data files, map defaults and unit
conversions used by the layer store, the resolver and the map session.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Reference and overlay layer names
# ---------------------------------------------------------------------------

DISTRICT_LAYER = "district"
"""Administrative district polygons (carry the parent province attribute)."""

LLG_LAYER = "llg"
"""Local-level-government polygons, one level below district."""

BIODIVERSITY_LAYER = "biodiversity"
CONSERVATION_LAYER = "conservation"
KBA_LAYER = "kba"
PROTECTED_EXISTING_LAYER = "protected_existing"
PROTECTED_PROPOSED_LAYER = "protected_proposed"

ADMIN_LAYERS: frozenset[str] = frozenset({DISTRICT_LAYER, LLG_LAYER})
"""Layers used for containment queries by the location resolver."""

DEFAULT_LAYER_FILES: dict[str, str] = {
    DISTRICT_LAYER: "png_dist_boundaries.json",
    LLG_LAYER: "png_llg_boundaries.json",
    BIODIVERSITY_LAYER: "biodiversity_priority_areas.json",
    CONSERVATION_LAYER: "conservation_national_areas.json",
    KBA_LAYER: "KBA_Key_Biodiversity_Area.json",
    PROTECTED_EXISTING_LAYER: "protected_areas_existing.json",
    PROTECTED_PROPOSED_LAYER: "protected_areas_proposed.json",
}
"""Built-in layer catalogue, relative to the configured GIS data base."""

# ---------------------------------------------------------------------------
# Feature attribute keys (first present, non-empty key wins)
# ---------------------------------------------------------------------------

DISTRICT_NAME_KEYS: tuple[str, ...] = ("DISTNAME", "DIST_NAME", "district", "NAME", "name")
LLG_NAME_KEYS: tuple[str, ...] = ("LLGNAME", "LLG_NAME", "llg", "NAME", "name")
PROVINCE_NAME_KEYS: tuple[str, ...] = ("PROVNAME", "PROV_NAME", "province", "Province")
FEATURE_ID_KEYS: tuple[str, ...] = ("id", "ID", "OBJECTID", "FID", "GID", "code", "CODE")
FEATURE_AREA_KEYS: tuple[str, ...] = ("AREA_SQKM", "area_sqkm", "Shape_Area_km2")
FEATURE_NAME_KEYS: tuple[str, ...] = ("NAME", "name", "Name", "SITE_NAME", "SITENAME", "title")

# ---------------------------------------------------------------------------
# Map defaults (Papua New Guinea)
# ---------------------------------------------------------------------------

DEFAULT_MAP_CENTER: tuple[float, float] = (147.1494, -6.5)
"""Initial map centre as ``(lng, lat)``."""

DEFAULT_MARKER_LAT = -6.314993
DEFAULT_MARKER_LNG = 147.1494

DEFAULT_FIT_PADDING_PX = 50
DEFAULT_FIT_MAX_ZOOM = 15

DEFAULT_COUNTRY_LABEL = "Papua New Guinea"
"""Display fallback when the province cannot be resolved."""

# ---------------------------------------------------------------------------
# Coordinates and units
# ---------------------------------------------------------------------------

COORDINATE_PRECISION = 6
"""Decimal places kept at the UI/storage boundary (~0.11 m)."""

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# 3 distinct vertices + closing vertex
MIN_RING_POINTS = 4
MIN_DISTINCT_VERTICES = 3

SQ_METRES_PER_SQ_KM = 1_000_000.0
SQ_METRES_PER_HECTARE = 10_000.0
