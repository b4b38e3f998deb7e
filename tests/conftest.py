"""Shared pytest fixtures for the AOI manager test suite."""

from __future__ import annotations

import asyncio
import math
from typing import Any

import pytest

from aoi_manager.layers.sources import LayerLoadError
from aoi_manager.layers.store import BoundaryLayerStore
from aoi_manager.location.resolver import LocationResolver
from aoi_manager.providers.base import GeocodeError, GeometryConverter, ReverseGeocoder
from aoi_manager.session.view import MapView

# ---------------------------------------------------------------------------
# Geometry builders
# ---------------------------------------------------------------------------


def metres_per_deg_lat(lat: float) -> float:
    """Length of one degree of latitude on the WGS 84 ellipsoid at *lat*."""
    phi = math.radians(lat)
    return 111_132.92 - 559.82 * math.cos(2 * phi) + 1.175 * math.cos(4 * phi)


def metres_per_deg_lng(lat: float) -> float:
    phi = math.radians(lat)
    return 111_412.84 * math.cos(phi) - 93.5 * math.cos(3 * phi)


def square_ring(lng: float, lat: float, dlng: float, dlat: float) -> list[list[float]]:
    """Closed counter-clockwise ring with south-west corner ``(lng, lat)``."""
    return [
        [lng, lat],
        [lng + dlng, lat],
        [lng + dlng, lat + dlat],
        [lng, lat + dlat],
        [lng, lat],
    ]


def polygon(ring: list[list[float]], *holes: list[list[float]]) -> dict[str, Any]:
    return {"type": "Polygon", "coordinates": [ring, *holes]}


def feature(geometry: dict[str, Any], **properties: Any) -> dict[str, Any]:
    return {"type": "Feature", "geometry": geometry, "properties": properties}


def collection(*features: dict[str, Any]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def km_square(lng: float, lat: float, side_km: float = 1.0) -> dict[str, Any]:
    """Square polygon of ``side_km`` x ``side_km`` with south-west corner ``(lng, lat)``."""
    side_m = side_km * 1000.0
    dlat = side_m / metres_per_deg_lat(lat)
    dlng = side_m / metres_per_deg_lng(lat + dlat / 2)
    return polygon(square_ring(lng, lat, dlng, dlat))


# ---------------------------------------------------------------------------
# Layer fixtures (Eastern Highlands / Morobe / Central, simplified to boxes)
# ---------------------------------------------------------------------------


@pytest.fixture()
def district_collection() -> dict[str, Any]:
    """Three district boxes; Kainantu carries no province attribute."""
    return collection(
        feature(
            polygon(square_ring(145.2, -6.3, 0.4, 0.4)),
            OBJECTID=1,
            DISTNAME="Goroka",
            PROVNAME="Eastern Highlands",
        ),
        feature(
            polygon(square_ring(146.9, -6.6, 0.5, 0.5)),
            OBJECTID=2,
            DISTNAME="Huon Gulf",
            PROVNAME="Morobe",
        ),
        feature(
            polygon(square_ring(145.6, -6.5, 0.4, 0.4)),
            OBJECTID=3,
            DISTNAME="Kainantu",
        ),
    )


@pytest.fixture()
def llg_collection() -> dict[str, Any]:
    return collection(
        feature(polygon(square_ring(145.3, -6.2, 0.2, 0.2)), OBJECTID=11, LLGNAME="Goroka Urban"),
        feature(polygon(square_ring(147.0, -6.5, 0.3, 0.3)), OBJECTID=12, LLGNAME="Wampar Rural"),
    )


class StubLoader:
    """Async layer loader that counts calls and can block or fail on demand."""

    def __init__(self, layers: dict[str, dict[str, Any]]) -> None:
        self.layers = layers
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, int] = {}
        self.gate: asyncio.Event | None = None

    async def __call__(self, name: str, source: str = "") -> dict[str, Any]:
        self.calls.append((name, source))
        if self.gate is not None:
            await self.gate.wait()
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            msg = f"Error loading layer {name!r}: HTTP 503"
            raise LayerLoadError(msg)
        if name not in self.layers:
            msg = f"Unknown layer {name!r}"
            raise LayerLoadError(msg)
        return self.layers[name]

    def count(self, name: str) -> int:
        return sum(1 for called, _ in self.calls if called == name)


class StubGeocoder(ReverseGeocoder):
    """Reverse geocoder returning a fixed province, or failing."""

    name = "stub"

    def __init__(self, province: str | None = "Morobe", *, fail: bool = False) -> None:
        self.province = province
        self.fail = fail
        self.calls: list[tuple[float, float]] = []

    async def reverse_geocode_province(self, lng: float, lat: float) -> str | None:
        self.calls.append((lng, lat))
        if self.fail:
            msg = "Geocoding API error: 500"
            raise GeocodeError(self.name, msg)
        return self.province


class StubConverter(GeometryConverter):
    """Converter returning a prepared feature collection per file name."""

    def __init__(self, results: dict[str, dict[str, Any]]) -> None:
        self.results = results
        self.calls: list[str] = []

    async def convert(
        self, file_bytes: bytes, file_name: str, mime_type: str = ""
    ) -> dict[str, Any]:
        self.calls.append(file_name)
        return self.results[file_name]


class RecordingView(MapView):
    """MapView that records every command it receives."""

    def __init__(self) -> None:
        self.commands: list[tuple[str, Any]] = []
        self.boundary: Any = None
        self.marker: Any = None
        self.popup: Any = None
        self.layers: dict[str, Any] = {}

    def set_boundary(self, geometry: Any) -> None:
        self.commands.append(("set_boundary", geometry))
        self.boundary = geometry

    def set_marker(self, coordinate: Any) -> None:
        self.commands.append(("set_marker", coordinate))
        self.marker = coordinate

    def fit_bounds(self, viewport: Any) -> None:
        self.commands.append(("fit_bounds", viewport))

    def add_layer(self, layer: Any) -> None:
        self.commands.append(("add_layer", layer.name))
        self.layers[layer.name] = layer

    def remove_layer(self, name: str) -> None:
        self.commands.append(("remove_layer", name))
        self.layers.pop(name, None)

    def show_popup(self, popup: Any) -> None:
        self.commands.append(("show_popup", popup))
        self.popup = popup

    def move_popup(self, anchor: Any) -> None:
        self.commands.append(("move_popup", anchor))

    def remove_popup(self) -> None:
        self.commands.append(("remove_popup", None))
        self.popup = None

    def names(self) -> list[str]:
        return [name for name, _ in self.commands]


@pytest.fixture()
def loader(district_collection: dict[str, Any], llg_collection: dict[str, Any]) -> StubLoader:
    return StubLoader({"district": district_collection, "llg": llg_collection})


@pytest.fixture()
def store(loader: StubLoader) -> BoundaryLayerStore:
    return BoundaryLayerStore(loader)


@pytest.fixture()
def geocoder() -> StubGeocoder:
    return StubGeocoder()


@pytest.fixture()
def resolver(store: BoundaryLayerStore, geocoder: StubGeocoder) -> LocationResolver:
    return LocationResolver(store, geocoder)


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()
