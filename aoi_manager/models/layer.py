"""Boundary and overlay layer models.

A ``BoundaryLayer`` is a named collection of labelled polygon features
(district set, LLG set or a third-party overlay). ``LayerEntry`` is the
per-layer ``{visible, load_state}`` record the layer store iterates over
uniformly instead of special-casing each layer.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aoi_manager.core.constants import FEATURE_ID_KEYS
from aoi_manager.core.exceptions import AOIManagerError, ContractError
from aoi_manager.models.geometry import geometry_from_geojson

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aoi_manager.models.geometry import Geometry

logger = logging.getLogger(__name__)


class LoadState(enum.Enum):
    """Lifecycle state of a named layer in the store.

    Values:
        NOT_LOADED:  Never requested.
        LOADING:     A single fetch is in flight.
        LOADED:      Cached for the rest of the session.
        LOAD_FAILED: Last fetch failed; the next request retries.
    """

    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    LOAD_FAILED = "load_failed"


@dataclass(frozen=True, slots=True)
class LayerFeature:
    """A labelled polygon feature of a layer.

    Attributes:
        geometry: Polygon or multipolygon boundary.
        attributes: Feature properties as delivered by the layer source.
    """

    geometry: Geometry
    attributes: dict[str, Any] = field(default_factory=dict)

    def first_attribute(self, keys: Iterable[str]) -> str | None:
        """Return the first non-empty attribute among *keys*, as a string."""
        for key in keys:
            value = self.attributes.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
        return None

    def identity(self, layer_name: str) -> str:
        """Stable key for this feature, derived from its attributes.

        Uses the first identifier attribute when present, otherwise a
        digest of all attributes. Never depends on the feature's position
        in the layer, which can change between loads.
        """
        ident = self.first_attribute(FEATURE_ID_KEYS)
        if ident is None:
            canonical = json.dumps(self.attributes, sort_keys=True, default=str)
            ident = hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]  # noqa: S324
        return f"{layer_name}:{ident}"


@dataclass(frozen=True, slots=True)
class BoundaryLayer:
    """A loaded, immutable layer.

    Attributes:
        name: Layer name (cache key).
        features: Polygon features in the source's natural order.
    """

    name: str
    features: tuple[LayerFeature, ...] = ()

    @classmethod
    def from_feature_collection(cls, name: str, payload: object) -> BoundaryLayer:
        """Build a layer from a GeoJSON ``FeatureCollection`` mapping.

        Features without a polygonal geometry are skipped with a warning.

        Raises:
            ContractError: If *payload* is not a feature collection with a
                feature list.
        """
        if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
            msg = f"Layer {name!r} source did not return a FeatureCollection"
            raise ContractError(msg, stage="layer_store", code="LAYER_PAYLOAD_INVALID")

        raw_features = payload.get("features")
        if not isinstance(raw_features, list):
            msg = f"Layer {name!r} feature collection has no feature list"
            raise ContractError(msg, stage="layer_store", code="LAYER_PAYLOAD_INVALID")

        features: list[LayerFeature] = []
        skipped = 0
        for raw in raw_features:
            if not isinstance(raw, dict) or not raw.get("geometry"):
                skipped += 1
                continue
            try:
                geometry = geometry_from_geojson(raw["geometry"])
            except AOIManagerError:
                skipped += 1
                continue
            features.append(LayerFeature(geometry=geometry, attributes=dict(raw.get("properties") or {})))

        if skipped:
            logger.warning("Layer parsed with skipped features | layer=%s | skipped=%d", name, skipped)
        return cls(name=name, features=tuple(features))


@dataclass(slots=True)
class LayerEntry:
    """Mutable per-layer record owned by the layer store.

    Attributes:
        name: Layer name.
        visible: Whether the layer is toggled on in the map.
        load_state: Current ``LoadState``.
        source: Location the layer is fetched from.
    """

    name: str
    visible: bool = False
    load_state: LoadState = LoadState.NOT_LOADED
    source: str = ""
