"""Location resolver: coordinate -> district, province, LLG.

Resolution order:

1. Request the district and LLG layers from the boundary layer store and
   wait for both. A layer that fails to load is skipped; the other one is
   still used.
2. Test the coordinate against each district feature in the layer's
   natural order; the first containing feature wins. Boundaries are
   assumed not to overlap, so there is no distance tie-break.
3. Repeat for the LLG layer.
4. Take the province from the matched features' attributes (district
   first). Only when that fails, ask the reverse geocoder. A geocoder
   failure leaves the province ``None``; substituting a display fallback
   is the caller's concern.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from aoi_manager.core.constants import (
    DISTRICT_LAYER,
    DISTRICT_NAME_KEYS,
    LLG_LAYER,
    LLG_NAME_KEYS,
    PROVINCE_NAME_KEYS,
)
from aoi_manager.geometry.kernel import point_in_polygon
from aoi_manager.models.metadata import LocationResolution

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aoi_manager.layers.store import BoundaryLayerStore
    from aoi_manager.models.geometry import Coordinate
    from aoi_manager.models.layer import BoundaryLayer, LayerFeature
    from aoi_manager.providers.base import ReverseGeocoder

logger = logging.getLogger(__name__)


class LocationResolver:
    """Derive administrative context for a coordinate.

    Args:
        store: Boundary layer store holding the district and LLG layers.
        geocoder: Reverse geocoder used when layers carry no province.
        district_source: Source override for the district layer.
        llg_source: Source override for the LLG layer.
        district_keys: Attribute keys holding the district name.
        llg_keys: Attribute keys holding the LLG name.
        province_keys: Attribute keys holding the province name.
    """

    def __init__(
        self,
        store: BoundaryLayerStore,
        geocoder: ReverseGeocoder,
        *,
        district_source: str = "",
        llg_source: str = "",
        district_keys: Sequence[str] = DISTRICT_NAME_KEYS,
        llg_keys: Sequence[str] = LLG_NAME_KEYS,
        province_keys: Sequence[str] = PROVINCE_NAME_KEYS,
    ) -> None:
        self._store = store
        self._geocoder = geocoder
        self._district_source = district_source
        self._llg_source = llg_source
        self._district_keys = tuple(district_keys)
        self._llg_keys = tuple(llg_keys)
        self._province_keys = tuple(province_keys)

    async def resolve(self, coordinate: Coordinate) -> LocationResolution:
        """Resolve district, province and LLG for *coordinate*. Never raises
        for layer or geocoder failures."""
        district_layer, llg_layer = await asyncio.gather(
            asyncio.shield(self._store.request(DISTRICT_LAYER, self._district_source)),
            asyncio.shield(self._store.request(LLG_LAYER, self._llg_source)),
            return_exceptions=True,
        )

        district_feature = self._match(district_layer, coordinate)
        llg_feature = self._match(llg_layer, coordinate)

        district = district_feature.first_attribute(self._district_keys) if district_feature else None
        llg = llg_feature.first_attribute(self._llg_keys) if llg_feature else None

        province = None
        for feature in (district_feature, llg_feature):
            if feature is not None:
                province = feature.first_attribute(self._province_keys)
                if province:
                    break

        if province is None:
            province = await self._geocode_province(coordinate)

        logger.info(
            "Location resolved | lat=%.6f | lng=%.6f | district=%s | province=%s | llg=%s",
            coordinate.lat,
            coordinate.lng,
            district,
            province,
            llg,
        )
        return LocationResolution(district=district, province=province, llg=llg)

    def _match(
        self, layer: BoundaryLayer | BaseException, coordinate: Coordinate
    ) -> LayerFeature | None:
        if isinstance(layer, BaseException):
            logger.warning("Layer unavailable for resolution | error=%s", layer)
            return None
        return find_containing_feature(layer, coordinate)

    async def _geocode_province(self, coordinate: Coordinate) -> str | None:
        try:
            return await self._geocoder.reverse_geocode_province(coordinate.lng, coordinate.lat)
        except Exception as exc:
            logger.warning(
                "Province geocode failed | lat=%.6f | lng=%.6f | error=%s",
                coordinate.lat,
                coordinate.lng,
                exc,
            )
            return None


def find_containing_feature(layer: BoundaryLayer, coordinate: Coordinate) -> LayerFeature | None:
    """Return the first feature of *layer* containing *coordinate*."""
    for feature in layer.features:
        if point_in_polygon(coordinate, feature.geometry):
            return feature
    return None
