"""Overlay interaction layer: hover popups for boundary and overlay layers.

Contract:

- Hovering a new feature identity invalidates any in-flight popup lookup
  (monotonic request sequence), removes the open popup, resolves the
  feature's display attributes and shows one popup at the cursor. A
  lookup result is applied only if its sequence number is still current.
- Hovering the feature that already owns the popup is a no-op, so rapid
  pointer movement inside one feature does not flicker.
- ``move`` keeps the open popup anchored at the cursor.
- ``leave`` invalidates the in-flight lookup and removes the popup.

Feature identity comes from the feature's attributes, never from its
position in the layer.

When the district and LLG layers are both visible, popups for those two
layers are suppressed; overlay layers are unaffected.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aoi_manager.core.constants import (
    ADMIN_LAYERS,
    DEFAULT_COUNTRY_LABEL,
    DISTRICT_LAYER,
    DISTRICT_NAME_KEYS,
    FEATURE_AREA_KEYS,
    FEATURE_NAME_KEYS,
    LLG_LAYER,
    LLG_NAME_KEYS,
    PROVINCE_NAME_KEYS,
    SQ_METRES_PER_SQ_KM,
)
from aoi_manager.geometry.kernel import compute_area_sq_m, representative_point
from aoi_manager.session.view import FeatureSummary, Popup
from aoi_manager.utils.helpers import format_area

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aoi_manager.layers.store import BoundaryLayerStore
    from aoi_manager.models.geometry import Coordinate
    from aoi_manager.models.layer import LayerFeature
    from aoi_manager.providers.base import ReverseGeocoder
    from aoi_manager.session.view import MapView

    FeatureDescriber = Callable[[str, LayerFeature], Awaitable[FeatureSummary]]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Feature description
# ---------------------------------------------------------------------------


async def describe_feature(
    layer_name: str,
    feature: LayerFeature,
    *,
    geocoder: ReverseGeocoder | None = None,
    country_label: str = DEFAULT_COUNTRY_LABEL,
) -> FeatureSummary:
    """Resolve a feature's name, parent administrative unit and area.

    The parent unit is the province for districts and the district for
    LLGs and overlay sites. A district without a province attribute falls
    back to the reverse geocoder, then to *country_label*.
    """
    if layer_name == DISTRICT_LAYER:
        name = feature.first_attribute(DISTRICT_NAME_KEYS)
        parent_label, parent = "Province", feature.first_attribute(PROVINCE_NAME_KEYS)
        if parent is None:
            parent = await _geocode_parent(feature, geocoder) or country_label
    elif layer_name == LLG_LAYER:
        name = feature.first_attribute(LLG_NAME_KEYS)
        parent_label, parent = "District", feature.first_attribute(DISTRICT_NAME_KEYS[:3])
    else:
        name = feature.first_attribute(FEATURE_NAME_KEYS)
        parent_label, parent = "Province", feature.first_attribute(PROVINCE_NAME_KEYS)

    details: list[tuple[str, str]] = []
    if parent:
        details.append((parent_label, parent))
    details.append(("Area", _feature_area(feature)))
    return FeatureSummary(title=name or layer_name, details=tuple(details))


def _feature_area(feature: LayerFeature) -> str:
    raw = feature.first_attribute(FEATURE_AREA_KEYS)
    if raw is not None:
        try:
            return format_area(float(raw) * SQ_METRES_PER_SQ_KM)
        except ValueError:
            logger.debug("Ignoring non-numeric area attribute | value=%s", raw)
    return format_area(compute_area_sq_m(feature.geometry))


async def _geocode_parent(
    feature: LayerFeature, geocoder: ReverseGeocoder | None
) -> str | None:
    if geocoder is None:
        return None
    point = representative_point(feature.geometry)
    try:
        return await geocoder.reverse_geocode_province(point.lng, point.lat)
    except Exception as exc:
        logger.warning("Popup province lookup failed | error=%s", exc)
        return None


# ---------------------------------------------------------------------------
# Interaction layer
# ---------------------------------------------------------------------------


class OverlayInteractionLayer:
    """Hover/leave handling with a single, latest-wins popup.

    Args:
        view: Map view receiving popup commands.
        store: Layer store, consulted for layer visibility.
        describer: ``async (layer_name, feature) -> FeatureSummary``;
            defaults to ``describe_feature`` without a geocoder.
    """

    def __init__(
        self,
        view: MapView,
        store: BoundaryLayerStore,
        describer: FeatureDescriber | None = None,
    ) -> None:
        self._view = view
        self._store = store
        self._describe = describer or describe_feature
        self._seq = 0
        self._identity: str | None = None
        self._popup: Popup | None = None

    @property
    def popup(self) -> Popup | None:
        """The popup on screen, if any."""
        return self._popup

    @property
    def active_identity(self) -> str | None:
        return self._identity

    def admin_popups_suppressed(self) -> bool:
        return self._store.is_visible(DISTRICT_LAYER) and self._store.is_visible(LLG_LAYER)

    async def hover(self, layer_name: str, feature: LayerFeature, at: Coordinate) -> None:
        """Pointer entered (or moved within) *feature* of *layer_name*."""
        identity = feature.identity(layer_name)
        if identity == self._identity:
            return

        self._identity = identity
        self._seq += 1
        seq = self._seq
        self._clear_popup()

        if layer_name in ADMIN_LAYERS and self.admin_popups_suppressed():
            logger.debug("Admin popup suppressed | identity=%s", identity)
            return

        try:
            summary = await self._describe(layer_name, feature)
        except Exception as exc:
            logger.warning("Popup content failed | identity=%s | error=%s", identity, exc)
            if seq == self._seq:
                self._identity = None
            return

        if seq != self._seq:
            logger.debug("Discarding stale popup | identity=%s | seq=%d", identity, seq)
            return

        self._clear_popup()
        self._popup = Popup(identity=identity, anchor=at, summary=summary)
        self._view.show_popup(self._popup)

    def move(self, at: Coordinate) -> None:
        """Keep the open popup anchored at the cursor."""
        if self._popup is None:
            return
        self._popup = Popup(identity=self._popup.identity, anchor=at, summary=self._popup.summary)
        self._view.move_popup(at)

    def leave(self, layer_name: str) -> None:
        """Pointer left *layer_name*; drop its popup and any pending lookup."""
        if self._identity is None or not self._identity.startswith(f"{layer_name}:"):
            return
        self.reset()

    def reset(self) -> None:
        """Invalidate any pending lookup and remove the popup."""
        self._seq += 1
        self._identity = None
        self._clear_popup()

    def _clear_popup(self) -> None:
        if self._popup is not None:
            self._popup = None
            self._view.remove_popup()
