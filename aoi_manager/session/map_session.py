"""Map session: one interactive AOI map.

Wires the reconciler, marker synchronizer, overlay layer, layer store and
location resolver to a ``MapView`` sink and to the hosting form's
callbacks.

Every change of the authoritative boundary runs one resolution::

    render boundary -> area -> marker + viewport -> location -> save

Resolutions are numbered; when a newer one starts (or the boundary is
deleted) while an older one awaits layers or the geocoder, the older
result is discarded, so the form only ever sees the metadata of the
boundary currently on the map. Metadata is never saved without the
geometry that produced it.

Failures of asynchronous collaborators never escape the session: layer
and geocoder failures degrade the metadata, conversion and invalid-geometry
failures are reported through ``on_notify``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aoi_manager.core.config import AOIConfig
from aoi_manager.core.constants import (
    COORDINATE_PRECISION,
    DEFAULT_COUNTRY_LABEL,
    SQ_METRES_PER_SQ_KM,
)
from aoi_manager.core.exceptions import AOIManagerError
from aoi_manager.geometry.kernel import compute_area_sq_km, representative_point, validate_geometry
from aoi_manager.layers.sources import LayerLoadError, LayerSourceLoader
from aoi_manager.layers.store import BoundaryLayerStore
from aoi_manager.location.resolver import LocationResolver
from aoi_manager.models.candidate import AOICandidate, CandidateKind
from aoi_manager.models.geometry import Coordinate, geometry_from_geojson
from aoi_manager.models.metadata import LocationMetadata
from aoi_manager.providers.conversion_service import ConversionServiceClient
from aoi_manager.providers.factory import get_geocoder
from aoi_manager.session.marker import MarkerSynchronizer
from aoi_manager.session.overlay import OverlayInteractionLayer, describe_feature
from aoi_manager.session.reconciler import (
    AOIReconciler,
    ReconciliationError,
)
from aoi_manager.session.view import FeatureSummary, Popup
from aoi_manager.utils.helpers import format_area, parse_coordinate_text

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from aoi_manager.models.contracts import CoordinatesPayload, GeometryPayload
    from aoi_manager.models.geometry import Geometry
    from aoi_manager.models.layer import LayerFeature
    from aoi_manager.providers.base import GeometryConverter
    from aoi_manager.session.overlay import FeatureDescriber
    from aoi_manager.session.reconciler import ReconciliationState, Transition
    from aoi_manager.session.view import MapView

    BoundarySaveHook = Callable[[GeometryPayload, LocationMetadata], None]
    CoordinatesHook = Callable[[CoordinatesPayload], None]
    DecisionHook = Callable[[ReconciliationState], None]
    NotifyHook = Callable[[str, str], None]

logger = logging.getLogger(__name__)

PROJECT_SITE_IDENTITY = "project-site"


class MapSession:
    """Interactive AOI manager for one map.

    Args:
        view: Rendering sink.
        store: Boundary layer store shared by the resolver and overlays.
        resolver: Location resolver over *store*.
        converter: Uploaded-file converter; uploads are refused without one.
        initial_marker: Marker position before any boundary exists.
        on_boundary_save: ``(geometry, metadata)`` persistence callback.
        on_coordinates_change: Receives ``{"lat", "lng"}`` after every
            accepted marker move.
        on_boundary_cleared: Called after the boundary is deleted.
        on_decision_required: Called with the pending decision state.
        on_notify: ``(level, message)`` user-facing notifications.
        describer: Popup content resolver for hovered features.
        precision: Decimal places of emitted coordinates.
        padding_px: Fit-to-bounds padding.
        max_zoom: Fit-to-bounds zoom limit.
        country_label: Province display fallback.
    """

    def __init__(
        self,
        view: MapView,
        store: BoundaryLayerStore,
        resolver: LocationResolver,
        converter: GeometryConverter | None = None,
        *,
        initial_marker: Coordinate | None = None,
        on_boundary_save: BoundarySaveHook | None = None,
        on_coordinates_change: CoordinatesHook | None = None,
        on_boundary_cleared: Callable[[], None] | None = None,
        on_decision_required: DecisionHook | None = None,
        on_notify: NotifyHook | None = None,
        describer: FeatureDescriber | None = None,
        precision: int = COORDINATE_PRECISION,
        padding_px: int | None = None,
        max_zoom: float | None = None,
        country_label: str = DEFAULT_COUNTRY_LABEL,
    ) -> None:
        defaults = AOIConfig()
        self._view = view
        self._store = store
        self._resolver = resolver
        self._converter = converter
        self._on_boundary_save = on_boundary_save
        self._on_coordinates_change = on_coordinates_change
        self._on_boundary_cleared = on_boundary_cleared
        self._on_decision_required = on_decision_required
        self._on_notify = on_notify
        self._precision = precision
        self._country_label = country_label

        self._reconciler = AOIReconciler()
        self._marker = MarkerSynchronizer(
            initial_marker or Coordinate(lat=defaults.default_lat, lng=defaults.default_lng),
            self._marker_moved,
            precision=precision,
            padding_px=defaults.fit_padding_px if padding_px is None else padding_px,
            max_zoom=defaults.fit_max_zoom if max_zoom is None else max_zoom,
        )
        self._overlay = OverlayInteractionLayer(view, store, describer)
        self._metadata: LocationMetadata | None = None
        self._resolution_seq = 0
        self._summary_open = False

    @classmethod
    def from_config(
        cls,
        view: MapView,
        config: AOIConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        **hooks: Any,
    ) -> MapSession:
        """Build a session and its collaborators from configuration.

        Args:
            view: Rendering sink.
            config: Configuration; loaded from the environment when omitted.
            client: Optional shared ``httpx.AsyncClient`` for every
                collaborator.
            **hooks: Callback keyword arguments of ``MapSession``.
        """
        cfg = config or AOIConfig.from_env()
        loader = LayerSourceLoader(
            cfg.gis_data_base, timeout_seconds=cfg.http_timeout_seconds, client=client
        )
        store = BoundaryLayerStore(loader.load)
        geocoder = get_geocoder(cfg.geocoder, cfg)
        resolver = LocationResolver(store, geocoder)
        converter = (
            ConversionServiceClient(
                cfg.conversion_url, timeout_seconds=cfg.http_timeout_seconds, client=client
            )
            if cfg.conversion_url
            else None
        )

        async def describer(layer_name: str, feature: LayerFeature) -> FeatureSummary:
            return await describe_feature(
                layer_name, feature, geocoder=geocoder, country_label=cfg.country_label
            )

        hooks.setdefault("describer", describer)
        logger.info(
            "Map session configured | geocoder=%s | conversion=%s | gis_data=%s",
            geocoder.name,
            "on" if converter else "off",
            cfg.gis_data_base,
        )
        return cls(
            view,
            store,
            resolver,
            converter,
            initial_marker=Coordinate(lat=cfg.default_lat, lng=cfg.default_lng),
            precision=cfg.coordinate_precision,
            padding_px=cfg.fit_padding_px,
            max_zoom=cfg.fit_max_zoom,
            country_label=cfg.country_label,
            **hooks,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ReconciliationState:
        return self._reconciler.state

    @property
    def authoritative(self) -> AOICandidate | None:
        return self._reconciler.authoritative

    @property
    def metadata(self) -> LocationMetadata | None:
        """Metadata of the authoritative boundary, once resolved."""
        return self._metadata

    @property
    def marker_position(self) -> Coordinate:
        return self._marker.position

    @property
    def store(self) -> BoundaryLayerStore:
        return self._store

    @property
    def overlay(self) -> OverlayInteractionLayer:
        return self._overlay

    # ------------------------------------------------------------------
    # Explicit view commands
    # ------------------------------------------------------------------

    def set_boundary(self, geometry: Geometry | None) -> None:
        """Render *geometry* as the project boundary (``None`` clears it)."""
        self._view.set_boundary(geometry)

    def set_marker(self, coordinate: Coordinate) -> bool:
        """Place the marker programmatically, subject to boundary confinement."""
        accepted = self._marker.drag(coordinate)
        if not accepted:
            self._view.set_marker(self._marker.position)
        return accepted

    def add_layer(self, layer_name: str) -> None:
        """Render an already loaded layer."""
        layer = self._store.get(layer_name)
        if layer is None:
            logger.warning("Cannot render layer before it is loaded | layer=%s", layer_name)
            return
        self._view.add_layer(layer)

    def remove_layer(self, layer_name: str) -> None:
        self._overlay.leave(layer_name)
        self._view.remove_layer(layer_name)

    async def toggle_layer(self, layer_name: str, visible: bool, source: str = "") -> bool:
        """Show or hide a boundary or overlay layer, loading it on first use.

        Returns:
            ``True`` when the layer ends up in the requested state.
        """
        pending = self._store.set_visible(layer_name, visible, source)
        if not visible:
            self.remove_layer(layer_name)
            return True

        if pending is not None:
            try:
                await asyncio.shield(pending)
            except LayerLoadError as exc:
                self._notify("warning", f"Could not load layer {layer_name}: {exc.message}")
                return False

        if not self._store.is_visible(layer_name):
            # Toggled off again while loading.
            return False
        self.add_layer(layer_name)
        return True

    # ------------------------------------------------------------------
    # Boundary events
    # ------------------------------------------------------------------

    async def load_persisted(self, boundary: object) -> bool:
        """Install the boundary previously saved with the application.

        *boundary* may be a GeoJSON geometry, Feature, FeatureCollection or
        a JSON string of any of these. The boundary is rendered and its
        metadata resolved, but it is not saved again.
        """
        try:
            geometry = validate_geometry(geometry_from_geojson(boundary), context="saved boundary")
        except AOIManagerError as exc:
            logger.warning("Ignoring unreadable persisted boundary | error=%s", exc)
            self._notify("warning", f"Saved project boundary could not be displayed: {exc.message}")
            return False
        transition = self._reconciler.load_persisted(
            AOICandidate(kind=CandidateKind.PERSISTED, geometry=geometry)
        )
        await self._apply(transition)
        return True

    async def draw(self, boundary: object) -> None:
        """A polygon was drawn (or edited) on the map."""
        try:
            geometry = validate_geometry(geometry_from_geojson(boundary), context="drawn boundary")
        except AOIManagerError as exc:
            self._notify("error", f"Invalid boundary: {exc.message}")
            return
        await self._offer(AOICandidate(kind=CandidateKind.DRAWN, geometry=geometry))

    async def upload(self, file_bytes: bytes, file_name: str, mime_type: str = "") -> None:
        """A geographic file was uploaded; convert it and offer its boundary."""
        if self._converter is None:
            self._notify("error", "File upload is not available: no conversion service configured")
            return
        try:
            collection = await self._converter.convert(file_bytes, file_name, mime_type)
            geometry = validate_geometry(
                geometry_from_geojson(collection), context=f"uploaded file {file_name}"
            )
        except AOIManagerError as exc:
            logger.warning("Upload rejected | file=%s | error=%s", file_name, exc)
            self._notify("error", f"Error processing file: {exc.message}")
            return
        self._notify("success", f"Boundary loaded from {file_name}")
        await self._offer(
            AOICandidate(kind=CandidateKind.UPLOADED, geometry=geometry, source_name=file_name)
        )

    async def confirm_override(self) -> None:
        await self._decide(self._reconciler.confirm_override)

    async def cancel_override(self) -> None:
        await self._decide(self._reconciler.cancel_override)

    async def choose(self, kind: CandidateKind) -> None:
        await self._decide(lambda: self._reconciler.choose(kind))

    def delete_boundary(self) -> None:
        """Remove the project boundary and any pending decision."""
        transition = self._reconciler.delete()
        self._resolution_seq += 1
        self._metadata = None
        self._marker.clear_boundary()
        self.hide_boundary_summary()
        self.set_boundary(None)
        if transition.changed and self._on_boundary_cleared is not None:
            self._on_boundary_cleared()

    # ------------------------------------------------------------------
    # Marker events
    # ------------------------------------------------------------------

    def click(self, coordinate: Coordinate) -> bool:
        return self.set_marker(coordinate)

    def drag_marker(self, coordinate: Coordinate) -> bool:
        return self.set_marker(coordinate)

    def edit_coordinate(self, field: str, text: str) -> bool:
        """A latitude (``"lat"``) or longitude (``"lng"``) field was edited."""
        accepted = self._marker.edit_field(field, text)
        if not accepted and parse_coordinate_text(text) is not None:
            # Put the last valid position back into the fields.
            self._marker_moved(self._marker.position)
        return accepted

    # ------------------------------------------------------------------
    # Overlay events
    # ------------------------------------------------------------------

    async def hover(self, layer_name: str, feature: LayerFeature, at: Coordinate) -> None:
        self.hide_boundary_summary()
        await self._overlay.hover(layer_name, feature, at)

    def move_pointer(self, at: Coordinate) -> None:
        self._overlay.move(at)

    def leave(self, layer_name: str) -> None:
        if layer_name == PROJECT_SITE_IDENTITY:
            self.hide_boundary_summary()
            return
        self._overlay.leave(layer_name)

    def boundary_summary(self) -> FeatureSummary | None:
        """Project-site summary: area, province, district, LLG and centre."""
        candidate = self.authoritative
        metadata = self._metadata
        if candidate is None or metadata is None:
            return None
        centre = representative_point(candidate.geometry).rounded(self._precision)
        return FeatureSummary(
            title="Project Site",
            details=(
                ("Area", format_area(metadata.area_sq_km * SQ_METRES_PER_SQ_KM)),
                ("Province", metadata.province_label(self._country_label)),
                ("District", metadata.district or "Unknown"),
                ("LLG", metadata.llg or "Unknown"),
                ("Center", f"{centre.lat:.{self._precision}f}, {centre.lng:.{self._precision}f}"),
            ),
        )

    def show_boundary_summary(self, at: Coordinate) -> bool:
        """Open the project-site popup at *at*, replacing any feature popup."""
        summary = self.boundary_summary()
        if summary is None:
            return False
        self._overlay.reset()
        self._view.show_popup(Popup(identity=PROJECT_SITE_IDENTITY, anchor=at, summary=summary))
        self._summary_open = True
        return True

    def hide_boundary_summary(self) -> None:
        """Close the project-site popup if it is open."""
        if self._summary_open:
            self._summary_open = False
            self._view.remove_popup()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _offer(self, candidate: AOICandidate) -> None:
        try:
            transition = self._reconciler.add_candidate(candidate)
        except ReconciliationError as exc:
            self._notify("warning", exc.message)
            return
        await self._apply(transition)

    async def _decide(self, action: Callable[[], Transition]) -> None:
        try:
            transition = action()
        except ReconciliationError as exc:
            self._notify("warning", exc.message)
            return
        await self._apply(transition)

    async def _apply(self, transition: Transition) -> None:
        if transition.decision_required:
            if self._on_decision_required is not None:
                self._on_decision_required(transition.state)
            return

        candidate = self._reconciler.authoritative
        if candidate is None:
            return
        if not transition.changed:
            # Re-render the boundary still in force (e.g. after a cancel).
            self.set_boundary(candidate.geometry)
            return
        await self._resolve(candidate, save=transition.save)

    async def _resolve(self, candidate: AOICandidate, *, save: bool) -> None:
        self._resolution_seq += 1
        seq = self._resolution_seq
        geometry = candidate.geometry

        self.set_boundary(geometry)
        area_sq_km = compute_area_sq_km(geometry)
        self._view.fit_bounds(self._marker.on_resolved(geometry))

        resolution = await self._resolver.resolve(self._marker.position)
        if seq != self._resolution_seq:
            logger.info(
                "Discarding stale resolution | kind=%s | seq=%d | current=%d",
                candidate.kind.value,
                seq,
                self._resolution_seq,
            )
            return

        metadata = LocationMetadata.from_resolution(resolution, area_sq_km)
        self._metadata = metadata
        logger.info(
            "AOI resolved | kind=%s | area=%.3f km2 | district=%s | province=%s | llg=%s",
            candidate.kind.value,
            area_sq_km,
            metadata.district,
            metadata.province,
            metadata.llg,
        )
        if save and self._on_boundary_save is not None:
            self._on_boundary_save(geometry.to_geojson(), metadata)

    def _marker_moved(self, coordinate: Coordinate) -> None:
        self._view.set_marker(coordinate)
        if self._on_coordinates_change is not None:
            self._on_coordinates_change(coordinate.to_dict(self._precision))

    def _notify(self, level: str, message: str) -> None:
        log = logger.warning if level in ("warning", "error") else logger.info
        log("Session notice | level=%s | message=%s", level, message)
        if self._on_notify is not None:
            self._on_notify(level, message)
