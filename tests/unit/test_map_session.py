"""End-to-end tests for MapSession.

Covers the user flows the hosting form depends on:
- Upload of a 1 km² boundary inside a district saves exactly once
- A persisted boundary is replaced only after confirmation
- Drawn vs uploaded conflicts, stale resolutions and deletes
- Marker confinement, coordinate fields and layer toggling
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from aoi_manager.core.config import AOIConfig
from aoi_manager.layers.store import BoundaryLayerStore
from aoi_manager.location.resolver import LocationResolver
from aoi_manager.models.candidate import CandidateKind
from aoi_manager.models.geometry import Coordinate
from aoi_manager.models.metadata import LocationMetadata
from aoi_manager.providers.conversion_service import ConversionServiceClient
from aoi_manager.session.map_session import MapSession
from aoi_manager.session.reconciler import (
    AwaitingChoiceDecision,
    AwaitingOverrideDecision,
    Empty,
    SingleCandidate,
)
from tests.conftest import (
    RecordingView,
    StubConverter,
    StubLoader,
    collection,
    feature,
    km_square,
    polygon,
)

GOROKA_SITE = km_square(145.35, -6.15)
HUON_GULF_SITE = km_square(147.1, -6.3)
GARBLED_POLYGON = {"type": "Polygon", "coordinates": [[["a", "b"], ["c", "d"], ["e", "f"], ["a", "b"]]]}


class FormRecorder:
    """Collects every callback the session makes to the hosting form."""

    def __init__(self) -> None:
        self.saves: list[tuple[dict, LocationMetadata]] = []
        self.coordinates: list[dict] = []
        self.notices: list[tuple[str, str]] = []
        self.decisions: list[Any] = []
        self.cleared = 0

    def hooks(self) -> dict[str, Any]:
        return {
            "on_boundary_save": lambda geometry, metadata: self.saves.append((geometry, metadata)),
            "on_coordinates_change": self.coordinates.append,
            "on_notify": lambda level, message: self.notices.append((level, message)),
            "on_decision_required": self.decisions.append,
            "on_boundary_cleared": self._clear,
        }

    def _clear(self) -> None:
        self.cleared += 1


@pytest.fixture()
def form() -> FormRecorder:
    return FormRecorder()


@pytest.fixture()
def converter() -> StubConverter:
    return StubConverter(
        {
            "site.kml": collection(feature(GOROKA_SITE, name="Site")),
            "other.geojson": collection(feature(HUON_GULF_SITE)),
            "garbled.kml": collection(feature(GARBLED_POLYGON)),
        }
    )


@pytest.fixture()
def session(
    view: RecordingView,
    store: BoundaryLayerStore,
    resolver: LocationResolver,
    converter: StubConverter,
    form: FormRecorder,
) -> MapSession:
    return MapSession(view, store, resolver, converter, **form.hooks())


# ---------------------------------------------------------------------------
# Upload / draw
# ---------------------------------------------------------------------------


class TestUploadScenario:
    @pytest.mark.asyncio
    async def test_upload_saves_once_with_location(
        self, session: MapSession, form: FormRecorder, view: RecordingView
    ) -> None:
        await session.upload(b"<kml/>", "site.kml")

        assert len(form.saves) == 1
        geometry, metadata = form.saves[0]
        assert geometry["type"] == "Polygon"
        assert metadata.area_sq_km == pytest.approx(1.0, rel=0.01)
        assert metadata.district == "Goroka"
        assert metadata.province == "Eastern Highlands"
        assert metadata.llg == "Goroka Urban"
        assert session.authoritative.kind is CandidateKind.UPLOADED
        assert session.authoritative.source_name == "site.kml"
        assert ("success", "Boundary loaded from site.kml") in form.notices

    @pytest.mark.asyncio
    async def test_view_follows_boundary(
        self, session: MapSession, form: FormRecorder, view: RecordingView
    ) -> None:
        await session.upload(b"<kml/>", "site.kml")

        assert view.names()[:3] == ["set_boundary", "set_marker", "fit_bounds"]
        viewport = view.commands[2][1]
        assert viewport.padding_px == 50
        assert viewport.max_zoom == 15
        marker = session.marker_position
        assert view.marker == marker
        assert form.coordinates == [{"lat": marker.lat, "lng": marker.lng}]
        assert -6.15 < marker.lat < -6.14
        assert 145.35 < marker.lng < 145.36

    @pytest.mark.asyncio
    async def test_unsupported_upload_is_reported(
        self,
        view: RecordingView,
        store: BoundaryLayerStore,
        resolver: LocationResolver,
        form: FormRecorder,
    ) -> None:
        converter = ConversionServiceClient("https://convert.example.org/api/convert")
        session = MapSession(view, store, resolver, converter, **form.hooks())
        await session.upload(b"%PDF", "site.pdf")

        assert form.saves == []
        assert form.notices[0][0] == "error"
        assert "Unsupported file format" in form.notices[0][1]
        assert isinstance(session.state, Empty)

    @pytest.mark.asyncio
    async def test_upload_without_converter(
        self,
        view: RecordingView,
        store: BoundaryLayerStore,
        resolver: LocationResolver,
        form: FormRecorder,
    ) -> None:
        session = MapSession(view, store, resolver, **form.hooks())
        await session.upload(b"{}", "site.geojson")
        assert form.notices == [
            ("error", "File upload is not available: no conversion service configured")
        ]

    @pytest.mark.asyncio
    async def test_degenerate_drawing_rejected(self, session: MapSession, form: FormRecorder) -> None:
        await session.draw(polygon([[145.4, -6.1], [145.5, -6.1], [145.4, -6.1], [145.4, -6.1]]))
        assert form.saves == []
        assert form.notices[0][0] == "error"
        assert isinstance(session.state, Empty)

    @pytest.mark.asyncio
    async def test_province_unresolved_stays_none(
        self, session: MapSession, form: FormRecorder, geocoder: Any
    ) -> None:
        geocoder.province = None
        await session.draw(km_square(145.8, -6.3))  # Kainantu, no province attribute
        _, metadata = form.saves[0]
        assert metadata.district == "Kainantu"
        assert metadata.province is None
        assert session.boundary_summary().details[1] == ("Province", "Papua New Guinea")


class TestMalformedBoundaries:
    @pytest.mark.asyncio
    async def test_persisted_with_bare_numbers_is_reported(
        self, session: MapSession, form: FormRecorder
    ) -> None:
        assert not await session.load_persisted({"type": "Polygon", "coordinates": [[1, 2, 3, 4]]})
        assert isinstance(session.state, Empty)
        assert form.notices[0][0] == "warning"

    @pytest.mark.asyncio
    async def test_drawing_with_non_numeric_positions_is_reported(
        self, session: MapSession, form: FormRecorder
    ) -> None:
        await session.draw(GARBLED_POLYGON)
        assert isinstance(session.state, Empty)
        assert form.notices[0][0] == "error"

    @pytest.mark.asyncio
    async def test_upload_with_non_numeric_positions_is_reported(
        self, session: MapSession, form: FormRecorder
    ) -> None:
        await session.upload(b"<kml/>", "garbled.kml")
        assert form.saves == []
        assert session.authoritative is None
        assert form.notices == [
            ("error", "Error processing file: Position ['a', 'b'] has non-numeric ordinates")
        ]


# ---------------------------------------------------------------------------
# Persisted boundary
# ---------------------------------------------------------------------------


class TestPersistedOverride:
    @pytest.mark.asyncio
    async def test_load_persisted_does_not_save(self, session: MapSession, form: FormRecorder) -> None:
        assert await session.load_persisted(json.dumps(feature(HUON_GULF_SITE)))

        assert form.saves == []
        assert isinstance(session.state, SingleCandidate)
        assert session.metadata.district == "Huon Gulf"
        assert session.metadata.province == "Morobe"

    @pytest.mark.asyncio
    async def test_draw_requires_confirmation(self, session: MapSession, form: FormRecorder) -> None:
        await session.load_persisted(HUON_GULF_SITE)
        await session.draw(GOROKA_SITE)

        assert form.saves == []
        assert len(form.decisions) == 1
        assert isinstance(form.decisions[0], AwaitingOverrideDecision)
        assert session.authoritative.kind is CandidateKind.PERSISTED

        await session.confirm_override()
        assert len(form.saves) == 1
        assert form.saves[0][1].district == "Goroka"
        assert session.authoritative.kind is CandidateKind.DRAWN

    @pytest.mark.asyncio
    async def test_cancel_keeps_persisted(
        self, session: MapSession, form: FormRecorder, view: RecordingView
    ) -> None:
        await session.load_persisted(HUON_GULF_SITE)
        persisted = session.authoritative
        await session.upload(b"<kml/>", "site.kml")
        await session.cancel_override()

        assert form.saves == []
        assert session.authoritative == persisted
        assert view.boundary == persisted.geometry
        assert session.metadata.district == "Huon Gulf"

    @pytest.mark.asyncio
    async def test_unreadable_persisted_boundary(self, session: MapSession, form: FormRecorder) -> None:
        assert not await session.load_persisted("{not json")
        assert isinstance(session.state, Empty)
        assert form.notices[0][0] == "warning"

    @pytest.mark.asyncio
    async def test_confirm_without_pending_is_reported(
        self, session: MapSession, form: FormRecorder
    ) -> None:
        await session.confirm_override()
        assert form.notices[0][0] == "warning"
        assert form.saves == []


# ---------------------------------------------------------------------------
# Drawn vs uploaded
# ---------------------------------------------------------------------------


class TestChoice:
    @pytest.mark.asyncio
    async def test_choose_uploaded(self, session: MapSession, form: FormRecorder) -> None:
        await session.draw(GOROKA_SITE)
        await session.upload(b"{}", "other.geojson")

        assert len(form.saves) == 1
        assert isinstance(form.decisions[0], AwaitingChoiceDecision)

        await session.choose(CandidateKind.UPLOADED)
        assert len(form.saves) == 2
        assert form.saves[1][1].district == "Huon Gulf"

    @pytest.mark.asyncio
    async def test_choose_incumbent_does_not_resave(
        self, session: MapSession, form: FormRecorder
    ) -> None:
        await session.draw(GOROKA_SITE)
        await session.upload(b"{}", "other.geojson")
        await session.choose(CandidateKind.DRAWN)
        assert len(form.saves) == 1
        assert session.metadata.district == "Goroka"


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


class TestLatestWins:
    @pytest.mark.asyncio
    async def test_stale_resolution_discarded(
        self, session: MapSession, form: FormRecorder, loader: StubLoader
    ) -> None:
        loader.gate = asyncio.Event()
        first = asyncio.ensure_future(session.draw(HUON_GULF_SITE))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(session.draw(GOROKA_SITE))
        await asyncio.sleep(0)

        loader.gate.set()
        await asyncio.gather(first, second)

        assert len(form.saves) == 1
        assert form.saves[0][1].district == "Goroka"
        assert session.metadata.district == "Goroka"
        assert loader.count("district") == 1

    @pytest.mark.asyncio
    async def test_delete_during_resolution(
        self, session: MapSession, form: FormRecorder, loader: StubLoader, view: RecordingView
    ) -> None:
        loader.gate = asyncio.Event()
        pending = asyncio.ensure_future(session.draw(GOROKA_SITE))
        await asyncio.sleep(0)

        session.delete_boundary()
        loader.gate.set()
        await pending

        assert form.saves == []
        assert form.cleared == 1
        assert session.metadata is None
        assert view.boundary is None
        assert isinstance(session.state, Empty)


# ---------------------------------------------------------------------------
# Marker
# ---------------------------------------------------------------------------


class TestMarker:
    @pytest.mark.asyncio
    async def test_drag_outside_boundary_reverts(
        self, session: MapSession, form: FormRecorder, view: RecordingView
    ) -> None:
        await session.draw(GOROKA_SITE)
        before = session.marker_position
        emitted = len(form.coordinates)

        assert not session.drag_marker(Coordinate(lat=-9.44, lng=147.18))
        assert session.marker_position == before
        assert view.marker == before
        assert len(form.coordinates) == emitted

    @pytest.mark.asyncio
    async def test_click_inside_moves_marker(self, session: MapSession, form: FormRecorder) -> None:
        await session.draw(GOROKA_SITE)
        target = Coordinate(lat=-6.148, lng=145.352)
        assert session.click(target)
        assert form.coordinates[-1] == {"lat": -6.148, "lng": 145.352}

    def test_free_placement_without_boundary(self, session: MapSession, form: FormRecorder) -> None:
        assert session.click(Coordinate(lat=-9.44, lng=147.18))
        assert form.coordinates == [{"lat": -9.44, "lng": 147.18}]
        assert isinstance(session.state, Empty)

    def test_edit_coordinate(self, session: MapSession, form: FormRecorder) -> None:
        assert session.edit_coordinate("lat", "-6.2")
        assert form.coordinates == [{"lat": -6.2, "lng": 147.1494}]
        assert not session.edit_coordinate("lng", "east")

    @pytest.mark.asyncio
    async def test_rejected_edit_restores_fields(
        self, session: MapSession, form: FormRecorder, view: RecordingView
    ) -> None:
        await session.draw(GOROKA_SITE)
        before = session.marker_position
        emitted = len(form.coordinates)

        assert not session.edit_coordinate("lat", "-9.44")
        assert session.marker_position == before
        assert form.coordinates[emitted:] == [{"lat": before.lat, "lng": before.lng}]
        assert view.marker == before


# ---------------------------------------------------------------------------
# Layers and popups
# ---------------------------------------------------------------------------


class TestLayers:
    @pytest.mark.asyncio
    async def test_toggle_layer(self, session: MapSession, view: RecordingView) -> None:
        assert await session.toggle_layer("district", True)
        assert "district" in view.layers

        assert await session.toggle_layer("district", False)
        assert "district" not in view.layers
        assert not session.store.is_visible("district")

    @pytest.mark.asyncio
    async def test_failed_layer_reported(
        self, session: MapSession, form: FormRecorder, loader: StubLoader
    ) -> None:
        loader.failures["llg"] = 1
        assert not await session.toggle_layer("llg", True)
        assert form.notices[0][0] == "warning"

        assert await session.toggle_layer("llg", True)
        assert loader.count("llg") == 2

    @pytest.mark.asyncio
    async def test_boundary_summary_popup(
        self, session: MapSession, view: RecordingView
    ) -> None:
        assert session.boundary_summary() is None
        await session.draw(GOROKA_SITE)

        summary = session.boundary_summary()
        details = dict(summary.details)
        assert summary.title == "Project Site"
        assert details["Area"] == "1.00 km²"
        assert details["Province"] == "Eastern Highlands"
        assert details["District"] == "Goroka"
        assert details["LLG"] == "Goroka Urban"
        assert details["Center"].startswith("-6.14")

        assert session.show_boundary_summary(Coordinate(lat=-6.145, lng=145.355))
        assert view.popup.identity == "project-site"
        session.delete_boundary()
        assert view.popup is None

    @pytest.mark.asyncio
    async def test_hover_closes_boundary_summary(
        self, session: MapSession, view: RecordingView
    ) -> None:
        await session.draw(GOROKA_SITE)
        await session.toggle_layer("district", True)
        await session.toggle_layer("llg", True)
        cursor = Coordinate(lat=-6.145, lng=145.355)
        assert session.show_boundary_summary(cursor)

        # Both admin layers visible: the district popup itself is suppressed.
        goroka = session.store.get("district").features[0]
        await session.hover("district", goroka, cursor)
        assert view.popup is None

        session.delete_boundary()
        assert view.popup is None
        assert view.names().count("remove_popup") == 1

    @pytest.mark.asyncio
    async def test_leaving_boundary_hides_summary(
        self, session: MapSession, view: RecordingView
    ) -> None:
        await session.draw(GOROKA_SITE)
        session.show_boundary_summary(Coordinate(lat=-6.145, lng=145.355))

        session.leave("project-site")
        assert view.popup is None
        session.leave("project-site")
        assert view.names().count("remove_popup") == 1

    @pytest.mark.asyncio
    async def test_cancelled_toggle_keeps_shared_fetch(
        self, session: MapSession, resolver: LocationResolver, loader: StubLoader
    ) -> None:
        loader.gate = asyncio.Event()
        toggle = asyncio.ensure_future(session.toggle_layer("district", True))
        await asyncio.sleep(0)
        resolving = asyncio.ensure_future(resolver.resolve(Coordinate(lat=-6.15, lng=145.35)))
        await asyncio.sleep(0)

        toggle.cancel()
        await asyncio.gather(toggle, return_exceptions=True)
        loader.gate.set()
        resolution = await resolving

        assert toggle.cancelled()
        assert resolution.district == "Goroka"
        assert resolution.province == "Eastern Highlands"
        assert loader.count("district") == 1


# ---------------------------------------------------------------------------
# Configuration wiring
# ---------------------------------------------------------------------------


class TestFromConfig:
    @pytest.mark.asyncio
    async def test_builds_working_session_from_local_layers(
        self,
        tmp_path: Path,
        view: RecordingView,
        form: FormRecorder,
        district_collection: dict,
        llg_collection: dict,
    ) -> None:
        (tmp_path / "png_dist_boundaries.json").write_text(json.dumps(district_collection))
        (tmp_path / "png_llg_boundaries.json").write_text(json.dumps(llg_collection))
        config = AOIConfig(gis_data_base=str(tmp_path), geocoder="none", fit_padding_px=30)

        session = MapSession.from_config(view, config, **form.hooks())
        await session.draw(GOROKA_SITE)

        assert form.saves[0][1].district == "Goroka"
        assert view.commands[2][1].padding_px == 30
