"""Map view sink.

``MapView`` is the narrow set of rendering commands the session issues to
whatever draws the map (a web map bridge, a notebook widget, a test
recorder). The session never reads state back from the view.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aoi_manager.core.constants import DEFAULT_FIT_MAX_ZOOM, DEFAULT_FIT_PADDING_PX

if TYPE_CHECKING:
    from aoi_manager.models.geometry import Coordinate, Geometry
    from aoi_manager.models.layer import BoundaryLayer


@dataclass(frozen=True, slots=True)
class Viewport:
    """Fit-to-bounds request.

    Attributes:
        bbox: ``(min_lon, min_lat, max_lon, max_lat)``.
        padding_px: Padding around the bounds in pixels.
        max_zoom: Upper zoom limit while fitting.
    """

    bbox: tuple[float, float, float, float]
    padding_px: int = DEFAULT_FIT_PADDING_PX
    max_zoom: float = DEFAULT_FIT_MAX_ZOOM


@dataclass(frozen=True, slots=True)
class FeatureSummary:
    """Display attributes of a feature or of the project boundary.

    Attributes:
        title: Popup heading.
        details: ``(label, value)`` rows in display order.
    """

    title: str
    details: tuple[tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Popup:
    """The single popup shown on the map.

    Attributes:
        identity: Feature identity the popup belongs to.
        anchor: Cursor position the popup is anchored at.
        summary: Content to display.
    """

    identity: str
    anchor: Coordinate
    summary: FeatureSummary


class MapView(abc.ABC):
    """Rendering commands issued by ``MapSession``."""

    @abc.abstractmethod
    def set_boundary(self, geometry: Geometry | None) -> None:
        """Draw the project boundary, or remove it when ``None``."""

    @abc.abstractmethod
    def set_marker(self, coordinate: Coordinate) -> None:
        """Place the location marker."""

    @abc.abstractmethod
    def fit_bounds(self, viewport: Viewport) -> None:
        """Zoom and pan to the viewport."""

    @abc.abstractmethod
    def add_layer(self, layer: BoundaryLayer) -> None:
        """Render a loaded boundary or overlay layer."""

    @abc.abstractmethod
    def remove_layer(self, name: str) -> None:
        """Stop rendering layer *name*."""

    @abc.abstractmethod
    def show_popup(self, popup: Popup) -> None:
        """Show *popup*, replacing any popup on screen."""

    @abc.abstractmethod
    def move_popup(self, anchor: Coordinate) -> None:
        """Re-anchor the open popup at the cursor."""

    @abc.abstractmethod
    def remove_popup(self) -> None:
        """Remove the open popup, if any."""
