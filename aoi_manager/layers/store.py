"""Boundary layer store: lazily loaded, session-cached reference layers.

Each named layer moves through ``NOT_LOADED -> LOADING -> LOADED |
LOAD_FAILED``. ``request(name, source)`` returns an ``asyncio.Future``:

- ``LOADED``: an already-completed future holding the cached layer.
- ``LOADING``: the in-flight future; no duplicate fetch is started.
- ``NOT_LOADED`` / ``LOAD_FAILED``: starts exactly one fetch.

The store is the only writer of its cache. The location resolver and the
overlay layer read from it. Everything runs on one event loop, so the
per-layer state machine is the only synchronisation needed.

Awaiters share the in-flight task; a caller that may itself be cancelled
should wrap the future in ``asyncio.shield`` so other awaiters keep it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aoi_manager.layers.sources import LayerLoadError
from aoi_manager.models.layer import BoundaryLayer, LayerEntry, LoadState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    LayerLoader = Callable[[str, str], Awaitable[dict[str, Any]]]

logger = logging.getLogger(__name__)


class BoundaryLayerStore:
    """Single-flight, session-lifetime cache of named layers.

    Args:
        loader: ``async (name, source) -> FeatureCollection`` collaborator,
            usually ``LayerSourceLoader(...).load``.
    """

    def __init__(self, loader: LayerLoader) -> None:
        self._loader = loader
        self._entries: dict[str, LayerEntry] = {}
        self._layers: dict[str, BoundaryLayer] = {}
        self._pending: dict[str, asyncio.Future[BoundaryLayer]] = {}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> dict[str, LayerEntry]:
        """Snapshot of ``{name: LayerEntry}`` for uniform iteration."""
        return {
            name: LayerEntry(e.name, e.visible, e.load_state, e.source)
            for name, e in self._entries.items()
        }

    def load_state(self, name: str) -> LoadState:
        entry = self._entries.get(name)
        return entry.load_state if entry else LoadState.NOT_LOADED

    def is_visible(self, name: str) -> bool:
        entry = self._entries.get(name)
        return bool(entry and entry.visible)

    def get(self, name: str) -> BoundaryLayer | None:
        """Return the cached layer, or ``None`` unless it is ``LOADED``."""
        return self._layers.get(name)

    def visible_layers(self) -> list[BoundaryLayer]:
        """Loaded layers currently toggled on, in registration order."""
        return [
            self._layers[name]
            for name, entry in self._entries.items()
            if entry.visible and entry.load_state is LoadState.LOADED
        ]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def request(self, name: str, source: str = "") -> asyncio.Future[BoundaryLayer]:
        """Return a future for layer *name*, fetching it at most once at a time.

        Must be called from a running event loop. The returned future
        raises ``LayerLoadError`` when the fetch fails.
        """
        entry = self._entry(name, source)

        if entry.load_state is LoadState.LOADED:
            done: asyncio.Future[BoundaryLayer] = asyncio.get_running_loop().create_future()
            done.set_result(self._layers[name])
            return done

        pending = self._pending.get(name)
        if entry.load_state is LoadState.LOADING and pending is not None:
            return pending

        entry.load_state = LoadState.LOADING
        task = asyncio.ensure_future(self._fetch(entry))
        task.add_done_callback(_mark_retrieved)
        self._pending[name] = task
        logger.info("Layer load started | layer=%s | source=%s", name, entry.source or "<default>")
        return task

    def set_visible(
        self, name: str, visible: bool, source: str = ""
    ) -> asyncio.Future[BoundaryLayer] | None:
        """Toggle a layer's visibility.

        Turning a layer on requests it unless it is already ``LOADED``;
        turning it off never fetches.

        Returns:
            The load future when a fetch was started or joined, else ``None``.
        """
        entry = self._entry(name, source)
        entry.visible = visible
        if not visible or entry.load_state is LoadState.LOADED:
            return None
        return self.request(name, source)

    async def _fetch(self, entry: LayerEntry) -> BoundaryLayer:
        try:
            payload = await self._loader(entry.name, entry.source)
            layer = BoundaryLayer.from_feature_collection(entry.name, payload)
        except asyncio.CancelledError:
            entry.load_state = LoadState.NOT_LOADED
            raise
        except LayerLoadError as exc:
            entry.load_state = LoadState.LOAD_FAILED
            logger.warning("Layer load failed | layer=%s | error=%s", entry.name, exc)
            raise
        except Exception as exc:
            entry.load_state = LoadState.LOAD_FAILED
            logger.warning("Layer load failed | layer=%s | error=%s", entry.name, exc)
            msg = f"Error loading layer {entry.name!r}: {exc}"
            raise LayerLoadError(msg) from exc
        finally:
            self._pending.pop(entry.name, None)

        self._layers[entry.name] = layer
        entry.load_state = LoadState.LOADED
        logger.info("Layer loaded | layer=%s | features=%d", entry.name, len(layer.features))
        return layer

    def _entry(self, name: str, source: str) -> LayerEntry:
        entry = self._entries.get(name)
        if entry is None:
            entry = LayerEntry(name=name, source=source)
            self._entries[name] = entry
        elif source and entry.load_state is not LoadState.LOADED:
            entry.source = source
        return entry


def _mark_retrieved(task: asyncio.Future[BoundaryLayer]) -> None:
    """Retrieve a failed fetch's exception so unawaited toggles stay quiet."""
    if not task.cancelled():
        task.exception()
