"""Boundary and overlay layer loading and caching."""

from aoi_manager.layers.sources import LayerLoadError, LayerSourceLoader, default_source
from aoi_manager.layers.store import BoundaryLayerStore

__all__ = [
    "BoundaryLayerStore",
    "LayerLoadError",
    "LayerSourceLoader",
    "default_source",
]
