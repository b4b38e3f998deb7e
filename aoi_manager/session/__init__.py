"""Interactive map session.

- AOIReconciler: drawn / uploaded / persisted boundary arbitration
- MarkerSynchronizer: marker and coordinate fields confined to the boundary
- OverlayInteractionLayer: latest-wins hover popups
- MapSession: wires the above to a MapView and the hosting form
"""

from aoi_manager.session.map_session import MapSession
from aoi_manager.session.marker import MarkerSynchronizer
from aoi_manager.session.overlay import OverlayInteractionLayer, describe_feature
from aoi_manager.session.reconciler import (
    AOIReconciler,
    AwaitingChoiceDecision,
    AwaitingOverrideDecision,
    Empty,
    ReconciliationError,
    Resolved,
    SingleCandidate,
    Transition,
)
from aoi_manager.session.view import FeatureSummary, MapView, Popup, Viewport

__all__ = [
    "AOIReconciler",
    "AwaitingChoiceDecision",
    "AwaitingOverrideDecision",
    "Empty",
    "FeatureSummary",
    "MapSession",
    "MapView",
    "MarkerSynchronizer",
    "OverlayInteractionLayer",
    "Popup",
    "ReconciliationError",
    "Resolved",
    "SingleCandidate",
    "Transition",
    "Viewport",
    "describe_feature",
]
