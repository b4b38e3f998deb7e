"""AOI candidate model.

A candidate is a proposed project boundary tagged with where it came from.
The reconciliation state machine is the only component that inspects the
tag.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aoi_manager.models.geometry import Geometry


class CandidateKind(enum.Enum):
    """Origin of an AOI candidate.

    Values:
        PERSISTED: Boundary previously saved with the application.
        DRAWN:     Boundary drawn on the map by the user.
        UPLOADED:  Boundary converted from an uploaded geographic file.
    """

    PERSISTED = "persisted"
    DRAWN = "drawn"
    UPLOADED = "uploaded"


@dataclass(frozen=True, slots=True)
class AOICandidate:
    """A proposed project boundary.

    Attributes:
        kind: Where the boundary came from.
        geometry: The polygonal boundary.
        source_name: Uploaded file name or other provenance label.
    """

    kind: CandidateKind
    geometry: Geometry
    source_name: str = ""
