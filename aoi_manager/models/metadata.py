"""Derived location metadata for the authoritative boundary.

``LocationMetadata`` is recomputed whenever the authoritative boundary
changes and is only ever handed out together with the geometry that
produced it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aoi_manager.models.contracts import LocationMetadataPayload


@dataclass(frozen=True, slots=True)
class LocationResolution:
    """Administrative context of a single coordinate.

    Attributes:
        district: Name of the containing district, if any.
        province: Province from feature attributes or reverse geocoding.
        llg: Name of the containing local-level-government area, if any.
    """

    district: str | None = None
    province: str | None = None
    llg: str | None = None


@dataclass(frozen=True, slots=True)
class LocationMetadata:
    """Location metadata surfaced with every boundary save.

    Attributes:
        district: Containing district name.
        province: Province name; ``None`` when neither layers nor the
            geocoder could resolve it.
        llg: Containing LLG name.
        area_sq_km: Geodesic boundary area in square kilometres.
    """

    district: str | None = None
    province: str | None = None
    llg: str | None = None
    area_sq_km: float = 0.0

    @classmethod
    def from_resolution(cls, resolution: LocationResolution, area_sq_km: float) -> LocationMetadata:
        return cls(
            district=resolution.district,
            province=resolution.province,
            llg=resolution.llg,
            area_sq_km=area_sq_km,
        )

    def province_label(self, fallback: str) -> str:
        """Province for display, or *fallback* (e.g. the country name)."""
        return self.province or fallback

    def to_dict(self) -> LocationMetadataPayload:
        """Serialise to the form payload."""
        return {
            "district": self.district,
            "province": self.province,
            "llg": self.llg,
            "area_sq_km": self.area_sq_km,
        }
