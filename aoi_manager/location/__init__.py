"""Location resolution against administrative boundary layers."""

from aoi_manager.location.resolver import LocationResolver, find_containing_feature

__all__ = ["LocationResolver", "find_containing_feature"]
