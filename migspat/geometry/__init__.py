"""Region geometry repair and centroid resolution."""

from migspat.geometry.resolver import RegionSet, align_values, repair_geometry, resolve_regions

__all__ = ["RegionSet", "align_values", "repair_geometry", "resolve_regions"]
