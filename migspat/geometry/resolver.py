"""
Region geometry resolution.

Reduces each region to a single valid polygonal geometry and a
representative centroid:
- repairs invalid geometry with shapely.make_valid
- keeps only polygonal parts of the repaired geometry
- merges parts that share a region identifier
- excludes (and reports) regions that cannot be parsed or repaired, or are
  left empty after repair
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

import numpy as np
import pandas as pd
import shapely
from shapely import wkt as shapely_wkt
from shapely.errors import ShapelyError
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry

from migspat.exceptions import GeometryError, InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionSet:
    """
    Ordered collection of resolved regions.

    Order is the first-appearance order of identifiers in the input and is
    the index used by neighbor lists, weights and attribute vectors.

    Parameters
    ----------
    ids : tuple
        Region identifiers (e.g. ISO3 codes).
    geometries : tuple
        Valid polygonal shapely geometries, one per id.
    centroids : np.ndarray
        Centroid coordinates of shape (n, 2), (x, y) or (lon, lat).
    excluded : dict
        Identifiers dropped during resolution mapped to the reason.
    """

    ids: tuple
    geometries: tuple
    centroids: np.ndarray
    excluded: dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ids)

    def index_of(self, region_id: Hashable) -> int:
        """Position of a region id in the collection."""
        try:
            return self.ids.index(region_id)
        except ValueError:
            raise KeyError(f"Unknown region id: {region_id!r}") from None

    def align(self, values) -> np.ndarray:
        """
        Align an attribute onto the region order.

        Mappings and Series are reindexed by id (absent ids become NaN);
        arrays must already have one entry per region.
        """
        return align_values(self.ids, values)


def align_values(ids, values) -> np.ndarray:
    """Reindex ``values`` onto ``ids`` and return a float64 array."""
    if isinstance(values, pd.Series):
        return values.reindex(list(ids)).to_numpy(dtype=np.float64)
    if isinstance(values, dict):
        return np.array([values.get(i, np.nan) for i in ids], dtype=np.float64)

    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.shape[0] != len(ids):
        raise InputError(f"Attribute has {arr.shape[0]} values for {len(ids)} regions.")
    return arr


def _as_geometry(geom: Any) -> Optional[BaseGeometry]:
    if geom is None:
        return None
    if isinstance(geom, BaseGeometry):
        return geom
    if isinstance(geom, str):
        try:
            return shapely_wkt.loads(geom)
        except ShapelyError as exc:
            raise GeometryError(f"Cannot parse WKT geometry: {geom[:40]!r}") from exc
    raise GeometryError(f"Unsupported geometry type: {type(geom).__name__}")


def _polygonal_part(geom: BaseGeometry) -> BaseGeometry:
    """Keep only the polygonal components of a (repaired) geometry."""
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    polygons = [
        part for part in shapely.get_parts(geom) if isinstance(part, (Polygon, MultiPolygon))
    ]
    if not polygons:
        return Polygon()
    return shapely.union_all(polygons)


def repair_geometry(geom: Any) -> BaseGeometry:
    """
    Return a valid polygonal version of ``geom``.

    Invalid geometries (self-intersections, bow-ties) are repaired with
    ``shapely.make_valid``; non-polygonal leftovers (lines, points) are
    discarded. The result may be empty. Raises GeometryError for input that
    cannot be parsed or repaired.
    """
    geom = _as_geometry(geom)
    if geom is None or geom.is_empty:
        return Polygon()
    if not geom.is_valid:
        try:
            geom = shapely.make_valid(geom)
        except ShapelyError as exc:
            raise GeometryError(f"Cannot repair geometry: {exc}") from exc
    return _polygonal_part(geom)


def resolve_regions(ids, geometries) -> RegionSet:
    """
    Resolve raw region geometries into a RegionSet.

    Parameters
    ----------
    ids : array-like
        Region identifier per geometry row. Repeated identifiers mark
        multiple parts of the same region.
    geometries : array-like
        Shapely geometries or WKT strings, same length as ``ids``.

    Returns
    -------
    RegionSet
        Resolved regions in first-appearance order of ``ids``.

    Examples
    --------
    >>> from shapely.geometry import box
    >>> regions = resolve_regions(["A", "B"], [box(0, 0, 1, 1), box(1, 0, 2, 1)])
    >>> regions.centroids
    array([[0.5, 0.5],
           [1.5, 0.5]])

    Notes
    -----
    Regions with empty geometry after repair, with a part that cannot be
    parsed or repaired, or with a non-finite centroid, are excluded and
    reported in ``RegionSet.excluded``; they are never given a placeholder
    position. Use ``repair_geometry`` directly to get the GeometryError.
    """
    ids = list(ids)
    geometries = list(geometries)
    if len(ids) != len(geometries):
        raise InputError(f"Got {len(ids)} ids for {len(geometries)} geometries.")

    parts: dict = {}
    unresolved: dict = {}
    for region_id, geom in zip(ids, geometries):
        try:
            repaired = repair_geometry(geom)
        except GeometryError as exc:
            unresolved.setdefault(region_id, str(exc))
            repaired = Polygon()
        parts.setdefault(region_id, []).append(repaired)

    kept_ids = []
    kept_geoms = []
    centroids = []
    excluded = {}

    for region_id, region_parts in parts.items():
        if region_id in unresolved:
            excluded[region_id] = f"unresolvable geometry: {unresolved[region_id]}"
            logger.warning(f"Excluding region {region_id!r}: {unresolved[region_id]}")
            continue

        non_empty = [g for g in region_parts if not g.is_empty]
        if not non_empty:
            excluded[region_id] = "empty geometry after repair"
            logger.warning(f"Excluding region {region_id!r}: empty geometry after repair")
            continue

        merged = non_empty[0] if len(non_empty) == 1 else shapely.union_all(non_empty)
        merged = _polygonal_part(merged)
        if merged.is_empty:
            excluded[region_id] = "empty geometry after merge"
            logger.warning(f"Excluding region {region_id!r}: empty geometry after merge")
            continue

        centroid = merged.centroid
        xy = (centroid.x, centroid.y) if not centroid.is_empty else (np.nan, np.nan)
        if not np.all(np.isfinite(xy)):
            excluded[region_id] = "centroid not finite"
            logger.warning(f"Excluding region {region_id!r}: centroid not finite")
            continue

        kept_ids.append(region_id)
        kept_geoms.append(merged)
        centroids.append(xy)

    logger.info(f"Resolved {len(kept_ids)} regions ({len(excluded)} excluded)")

    return RegionSet(
        ids=tuple(kept_ids),
        geometries=tuple(kept_geoms),
        centroids=np.asarray(centroids, dtype=np.float64).reshape(-1, 2),
        excluded=excluded,
    )
