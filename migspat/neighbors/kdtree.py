"""
KD-tree based k-nearest-neighbor search over region centroids.

Uses scipy.spatial.cKDTree for O(n log n) neighbor queries. Two distance
metrics are supported:
- PLANAR: Euclidean distance on the raw coordinates
- GREAT_CIRCLE: centroids are (lon, lat) degrees; points are embedded on the
  unit sphere and ranked by chord length, which is monotone in arc length
"""

from enum import Enum
from typing import List, Tuple

import numpy as np
from scipy.spatial import cKDTree

from migspat.exceptions import InputError

EARTH_RADIUS_KM = 6371.0088


class DistanceMetric(Enum):
    """Distance used for k-nearest-neighbor ranking."""

    PLANAR = "planar"
    GREAT_CIRCLE = "great-circle"


def lonlat_to_unit_sphere(coords) -> np.ndarray:
    """Convert (lon, lat) degrees to 3D unit vectors."""
    coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    cos_lat = np.cos(lat)
    return np.column_stack([cos_lat * np.cos(lon), cos_lat * np.sin(lon), np.sin(lat)])


def great_circle_km(coords1, coords2) -> np.ndarray:
    """
    Haversine distance in kilometres between paired (lon, lat) points.

    Parameters
    ----------
    coords1, coords2 : array-like
        Arrays of shape (n, 2) in degrees.

    Returns
    -------
    np.ndarray
        Distances of shape (n,).
    """
    a = np.radians(np.asarray(coords1, dtype=np.float64).reshape(-1, 2))
    b = np.radians(np.asarray(coords2, dtype=np.float64).reshape(-1, 2))
    dlon = b[:, 0] - a[:, 0]
    dlat = b[:, 1] - a[:, 1]
    h = np.sin(dlat / 2) ** 2 + np.cos(a[:, 1]) * np.cos(b[:, 1]) * np.sin(dlon / 2) ** 2
    return 2.0 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def pairwise_distance(coords1, coords2, metric: DistanceMetric) -> np.ndarray:
    """Distance between paired points under ``metric`` (km for great-circle)."""
    if metric is DistanceMetric.GREAT_CIRCLE:
        return great_circle_km(coords1, coords2)
    a = np.asarray(coords1, dtype=np.float64).reshape(-1, 2)
    b = np.asarray(coords2, dtype=np.float64).reshape(-1, 2)
    return np.sqrt(np.sum((a - b) ** 2, axis=1))


class KNNSearch:
    """
    k-nearest-neighbor search over a fixed set of centroids.

    Parameters
    ----------
    coords : array-like
        Centroid coordinates of shape (n, 2).
    metric : DistanceMetric, default=DistanceMetric.PLANAR
        Distance metric. GREAT_CIRCLE expects (lon, lat) in degrees.
    leafsize : int, default=16
        Number of points at which to switch to brute-force search.

    Examples
    --------
    >>> coords = np.array([[0.0, 0.0], [1.0, 0.0], [3.0, 0.0]])
    >>> KNNSearch(coords).query(1)
    [[1], [0], [1]]
    """

    def __init__(self, coords, metric: DistanceMetric = DistanceMetric.PLANAR, leafsize: int = 16):
        self.coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
        self.metric = DistanceMetric(metric)
        self.n_points = self.coords.shape[0]

        if not np.all(np.isfinite(self.coords)):
            raise InputError("Centroid coordinates must be finite.")

        if self.metric is DistanceMetric.GREAT_CIRCLE:
            if np.any(np.abs(self.coords[:, 1]) > 90.0):
                raise InputError("Latitude outside [-90, 90]; use DistanceMetric.PLANAR.")
            self._points = lonlat_to_unit_sphere(self.coords)
        else:
            self._points = self.coords

        self.tree = cKDTree(self._points, leafsize=leafsize)

    def query(self, k: int) -> List[List[int]]:
        """
        Find the k nearest other points for every point.

        Ties at the k-th distance are broken by lower index, so the result
        does not depend on tree traversal order.

        Parameters
        ----------
        k : int
            Number of neighbors; must be below the number of points.

        Returns
        -------
        list
            neighbors[i] is a list of k indices ordered by distance.
        """
        if k < 0:
            raise InputError(f"k must be non-negative, got {k}.")
        if k == 0:
            return [[] for _ in range(self.n_points)]
        if k > self.n_points - 1:
            raise InputError(f"k={k} requires at least {k + 1} points, got {self.n_points}.")

        # k + 1 includes the query point itself (or a duplicate of it)
        dists, _ = self.tree.query(self._points, k=k + 1)
        dists = np.atleast_2d(dists)

        neighbors = []
        for i in range(self.n_points):
            radius = dists[i, -1]
            candidates = self.tree.query_ball_point(self._points[i], r=radius * (1 + 1e-9) + 1e-12)
            candidates = [j for j in candidates if j != i]
            cand_d = np.linalg.norm(self._points[candidates] - self._points[i], axis=1)
            order = sorted(range(len(candidates)), key=lambda m: (cand_d[m], candidates[m]))
            neighbors.append([int(candidates[m]) for m in order[:k]])

        return neighbors

    def query_with_distance(self, k: int) -> Tuple[List[List[int]], List[np.ndarray]]:
        """Like ``query`` but also return distances (km for great-circle)."""
        neighbors = self.query(k)
        distances = []
        for i, idx in enumerate(neighbors):
            if not idx:
                distances.append(np.array([], dtype=np.float64))
                continue
            origin = np.repeat(self.coords[i : i + 1], len(idx), axis=0)
            distances.append(pairwise_distance(origin, self.coords[idx], self.metric))
        return neighbors, distances


def knn_neighbors(coords, k: int, metric: DistanceMetric = DistanceMetric.PLANAR) -> List[List[int]]:
    """
    Convenience function for a k-nearest-neighbor query.

    Examples
    --------
    >>> coords = np.random.randn(100, 2)
    >>> neighbors = knn_neighbors(coords, k=4)
    >>> len(neighbors[0])
    4
    """
    return KNNSearch(coords, metric=metric).query(k)
