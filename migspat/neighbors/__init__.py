"""Neighbor search and neighbor-list construction."""

from migspat.neighbors.contiguity import contiguity_neighbors
from migspat.neighbors.graph import NeighborList, build_neighbors
from migspat.neighbors.kdtree import (
    DistanceMetric,
    KNNSearch,
    great_circle_km,
    knn_neighbors,
    pairwise_distance,
)

__all__ = [
    "DistanceMetric",
    "KNNSearch",
    "NeighborList",
    "build_neighbors",
    "contiguity_neighbors",
    "great_circle_km",
    "knn_neighbors",
    "pairwise_distance",
]
