"""
Neighbor graph construction.

The combined neighbor list is the union of two generative rules:
- contiguity: polygons that touch or overlap
- k-nearest-neighbor: the k closest centroids

The union is not symmetric in general (j may be among i's k nearest without
i being among j's), and self links are never included.
"""

import logging
from dataclasses import dataclass, field
from typing import Hashable, Mapping, Optional

import numpy as np
import pandas as pd

from migspat.exceptions import InputError
from migspat.geometry.resolver import RegionSet
from migspat.neighbors.contiguity import contiguity_neighbors
from migspat.neighbors.kdtree import DistanceMetric, KNNSearch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborList:
    """
    Combined neighbor list over an ordered region collection.

    Parameters
    ----------
    ids : tuple
        Region identifiers; position i is region index i.
    neighbors : tuple of tuple
        Sorted neighbor indices of each region (combined rule).
    contiguity : tuple of tuple
        Neighbor indices from the contiguity rule alone.
    knn : tuple of tuple
        Neighbor indices from the k-NN rule alone.
    k : int
        Number of nearest neighbors actually used (after capping).
    distance : DistanceMetric, optional
        Metric of the k-NN rule; None when the list was given explicitly.
    warnings : tuple of str
        Non-fatal problems met during construction.
    """

    ids: tuple
    neighbors: tuple
    contiguity: tuple = ()
    knn: tuple = ()
    k: int = 0
    distance: Optional[DistanceMetric] = None
    warnings: tuple = field(default_factory=tuple)

    def __post_init__(self):
        if len(self.neighbors) != len(self.ids):
            raise InputError(
                f"Neighbor list has {len(self.neighbors)} rows for {len(self.ids)} regions."
            )

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def cardinalities(self) -> np.ndarray:
        """Number of neighbors per region."""
        return np.array([len(nb) for nb in self.neighbors], dtype=np.int64)

    @property
    def islands(self) -> tuple:
        """Identifiers of regions without any neighbor."""
        return tuple(self.ids[i] for i, nb in enumerate(self.neighbors) if not nb)

    def index_of(self, region_id: Hashable) -> int:
        try:
            return self.ids.index(region_id)
        except ValueError:
            raise KeyError(f"Unknown region id: {region_id!r}") from None

    def neighbors_of(self, region_id: Hashable) -> tuple:
        """Neighbor identifiers of one region."""
        return tuple(self.ids[j] for j in self.neighbors[self.index_of(region_id)])

    def is_symmetric(self) -> bool:
        edges = {(i, j) for i, nb in enumerate(self.neighbors) for j in nb}
        return all((j, i) in edges for i, j in edges)

    def to_frame(self) -> pd.DataFrame:
        """
        Edge list with the rule(s) that produced each link.

        Columns: ``region``, ``neighbor``, ``rule`` where rule is one of
        "contiguity", "knn", "both" or "given".
        """
        rows = []
        for i, nb in enumerate(self.neighbors):
            contig = set(self.contiguity[i]) if self.contiguity else set()
            near = set(self.knn[i]) if self.knn else set()
            for j in nb:
                if j in contig and j in near:
                    rule = "both"
                elif j in contig:
                    rule = "contiguity"
                elif j in near:
                    rule = "knn"
                else:
                    rule = "given"
                rows.append((self.ids[i], self.ids[j], rule))
        return pd.DataFrame(rows, columns=["region", "neighbor", "rule"])

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> "NeighborList":
        """
        Build a neighbor list from ``{id: iterable of neighbor ids}``.

        Examples
        --------
        >>> nl = NeighborList.from_mapping({"A": ["B"], "B": ["A", "C"], "C": ["B"]})
        >>> nl.neighbors_of("B")
        ('A', 'C')
        """
        ids = tuple(mapping.keys())
        position = {rid: i for i, rid in enumerate(ids)}
        neighbors = []
        for rid in ids:
            idx = set()
            for other in mapping[rid]:
                if other == rid:
                    raise InputError(f"Region {rid!r} lists itself as a neighbor.")
                if other not in position:
                    raise InputError(f"Region {rid!r} has unknown neighbor {other!r}.")
                idx.add(position[other])
            neighbors.append(tuple(sorted(idx)))
        return cls(ids=ids, neighbors=tuple(neighbors))


def build_neighbors(
    regions: RegionSet,
    k: int = 4,
    distance: DistanceMetric = DistanceMetric.GREAT_CIRCLE,
    contiguity: bool = True,
) -> NeighborList:
    """
    Build the combined contiguity + k-NN neighbor list.

    Parameters
    ----------
    regions : RegionSet
        Resolved regions (geometries and centroids).
    k : int, default=4
        Number of nearest neighbors by centroid distance. ``k=0`` disables
        the k-NN rule.
    distance : DistanceMetric, default=DistanceMetric.GREAT_CIRCLE
        Metric used to rank centroids. GREAT_CIRCLE expects (lon, lat).
    contiguity : bool, default=True
        Whether to include the contiguity rule.

    Returns
    -------
    NeighborList
        Union of both rules, deduplicated, without self links.

    Notes
    -----
    If ``k`` exceeds the number of other regions it is capped at
    ``len(regions) - 1`` and a warning is logged and recorded in
    ``NeighborList.warnings``; the run does not fail.
    """
    distance = DistanceMetric(distance)
    n = len(regions)
    notes = []

    if k < 0:
        raise InputError(f"k must be non-negative, got {k}.")

    if contiguity:
        contig = contiguity_neighbors(regions.geometries)
    else:
        contig = [[] for _ in range(n)]

    k_used = k
    if k > max(n - 1, 0):
        k_used = max(n - 1, 0)
        msg = f"k={k} exceeds available regions ({n}); capped at {k_used}"
        logger.warning(msg)
        notes.append(msg)

    if k_used > 0:
        near = KNNSearch(regions.centroids, metric=distance).query(k_used)
    else:
        near = [[] for _ in range(n)]

    combined = tuple(tuple(sorted(set(contig[i]) | set(near[i]))) for i in range(n))

    n_islands = sum(1 for nb in combined if not nb)
    if n_islands:
        msg = f"{n_islands} region(s) have no neighbors"
        logger.warning(msg)
        notes.append(msg)

    n_links = sum(len(nb) for nb in combined)
    logger.info(f"Built neighbor list: {n} regions, {n_links} links (k={k_used}, {distance.value})")

    return NeighborList(
        ids=regions.ids,
        neighbors=combined,
        contiguity=tuple(tuple(c) for c in contig),
        knn=tuple(tuple(sorted(nb)) for nb in near),
        k=k_used,
        distance=distance,
        warnings=tuple(notes),
    )
