"""
Polygon contiguity.

Two regions are contiguous when their geometries intersect: a shared edge,
a single shared vertex, or an overlap all count as adjacency (queen-style).
Candidate pairs come from a shapely STRtree bounding-box query.
"""

from typing import List, Sequence

import numpy as np
from shapely.strtree import STRtree


def contiguity_neighbors(geometries: Sequence) -> List[List[int]]:
    """
    Build contiguity neighbor lists for a sequence of polygons.

    Parameters
    ----------
    geometries : sequence of shapely geometries
        Valid polygonal geometries, one per region.

    Returns
    -------
    list
        neighbors[i] is the sorted list of indices j != i whose geometry
        intersects geometry i.

    Examples
    --------
    >>> from shapely.geometry import box
    >>> contiguity_neighbors([box(0, 0, 1, 1), box(1, 0, 2, 1), box(5, 5, 6, 6)])
    [[1], [0], []]
    """
    geoms = np.asarray(list(geometries), dtype=object)
    n = len(geoms)
    if n == 0:
        return []

    tree = STRtree(geoms)
    # Returns (2, m) array of [input_index, tree_index] pairs
    pairs = tree.query(geoms, predicate="intersects")

    neighbors = [set() for _ in range(n)]
    for i, j in zip(pairs[0], pairs[1]):
        if i != j:
            neighbors[int(i)].add(int(j))

    return [sorted(s) for s in neighbors]
