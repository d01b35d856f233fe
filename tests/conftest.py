"""Shared fixtures: small region layouts with known neighbor structure."""

import numpy as np
import pytest
from shapely.geometry import box

from migspat.core.weights import standardize
from migspat.geometry.resolver import resolve_regions
from migspat.neighbors.graph import NeighborList


def rook_mapping(nrows, ncols):
    """Rook adjacency on a regular grid; region id = row * ncols + col."""
    mapping = {}
    for r in range(nrows):
        for c in range(ncols):
            nb = []
            if r > 0:
                nb.append((r - 1) * ncols + c)
            if r < nrows - 1:
                nb.append((r + 1) * ncols + c)
            if c > 0:
                nb.append(r * ncols + c - 1)
            if c < ncols - 1:
                nb.append(r * ncols + c + 1)
            mapping[r * ncols + c] = nb
    return mapping


def checkerboard(nrows, ncols):
    return np.array([(r + c) % 2 for r in range(nrows) for c in range(ncols)], dtype=float)


def halves(nrows, ncols):
    """1 on the left half of the grid, 0 on the right half."""
    return np.array([1.0 if c < ncols // 2 else 0.0 for r in range(nrows) for c in range(ncols)])


@pytest.fixture
def line_regions():
    """Three unit squares in a row: A touches B, B touches C."""
    return resolve_regions(
        ["A", "B", "C"],
        [box(0, 0, 1, 1), box(1, 0, 2, 1), box(2, 0, 3, 1)],
    )


@pytest.fixture
def line_weights():
    nl = NeighborList.from_mapping({"A": ["B"], "B": ["A", "C"], "C": ["B"]})
    return standardize(nl)


@pytest.fixture
def grid4_weights():
    return standardize(NeighborList.from_mapping(rook_mapping(4, 4)))


@pytest.fixture
def grid8_weights():
    return standardize(NeighborList.from_mapping(rook_mapping(8, 8)))


@pytest.fixture
def island_weights():
    """Six regions on a line plus one region without neighbors."""
    mapping = {i: [j for j in (i - 1, i + 1) if 0 <= j < 6] for i in range(6)}
    mapping["island"] = []
    return standardize(NeighborList.from_mapping(mapping))
