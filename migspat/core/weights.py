"""
Row-standardized spatial weights.

For region i with neighbor set N(i):
    w(i, j) = 1 / |N(i)|  for j in N(i), else 0

Regions with no neighbors are handled by an explicit ZeroPolicy:
- FAIL: raise IsolatedRegionError
- ZERO_ROW: keep the region with an all-zero row and an all-zero column, so
  it neither has a lag nor contributes to the lag of others
- DROP: remove the region (and links pointing at it) until none is isolated
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Optional, Union

import numpy as np
import pandas as pd
from scipy import sparse as sp_sparse

from migspat.exceptions import InputError, IsolatedRegionError, PolicyError
from migspat.neighbors.graph import NeighborList

logger = logging.getLogger(__name__)


class ZeroPolicy(Enum):
    """Handling of regions without neighbors."""

    FAIL = "fail"
    DROP = "drop"
    ZERO_ROW = "zero-row"


class MissingPolicy(Enum):
    """Handling of missing attribute values in spatial lags."""

    RENORMALIZE = "renormalize"
    PROPAGATE = "propagate"


@dataclass(frozen=True, eq=False)
class SpatialWeights:
    """
    Row-standardized spatial weights over an ordered region set.

    Parameters
    ----------
    ids : tuple
        Identifiers of the regions kept in the matrix.
    sparse : scipy.sparse.csr_matrix
        Weights of shape (n, n); non-empty rows sum to 1.
    zero_policy : ZeroPolicy
        Policy the matrix was built with. Every statistic computed on this
        matrix must use the same policy.
    missing_policy : MissingPolicy
        Missing-value policy of every lag and statistic on this matrix.
    islands : tuple
        Identifiers with an all-zero row and column (ZERO_ROW policy only),
        including regions whose only neighbors were islands.
    dropped : tuple
        Identifiers removed by the DROP policy.
    source_index : np.ndarray
        Position of each kept region in the originating neighbor list.
    """

    ids: tuple
    sparse: sp_sparse.csr_matrix
    zero_policy: ZeroPolicy
    missing_policy: MissingPolicy = MissingPolicy.RENORMALIZE
    islands: tuple = ()
    dropped: tuple = ()
    source_index: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.int64))

    @property
    def n(self) -> int:
        return len(self.ids)

    @property
    def row_sums(self) -> np.ndarray:
        return np.asarray(self.sparse.sum(axis=1)).ravel()

    @property
    def s0(self) -> float:
        """Sum of all weights."""
        return float(self.sparse.sum())

    @property
    def s1(self) -> float:
        """0.5 * sum_ij (w_ij + w_ji)^2."""
        sym = self.sparse + self.sparse.T
        return float(0.5 * sym.multiply(sym).sum())

    @property
    def s2(self) -> float:
        """sum_i (w_i. + w_.i)^2."""
        rows = np.asarray(self.sparse.sum(axis=1)).ravel()
        cols = np.asarray(self.sparse.sum(axis=0)).ravel()
        return float(np.sum((rows + cols) ** 2))

    @property
    def island_mask(self) -> np.ndarray:
        return self.row_sums == 0

    def index_of(self, region_id: Hashable) -> int:
        try:
            return self.ids.index(region_id)
        except ValueError:
            raise KeyError(f"Unknown region id: {region_id!r}") from None

    def weights_of(self, region_id: Hashable) -> dict:
        """Non-zero weights of one region as ``{neighbor_id: weight}``."""
        row = self.sparse.getrow(self.index_of(region_id))
        return {self.ids[j]: float(w) for j, w in zip(row.indices, row.data) if w != 0}

    def to_frame(self) -> pd.DataFrame:
        """Edge list with columns ``region``, ``neighbor``, ``weight``."""
        coo = self.sparse.tocoo()
        return pd.DataFrame(
            {
                "region": [self.ids[i] for i in coo.row],
                "neighbor": [self.ids[j] for j in coo.col],
                "weight": coo.data,
            }
        )

    def check_policy(
        self,
        zero_policy: Optional[Union[ZeroPolicy, str]] = None,
        missing_policy: Optional[Union[MissingPolicy, str]] = None,
    ) -> MissingPolicy:
        """
        Verify caller-declared policies against the matrix policies.

        ``None`` means "use the matrix policy". Any other value that differs
        raises PolicyError, since mixing policies corrupts comparability.
        Returns the missing policy to apply.
        """
        if zero_policy is not None and ZeroPolicy(zero_policy) is not self.zero_policy:
            raise PolicyError(
                f"Weights were built with zero policy {self.zero_policy.value!r}, "
                f"call requested {ZeroPolicy(zero_policy).value!r}."
            )
        if missing_policy is not None and MissingPolicy(missing_policy) is not self.missing_policy:
            raise PolicyError(
                f"Weights were built with missing policy {self.missing_policy.value!r}, "
                f"call requested {MissingPolicy(missing_policy).value!r}."
            )
        return self.missing_policy

    def align(self, values) -> np.ndarray:
        """
        Align an attribute onto ``ids``.

        Series and dicts are reindexed by id (absent ids give NaN). Arrays
        may have one value per kept region, or one value per region of the
        originating neighbor list (dropped regions are then removed).
        """
        if isinstance(values, pd.Series):
            return values.reindex(list(self.ids)).to_numpy(dtype=np.float64)
        if isinstance(values, dict):
            return np.array([values.get(i, np.nan) for i in self.ids], dtype=np.float64)

        arr = np.asarray(values, dtype=np.float64).ravel()
        if arr.shape[0] == self.n:
            return arr
        if self.dropped and arr.shape[0] == self.n + len(self.dropped):
            return arr[self.source_index]
        raise InputError(f"Attribute has {arr.shape[0]} values for {self.n} regions.")


def row_normalize_weights(W) -> sp_sparse.csr_matrix:
    """
    Row-normalize a weight matrix.

    Each non-zero row sums to 1. Rows with zero sum stay all zero.

    Parameters
    ----------
    W : sparse matrix or np.ndarray
        Weight matrix.

    Returns
    -------
    scipy.sparse.csr_matrix
        Row-normalized weight matrix.
    """
    if not sp_sparse.issparse(W):
        W = sp_sparse.csr_matrix(W)
    else:
        W = W.tocsr()

    row_sums = np.array(W.sum(axis=1)).ravel()
    row_sums_inv = np.where(row_sums > 0, 1.0 / np.where(row_sums > 0, row_sums, 1.0), 0.0)

    D_inv = sp_sparse.diags(row_sums_inv, format="csr")
    return (D_inv @ W).tocsr()


def binary_matrix(neighbors, n: Optional[int] = None) -> sp_sparse.csr_matrix:
    """Binary adjacency matrix from per-row neighbor index lists."""
    n = len(neighbors) if n is None else n
    rows = np.fromiter((i for i, nb in enumerate(neighbors) for _ in nb), dtype=np.int64)
    cols = np.fromiter((j for nb in neighbors for j in nb), dtype=np.int64)
    data = np.ones(rows.shape[0], dtype=np.float64)
    return sp_sparse.csr_matrix((data, (rows, cols)), shape=(n, n), dtype=np.float64)


def _drop_isolates(B: sp_sparse.csr_matrix) -> np.ndarray:
    """Remove zero-degree rows repeatedly; return mask of kept rows."""
    keep = np.ones(B.shape[0], dtype=bool)
    while True:
        sub = B[keep][:, keep]
        degree = np.asarray(sub.sum(axis=1)).ravel()
        isolated = degree == 0
        if not np.any(isolated):
            return keep
        kept_positions = np.flatnonzero(keep)
        keep[kept_positions[isolated]] = False
        if not np.any(keep):
            return keep


def standardize(
    neighbor_list: NeighborList,
    zero_policy: Union[ZeroPolicy, str] = ZeroPolicy.ZERO_ROW,
    missing_policy: Union[MissingPolicy, str] = MissingPolicy.RENORMALIZE,
) -> SpatialWeights:
    """
    Row-standardize a neighbor list into spatial weights.

    Parameters
    ----------
    neighbor_list : NeighborList
        Combined neighbor list.
    zero_policy : ZeroPolicy or str, default=ZeroPolicy.ZERO_ROW
        Handling of regions without neighbors ("fail", "drop", "zero-row").
    missing_policy : MissingPolicy or str, default=MissingPolicy.RENORMALIZE
        Handling of missing values ("renormalize", "propagate") for every
        lag and statistic computed on the result.

    Returns
    -------
    SpatialWeights
        Row-standardized weights.

    Examples
    --------
    >>> nl = NeighborList.from_mapping({"A": ["B"], "B": ["A", "C"], "C": ["B"]})
    >>> standardize(nl).weights_of("B")
    {'A': 0.5, 'C': 0.5}

    Notes
    -----
    Removing an isolated region can isolate others that only pointed at it.
    Under DROP removal repeats until no region is isolated; under ZERO_ROW
    the same regions keep an all-zero row and column instead.
    """
    zero_policy = ZeroPolicy(zero_policy)
    missing_policy = MissingPolicy(missing_policy)
    ids = neighbor_list.ids
    n = len(ids)
    B = binary_matrix(neighbor_list.neighbors, n)

    islands = neighbor_list.islands
    if islands and zero_policy is ZeroPolicy.FAIL:
        raise IsolatedRegionError(islands, statistic="weights")

    keep = _drop_isolates(B)

    if zero_policy is ZeroPolicy.DROP:
        source_index = np.flatnonzero(keep)
        dropped = tuple(ids[i] for i in np.flatnonzero(~keep))
        if dropped:
            logger.warning(f"Dropped {len(dropped)} region(s) without neighbors: {list(dropped)}")
        B = B[keep][:, keep]
        kept_ids = tuple(ids[i] for i in source_index)
        return SpatialWeights(
            ids=kept_ids,
            sparse=row_normalize_weights(B),
            zero_policy=zero_policy,
            missing_policy=missing_policy,
            dropped=dropped,
            source_index=source_index,
        )

    if not np.all(keep):
        # Zero the island columns too, so islands feed no other lag
        mask = sp_sparse.diags(keep.astype(np.float64), format="csr")
        B = (mask @ B @ mask).tocsr()
        B.eliminate_zeros()
        islands = tuple(ids[i] for i in np.flatnonzero(~keep))
        logger.warning(f"{len(islands)} region(s) kept with zero weights: {list(islands)}")

    return SpatialWeights(
        ids=ids,
        sparse=row_normalize_weights(B),
        zero_policy=zero_policy,
        missing_policy=missing_policy,
        islands=islands,
        source_index=np.arange(n),
    )


def restrict_weights(weights: SpatialWeights, mask) -> sp_sparse.csr_matrix:
    """
    Sub-matrix of ``weights`` on the regions selected by ``mask``.

    Rows are re-standardized over the neighbors that remain; rows left
    without neighbors are all zero.
    """
    mask = np.asarray(mask, dtype=bool)
    sub = weights.sparse[mask][:, mask]
    return row_normalize_weights(sub)
