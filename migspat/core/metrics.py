"""
Global and local Moran's I.

Global Moran's I for attribute x over n regions with weights W:
    I = (n / S0) * sum_ij w_ij z_i z_j / sum_i z_i^2,   z = x - mean(x)

with expectation -1/(n-1) and variance under the randomization assumption
(Cliff & Ord), which uses the sample kurtosis of x and so does not assume
normally distributed values.

Local Moran's I (LISA) for region i:
    I_i = (z_i / m2) * sum_j w_ij z_j,   m2 = sum_k z_k^2 / n

with moments conditional on z_i (Sokal, Oden & Thomson 1998).

Both statistics are computed on the *active* regions: regions with a
neighbor, a finite attribute value, a defined lag and (after restricting the
weights to active regions) at least one active neighbor. Excluded regions
are reported, never zero-filled.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from migspat.core.normalization import central_moments, check_variance, kurtosis
from migspat.core.spatial_lag import MissingPolicy, compute_spatial_lag, prepare_attribute
from migspat.core.weights import SpatialWeights, ZeroPolicy, restrict_weights
from migspat.exceptions import InsufficientRegionsError
from migspat.stats.fdr import adjust_pvalues
from migspat.stats.permutation import conditional_permutation_test, global_permutation_test

logger = logging.getLogger(__name__)

HIGH_HIGH = "High-High"
LOW_LOW = "Low-Low"
HIGH_LOW = "High-Low"
LOW_HIGH = "Low-High"
NO_CLUSTER = "No cluster"
UNDEFINED = "Undefined"


@dataclass(frozen=True)
class ActiveSubset:
    """Regions entering a statistic and the weights restricted to them."""

    mask: np.ndarray
    W: object
    x: np.ndarray
    excluded: dict


def active_subset(
    weights: SpatialWeights,
    x,
    missing_policy: Optional[Union[MissingPolicy, str]] = None,
) -> ActiveSubset:
    """
    Select the regions a statistic can use.

    A region is excluded when it has no neighbors (zero-row island), when
    its value is missing, or when its lag on the full weights is undefined
    under the missing policy. Under PROPAGATE that means a neighbor value is
    missing; a neighbor excluded only for its own lag does not count. A
    region left without any active neighbor is excluded as well, since its
    lag would otherwise read as zero.
    """
    missing_policy = weights.check_policy(missing_policy=missing_policy)
    x = prepare_attribute(weights, x)
    n = weights.n
    lagged = compute_spatial_lag(weights.sparse, x, missing_policy)

    if missing_policy is MissingPolicy.PROPAGATE:
        lag_reason = "neighbor value missing"
    else:
        lag_reason = "no neighbors with values"

    excluded = {}
    active = np.ones(n, dtype=bool)
    for bad, reason in (
        (weights.island_mask, "no neighbors"),
        (~np.isfinite(x), "missing value"),
        (~np.isfinite(lagged), lag_reason),
    ):
        for i in np.flatnonzero(bad & active):
            excluded[weights.ids[i]] = reason
        active &= ~bad

    W_full = weights.sparse
    while True:
        remaining = np.asarray(W_full[:, active].sum(axis=1)).ravel()
        lost = active & (remaining == 0)
        if not np.any(lost):
            break
        for i in np.flatnonzero(lost):
            excluded[weights.ids[i]] = "no active neighbors"
        active &= ~lost

    if excluded:
        logger.info(f"{len(excluded)} region(s) excluded from statistics")

    return ActiveSubset(
        mask=active,
        W=restrict_weights(weights, active),
        x=x[active],
        excluded=excluded,
    )


def _weight_sums(W) -> tuple[float, float, float]:
    s0 = float(W.sum())
    sym = W + W.T
    s1 = float(0.5 * sym.multiply(sym).sum())
    rows = np.asarray(W.sum(axis=1)).ravel()
    cols = np.asarray(W.sum(axis=0)).ravel()
    s2 = float(np.sum((rows + cols) ** 2))
    return s0, s1, s2


def two_tailed_p(z):
    """Two-tailed standard normal tail probability."""
    return 2.0 * stats.norm.sf(np.abs(z))


@dataclass(frozen=True)
class GlobalMoranResult:
    """
    Global Moran's I with randomization inference.

    Attributes
    ----------
    statistic : float
        Moran's I.
    expectation : float
        E[I] = -1 / (n - 1).
    variance : float
        Var[I] under randomization; NaN when ``inference_defined`` is False.
    z : float
        (I - E[I]) / sqrt(Var[I]).
    p_value : float
        Two-tailed normal p-value.
    n : int
        Number of regions used.
    excluded : dict
        Region id -> reason for regions left out.
    inference_defined : bool
        False when the randomization variance is not computable (n = 3) or
        not positive; variance, z and p_value are then NaN.
    p_sim : float, optional
        Folded permutation p-value (``permutations > 0`` only).
    permutations : int
        Number of permutations used.
    """

    statistic: float
    expectation: float
    variance: float
    z: float
    p_value: float
    n: int
    excluded: dict = field(default_factory=dict)
    inference_defined: bool = True
    p_sim: Optional[float] = None
    permutations: int = 0

    def to_dict(self) -> dict:
        return {
            "statistic": self.statistic,
            "expectation": self.expectation,
            "variance": self.variance,
            "z": self.z,
            "p_value": self.p_value,
            "n": self.n,
            "excluded": dict(self.excluded),
            "inference_defined": self.inference_defined,
            "p_sim": self.p_sim,
            "permutations": self.permutations,
        }


def compute_global_moran(z, W) -> float:
    """Moran's I from centred values and a weights matrix."""
    n = z.shape[0]
    s0 = float(W.sum())
    lag_z = np.asarray(W @ z).ravel()
    return float(n / s0 * np.dot(z, lag_z) / np.dot(z, z))


def global_moran(
    x,
    weights: SpatialWeights,
    zero_policy: Optional[Union[ZeroPolicy, str]] = None,
    missing_policy: Optional[Union[MissingPolicy, str]] = None,
    permutations: int = 0,
    random_seed: Optional[int] = None,
) -> GlobalMoranResult:
    """
    Global Moran's I with randomization-based inference.

    Parameters
    ----------
    x : array-like, dict or pandas.Series
        Attribute values; mappings are aligned by region id.
    weights : SpatialWeights
        Row-standardized weights.
    zero_policy : ZeroPolicy or str, optional
        Declared zero policy; must match ``weights.zero_policy``.
    missing_policy : MissingPolicy or str, optional
        Declared missing policy; must match ``weights.missing_policy``.
    permutations : int, default=0
        Number of random permutations for a pseudo p-value.
    random_seed : int, optional
        Seed for the permutations.

    Returns
    -------
    GlobalMoranResult

    Raises
    ------
    InsufficientRegionsError
        Fewer than 3 active regions.
    ZeroVarianceError
        Attribute constant over the active regions.

    Examples
    --------
    >>> from migspat.neighbors.graph import NeighborList
    >>> from migspat.core.weights import standardize
    >>> nl = NeighborList.from_mapping({i: [j for j in (i - 1, i + 1) if 0 <= j < 6] for i in range(6)})
    >>> global_moran([1, 1, 1, 0, 0, 0], standardize(nl)).statistic > 0
    True
    """
    missing_policy = weights.check_policy(zero_policy, missing_policy)
    subset = active_subset(weights, x, missing_policy)
    n = subset.x.shape[0]

    if n < 3:
        raise InsufficientRegionsError(
            f"global_moran: needs at least 3 regions, got {n}.", statistic="global_moran"
        )
    check_variance(subset.x, "global_moran")

    W = subset.W
    z = subset.x - subset.x.mean()
    I = compute_global_moran(z, W)
    EI = -1.0 / (n - 1)

    s0, s1, s2 = _weight_sums(W)
    inference_defined = n > 3
    variance = np.nan
    if inference_defined:
        s02 = s0 * s0
        n2 = n * n
        k = kurtosis(z)
        A = n * ((n2 - 3 * n + 3) * s1 - n * s2 + 3 * s02)
        B = k * ((n2 - n) * s1 - 2 * n * s2 + 6 * s02)
        variance = (A - B) / ((n - 1) * (n - 2) * (n - 3) * s02) - EI * EI
        if not variance > 0:
            inference_defined = False
            variance = np.nan

    if inference_defined:
        z_score = (I - EI) / np.sqrt(variance)
        p_value = float(two_tailed_p(z_score))
    else:
        logger.warning(f"global_moran: randomization variance undefined for n={n}")
        z_score = np.nan
        p_value = np.nan

    p_sim = None
    if permutations:
        p_sim = global_permutation_test(z, W, permutations, random_seed=random_seed)["p_sim"]

    return GlobalMoranResult(
        statistic=I,
        expectation=EI,
        variance=float(variance),
        z=float(z_score),
        p_value=p_value,
        n=n,
        excluded=subset.excluded,
        inference_defined=inference_defined,
        p_sim=p_sim,
        permutations=permutations,
    )


@dataclass(frozen=True)
class LocalMoranResult:
    """
    Local Moran's I (LISA) table.

    The ``table`` DataFrame is indexed by region id and has columns:
    ``x``, ``lag``, ``value``, ``expectation``, ``variance``, ``z``,
    ``p_value``, ``p_sim``, ``quadrant``, ``significant``, ``cluster``,
    ``defined``.

    ``defined`` is False for regions excluded from the statistic (no
    neighbors, missing value); their numeric columns are NaN and their
    cluster is "Undefined". A defined region whose value equals the mean has
    zero conditional variance; its z and p_value are NaN and it is never
    significant.
    """

    table: pd.DataFrame
    alpha: float
    global_mean: float
    lag_mean: float
    permutations: int = 0
    adjust: Optional[str] = None

    def cluster_counts(self) -> pd.Series:
        """Number of regions per cluster label."""
        return self.table["cluster"].value_counts()

    def significant_ids(self) -> list:
        return self.table.index[self.table["significant"]].tolist()


def quadrant_labels(x, lag_x) -> np.ndarray:
    """
    LISA quadrant from raw values relative to their sample means.

    A value equal to the mean counts as Low.
    """
    x = np.asarray(x, dtype=np.float64)
    lag_x = np.asarray(lag_x, dtype=np.float64)
    high_x = x > x.mean()
    high_lag = lag_x > lag_x.mean()
    return np.where(
        high_x,
        np.where(high_lag, HIGH_HIGH, HIGH_LOW),
        np.where(high_lag, LOW_HIGH, LOW_LOW),
    )


def compute_local_moran(z, W) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Local Moran's I and its conditional moments.

    Parameters
    ----------
    z : np.ndarray
        Centred attribute values (length n).
    W : sparse matrix
        Weights (n x n).

    Returns
    -------
    tuple
        (I_i, E[I_i], Var[I_i]), each of length n.
    """
    n = z.shape[0]
    m2, _ = central_moments(z)
    lag_z = np.asarray(W @ z).ravel()
    values = z / m2 * lag_z

    wi = np.asarray(W.sum(axis=1)).ravel()
    wi2 = np.asarray(W.multiply(W).sum(axis=1)).ravel()

    expectation = -(z**2 * wi) / ((n - 1) * m2)
    variance = (
        (z / m2) ** 2
        * (n / (n - 2))
        * (wi2 - wi**2 / (n - 1))
        * (m2 - z**2 / (n - 1))
    )
    return values, expectation, variance


def local_moran(
    x,
    weights: SpatialWeights,
    alpha: float = 0.05,
    zero_policy: Optional[Union[ZeroPolicy, str]] = None,
    missing_policy: Optional[Union[MissingPolicy, str]] = None,
    permutations: int = 0,
    adjust: Optional[str] = None,
    random_seed: Optional[int] = None,
) -> LocalMoranResult:
    """
    Local Moran's I with quadrant classification.

    Parameters
    ----------
    x : array-like, dict or pandas.Series
        Attribute values; mappings are aligned by region id.
    weights : SpatialWeights
        Row-standardized weights.
    alpha : float, default=0.05
        Significance level for cluster flags.
    zero_policy : ZeroPolicy or str, optional
        Declared zero policy; must match ``weights.zero_policy``.
    missing_policy : MissingPolicy or str, optional
        Declared missing policy; must match ``weights.missing_policy``.
    permutations : int, default=0
        Conditional permutations for pseudo p-values. When > 0, the
        pseudo p-value decides significance; otherwise the analytic one.
    adjust : {"bh", "by", "bonferroni"}, optional
        Multiple-testing adjustment of the p-values deciding significance.
    random_seed : int, optional
        Seed for the permutations.

    Returns
    -------
    LocalMoranResult

    Notes
    -----
    Non-significant regions get the cluster label "No cluster" rather than
    their quadrant, so maps do not imply confidence the test does not give.
    The ``quadrant`` column always holds the raw quadrant.
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}.")

    missing_policy = weights.check_policy(zero_policy, missing_policy)
    subset = active_subset(weights, x, missing_policy)
    n = subset.x.shape[0]

    if n < 3:
        raise InsufficientRegionsError(
            f"local_moran: needs at least 3 regions, got {n}.", statistic="local_moran"
        )
    check_variance(subset.x, "local_moran")

    W = subset.W
    x_active = subset.x
    z = x_active - x_active.mean()
    values, expectation, variance = compute_local_moran(z, W)

    with np.errstate(divide="ignore", invalid="ignore"):
        z_scores = np.where(variance > 0, (values - expectation) / np.sqrt(variance), np.nan)
    p_values = np.where(np.isfinite(z_scores), two_tailed_p(z_scores), np.nan)

    lag_x = compute_spatial_lag(W, x_active)
    quadrants = quadrant_labels(x_active, lag_x)

    p_sim = np.full(n, np.nan)
    if permutations:
        p_sim = conditional_permutation_test(z, W, permutations, random_seed=random_seed)["p_sim"]

    p_decide = p_sim if permutations else p_values
    if adjust is not None:
        p_decide = adjust_pvalues(p_decide, method=adjust)
    significant = np.isfinite(p_decide) & (p_decide < alpha)

    index = pd.Index(weights.ids, name="region")
    table = pd.DataFrame(
        {
            "x": np.nan,
            "lag": np.nan,
            "value": np.nan,
            "expectation": np.nan,
            "variance": np.nan,
            "z": np.nan,
            "p_value": np.nan,
            "p_sim": np.nan,
            "quadrant": UNDEFINED,
            "significant": False,
            "cluster": UNDEFINED,
            "defined": False,
        },
        index=index,
    )

    rows = np.flatnonzero(subset.mask)
    table.iloc[rows, table.columns.get_loc("x")] = x_active
    table.iloc[rows, table.columns.get_loc("lag")] = lag_x
    table.iloc[rows, table.columns.get_loc("value")] = values
    table.iloc[rows, table.columns.get_loc("expectation")] = expectation
    table.iloc[rows, table.columns.get_loc("variance")] = variance
    table.iloc[rows, table.columns.get_loc("z")] = z_scores
    table.iloc[rows, table.columns.get_loc("p_value")] = p_values
    table.iloc[rows, table.columns.get_loc("p_sim")] = p_sim
    table.iloc[rows, table.columns.get_loc("quadrant")] = quadrants
    table.iloc[rows, table.columns.get_loc("significant")] = significant
    table.iloc[rows, table.columns.get_loc("cluster")] = np.where(
        significant, quadrants, NO_CLUSTER
    )
    table.iloc[rows, table.columns.get_loc("defined")] = True
    table["significant"] = table["significant"].astype(bool)
    table["defined"] = table["defined"].astype(bool)

    logger.info(f"local_moran: {int(significant.sum())}/{n} regions significant at alpha={alpha}")

    return LocalMoranResult(
        table=table,
        alpha=alpha,
        global_mean=float(x_active.mean()),
        lag_mean=float(lag_x.mean()),
        permutations=permutations,
        adjust=adjust,
    )
