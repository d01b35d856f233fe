"""
Spatial lag computation.

The spatial lag is the weighted average of neighboring values:
    lag_i = sum_j(w_ij * x_j)

Missing attribute values (NaN) are never treated as zero. Two policies:
- RENORMALIZE: drop missing neighbors and re-normalize the row over the
  available ones; lag is missing when no neighbor value is available
- PROPAGATE: lag is missing as soon as any neighbor value is missing

Regions with an all-zero row (ZeroPolicy.ZERO_ROW islands) have a missing lag.
The missing policy is fixed per weights matrix when it is built (``standardize``).
"""

from typing import Optional, Union

import numpy as np
import pandas as pd

from migspat.core.weights import MissingPolicy, SpatialWeights, ZeroPolicy
from migspat.exceptions import InputError


def prepare_attribute(weights: SpatialWeights, x) -> np.ndarray:
    """Align ``x`` onto the weights and reject infinite values."""
    x = weights.align(x)
    if np.any(np.isinf(x)):
        bad = [weights.ids[i] for i in np.flatnonzero(np.isinf(x))]
        raise InputError(f"Attribute has infinite values for regions: {bad}")
    return x


def compute_spatial_lag(
    W,
    x,
    missing_policy: Union[MissingPolicy, str] = MissingPolicy.RENORMALIZE,
) -> np.ndarray:
    """
    Spatial lag of ``x`` on a row-standardized matrix ``W``.

    Parameters
    ----------
    W : sparse matrix
        Row-standardized weights (n x n).
    x : array-like
        Attribute values (length n); NaN marks a missing value.
    missing_policy : MissingPolicy or str, default=MissingPolicy.RENORMALIZE
        Handling of missing neighbor values.

    Returns
    -------
    np.ndarray
        Lag vector (length n); NaN where the lag is undefined.
    """
    missing_policy = MissingPolicy(missing_policy)
    x = np.asarray(x, dtype=np.float64).ravel()

    available = np.isfinite(x)
    x_filled = np.where(available, x, 0.0)

    numerator = np.asarray(W @ x_filled).ravel()
    available_weight = np.asarray(W @ available.astype(np.float64)).ravel()
    total_weight = np.asarray(W.sum(axis=1)).ravel()

    lag = np.full(x.shape[0], np.nan)

    if missing_policy is MissingPolicy.RENORMALIZE:
        ok = available_weight > 0
        lag[ok] = numerator[ok] / available_weight[ok]
    else:
        ok = (total_weight > 0) & np.isclose(available_weight, total_weight, rtol=0, atol=1e-12)
        lag[ok] = numerator[ok]

    return lag


def lag(
    weights: SpatialWeights,
    x,
    missing_policy: Optional[Union[MissingPolicy, str]] = None,
    zero_policy: Optional[Union[ZeroPolicy, str]] = None,
) -> np.ndarray:
    """
    Compute the spatial lag of an attribute.

    Parameters
    ----------
    weights : SpatialWeights
        Row-standardized weights.
    x : array-like, dict or pandas.Series
        Attribute values, aligned by id when given as a mapping.
    missing_policy : MissingPolicy or str, optional
        Declared missing policy; must match ``weights.missing_policy``.
    zero_policy : ZeroPolicy or str, optional
        Declared zero policy; must match ``weights.zero_policy``.

    Returns
    -------
    np.ndarray
        Lag vector in ``weights.ids`` order.

    Examples
    --------
    >>> from migspat.neighbors.graph import NeighborList
    >>> from migspat.core.weights import standardize
    >>> nl = NeighborList.from_mapping({"A": ["B"], "B": ["A", "C"], "C": ["B"]})
    >>> lag(standardize(nl), [1.0, 2.0, 5.0])
    array([2., 3., 2.])
    """
    missing_policy = weights.check_policy(zero_policy, missing_policy)
    x = prepare_attribute(weights, x)
    return compute_spatial_lag(weights.sparse, x, missing_policy=missing_policy)


def lag_series(
    weights: SpatialWeights,
    x,
    missing_policy: Optional[Union[MissingPolicy, str]] = None,
    zero_policy: Optional[Union[ZeroPolicy, str]] = None,
    name: str = "lag",
) -> pd.Series:
    """Spatial lag as a Series indexed by region id."""
    values = lag(weights, x, missing_policy=missing_policy, zero_policy=zero_policy)
    return pd.Series(values, index=pd.Index(weights.ids, name="region"), name=name)
