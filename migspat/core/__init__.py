"""Core spatial analysis functions."""

from migspat.core.metrics import (
    GlobalMoranResult,
    LocalMoranResult,
    global_moran,
    local_moran,
    quadrant_labels,
)
from migspat.core.normalization import center_vector, kurtosis, standardize_vector
from migspat.core.spatial_lag import MissingPolicy, compute_spatial_lag, lag, lag_series
from migspat.core.weights import SpatialWeights, ZeroPolicy, row_normalize_weights, standardize

__all__ = [
    "center_vector",
    "kurtosis",
    "standardize_vector",
    "MissingPolicy",
    "compute_spatial_lag",
    "lag",
    "lag_series",
    "SpatialWeights",
    "ZeroPolicy",
    "row_normalize_weights",
    "standardize",
    "GlobalMoranResult",
    "LocalMoranResult",
    "global_moran",
    "local_moran",
    "quadrant_labels",
]
