"""
migspat - spatial autocorrelation and bilateral flow estimation for migration data

This package resolves region geometries to centroids, builds contiguity and
k-nearest-neighbor graphs, row-standardizes them into spatial weights and
computes spatial lags, global Moran's I and local Moran's I (LISA). Bilateral
migration flows are estimated from stock snapshots with the Dennett method.

Key Features:
- Contiguity + k-NN neighbor graphs (planar or great-circle distance)
- Explicit policies for regions without neighbors and for missing values
- Global and local Moran's I with analytic and permutation inference
- FDR-adjusted LISA cluster maps
- Dennett flow estimation, net migration rates and dyad tables

Example:
    >>> from migspat import resolve_regions, build_neighbors, standardize, global_moran
    >>> regions = resolve_regions(ids, geometries)
    >>> W = standardize(build_neighbors(regions, k=4))
    >>> result = global_moran(values, W)
"""

__version__ = "0.1.0"

from migspat.analysis.dyads import build_dyads
from migspat.analysis.migration import (
    migration_clusters,
    net_migration,
    residual_diagnostics,
)
from migspat.config.dataclasses import AnalysisConfig
from migspat.config.presets import AnalysisPresets
from migspat.core.metrics import (
    GlobalMoranResult,
    LocalMoranResult,
    global_moran,
    local_moran,
)
from migspat.core.spatial_lag import MissingPolicy, lag, lag_series
from migspat.core.weights import SpatialWeights, ZeroPolicy, standardize
from migspat.exceptions import (
    DegeneracyError,
    GeometryError,
    InputError,
    InsufficientRegionsError,
    IsolatedRegionError,
    MigspatError,
    PolicyError,
    ZeroVarianceError,
)
from migspat.flows.estimators import FlowEstimate, FlowMethod, estimate_flows
from migspat.flows.stock import StockTable
from migspat.geometry.resolver import RegionSet, resolve_regions
from migspat.neighbors.graph import NeighborList, build_neighbors
from migspat.neighbors.kdtree import DistanceMetric
from migspat.runner import AnalysisResults, MigrationSpatialAnalysis

__all__ = [
    # Version
    "__version__",
    # Geometry
    "RegionSet",
    "resolve_regions",
    # Neighbors
    "DistanceMetric",
    "NeighborList",
    "build_neighbors",
    # Weights and lag
    "SpatialWeights",
    "ZeroPolicy",
    "MissingPolicy",
    "standardize",
    "lag",
    "lag_series",
    # Moran's I
    "GlobalMoranResult",
    "LocalMoranResult",
    "global_moran",
    "local_moran",
    # Flows
    "StockTable",
    "FlowEstimate",
    "FlowMethod",
    "estimate_flows",
    # Analysis
    "build_dyads",
    "migration_clusters",
    "net_migration",
    "residual_diagnostics",
    # Configuration and runner
    "AnalysisConfig",
    "AnalysisPresets",
    "AnalysisResults",
    "MigrationSpatialAnalysis",
    # Errors
    "MigspatError",
    "InputError",
    "GeometryError",
    "DegeneracyError",
    "ZeroVarianceError",
    "InsufficientRegionsError",
    "IsolatedRegionError",
    "PolicyError",
]
