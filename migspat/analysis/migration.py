"""
Migration indicators and their spatial diagnostics.

- net_migration: inflow, outflow and net migration (rate) per region
- migration_clusters: global + local Moran's I of a migration indicator
- residual_diagnostics: Moran's I of externally fitted gravity-model
  residuals, flagging when a spatial model would be needed
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from migspat.config.dataclasses import AnalysisConfig
from migspat.core.metrics import GlobalMoranResult, LocalMoranResult, global_moran, local_moran
from migspat.core.weights import SpatialWeights
from migspat.flows.estimators import FlowEstimate

logger = logging.getLogger(__name__)


def net_migration(
    flows: FlowEstimate,
    population=None,
    per: float = 1000.0,
) -> pd.DataFrame:
    """
    Net migration per region from an estimated flow matrix.

    Parameters
    ----------
    flows : FlowEstimate
        Estimated bilateral flows.
    population : dict or pandas.Series, optional
        Population per region id, used for the rate.
    per : float, default=1000.0
        Rate base (net migrants per ``per`` inhabitants).

    Returns
    -------
    pandas.DataFrame
        Indexed by region with columns ``inflow``, ``outflow``, ``net`` and,
        when population is given, ``population`` and ``net_rate``. Regions
        with missing or non-positive population have a NaN rate.
    """
    inflow = flows.inflow()
    outflow = flows.outflow()
    regions = pd.Index(flows.regions, name="region")

    table = pd.DataFrame(
        {
            "inflow": inflow.reindex(regions).to_numpy(),
            "outflow": outflow.reindex(regions).to_numpy(),
        },
        index=regions,
    )
    # Diagonal entries are zero for every method, so they cancel in the net
    table["net"] = table["inflow"] - table["outflow"]

    if population is not None:
        pop = pd.Series(population, dtype=np.float64).reindex(regions)
        usable = pop > 0
        if not usable.all():
            missing = pop.index[~usable].tolist()
            logger.warning(f"No usable population for {len(missing)} region(s): {missing}")
        table["population"] = pop.to_numpy()
        table["net_rate"] = np.where(usable, table["net"] / pop.where(usable) * per, np.nan)

    return table


@dataclass(frozen=True)
class ClusterDiagnostics:
    """Global and local Moran's I of one indicator."""

    variable: str
    global_result: GlobalMoranResult
    local_result: LocalMoranResult

    def summary(self) -> dict:
        counts = self.local_result.cluster_counts().to_dict()
        return {
            "variable": self.variable,
            "moran_i": self.global_result.statistic,
            "p_value": self.global_result.p_value,
            "n": self.global_result.n,
            "clusters": counts,
        }


def migration_clusters(
    values,
    weights: SpatialWeights,
    config: Optional[AnalysisConfig] = None,
    variable: str = "net_rate",
) -> ClusterDiagnostics:
    """
    Spatial clustering diagnostics for a migration indicator.

    Parameters
    ----------
    values : array-like, dict or pandas.Series
        Indicator per region (e.g. net migration rate).
    weights : SpatialWeights
        Row-standardized weights.
    config : AnalysisConfig, optional
        Weights and Moran settings. Default: AnalysisConfig(). Its weights
        policies must match those ``weights`` was built with (PolicyError).
    variable : str, default="net_rate"
        Name used in reports.

    Returns
    -------
    ClusterDiagnostics
    """
    config = AnalysisConfig() if config is None else config
    zero_policy = config.weights.zero_policy
    missing_policy = config.weights.missing_policy
    moran = config.moran

    global_result = global_moran(
        values,
        weights,
        zero_policy=zero_policy,
        missing_policy=missing_policy,
        permutations=moran.permutations,
        random_seed=moran.random_seed,
    )
    local_result = local_moran(
        values,
        weights,
        alpha=moran.alpha,
        zero_policy=zero_policy,
        missing_policy=missing_policy,
        permutations=moran.permutations,
        adjust=moran.adjust,
        random_seed=moran.random_seed,
    )
    logger.info(
        f"{variable}: Moran's I = {global_result.statistic:.4f} "
        f"(p = {global_result.p_value:.4g}, n = {global_result.n})"
    )
    return ClusterDiagnostics(variable, global_result, local_result)


@dataclass(frozen=True)
class ResidualDiagnostics:
    """
    Spatial autocorrelation test of regression residuals.

    ``needs_spatial_model`` is True when residual Moran's I is significant
    at ``alpha``; the spatial lag/error model itself is not fitted here.
    """

    moran: GlobalMoranResult
    alpha: float
    needs_spatial_model: bool


def residual_diagnostics(
    residuals,
    weights: SpatialWeights,
    config: Optional[AnalysisConfig] = None,
) -> ResidualDiagnostics:
    """
    Moran's I of regression residuals (e.g. an origin-level gravity model).

    Parameters
    ----------
    residuals : array-like, dict or pandas.Series
        Residual per region from an externally fitted model.
    weights : SpatialWeights
        Row-standardized weights.
    config : AnalysisConfig, optional
        Weights and Moran settings. Default: AnalysisConfig(). Its weights
        policies must match those ``weights`` was built with (PolicyError).

    Returns
    -------
    ResidualDiagnostics
    """
    config = AnalysisConfig() if config is None else config
    result = global_moran(
        residuals,
        weights,
        zero_policy=config.weights.zero_policy,
        missing_policy=config.weights.missing_policy,
        permutations=config.moran.permutations,
        random_seed=config.moran.random_seed,
    )
    p = result.p_sim if result.p_sim is not None else result.p_value
    needs_model = bool(np.isfinite(p) and p < config.moran.alpha)
    if needs_model:
        logger.info(
            f"Residual Moran's I = {result.statistic:.4f} (p = {p:.4g}): "
            "spatial dependence left in residuals"
        )
    return ResidualDiagnostics(moran=result, alpha=config.moran.alpha, needs_spatial_model=needs_model)
