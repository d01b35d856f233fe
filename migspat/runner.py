"""
MigrationSpatialAnalysis - orchestrator for the stock-to-clusters pipeline.

Regions -> neighbor graph -> weights -> flows -> net migration -> Moran's I.
Each step takes the previous step's output and returns a new object.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Hashable, Optional

import pandas as pd

from migspat.analysis.migration import ClusterDiagnostics, migration_clusters, net_migration
from migspat.config.dataclasses import AnalysisConfig
from migspat.core.weights import SpatialWeights, standardize
from migspat.flows.estimators import FlowEstimate, estimate_flows
from migspat.flows.stock import StockTable
from migspat.geometry.resolver import RegionSet
from migspat.neighbors.graph import NeighborList, build_neighbors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisResults:
    """Outputs of every pipeline stage."""

    config: AnalysisConfig
    regions: RegionSet
    neighbors: NeighborList
    weights: SpatialWeights
    flows: FlowEstimate
    net_migration: pd.DataFrame
    clusters: ClusterDiagnostics

    def summary(self) -> dict:
        return {
            "n_regions": len(self.regions),
            "excluded_regions": dict(self.regions.excluded),
            "islands": list(self.weights.islands),
            "dropped": list(self.weights.dropped),
            "flow_method": self.flows.method.value,
            "flow_total": self.flows.total,
            **self.clusters.summary(),
        }


class MigrationSpatialAnalysis:
    """
    Main orchestrator for migration spatial analysis.

    Parameters
    ----------
    config : AnalysisConfig, optional
        Complete analysis configuration. Default: AnalysisConfig().
    verbose : bool
        Configure INFO-level console logging.

    Example
    -------
    >>> from migspat.config import AnalysisPresets
    >>> config = AnalysisPresets.default()
    >>> config.output_dir = "./output"
    >>> analysis = MigrationSpatialAnalysis(config)
    >>> results = analysis.run(regions, stocks, 2010, 2020, population=pop)
    """

    def __init__(self, config: Optional[AnalysisConfig] = None, verbose: bool = False):
        self.config = AnalysisConfig() if config is None else config
        if verbose:
            logging.basicConfig(
                level=logging.INFO,
                format='%(asctime)s - %(levelname)s - %(message)s'
            )

    def run(
        self,
        regions: RegionSet,
        stocks: StockTable,
        period_from: Hashable,
        period_to: Hashable,
        population=None,
    ) -> AnalysisResults:
        """
        Run the full pipeline for one interval.

        Parameters
        ----------
        regions : RegionSet
            Resolved region geometries and centroids.
        stocks : StockTable
            Bilateral stock snapshots containing both periods.
        period_from, period_to : hashable
            Interval bounds.
        population : dict or pandas.Series, optional
            Population per region. When given, clusters are computed on the
            net migration rate; otherwise on net migration counts.

        Returns
        -------
        AnalysisResults
        """
        cfg = self.config
        logger.info("=" * 70)
        logger.info("MIGRATION SPATIAL ANALYSIS")
        logger.info("=" * 70)
        logger.info(f"{len(regions)} regions, interval {period_from} -> {period_to}")

        neighbors = build_neighbors(
            regions,
            k=cfg.neighbors.k,
            distance=cfg.neighbors.distance,
            contiguity=cfg.neighbors.contiguity,
        )
        weights = standardize(
            neighbors,
            zero_policy=cfg.weights.zero_policy,
            missing_policy=cfg.weights.missing_policy,
        )
        logger.info(f"Weights: n={weights.n}, S0={weights.s0:.1f}, islands={len(weights.islands)}")

        flows = estimate_flows(stocks, period_from, period_to, method=cfg.flows.method)
        net = net_migration(flows, population=population, per=cfg.flows.per)

        variable = "net_rate" if "net_rate" in net.columns else "net"
        clusters = migration_clusters(net[variable], weights, cfg, variable=variable)

        results = AnalysisResults(
            config=cfg,
            regions=regions,
            neighbors=neighbors,
            weights=weights,
            flows=flows,
            net_migration=net,
            clusters=clusters,
        )

        if cfg.output_dir:
            self._save_results(results)
            logger.info(f"Results saved to {cfg.output_dir}")

        logger.info("Analysis complete.")
        return results

    def _save_results(self, results: AnalysisResults) -> None:
        """Save results to output directory."""
        output_path = Path(self.config.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        self.config.save(str(output_path / 'config.json'))
        results.neighbors.to_frame().to_csv(output_path / 'neighbors.csv', index=False)
        results.flows.to_long().to_csv(output_path / 'flows.csv', index=False)
        results.net_migration.to_csv(output_path / 'net_migration.csv')
        results.clusters.local_result.table.to_csv(output_path / 'lisa.csv')

        g = results.clusters.global_result
        pd.DataFrame([{
            'variable': results.clusters.variable,
            'moran_i': g.statistic,
            'expectation': g.expectation,
            'variance': g.variance,
            'z': g.z,
            'p_value': g.p_value,
            'p_sim': g.p_sim,
            'n': g.n,
        }]).to_csv(output_path / 'global_moran.csv', index=False)
