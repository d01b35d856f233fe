"""
Configuration dataclasses for migration spatial analysis.

One dataclass per stage: neighbor graph, weights, Moran's I inference and
flow estimation. AnalysisConfig combines them and round-trips through JSON.
"""

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

import numpy as np

from migspat.core.spatial_lag import MissingPolicy
from migspat.core.weights import ZeroPolicy
from migspat.flows.estimators import FlowMethod
from migspat.neighbors.kdtree import DistanceMetric


@dataclass
class NeighborConfig:
    """
    Neighbor graph configuration.

    Parameters
    ----------
    k : int
        Number of nearest neighbors by centroid distance.
    distance : DistanceMetric
        Metric for k-NN ranking. GREAT_CIRCLE expects (lon, lat) centroids.
    contiguity : bool
        Whether polygons that touch or overlap are neighbors.
    """

    k: int = 4
    distance: DistanceMetric = DistanceMetric.GREAT_CIRCLE
    contiguity: bool = True


@dataclass
class WeightsConfig:
    """
    Spatial weights configuration.

    Parameters
    ----------
    zero_policy : ZeroPolicy
        Handling of regions without neighbors.
    missing_policy : MissingPolicy
        Handling of missing attribute values in spatial lags.
    """

    zero_policy: ZeroPolicy = ZeroPolicy.ZERO_ROW
    missing_policy: MissingPolicy = MissingPolicy.RENORMALIZE


@dataclass
class MoranConfig:
    """
    Moran's I inference configuration.

    Parameters
    ----------
    alpha : float
        Significance level for LISA cluster flags and residual diagnostics.
    permutations : int
        Number of permutations for pseudo p-values (0 = analytic only).
    adjust : str, optional
        Multiple-testing adjustment for local p-values ("bh", "by",
        "bonferroni").
    random_seed : int, optional
        Seed for permutations.
    """

    alpha: float = 0.05
    permutations: int = 0
    adjust: Optional[str] = None
    random_seed: Optional[int] = None


@dataclass
class FlowConfig:
    """
    Flow estimation configuration.

    Parameters
    ----------
    method : FlowMethod
        Estimation method.
    per : float
        Population base for net migration rates (per ``per`` inhabitants).
    """

    method: FlowMethod = FlowMethod.DENNETT
    per: float = 1000.0


def _convert_to_native(obj: Any) -> Any:
    """Convert numpy types and enums to native Python types for JSON."""
    if isinstance(obj, dict):
        return {k: _convert_to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_to_native(v) for v in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, Enum):
        return obj.value
    else:
        return obj


# Enum-typed fields per section, used when loading JSON
_ENUM_FIELDS = {
    "neighbors": {"distance": DistanceMetric},
    "weights": {"zero_policy": ZeroPolicy, "missing_policy": MissingPolicy},
    "moran": {},
    "flows": {"method": FlowMethod},
}


@dataclass
class AnalysisConfig:
    """
    Complete analysis configuration.

    Example
    -------
    >>> config = AnalysisConfig()
    >>> config.neighbors.k = 6
    >>> config.weights.zero_policy = ZeroPolicy.FAIL
    >>> config.save("analysis.json")
    """

    neighbors: NeighborConfig = field(default_factory=NeighborConfig)
    weights: WeightsConfig = field(default_factory=WeightsConfig)
    moran: MoranConfig = field(default_factory=MoranConfig)
    flows: FlowConfig = field(default_factory=FlowConfig)
    output_dir: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        d = {
            "neighbors": asdict(self.neighbors),
            "weights": asdict(self.weights),
            "moran": asdict(self.moran),
            "flows": asdict(self.flows),
            "output_dir": self.output_dir,
        }
        return _convert_to_native(d)

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, d: dict) -> "AnalysisConfig":
        config = cls()
        for section, enums in _ENUM_FIELDS.items():
            if section not in d:
                continue
            target = getattr(config, section)
            for k, v in d[section].items():
                if not hasattr(target, k):
                    raise ValueError(f"Unknown {section} option: '{k}'")
                if k in enums:
                    v = enums[k](v)
                setattr(target, k, v)
        config.output_dir = d.get("output_dir")
        return config

    @classmethod
    def load(cls, path: str) -> "AnalysisConfig":
        """Load configuration from JSON file."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
