"""
Preset configurations for common analysis set-ups.
"""

from migspat.config.dataclasses import AnalysisConfig
from migspat.core.spatial_lag import MissingPolicy
from migspat.core.weights import ZeroPolicy
from migspat.neighbors.kdtree import DistanceMetric


class AnalysisPresets:
    """
    Factory class for preset analysis configurations.

    Example
    -------
    >>> config = AnalysisPresets.default()
    >>> config = AnalysisPresets.get_preset("permutation")
    """

    @staticmethod
    def default() -> AnalysisConfig:
        """
        Default configuration for country-level data.

        - contiguity + 4 nearest neighbors by great-circle distance
        - zero-row weights for isolated regions
        - analytic inference at alpha = 0.05
        """
        return AnalysisConfig()

    @staticmethod
    def strict() -> AnalysisConfig:
        """
        Fail on isolated regions; a lag is defined only when every
        neighbor value is present.
        """
        config = AnalysisConfig()
        config.weights.zero_policy = ZeroPolicy.FAIL
        config.weights.missing_policy = MissingPolicy.PROPAGATE
        return config

    @staticmethod
    def permutation() -> AnalysisConfig:
        """
        Permutation inference with FDR-adjusted LISA clusters.
        """
        config = AnalysisConfig()
        config.moran.permutations = 999
        config.moran.adjust = "bh"
        config.moran.random_seed = 12345
        return config

    @staticmethod
    def planar() -> AnalysisConfig:
        """Projected coordinates: planar k-NN distance."""
        config = AnalysisConfig()
        config.neighbors.distance = DistanceMetric.PLANAR
        return config

    @classmethod
    def get_preset(cls, name: str) -> AnalysisConfig:
        """
        Get a preset configuration by name.

        Raises
        ------
        ValueError
            If the preset name is not recognized.
        """
        presets = {
            "default": cls.default,
            "strict": cls.strict,
            "permutation": cls.permutation,
            "planar": cls.planar,
        }

        if name not in presets:
            available = ", ".join(sorted(presets.keys()))
            raise ValueError(f"Unknown preset: '{name}'. Available: {available}")

        return presets[name]()

    @classmethod
    def list_presets(cls) -> list:
        """List all available preset names."""
        return ["default", "strict", "permutation", "planar"]
