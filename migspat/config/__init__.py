"""Configuration dataclasses and presets for migration spatial analysis."""

from migspat.config.dataclasses import (
    AnalysisConfig,
    FlowConfig,
    MoranConfig,
    NeighborConfig,
    WeightsConfig,
)
from migspat.config.presets import AnalysisPresets

__all__ = [
    "AnalysisConfig",
    "NeighborConfig",
    "WeightsConfig",
    "MoranConfig",
    "FlowConfig",
    "AnalysisPresets",
]
