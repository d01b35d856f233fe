"""Analysis modules for migration spatial diagnostics."""

from migspat.analysis.dyads import build_dyads
from migspat.analysis.migration import (
    ClusterDiagnostics,
    ResidualDiagnostics,
    migration_clusters,
    net_migration,
    residual_diagnostics,
)

__all__ = [
    "build_dyads",
    "ClusterDiagnostics",
    "ResidualDiagnostics",
    "migration_clusters",
    "net_migration",
    "residual_diagnostics",
]
