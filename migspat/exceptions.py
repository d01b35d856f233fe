"""
Error taxonomy for migspat.

Three families:
- InputError: bad or unresolvable input data (recovered locally where possible)
- DegeneracyError: a statistic is not computable for the supplied data
- PolicyError: inconsistent zero-neighbor policy across calls
"""

from typing import Iterable, Optional


class MigspatError(Exception):
    """Base class for all migspat errors."""


class InputError(MigspatError, ValueError):
    """Invalid input: non-finite values, negative stock, misaligned vectors."""


class GeometryError(InputError):
    """Geometry could not be parsed."""


class DegeneracyError(MigspatError, ArithmeticError):
    """
    A statistic is not computable (as opposed to computed as zero).

    Parameters
    ----------
    message : str
        Human-readable description.
    statistic : str, optional
        Name of the statistic that failed, e.g. "global_moran".
    """

    def __init__(self, message: str, statistic: Optional[str] = None):
        super().__init__(message)
        self.statistic = statistic


class ZeroVarianceError(DegeneracyError):
    """Attribute vector is constant over the active regions."""


class InsufficientRegionsError(DegeneracyError):
    """Too few regions for the requested computation."""


class IsolatedRegionError(DegeneracyError):
    """One or more regions have no neighbors under ZeroPolicy.FAIL."""

    def __init__(self, region_ids: Iterable, statistic: Optional[str] = None):
        self.region_ids = tuple(region_ids)
        shown = ", ".join(str(r) for r in self.region_ids[:10])
        if len(self.region_ids) > 10:
            shown += f", ... ({len(self.region_ids)} total)"
        super().__init__(f"Regions without neighbors: {shown}", statistic=statistic)


class PolicyError(MigspatError, ValueError):
    """Zero-neighbor policy of a call does not match the weights it uses."""
