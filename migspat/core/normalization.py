"""
Centring and sample moments for autocorrelation statistics.

All moments use the population convention (divide by N, not N-1), which is
what the Moran's I moment formulas are written in.
"""

import numpy as np

from migspat.exceptions import ZeroVarianceError

# Relative tolerance under which a variance is considered zero
VARIANCE_RTOL = 1e-12


def center_vector(x) -> np.ndarray:
    """
    Deviations from the mean.

    Examples
    --------
    >>> center_vector([1.0, 2.0, 3.0])
    array([-1.,  0.,  1.])
    """
    x_arr = np.asarray(x, dtype=np.float64).ravel()
    return x_arr - x_arr.mean()


def central_moments(z) -> tuple[float, float]:
    """
    Second and fourth central moments of already-centred values.

    Returns
    -------
    tuple
        (m2, m4) with m2 = sum(z^2) / n and m4 = sum(z^4) / n.
    """
    z = np.asarray(z, dtype=np.float64)
    n = z.shape[0]
    return float(np.sum(z**2) / n), float(np.sum(z**4) / n)


def kurtosis(z) -> float:
    """Sample kurtosis b2 = m4 / m2^2 of centred values."""
    m2, m4 = central_moments(z)
    return m4 / (m2 * m2)


def check_variance(x, statistic: str) -> None:
    """
    Raise ZeroVarianceError when ``x`` is constant.

    A tolerance relative to the magnitude of ``x`` is used so that values
    equal up to floating rounding are treated as constant.
    """
    x = np.asarray(x, dtype=np.float64)
    spread = float(np.max(x) - np.min(x)) if x.size else 0.0
    scale = max(float(np.max(np.abs(x))) if x.size else 0.0, 1.0)
    if spread <= VARIANCE_RTOL * scale:
        raise ZeroVarianceError(
            f"{statistic}: attribute is constant over {x.size} regions; "
            "spatial autocorrelation is not defined.",
            statistic=statistic,
        )


def standardize_vector(x) -> np.ndarray:
    """
    Z-score standardization of a vector.

    Computes (x - mean(x)) / std(x) using population standard deviation.

    Raises
    ------
    ZeroVarianceError
        If ``x`` is constant; a constant vector has no z-scores.
    """
    x_arr = np.asarray(x, dtype=np.float64).ravel()
    check_variance(x_arr, "standardize")
    z = x_arr - x_arr.mean()
    return z / np.sqrt(np.sum(z**2) / z.shape[0])
