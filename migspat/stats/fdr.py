"""
Multiple-testing adjustment for local statistics.

A LISA map runs one test per region; adjusting the p-values limits the
number of spurious clusters. Implements:
- Benjamini-Hochberg (BH)
- Benjamini-Yekutieli (BY)
- Bonferroni

NaN p-values (undefined local statistics) are ignored and stay NaN.
"""

from typing import Literal

import numpy as np

METHODS = ("bh", "by", "bonferroni")


def _step_up(sorted_pvalues: np.ndarray, factor: float) -> np.ndarray:
    m = sorted_pvalues.shape[0]
    ranks = np.arange(1, m + 1)
    adjusted = sorted_pvalues * m * factor / ranks
    adjusted = np.minimum.accumulate(adjusted[::-1])[::-1]
    return np.minimum(adjusted, 1.0)


def adjust_pvalues(
    pvalues,
    method: Literal["bh", "by", "bonferroni"] = "bh",
) -> np.ndarray:
    """
    Adjust p-values for multiple comparisons.

    Parameters
    ----------
    pvalues : array-like
        Raw p-values; NaN entries are skipped.
    method : {"bh", "by", "bonferroni"}, default="bh"
        - "bh": Benjamini-Hochberg (controls FDR)
        - "by": Benjamini-Yekutieli (controls FDR under dependency, which
          neighbouring local tests always have)
        - "bonferroni": Bonferroni (controls FWER)

    Returns
    -------
    np.ndarray
        Adjusted p-values, same shape as the input.

    Examples
    --------
    >>> adjust_pvalues([0.01, 0.02, np.nan], method="bonferroni")
    array([0.02, 0.04,  nan])
    """
    if method not in METHODS:
        raise ValueError(f"Unknown method: '{method}'. Use 'bh', 'by', or 'bonferroni'.")

    pvalues = np.asarray(pvalues, dtype=np.float64)
    adjusted = np.full(pvalues.shape, np.nan)

    valid = np.isfinite(pvalues)
    m = int(valid.sum())
    if m == 0:
        return adjusted

    p = pvalues[valid]
    if method == "bonferroni":
        adjusted[valid] = np.minimum(p * m, 1.0)
        return adjusted

    factor = 1.0 if method == "bh" else float(np.sum(1.0 / np.arange(1, m + 1)))
    order = np.argsort(p)
    out = np.empty(m)
    out[order] = _step_up(p[order], factor)
    adjusted[valid] = out
    return adjusted
