"""Statistical testing modules."""

from migspat.stats.fdr import adjust_pvalues
from migspat.stats.permutation import conditional_permutation_test, global_permutation_test

__all__ = [
    "adjust_pvalues",
    "global_permutation_test",
    "conditional_permutation_test",
]
