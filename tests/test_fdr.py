"""Tests for p-value adjustment."""

import numpy as np
import pytest

from migspat.stats.fdr import adjust_pvalues


class TestAdjustPvalues:
    """Tests for adjust_pvalues."""

    def test_bonferroni(self):
        """Test Bonferroni correction."""
        pvalues = np.array([0.01, 0.02, 0.03, 0.04, 0.05])
        result = adjust_pvalues(pvalues, method="bonferroni")

        expected = pvalues * len(pvalues)
        assert np.allclose(result, expected)

    def test_bonferroni_capped(self):
        """Test Bonferroni doesn't exceed 1."""
        result = adjust_pvalues(np.array([0.5, 0.8]), method="bonferroni")
        assert np.all(result <= 1.0)

    def test_bh_known_values(self):
        pvalues = np.array([0.01, 0.04, 0.03, 0.005])
        result = adjust_pvalues(pvalues, method="bh")

        assert np.allclose(result, [0.02, 0.04, 0.04, 0.02])

    def test_bh_basic(self):
        """BH adjusted p-values are never below the raw ones."""
        pvalues = np.array([0.01, 0.04, 0.05])
        assert np.all(adjust_pvalues(pvalues, method="bh") >= pvalues)

    def test_bh_monotonicity(self):
        """Test BH maintains monotonicity."""
        pvalues = np.array([0.001, 0.01, 0.02, 0.05, 0.1])
        result = adjust_pvalues(pvalues, method="bh")

        sorted_idx = np.argsort(pvalues)
        sorted_adj = result[sorted_idx]
        assert np.all(sorted_adj[1:] >= sorted_adj[:-1])

    def test_by_more_conservative(self):
        """Test BY is more conservative than BH."""
        pvalues = np.array([0.01, 0.02, 0.03])

        bh = adjust_pvalues(pvalues, method="bh")
        by = adjust_pvalues(pvalues, method="by")

        assert np.all(by >= bh)

    def test_nan_ignored(self):
        """Undefined local statistics do not count as tests."""
        result = adjust_pvalues(np.array([0.01, np.nan, 0.02]), method="bonferroni")

        assert np.allclose(result[[0, 2]], [0.02, 0.04])
        assert np.isnan(result[1])

    def test_all_nan(self):
        assert np.all(np.isnan(adjust_pvalues(np.array([np.nan, np.nan]))))

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown method"):
            adjust_pvalues(np.array([0.1]), method="holm")
