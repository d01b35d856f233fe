"""Tests for spatial lag computation."""

import numpy as np
import pandas as pd
import pytest

from migspat.core.spatial_lag import MissingPolicy, compute_spatial_lag, lag, lag_series
from migspat.core.weights import ZeroPolicy, standardize
from migspat.exceptions import InputError, PolicyError
from migspat.neighbors.graph import NeighborList


class TestLag:
    """Tests for lag."""

    def test_line(self, line_weights):
        assert np.allclose(lag(line_weights, [1.0, 2.0, 5.0]), [2.0, 3.0, 2.0])

    def test_single_neighbor_exact(self, line_weights):
        """A region with one neighbor j gets exactly x[j]."""
        x = np.array([0.1, 0.7, 1e-17])
        out = lag(line_weights, x)
        assert out[0] == x[1]
        assert out[2] == x[1]

    def test_middle_is_mean_of_neighbors(self, line_weights):
        x = {"A": 3.3, "B": -1.0, "C": 10.1}
        assert lag(line_weights, x)[1] == pytest.approx((3.3 + 10.1) / 2)

    def test_island_is_nan(self):
        weights = standardize(NeighborList.from_mapping({"A": ["B"], "B": ["A"], "C": []}))
        out = lag(weights, [1.0, 2.0, 3.0])

        assert np.allclose(out[:2], [2.0, 1.0])
        assert np.isnan(out[2])

    def test_renormalize_missing(self, line_weights):
        out = lag(line_weights, [1.0, np.nan, 5.0], missing_policy=MissingPolicy.RENORMALIZE)

        assert out[1] == pytest.approx(3.0)
        # A and C have only the missing neighbor
        assert np.isnan(out[0])
        assert np.isnan(out[2])

    def test_renormalize_partial(self, line_weights):
        out = lag(line_weights, [np.nan, 2.0, 5.0])
        assert out[1] == pytest.approx(5.0)

    def test_propagate_missing(self):
        nl = NeighborList.from_mapping({"A": ["B"], "B": ["A", "C"], "C": ["B"]})
        weights = standardize(nl, missing_policy="propagate")
        out = lag(weights, [np.nan, 2.0, 5.0])

        assert np.isnan(out[1])
        assert out[2] == pytest.approx(2.0)

    def test_island_not_in_others_lag(self):
        """An island linked from B adds nothing to B's lag."""
        nl = NeighborList.from_mapping({"A": [], "B": ["A", "C"], "C": ["B", "D"], "D": ["C"]})
        weights = standardize(nl, zero_policy="zero-row")
        out = lag(weights, [100.0, 1.0, 2.0, 3.0])

        assert np.isnan(out[0])
        assert out[1] == pytest.approx(2.0)
        assert out[2] == pytest.approx(2.0)

    def test_missing_never_zero_filled(self, line_weights):
        out = lag(line_weights, {"A": 4.0, "C": 8.0})
        assert np.isnan(out[0])
        assert out[1] == pytest.approx(6.0)

    def test_infinite_rejected(self, line_weights):
        with pytest.raises(InputError, match="infinite"):
            lag(line_weights, [1.0, np.inf, 2.0])

    def test_policy_mismatch(self, line_weights):
        with pytest.raises(PolicyError):
            lag(line_weights, [1.0, 2.0, 3.0], zero_policy=ZeroPolicy.FAIL)

    def test_missing_policy_mismatch(self, line_weights):
        with pytest.raises(PolicyError, match="missing policy"):
            lag(line_weights, [1.0, 2.0, 3.0], missing_policy="propagate")

    def test_input_not_modified(self, line_weights):
        x = np.array([1.0, np.nan, 3.0])
        lag(line_weights, x)
        assert np.isnan(x[1]) and x[0] == 1.0


class TestLagSeries:
    """Tests for lag_series."""

    def test_indexed_by_region(self, line_weights):
        s = lag_series(line_weights, pd.Series({"C": 5.0, "A": 1.0, "B": 2.0}), name="lag_x")

        assert s.name == "lag_x"
        assert s.index.name == "region"
        assert s.to_dict() == pytest.approx({"A": 2.0, "B": 3.0, "C": 2.0})


class TestComputeSpatialLag:
    """Tests for compute_spatial_lag on raw matrices."""

    def test_matches_dense_product(self, grid4_weights):
        rng = np.random.default_rng(3)
        x = rng.standard_normal(16)
        expected = grid4_weights.sparse.toarray() @ x

        assert np.allclose(compute_spatial_lag(grid4_weights.sparse, x), expected)
