"""Tests for normalization functions."""

import numpy as np
import pytest

from migspat.core.normalization import (
    center_vector,
    central_moments,
    check_variance,
    kurtosis,
    standardize_vector,
)
from migspat.exceptions import DegeneracyError, ZeroVarianceError


class TestCenterVector:
    """Tests for center_vector."""

    def test_basic(self):
        assert np.allclose(center_vector([1.0, 2.0, 3.0]), [-1.0, 0.0, 1.0])

    def test_mean_zero(self):
        z = center_vector(np.random.default_rng(1).standard_normal(50) + 10)
        assert abs(z.mean()) < 1e-12


class TestMoments:
    """Tests for central_moments and kurtosis."""

    def test_moments(self):
        m2, m4 = central_moments(np.array([-1.0, 1.0, -2.0, 2.0]))
        assert m2 == pytest.approx(2.5)
        assert m4 == pytest.approx(8.5)

    def test_two_point_kurtosis(self):
        """A symmetric two-point distribution has b2 = 1."""
        assert kurtosis(np.array([-1.0, 1.0, -1.0, 1.0])) == pytest.approx(1.0)


class TestCheckVariance:
    """Tests for check_variance."""

    def test_constant_raises(self):
        with pytest.raises(ZeroVarianceError, match="constant") as excinfo:
            check_variance(np.full(5, 3.0), "global_moran")
        assert excinfo.value.statistic == "global_moran"

    def test_rounding_noise_is_constant(self):
        x = np.full(5, 1e6) + np.array([0.0, 1e-9, 0.0, -1e-9, 0.0])
        with pytest.raises(DegeneracyError):
            check_variance(x, "local_moran")

    def test_varying_passes(self):
        check_variance(np.array([0.0, 0.0, 1.0]), "global_moran")


class TestStandardizeVector:
    """Tests for standardize_vector."""

    def test_basic(self):
        """Test basic standardization."""
        x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        z = standardize_vector(x)

        # Mean should be 0
        assert np.abs(z.mean()) < 1e-10

        # Std should be 1 (population std)
        n = len(z)
        std = np.sqrt(np.sum((z - z.mean()) ** 2) / n)
        assert np.abs(std - 1.0) < 1e-10

    def test_population_std(self):
        """Test that population std (N, not N-1) is used."""
        z = standardize_vector(np.array([1.0, 2.0]))
        assert np.allclose(z, [-1.0, 1.0])

    def test_constant_vector(self):
        """A constant vector has no z-scores."""
        with pytest.raises(ZeroVarianceError):
            standardize_vector(np.array([5.0, 5.0, 5.0, 5.0]))
