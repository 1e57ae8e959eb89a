"""Tests for the pvalues module."""

import numpy as np
import pytest
from scipy import stats

from binned_poisson.pvalues import format_p_value, significance_marker, wald_test


class TestWaldTest:
    def test_matches_normal_tail(self):
        z, p = wald_test(np.array([1.96, -1.0]), np.array([1.0, 0.5]))
        np.testing.assert_allclose(z, [1.96, -2.0])
        np.testing.assert_allclose(p, 2 * stats.norm.sf([1.96, 2.0]))
        assert p[0] == pytest.approx(0.05, abs=1e-3)

    def test_tiny_p_values_not_zero(self):
        _, p = wald_test(np.array([30.0]), np.array([1.0]))
        assert p[0] > 0

    def test_zero_estimate(self):
        z, p = wald_test(np.array([0.0]), np.array([0.3]))
        assert z[0] == 0.0
        assert p[0] == pytest.approx(1.0)


class TestFormatting:
    @pytest.mark.parametrize(
        "p,marker",
        [(0.0005, "(***)"), (0.005, "(**)"), (0.03, "(*)"), (0.2, "(ns)")],
    )
    def test_markers(self, p, marker):
        assert significance_marker(p) == marker
        assert format_p_value(p).endswith(marker)

    def test_precision(self):
        assert format_p_value(0.12345, precision=3) == "0.123 (ns)"

    def test_tiny_value_uses_scientific(self):
        assert format_p_value(1.5e-9).startswith("1.50e-09")

    def test_missing(self):
        assert format_p_value(None) == "N/A"
        assert format_p_value(float("nan")) == "N/A"
