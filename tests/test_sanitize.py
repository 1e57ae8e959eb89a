"""Tests for the quartile-rule outlier sanitizer."""

import numpy as np
import pandas as pd
import pytest

from binned_poisson.exceptions import InsufficientDataError
from binned_poisson.sanitize import compute_bounds, sanitize, sanitize_sample


def _skewed_sample(n: int = 200, seed: int = 42) -> np.ndarray:
    """Right-skewed delays with a few missing values and extreme outliers."""
    rng = np.random.default_rng(seed)
    values = rng.gamma(2.0, 10.0, size=n) - 5.0
    values[rng.choice(n, size=10, replace=False)] = np.nan
    values[:3] = [500.0, -300.0, 900.0]
    return values


class TestComputeBounds:
    def test_worked_example(self):
        bounds = compute_bounds([1, 2, 100, -5, None])
        assert bounds.q1 == pytest.approx(-0.5)
        assert bounds.q3 == pytest.approx(26.5)
        assert bounds.iqr == pytest.approx(27.0)
        assert bounds.lower == pytest.approx(-41.0)
        assert bounds.upper == pytest.approx(67.0)

    def test_matches_numpy_linear_percentiles(self):
        values = _skewed_sample()
        present = values[~np.isnan(values)]
        q1, q3 = np.percentile(present, [25, 75])
        bounds = compute_bounds(values)
        assert bounds.q1 == pytest.approx(q1)
        assert bounds.q3 == pytest.approx(q3)

    def test_ordering_invariant(self):
        bounds = compute_bounds(_skewed_sample())
        assert bounds.lower <= bounds.q1 <= bounds.q3 <= bounds.upper

    def test_constant_sample_collapses(self):
        bounds = compute_bounds([5.0, 5.0, 5.0, None])
        assert bounds.lower == bounds.upper == 5.0

    def test_custom_whisker(self):
        bounds = compute_bounds([1, 2, 3, 4, 5], whisker=0.0)
        assert bounds.lower == pytest.approx(2.0)
        assert bounds.upper == pytest.approx(4.0)

    def test_negative_whisker_rejected(self):
        with pytest.raises(ValueError, match="whisker"):
            compute_bounds([1, 2, 3], whisker=-1.0)


class TestSanitize:
    def test_worked_example(self):
        out = sanitize([1, 2, 100, -5, None])
        np.testing.assert_allclose(out, [1.0, 2.0, 24.5, -5.0, 24.5])

    def test_negative_within_bounds_survives(self):
        # Clipping to zero belongs to the aggregator, not the sanitizer.
        out = sanitize([1, 2, 100, -5, None])
        assert out[3] == -5.0

    def test_preserves_length(self):
        for n in (2, 5, 37, 200):
            values = _skewed_sample(n=max(n, 20))[:n]
            values[:2] = [1.0, 2.0]
            assert len(sanitize(values)) == n

    def test_identity_on_clean_input(self):
        values = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
        np.testing.assert_array_equal(sanitize(values), values)

    def test_values_in_bounds_or_mean(self):
        values = _skewed_sample()
        sample = sanitize_sample(values)
        out = sample.values
        in_bounds = (out >= sample.bounds.lower) & (out <= sample.bounds.upper)
        assert np.all(in_bounds | (out == sample.mean))

    def test_mean_uses_original_values(self):
        values = _skewed_sample()
        sample = sanitize_sample(values)
        assert sample.mean == pytest.approx(np.nanmean(values))

    def test_replaced_mask_and_counts(self):
        sample = sanitize_sample([1, 2, 100, -5, None])
        np.testing.assert_array_equal(sample.replaced, [False, False, True, False, True])
        assert sample.n_missing == 1
        assert sample.n_outliers == 1

    def test_accepts_series_and_nan(self):
        series = pd.Series([1.0, np.nan, 3.0, 4.0], index=[10, 20, 30, 40])
        out = sanitize(series)
        assert isinstance(out, np.ndarray)
        assert out[1] == pytest.approx(8.0 / 3.0)

    def test_does_not_mutate_input(self):
        values = _skewed_sample()
        before = values.copy()
        sanitize(values)
        np.testing.assert_array_equal(values, before)

    def test_output_is_read_only(self):
        sample = sanitize_sample([1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            sample.values[0] = 99.0

    def test_deterministic(self):
        values = _skewed_sample()
        np.testing.assert_array_equal(sanitize(values), sanitize(values))


class TestSanitizeErrors:
    def test_single_present_value(self):
        with pytest.raises(InsufficientDataError, match="at least 2") as exc:
            sanitize([None, 3.0, None])
        assert exc.value.n_found == 1
        assert exc.value.n_required == 2

    def test_empty_input(self):
        with pytest.raises(InsufficientDataError) as exc:
            sanitize([])
        assert exc.value.n_found == 0

    def test_infinite_value_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            sanitize([1.0, np.inf, 3.0])

    def test_insufficient_data_is_value_error(self):
        with pytest.raises(ValueError):
            sanitize([None])
