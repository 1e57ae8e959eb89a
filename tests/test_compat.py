"""Tests for column extraction at the DataFrame boundary."""

import numpy as np
import pandas as pd
import pytest

from binned_poisson._compat import _select_columns


def _wide() -> pd.DataFrame:
    return pd.DataFrame(
        {"dep_delay": [1.0, 2.0, 3.0], "carrier": ["AA", "DL", "AA"], "tail": ["N1", "N2", "N3"]}
    )


class TestSelectColumnsPandas:
    """Tests for the pandas path."""

    def test_keeps_only_requested_columns(self):
        result = _select_columns(_wide(), "dep_delay", "carrier")
        assert list(result.columns) == ["dep_delay", "carrier"]
        assert result["carrier"].tolist() == ["AA", "DL", "AA"]

    def test_returns_new_frame(self):
        df = _wide()
        result = _select_columns(df, "dep_delay", "carrier")
        assert result is not df
        result.loc[0, "dep_delay"] = 99.0
        assert df.loc[0, "dep_delay"] == 1.0

    def test_repeated_column_kept_once(self):
        result = _select_columns(_wide(), "carrier", "carrier")
        assert list(result.columns) == ["carrier"]

    def test_missing_column(self):
        with pytest.raises(KeyError, match="'arr_delay' not found"):
            _select_columns(_wide(), "dep_delay", "arr_delay")

    def test_rejects_invalid_type(self):
        with pytest.raises(TypeError, match="must be a pandas DataFrame"):
            _select_columns([1, 2, 3], "a")

    def test_error_includes_name(self):
        with pytest.raises(TypeError, match="'flights'"):
            _select_columns({"a": 1}, "a", name="flights")


class TestSelectColumnsPolars:
    """Polars inputs are narrowed, then converted."""

    @pytest.fixture(autouse=True)
    def _polars(self):
        self.pl = pytest.importorskip("polars")

    def test_dataframe_converted(self):
        pl_df = self.pl.from_pandas(_wide())
        result = _select_columns(pl_df, "dep_delay", "carrier")
        assert isinstance(result, pd.DataFrame)
        assert list(result.columns) == ["dep_delay", "carrier"]
        assert result["dep_delay"].tolist() == [1.0, 2.0, 3.0]

    def test_lazyframe_collects_selected_columns(self):
        lf = self.pl.from_pandas(_wide()).lazy()
        result = _select_columns(lf, "carrier")
        assert isinstance(result, pd.DataFrame)
        assert list(result.columns) == ["carrier"]

    def test_lazyframe_missing_column(self):
        lf = self.pl.from_pandas(_wide()).lazy()
        with pytest.raises(KeyError, match="'arr_delay' not found"):
            _select_columns(lf, "arr_delay")

    def test_pipeline_accepts_polars(self):
        from binned_poisson import run_pipeline

        rng = np.random.default_rng(3)
        n = 200
        carrier = rng.choice(["AA", "UA"], size=n)
        delay = rng.gamma(2.0, 5.0, size=n)
        pl_df = self.pl.DataFrame({"dep_delay": delay, "carrier": carrier})
        pd_df = pd.DataFrame({"dep_delay": delay, "carrier": carrier})

        a = run_pipeline(pl_df, "dep_delay", "carrier", width=5.0)
        b = run_pipeline(pd_df, "dep_delay", "carrier", width=5.0)
        np.testing.assert_allclose(a.model.params, b.model.params)
