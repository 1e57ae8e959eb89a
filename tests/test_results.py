"""Tests for typed result objects: dict access and serialisation."""

from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

from binned_poisson import Bounds, compute_bounds, run_pipeline, sanitize_sample


def _result():
    rng = np.random.default_rng(5)
    n = 300
    df = pd.DataFrame(
        {
            "dep_delay": rng.gamma(2.0, 8.0, size=n),
            "carrier": rng.choice(["AA", "DL"], size=n),
        }
    )
    return run_pipeline(df, "dep_delay", "carrier", width=4.0)


class TestDictAccess:
    def test_getitem(self):
        bounds = compute_bounds([1, 2, 3, 4, 5])
        assert bounds["q1"] == bounds.q1
        assert bounds["upper"] == bounds.upper

    def test_getitem_missing_raises_key_error(self):
        with pytest.raises(KeyError):
            compute_bounds([1, 2, 3])["nonexistent"]

    def test_get_default(self):
        model = _result().model
        assert model.get("aic") == model.aic
        assert model.get("nonexistent", 42) == 42

    def test_contains(self):
        model = _result().model
        assert "pvalues" in model
        assert "nonexistent" not in model
        assert 3 not in model


class TestToDict:
    def test_bounds_includes_derived(self):
        d = Bounds(q1=1.0, q3=3.0, whisker=1.5).to_dict()
        assert d == {"q1": 1.0, "q3": 3.0, "whisker": 1.5, "iqr": 2.0, "lower": -2.0, "upper": 6.0}

    def test_sample_serialisable(self):
        d = sanitize_sample([1.0, None, 3.0, 100.0]).to_dict()
        json.dumps(d)
        assert d["values"][1] == pytest.approx(104.0 / 3.0)
        assert isinstance(d["bounds"], dict)

    def test_model_excludes_bulky_fields(self):
        d = _result().model.to_dict()
        assert "fitted_values" not in d
        assert "cov_params" not in d
        assert isinstance(d["params"], list)
        assert isinstance(d["deviance"], float)

    def test_pipeline_result_serialisable(self):
        d = _result().to_dict()
        text = json.dumps(d)
        assert set(d) == {"sample", "table", "model"}
        assert json.loads(text)["model"]["reference"] == "AA"
