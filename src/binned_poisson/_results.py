"""Typed result objects for the binned-count pipeline.

Frozen dataclasses that provide:

* **Attribute access** — ``model.aic``, ``bounds.upper``, etc.
* **Dict-like access** — ``model["aic"]``, ``model.get("key")``,
  ``"key" in model`` for consumers that prefer bracket syntax.
* **Serialisation** — ``.to_dict()`` returns a plain ``dict[str, Any]``
  with all NumPy types converted to native Python.

Every stage of the pipeline produces one of these objects and never
mutates its input, so they are frozen to communicate that a result is a
snapshot of a completed step.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
import pandas as pd
from scipy import stats

if TYPE_CHECKING:
    from .binning import CountTable

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types.

    Handles nested dicts, lists, np.ndarray, np.integer, np.floating,
    and nested result objects so that :meth:`to_dict` returns a fully
    JSON-serialisable structure.
    """
    if hasattr(obj, "to_dict") and not isinstance(obj, (dict, pd.Series)):
        return obj.to_dict()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, dict):
        return {k: _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


# ------------------------------------------------------------------ #
# Dict-compatibility mixin
# ------------------------------------------------------------------ #


class _DictAccessMixin:
    """Dict-like access convenience for result dataclasses.

    Supports three access patterns:

    1. ``result["key"]``     — raises ``KeyError`` on miss
    2. ``result.get(key, d)`` — returns *d* on miss (default ``None``)
    3. ``"key" in result``   — membership test

    Subclasses may set ``_EXCLUDE_FROM_DICT`` to drop bulky fields
    from :meth:`to_dict`.
    """

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset()

    def __getitem__(self, key: str) -> Any:
        """Attribute lookup via bracket syntax."""
        try:
            return getattr(self, key)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Attribute lookup with a fallback default."""
        return getattr(self, key, default)

    def __contains__(self, key: object) -> bool:
        """Membership test: ``"key" in result``."""
        if not isinstance(key, str):
            return False
        return hasattr(self, key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary.

        Runs :func:`_numpy_to_python` on every value so the returned
        dict is fully JSON-serialisable.
        """
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            if f.name in self._EXCLUDE_FROM_DICT:
                continue
            result[f.name] = _numpy_to_python(getattr(self, f.name))
        return result


# ------------------------------------------------------------------ #
# Sanitizer outputs
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class Bounds(_DictAccessMixin):
    """Quartile-rule bounds computed once per sample."""

    q1: float
    """25th percentile of the non-missing values."""

    q3: float
    """75th percentile of the non-missing values."""

    whisker: float
    """IQR multiplier (1.5 for the Tukey fences)."""

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    @property
    def lower(self) -> float:
        return self.q1 - self.whisker * self.iqr

    @property
    def upper(self) -> float:
        return self.q3 + self.whisker * self.iqr

    def contains(self, values: np.ndarray) -> np.ndarray:
        """Boolean mask of *values* lying in ``[lower, upper]``."""
        values = np.asarray(values, dtype=float)
        return (values >= self.lower) & (values <= self.upper)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out.update(iqr=self.iqr, lower=self.lower, upper=self.upper)
        return out


@dataclass(frozen=True)
class SanitizedSample(_DictAccessMixin):
    """A sample whose missing and out-of-bound values were replaced by the mean."""

    values: np.ndarray
    """Sanitized values, same length and order as the input."""

    bounds: Bounds
    """Quartile bounds the sample was checked against."""

    mean: float
    """Arithmetic mean of the original non-missing values."""

    replaced: np.ndarray
    """Boolean mask, ``True`` where the input was missing or out of bounds."""

    n_missing: int
    """Number of missing inputs."""

    n_outliers: int
    """Number of present inputs that fell outside the bounds."""

    def __post_init__(self) -> None:
        # Freeze the arrays too; the dataclass only freezes attributes.
        self.values.setflags(write=False)
        self.replaced.setflags(write=False)

    def __len__(self) -> int:
        return len(self.values)


# ------------------------------------------------------------------ #
# Fitted model
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class FittedModel(_DictAccessMixin):
    """Result of a Poisson log-link fit over a count table.

    ``params[0]`` is the intercept (log-rate of the reference level);
    ``params[j]`` for ``j >= 1`` is the log rate ratio of
    ``levels[j]`` against the reference.  Attribute names follow the
    statsmodels ``GLMResults`` vocabulary.
    """

    _EXCLUDE_FROM_DICT: ClassVar[frozenset[str]] = frozenset(
        {"fitted_values", "cov_params"}
    )

    # ---- Coefficients -----------------------------------------------
    param_names: list[str]
    """``["Intercept", "category[T.<level>]", ...]``."""

    params: np.ndarray
    """Coefficient estimates, shape ``(k,)``."""

    bse: np.ndarray
    """Standard errors from the inverse Fisher information."""

    zvalues: np.ndarray
    """Wald statistics ``params / bse``."""

    pvalues: np.ndarray
    """Two-sided standard-normal p-values."""

    cov_params: np.ndarray
    """Covariance matrix ``(X'WX)^-1`` at convergence, shape ``(k, k)``."""

    # ---- Levels -----------------------------------------------------
    levels: list[Any]
    """Category levels in design order; ``levels[0]`` is the reference."""

    reference: Any
    """Baseline level absorbed into the intercept."""

    # ---- Goodness of fit --------------------------------------------
    deviance: float
    null_deviance: float
    llf: float
    """Maximised log-likelihood."""

    aic: float
    bic: float
    pearson_chi2: float
    df_resid: int
    df_null: int
    dispersion: float
    """Pearson chi-square over residual degrees of freedom."""

    overdispersed: bool

    # ---- Solver -----------------------------------------------------
    n_observations: int
    """Number of count-table rows that entered the fit."""

    n_iterations: int
    deviance_history: list[float]
    """Deviance after each iteration, starting from the initial guess."""

    solver: str
    """``"irls"`` or ``"statsmodels"``."""

    densified: bool
    """Whether absent (bin, category) cells were fit as zero counts."""

    fitted_values: np.ndarray = field(repr=False, compare=False)
    """Expected counts per row, on the response scale."""

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, np.ndarray):
                value.setflags(write=False)

    @property
    def k(self) -> int:
        """Number of estimated parameters."""
        return len(self.params)

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        """Wald confidence intervals on the log scale."""
        z = stats.norm.ppf(1 - alpha / 2)
        return pd.DataFrame(
            {
                "lower": self.params - z * self.bse,
                "upper": self.params + z * self.bse,
            },
            index=self.param_names,
        )

    def summary_frame(self, alpha: float = 0.05) -> pd.DataFrame:
        """Coefficient table: estimate, std. error, z, p-value and CI."""
        ci = self.conf_int(alpha)
        lo = f"[{alpha / 2:g}"
        hi = f"{1 - alpha / 2:g}]"
        return pd.DataFrame(
            {
                "coef": self.params,
                "std_err": self.bse,
                "z": self.zvalues,
                "p_value": self.pvalues,
                lo: ci["lower"].to_numpy(),
                hi: ci["upper"].to_numpy(),
            },
            index=pd.Index(self.param_names, name="term"),
        )

    def incidence_rate_ratios(self, alpha: float = 0.05) -> pd.DataFrame:
        """Exponentiated coefficients with their confidence intervals.

        The intercept row is the reference level's expected count per
        cell; every other row is a rate ratio against the reference.
        """
        ci = self.conf_int(alpha)
        return pd.DataFrame(
            {
                "irr": np.exp(self.params),
                "lower": np.exp(ci["lower"].to_numpy()),
                "upper": np.exp(ci["upper"].to_numpy()),
            },
            index=pd.Index(self.param_names, name="term"),
        )

    def predicted_rates(self) -> pd.Series:
        """Expected count per (bin, category) cell for every level."""
        eta = np.full(len(self.levels), self.params[0])
        eta[1:] += self.params[1:]
        return pd.Series(np.exp(eta), index=pd.Index(self.levels, name="category"))


# ------------------------------------------------------------------ #
# Pipeline result
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class PipelineResult(_DictAccessMixin):
    """Every artifact of one sanitize → aggregate → fit run."""

    sample: SanitizedSample
    table: CountTable
    model: FittedModel

    @property
    def bounds(self) -> Bounds:
        return self.sample.bounds
