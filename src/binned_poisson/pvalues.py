"""Wald inference and p-value formatting for fitted Poisson models.

Wald z-tests
------------
At the maximum-likelihood estimate β̂ the covariance of the estimator
is approximated by the inverse Fisher information:

    Cov(β̂) ≈ (X' W X)⁻¹,   W = diag(μ̂)

for the canonical log link.  Each coefficient is tested against zero
with

    z_j = β̂_j / SE(β̂_j),   p_j = 2 · (1 − Φ(|z_j|))

using the survival function of the standard normal for numerical
accuracy in the tails (``1 − Φ`` underflows to 0 long before ``sf``).

Significance markers
--------------------
Formatted strings append ``(***)``, ``(**)``, ``(*)`` or ``(ns)`` for
the three thresholds, matching the statsmodels-style tables printed by
:mod:`binned_poisson.display`.
"""

from __future__ import annotations

import numpy as np
from scipy import stats


def wald_test(params: np.ndarray, bse: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Return Wald ``(z, p)`` arrays for *params* with standard errors *bse*.

    Args:
        params: Coefficient estimates, shape ``(k,)``.
        bse: Standard errors, shape ``(k,)``.

    Returns:
        ``(zvalues, pvalues)`` with two-sided standard-normal p-values.
    """
    params = np.asarray(params, dtype=float)
    bse = np.asarray(bse, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        z = params / bse
    p = 2.0 * stats.norm.sf(np.abs(z))
    return z, p


def significance_marker(
    p: float,
    p_value_threshold_one: float = 0.05,
    p_value_threshold_two: float = 0.01,
    p_value_threshold_three: float = 0.001,
) -> str:
    """Return ``"(***)"``, ``"(**)"``, ``"(*)"`` or ``"(ns)"`` for *p*."""
    if p < p_value_threshold_three:
        return "(***)"
    if p < p_value_threshold_two:
        return "(**)"
    if p < p_value_threshold_one:
        return "(*)"
    return "(ns)"


def format_p_value(
    p: float | None,
    precision: int = 3,
    p_value_threshold_one: float = 0.05,
    p_value_threshold_two: float = 0.01,
    p_value_threshold_three: float = 0.001,
) -> str:
    """Format *p* with *precision* decimals and a significance marker.

    Scientific notation is used once the value rounds to zero at the
    requested precision, so tiny p-values never display as ``0.000``.
    """
    if p is None or not np.isfinite(p):
        return "N/A"
    if 0 < p < 10 ** (-precision):
        val = f"{p:.2e}"
    else:
        val = f"{np.round(p, precision):.{precision}f}"
    marker = significance_marker(
        p, p_value_threshold_one, p_value_threshold_two, p_value_threshold_three
    )
    return f"{val} {marker}"
