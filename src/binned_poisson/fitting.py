"""Poisson log-link regression of binned counts on one categorical predictor.

Model
-----
Each row of a :class:`~binned_poisson.binning.CountTable` is one
observation: the count of sample rows in a (bin, category) cell.  The
model is

    E[count | category = c] = μ_c = exp(β₀ + β_c)

with dummy coding: the reference level's β is fixed at 0 and absorbed
into the intercept, so β₀ is the reference log-rate and β_c is the log
rate ratio of level c against the reference.  The reference defaults
to the first level in lexicographic order of ``str(level)``.

With a single categorical predictor the MLE has the closed form
μ̂_c = mean count of level c's rows.  The iterative solver still runs
in full so that its convergence behaviour is explicit and inspectable.

IRLS
----
Iteratively reweighted least squares for the canonical log link:

    start:   μ⁽⁰⁾ = y + 0.1,  η⁽⁰⁾ = log μ⁽⁰⁾
    repeat:  z = η + (y − μ)/μ      (working response)
             W = diag(μ)            (working weights)
             β = (X'WX)⁻¹ X'Wz
             η = Xβ,  μ = exp(η)
    until:   |D − D_old| / (|D| + 0.1) < tol

where D is the Poisson deviance.  Reaching ``max_iter`` first raises
:class:`~binned_poisson.exceptions.ConvergenceError`.  This is the
criterion and starting point used by R's ``glm.fit``.

The ``"statsmodels"`` solver runs the same algorithm through
``statsmodels.api.GLM(...).fit(method="IRLS")``; its stopping rule is
absolute (``|D − D_old| < tol``).  Both solvers hand β̂ to one shared
finalisation step, so standard errors, deviances and information
criteria are computed identically.

Zero-count levels
-----------------
A level whose cells all hold zero drives its MLE to −∞ (μ̂_c = 0), so
the information matrix becomes singular in the limit.  Such levels are
rejected up front with :class:`~binned_poisson.exceptions.RankDeficiencyError`
rather than left to the solver.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any

import numpy as np
import statsmodels.api as sm
from scipy.special import gammaln
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
)

from ._config import (
    DEFAULT_MAX_ITER,
    DEFAULT_TOL,
    OVERDISPERSION_THRESHOLD,
    resolve_solver,
)
from ._results import FittedModel
from .binning import CountTable
from .exceptions import ConvergenceError, InsufficientDataError, RankDeficiencyError
from .pvalues import wald_test

logger = logging.getLogger(__name__)

_MIN_LEVELS = 2


# ------------------------------------------------------------------ #
# Deviance & likelihood
# ------------------------------------------------------------------ #


def poisson_deviance(y: np.ndarray, mu: np.ndarray) -> float:
    """Poisson deviance: 2 Σ[y log(y/μ̂) − (y − μ̂)].

    The convention 0·log(0/μ̂) = 0 is applied by masking, which avoids
    evaluating log(0).
    """
    y = np.asarray(y, dtype=float)
    mu = np.maximum(np.asarray(mu, dtype=float), 1e-300)
    pos = y > 0
    contrib = np.zeros_like(y)
    contrib[pos] = y[pos] * np.log(y[pos] / mu[pos])
    return float(2.0 * np.sum(contrib - (y - mu)))


def poisson_loglik(y: np.ndarray, mu: np.ndarray) -> float:
    """Full Poisson log-likelihood Σ[y log μ − μ − log y!]."""
    y = np.asarray(y, dtype=float)
    mu = np.asarray(mu, dtype=float)
    pos = y > 0
    ylogmu = np.zeros_like(y)
    ylogmu[pos] = y[pos] * np.log(mu[pos])
    return float(np.sum(ylogmu - mu - gammaln(y + 1.0)))


# ------------------------------------------------------------------ #
# Design matrix
# ------------------------------------------------------------------ #


def _order_levels(levels: list[Any], reference: Any) -> list[Any]:
    if reference is None:
        return list(levels)
    if reference not in levels:
        raise ValueError(
            f"Reference level {reference!r} not found. Available: {levels}"
        )
    return [reference] + [lvl for lvl in levels if lvl != reference]


def build_design(
    table: CountTable,
    reference: Any = None,
) -> tuple[np.ndarray, np.ndarray, list[Any], list[str]]:
    """Dummy-coded design matrix for ``count ~ category``.

    Returns:
        ``(X, y, levels, param_names)`` where ``X`` has an intercept
        column followed by one indicator column per non-reference
        level, ``levels[0]`` is the reference, and ``param_names``
        follows the patsy ``category[T.<level>]`` convention.
    """
    levels = _order_levels(table.levels, reference)
    frame = table.frame
    cats = frame["category"].to_numpy()
    y = frame["count"].to_numpy(dtype=float)

    X = np.ones((len(y), len(levels)), dtype=float)
    for j, level in enumerate(levels[1:], start=1):
        X[:, j] = cats == level

    param_names = ["Intercept"] + [f"category[T.{lvl}]" for lvl in levels[1:]]
    return X, y, levels, param_names


def _check_preconditions(
    table: CountTable,
    X: np.ndarray,
    levels: list[Any],
) -> None:
    n_levels = len(levels)
    if n_levels < _MIN_LEVELS:
        raise InsufficientDataError(
            f"Poisson fit needs at least {_MIN_LEVELS} category levels; "
            f"got {n_levels} ({levels}).",
            n_found=n_levels,
            n_required=_MIN_LEVELS,
        )

    n_obs, n_params = X.shape
    if n_obs < n_params:
        raise InsufficientDataError(
            f"Poisson fit needs at least {n_params} rows for {n_params} "
            f"parameters; got {n_obs}.",
            n_found=n_obs,
            n_required=n_params,
        )

    totals = table.category_totals()
    for level in levels:
        if totals[level] == 0:
            raise RankDeficiencyError(
                f"Category level {level!r} has zero total count across all "
                f"bins; its rate ratio is not estimable.",
                level=level,
                n_params=n_params,
            )

    rank = int(np.linalg.matrix_rank(X))
    if rank < n_params:
        raise RankDeficiencyError(
            f"Design matrix has rank {rank} but {n_params} parameters.",
            rank=rank,
            n_params=n_params,
        )


# ------------------------------------------------------------------ #
# Solvers
# ------------------------------------------------------------------ #


def _irls(
    X: np.ndarray,
    y: np.ndarray,
    tol: float,
    max_iter: int,
) -> tuple[np.ndarray, list[float], int]:
    """Explicit IRLS loop.  Returns ``(beta, deviance_history, n_iter)``."""
    mu = y + 0.1
    eta = np.log(mu)
    dev_old = poisson_deviance(y, mu)
    history = [dev_old]
    change = float("inf")

    for it in range(1, max_iter + 1):
        z = eta + (y - mu) / mu
        XtW = X.T * mu[np.newaxis, :]
        try:
            beta = np.linalg.solve(XtW @ X, XtW @ z)
        except np.linalg.LinAlgError as exc:
            raise RankDeficiencyError(
                f"Weighted normal equations became singular at iteration {it}.",
                n_params=X.shape[1],
            ) from exc
        eta = X @ beta
        mu = np.exp(eta)
        dev = poisson_deviance(y, mu)
        history.append(dev)

        change = abs(dev - dev_old) / (abs(dev) + 0.1)
        logger.debug("IRLS iteration %d: deviance=%.10g change=%.3e", it, dev, change)
        if change < tol:
            return beta, history, it
        dev_old = dev

    raise ConvergenceError(
        f"IRLS did not converge in {max_iter} iterations "
        f"(last relative deviance change {change:.3e}, tol {tol:g}).",
        n_iterations=max_iter,
        last_change=change,
    )


def _statsmodels_irls(
    X: np.ndarray,
    y: np.ndarray,
    tol: float,
    max_iter: int,
) -> tuple[np.ndarray, list[float], int]:
    """IRLS via statsmodels GLM.  Returns ``(beta, deviance_history, n_iter)``."""
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=SmConvergenceWarning)
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        model = sm.GLM(y, X, family=sm.families.Poisson()).fit(
            method="IRLS", maxiter=max_iter, tol=tol, disp=0
        )

    history = [float(d) for d in model.fit_history["deviance"] if np.isfinite(d)]
    n_iter = int(model.fit_history["iteration"])
    if not model.converged:
        last_change = abs(history[-1] - history[-2]) if len(history) > 1 else float("inf")
        raise ConvergenceError(
            f"statsmodels IRLS did not converge in {max_iter} iterations "
            f"(last deviance change {last_change:.3e}, tol {tol:g}).",
            n_iterations=n_iter,
            last_change=last_change,
        )
    return np.array(model.params, dtype=float), history, n_iter


_SOLVERS = {
    "irls": _irls,
    "statsmodels": _statsmodels_irls,
}


# ------------------------------------------------------------------ #
# Finalisation
# ------------------------------------------------------------------ #


def _finalise(
    *,
    X: np.ndarray,
    y: np.ndarray,
    beta: np.ndarray,
    levels: list[Any],
    param_names: list[str],
    history: list[float],
    n_iter: int,
    solver: str,
    densified: bool,
) -> FittedModel:
    n, k = X.shape
    mu = np.exp(X @ beta)

    info = (X.T * mu[np.newaxis, :]) @ X
    try:
        cov = np.linalg.inv(info)
    except np.linalg.LinAlgError as exc:
        raise RankDeficiencyError(
            "Fisher information is singular at the solution.", n_params=k
        ) from exc
    bse = np.sqrt(np.diag(cov))
    zvalues, pvalues = wald_test(beta, bse)

    llf = poisson_loglik(y, mu)
    pearson_chi2 = float(np.sum((y - mu) ** 2 / mu))
    df_resid = n - k
    dispersion = pearson_chi2 / df_resid if df_resid > 0 else float("nan")

    return FittedModel(
        param_names=param_names,
        params=beta,
        bse=bse,
        zvalues=zvalues,
        pvalues=pvalues,
        cov_params=cov,
        levels=levels,
        reference=levels[0],
        deviance=poisson_deviance(y, mu),
        null_deviance=poisson_deviance(y, np.full(n, y.mean())),
        llf=llf,
        aic=-2.0 * llf + 2.0 * k,
        bic=-2.0 * llf + k * np.log(n),
        pearson_chi2=pearson_chi2,
        df_resid=df_resid,
        df_null=n - 1,
        dispersion=dispersion,
        overdispersed=bool(dispersion > OVERDISPERSION_THRESHOLD),
        n_observations=n,
        n_iterations=n_iter,
        deviance_history=history,
        solver=solver,
        densified=densified,
        fitted_values=mu,
    )


# ------------------------------------------------------------------ #
# Public entry point
# ------------------------------------------------------------------ #


def fit(
    table: CountTable,
    *,
    reference: Any = None,
    densify: bool = False,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
    solver: str | None = None,
) -> FittedModel:
    """Fit ``log E[count] = β₀ + β_category`` by maximum likelihood.

    Args:
        table: Count table from :func:`~binned_poisson.aggregate`.
        reference: Baseline level.  Defaults to the first level in
            lexicographic order of its string form.
        densify: When ``True``, absent (bin, category) cells enter the
            fit as zero counts (see :meth:`CountTable.densify`).  When
            ``False`` (default) they are not observations at all.
        tol: Convergence tolerance on the deviance change.
        max_iter: Iteration cap.
        solver: ``"irls"`` or ``"statsmodels"``.  ``None`` defers to
            :func:`~binned_poisson.get_solver`.

    Returns:
        An immutable :class:`~binned_poisson.FittedModel`.

    Raises:
        InsufficientDataError: Fewer than two levels, or fewer rows
            than parameters.
        RankDeficiencyError: A level has zero total count, or the
            design matrix is not of full column rank.
        ConvergenceError: *max_iter* reached before convergence.
        ValueError: Unknown *reference* or *solver*, or a bad *tol* /
            *max_iter*.
    """
    if not tol > 0:
        raise ValueError(f"tol must be > 0, got {tol!r}")
    if int(max_iter) < 1:
        raise ValueError(f"max_iter must be >= 1, got {max_iter!r}")
    solver_name = resolve_solver(solver)

    if densify:
        table = table.densify()

    X, y, levels, param_names = build_design(table, reference)
    _check_preconditions(table, X, levels)

    beta, history, n_iter = _SOLVERS[solver_name](X, y, tol, int(max_iter))

    model = _finalise(
        X=X,
        y=y,
        beta=beta,
        levels=levels,
        param_names=param_names,
        history=history,
        n_iter=n_iter,
        solver=solver_name,
        densified=densify,
    )
    logger.info(
        "Poisson fit converged in %d iterations (%s): deviance=%.6g, AIC=%.6g, "
        "reference=%r.",
        n_iter,
        solver_name,
        model.deviance,
        model.aic,
        model.reference,
    )
    return model
