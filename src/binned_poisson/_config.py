"""Solver configuration and policy defaults for the binned_poisson package.

Controls which IRLS implementation fits the Poisson model: the explicit
NumPy loop in :mod:`binned_poisson.fitting` or the statsmodels GLM
solver.

Resolution order (first match wins):
    1. An explicit ``solver=`` argument to :func:`~binned_poisson.fit`.
    2. Programmatic override via :func:`set_solver`.
    3. The ``BINNED_POISSON_SOLVER`` environment variable.
    4. ``"irls"``.

Valid solver names are ``"irls"`` and ``"statsmodels"``
(case-insensitive).

Examples:
    Use statsmodels globally from the shell::

        export BINNED_POISSON_SOLVER=statsmodels

    Use statsmodels programmatically::

        import binned_poisson
        binned_poisson.set_solver("statsmodels")

    Restore the default resolution order::

        binned_poisson.set_solver("auto")
"""

from __future__ import annotations

import os

# Quartile rule multiplier: bounds are Q1 - k*IQR and Q3 + k*IQR.
DEFAULT_WHISKER = 1.5

# IRLS stops when |dev - dev_old| / (|dev| + 0.1) drops below this.
DEFAULT_TOL = 1e-8

DEFAULT_MAX_ITER = 25

# Pearson dispersion above this flags the fit as overdispersed.
OVERDISPERSION_THRESHOLD = 1.5

_VALID_SOLVERS = {"irls", "statsmodels", "auto"}

# Sentinel indicating "no programmatic override has been set".
_solver_override: str | None = None


def get_solver() -> str:
    """Return the active solver name (``"irls"`` or ``"statsmodels"``).

    Resolution order:
        1. Value set by :func:`set_solver` (unless ``"auto"``).
        2. ``BINNED_POISSON_SOLVER`` environment variable.
        3. ``"irls"``.

    Returns:
        ``"irls"`` or ``"statsmodels"``.
    """
    # 1. Programmatic override
    if _solver_override is not None and _solver_override != "auto":
        return _solver_override

    # 2. Environment variable
    env = os.environ.get("BINNED_POISSON_SOLVER", "").strip().lower()
    if env in ("irls", "statsmodels"):
        return env

    # 3. Default
    return "irls"


def set_solver(name: str) -> None:
    """Override the solver selection.

    Args:
        name: One of ``"irls"``, ``"statsmodels"``, or ``"auto"``
            (case-insensitive).  ``"auto"`` restores the default
            resolution order.

    Raises:
        ValueError: If *name* is not a recognised solver.
    """
    global _solver_override
    normalised = name.strip().lower()
    if normalised not in _VALID_SOLVERS:
        raise ValueError(
            f"Unknown solver '{name}'. Choose from: {sorted(_VALID_SOLVERS)}"
        )
    _solver_override = normalised


def resolve_solver(name: str | None) -> str:
    """Resolve an explicit per-call solver name, falling back to :func:`get_solver`."""
    if name is None:
        return get_solver()
    normalised = name.strip().lower()
    if normalised == "auto":
        return get_solver()
    if normalised not in _VALID_SOLVERS:
        raise ValueError(
            f"Unknown solver '{name}'. Choose from: {sorted(_VALID_SOLVERS)}"
        )
    return normalised
