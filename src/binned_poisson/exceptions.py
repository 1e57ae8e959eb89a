"""Error taxonomy for the binned-count Poisson pipeline.

Every error is raised at the point of detection and carries the input
that violated the precondition as attributes, so callers can report it
without parsing the message.  Value-style failures also subclass
``ValueError`` and the solver failure subclasses ``RuntimeError``, so
existing ``except ValueError`` handlers keep working.
"""

from __future__ import annotations

from typing import Any


class BinnedPoissonError(Exception):
    """Base class for all errors raised by this package."""


class InsufficientDataError(BinnedPoissonError, ValueError):
    """Too few non-missing values, rows, or levels for a step."""

    def __init__(self, message: str, *, n_found: int, n_required: int) -> None:
        super().__init__(message)
        self.n_found = n_found
        self.n_required = n_required


class InvalidWidthError(BinnedPoissonError, ValueError):
    """Interval width is not a positive finite number."""

    def __init__(self, width: Any) -> None:
        super().__init__(f"width must be > 0, got {width!r}")
        self.width = width


class OutOfRangeError(BinnedPoissonError, ValueError):
    """A value falls outside the declared partition ceiling."""

    def __init__(
        self,
        message: str,
        *,
        value: float,
        upper: float,
        position: int | None = None,
    ) -> None:
        super().__init__(message)
        self.value = value
        self.upper = upper
        self.position = position


class ConvergenceError(BinnedPoissonError, RuntimeError):
    """The iterative fit reached its iteration cap without converging."""

    def __init__(
        self,
        message: str,
        *,
        n_iterations: int,
        last_change: float,
    ) -> None:
        super().__init__(message)
        self.n_iterations = n_iterations
        self.last_change = last_change


class RankDeficiencyError(BinnedPoissonError, ValueError):
    """The design matrix is degenerate (e.g. a level with zero total count)."""

    def __init__(
        self,
        message: str,
        *,
        level: Any = None,
        rank: int | None = None,
        n_params: int | None = None,
    ) -> None:
        super().__init__(message)
        self.level = level
        self.rank = rank
        self.n_params = n_params
