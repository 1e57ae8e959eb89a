"""End-to-end sanitize → aggregate → fit over a tabular dataset.

Data flows strictly left to right::

    DataFrame ──► sanitize_sample(value) ──► aggregate(…, upper) ──► fit(table)
                      │                          │                      │
                  SanitizedSample            CountTable             FittedModel
                      └──────────────────────────┴──────────────────────┘
                                          PipelineResult

The upper quartile bound from the sanitizer doubles as the partition
ceiling, so the bins span exactly the range of retained values.
"""

from __future__ import annotations

import logging
from typing import Any

from ._compat import DataFrameLike, _select_columns
from ._config import DEFAULT_MAX_ITER, DEFAULT_TOL, DEFAULT_WHISKER
from ._results import PipelineResult
from .binning import aggregate
from .fitting import fit
from .sanitize import sanitize_sample

logger = logging.getLogger(__name__)


def run_pipeline(
    data: DataFrameLike,
    value: str,
    category: str,
    width: float,
    *,
    whisker: float = DEFAULT_WHISKER,
    ceiling: float | None = None,
    reference: Any = None,
    densify: bool = False,
    tol: float = DEFAULT_TOL,
    max_iter: int = DEFAULT_MAX_ITER,
    solver: str | None = None,
) -> PipelineResult:
    """Bin *value* into width-*width* intervals and model counts by *category*.

    Args:
        data: pandas DataFrame (or Polars DataFrame/LazyFrame when
            Polars is installed).
        value: Name of the continuous column; may contain missing values.
        category: Name of the categorical column; must not contain
            missing labels.
        width: Bin width, strictly positive.
        whisker: IQR multiplier for the outlier bounds.
        ceiling: Partition ceiling.  Defaults to the sanitizer's upper
            bound.
        reference: Baseline level for the fit (see :func:`~binned_poisson.fit`).
        densify: Fit absent (bin, category) cells as zero counts.
        tol: IRLS convergence tolerance.
        max_iter: IRLS iteration cap.
        solver: ``"irls"`` or ``"statsmodels"``; ``None`` defers to
            :func:`~binned_poisson.get_solver`.

    Returns:
        A :class:`~binned_poisson.PipelineResult` with every stage's
        output.

    Raises:
        TypeError: *data* is not a supported DataFrame type.
        KeyError: *value* or *category* is not a column of *data*.
        InsufficientDataError, InvalidWidthError, OutOfRangeError,
        RankDeficiencyError, ConvergenceError: Propagated unchanged
            from the stage that detected them.
    """
    df = _select_columns(data, value, category, name="data")

    sample = sanitize_sample(df[value], whisker=whisker)
    upper = sample.bounds.upper if ceiling is None else ceiling
    table = aggregate(sample.values, df[category], width=width, upper=upper)
    model = fit(
        table,
        reference=reference,
        densify=densify,
        tol=tol,
        max_iter=max_iter,
        solver=solver,
    )

    logger.info(
        "Pipeline on %r by %r: %d rows, %d replaced, %d cells, %d levels.",
        value,
        category,
        len(sample),
        sample.n_missing + sample.n_outliers,
        len(table),
        len(model.levels),
    )
    return PipelineResult(sample=sample, table=table, model=model)
