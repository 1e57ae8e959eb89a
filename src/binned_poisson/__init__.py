"""binned_poisson — Poisson regression of binned counts by category.

Turns a continuous measurement into event counts over fixed-width
intervals crossed with a categorical grouping variable, then fits a
log-link Poisson GLM of those counts on the category.  The pipeline
runs in three stages: quartile-rule outlier sanitizing, clip-and-bin
aggregation, and an explicit IRLS fit with Wald inference.

Public API:
    .. autosummary::
        run_pipeline
        sanitize
        sanitize_sample
        compute_bounds
        aggregate
        group_counts
        fit
        build_design
        print_fit_table
        print_count_table
        get_solver
        set_solver
        Bounds
        SanitizedSample
        IntervalPartition
        CountTable
        FittedModel
        PipelineResult
        BinnedPoissonError
        InsufficientDataError
        InvalidWidthError
        OutOfRangeError
        ConvergenceError
        RankDeficiencyError
"""

from ._config import get_solver, set_solver
from ._results import Bounds, FittedModel, PipelineResult, SanitizedSample
from .binning import CountTable, IntervalPartition, aggregate, group_counts
from .display import print_count_table, print_fit_table
from .exceptions import (
    BinnedPoissonError,
    ConvergenceError,
    InsufficientDataError,
    InvalidWidthError,
    OutOfRangeError,
    RankDeficiencyError,
)
from .fitting import build_design, fit
from .pipeline import run_pipeline
from .sanitize import compute_bounds, sanitize, sanitize_sample

__all__ = [
    "run_pipeline",
    "sanitize",
    "sanitize_sample",
    "compute_bounds",
    "aggregate",
    "group_counts",
    "fit",
    "build_design",
    "print_fit_table",
    "print_count_table",
    "get_solver",
    "set_solver",
    "Bounds",
    "SanitizedSample",
    "IntervalPartition",
    "CountTable",
    "FittedModel",
    "PipelineResult",
    "BinnedPoissonError",
    "InsufficientDataError",
    "InvalidWidthError",
    "OutOfRangeError",
    "ConvergenceError",
    "RankDeficiencyError",
]

__version__ = "0.1.0"
