"""Quartile-rule outlier sanitizer.

Replaces missing values and values outside the Tukey fences with the
sample mean.

Bounds
------
Q1 and Q3 are the 25th and 75th percentiles of the non-missing values,
computed with linear interpolation between order statistics (NumPy's
default ``"linear"`` method, Hyndman & Fan type 7):

    lower = Q1 − k · (Q3 − Q1)
    upper = Q3 + k · (Q3 − Q1)

with ``k = 1.5`` by default.  Since Q1 ≤ Q3 always holds, the fences
satisfy lower ≤ Q1 ≤ Q3 ≤ upper; a constant sample collapses both
fences onto that constant.

Replacement
-----------
Every element that is missing, below ``lower``, or above ``upper`` is
replaced by the arithmetic mean of the *original* non-missing values.
The mean is computed before any replacement, so extreme values still
pull it.  Negative values are ordinary values here; clipping to zero
happens later, in :func:`~binned_poisson.binning.aggregate`.

Reference:
    Tukey, J. W. (1977). *Exploratory Data Analysis*. Addison-Wesley.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from ._config import DEFAULT_WHISKER
from ._results import Bounds, SanitizedSample
from ._typing import ValuesLike
from .exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

_MIN_PRESENT = 2


def _as_float_array(values: ValuesLike) -> np.ndarray:
    """Coerce *values* to a float64 array with ``NaN`` for missing entries."""
    # pandas maps None / pd.NA / NaN uniformly to NaN.
    arr = pd.Series(values, dtype="float64").to_numpy(copy=True)
    if np.any(np.isinf(arr)):
        pos = int(np.flatnonzero(np.isinf(arr))[0])
        raise ValueError(
            f"values must be finite or missing; got {arr[pos]} at position {pos}."
        )
    return arr


def _check_whisker(whisker: float) -> None:
    if not np.isfinite(whisker) or whisker < 0:
        raise ValueError(f"whisker must be a non-negative number, got {whisker!r}")


def _present(arr: np.ndarray) -> np.ndarray:
    present = arr[~np.isnan(arr)]
    if present.size < _MIN_PRESENT:
        raise InsufficientDataError(
            f"Quartiles need at least {_MIN_PRESENT} non-missing values; "
            f"got {present.size}.",
            n_found=int(present.size),
            n_required=_MIN_PRESENT,
        )
    return present


def compute_bounds(values: ValuesLike, whisker: float = DEFAULT_WHISKER) -> Bounds:
    """Compute the quartile-rule bounds of *values*.

    Args:
        values: Numeric sample; missing entries (``None``/``NaN``) are
            ignored.
        whisker: IQR multiplier ``k``.

    Returns:
        The :class:`~binned_poisson.Bounds` of the sample.

    Raises:
        InsufficientDataError: Fewer than two non-missing values.
        ValueError: Infinite values or a negative *whisker*.
    """
    _check_whisker(whisker)
    present = _present(_as_float_array(values))
    q1, q3 = np.percentile(present, [25, 75])
    return Bounds(q1=float(q1), q3=float(q3), whisker=float(whisker))


def sanitize_sample(
    values: ValuesLike,
    whisker: float = DEFAULT_WHISKER,
) -> SanitizedSample:
    """Replace missing and out-of-bound values with the sample mean.

    Args:
        values: Numeric sample; missing entries (``None``/``NaN``) are
            replaced.
        whisker: IQR multiplier ``k`` for the bounds.

    Returns:
        A :class:`~binned_poisson.SanitizedSample` carrying the
        sanitized values together with the bounds, the replacement
        mean and a mask of replaced positions.

    Raises:
        InsufficientDataError: Fewer than two non-missing values.
        ValueError: Infinite values or a negative *whisker*.
    """
    _check_whisker(whisker)
    arr = _as_float_array(values)
    present = _present(arr)

    q1, q3 = np.percentile(present, [25, 75])
    bounds = Bounds(q1=float(q1), q3=float(q3), whisker=float(whisker))
    mean = float(np.mean(present))

    missing = np.isnan(arr)
    # NaN compares False, so mask missing entries explicitly.
    outside = ~missing & ~bounds.contains(np.where(missing, bounds.q1, arr))
    replaced = missing | outside

    out = arr.copy()
    out[replaced] = mean

    logger.debug(
        "Sanitized %d values: bounds=[%.6g, %.6g], mean=%.6g, "
        "missing=%d, outliers=%d",
        arr.size,
        bounds.lower,
        bounds.upper,
        mean,
        int(missing.sum()),
        int(outside.sum()),
    )

    return SanitizedSample(
        values=out,
        bounds=bounds,
        mean=mean,
        replaced=replaced,
        n_missing=int(missing.sum()),
        n_outliers=int(outside.sum()),
    )


def sanitize(values: ValuesLike, whisker: float = DEFAULT_WHISKER) -> np.ndarray:
    """Return *values* with missing and out-of-bound entries set to the mean.

    Shorthand for ``sanitize_sample(values, whisker).values``.
    """
    return sanitize_sample(values, whisker).values
