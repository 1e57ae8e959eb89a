"""Fixed-width discretization and (bin, category) aggregation.

Partition
---------
The interval partition covers exactly ``[0, upper]`` with
``max(1, ceil(upper / width))`` contiguous bins, closed on the right:

    [0, w], (w, 2w], (2w, 3w], …, ((n−1)w, upper]

The first bin is closed at both ends so that values clipped to exactly
zero are counted, and the last bin ends at ``upper`` rather than at the
next multiple of ``w``.  Bin ``i`` holds the values in
``(edges[i], edges[i + 1]]``, located by a binary search over the edges
themselves, so a value always lands in the bin its label names;
``v == 0`` lands in bin 0.  Edges and the bin count are taken to 12
significant digits, so decimal widths such as 0.7 over a ceiling of
2.1 give three bins, not a fourth of zero width.

Aggregation
-----------
Values are first clipped to ``max(v, 0)`` — always *after* the
sanitizer has run, never merged into it — then binned, then counted per
(bin, category).  Combinations with no members are absent from the
table, not zero rows; :meth:`CountTable.densify` materialises them on
request.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from ._typing import CategoriesLike, ValuesLike
from .exceptions import InvalidWidthError, OutOfRangeError

logger = logging.getLogger(__name__)

_KEYS = ["bin", "interval", "category"]
_COLUMNS = [*_KEYS, "count"]


def _sorted_levels(categories: Any) -> list[Any]:
    """Distinct labels in lexicographic order of their string form."""
    return sorted(pd.unique(pd.Series(categories, dtype=object)), key=str)


def _sort_key(col: pd.Series) -> pd.Series:
    return col.astype(str) if col.name == "category" else col


# ------------------------------------------------------------------ #
# IntervalPartition
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class IntervalPartition:
    """Contiguous fixed-width bins spanning ``[0, upper]``."""

    width: float
    upper: float

    def __post_init__(self) -> None:
        if not _is_valid_width(self.width):
            raise InvalidWidthError(self.width)
        if not np.isfinite(self.upper) or self.upper < 0:
            raise OutOfRangeError(
                f"Partition ceiling must be a finite value >= 0, got {self.upper!r}.",
                value=float(self.upper),
                upper=float(self.upper),
            )

    @property
    def n_bins(self) -> int:
        """``ceil(upper / width)``, at least 1, ignoring rounding noise in the ratio."""
        ratio = _snap(self.upper / self.width)
        return max(1, math.ceil(ratio))

    @property
    def edges(self) -> np.ndarray:
        """Bin edges ``[0, w, 2w, …, (n−1)w, upper]``, length ``n_bins + 1``.

        Edges are rounded to 12 significant digits, so a width of 0.3
        yields an edge at exactly ``0.9`` rather than
        ``0.8999999999999999``.
        """
        inner = np.array([_snap(k * float(self.width)) for k in range(self.n_bins)])
        return np.append(inner, float(self.upper))

    def interval(self, index: int) -> pd.Interval:
        """Return bin *index* as a :class:`pandas.Interval`."""
        edges = self.edges
        closed = "both" if index == 0 else "right"
        return pd.Interval(float(edges[index]), float(edges[index + 1]), closed=closed)

    def labels(self) -> list[str]:
        """Human-readable bin labels, e.g. ``["[0, 3]", "(3, 6]"]``."""
        edges = self.edges
        out = [f"[0, {edges[1]:g}]"]
        out.extend(f"({lo:g}, {hi:g}]" for lo, hi in zip(edges[1:-1], edges[2:]))
        return out

    def locate(self, values: np.ndarray) -> np.ndarray:
        """Return the bin index of every value in *values*.

        Raises:
            OutOfRangeError: A value is negative, above ``upper``, or NaN.
        """
        values = np.asarray(values, dtype=float)
        bad = np.isnan(values) | (values < 0) | (values > self.upper)
        if np.any(bad):
            pos = int(np.flatnonzero(bad)[0])
            value = float(values[pos])
            raise OutOfRangeError(
                f"Value {value} at position {pos} is outside the partition "
                f"[0, {self.upper:g}].",
                value=value,
                upper=float(self.upper),
                position=pos,
            )
        # Right-closed bins: an edge value belongs to the bin it closes.
        idx = np.searchsorted(self.edges, values, side="left") - 1
        return np.clip(idx, 0, self.n_bins - 1).astype(np.int64)


def _snap(x: float) -> float:
    """Round *x* to 12 significant digits to absorb floating-point noise."""
    return float(f"{x:.12g}")


def _is_valid_width(width: Any) -> bool:
    try:
        w = float(width)
    except (TypeError, ValueError):
        return False
    return bool(np.isfinite(w) and w > 0)


# ------------------------------------------------------------------ #
# CountTable
# ------------------------------------------------------------------ #


@dataclass(frozen=True, init=False)
class CountTable:
    """Counts per observed (bin, category) pair.

    ``frame`` has one row per distinct pair with columns ``bin``
    (integer index into ``partition``), ``interval`` (label),
    ``category`` and ``count``, sorted by bin then category.  The table
    keeps its own copy of the rows and :attr:`frame` hands out a fresh
    copy on every access, so edits to it never reach the table.
    """

    _frame: pd.DataFrame = field(repr=False, compare=False)
    partition: IntervalPartition
    n_consumed: int
    """Number of sample rows that were aggregated."""

    def __init__(
        self,
        frame: pd.DataFrame,
        partition: IntervalPartition,
        n_consumed: int,
    ) -> None:
        object.__setattr__(self, "_frame", frame.copy())
        object.__setattr__(self, "partition", partition)
        object.__setattr__(self, "n_consumed", int(n_consumed))

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def __len__(self) -> int:
        return len(self._frame)

    @property
    def total(self) -> int:
        return int(self._frame["count"].sum())

    @property
    def levels(self) -> list[Any]:
        return _sorted_levels(self._frame["category"])

    def category_totals(self) -> pd.Series:
        """Total count per category level, in level order."""
        totals = self._frame.groupby("category", sort=False)["count"].sum()
        return totals.reindex(pd.Index(self.levels, name="category")).astype(np.int64)

    def as_dict(self) -> dict[tuple[str, Any], int]:
        """Mapping ``(interval_label, category) -> count``."""
        f = self._frame
        return {
            (interval, category): int(count)
            for interval, category, count in zip(f["interval"], f["category"], f["count"])
        }

    def pivot(self) -> pd.DataFrame:
        """Bins × categories matrix, absent cells shown as 0."""
        wide = self._frame.pivot_table(
            index="interval", columns="category", values="count",
            aggfunc="sum", fill_value=0, sort=False,
        )
        present = [lab for lab in self.partition.labels() if lab in wide.index]
        return wide.reindex(index=present, columns=self.levels).astype(np.int64)

    def densify(self) -> CountTable:
        """Return a new table with a zero row for every absent (bin, level) pair.

        The grid is all bins of the partition crossed with the observed
        levels, so the result has ``n_bins × n_levels`` rows.
        """
        labels = self.partition.labels()
        grid = pd.DataFrame(
            [
                (b, labels[b], level)
                for b in range(self.partition.n_bins)
                for level in self.levels
            ],
            columns=_KEYS,
        )
        dense = grid.merge(self._frame, on=_KEYS, how="left")
        dense["count"] = dense["count"].fillna(0).astype(np.int64)
        return CountTable(
            frame=_finalise(dense),
            partition=self.partition,
            n_consumed=self.n_consumed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": float(self.partition.width),
            "upper": float(self.partition.upper),
            "n_bins": self.partition.n_bins,
            "n_consumed": self.n_consumed,
            "cells": [
                {
                    "bin": int(b),
                    "interval": interval,
                    "category": category,
                    "count": int(count),
                }
                for b, interval, category, count in zip(
                    self._frame["bin"],
                    self._frame["interval"],
                    self._frame["category"],
                    self._frame["count"],
                )
            ],
        }


def _finalise(frame: pd.DataFrame) -> pd.DataFrame:
    frame = frame.sort_values(["bin", "category"], key=_sort_key, kind="mergesort")
    frame = frame.reset_index(drop=True)[_COLUMNS]
    return frame.astype({"bin": np.int64, "interval": object, "category": object,
                         "count": np.int64})


# ------------------------------------------------------------------ #
# Public operations
# ------------------------------------------------------------------ #


def group_counts(frame: pd.DataFrame) -> pd.DataFrame:
    """Collapse *frame* to one row per (bin, interval, category).

    Rows carry their ``count`` column as a weight; a frame without a
    ``count`` column is read as unit-count rows.  Applying this to an
    already grouped :attr:`CountTable.frame` returns the same frame.
    """
    missing = [c for c in _KEYS if c not in frame.columns]
    if missing:
        raise KeyError(f"group_counts requires columns {missing}.")
    weights = frame["count"] if "count" in frame.columns else 1
    grouped = (
        frame[_KEYS]
        .astype({"category": object})
        .assign(count=weights)
        .groupby(_KEYS, sort=False, dropna=False)["count"]
        .sum()
        .reset_index()
    )
    return _finalise(grouped)


def aggregate(
    values: ValuesLike,
    categories: CategoriesLike,
    width: float,
    upper: float,
) -> CountTable:
    """Clip, discretize and count *values* per (bin, category).

    Args:
        values: Sanitized values (see :func:`~binned_poisson.sanitize`),
            aligned row-for-row with *categories*.
        categories: Category label per value; must not contain missing
            labels.
        width: Bin width, strictly positive.
        upper: Partition ceiling, typically the upper quartile bound of
            the sanitized sample.

    Returns:
        The :class:`CountTable` of observed (bin, category) pairs.

    Raises:
        InvalidWidthError: *width* is not a positive finite number.
            Checked before anything else.
        OutOfRangeError: A clipped value exceeds *upper*, or *upper*
            is negative.
        ValueError: Length mismatch or missing category labels.
    """
    if not _is_valid_width(width):
        raise InvalidWidthError(width)

    vals = pd.Series(values, dtype="float64").to_numpy()
    cats = pd.Series(categories, dtype=object)
    if len(vals) != len(cats):
        raise ValueError(
            f"values and categories must have the same length; "
            f"got {len(vals)} and {len(cats)}."
        )
    if cats.isna().any():
        pos = int(np.flatnonzero(cats.isna().to_numpy())[0])
        raise ValueError(f"Category label is missing at position {pos}.")

    clipped = np.maximum(vals, 0.0)
    partition = IntervalPartition(width=float(width), upper=float(upper))
    bins = partition.locate(clipped)

    labels = np.asarray(partition.labels(), dtype=object)
    rows = pd.DataFrame(
        {"bin": bins, "interval": labels[bins], "category": cats.to_numpy()}
    )
    frame = group_counts(rows)

    logger.debug(
        "Aggregated %d values into %d cells over %d bins of width %g "
        "(%d clipped to zero).",
        len(vals),
        len(frame),
        partition.n_bins,
        partition.width,
        int(np.sum(vals < 0)),
    )
    return CountTable(frame=frame, partition=partition, n_consumed=len(vals))
