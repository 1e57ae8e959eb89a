"""Column extraction at the DataFrame boundary, with optional Polars input.

:func:`~binned_poisson.run_pipeline` needs exactly two columns from
the caller's table: the measurement and the category.  This module
checks that both exist and hands back a pandas frame holding only
those columns, whatever library the table came from:

* ``pandas.DataFrame``: the columns are sliced out (a new frame; the
  caller's table is never touched).
* ``polars.DataFrame``: the columns are selected *before* conversion,
  so the rest of a wide table never crosses into pandas.
* ``polars.LazyFrame``: the selection is pushed into the lazy query,
  so only the two columns are collected.

Polars is **not** a required dependency.  When it is not installed,
only pandas input is accepted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    DataFrameLike: TypeAlias = pd.DataFrame | pl.DataFrame | pl.LazyFrame
else:
    DataFrameLike: TypeAlias = pd.DataFrame

try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def _column_names(obj: DataFrameLike, name: str) -> list[str]:
    if isinstance(obj, pd.DataFrame):
        return list(obj.columns)
    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect_schema().names()
        if isinstance(obj, pl.DataFrame):
            return list(obj.columns)
    raise TypeError(
        f"'{name}' must be a pandas DataFrame"
        + (" or Polars DataFrame/LazyFrame" if _HAS_POLARS else "")
        + f", got {type(obj).__name__}."
    )


def _select_columns(
    obj: DataFrameLike,
    *columns: str,
    name: str = "data",
) -> pd.DataFrame:
    """Return a pandas frame holding only *columns* of *obj*, in order.

    Args:
        obj: A pandas or Polars DataFrame (or LazyFrame).
        *columns: Column names to keep.  Repeats are kept once.
        name: Label used in error messages.

    Raises:
        TypeError: If *obj* is not a recognised DataFrame type.
        KeyError: If a column is absent; the message lists what is
            available.
    """
    available = _column_names(obj, name)
    wanted = list(dict.fromkeys(columns))
    for col in wanted:
        if col not in available:
            raise KeyError(f"Column '{col}' not found. Available: {available}")

    if isinstance(obj, pd.DataFrame):
        return obj.loc[:, wanted].copy()
    if isinstance(obj, pl.LazyFrame):
        return obj.select(wanted).collect().to_pandas()
    return obj.select(wanted).to_pandas()
