"""Formatted ASCII table display utilities for binned-count Poisson fits.

These tables mirror the statsmodels summary style: a model panel (top)
with goodness-of-fit statistics, then one row per coefficient with its
estimate, standard error, Wald z and p-value.  The count table view
shows the bins × categories contingency matrix that entered the fit.
"""

from __future__ import annotations

import textwrap
from typing import TYPE_CHECKING

from ._config import OVERDISPERSION_THRESHOLD
from .pvalues import format_p_value

if TYPE_CHECKING:
    from ._results import FittedModel
    from .binning import CountTable

W = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt_diag_val(val: object) -> str:
    """Format a diagnostic value for display.

    Converts ``nan`` floats and ``None`` to ``'N/A'`` and rounds
    floats to four decimals.
    """
    if val is None:
        return "N/A"
    if isinstance(val, float):
        if val != val:  # nan check
            return "N/A"
        return f"{val:.4f}"
    return str(val)


def _wrap(text: str, width: int = W, indent: int = 2) -> str:
    """Word-wrap *text* to *width*, indenting continuation lines."""
    return textwrap.fill(
        text,
        width=width,
        initial_indent="",
        subsequent_indent=" " * indent,
    )


def _title(title: str) -> None:
    print("=" * W)
    for line in textwrap.wrap(title, width=W - 2):
        print(f"{line:^{W}}")
    print("=" * W)


def _render_header_rows(
    rows: list[tuple[str, str, str, str]],
    col1: int = 40,
    col2: int = 38,
) -> None:
    """Print ``(left_label, left_value, right_label, right_value)`` rows.

    The left pair is flush-left in *col1* columns; the right pair is
    right-aligned in *col2* columns.
    """
    for ll, lv, rl, rv in rows:
        left = f"{ll:<16}{lv:<{col1 - 16}}" if ll else f"{'':<{col1}}"
        right = f"{rl:>{col2 - 11}} {rv:>10}" if rl else ""
        print(f"{left}{right}")


def print_fit_table(
    model: FittedModel,
    *,
    title: str = "Poisson Regression Results",
    precision: int = 3,
) -> None:
    """Print a fitted model in a formatted ASCII table similar to statsmodels.

    Args:
        model: Result of :func:`~binned_poisson.fit`.
        title: Title for the output table.
        precision: Decimal places for the p-value column.
    """
    _title(title)

    _render_header_rows(
        [
            ("Reference:", _truncate(str(model.reference), 22),
             "No. Observations:", str(model.n_observations)),
            ("Solver:", model.solver,
             "Df Residuals:", str(model.df_resid)),
            ("Iterations:", str(model.n_iterations),
             "Log-Likelihood:", _fmt_diag_val(model.llf)),
            ("Deviance:", _fmt_diag_val(model.deviance),
             "AIC:", _fmt_diag_val(model.aic)),
            ("Null Deviance:", _fmt_diag_val(model.null_deviance),
             "BIC:", _fmt_diag_val(model.bic)),
            ("Pearson χ²:", _fmt_diag_val(model.pearson_chi2),
             "Dispersion:", _fmt_diag_val(model.dispersion)),
        ]
    )

    print("-" * W)

    # ── Table geometry (W = 80 chars) ─────────────────────────── #
    #   Term (28, left) | Coef (11) | Std.Err (11) | z (9) | P>|z| (21)
    #   Total: 28 + 11 + 11 + 9 + 21 = 80
    fc = 28
    print(f"{'Term':<{fc}}{'Coef':>11}{'Std.Err':>11}{'z':>9}{'P>|z|':>21}")
    print("-" * W)

    for name, coef, se, z, p in zip(
        model.param_names, model.params, model.bse, model.zvalues, model.pvalues
    ):
        p_str = format_p_value(float(p), precision)
        print(
            f"{_truncate(name, fc - 1):<{fc}}{coef:>11.4f}{se:>11.4f}"
            f"{z:>9.3f}{p_str:>21}"
        )

    notes: list[str] = []
    if model.overdispersed:
        notes.append(
            f"Dispersion = {model.dispersion:.4f} exceeds "
            f"{OVERDISPERSION_THRESHOLD}: standard errors are likely "
            "understated. Consider a wider bin width or a negative binomial model."
        )
    if model.densified:
        notes.append("Absent (bin, category) cells were fit as zero counts.")

    if notes:
        print("-" * W)
        print("Notes")
        print("-" * W)
        for note in notes:
            print(_wrap(f"  [!] {note}", width=W, indent=6))

    print("=" * W)
    print("(***) p < 0.001   (**) p < 0.01   (*) p < 0.05   (ns) p >= 0.05")
    print()


def print_count_table(
    table: CountTable,
    *,
    title: str = "Binned Counts",
    max_levels: int = 6,
) -> None:
    """Print the bins × categories count matrix.

    Only bins with at least one observation are listed.  When there are
    more than *max_levels* categories the remaining columns are elided.

    Args:
        table: Result of :func:`~binned_poisson.aggregate`.
        title: Title for the output table.
        max_levels: Maximum number of category columns to display.
    """
    _title(title)

    lw = 20
    print(f"  {'Bin Width:':<{lw}}{table.partition.width:g}")
    print(f"  {'Ceiling:':<{lw}}{table.partition.upper:g}")
    print(f"  {'No. Bins:':<{lw}}{table.partition.n_bins}")
    print(f"  {'Rows Consumed:':<{lw}}{table.n_consumed}")
    print(f"  {'Non-empty Cells:':<{lw}}{len(table)}")
    print("-" * W)

    wide = table.pivot()
    shown = list(wide.columns[:max_levels])
    cw = max(6, (W - lw) // max(1, len(shown)))
    header = "".join(f"{_truncate(str(c), cw - 1):>{cw}}" for c in shown)
    print(f"{'Interval':<{lw}}{header}")
    print("-" * W)
    for label, row in wide.iterrows():
        cells = "".join(f"{int(row[c]):>{cw}}" for c in shown)
        print(f"{_truncate(str(label), lw - 1):<{lw}}{cells}")

    if len(wide.columns) > len(shown):
        print("-" * W)
        print(
            _wrap(
                f"  [!] {len(wide.columns) - len(shown)} more categories not shown.",
                width=W,
                indent=6,
            )
        )
    print("=" * W)
    print()
