"""Tests for the display module."""

import dataclasses

from binned_poisson.binning import aggregate
from binned_poisson.display import (
    _fmt_diag_val,
    _truncate,
    print_count_table,
    print_fit_table,
)
from binned_poisson.fitting import fit


def _table():
    values = [0.5] * 10 + [1.5] * 5 + [2.5] * 2 + [0.5, 1.5, 2.5]
    cats = ["A"] * 17 + ["B"] * 3
    return aggregate(values, cats, width=1, upper=3)


class TestTruncate:
    def test_short_name_unchanged(self):
        assert _truncate("abc", 10) == "abc"

    def test_exact_length_unchanged(self):
        assert _truncate("abcdefghij", 10) == "abcdefghij"

    def test_long_name_truncated(self):
        result = _truncate("abcdefghijk", 10)
        assert len(result) == 10
        assert result.endswith("...")


class TestFmtDiagVal:
    def test_float(self):
        assert _fmt_diag_val(1.23456) == "1.2346"

    def test_missing(self):
        assert _fmt_diag_val(None) == "N/A"
        assert _fmt_diag_val(float("nan")) == "N/A"

    def test_int(self):
        assert _fmt_diag_val(7) == "7"


class TestPrintFitTable:
    def test_prints_without_error(self, capsys):
        print_fit_table(fit(_table(), reference="B"))
        out = capsys.readouterr().out
        assert "Poisson Regression Results" in out
        assert "Intercept" in out
        assert "category[T.A]" in out
        assert "Reference:" in out
        assert "AIC:" in out
        assert "(***) p < 0.001" in out

    def test_custom_title(self, capsys):
        print_fit_table(fit(_table()), title="Delay Counts by Carrier")
        assert "Delay Counts by Carrier" in capsys.readouterr().out

    def test_lines_fit_width(self, capsys):
        print_fit_table(fit(_table()))
        for line in capsys.readouterr().out.splitlines():
            assert len(line) <= 80

    def test_overdispersion_note(self, capsys):
        model = dataclasses.replace(fit(_table()), dispersion=3.2, overdispersed=True)
        print_fit_table(model)
        out = capsys.readouterr().out
        assert "Notes" in out
        assert "3.2000 exceeds" in out

    def test_no_notes_on_clean_fit(self, capsys):
        model = dataclasses.replace(fit(_table()), dispersion=0.5, overdispersed=False)
        print_fit_table(model)
        assert "Notes" not in capsys.readouterr().out

    def test_densify_note(self, capsys):
        print_fit_table(fit(_table(), densify=True))
        assert "zero counts" in capsys.readouterr().out


class TestPrintCountTable:
    def test_prints_without_error(self, capsys):
        print_count_table(_table())
        out = capsys.readouterr().out
        assert "Binned Counts" in out
        assert "Bin Width:" in out
        assert "[0, 1]" in out
        assert "(2, 3]" in out

    def test_elides_extra_levels(self, capsys):
        print_count_table(_table(), max_levels=1)
        assert "1 more categories not shown" in capsys.readouterr().out
