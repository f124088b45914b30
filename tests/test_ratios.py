"""
test_ratios.py -- volatility ratios and clock-time window extremes

Tests:
 12. safe_ratio / add_ratios: zero denominators become NaN, never raise
 13. build_windows: B<H>, A<H> and between-boundary descriptors
 14. window_extremes: per (date, window) high/low, empty window is NaN
"""

import sys
import os

import pytest
import numpy as np
import pandas as pd

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from scripts.rate_vol.ratios import (
    safe_ratio,
    add_ratios,
    build_windows,
    window_extremes,
    extremes_wide,
)
from scripts.rate_vol.estimators import window_summary

D1 = pd.Timestamp("2023-01-03")
D2 = pd.Timestamp("2023-01-04")
H = 3600


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def aligned_ratios():
    """Two days of cum_UN values; D2 has no rows before 07:00."""
    return pd.DataFrame({
        "date": [D1, D1, D1, D1, D2, D2, D2],
        "secs": [6 * H, 6.5 * H, 7 * H, 8.5 * H, 7 * H, 7.5 * H, 9 * H],
        "cum_UN": [np.nan, 1.2, 0.9, 1.4, 1.1, 1.0, 1.3],
    })


# ===========================================================================
# Test 12: ratios
# ===========================================================================

class TestRatios:
    def test_safe_ratio_zero_denominator(self):
        out = safe_ratio(pd.Series([1.0, 0.0, 3.0]), pd.Series([2.0, 0.0, 0.0]))
        assert out.iloc[0] == 0.5
        assert np.isnan(out.iloc[1])
        assert np.isnan(out.iloc[2])

    def test_safe_ratio_zero_numerator_is_defined(self):
        out = safe_ratio(pd.Series([0.0]), pd.Series([4.0]))
        assert out.iloc[0] == 0.0

    def test_add_ratios_columns(self):
        aligned = pd.DataFrame({
            "N_range": [0.0, 2.0], "U_range": [1.0, 3.0],
            "N_day_range": [4.0, 4.0], "U_day_range": [6.0, 6.0],
        })
        out = add_ratios(aligned, pairs=[("U", "N")])
        assert np.isnan(out["cum_UN"].iloc[0])
        assert out["cum_UN"].iloc[1] == 1.5
        assert (out["day_UN"] == 1.5).all()
        assert "cum_UN" not in aligned.columns


# ===========================================================================
# Test 13: window descriptors
# ===========================================================================

class TestBuildWindows:
    def test_default_count(self):
        windows = build_windows()
        # 5 before, 5 at-or-after, 4 between consecutive boundaries
        assert len(windows) == 14

    def test_bounds(self):
        windows = {w["label"]: w for w in build_windows(hours=[7, 8], start=6 * H)}
        assert windows["B7"] == {"label": "B7", "lower": 6 * H, "upper": 7 * H}
        assert windows["A7"] == {"label": "A7", "lower": 7 * H, "upper": None}
        assert windows["7-8"] == {"label": "7-8", "lower": 7 * H, "upper": 8 * H}
        assert windows["B8"]["lower"] == 6 * H


# ===========================================================================
# Test 14: window extremes
# ===========================================================================

class TestWindowExtremes:
    def test_every_date_window_present(self, aligned_ratios):
        windows = build_windows(hours=[7, 8], start=6 * H)
        ext = window_extremes(aligned_ratios, windows=windows)
        assert len(ext) == 2 * len(windows)
        assert set(ext["ratio"]) == {"UN"}

    def test_high_low_values(self, aligned_ratios):
        ext = window_extremes(aligned_ratios, windows=build_windows(hours=[7, 8], start=6 * H))
        row = ext[(ext["date"] == D1) & (ext["window"] == "A7")].iloc[0]
        assert row["high"] == 1.4
        assert row["low"] == 0.9
        # NaN at 06:00 is skipped
        row = ext[(ext["date"] == D1) & (ext["window"] == "B7")].iloc[0]
        assert row["high"] == 1.2
        assert row["low"] == 1.2

    def test_half_open_boundary(self, aligned_ratios):
        ext = window_extremes(aligned_ratios, windows=build_windows(hours=[7, 8], start=6 * H))
        row = ext[(ext["date"] == D2) & (ext["window"] == "7-8")].iloc[0]
        # 07:00 included, 09:00 outside
        assert row["high"] == 1.1
        assert row["low"] == 1.0

    def test_empty_window_is_undefined(self, aligned_ratios):
        ext = window_extremes(aligned_ratios, windows=build_windows(hours=[7], start=6 * H))
        row = ext[(ext["date"] == D2) & (ext["window"] == "B7")].iloc[0]
        assert np.isnan(row["high"])
        assert np.isnan(row["low"])

    def test_empty_window_excluded_from_aggregate(self, aligned_ratios):
        ext = window_extremes(aligned_ratios, windows=build_windows(hours=[7], start=6 * H))
        summary = window_summary(ext)
        b7_high = summary[(summary["window"] == "B7") & (summary["stat"] == "high")].iloc[0]
        assert b7_high["count"] == 1
        assert b7_high["mean"] == pytest.approx(1.2)

    def test_default_uses_running_ratios_only(self, aligned_ratios):
        aligned = aligned_ratios.assign(day_UN=1.5)
        ext = window_extremes(aligned, windows=build_windows(hours=[7], start=6 * H))
        assert set(ext["ratio"]) == {"UN"}
        assert len(ext) == 2 * 2
        row = ext[(ext["date"] == D1) & (ext["window"] == "A7")].iloc[0]
        assert row["high"] == 1.4

    def test_a_window_runs_to_last_row(self, aligned_ratios):
        late = pd.DataFrame({"date": [D1], "secs": [12 * H], "cum_UN": [2.0]})
        aligned = pd.concat([aligned_ratios, late], ignore_index=True)
        windows = build_windows(hours=[7], start=6 * H)
        assert all(w["upper"] is None for w in windows if w["label"] == "A7")
        ext = window_extremes(aligned, windows=windows)
        row = ext[(ext["date"] == D1) & (ext["window"] == "A7")].iloc[0]
        assert row["high"] == 2.0

    def test_wide_layout(self, aligned_ratios):
        ext = window_extremes(aligned_ratios, windows=build_windows(hours=[7], start=6 * H))
        wide = extremes_wide(ext, "UN")
        assert list(wide.index) == [D1, D2]
        assert {"B7_high", "B7_low", "A7_high", "A7_low"} == set(wide.columns)
