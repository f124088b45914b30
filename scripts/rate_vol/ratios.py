"""Pairwise volatility ratios and their extremes within clock-time windows."""

import pandas as pd

from . import config


def safe_ratio(num, den):
    """num / den with a zero or missing denominator giving NaN."""
    num = num.astype(float)
    den = den.astype(float)
    return num / den.where(den != 0)


def add_ratios(aligned, pairs=None):
    """Add cum_<AB> (running range) and day_<AB> (daily range) ratios."""
    pairs = pairs or config.RATIO_PAIRS
    out = aligned.copy()
    for a, b in pairs:
        name = config.ratio_name((a, b))
        out[f"cum_{name}"] = safe_ratio(out[f"{a}_range"], out[f"{b}_range"])
        out[f"day_{name}"] = safe_ratio(out[f"{a}_day_range"], out[f"{b}_day_range"])
    return out


def build_windows(hours=None, start=None):
    """Window descriptors on seconds since midnight, half-open [lower, upper).

    B<H>: from `start` up to hour H
    A<H>: from hour H to the end of the grid (upper=None)
    <H>-<H'>: between consecutive boundaries
    """
    hours = sorted(config.HOUR_BOUNDARIES if hours is None else hours)
    start = config.RANGE_CUTOFF if start is None else start

    windows = [{"label": f"B{h}", "lower": start, "upper": h * 3600} for h in hours]
    windows += [{"label": f"A{h}", "lower": h * 3600, "upper": None} for h in hours]
    windows += [
        {"label": f"{h}-{nxt}", "lower": h * 3600, "upper": nxt * 3600}
        for h, nxt in zip(hours, hours[1:])
    ]
    return windows


def ratio_columns(aligned, prefix="cum_"):
    return [c for c in aligned.columns if c.startswith(prefix)]


def window_extremes(aligned, ratio_cols=None, windows=None):
    """High and low of each ratio per (date, window).

    Every date of `aligned` appears for every window; a window with no
    defined ratio values on a date gets NaN high/low. By default only the
    cum_<AB> ratios are used; day_<AB> is constant within a day.

    Returns:
        long DataFrame with columns date, ratio, window, high, low
    """
    ratio_cols = ratio_cols or ratio_columns(aligned)
    windows = windows or build_windows()
    dates = pd.DatetimeIndex(sorted(aligned["date"].unique()), name="date")

    frames = []
    for w in windows:
        mask = aligned["secs"] >= w["lower"]
        if w["upper"] is not None:
            mask &= aligned["secs"] < w["upper"]
        grouped = aligned.loc[mask, ["date", *ratio_cols]].groupby("date")[ratio_cols]
        highs = grouped.max().reindex(dates)
        lows = grouped.min().reindex(dates)

        for col in ratio_cols:
            frames.append(pd.DataFrame({
                "date": dates,
                "ratio": col.split("_", 1)[1],
                "window": w["label"],
                "high": highs[col].to_numpy(dtype=float),
                "low": lows[col].to_numpy(dtype=float),
            }))
    return pd.concat(frames, ignore_index=True)


def extremes_wide(extremes, ratio):
    """One row per date for a ratio, columns <window>_high / <window>_low."""
    sub = extremes[extremes["ratio"] == ratio]
    if sub.empty:
        return pd.DataFrame(index=pd.DatetimeIndex([], name="date"))
    wide = sub.pivot(index="date", columns="window", values=["high", "low"])
    wide.columns = [f"{window}_{stat}" for stat, window in wide.columns]
    return wide.sort_index()
