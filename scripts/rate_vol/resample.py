"""Resample irregular tick series onto a common intraday time grid."""

import numpy as np
import pandas as pd

from . import config
from .data_loader import MisalignedDateRange

GRID_FIELDS = {"price": "price", "run_range": "range", "day_range": "day_range"}


def build_grid(dates, start=None, end=None, step=None):
    """Cross product of trading dates and fixed-step seconds since midnight.

    `end` is inclusive when it falls on the step.
    """
    start = config.GRID_START if start is None else start
    end = config.GRID_END if end is None else end
    step = config.GRID_STEP if step is None else step
    if step <= 0:
        raise ValueError(f"Grid step must be positive, got {step}")
    if end < start:
        raise ValueError(f"Grid end {end} is before start {start}")

    secs = np.arange(start, end + step / 2, step, dtype=float)
    dates = pd.DatetimeIndex(sorted(set(dates)))
    return pd.DataFrame({
        "date": np.repeat(dates.values, len(secs)),
        "secs": np.tile(secs, len(dates)),
    })


def aligned_dates(annotated_by_key):
    """Trading dates usable for the cross-instrument comparison.

    Starts from the instrument with the fewest trading days and drops any
    date on which another instrument has no ticks at all.
    """
    day_sets = {key: set(df["date"].unique()) for key, df in annotated_by_key.items()}
    base_key = min(day_sets, key=lambda k: len(day_sets[k]))
    keep = [d for d in day_sets[base_key] if all(d in days for days in day_sets.values())]
    if not keep:
        raise MisalignedDateRange("No trading date is shared by every instrument")
    return pd.DatetimeIndex(sorted(keep))


def resample_instrument(grid, annotated, key):
    """Attach one instrument's nearest tick to every grid row of the same date.

    Nearest by absolute time difference; on an exact tie the earlier tick
    wins. Grid rows on dates the instrument never traded are dropped.

    Adds <key>_price, <key>_range (running) and <key>_day_range.
    """
    right = annotated[["date", "secs", *GRID_FIELDS]].rename(
        columns={src: f"{key}_{dst}" for src, dst in GRID_FIELDS.items()}
    )
    right = right.astype({"date": "datetime64[ns]", "secs": float}).sort_values("secs", kind="mergesort")
    left = grid.astype({"date": "datetime64[ns]", "secs": float}).sort_values("secs", kind="mergesort")

    merged = pd.merge_asof(left, right, on="secs", by="date", direction="nearest")
    merged = merged.dropna(subset=[f"{key}_price"])
    return merged.sort_values(["date", "secs"]).reset_index(drop=True)


def align_instruments(annotated_by_key, start=None, end=None, step=None, cutoff=None):
    """Build the aligned grid table for all instruments.

    Rows before `cutoff` (seconds since midnight) are discarded after the
    join.
    """
    cutoff = config.RANGE_CUTOFF if cutoff is None else cutoff

    dates = aligned_dates(annotated_by_key)
    aligned = build_grid(dates, start, end, step)
    for key, annotated in annotated_by_key.items():
        aligned = resample_instrument(aligned, annotated, key)

    aligned = aligned[aligned["secs"] >= cutoff].reset_index(drop=True)
    aligned.insert(2, "timestamp", aligned["date"] + pd.to_timedelta(aligned["secs"], unit="s"))
    return aligned
