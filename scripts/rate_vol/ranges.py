"""Running and full-day high/low ranges per instrument, and daily records."""

from concurrent.futures import ThreadPoolExecutor

from . import config
from .ratios import safe_ratio

DAILY_COLUMNS = ["day_high", "day_low", "day_range", "day_volume"]


def annotate_ranges(ticks, tick_size):
    """Attach running and full-day range metrics to every tick.

    The day_* columns are full-day aggregates broadcast to every row of the
    day (they look ahead); the run_* columns only see ticks up to and
    including the current one. Ranges are expressed in ticks.

    Args:
        ticks: prepared tick DataFrame (needs date, price, volume), sorted
            by timestamp
        tick_size: minimum price increment, > 0

    Returns:
        copy of `ticks`, same rows and order, with day_high, day_low,
        day_range, day_volume, run_high, run_low, run_range
    """
    if not tick_size > 0:
        raise ValueError(f"tick_size must be positive, got {tick_size}")

    df = ticks.copy()
    by_day = df.groupby("date", sort=False)
    price = by_day["price"]

    df["day_high"] = price.transform("max")
    df["day_low"] = price.transform("min")
    df["day_range"] = (df["day_high"] - df["day_low"]) / tick_size
    df["day_volume"] = by_day["volume"].transform("sum")

    df["run_high"] = price.cummax()
    df["run_low"] = price.cummin()
    df["run_range"] = (df["run_high"] - df["run_low"]) / tick_size
    return df


def annotate_all(ticks_by_key, tick_sizes=None, max_workers=None):
    """Annotate every instrument; instruments are independent."""
    tick_sizes = tick_sizes or config.TICK_SIZES
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            key: pool.submit(annotate_ranges, df, tick_sizes[key])
            for key, df in ticks_by_key.items()
        }
        return {key: fut.result() for key, fut in futures.items()}


def daily_records(annotated):
    """One row per trading day, in date order.

    Pure projection of the day-constant columns from the first tick of each
    day; nothing is recomputed.
    """
    return (
        annotated.groupby("date", sort=True)[DAILY_COLUMNS]
        .first()
        .reset_index()
    )


def combine_daily(records_by_key, pairs=None):
    """Join per-instrument daily records on date and add daily range ratios.

    Columns are prefixed with the instrument key (N_day_range, ...); only
    dates present for every instrument are kept.
    """
    pairs = pairs or config.RATIO_PAIRS
    combined = None
    for key, records in records_by_key.items():
        renamed = records.rename(columns={c: f"{key}_{c}" for c in DAILY_COLUMNS})
        combined = renamed if combined is None else combined.merge(renamed, on="date", how="inner")

    for a, b in pairs:
        combined[f"day_{config.ratio_name((a, b))}"] = safe_ratio(
            combined[f"{a}_day_range"], combined[f"{b}_day_range"]
        )
    return combined.sort_values("date").reset_index(drop=True)
