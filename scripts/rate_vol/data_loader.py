"""Load per-instrument tick files, keep the RTH session, align date ranges."""

from pathlib import Path

import pandas as pd

from . import config


class SourceUnavailable(FileNotFoundError):
    """An instrument's tick file is missing, unreadable or malformed."""


class MisalignedDateRange(ValueError):
    """The instruments' date ranges do not overlap."""


def load_ticks(path):
    """Read one instrument's raw tick table (CSV or Parquet).

    Raises SourceUnavailable if the file is missing, cannot be parsed or
    lacks any of the required columns.
    """
    path = Path(path)
    if not path.exists():
        raise SourceUnavailable(f"Tick file not found: {path}")

    try:
        if path.suffix in (".parquet", ".pq"):
            df = pd.read_parquet(path)
        else:
            df = pd.read_csv(path)
    except (OSError, ValueError) as exc:
        # pandas parser errors are ValueError subclasses
        raise SourceUnavailable(f"Could not read {path}: {exc}") from exc

    missing = [c for c in config.REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise SourceUnavailable(f"{path} is missing columns: {missing}")
    return df


def prepare_ticks(df, tz=None):
    """Keep RTH ticks, sort by time and add local `date` / `secs` columns.

    tz-aware timestamps are converted to the local trading time zone; naive
    ones are assumed to be local already.
    """
    tz = tz or config.LOCAL_TZ
    df = df.loc[df["session"].astype(str).str.upper() == config.RTH_SESSION,
                config.REQUIRED_COLUMNS].copy()

    ts = pd.to_datetime(df["timestamp"])
    if ts.dt.tz is not None:
        ts = ts.dt.tz_convert(tz).dt.tz_localize(None)
    df["timestamp"] = ts.astype("datetime64[ns]")
    df["price"] = df["price"].astype(float)
    df["volume"] = df["volume"].astype(float)

    df = df.sort_values("timestamp", kind="mergesort").reset_index(drop=True)
    df["date"] = df["timestamp"].dt.normalize()
    df["secs"] = (df["timestamp"] - df["date"]).dt.total_seconds()
    return df


def common_date_range(ticks_by_key):
    """Return (first, last) date shared by every instrument.

    Raises MisalignedDateRange if any instrument is empty or the ranges do
    not overlap.
    """
    firsts, lasts = [], []
    for key, df in ticks_by_key.items():
        if df.empty:
            raise MisalignedDateRange(f"Instrument {key} has no RTH ticks")
        firsts.append(df["date"].min())
        lasts.append(df["date"].max())

    first, last = max(firsts), min(lasts)
    if first > last:
        raise MisalignedDateRange(
            f"Instrument date ranges do not overlap (latest start {first.date()}, "
            f"earliest end {last.date()})"
        )
    return first, last


def clip_to_common_range(ticks_by_key):
    """Drop ticks outside the date range covered by all instruments."""
    first, last = common_date_range(ticks_by_key)
    clipped = {}
    for key, df in ticks_by_key.items():
        mask = (df["date"] >= first) & (df["date"] <= last)
        clipped[key] = df[mask].reset_index(drop=True)
    return clipped


def load_instruments(paths=None, data_dir=None, tz=None):
    """Load, filter and date-align every instrument.

    Args:
        paths: optional {key: path}; defaults to config.instrument_path
        data_dir: directory used for the default paths

    Returns:
        {key: prepared tick DataFrame}
    """
    if paths is None:
        paths = {k: config.instrument_path(k, data_dir) for k in config.INSTRUMENT_KEYS}
    ticks = {key: prepare_ticks(load_ticks(path), tz=tz) for key, path in paths.items()}
    return clip_to_common_range(ticks)
