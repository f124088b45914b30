"""Shared configuration for the treasury futures volatility-ratio study."""

from pathlib import Path

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
RESULTS_DIR = PROJECT_ROOT / "results" / "rate-vol"

# ---------------------------------------------------------------------------
# Instruments
# Prices are stored in 1/10000 of a point, so one 1/64 tick is 156.25 and
# one 1/32 tick is 312.5.
# ---------------------------------------------------------------------------
INSTRUMENTS = {
    "N": {"symbol": "ZN", "name": "10-Year Note",       "tick_size": 156.25, "file": "ZN.csv"},
    "U": {"symbol": "TN", "name": "Ultra 10-Year Note", "tick_size": 156.25, "file": "TN.csv"},
    "B": {"symbol": "ZB", "name": "30-Year Bond",       "tick_size": 312.5,  "file": "ZB.csv"},
}
INSTRUMENT_KEYS = list(INSTRUMENTS)
TICK_SIZES = {k: v["tick_size"] for k, v in INSTRUMENTS.items()}

# (numerator, denominator): the more volatile contract goes on top
RATIO_PAIRS = [("U", "N"), ("B", "N"), ("B", "U")]

# ---------------------------------------------------------------------------
# Session / clock
# Tick timestamps are Pacific time: RTH 05:20-12:00 is CBOT 07:20-14:00 CT.
# ---------------------------------------------------------------------------
LOCAL_TZ = "America/Los_Angeles"
RTH_SESSION = "RTH"
REQUIRED_COLUMNS = ["timestamp", "session", "price", "volume"]

GRID_START = 5 * 3600 + 20 * 60   # 05:20
GRID_END = 12 * 3600              # 12:00 (inclusive)
GRID_STEP = 10                    # seconds

# Running ranges are not meaningful until the market has traded a while
RANGE_CUTOFF = 6 * 3600           # 06:00

HOUR_BOUNDARIES = [7, 8, 9, 10, 11]

# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------
BOOTSTRAP_ITERATIONS = 10000
BOOTSTRAP_SEED = 42
CONFIDENCE_ALPHA = 0.05

# ---------------------------------------------------------------------------
# Conditional relationships between a "before H" and an "at-or-after H"
# window extremum. Thresholds are mean + k * std of the pair's daily range
# ratio.
# ---------------------------------------------------------------------------
RELATIONSHIPS = {
    # dipped a full std below the mean, later got back to the mean
    "dip_then_recover": {
        "before": "low", "before_op": "lt", "before_k": -1.0,
        "after": "high", "after_op": "ge", "after_k": 0.0,
    },
    # spiked a full std above the mean, later fell back to the mean
    "spike_then_fade": {
        "before": "high", "before_op": "gt", "before_k": 1.0,
        "after": "low", "after_op": "le", "after_k": 0.0,
    },
    # dipped below the mean, later pushed a full std above it
    "dip_then_overshoot": {
        "before": "low", "before_op": "lt", "before_k": 0.0,
        "after": "high", "after_op": "gt", "after_k": 1.0,
    },
}


def ratio_name(pair):
    """Short name for an instrument pair, e.g. ("U", "N") -> "UN"."""
    return f"{pair[0]}{pair[1]}"


def instrument_path(key, data_dir=None):
    """Default on-disk location of an instrument's tick file."""
    return Path(data_dir or DATA_DIR) / INSTRUMENTS[key]["file"]
