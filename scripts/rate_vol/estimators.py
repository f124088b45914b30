"""Summary statistics, conditional probabilities and bootstrap intervals.

Undefined results (empty inputs, empty conditioning sets) are NaN and are
declared as such by every function here; NaN inputs are dropped before any
statistic is computed.
"""

import operator
from collections import namedtuple

import numpy as np
import pandas as pd
from scipy import stats

from . import config
from .ratios import extremes_wide

NAN = float("nan")

DESCRIBE_FIELDS = ["count", "mean", "std", "min", "25%", "50%", "75%", "max"]

RatioSummary = namedtuple("RatioSummary", ["name", "count", "mean", "std"])
ProportionCI = namedtuple("ProportionCI", ["mean", "lower", "upper", "n"])

COMPARISONS = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}


def _defined(values):
    arr = np.asarray(values, dtype=float).ravel()
    return arr[~np.isnan(arr)]


# ===========================================================================
# Descriptive statistics
# ===========================================================================
def describe(values):
    """count, mean, sample std (n-1), min, quartiles, max of defined values.

    Empty input (or all NaN) gives count 0 and NaN for everything else. A
    single value has NaN std.
    """
    arr = _defined(values)
    if arr.size == 0:
        return {"count": 0, **{k: NAN for k in DESCRIBE_FIELDS[1:]}}

    q25, q50, q75 = np.quantile(arr, [0.25, 0.5, 0.75])
    return {
        "count": int(arr.size),
        "mean": float(arr.mean()),
        "std": float(arr.std(ddof=1)) if arr.size > 1 else NAN,
        "min": float(arr.min()),
        "25%": float(q25),
        "50%": float(q50),
        "75%": float(q75),
        "max": float(arr.max()),
    }


def summarize_ratio(values, name=""):
    """Mean/std of a ratio, computed once and reused for every threshold."""
    d = describe(values)
    return RatioSummary(name=name, count=d["count"], mean=d["mean"], std=d["std"])


def ratio_summaries(daily_combined, pairs=None):
    """RatioSummary of each pair's daily range ratio, keyed by ratio name."""
    pairs = pairs or config.RATIO_PAIRS
    out = {}
    for pair in pairs:
        name = config.ratio_name(pair)
        out[name] = summarize_ratio(daily_combined[f"day_{name}"], name)
    return out


def window_summary(extremes):
    """describe() of window highs and lows per (ratio, window).

    Days whose window had no data (NaN extremum) do not count.
    """
    rows = []
    for (ratio, window), grp in extremes.groupby(["ratio", "window"], sort=False):
        for stat in ("high", "low"):
            rows.append({"ratio": ratio, "window": window, "stat": stat,
                         **describe(grp[stat])})
    return pd.DataFrame(rows)


def range_relationship(daily_combined, pairs=None):
    """Pearson correlation and OLS fit between each pair's daily ranges.

    The numerator instrument's range is regressed on the denominator's.
    Fewer than 3 usable days gives NaN statistics.
    """
    pairs = pairs or config.RATIO_PAIRS
    rows = []
    for a, b in pairs:
        xy = daily_combined[[f"{b}_day_range", f"{a}_day_range"]].dropna()
        x = xy.iloc[:, 0].to_numpy(dtype=float)
        y = xy.iloc[:, 1].to_numpy(dtype=float)
        row = {"pair": config.ratio_name((a, b)), "n": int(len(xy)),
               "pearson_r": NAN, "p_value": NAN, "slope": NAN,
               "intercept": NAN, "r_squared": NAN}
        if len(xy) >= 3 and np.ptp(x) > 0 and np.ptp(y) > 0:
            r, p = stats.pearsonr(x, y)
            fit = stats.linregress(x, y)
            row.update(pearson_r=float(r), p_value=float(p), slope=float(fit.slope),
                       intercept=float(fit.intercept), r_squared=float(fit.rvalue ** 2))
        rows.append(row)
    return pd.DataFrame(rows)


# ===========================================================================
# Conditional probabilities
# ===========================================================================
def make_predicate(column, op, threshold):
    """Predicate `population[column] <op> threshold`, NA where the value is NaN."""
    compare = COMPARISONS[op]

    def predicate(population):
        values = population[column]
        result = pd.Series(compare(values, threshold), index=population.index, dtype="boolean")
        return result.mask(values.isna())

    return predicate


def conditional_outcomes(population, predicate_a, predicate_b):
    """Values of B on the rows where A holds.

    Rows where either predicate is undefined (NA) are excluded.

    Returns:
        boolean numpy array, possibly empty
    """
    a = pd.Series(predicate_a(population), index=population.index).astype("boolean")
    b = pd.Series(predicate_b(population), index=population.index).astype("boolean")
    conditioned = a.fillna(False) & b.notna()
    return b[conditioned].to_numpy(dtype=bool)


def conditional_probability(predicate_a, predicate_b, population):
    """P(B | A) over the rows of `population`.

    An empty conditioning set is 0/0: the result is NaN, and callers must
    check for it rather than read it as a probability.
    """
    outcomes = conditional_outcomes(population, predicate_a, predicate_b)
    if outcomes.size == 0:
        return NAN
    return float(outcomes.mean())


def bootstrap_confidence_interval(sample, iterations=None, alpha=None, seed=None,
                                  chunk_size=1000):
    """Bootstrap CI for the proportion of True values in `sample`.

    Each iteration draws len(sample) values with replacement and records the
    proportion of True. Returns the mean of those proportions and their
    alpha/2 and 1 - alpha/2 quantiles. The same seed always gives the same
    result. An empty sample gives NaN mean/bounds and n=0.
    """
    iterations = config.BOOTSTRAP_ITERATIONS if iterations is None else iterations
    alpha = config.CONFIDENCE_ALPHA if alpha is None else alpha
    seed = config.BOOTSTRAP_SEED if seed is None else seed
    if iterations < 1:
        raise ValueError(f"iterations must be >= 1, got {iterations}")
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")

    sample = np.asarray(sample, dtype=bool).ravel()
    n = sample.size
    if n == 0:
        return ProportionCI(NAN, NAN, NAN, 0)

    rng = np.random.default_rng(seed)
    proportions = np.empty(iterations)
    # Chunked to bound the (iterations, n) index matrix
    for lo in range(0, iterations, chunk_size):
        hi = min(lo + chunk_size, iterations)
        idx = rng.integers(0, n, size=(hi - lo, n))
        proportions[lo:hi] = sample[idx].mean(axis=1)

    lower, upper = np.quantile(proportions, [alpha / 2, 1 - alpha / 2])
    return ProportionCI(float(proportions.mean()), float(lower), float(upper), int(n))


def relationship_predicates(relationship, summary, hour):
    """(A, B) predicates for one relationship at one hour boundary."""
    before_threshold = summary.mean + relationship["before_k"] * summary.std
    after_threshold = summary.mean + relationship["after_k"] * summary.std
    pred_a = make_predicate(f"B{hour}_{relationship['before']}",
                            relationship["before_op"], before_threshold)
    pred_b = make_predicate(f"A{hour}_{relationship['after']}",
                            relationship["after_op"], after_threshold)
    return pred_a, pred_b


def probability_table(extremes, summaries, relationships=None, hours=None,
                      iterations=None, alpha=None, seed=None):
    """Conditional probability and bootstrap CI per (ratio, relationship, hour).

    Args:
        extremes: long window-extremes table from ratios.window_extremes
        summaries: {ratio name: RatioSummary} supplying the thresholds

    Ratios with no aligned days are skipped.

    Returns:
        DataFrame with ratio, relationship, hour, n_days, n_conditioned,
        probability, mean, lower, upper
    """
    relationships = relationships or config.RELATIONSHIPS
    hours = config.HOUR_BOUNDARIES if hours is None else hours

    rows = []
    for ratio, summary in summaries.items():
        wide = extremes_wide(extremes, ratio)
        if wide.empty:
            continue
        for rel_name, rel in relationships.items():
            for hour in hours:
                pred_a, pred_b = relationship_predicates(rel, summary, hour)
                outcomes = conditional_outcomes(wide, pred_a, pred_b)
                ci = bootstrap_confidence_interval(outcomes, iterations, alpha, seed)
                rows.append({
                    "ratio": ratio,
                    "relationship": rel_name,
                    "hour": hour,
                    "n_days": int(len(wide)),
                    "n_conditioned": ci.n,
                    "probability": conditional_probability(pred_a, pred_b, wide),
                    "mean": ci.mean,
                    "lower": ci.lower,
                    "upper": ci.upper,
                })
    return pd.DataFrame(rows)
