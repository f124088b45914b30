"""End-to-end: load ticks -> ranges -> aligned grid -> ratios -> probabilities.

Usage:
    python -m scripts.rate_vol.run_all [--data-dir DIR] [--output-dir DIR]
        [--iterations N] [--seed S] [--alpha A]
"""

import argparse
import json
import math
from pathlib import Path

from . import config
from .data_loader import load_instruments
from .estimators import (
    probability_table, range_relationship, ratio_summaries, window_summary,
)
from .ranges import annotate_all, combine_daily, daily_records
from .ratios import add_ratios, build_windows, window_extremes
from .resample import align_instruments


def run_pipeline(paths=None, data_dir=None, iterations=None, seed=None, alpha=None):
    """Run the whole study in memory and return every output table."""
    print("=" * 70, flush=True)
    print("Loading ticks", flush=True)
    print("=" * 70, flush=True)
    ticks = load_instruments(paths=paths, data_dir=data_dir)
    for key, df in ticks.items():
        print(f"  {config.INSTRUMENTS[key]['symbol']}: {len(df):,} RTH ticks, "
              f"{df['date'].nunique()} days", flush=True)

    annotated = annotate_all(ticks)
    daily = {key: daily_records(df) for key, df in annotated.items()}
    daily_combined = combine_daily(daily)

    print("\nAligning instruments on the intraday grid...", flush=True)
    aligned = align_instruments(annotated)
    aligned = add_ratios(aligned)
    print(f"  {len(aligned):,} grid rows over {aligned['date'].nunique()} days", flush=True)

    windows = build_windows()
    extremes = window_extremes(aligned, windows=windows)
    summaries = ratio_summaries(daily_combined)
    for name, s in summaries.items():
        print(f"  day ratio {name}: mean={s.mean:.4f} std={s.std:.4f} (n={s.count})", flush=True)

    print("\nBootstrapping conditional probabilities...", flush=True)
    probs = probability_table(extremes, summaries,
                              iterations=iterations, alpha=alpha, seed=seed)

    return {
        "daily": daily,
        "daily_combined": daily_combined,
        "aligned": aligned,
        "extremes": extremes,
        "window_summary": window_summary(extremes),
        "summaries": summaries,
        "relationship": range_relationship(daily_combined),
        "probabilities": probs,
    }


def _clean(value):
    """JSON-safe scalar: NaN becomes null."""
    if isinstance(value, float) and math.isnan(value):
        return None
    if hasattr(value, "item"):
        return _clean(value.item())
    return value


def _records(df):
    return [{k: _clean(v) for k, v in row.items()} for row in df.to_dict(orient="records")]


def save_results(results, out_dir=None):
    """Write the output tables, metrics.json and analysis.md to `out_dir`."""
    out_dir = Path(out_dir or config.RESULTS_DIR)
    out_dir.mkdir(parents=True, exist_ok=True)

    for key, df in results["daily"].items():
        df.to_csv(out_dir / f"daily_{config.INSTRUMENTS[key]['symbol']}.csv", index=False)
    results["daily_combined"].to_csv(out_dir / "daily_combined.csv", index=False)
    results["aligned"].to_csv(out_dir / "aligned.csv", index=False)
    results["extremes"].to_csv(out_dir / "window_extremes.csv", index=False)
    results["window_summary"].to_csv(out_dir / "window_summary.csv", index=False)
    results["probabilities"].to_csv(out_dir / "probability_table.csv", index=False)

    metrics = {
        "n_days": int(results["daily_combined"]["date"].nunique()),
        "ratio_summaries": {
            name: {k: _clean(v) for k, v in s._asdict().items()}
            for name, s in results["summaries"].items()
        },
        "range_relationship": _records(results["relationship"]),
        "probabilities": _records(results["probabilities"]),
    }
    with open(out_dir / "metrics.json", "w") as fp:
        json.dump(metrics, fp, indent=2, default=str)

    _write_analysis(results, out_dir / "analysis.md")
    print(f"Results written to {out_dir}", flush=True)
    return out_dir


def _fmt(value, spec=".3f"):
    value = _clean(value)
    return "n/a" if value is None else format(value, spec)


def _write_analysis(results, out_path):
    """Write analysis.md summarizing results."""
    lines = ["# Treasury Futures Volatility Ratios: Analysis\n"]

    lines.append("## Daily Range Ratios\n")
    lines.append("| Ratio | Days | Mean | Std |")
    lines.append("|-------|------|------|-----|")
    for name, s in results["summaries"].items():
        lines.append(f"| {name} | {s.count} | {_fmt(s.mean, '.4f')} | {_fmt(s.std, '.4f')} |")
    lines.append("")

    lines.append("## Daily Range Relationship\n")
    lines.append("| Pair | N | Pearson r | p-value | Slope | R² |")
    lines.append("|------|---|-----------|---------|-------|----|")
    for row in results["relationship"].to_dict(orient="records"):
        lines.append(f"| {row['pair']} | {row['n']} | {_fmt(row['pearson_r'])} | "
                     f"{_fmt(row['p_value'], '.2e')} | {_fmt(row['slope'])} | "
                     f"{_fmt(row['r_squared'])} |")
    lines.append("")

    lines.append("## Conditional Probabilities (bootstrap CI)\n")
    lines.append("| Ratio | Relationship | Hour | Days | P | CI low | CI high |")
    lines.append("|-------|--------------|------|------|---|--------|---------|")
    for row in results["probabilities"].to_dict(orient="records"):
        lines.append(f"| {row['ratio']} | {row['relationship']} | {row['hour']} | "
                     f"{row['n_conditioned']} | {_fmt(row['probability'])} | "
                     f"{_fmt(row['lower'])} | {_fmt(row['upper'])} |")
    lines.append("")

    with open(out_path, "w") as fp:
        fp.write("\n".join(lines))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Treasury futures volatility-ratio study")
    parser.add_argument("--data-dir", type=str, default=None,
                        help=f"Directory with the tick files (default {config.DATA_DIR})")
    parser.add_argument("--output-dir", type=str, default=None,
                        help=f"Results directory (default {config.RESULTS_DIR})")
    parser.add_argument("--iterations", type=int, default=config.BOOTSTRAP_ITERATIONS,
                        help="Bootstrap resamples per probability")
    parser.add_argument("--seed", type=int, default=config.BOOTSTRAP_SEED,
                        help="Bootstrap random seed")
    parser.add_argument("--alpha", type=float, default=config.CONFIDENCE_ALPHA,
                        help="Confidence interval alpha")
    args = parser.parse_args(argv)

    results = run_pipeline(data_dir=args.data_dir, iterations=args.iterations,
                           seed=args.seed, alpha=args.alpha)
    save_results(results, args.output_dir)
    return results


if __name__ == "__main__":
    main()
