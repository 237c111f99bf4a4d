"""
Multi-Run Comparison
====================
Reads benchmark_results.csv from several spatial_cv output directories and
produces a unified comparison table, an AUC-by-resampling plot and a
summary text.

Usage:
    python -m landslide_cv.evaluation.compare_runs \\
        --runs all_features:outputs/spatial_cv \\
               selected:outputs_selected/spatial_cv \\
        --output_dir outputs/run_comparison

Each --runs entry is <display_name>:<path>, where path is a
benchmark_results.csv file or a directory containing one.

Outputs:
    comparison_table.csv  - mean / sd AUC and Brier per run x resampling x learner
    auc_by_resampling.png - grouped bars of mean AUC, one colour per run
    summary.txt
"""

import argparse
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

RESULTS_FILE = "benchmark_results.csv"


def load_run(result_path):
    """
    Load benchmark results of one run.

    result_path can be the csv itself or a directory containing it.
    """
    if result_path.endswith(".csv") and os.path.isfile(result_path):
        csv_path = result_path
    else:
        csv_path = os.path.join(result_path, RESULTS_FILE)
    if not os.path.exists(csv_path):
        raise FileNotFoundError(
            f"{RESULTS_FILE} not found in: {result_path}\n"
            f"Run landslide_cv.training.spatial_cv first, or pass the correct path."
        )
    df = pd.read_csv(csv_path)
    missing = {'learner', 'resampling', 'auc'} - set(df.columns)
    if missing:
        raise ValueError(f"{csv_path} is missing columns: {sorted(missing)}")
    return df


def comparison_table(runs):
    """
    Args:
        runs: dict run name -> benchmark results DataFrame

    Returns:
        DataFrame with one row per run x resampling x learner
    """
    rows = []
    for name, df in runs.items():
        grouped = df.groupby(['resampling', 'learner'])
        for (rs, lrn), g in grouped:
            rows.append({
                'run': name,
                'resampling': rs,
                'learner': lrn,
                'auc_mean': round(float(np.nanmean(g['auc'])), 4),
                'auc_sd': round(float(np.nanstd(g['auc'])), 4),
                'brier_mean': round(float(np.nanmean(g['brier'])), 4) if 'brier' in g else np.nan,
                'n_iterations': len(g),
            })
    return pd.DataFrame(rows)


def plot_auc_by_resampling(table, output_path, learner='random_forest'):
    sub = table[table['learner'] == learner]
    if sub.empty:
        sub = table
    pivot = sub.pivot_table(index='resampling', columns='run', values='auc_mean')

    fig, ax = plt.subplots(figsize=(9, 5))
    colours = sns.color_palette("tab10", len(pivot.columns))
    pivot.plot.bar(ax=ax, color=colours, rot=0)
    ax.axhline(0.5, color="gray", linestyle="--", linewidth=1, alpha=0.6, label="random (0.5)")
    ax.set_xlabel("Resampling", fontsize=12)
    ax.set_ylabel("Mean AUC-ROC", fontsize=12)
    ax.set_title(f"Mean AUC by resampling strategy ({learner})", fontsize=13)
    ax.set_ylim(0.4, 1.0)
    ax.legend(fontsize=10)
    ax.grid(True, axis='y', alpha=0.3)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close()
    print(f"Saved: {output_path}")


def summary_lines(table):
    lines = ["=" * 70, "SPATIAL CV RUN COMPARISON - SUMMARY", "=" * 70, ""]
    runs = list(dict.fromkeys(table['run']))
    header = f"{'Resampling':>14} {'Learner':>14} | " + " | ".join(f"{r:>12}" for r in runs)
    lines.append("Mean AUC")
    lines.append("-" * len(header))
    lines.append(header)
    lines.append("-" * len(header))
    for (rs, lrn), g in table.groupby(['resampling', 'learner']):
        vals = []
        for r in runs:
            match = g.loc[g['run'] == r, 'auc_mean']
            vals.append(f"{match.iloc[0]:>12.4f}" if len(match) else f"{'nan':>12}")
        lines.append(f"{rs:>14} {lrn:>14} | " + " | ".join(vals))
    lines.append("")
    lines.append("=" * 70)
    return lines


def main():
    ap = argparse.ArgumentParser(description="Compare benchmark results of several runs")
    ap.add_argument("--runs", nargs="+", required=True, metavar="NAME:PATH",
                    help="One or more <display_name>:<path> pairs.")
    ap.add_argument("--output_dir", type=str, default="outputs/run_comparison")
    args = ap.parse_args()

    paths = {}
    for entry in args.runs:
        if ":" not in entry:
            ap.error(f"Invalid --runs entry '{entry}'. Expected <name>:<path>.")
        name, path = entry.split(":", 1)
        paths[name] = path

    os.makedirs(args.output_dir, exist_ok=True)

    print("\n" + "=" * 70)
    print("SPATIAL CV RUN COMPARISON")
    print("=" * 70)
    for name, path in paths.items():
        print(f"  {name:20s}: {path}")
    print("=" * 70)

    runs = {name: load_run(path) for name, path in paths.items()}
    table = comparison_table(runs)
    table_path = os.path.join(args.output_dir, "comparison_table.csv")
    table.to_csv(table_path, index=False)
    print(f"\nSaved: {table_path}")

    plot_auc_by_resampling(table, os.path.join(args.output_dir, "auc_by_resampling.png"))

    summary_text = "\n".join(summary_lines(table))
    print("\n" + summary_text)
    summary_path = os.path.join(args.output_dir, "summary.txt")
    with open(summary_path, "w") as f:
        f.write(summary_text + "\n")
    print(f"\nSaved: {summary_path}")


if __name__ == "__main__":
    main()
