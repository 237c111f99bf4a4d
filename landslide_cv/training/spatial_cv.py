"""
Spatial vs Random Cross-Validation Benchmark
============================================
Resamples the random forest and a featureless baseline with every
configured strategy (random CV, k-means spatial CV, block CV, LOBO-CV),
then fits on the training blocks and checks the held-out test blocks.

Usage:
    python -m landslide_cv.training.spatial_cv --config configs/default.yaml
    python -m landslide_cv.training.spatial_cv --strategies random_cv spatial_cv

Output:
    outputs/spatial_cv/
        benchmark_results.csv      - per-iteration scores
        benchmark_summary.csv      - mean / sd per resampling x learner
        auc_boxplot.png
        folds_<strategy>.png       - train/test points of the first repeat
        holdout_metrics.json
        confusion_matrix.png
"""

import argparse
import json
import os

from landslide_cv.config import add_config_argument, get_path, get_section, load_config
from landslide_cv.evaluation.benchmark import benchmark, holdout_evaluate, summarize_benchmark
from landslide_cv.evaluation.visualize import (
    plot_benchmark_boxplot,
    plot_confusion_matrix_heatmap,
    plot_partition_map,
)
from landslide_cv.models.random_forest import build_featureless, build_learner
from landslide_cv.training.common import build_resampling, build_task, load_points_from_config
from landslide_cv.utils.run_log import RunLog
from landslide_cv.utils.seed import set_seed


def main():
    ap = argparse.ArgumentParser(description="Benchmark random vs spatial cross-validation")
    add_config_argument(ap)
    ap.add_argument("--strategies", nargs="+", default=None,
                    help="Subset of resampling.strategies names to run")
    ap.add_argument("--n_jobs", type=int, default=None)
    args = ap.parse_args()

    cfg = load_config(args.config)
    rs_section = get_section(cfg, 'resampling', required=('strategies',))
    strategies = rs_section['strategies']
    if args.strategies:
        unknown = [s for s in args.strategies if s not in strategies]
        if unknown:
            ap.error(f"Unknown strategies {unknown}; configured: {list(strategies)}")
        strategies = {name: strategies[name] for name in args.strategies}
    n_jobs = args.n_jobs if args.n_jobs is not None else rs_section.get('n_jobs')
    threshold = cfg.get('evaluation', {}).get('threshold', 0.5)

    output_dir = os.path.join(get_path(cfg, 'output_dir'), 'spatial_cv')
    os.makedirs(output_dir, exist_ok=True)
    run_log = RunLog(output_dir, "spatial_cv", vars(args))
    run_log["seed"] = set_seed(rs_section.get('seed', 42))

    print("=" * 70)
    print("RANDOM VS SPATIAL CROSS-VALIDATION")
    print("=" * 70)
    for name, rs_cfg in strategies.items():
        print(f"  {name:12s}: {rs_cfg}")
    print("=" * 70)

    print("\n[STEP 1] Loading data...")
    points = load_points_from_config(cfg)
    task = build_task(points, cfg)
    print(f"  {task}")
    print(f"  Class balance: {task.class_balance().round(3).to_dict()}")

    print("\n[STEP 2] Instantiating resampling strategies...")
    resamplings = {}
    for name, rs_cfg in strategies.items():
        resamplings[name] = build_resampling(rs_cfg, cfg).instantiate(task)
        print(f"  {name:12s}: {resamplings[name]}")
        plot_partition_map(task, resamplings[name], os.path.join(output_dir, f"folds_{name}.png"))

    print("\n[STEP 3] Benchmarking...")
    learners = {
        'random_forest': build_learner(cfg.get('model')),
        'featureless': build_featureless(),
    }
    results = benchmark(task, learners, resamplings, n_jobs=n_jobs)
    results.to_csv(os.path.join(output_dir, 'benchmark_results.csv'), index=False)
    summary = summarize_benchmark(results)
    summary.to_csv(os.path.join(output_dir, 'benchmark_summary.csv'))

    print("\n" + "=" * 70)
    print("PERFORMANCE BY RESAMPLING STRATEGY")
    print("=" * 70)
    print(summary.to_string())
    n_fallback = int(results['fallback'].sum())
    if n_fallback:
        print(f"\n  [Warning] {n_fallback} iterations used the featureless fallback")
    plot_benchmark_boxplot(results, os.path.join(output_dir, 'auc_boxplot.png'))

    print("\n[STEP 4] Holdout evaluation on test blocks...")
    test_task = build_task(points, cfg, splits=("test",))
    metrics, _, _ = holdout_evaluate(task, test_task, learners['random_forest'], threshold)
    print(f"  Test points: {metrics['n_samples']} ({metrics['n_landslides']} landslides)")
    print(f"  AUC: {metrics['auc']:.4f}   Brier: {metrics['brier']:.4f}   "
          f"Accuracy: {metrics['accuracy']:.4f}")
    with open(os.path.join(output_dir, 'holdout_metrics.json'), 'w', encoding='utf-8') as f:
        json.dump(metrics, f, indent=2)
    plot_confusion_matrix_heatmap(
        tp=metrics['tp'], fp=metrics['fp'], tn=metrics['tn'], fn=metrics['fn'],
        threshold=threshold,
        output_path=os.path.join(output_dir, 'confusion_matrix.png'),
    )

    run_log["task"] = {'n_obs': task.n_obs, 'features': task.features}
    run_log["resampling"] = {name: rs.describe() for name, rs in resamplings.items()}
    run_log["summary"] = summary.reset_index().to_dict(orient='records')
    run_log["holdout"] = metrics

    print("\n" + "=" * 70)
    print("BENCHMARK COMPLETE!")
    print(f"Results saved to: {output_dir}")
    print("=" * 70)
    run_log.finish()


if __name__ == "__main__":
    main()
