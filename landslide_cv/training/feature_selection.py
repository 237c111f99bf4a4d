"""
Recursive Feature Elimination with Spatial CV
=============================================
Drops the least important predictor (random forest impurity importance)
one step at a time and scores every subset size with spatial resampling.
The subset size with the best mean AUC is kept.

Usage:
    python -m landslide_cv.training.feature_selection --config configs/default.yaml

Output:
    outputs/feature_selection/
        feature_selection.json   - selected features, ranking, best AUC
        rfe_scores.csv           - mean / sd AUC per number of features
        rfe_curve.png
"""

import argparse
import json
import os
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.feature_selection import RFE, RFECV

from landslide_cv.config import add_config_argument, get_path, get_section, load_config
from landslide_cv.evaluation.metrics import auc_scorer, best_finite_index, fold_score_summary
from landslide_cv.evaluation.visualize import plot_rfe_curve
from landslide_cv.models.random_forest import build_learner
from landslide_cv.training.common import build_resampling, build_task, load_points_from_config
from landslide_cv.utils.run_log import RunLog
from landslide_cv.utils.seed import set_seed


@dataclass
class FeatureSelectionResult:
    selected_features: List[str]
    scores: pd.DataFrame
    ranking: Dict[str, int] = field(default_factory=dict)

    @property
    def best_score(self):
        row = self.scores.loc[self.scores['n_features'] == len(self.selected_features)]
        return float(row['mean_auc'].iloc[0])

    def to_dict(self):
        return {
            'selected_features': self.selected_features,
            'n_selected': len(self.selected_features),
            'best_mean_auc': self.best_score,
            'ranking': self.ranking,
        }


def select_features_rfe(task, learner, resampling, min_features=1, step=1, n_jobs=None):
    """
    Run recursive feature elimination scored by AUC over spatial folds.

    Args:
        task: ClassificationTask
        learner: Unfitted classifier exposing feature_importances_ after fit
        resampling: SpatialResampling (instantiated on task if needed)
        min_features: Smallest subset size tried
        step: Features removed per elimination round

    Returns:
        FeatureSelectionResult
    """
    if not 1 <= min_features <= task.n_features:
        raise ValueError(f"min_features must be in [1, {task.n_features}], got {min_features}")
    if resampling.splits_ is None:
        resampling.instantiate(task)

    rfecv = RFECV(
        estimator=clone(learner),
        step=step,
        min_features_to_select=min_features,
        cv=resampling,
        scoring=auc_scorer,
        n_jobs=n_jobs,
    )
    rfecv.fit(task.X, task.y)

    # RFECV averages NaN folds into NaN; rank subset sizes on the finite folds only.
    mean, std = fold_score_summary(rfecv.cv_results_, len(resampling))
    n_features = np.asarray(rfecv.cv_results_['n_features'])
    scores = pd.DataFrame({'n_features': n_features, 'mean_auc': mean, 'std_auc': std})
    best = int(n_features[best_finite_index(mean)])

    if best == rfecv.n_features_:
        support, ranking = rfecv.support_, rfecv.ranking_
    else:
        rfe = RFE(clone(learner), n_features_to_select=best, step=step).fit(task.X, task.y)
        support, ranking = rfe.support_, rfe.ranking_

    selected = [f for f, keep in zip(task.features, support) if keep]
    ranking = {f: int(r) for f, r in zip(task.features, ranking)}
    return FeatureSelectionResult(selected_features=selected, scores=scores, ranking=ranking)


def main():
    ap = argparse.ArgumentParser(description="Recursive feature elimination with spatial CV")
    add_config_argument(ap)
    ap.add_argument("--method", type=str, default=None,
                    help="Override resampling method (cv, spcv_coords, spcv_block, lobo)")
    args = ap.parse_args()

    cfg = load_config(args.config)
    fs_cfg = get_section(cfg, 'feature_selection', required=('resampling',))
    rs_cfg = dict(fs_cfg['resampling'])
    if args.method:
        rs_cfg['method'] = args.method
    output_dir = os.path.join(get_path(cfg, 'output_dir'), 'feature_selection')
    os.makedirs(output_dir, exist_ok=True)
    run_log = RunLog(output_dir, "feature_selection", vars(args))
    run_log["seed"] = set_seed(cfg.get('resampling', {}).get('seed', 42))

    print("=" * 70)
    print("RECURSIVE FEATURE ELIMINATION")
    print("=" * 70)

    print("\n[STEP 1] Loading data...")
    points = load_points_from_config(cfg)
    task = build_task(points, cfg)
    print(f"  {task}")

    print("\n[STEP 2] Instantiating resampling...")
    resampling = build_resampling(rs_cfg, cfg).instantiate(task)
    print(f"  {resampling}")

    print("\n[STEP 3] Running RFE...")
    learner = build_learner(cfg.get('model'))
    result = select_features_rfe(
        task, learner, resampling,
        min_features=fs_cfg.get('min_features', 1),
        step=fs_cfg.get('step', 1),
        n_jobs=fs_cfg.get('n_jobs'),
    )
    print(result.scores.round(4).to_string(index=False))
    print(f"\n  Selected {len(result.selected_features)} features: {result.selected_features}")
    print(f"  Best mean AUC: {result.best_score:.4f}")

    print("\n[STEP 4] Saving results...")
    result.scores.to_csv(os.path.join(output_dir, 'rfe_scores.csv'), index=False)
    json_path = os.path.join(output_dir, 'feature_selection.json')
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump({**result.to_dict(), 'resampling': resampling.describe()}, f, indent=2)
    print(f"  Saved: {json_path}")
    plot_rfe_curve(result, os.path.join(output_dir, 'rfe_curve.png'))

    run_log["resampling"] = resampling.describe()
    run_log["result"] = result.to_dict()

    print("\n" + "=" * 70)
    print("FEATURE SELECTION COMPLETE!")
    print(f"Output: {output_dir}")
    print("=" * 70)
    run_log.finish()


if __name__ == "__main__":
    main()
