"""
Hyperparameter Tuning with Spatial CV
=====================================
Tunes the random forest (max_features, min_samples_leaf, max_samples by
default) by random search or Bayesian optimisation (optuna TPE), scoring
each candidate by mean AUC over spatial folds.

Nested resampling estimates the performance of the whole tuning procedure:
each outer spatial fold runs its own tuning on the outer training set with
an inner spatial resampling, then scores the tuned model on the outer test
fold.

Usage:
    python -m landslide_cv.training.tuning --config configs/default.yaml
    python -m landslide_cv.training.tuning --method bayesian --n_evals 30 --use_selected

Output:
    outputs/tuning/
        tuning.json           - best parameters and inner AUC of the final tuning
        tuning_history.csv    - every evaluated configuration
        nested_results.csv    - outer-fold AUC / Brier and chosen parameters
        tuning_history.png
"""

import argparse
import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import optuna
import pandas as pd
from scipy.stats import loguniform, randint, uniform
from sklearn.base import clone
from sklearn.model_selection import RandomizedSearchCV, cross_val_score

from landslide_cv.config import add_config_argument, get_path, get_section, load_config
from landslide_cv.evaluation.metrics import (
    auc_scorer,
    best_finite_index,
    brier_scorer,
    fold_score_summary,
)
from landslide_cv.evaluation.resampling import SpatialResampling
from landslide_cv.evaluation.visualize import plot_tuning_history
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.models.random_forest import build_learner
from landslide_cv.training.common import build_resampling, build_task, load_points_from_config
from landslide_cv.utils.parallel import parallel_workers
from landslide_cv.utils.run_log import RunLog
from landslide_cv.utils.seed import set_seed

TUNING_METHODS = ("random_search", "bayesian")
# Placeholder accepted as a bound: the number of predictors in the task
N_FEATURES_TOKEN = "n_features"


@dataclass
class ParamRange:
    name: str
    kind: str
    low: Optional[float] = None
    high: Optional[float] = None
    log: bool = False
    choices: Optional[List[Any]] = None

    def __post_init__(self):
        if self.kind == 'categorical':
            if not self.choices:
                raise ValueError(f"Categorical parameter '{self.name}' needs choices")
            return
        if self.kind not in ('int', 'float'):
            raise ValueError(f"Parameter '{self.name}': unknown type '{self.kind}'")
        if self.low is None or self.high is None or self.low > self.high:
            raise ValueError(f"Parameter '{self.name}': invalid bounds [{self.low}, {self.high}]")
        if self.log and self.low <= 0:
            raise ValueError(f"Parameter '{self.name}': log scale needs a positive lower bound")

    def suggest(self, trial):
        """Draw a value from an optuna trial."""
        if self.kind == 'int':
            return trial.suggest_int(self.name, int(self.low), int(self.high), log=self.log)
        if self.kind == 'float':
            return trial.suggest_float(self.name, float(self.low), float(self.high), log=self.log)
        return trial.suggest_categorical(self.name, self.choices)

    def distribution(self):
        """scipy.stats distribution (or list) for RandomizedSearchCV."""
        if self.kind == 'int':
            if self.log:
                # Integers spaced evenly on a log scale, drawn uniformly.
                grid = np.geomspace(self.low, self.high, num=20).round().astype(int)
                return sorted(set(int(v) for v in grid))
            return randint(int(self.low), int(self.high) + 1)
        if self.kind == 'float':
            if self.log:
                return loguniform(self.low, self.high)
            return uniform(self.low, self.high - self.low)
        return list(self.choices)


def _resolve_bound(value, n_features):
    if isinstance(value, str) and value.strip() == N_FEATURES_TOKEN:
        return n_features
    return value


def resolve_search_space(space_cfg, n_features):
    """
    Turn the 'search_space' config block into ParamRange objects.

    Example block:
        max_features: {type: int, low: 1, high: n_features}
        max_samples: {type: float, low: 0.2, high: 0.9}
        criterion: {type: categorical, choices: [gini, entropy]}
    """
    if isinstance(space_cfg, list):
        return space_cfg
    if not space_cfg:
        raise ValueError("Search space is empty")
    space = []
    for name, entry in space_cfg.items():
        space.append(ParamRange(
            name=name,
            kind=entry.get('type', 'float'),
            low=_resolve_bound(entry.get('low'), n_features),
            high=_resolve_bound(entry.get('high'), n_features),
            log=bool(entry.get('log', False)),
            choices=entry.get('choices'),
        ))
    for p in space:
        if p.name == 'max_features' and p.kind == 'int' and p.high > n_features:
            raise ValueError(f"max_features upper bound {p.high} exceeds {n_features} features")
    return space


def _param_prefix(learner):
    return "learner__" if isinstance(learner, FallbackClassifier) else ""


def _plain_value(v):
    return v.item() if isinstance(v, np.generic) else v


@dataclass
class TuningResult:
    method: str
    best_params: Dict[str, Any]
    best_score: float
    history: pd.DataFrame
    best_estimator: Any = None

    def to_dict(self):
        return {
            'method': self.method,
            'best_params': {k: _plain_value(v) for k, v in self.best_params.items()},
            'best_inner_auc': float(self.best_score),
            'n_evals': int(len(self.history)),
        }


def tune_random_search(task, learner, resampling, search_space, n_evals=50,
                       seed=None, n_jobs=None):
    """
    Random search over the space with RandomizedSearchCV.

    Candidates are ranked by their mean AUC over the folds that hold both
    classes, so a single-class spatial fold does not turn every score into NaN.
    """
    prefix = _param_prefix(learner)
    n_splits = len(resampling)

    def refit_best(cv_results):
        return best_finite_index(fold_score_summary(cv_results, n_splits)[0])

    search = RandomizedSearchCV(
        clone(learner),
        param_distributions={prefix + p.name: p.distribution() for p in search_space},
        n_iter=n_evals,
        scoring=auc_scorer,
        cv=resampling,
        n_jobs=n_jobs,
        refit=refit_best,
        random_state=seed,
        error_score='raise',
    )
    search.fit(task.X, task.y)

    history = pd.DataFrame([
        {k[len(prefix):]: _plain_value(v) for k, v in params.items()}
        for params in search.cv_results_['params']
    ])
    history.insert(0, 'evaluation', np.arange(1, len(history) + 1))
    mean, std = fold_score_summary(search.cv_results_, n_splits)
    history['score'] = mean
    history['score_sd'] = std

    best_params = {k[len(prefix):]: v for k, v in search.best_params_.items()}
    return TuningResult('random_search', best_params, float(mean[search.best_index_]),
                        history, search.best_estimator_)


def tune_bayesian(task, learner, resampling, search_space, n_evals=50,
                  seed=None, n_jobs=None):
    """Bayesian optimisation of the space with optuna's TPE sampler."""
    optuna.logging.set_verbosity(optuna.logging.WARNING)
    prefix = _param_prefix(learner)
    X, y = task.X, task.y

    def objective(trial):
        params = {p.name: p.suggest(trial) for p in search_space}
        estimator = clone(learner).set_params(**{prefix + k: v for k, v in params.items()})
        scores = cross_val_score(estimator, X, y, cv=resampling, scoring=auc_scorer, n_jobs=n_jobs)
        trial.set_user_attr('score_sd', float(np.nanstd(scores)))
        return float(np.nanmean(scores))

    study = optuna.create_study(
        direction='maximize', sampler=optuna.samplers.TPESampler(seed=seed)
    )
    study.optimize(objective, n_trials=n_evals)

    history = pd.DataFrame([
        {'evaluation': t.number + 1, **t.params, 'score': t.value,
         'score_sd': t.user_attrs.get('score_sd')}
        for t in study.trials if t.state == optuna.trial.TrialState.COMPLETE
    ])
    best_params = dict(study.best_params)
    best_estimator = clone(learner).set_params(**{prefix + k: v for k, v in best_params.items()})
    best_estimator.fit(X, y)
    return TuningResult('bayesian', best_params, float(study.best_value), history, best_estimator)


def tune(task, learner, resampling, search_space, method="random_search", n_evals=50,
         seed=None, n_jobs=None):
    """
    Tune a learner on a task.

    Args:
        task: ClassificationTask
        learner: Unfitted classifier
        resampling: SpatialResampling used to score candidates
        search_space: List of ParamRange, or the config dict form
        method: 'random_search' or 'bayesian'
        n_evals: Number of evaluated configurations

    Returns:
        TuningResult with the best estimator refit on the whole task
    """
    if method not in TUNING_METHODS:
        raise ValueError(f"Unknown tuning method '{method}', choose from {TUNING_METHODS}")
    if n_evals < 1:
        raise ValueError(f"n_evals must be >= 1, got {n_evals}")
    space = resolve_search_space(search_space, task.n_features)
    if resampling.splits_ is None:
        resampling.instantiate(task)

    if method == "random_search":
        return tune_random_search(task, learner, resampling, space, n_evals, seed, n_jobs)
    return tune_bayesian(task, learner, resampling, space, n_evals, seed, n_jobs)


def nested_resample(task, learner, outer, inner_cfg, search_space, method="random_search",
                    n_evals=50, seed=None, n_jobs=None):
    """
    Nested resampling: tune inside every outer fold, score on the outer test set.

    Args:
        outer: SpatialResampling for the outer loop
        inner_cfg: Config dict of the inner resampling, instantiated per outer training set

    Returns:
        DataFrame with one row per outer iteration
    """
    if outer.splits_ is None:
        outer.instantiate(task)

    rows = []
    for i, ((repeat, fold), (train, test)) in enumerate(zip(outer.iterations_, outer.splits_)):
        inner_task = task.subset(train)
        test_task = task.subset(test)
        inner = SpatialResampling.from_config(inner_cfg, seed=seed).instantiate(inner_task)
        result = tune(inner_task, learner, inner, search_space, method, n_evals, seed, n_jobs)

        row = {
            'iteration': i + 1,
            'repeat': repeat + 1,
            'fold': fold + 1,
            'n_train': len(train),
            'n_test': len(test),
            'inner_auc': result.best_score,
            'auc': auc_scorer(result.best_estimator, test_task.X, test_task.y),
            'brier': brier_scorer(result.best_estimator, test_task.X, test_task.y),
        }
        row.update({f'param_{k}': _plain_value(v) for k, v in result.best_params.items()})
        rows.append(row)
        print(f"  [outer {i + 1}/{len(outer)}] inner AUC {row['inner_auc']:.4f}  "
              f"outer AUC {row['auc']:.4f}  params {result.best_params}")
    return pd.DataFrame(rows)


def _load_selected_features(cfg):
    path = os.path.join(get_path(cfg, 'output_dir'), 'feature_selection', 'feature_selection.json')
    if not os.path.exists(path):
        raise FileNotFoundError(f"{path} not found; run landslide_cv.training.feature_selection first")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)['selected_features']


def main():
    ap = argparse.ArgumentParser(description="Tune random forest with spatial CV")
    add_config_argument(ap)
    ap.add_argument("--method", type=str, default=None, choices=TUNING_METHODS)
    ap.add_argument("--n_evals", type=int, default=None)
    ap.add_argument("--n_jobs", type=int, default=None,
                    help="Size of the joblib worker pool shared by all tuning fits "
                         "(default: tuning.n_jobs; -1 = all cores)")
    ap.add_argument("--no_nested", action="store_true", help="Skip nested resampling")
    ap.add_argument("--use_selected", action="store_true",
                    help="Restrict to features chosen by feature_selection")
    args = ap.parse_args()

    cfg = load_config(args.config)
    tune_cfg = get_section(cfg, 'tuning', required=('search_space', 'inner_resampling'))
    method = args.method or tune_cfg.get('method', 'random_search')
    n_evals = args.n_evals or tune_cfg.get('n_evals', 50)
    n_jobs = args.n_jobs if args.n_jobs is not None else tune_cfg.get('n_jobs', -1)
    nested = tune_cfg.get('nested', True) and not args.no_nested
    seed = cfg.get('resampling', {}).get('seed', 42)

    output_dir = os.path.join(get_path(cfg, 'output_dir'), 'tuning')
    os.makedirs(output_dir, exist_ok=True)
    run_log = RunLog(output_dir, "tuning", vars(args))
    run_log["seed"] = set_seed(seed)

    print("=" * 70)
    print("HYPERPARAMETER TUNING WITH SPATIAL CV")
    print("=" * 70)
    print(f"  Method:  {method}")
    print(f"  Budget:  {n_evals} evaluations")
    print(f"  Nested:  {nested}")
    print("=" * 70)

    print("\n[STEP 1] Loading data...")
    points = load_points_from_config(cfg)
    features = _load_selected_features(cfg) if args.use_selected else None
    task = build_task(points, cfg, features=features)
    print(f"  {task}")
    learner = build_learner(cfg.get('model'))
    space_cfg = tune_cfg['search_space']

    # Workers exist only for the tuning steps.
    with parallel_workers(n_jobs):
        if nested:
            print("\n[STEP 2] Nested resampling...")
            outer = build_resampling(tune_cfg['outer_resampling'], cfg).instantiate(task)
            print(f"  Outer: {outer}")
            nested_df = nested_resample(task, learner, outer, tune_cfg['inner_resampling'],
                                        space_cfg, method, n_evals, seed)
            nested_df.to_csv(os.path.join(output_dir, 'nested_results.csv'), index=False)
            run_log["nested"] = {
                'outer': outer.describe(),
                'mean_auc': float(np.nanmean(nested_df['auc'])),
                'sd_auc': float(np.nanstd(nested_df['auc'])),
            }
            print(f"  Nested AUC: {run_log['nested']['mean_auc']:.4f} "
                  f"(sd {run_log['nested']['sd_auc']:.4f})")

        print("\n[STEP 3] Tuning on the full training set...")
        inner = build_resampling(tune_cfg['inner_resampling'], cfg).instantiate(task)
        result = tune(task, learner, inner, space_cfg, method, n_evals, seed)

    print(f"  Best params:    {result.best_params}")
    print(f"  Best inner AUC: {result.best_score:.4f}")

    print("\n[STEP 4] Saving results...")
    result.history.to_csv(os.path.join(output_dir, 'tuning_history.csv'), index=False)
    json_path = os.path.join(output_dir, 'tuning.json')
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump({**result.to_dict(), 'features': task.features,
                   'resampling': inner.describe()}, f, indent=2)
    print(f"  Saved: {json_path}")
    plot_tuning_history(result.history, os.path.join(output_dir, 'tuning_history.png'))

    run_log["result"] = result.to_dict()
    print("\n" + "=" * 70)
    print("TUNING COMPLETE!")
    print(f"Output: {output_dir}")
    print("=" * 70)
    run_log.finish()


if __name__ == "__main__":
    main()
