"""
Resampling and Benchmarking
===========================
Runs learners over resampling strategies and collects per-iteration scores.

The point of comparing strategies: with spatially autocorrelated data,
random CV test points sit next to training points and the AUC estimate is
over-optimistic; spatial CV estimates performance on unseen terrain.

Usage:
    result = resample(task, build_random_forest(), spatial_rs)
    result.aggregate()                      # {'auc': 0.71, 'brier': 0.21, ...}

    df = benchmark(task, {"rf": rf, "featureless": dummy},
                   {"random_cv": rcv, "spatial_cv": scv})
    summarize_benchmark(df)
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import cross_validate

from landslide_cv.evaluation.metrics import (
    build_scorers,
    compute_classification_metrics,
    positive_proba,
)


@dataclass
class ResampleResult:
    learner_id: str
    resampling_id: str
    scores: pd.DataFrame

    @property
    def n_iterations(self):
        return len(self.scores)

    @property
    def n_fallback(self):
        return int(self.scores['fallback'].sum())

    def aggregate(self, measures=None):
        """Mean of each measure over iterations, ignoring NaN folds."""
        measures = measures or [c for c in ('auc', 'brier', 'accuracy', 'balanced_accuracy')
                                if c in self.scores.columns]
        return {m: float(np.nanmean(self.scores[m].to_numpy(dtype=float))) for m in measures}


def _learner_id(learner):
    inner = getattr(learner, 'learner', None)
    if inner is not None:
        return f"{type(inner).__name__}+fallback"
    return type(learner).__name__


def resample(task, learner, resampling, n_jobs=None, scorers=None,
             learner_id=None, resampling_id=None):
    """
    Evaluate a learner over every iteration of a resampling strategy.

    Args:
        task: ClassificationTask
        learner: Unfitted sklearn classifier
        resampling: SpatialResampling (instantiated on the task if it is not yet)
        n_jobs: Parallel iterations (None = active joblib context)
        scorers: Scoring dict (default: build_scorers())

    Returns:
        ResampleResult with one row per iteration
    """
    if resampling.splits_ is None:
        resampling.instantiate(task)
    scorers = scorers or build_scorers()

    cv_out = cross_validate(
        learner, task.X, task.y,
        cv=resampling,
        scoring=scorers,
        n_jobs=n_jobs,
        return_estimator=True,
        error_score='raise',
    )

    rows = []
    for i, ((repeat, fold), (train, test)) in enumerate(zip(resampling.iterations_,
                                                              resampling.splits_)):
        row = {
            'iteration': i + 1,
            'repeat': repeat + 1,
            'fold': fold + 1,
            'n_train': len(train),
            'n_test': len(test),
            'fit_time': float(cv_out['fit_time'][i]),
        }
        for name in scorers:
            row[name] = float(cv_out[f'test_{name}'][i])
        row['fallback'] = bool(getattr(cv_out['estimator'][i], 'used_fallback_', False))
        rows.append(row)

    return ResampleResult(
        learner_id=learner_id or _learner_id(learner),
        resampling_id=resampling_id or resampling.method,
        scores=pd.DataFrame(rows),
    )


def benchmark(task, learners, resamplings, n_jobs=None):
    """
    Resample every learner with every strategy.

    Each strategy is instantiated once, so all learners see identical folds.

    Args:
        task: ClassificationTask
        learners: dict name -> unfitted classifier
        resamplings: dict name -> SpatialResampling

    Returns:
        Long DataFrame of per-iteration scores with 'learner' and 'resampling' columns
    """
    frames = []
    for rs_name, rs in resamplings.items():
        if rs.splits_ is None:
            rs.instantiate(task)
        for lrn_name, learner in learners.items():
            print(f"  [benchmark] {lrn_name} x {rs_name} ({len(rs)} iterations)")
            result = resample(task, learner, rs, n_jobs=n_jobs,
                              learner_id=lrn_name, resampling_id=rs_name)
            frame = result.scores.copy()
            frame.insert(0, 'resampling', rs_name)
            frame.insert(0, 'learner', lrn_name)
            frames.append(frame)
    if not frames:
        raise ValueError("benchmark needs at least one learner and one resampling")
    return pd.concat(frames, ignore_index=True)


def summarize_benchmark(results, measures=('auc', 'brier')):
    """Mean and standard deviation of each measure per resampling x learner."""
    measures = [m for m in measures if m in results.columns]
    summary = results.groupby(['resampling', 'learner'])[measures].agg(['mean', 'std'])
    summary.columns = [f"{m}_{stat}" for m, stat in summary.columns]
    summary['n_iterations'] = results.groupby(['resampling', 'learner']).size()
    return summary.round(4)


def holdout_evaluate(train_task, test_task, learner, threshold=0.5):
    """
    Fit on the training blocks and evaluate on held-out test blocks.

    Returns:
        tuple: (metrics dict, fitted model, test probabilities)
    """
    if test_task.n_obs == 0:
        raise RuntimeError("Holdout test set is empty")
    model = clone(learner).fit(train_task.X, train_task.y)
    y_prob = positive_proba(model, test_task.X)
    metrics = compute_classification_metrics(test_task.y, y_prob, threshold)
    return metrics, model, y_prob
