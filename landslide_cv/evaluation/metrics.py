"""
Evaluation Metrics
==================
Scorers used inside resampling, and confusion-matrix metrics for holdout
evaluation of landslide susceptibility predictions.

Metrics:
    - AUC-ROC (main resampling measure)
    - Brier Score (probability-based)
    - POD (Probability of Detection / Recall), FAR, CSI
    - Precision, F1, Accuracy

Scorers return NaN instead of failing when a test fold holds a single class,
which happens with small spatial blocks.
"""

import numpy as np
from sklearn.metrics import brier_score_loss, confusion_matrix, roc_auc_score


def positive_proba(estimator, X, positive=1):
    """Predicted probability of the positive class."""
    proba = estimator.predict_proba(X)
    classes = list(estimator.classes_)
    if positive not in classes:
        return np.zeros(proba.shape[0])
    return proba[:, classes.index(positive)]


def auc_scorer(estimator, X, y):
    """AUC-ROC of the positive class; NaN for single-class folds."""
    y = np.asarray(y)
    if len(np.unique(y)) < 2:
        return np.nan
    return float(roc_auc_score(y, positive_proba(estimator, X)))


def brier_scorer(estimator, X, y):
    """Brier score (lower is better); NaN for empty folds."""
    y = np.asarray(y)
    if len(y) == 0:
        return np.nan
    return float(brier_score_loss(y, positive_proba(estimator, X), pos_label=1))


def build_scorers():
    """Scoring dict for sklearn.model_selection.cross_validate."""
    return {
        'auc': auc_scorer,
        'brier': brier_scorer,
        'accuracy': 'accuracy',
        'balanced_accuracy': 'balanced_accuracy',
    }


def compute_classification_metrics(y_true, y_prob, threshold=0.5):
    """
    Compute confusion matrix and derived metrics.

    Args:
        y_true: [N] binary labels (0/1)
        y_prob: [N] predicted landslide probabilities
        threshold: Probability threshold for binary classification

    Returns:
        dict with confusion matrix and metrics, or None if no valid data
    """
    y_true = np.asarray(y_true, dtype=float)
    y_prob = np.asarray(y_prob, dtype=float)

    valid = np.isfinite(y_true) & np.isfinite(y_prob)
    y_true = y_true[valid].astype(int)
    y_prob = y_prob[valid]

    if len(y_true) == 0:
        return None

    y_pred = (y_prob >= threshold).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()

    # POD = Hit Rate = Recall
    pod = tp / (tp + fn) if (tp + fn) > 0 else 0.0
    far = fp / (fp + tp) if (fp + tp) > 0 else 0.0
    csi = tp / (tp + fp + fn) if (tp + fp + fn) > 0 else 0.0
    precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
    f1 = 2 * tp / (2 * tp + fp + fn) if (2 * tp + fp + fn) > 0 else 0.0
    accuracy = (tp + tn) / len(y_true)

    brier = brier_score_loss(y_true, y_prob, pos_label=1)
    if len(np.unique(y_true)) > 1:
        auc = roc_auc_score(y_true, y_prob)
    else:
        auc = np.nan

    return {
        'threshold': threshold,
        'n_samples': int(len(y_true)),
        'n_landslides': int(y_true.sum()),
        'tp': int(tp), 'fp': int(fp), 'tn': int(tn), 'fn': int(fn),
        'pod': float(pod),
        'far': float(far),
        'csi': float(csi),
        'precision': float(precision),
        'f1': float(f1),
        'accuracy': float(accuracy),
        'brier': float(brier),
        'auc': float(auc),
    }


def fold_score_summary(cv_results, n_splits):
    """
    Mean and standard deviation over folds of a scikit-learn cv_results_ dict,
    skipping NaN folds (single-class test sets).

    Args:
        cv_results: cv_results_ of a search or RFECV, with split<k>_test_score keys
        n_splits: Number of folds

    Returns:
        tuple: (mean [n_candidates], std [n_candidates]); NaN where no fold is finite
    """
    scores = np.column_stack([
        np.asarray(cv_results[f'split{k}_test_score'], dtype=float) for k in range(n_splits)
    ])
    finite = np.isfinite(scores)
    counts = finite.sum(axis=1)
    filled = np.where(finite, scores, 0.0)
    with np.errstate(invalid='ignore', divide='ignore'):
        mean = filled.sum(axis=1) / counts
        var = np.where(finite, (scores - mean[:, None]) ** 2, 0.0).sum(axis=1) / counts
    mean[counts == 0] = np.nan
    return mean, np.sqrt(var)


def best_finite_index(mean_scores):
    """Index of the highest finite mean score (first one on ties)."""
    mean_scores = np.asarray(mean_scores, dtype=float)
    if not np.isfinite(mean_scores).any():
        raise ValueError(
            "Every candidate scored NaN: no test fold contains both classes. "
            "Use fewer or larger spatial folds."
        )
    return int(np.nanargmax(mean_scores))
