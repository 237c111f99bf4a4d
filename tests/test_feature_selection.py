# tests/test_feature_selection.py
import json

import pytest

from landslide_cv.evaluation.resampling import SpatialResampling
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.training.feature_selection import select_features_rfe


def test_rfe_scores_every_subset_size(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    result = select_features_rfe(task, small_forest, rs, min_features=2)

    assert sorted(result.scores['n_features']) == list(range(2, task.n_features + 1))
    assert 2 <= len(result.selected_features) <= task.n_features
    assert set(result.selected_features) <= set(task.features)
    assert result.best_score == pytest.approx(result.scores['mean_auc'].max())
    for name in result.selected_features:
        assert result.ranking[name] == 1


def test_rfe_result_serialises(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    result = select_features_rfe(task.select(task.features[:4]), small_forest, rs)
    payload = json.loads(json.dumps(result.to_dict()))
    assert payload['n_selected'] == len(result.selected_features)
    assert set(payload['ranking']) == set(task.features[:4])


def test_rfe_with_fallback_learner(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    result = select_features_rfe(task.select(task.features[:3]),
                                 FallbackClassifier(learner=small_forest), rs)
    assert len(result.scores) == 3


def test_rfe_rejects_bad_min_features(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    with pytest.raises(ValueError):
        select_features_rfe(task, small_forest, rs, min_features=0)
    with pytest.raises(ValueError):
        select_features_rfe(task, small_forest, rs, min_features=task.n_features + 1)


def test_rfe_skips_single_class_folds(task_with_negative_block, small_forest):
    rs = SpatialResampling("custom").instantiate(task_with_negative_block)
    result = select_features_rfe(task_with_negative_block, small_forest, rs, min_features=6)
    assert result.scores['mean_auc'].notna().all()
    assert result.best_score == pytest.approx(result.scores['mean_auc'].max())
    assert len(result.selected_features) == int(
        result.scores.loc[result.scores['mean_auc'].idxmax(), 'n_features'])
