# tests/test_tuning.py
import numpy as np
import pytest
from joblib.parallel import ThreadingBackend, get_active_backend
from scipy.stats import randint

from landslide_cv.evaluation.resampling import SpatialResampling
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.training.tuning import (
    ParamRange,
    nested_resample,
    resolve_search_space,
    tune,
)
from landslide_cv.utils.parallel import parallel_workers, resolve_n_jobs

SPACE = {
    'max_features': {'type': 'int', 'low': 1, 'high': 'n_features'},
    'min_samples_leaf': {'type': 'int', 'low': 1, 'high': 10},
    'max_samples': {'type': 'float', 'low': 0.2, 'high': 0.9},
}


def test_resolve_search_space_uses_feature_count():
    space = resolve_search_space(SPACE, n_features=9)
    by_name = {p.name: p for p in space}
    assert by_name['max_features'].high == 9
    assert isinstance(by_name['min_samples_leaf'].distribution(), type(randint(1, 2)))


def test_resolve_search_space_rejects_bad_bounds():
    with pytest.raises(ValueError):
        resolve_search_space({'max_features': {'type': 'int', 'low': 1, 'high': 12}}, 9)
    with pytest.raises(ValueError):
        resolve_search_space({'max_samples': {'type': 'float', 'low': 0.9, 'high': 0.2}}, 9)
    with pytest.raises(ValueError):
        resolve_search_space({}, 9)


def test_log_int_range_draws_integers():
    values = ParamRange('min_samples_leaf', 'int', 1, 50, log=True).distribution()
    assert all(isinstance(v, int) for v in values)
    assert values[0] == 1 and values[-1] == 50


def test_random_search(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    result = tune(task, small_forest, rs, SPACE, method="random_search", n_evals=3, seed=0)
    assert result.method == "random_search"
    assert len(result.history) == 3
    assert set(result.best_params) == set(SPACE)
    assert 1 <= result.best_params['max_features'] <= task.n_features
    assert result.best_score == pytest.approx(result.history['score'].max())
    assert hasattr(result.best_estimator, 'estimators_')


def test_bayesian(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    result = tune(task, small_forest, rs, SPACE, method="bayesian", n_evals=3, seed=0)
    assert result.method == "bayesian"
    assert list(result.history['evaluation']) == [1, 2, 3]
    assert 0.2 <= result.best_params['max_samples'] <= 0.9
    assert result.to_dict()['n_evals'] == 3


def test_tuning_fallback_learner_params(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    learner = FallbackClassifier(learner=small_forest)
    result = tune(task, learner, rs, SPACE, n_evals=2, seed=1)
    assert 'max_features' in result.best_params
    assert result.best_estimator.learner_.max_features == result.best_params['max_features']


def test_tune_rejects_unknown_method(task, small_forest):
    rs = SpatialResampling("cv", folds=3, seed=0)
    with pytest.raises(ValueError):
        tune(task, small_forest, rs, SPACE, method="grid")
    with pytest.raises(ValueError):
        tune(task, small_forest, rs, SPACE, n_evals=0)


def test_nested_resample(task, small_forest):
    outer = SpatialResampling("spcv_coords", folds=2, seed=0)
    df = nested_resample(task, small_forest, outer, {'method': 'cv', 'folds': 2},
                         SPACE, n_evals=2, seed=0)
    assert len(df) == 2
    assert {'inner_auc', 'auc', 'brier', 'param_max_features'} <= set(df.columns)
    assert (df['n_train'] + df['n_test'] == task.n_obs).all()


def test_parallel_workers_context(task, small_forest):
    rs = SpatialResampling("cv", folds=2, seed=0)
    with parallel_workers(2, backend="threading") as n:
        assert n == 2
        result = tune(task, small_forest, rs, SPACE, n_evals=2, seed=0)
    assert np.isfinite(result.best_score)


def test_resolve_n_jobs():
    assert resolve_n_jobs(None) == 1
    assert resolve_n_jobs(3) == 3
    assert resolve_n_jobs(-1) >= 1
    with pytest.raises(ValueError):
        resolve_n_jobs(0)


def test_random_search_skips_single_class_folds(task_with_negative_block, small_forest):
    rs = SpatialResampling("custom").instantiate(task_with_negative_block)
    result = tune(task_with_negative_block, small_forest, rs, SPACE,
                  method="random_search", n_evals=4, seed=0)
    assert np.isfinite(result.history['score']).all()
    assert np.isfinite(result.best_score)
    assert result.best_score == pytest.approx(result.history['score'].max())
    best_row = result.history.loc[result.history['score'].idxmax()]
    assert best_row['max_features'] == result.best_params['max_features']


def test_bayesian_skips_single_class_folds(task_with_negative_block, small_forest):
    rs = SpatialResampling("custom").instantiate(task_with_negative_block)
    result = tune(task_with_negative_block, small_forest, rs, SPACE,
                  method="bayesian", n_evals=2, seed=0)
    assert np.isfinite(result.best_score)


def test_parallel_workers_restored_after_error():
    before_backend, before_n = get_active_backend()
    with pytest.raises(RuntimeError, match="tuning failed"):
        with parallel_workers(2, backend="threading"):
            assert isinstance(get_active_backend()[0], ThreadingBackend)
            raise RuntimeError("tuning failed")
    after_backend, after_n = get_active_backend()
    assert type(after_backend) is type(before_backend)
    assert after_n == before_n
