# tests/test_fallback.py
import numpy as np
import pytest
from sklearn.base import BaseEstimator, ClassifierMixin, clone

from landslide_cv.evaluation.benchmark import resample
from landslide_cv.evaluation.resampling import SpatialResampling
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.models.random_forest import build_learner


class FailingClassifier(ClassifierMixin, BaseEstimator):
    def fit(self, X, y):
        raise RuntimeError("learner exploded")


class PredictFailingClassifier(ClassifierMixin, BaseEstimator):
    def fit(self, X, y):
        self.classes_ = np.unique(y)
        return self

    def predict_proba(self, X):
        raise RuntimeError("cannot predict")


def test_fallback_used_when_fit_fails(task):
    model = FallbackClassifier(learner=FailingClassifier())
    with pytest.warns(UserWarning, match='learner exploded'):
        model.fit(task.X, task.y)
    assert model.used_fallback_
    assert 'learner exploded' in model.error_
    proba = model.predict_proba(task.X)
    prior = np.bincount(task.y) / task.n_obs
    assert np.allclose(proba, prior)
    assert np.allclose(model.feature_importances_, 1.0 / task.n_features)


def test_fallback_used_when_predict_fails(task):
    model = FallbackClassifier(learner=PredictFailingClassifier()).fit(task.X, task.y)
    assert not model.used_fallback_
    with pytest.warns(UserWarning, match='cannot predict'):
        preds = model.predict(task.X)
    assert model.used_fallback_
    assert len(preds) == task.n_obs


def test_primary_learner_used_when_it_works(task, small_forest):
    model = FallbackClassifier(learner=small_forest).fit(task.X, task.y)
    assert not model.used_fallback_
    assert model.error_ is None
    assert model.predict_proba(task.X).shape == (task.n_obs, 2)
    assert model.feature_importances_.shape == (task.n_features,)


def test_clone_and_nested_params(small_forest):
    model = FallbackClassifier(learner=small_forest)
    params = model.get_params()
    assert params['learner__n_estimators'] == 15
    copy = clone(model).set_params(learner__min_samples_leaf=4)
    assert copy.learner.min_samples_leaf == 4
    assert small_forest.min_samples_leaf == 1


def test_build_learner_wraps_when_configured():
    wrapped = build_learner({'n_estimators': 10, 'fallback': True})
    assert isinstance(wrapped, FallbackClassifier)
    assert wrapped.learner.n_estimators == 10
    plain = build_learner({'n_estimators': 10, 'fallback': False})
    assert not isinstance(plain, FallbackClassifier)


def test_resample_reports_fallback_iterations(task):
    rs = SpatialResampling("spcv_coords", folds=3, seed=0).instantiate(task)
    with pytest.warns(UserWarning):
        result = resample(task, FallbackClassifier(learner=FailingClassifier()), rs)
    assert result.n_fallback == 3
    finite = result.scores['auc'].dropna()
    assert np.allclose(finite, 0.5)
