"""
Fallback Learner
================
Wraps a learner so that a resampling iteration still produces predictions
when the learner fails: the error is reported as a warning and a
featureless learner answers instead.
"""

import warnings

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin, clone
from sklearn.utils.validation import check_is_fitted

from landslide_cv.models.random_forest import build_featureless, build_random_forest


class FallbackClassifier(ClassifierMixin, BaseEstimator):
    """
    Classifier that falls back to a featureless learner on failure.

    Args:
        learner: Primary estimator (default: random forest)
        fallback: Estimator used when the primary fails (default: class prior)

    Attributes after fit:
        learner_: Fitted primary learner, or None if its fit failed
        fallback_: Fitted fallback learner
        used_fallback_: True if predictions come from the fallback
        error_: repr of the caught exception, or None
    """

    def __init__(self, learner=None, fallback=None):
        self.learner = learner
        self.fallback = fallback

    def _warn(self, stage, exc):
        name = type(self.learner).__name__ if self.learner is not None else "RandomForestClassifier"
        warnings.warn(
            f"[FallbackClassifier] {name} failed during {stage}, using featureless fallback: {exc}",
            stacklevel=3,
        )

    def fit(self, X, y, **fit_params):
        y = np.asarray(y)
        self.classes_ = np.unique(y)
        self.n_features_in_ = np.shape(X)[1]

        fallback = self.fallback if self.fallback is not None else build_featureless()
        self.fallback_ = clone(fallback).fit(X, y)

        learner = self.learner if self.learner is not None else build_random_forest()
        self.error_ = None
        self.used_fallback_ = False
        try:
            self.learner_ = clone(learner).fit(X, y, **fit_params)
        except Exception as exc:
            self._warn("fit", exc)
            self.learner_ = None
            self.used_fallback_ = True
            self.error_ = repr(exc)
        return self

    @property
    def active_(self):
        check_is_fitted(self, 'fallback_')
        return self.fallback_ if self.used_fallback_ else self.learner_

    def predict_proba(self, X):
        if not self.used_fallback_:
            try:
                return self.learner_.predict_proba(X)
            except Exception as exc:
                self._warn("predict", exc)
                self.used_fallback_ = True
                self.error_ = repr(exc)
        return self.fallback_.predict_proba(X)

    def predict(self, X):
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    @property
    def feature_importances_(self):
        """Importances of the primary learner; uniform while the fallback is active."""
        model = self.active_
        if hasattr(model, 'feature_importances_'):
            return model.feature_importances_
        return np.full(self.n_features_in_, 1.0 / self.n_features_in_)
