"""
Random Forest Learners
======================
Factories for the random forest used throughout, and the featureless
baseline that predicts the training class prior everywhere.
"""

from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier


def build_random_forest(n_estimators=500, max_features='sqrt', min_samples_leaf=1,
                        max_samples=None, class_weight=None, n_jobs=None,
                        random_state=42):
    """
    Create a configured RandomForestClassifier.

    n_jobs defaults to None so an active joblib context decides the workers.

    Returns:
        sklearn RandomForestClassifier instance
    """
    return RandomForestClassifier(
        n_estimators=n_estimators,
        max_features=max_features,
        min_samples_leaf=min_samples_leaf,
        max_samples=max_samples,
        bootstrap=True,
        class_weight=class_weight,
        n_jobs=n_jobs,
        random_state=random_state,
    )


def build_featureless(strategy='prior'):
    """Featureless learner: predicts the training class distribution."""
    return DummyClassifier(strategy=strategy)


def build_learner(model_cfg=None):
    """
    Build the learner described by the 'model' config section.

    When model_cfg['fallback'] is true the forest is wrapped in a
    FallbackClassifier with a featureless fallback.
    """
    from landslide_cv.models.fallback import FallbackClassifier

    model_cfg = dict(model_cfg or {})
    use_fallback = bool(model_cfg.pop('fallback', False))
    forest = build_random_forest(**model_cfg)
    if use_fallback:
        return FallbackClassifier(learner=forest, fallback=build_featureless())
    return forest
