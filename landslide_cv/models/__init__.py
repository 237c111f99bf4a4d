"""
Model Definitions
=================
Learners for landslide susceptibility. Contains model construction only --
no resampling or training logic.

Modules:
    random_forest - RandomForestClassifier and featureless baseline factories
    fallback      - FallbackClassifier: featureless answer when the primary learner fails
"""

from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.models.random_forest import (
    build_featureless,
    build_learner,
    build_random_forest,
)

__all__ = ["FallbackClassifier", "build_featureless", "build_learner", "build_random_forest"]
