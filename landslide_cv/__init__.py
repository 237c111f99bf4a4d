"""
Landslide Susceptibility Spatial CV
===================================
Spatial cross-validation, recursive feature elimination and hyperparameter
tuning of random-forest landslide susceptibility models.

Modules:
    data_ops/    - Point loading, demo data simulation, manual grid partitioning
    datasets/    - ClassificationTask container (features, response, coordinates, blocks)
    models/      - Random forest and featureless learners, fallback wrapper
    evaluation/  - Spatial resampling strategies, metrics, benchmarks, plots
    training/    - Entry points (run via python -m landslide_cv.training.xxx)
    utils/       - Shared utility functions
"""

__version__ = "0.1.0"
