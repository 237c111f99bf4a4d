"""
Training Entry Points
=====================
Run via python -m landslide_cv.training.<module> --config configs/default.yaml

Modules:
    spatial_cv        - Benchmark random vs spatial resampling, holdout test on grid blocks
    feature_selection - Recursive feature elimination with spatial CV
    tuning            - Random-search / Bayesian tuning, nested spatial resampling
    predict_map       - Fit the final model and predict a susceptibility raster
    common            - Shared config-driven loading helpers
"""
