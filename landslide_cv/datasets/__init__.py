"""
Datasets
========
Task containers consumed by learners and resampling strategies.

Modules:
    task - ClassificationTask: features, binary response, coordinates and blocks
"""
