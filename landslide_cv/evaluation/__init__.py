"""
Evaluation Framework
====================
Resampling strategies and model-agnostic evaluation tools.

Modules:
    resampling   - Random, k-means spatial, block and leave-one-block-out CV partitions
    metrics      - AUC / Brier scorers, confusion-matrix metrics
    benchmark    - resample(), benchmark() and holdout evaluation
    visualize    - Plotting helpers: blocks, fold maps, box plots, RFE and tuning curves, maps
    compare_runs - Combine benchmark results of several runs into one report
"""
