"""
Data Operations
===============
Loading, simulation and manual grid partitioning of landslide point data.

Modules:
    loading        - Read points from CSV / vector files, coerce the response to 0/1
    simulate       - Synthetic inventory and predictor rasters for offline runs
    grid_partition - Regular block grid and train/validation/test split by chosen blocks
"""
