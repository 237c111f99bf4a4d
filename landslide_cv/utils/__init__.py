"""
Shared Utilities
================
Common functions used across multiple modules.

Modules:
    seed      - Random seed setting for reproducibility (Python + NumPy)
    parallel  - joblib worker pool activation for tuning steps
    raster_io - GeoTIFF read/write of predictor stacks and probability maps
    run_log   - JSON run metadata that survives failed runs
"""
