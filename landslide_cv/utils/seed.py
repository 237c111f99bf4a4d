"""
Seeding
=======
Global seeds for code that draws from ``random`` or NumPy's legacy global
generator. Estimators, resampling and tuners take their own seed through
``random_state`` / ``seed`` arguments; this only covers the rest.
"""

import random
import numpy as np


def set_seed(seed=42):
    """Seed random and numpy; returns the seed for logging."""
    if seed is None:
        return None
    seed = int(seed)
    random.seed(seed)
    np.random.seed(seed)
    return seed
