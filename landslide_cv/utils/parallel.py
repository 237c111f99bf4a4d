"""
Parallel Execution
==================
Activates a joblib worker pool for a block of work and restores the previous
configuration afterwards. scikit-learn estimators and searches built with
``n_jobs=None`` pick up the active pool.

Usage:
    with parallel_workers(4):
        result = tune(task, learner, resampling, space)
"""

import os
from contextlib import contextmanager

from joblib import parallel_config


def resolve_n_jobs(n_jobs):
    """
    Translate an n_jobs setting into a concrete worker count.

    None and 1 mean sequential; -1 means all cores; -2 all but one, etc.
    """
    if n_jobs is None:
        return 1
    n_jobs = int(n_jobs)
    if n_jobs == 0:
        raise ValueError("n_jobs must not be 0")
    n_cpu = os.cpu_count() or 1
    if n_jobs < 0:
        return max(1, n_cpu + 1 + n_jobs)
    return n_jobs


@contextmanager
def parallel_workers(n_workers=-1, backend="loky"):
    """
    Run the enclosed block with a joblib worker pool.

    Args:
        n_workers: Number of workers (joblib convention, -1 = all cores)
        backend: joblib backend name ('loky', 'threading', 'multiprocessing')

    Yields:
        int: Resolved number of workers
    """
    n = resolve_n_jobs(n_workers)
    print(f"[parallel] Activating {backend} backend with {n} worker(s)")
    try:
        with parallel_config(backend=backend, n_jobs=n):
            yield n
    finally:
        print("[parallel] Worker pool released")
