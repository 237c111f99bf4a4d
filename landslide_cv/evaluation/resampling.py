"""
Resampling Strategies
=====================
Non-spatial and spatial cross-validation partitions for a ClassificationTask.

Methods:
    cv           - Repeated stratified k-fold (ignores space; optimistic baseline)
    spcv_coords  - k-means clusters of the coordinates as folds
    spcv_block   - Square blocks randomly assigned to folds
    lobo         - Leave-one-block-out over the task's block column
    custom       - The task's block column used directly as fold ids

A SpatialResampling is instantiated on a task once; afterwards it is an
iterable of (train_idx, test_idx) pairs and can be passed as ``cv=`` to
scikit-learn's cross_validate, RFECV and search classes.

Usage:
    rs = SpatialResampling("spcv_coords", folds=5, repeats=10, seed=42).instantiate(task)
    cross_validate(learner, task.X, task.y, cv=rs)
"""

import geopandas as gpd
import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.model_selection import LeaveOneGroupOut, RepeatedStratifiedKFold

from landslide_cv.data_ops.grid_partition import assign_blocks, build_grid

METHODS = ("cv", "spcv_coords", "spcv_block", "lobo", "custom")


class SpatialResampling:
    """
    Fold generator for one resampling strategy.

    Args:
        method: One of METHODS
        folds: Number of folds per repeat (ignored by lobo/custom)
        repeats: Number of repetitions with different partitions (ignored by lobo/custom)
        seed: Seed for reproducible partitions
        block_cols, block_rows: Grid size for spcv_block
    """

    def __init__(self, method="spcv_coords", folds=5, repeats=1, seed=None,
                 block_cols=5, block_rows=5):
        if method not in METHODS:
            raise ValueError(f"Unknown resampling method '{method}', choose from {METHODS}")
        if method not in ("lobo", "custom") and int(folds) < 2:
            raise ValueError(f"folds must be >= 2, got {folds}")
        if int(repeats) < 1:
            raise ValueError(f"repeats must be >= 1, got {repeats}")
        self.method = method
        self.folds = int(folds)
        self.repeats = int(repeats)
        self.seed = seed
        self.block_cols = int(block_cols)
        self.block_rows = int(block_rows)
        self.splits_ = None
        self.iterations_ = None
        self.fold_assignment_ = None

    @classmethod
    def from_config(cls, cfg, seed=None):
        """Build from a config dict like {'method': 'spcv_coords', 'folds': 5}."""
        cfg = dict(cfg)
        cfg.setdefault('seed', seed)
        return cls(**cfg)

    def describe(self):
        if self.method in ("lobo", "custom"):
            return f"{self.method}"
        return f"{self.method} ({self.folds} folds x {self.repeats} repeats)"

    def _seed_for(self, repeat):
        return None if self.seed is None else int(self.seed) + repeat

    def _require_blocks(self, task):
        groups = task.groups
        if groups is None:
            raise ValueError(
                f"Resampling '{self.method}' needs a block column on the task; "
                f"partition the points first"
            )
        return groups

    def _cluster_labels(self, coords, repeat):
        n_unique = len(np.unique(coords, axis=0))
        if self.folds > n_unique:
            raise ValueError(f"Cannot build {self.folds} clusters from {n_unique} distinct locations")
        km = KMeans(n_clusters=self.folds, n_init=10, random_state=self._seed_for(repeat))
        return km.fit_predict(coords)

    def _block_labels(self, task, repeat):
        points = gpd.GeoDataFrame(
            geometry=gpd.points_from_xy(task.coordinates[:, 0], task.coordinates[:, 1])
        )
        grid = build_grid(points.total_bounds, self.block_cols, self.block_rows)
        blocks = assign_blocks(points, grid).to_numpy()

        occupied = np.unique(blocks)
        if self.folds > len(occupied):
            raise ValueError(
                f"Only {len(occupied)} non-empty blocks for {self.folds} folds; "
                f"use a finer block grid"
            )
        rng = np.random.default_rng(self._seed_for(repeat))
        shuffled = rng.permutation(occupied)
        fold_of_block = {b: i % self.folds for i, b in enumerate(shuffled)}
        return np.array([fold_of_block[b] for b in blocks])

    def instantiate(self, task):
        """
        Compute the folds for a task.

        Returns:
            self, with splits_, iterations_ and fold_assignment_ set
        """
        n = task.n_obs
        splits, iterations = [], []

        if self.method == "cv":
            counts = np.bincount(task.y, minlength=2)
            if counts.min() < self.folds:
                raise ValueError(
                    f"Minority class has {counts.min()} observations, fewer than {self.folds} folds"
                )
            rskf = RepeatedStratifiedKFold(
                n_splits=self.folds, n_repeats=self.repeats, random_state=self.seed
            )
            for i, (train, test) in enumerate(rskf.split(np.zeros(n), task.y)):
                splits.append((train, test))
                iterations.append((i // self.folds, i % self.folds))
            n_repeats = self.repeats
        else:
            if self.method in ("lobo", "custom"):
                groups = self._require_blocks(task)
                if len(np.unique(groups)) < 2:
                    raise ValueError(f"'{self.method}' needs at least 2 distinct blocks")
                labels_per_repeat = [groups]
            elif self.method == "spcv_coords":
                labels_per_repeat = [self._cluster_labels(task.coordinates, r)
                                     for r in range(self.repeats)]
            else:
                labels_per_repeat = [self._block_labels(task, r) for r in range(self.repeats)]

            logo = LeaveOneGroupOut()
            for r, labels in enumerate(labels_per_repeat):
                for k, (train, test) in enumerate(logo.split(np.zeros(n), groups=labels)):
                    splits.append((train, test))
                    iterations.append((r, k))
            n_repeats = len(labels_per_repeat)

        assignment = np.full((n, n_repeats), -1, dtype=int)
        for (r, k), (_, test) in zip(iterations, splits):
            assignment[test, r] = k

        self.splits_ = splits
        self.iterations_ = iterations
        self.fold_assignment_ = pd.DataFrame(
            assignment, columns=[f"repeat_{r + 1}" for r in range(n_repeats)]
        )
        return self

    def _check_instantiated(self):
        if self.splits_ is None:
            raise RuntimeError("Resampling is not instantiated; call instantiate(task) first")

    def __iter__(self):
        self._check_instantiated()
        return iter(self.splits_)

    def __len__(self):
        self._check_instantiated()
        return len(self.splits_)

    def split(self, X=None, y=None, groups=None):
        """scikit-learn splitter interface over the instantiated folds."""
        return iter(self)

    def get_n_splits(self, X=None, y=None, groups=None):
        return len(self)

    def __repr__(self):
        state = f"{len(self.splits_)} iterations" if self.splits_ is not None else "not instantiated"
        return f"<SpatialResampling {self.describe()}, {state}>"
