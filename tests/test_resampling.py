# tests/test_resampling.py
import geopandas as gpd
import numpy as np
import pytest
from sklearn.model_selection import cross_val_score

from landslide_cv.data_ops.grid_partition import assign_blocks, build_grid
from landslide_cv.datasets.task import ClassificationTask
from landslide_cv.evaluation.metrics import auc_scorer
from landslide_cv.evaluation.resampling import SpatialResampling


def _check_partition(rs, n_obs):
    for train, test in rs:
        assert len(np.intersect1d(train, test)) == 0
        assert len(train) + len(test) == n_obs
    # every row is tested exactly once per repeat
    assert (rs.fold_assignment_.to_numpy() >= 0).all()


def test_random_cv(task):
    rs = SpatialResampling("cv", folds=4, repeats=2, seed=1).instantiate(task)
    assert len(rs) == 8
    assert rs.iterations_[4] == (1, 0)
    assert list(rs.fold_assignment_.columns) == ['repeat_1', 'repeat_2']
    _check_partition(rs, task.n_obs)


def test_same_seed_same_folds(task):
    a = SpatialResampling("spcv_coords", folds=4, repeats=2, seed=3).instantiate(task)
    b = SpatialResampling("spcv_coords", folds=4, repeats=2, seed=3).instantiate(task)
    for (_, ta), (_, tb) in zip(a, b):
        assert np.array_equal(ta, tb)


def test_coordinate_clusters_are_compact(task):
    rs = SpatialResampling("spcv_coords", folds=4, repeats=1, seed=0).instantiate(task)
    assert len(rs) == 4
    _check_partition(rs, task.n_obs)
    coords = task.coordinates
    # a spatial test fold is more compact than the whole study area
    full_spread = coords.std(axis=0).sum()
    for _, test in rs:
        assert coords[test].std(axis=0).sum() < full_spread


def test_block_cv_keeps_blocks_together(task):
    rs = SpatialResampling("spcv_block", folds=3, repeats=2, seed=0,
                           block_cols=4, block_rows=4).instantiate(task)
    assert len(rs) == 6
    _check_partition(rs, task.n_obs)

    pts = gpd.GeoDataFrame(geometry=gpd.points_from_xy(task.coordinates[:, 0],
                                                       task.coordinates[:, 1]))
    blocks = assign_blocks(pts, build_grid(pts.total_bounds, 4, 4)).to_numpy()
    for train, test in rs:
        assert not set(blocks[train]) & set(blocks[test])


def test_block_cv_needs_enough_blocks(task):
    rs = SpatialResampling("spcv_block", folds=6, block_cols=2, block_rows=2)
    with pytest.raises(ValueError, match='non-empty blocks'):
        rs.instantiate(task)


def test_leave_one_block_out(task):
    rs = SpatialResampling("lobo").instantiate(task)
    assert len(rs) == len(np.unique(task.groups))
    for _, test in rs:
        assert len(np.unique(task.groups[test])) == 1
    _check_partition(rs, task.n_obs)


def test_block_methods_need_block_column(task):
    plain = ClassificationTask(data=task.data, target='slides', features=task.features)
    with pytest.raises(ValueError, match='block column'):
        SpatialResampling("lobo").instantiate(plain)


def test_invalid_configuration():
    with pytest.raises(ValueError):
        SpatialResampling("kriging")
    with pytest.raises(ValueError):
        SpatialResampling("cv", folds=1)
    with pytest.raises(ValueError):
        SpatialResampling("cv", repeats=0)


def test_use_before_instantiate():
    rs = SpatialResampling("spcv_coords")
    with pytest.raises(RuntimeError):
        list(rs)
    assert 'not instantiated' in repr(rs)


def test_from_config_uses_default_seed(task):
    rs = SpatialResampling.from_config({'method': 'cv', 'folds': 3}, seed=11)
    assert rs.seed == 11
    assert rs.repeats == 1


def test_sklearn_accepts_resampling_as_cv(task, small_forest):
    rs = SpatialResampling("spcv_coords", folds=3, seed=0).instantiate(task)
    scores = cross_val_score(small_forest, task.X, task.y, cv=rs, scoring=auc_scorer)
    assert len(scores) == 3
    finite = scores[np.isfinite(scores)]
    assert ((finite >= 0) & (finite <= 1)).all()
