"""
Shared helpers for the training entry points: load points as configured,
partition them if needed, and build tasks for chosen splits.
"""

import os

from landslide_cv.config import get_path, get_section
from landslide_cv.data_ops.grid_partition import partition_points, split_counts
from landslide_cv.data_ops.loading import load_landslide_points
from landslide_cv.datasets.task import ClassificationTask
from landslide_cv.evaluation.resampling import SpatialResampling


def load_points_from_config(cfg):
    """
    Load the partitioned point table, partitioning the raw table in memory
    when no partitioned file exists yet.

    Only the raw table is reprojected from data.source_crs; the partitioned
    file is written by make_grid_partition.py with coordinates already in
    data.crs.

    Returns:
        GeoDataFrame with block and split columns
    """
    data_cfg = get_section(cfg, 'data', required=('target', 'coords', 'features'))
    block_col = data_cfg.get('block_column', 'block_id')
    split_col = data_cfg.get('split_column', 'split')
    load_kwargs = dict(
        target=data_cfg['target'],
        coords=tuple(data_cfg['coords']),
        features=data_cfg['features'],
        crs=data_cfg.get('crs', 'EPSG:32717'),
    )
    source_crs = data_cfg.get('source_crs')

    partitioned = get_path(cfg, 'partitioned_csv')
    if os.path.exists(partitioned):
        print(f"  Loading partitioned points: {partitioned}")
        points = load_landslide_points(partitioned, source_crs=None, **load_kwargs)
        if block_col in points.columns and split_col in points.columns:
            return points
        print("  [Warning] Partitioned file lacks block/split columns, re-partitioning")
    else:
        raw = get_path(cfg, 'data_csv')
        if not os.path.exists(raw):
            raise FileNotFoundError(
                f"No point data at {raw}. Generate demo data with: "
                f"python scripts/make_demo_data.py"
            )
        print(f"  Loading points: {raw}")
        points = load_landslide_points(raw, source_crs=source_crs, **load_kwargs)

    grid_cfg = get_section(cfg, 'grid', required=('n_cols', 'n_rows', 'test_blocks'))
    points, _ = partition_points(
        points,
        n_cols=grid_cfg['n_cols'],
        n_rows=grid_cfg['n_rows'],
        test_blocks=grid_cfg['test_blocks'],
        validation_blocks=grid_cfg.get('validation_blocks', []),
        block_column=block_col,
        split_column=split_col,
    )
    print(split_counts(points, data_cfg['target'], split_col).to_string())
    return points


def build_task(points, cfg, splits=("train",), features=None, task_id=None):
    """
    Build a ClassificationTask from the rows of the given splits.

    Args:
        points: GeoDataFrame from load_points_from_config()
        splits: Split labels to keep, or None for all rows
        features: Feature subset (default: config features)
    """
    data_cfg = get_section(cfg, 'data')
    split_col = data_cfg.get('split_column', 'split')
    if splits is not None and split_col in points.columns:
        points = points[points[split_col].isin(splits)]
    if len(points) == 0:
        raise RuntimeError(f"No points in splits {splits}")
    return ClassificationTask.from_frame(
        points,
        target=data_cfg['target'],
        features=features or data_cfg['features'],
        coords=tuple(data_cfg['coords']),
        block_column=data_cfg.get('block_column', 'block_id'),
        task_id=task_id or "landslides_" + "_".join(splits or ("all",)),
    )


def build_resampling(rs_cfg, cfg):
    """SpatialResampling from a config block, seeded from resampling.seed."""
    seed = cfg.get('resampling', {}).get('seed')
    return SpatialResampling.from_config(rs_cfg, seed=seed)
