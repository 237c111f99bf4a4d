"""
Grid Partitioning
=================
Splits point observations into train / validation / test sets by laying a
regular grid of square blocks over the study area and picking blocks by hand.

Block ids are row-major starting at the south-west corner:

    row 1 |  4  5  6  7
    row 0 |  0  1  2  3
            col0 ...

Usage:
    from landslide_cv.data_ops.grid_partition import partition_points
    points, grid = partition_points(points, n_cols=4, n_rows=4,
                                    test_blocks=[5, 10], validation_blocks=[3])
"""

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import box

SPLIT_TRAIN = "train"
SPLIT_VALIDATION = "validation"
SPLIT_TEST = "test"


def build_grid(bounds, n_cols, n_rows, crs=None):
    """
    Build a regular grid of rectangular cells covering the bounds.

    Args:
        bounds: (xmin, ymin, xmax, ymax)
        n_cols: Number of columns
        n_rows: Number of rows
        crs: CRS of the grid

    Returns:
        GeoDataFrame with columns block_id, row, col, geometry
    """
    if n_cols < 1 or n_rows < 1:
        raise ValueError(f"Grid needs at least one row and column, got {n_rows}x{n_cols}")

    xmin, ymin, xmax, ymax = (float(v) for v in bounds)
    # Pad so points on the outer edge still fall inside a cell.
    pad = max(xmax - xmin, ymax - ymin, 1.0) * 1e-6
    xmin, ymin, xmax, ymax = xmin - pad, ymin - pad, xmax + pad, ymax + pad

    xs = np.linspace(xmin, xmax, n_cols + 1)
    ys = np.linspace(ymin, ymax, n_rows + 1)

    records = []
    for row in range(n_rows):
        for col in range(n_cols):
            records.append({
                'block_id': row * n_cols + col,
                'row': row,
                'col': col,
                'geometry': box(xs[col], ys[row], xs[col + 1], ys[row + 1]),
            })
    return gpd.GeoDataFrame(records, geometry='geometry', crs=crs)


def assign_blocks(points, grid):
    """
    Assign each point to the grid block containing it.

    Points on a shared cell edge intersect several cells; they keep the
    lowest block id.

    Returns:
        Series of int block ids aligned with points.index

    Raises:
        ValueError: If a point lies outside every block
    """
    joined = gpd.sjoin(
        points[['geometry']], grid[['block_id', 'geometry']],
        how='left', predicate='intersects',
    )
    if joined['block_id'].isna().any():
        n_out = int(joined['block_id'].isna().sum())
        raise ValueError(f"{n_out} points fall outside the grid")

    block_ids = joined.groupby(level=0)['block_id'].min()
    return block_ids.reindex(points.index).astype(int).rename('block_id')


def split_by_blocks(block_ids, test_blocks, validation_blocks=(), known_blocks=None):
    """
    Label each point train / validation / test from its block id.

    Args:
        block_ids: Series of block ids per point
        test_blocks: Block ids forming the test set
        validation_blocks: Block ids forming the validation set
        known_blocks: All block ids of the grid (for validating the choice)

    Returns:
        Series of split labels aligned with block_ids

    Raises:
        ValueError: On overlapping or unknown blocks, or an empty train split
    """
    test_blocks = set(int(b) for b in test_blocks)
    validation_blocks = set(int(b) for b in validation_blocks)

    overlap = test_blocks & validation_blocks
    if overlap:
        raise ValueError(f"Blocks {sorted(overlap)} are both test and validation blocks")

    if known_blocks is not None:
        unknown = (test_blocks | validation_blocks) - set(int(b) for b in known_blocks)
        if unknown:
            raise ValueError(f"Blocks {sorted(unknown)} are not part of the grid")

    split = pd.Series(SPLIT_TRAIN, index=block_ids.index, name='split')
    split[block_ids.isin(validation_blocks)] = SPLIT_VALIDATION
    split[block_ids.isin(test_blocks)] = SPLIT_TEST

    if not (split == SPLIT_TRAIN).any():
        raise ValueError("No training points left after removing test/validation blocks")
    return split


def partition_points(points, n_cols, n_rows, test_blocks, validation_blocks=(),
                     block_column='block_id', split_column='split'):
    """
    Grid the study area and split points by manually chosen blocks.

    Args:
        points: GeoDataFrame of point observations
        n_cols, n_rows: Grid dimensions
        test_blocks: Block ids held out for testing
        validation_blocks: Block ids held out for validation

    Returns:
        tuple: (copy of points with block and split columns, grid GeoDataFrame)
    """
    grid = build_grid(points.total_bounds, n_cols, n_rows, crs=points.crs)
    out = points.copy()
    out[block_column] = assign_blocks(out, grid)
    out[split_column] = split_by_blocks(
        out[block_column], test_blocks, validation_blocks, known_blocks=grid['block_id']
    )
    return out, grid


def split_counts(points, target, split_column='split'):
    """Number of points and positives per split, for reporting."""
    return points.groupby(split_column)[target].agg(n_points='size', n_positive='sum')
