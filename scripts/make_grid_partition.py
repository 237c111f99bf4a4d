#!/usr/bin/env python3
"""
Split landslide points into train / validation / test by grid blocks.

Lays an n_cols x n_rows grid over the points and assigns the blocks listed
in the config (or on the command line) to the test and validation sets.
Block ids are row-major from the south-west corner; check grid_blocks.png
and adjust the choice if a split ends up without landslides.

Output:
    data/landslides_partitioned.csv   (points + block_id + split; x/y in data.crs)
    outputs/grid_blocks.png
"""

import argparse
import os

from landslide_cv.config import add_config_argument, get_path, get_section, load_config
from landslide_cv.data_ops.grid_partition import partition_points, split_counts
from landslide_cv.data_ops.loading import load_landslide_points
from landslide_cv.evaluation.visualize import plot_grid_blocks


def main():
    parser = argparse.ArgumentParser(description="Grid-based train/validation/test split")
    add_config_argument(parser)
    parser.add_argument("--input", default=None, help="Point file (default: paths.data_csv)")
    parser.add_argument("--output", default=None, help="Output CSV (default: paths.partitioned_csv)")
    parser.add_argument("--n-cols", type=int, default=None)
    parser.add_argument("--n-rows", type=int, default=None)
    parser.add_argument("--test-blocks", type=int, nargs="+", default=None)
    parser.add_argument("--validation-blocks", type=int, nargs="*", default=None)
    args = parser.parse_args()

    cfg = load_config(args.config)
    data_cfg = get_section(cfg, 'data', required=('target', 'coords', 'features'))
    grid_cfg = get_section(cfg, 'grid')

    input_path = args.input or get_path(cfg, 'data_csv')
    output_path = args.output or get_path(cfg, 'partitioned_csv')
    n_cols = args.n_cols or grid_cfg.get('n_cols', 4)
    n_rows = args.n_rows or grid_cfg.get('n_rows', 4)
    test_blocks = args.test_blocks if args.test_blocks is not None else grid_cfg.get('test_blocks')
    validation_blocks = (args.validation_blocks if args.validation_blocks is not None
                         else grid_cfg.get('validation_blocks', []))
    if not test_blocks:
        raise SystemExit("No test blocks given (grid.test_blocks or --test-blocks)")

    if not os.path.exists(input_path):
        raise SystemExit(f"Point file not found: {input_path}")

    points = load_landslide_points(
        input_path,
        target=data_cfg['target'],
        coords=tuple(data_cfg['coords']),
        features=data_cfg['features'],
        crs=data_cfg.get('crs', 'EPSG:32717'),
        source_crs=data_cfg.get('source_crs'),
    )
    try:
        points, grid = partition_points(
            points, n_cols, n_rows, test_blocks, validation_blocks,
            block_column=data_cfg.get('block_column', 'block_id'),
            split_column=data_cfg.get('split_column', 'split'),
        )
    except ValueError as exc:
        raise SystemExit(f"Invalid block choice: {exc}")

    counts = split_counts(points, data_cfg['target'], data_cfg.get('split_column', 'split'))
    if (counts['n_positive'] == 0).any():
        print("[Warning] A split contains no landslides; consider other blocks")

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    points.drop(columns='geometry').to_csv(output_path, index=False)

    plot_dir = get_path(cfg, 'output_dir')
    os.makedirs(plot_dir, exist_ok=True)
    plot_grid_blocks(points, grid, os.path.join(plot_dir, "grid_blocks.png"),
                     split_column=data_cfg.get('split_column', 'split'),
                     target=data_cfg['target'])

    print(f"Grid:        {n_rows} rows x {n_cols} cols")
    print(f"Test blocks: {sorted(test_blocks)}   Validation blocks: {sorted(validation_blocks)}")
    print(counts.to_string())
    print(f"Output:      {output_path}")


if __name__ == "__main__":
    main()
