#!/usr/bin/env python3
"""
Generate a synthetic landslide inventory and predictor rasters.

Output:
    data/landslides.csv          (x, y, predictors, slides)
    data/predictors/<feature>.tif
"""

import argparse
import os

from landslide_cv.config import add_config_argument, get_path, get_section, load_config
from landslide_cv.data_ops.simulate import LandslideSimulator


def main():
    parser = argparse.ArgumentParser(description="Generate synthetic landslide demo data")
    add_config_argument(parser)
    parser.add_argument("--n-points", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--no-rasters", action="store_true", help="Only write the point table")
    args = parser.parse_args()

    cfg = load_config(args.config)
    sim_cfg = get_section(cfg, 'simulation')
    data_cfg = get_section(cfg, 'data', required=('target', 'coords', 'features'))

    n_points = args.n_points or sim_cfg.get('n_points', 750)
    seed = args.seed if args.seed is not None else sim_cfg.get('seed', 42)
    sim = LandslideSimulator(
        extent=sim_cfg['extent'], seed=seed, crs=data_cfg.get('crs', 'EPSG:32717')
    )

    points = sim.sample_points(n_points, target=data_cfg['target'],
                               coords=tuple(data_cfg['coords']))
    csv_path = get_path(cfg, 'data_csv')
    os.makedirs(os.path.dirname(csv_path), exist_ok=True)
    points.drop(columns='geometry').to_csv(csv_path, index=False)
    print(f"Points:      {len(points)} ({int(points[data_cfg['target']].sum())} landslides)")
    print(f"Output:      {csv_path}")

    if not args.no_rasters:
        predictor_dir = get_path(cfg, 'predictor_dir')
        written = sim.write_predictor_rasters(
            predictor_dir, resolution=sim_cfg.get('resolution', 100),
            features=data_cfg['features'],
        )
        print(f"Rasters:     {len(written)} written to {predictor_dir}")


if __name__ == "__main__":
    main()
