"""
Synthetic Landslide Data
========================
Generates a landslide inventory and matching predictor rasters with
spatially autocorrelated predictors, so the whole workflow runs offline.

Predictors are smooth random fields over the study extent. The response
additionally depends on a hidden spatial trend that no predictor carries,
which leaves spatially clustered residuals: random CV is then optimistic
compared with spatial CV, as on real inventories.

Usage:
    sim = LandslideSimulator(extent=(712000, 9556000, 718000, 9562000), seed=42)
    points = sim.sample_points(750)
    sim.write_predictor_rasters("data/predictors", resolution=100)
"""

import os

import numpy as np
import pandas as pd

from landslide_cv.data_ops.loading import DEFAULT_CRS, DEFAULT_FEATURES, to_geodataframe
from landslide_cv.utils.raster_io import build_profile, pixel_centers, write_geotiff

DEFAULT_EXTENT = (712000.0, 9556000.0, 718000.0, 9562000.0)

# Field names -> number of sinusoid terms in the field
_FIELDS = {
    "terrain": 5, "steep": 6, "steep_local": 8, "hcurv": 10, "vcurv": 10,
    "flow": 6, "road": 4, "forest": 4, "scar": 5, "trend": 3,
}


class LandslideSimulator:
    """Smooth predictor fields plus a hidden trend over a rectangular extent."""

    def __init__(self, extent=DEFAULT_EXTENT, seed=42, crs=DEFAULT_CRS):
        xmin, ymin, xmax, ymax = extent
        if xmax <= xmin or ymax <= ymin:
            raise ValueError(f"Invalid extent: {extent}")
        self.extent = tuple(float(v) for v in extent)
        self.crs = crs
        self.seed = seed
        self._rng = np.random.default_rng(seed)
        self._fields = {name: self._random_field(n) for name, n in _FIELDS.items()}

    def _random_field(self, n_terms):
        return {
            'amp': self._rng.uniform(0.5, 1.0, n_terms),
            'kx': self._rng.uniform(1.0, 8.0, n_terms) * self._rng.choice([-1, 1], n_terms),
            'ky': self._rng.uniform(1.0, 8.0, n_terms),
            'phase': self._rng.uniform(0, 2 * np.pi, n_terms),
        }

    def _field(self, name, xn, yn):
        """Evaluate a field at normalised coordinates; result roughly in [-1, 1]."""
        p = self._fields[name]
        total = np.zeros_like(xn, dtype=float)
        for a, kx, ky, ph in zip(p['amp'], p['kx'], p['ky'], p['phase']):
            total += a * np.sin(kx * xn + ky * yn + ph)
        return total / p['amp'].sum() * 2.0

    def _normalise(self, x, y):
        xmin, ymin, xmax, ymax = self.extent
        return (np.asarray(x) - xmin) / (xmax - xmin), (np.asarray(y) - ymin) / (ymax - ymin)

    def predictors_at(self, x, y):
        """Return dict feature -> array of predictor values at the given coordinates."""
        xn, yn = self._normalise(x, y)
        f = {name: self._field(name, xn, yn) for name in self._fields}

        slope = np.clip(28 + 14 * f['steep'], 0, 75)
        log_carea = 2.6 + 0.8 * f['flow'] - 0.01 * slope
        return {
            'slope': slope,
            'cslope': np.clip(0.6 * slope + 0.4 * (28 + 14 * f['steep_local']), 0, 75),
            'hcurv': 0.008 * f['hcurv'],
            'vcurv': 0.008 * f['vcurv'],
            'log_carea': log_carea,
            'dem': 1700 + 900 * yn + 180 * f['terrain'],
            'distroad': np.abs(400 + 350 * f['road']),
            'distdeforest': np.abs(250 + 300 * f['forest']),
            'distslidespast': np.abs(60 + 70 * f['scar']),
        }

    def _susceptibility(self, x, y, predictors):
        xn, yn = self._normalise(x, y)
        logit = (
            -0.4
            + 0.09 * (predictors['slope'] - 28)
            - 0.012 * (predictors['distslidespast'] - 60)
            + 0.6 * (predictors['log_carea'] - 2.6)
            - 0.0015 * (predictors['distroad'] - 400)
            + 2.0 * self._field('trend', xn, yn)
        )
        return 1.0 / (1.0 + np.exp(-logit))

    def sample_points(self, n_points=750, target="slides", coords=("x", "y")):
        """
        Draw random point observations with predictors and a 0/1 response.

        Returns:
            GeoDataFrame with coordinate, predictor and target columns
        """
        if n_points < 2:
            raise ValueError("n_points must be at least 2")
        xmin, ymin, xmax, ymax = self.extent
        rng = np.random.default_rng(None if self.seed is None else self.seed + 1)
        x = rng.uniform(xmin, xmax, n_points)
        y = rng.uniform(ymin, ymax, n_points)
        preds = self.predictors_at(x, y)
        prob = self._susceptibility(x, y, preds)
        label = (rng.random(n_points) < prob).astype(int)
        # Both classes are needed downstream.
        if label.min() == label.max():
            label[rng.choice(n_points)] = 1 - label[0]

        df = pd.DataFrame({coords[0]: x, coords[1]: y, **preds, target: label})
        return to_geodataframe(df, coords, self.crs)

    def predictor_grid(self, resolution=100.0):
        """
        Evaluate every predictor on a regular grid covering the extent.

        Returns:
            tuple: (dict feature -> [H, W] float32 array, rasterio profile)
        """
        profile = build_profile(self.extent, resolution, self.crs)
        xs, ys = pixel_centers(profile)
        grids = {
            name: values.astype(np.float32)
            for name, values in self.predictors_at(xs, ys).items()
        }
        return grids, profile

    def write_predictor_rasters(self, out_dir, resolution=100.0, features=None):
        """
        Write one GeoTIFF per predictor to out_dir.

        Returns:
            list of written file paths
        """
        grids, profile = self.predictor_grid(resolution)
        features = features or DEFAULT_FEATURES
        os.makedirs(out_dir, exist_ok=True)
        written = []
        for name in features:
            if name not in grids:
                raise ValueError(f"Simulator has no predictor named '{name}'")
            path = os.path.join(out_dir, f"{name}.tif")
            write_geotiff(grids[name], path, profile)
            written.append(path)
        return written
