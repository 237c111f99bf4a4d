"""
Landslide Point Loading
=======================
Reads landslide / non-landslide point observations from CSV or vector files
into a GeoDataFrame with projected point geometry and a 0/1 response.

Public functions:
    load_landslide_points(path, ...) -> GeoDataFrame
    to_geodataframe(df, coords, crs) -> GeoDataFrame
    coerce_binary(series)            -> Series of 0/1 ints
"""

import os

import geopandas as gpd
import numpy as np
import pandas as pd
from pyproj import Transformer

DEFAULT_TARGET = "slides"
DEFAULT_COORDS = ("x", "y")
DEFAULT_CRS = "EPSG:32717"
DEFAULT_FEATURES = [
    "slope", "cslope", "hcurv", "vcurv", "log_carea",
    "dem", "distroad", "distdeforest", "distslidespast",
]

_VECTOR_SUFFIXES = ('.gpkg', '.geojson', '.json', '.shp')
_TRUE_LABELS = {"true", "t", "yes", "1", "1.0"}
_FALSE_LABELS = {"false", "f", "no", "0", "0.0"}


def coerce_binary(series):
    """
    Map a response column to 0/1 integers.

    Accepts booleans, 0/1 numbers and TRUE/FALSE style strings.

    Raises:
        ValueError: If any label is not recognised.
    """
    if pd.api.types.is_bool_dtype(series):
        return series.astype(int)

    labels = series.astype(str).str.strip().str.lower()
    out = pd.Series(np.nan, index=series.index)
    out[labels.isin(_TRUE_LABELS)] = 1
    out[labels.isin(_FALSE_LABELS)] = 0
    if out.isna().any():
        bad = sorted(series[out.isna()].astype(str).unique().tolist())
        raise ValueError(f"Unrecognized response labels: {bad[:10]}")
    return out.astype(int)


def to_geodataframe(df, coords=DEFAULT_COORDS, crs=DEFAULT_CRS):
    """Attach point geometry built from the coordinate columns."""
    x_col, y_col = coords
    return gpd.GeoDataFrame(
        df.copy(),
        geometry=gpd.points_from_xy(df[x_col], df[y_col]),
        crs=crs,
    )


def _build_transformer(source_crs, target_crs):
    """Build a pyproj Transformer between two CRSs (x/y axis order)."""
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def _read_table(path, coords):
    suffix = os.path.splitext(str(path))[1].lower()
    if suffix == '.csv':
        return pd.read_csv(path)
    if suffix in _VECTOR_SUFFIXES:
        gdf = gpd.read_file(path)
        x_col, y_col = coords
        df = pd.DataFrame(gdf.drop(columns='geometry'))
        if x_col not in df.columns or y_col not in df.columns:
            df[x_col] = gdf.geometry.x
            df[y_col] = gdf.geometry.y
        return df
    raise ValueError(f"Point file must be .csv or a vector format {_VECTOR_SUFFIXES}, got: {path}")


def load_landslide_points(path, target=DEFAULT_TARGET, coords=DEFAULT_COORDS,
                          features=None, crs=DEFAULT_CRS, source_crs=None):
    """
    Load landslide point observations.

    Args:
        path: .csv or vector file (.gpkg, .geojson, .shp)
        target: Response column name
        coords: (x, y) column names
        features: Predictor columns to require (default: all numeric non-coordinate columns)
        crs: CRS of the returned geometry
        source_crs: CRS of the stored coordinates if different from crs

    Returns:
        GeoDataFrame with the coordinate, feature and 0/1 target columns

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: On missing columns or a single-class response
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Point file not found: {path}")

    df = _read_table(path, coords)
    # Handle BOM if present.
    df.columns = [str(c).lstrip("\ufeff") for c in df.columns]

    x_col, y_col = coords
    if features is None:
        features = [
            c for c in df.select_dtypes(include='number').columns
            if c not in (x_col, y_col, target)
        ]
    required = [x_col, y_col, target] + list(features)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    n_before = len(df)
    df = df.dropna(subset=required).reset_index(drop=True)
    if len(df) < n_before:
        print(f"  [Warning] Dropped {n_before - len(df)} rows with missing values")

    df[target] = coerce_binary(df[target])
    if df[target].nunique() < 2:
        raise ValueError(f"Response '{target}' has a single class; need both 0 and 1")

    if source_crs is not None and source_crs != crs:
        transformer = _build_transformer(source_crs, crs)
        xs, ys = transformer.transform(df[x_col].to_numpy(), df[y_col].to_numpy())
        df[x_col] = xs
        df[y_col] = ys

    return to_geodataframe(df, coords, crs)
