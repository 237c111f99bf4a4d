"""
Raster I/O Utilities
====================
GeoTIFF read/write for predictor stacks and susceptibility maps.

Predictor stacks are stored as one single-band GeoTIFF per feature,
named ``<feature>.tif``, all on the same grid.
"""

import os

import numpy as np
import rasterio
from rasterio.transform import from_origin, xy

DEFAULT_NODATA = -9999.0
# Float32 fill values from some exporters sit near -3.4e38
NODATA_THRESHOLD = -1e30


def clean_nodata(arr, nodata=None, nodata_threshold=NODATA_THRESHOLD):
    """
    Replace NoData markers, extreme negatives and Inf with NaN.

    Args:
        arr: numpy array
        nodata: Explicit NoData value from the raster profile (optional)
        nodata_threshold: Values below this are treated as NoData

    Returns:
        Cleaned float32 copy of the array
    """
    arr = np.asarray(arr, dtype=np.float32).copy()
    if nodata is not None:
        arr[arr == nodata] = np.nan
    arr[arr < nodata_threshold] = np.nan
    arr[np.isinf(arr)] = np.nan
    return arr


def build_profile(extent, resolution, crs, nodata=DEFAULT_NODATA):
    """
    Build a single-band float32 GeoTIFF profile covering an extent.

    Args:
        extent: (xmin, ymin, xmax, ymax) in CRS units
        resolution: Pixel size in CRS units
        crs: CRS string, e.g. 'EPSG:32717'
        nodata: NoData value

    Returns:
        dict: rasterio profile
    """
    xmin, ymin, xmax, ymax = extent
    if xmax <= xmin or ymax <= ymin:
        raise ValueError(f"Invalid extent: {extent}")
    width = int(np.ceil((xmax - xmin) / resolution))
    height = int(np.ceil((ymax - ymin) / resolution))
    return {
        'driver': 'GTiff',
        'dtype': 'float32',
        'count': 1,
        'width': width,
        'height': height,
        'crs': crs,
        'transform': from_origin(xmin, ymax, resolution, resolution),
        'nodata': nodata,
    }


def pixel_centers(profile):
    """
    Return x and y coordinate grids of pixel centres.

    Returns:
        tuple: (xs, ys) arrays of shape [H, W]
    """
    rows, cols = np.meshgrid(
        np.arange(profile['height']), np.arange(profile['width']), indexing='ij'
    )
    xs, ys = xy(profile['transform'], rows.ravel(), cols.ravel(), offset='center')
    shape = (profile['height'], profile['width'])
    return np.asarray(xs).reshape(shape), np.asarray(ys).reshape(shape)


def write_geotiff(arr, path, profile, nodata=None):
    """
    Write a 2D array as a single-band GeoTIFF.

    Args:
        arr: 2D numpy array [H, W]
        path: Output file path
        profile: Rasterio profile dict (from reference file)
        nodata: NoData value to set in output
    """
    out_profile = dict(profile)
    out_profile.update(
        driver='GTiff',
        dtype=rasterio.float32,
        count=1,
        height=arr.shape[0],
        width=arr.shape[1],
        compress='lzw'
    )
    if nodata is not None:
        out_profile['nodata'] = nodata

    parent = os.path.dirname(str(path))
    if parent:
        os.makedirs(parent, exist_ok=True)
    with rasterio.open(path, 'w', **out_profile) as dst:
        dst.write(np.asarray(arr, dtype=np.float32), 1)


def read_predictor_stack(predictor_dir, features):
    """
    Read one GeoTIFF per feature into a [B, H, W] stack.

    Args:
        predictor_dir: Directory holding <feature>.tif files
        features: Feature names, in band order

    Returns:
        tuple: (stack float32 array with NaN for NoData, profile of the first band)

    Raises:
        FileNotFoundError: If a feature raster is missing
        ValueError: If the rasters are not on the same grid
    """
    arrays = []
    profile = None
    for name in features:
        path = os.path.join(predictor_dir, f"{name}.tif")
        if not os.path.exists(path):
            raise FileNotFoundError(f"Predictor raster not found: {path}")
        with rasterio.open(path) as src:
            arr = clean_nodata(src.read(1), nodata=src.nodata)
            if profile is None:
                profile = src.profile.copy()
            elif (src.height, src.width) != (profile['height'], profile['width']) \
                    or src.transform != profile['transform']:
                raise ValueError(f"Raster {path} is not aligned with {features[0]}.tif")
        arrays.append(arr)

    if not arrays:
        raise ValueError("No features given")
    return np.stack(arrays, axis=0), profile


def get_raster_info(filepath):
    """
    Get metadata from a raster file.

    Returns:
        dict with keys: crs, transform, width, height, bounds, dtype, nodata
    """
    with rasterio.open(filepath) as src:
        return {
            'crs': src.crs,
            'transform': src.transform,
            'width': src.width,
            'height': src.height,
            'bounds': src.bounds,
            'dtype': src.dtypes[0],
            'nodata': src.nodata
        }
