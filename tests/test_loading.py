# tests/test_loading.py
import numpy as np
import pandas as pd
import pytest

from landslide_cv.data_ops.loading import coerce_binary, load_landslide_points


def _write(tmp_path, df, name='points.csv'):
    path = tmp_path / name
    df.to_csv(path, index=False)
    return str(path)


def _frame(labels):
    n = len(labels)
    return pd.DataFrame({
        'x': np.linspace(715000, 716000, n),
        'y': np.linspace(9557000, 9558000, n),
        'slope': np.linspace(10, 40, n),
        'dem': np.linspace(1800, 2300, n),
        'slides': labels,
    })


def test_load_csv_with_logical_labels(tmp_path):
    path = _write(tmp_path, _frame(['TRUE', 'FALSE', 'TRUE', 'FALSE']))
    gdf = load_landslide_points(path, features=['slope', 'dem'])
    assert gdf['slides'].tolist() == [1, 0, 1, 0]
    assert gdf.crs.to_epsg() == 32717
    assert (gdf.geometry.x.to_numpy() == gdf['x'].to_numpy()).all()


def test_rows_with_missing_values_are_dropped(tmp_path):
    df = _frame([1, 0, 1, 0, 1])
    df.loc[2, 'slope'] = np.nan
    gdf = load_landslide_points(_write(tmp_path, df), features=['slope', 'dem'])
    assert len(gdf) == 4
    assert gdf.index.tolist() == [0, 1, 2, 3]


def test_missing_columns_raise(tmp_path):
    path = _write(tmp_path, _frame([1, 0]))
    with pytest.raises(ValueError, match='carea'):
        load_landslide_points(path, features=['slope', 'carea'])


def test_single_class_response_raises(tmp_path):
    path = _write(tmp_path, _frame([0, 0, 0]))
    with pytest.raises(ValueError, match='single class'):
        load_landslide_points(path, features=['slope'])


def test_missing_file_and_bad_suffix(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_landslide_points(str(tmp_path / 'nope.csv'))
    bad = tmp_path / 'points.txt'
    bad.write_text('x,y\n')
    with pytest.raises(ValueError):
        load_landslide_points(str(bad))


def test_lonlat_points_are_projected(tmp_path):
    df = pd.DataFrame({
        'x': [-79.0, -79.01], 'y': [-3.9, -3.91],
        'slope': [20.0, 30.0], 'slides': [1, 0],
    })
    gdf = load_landslide_points(_write(tmp_path, df), features=['slope'],
                                source_crs='EPSG:4326')
    assert 700000 < gdf['x'].iloc[0] < 740000
    assert 9.55e6 < gdf['y'].iloc[0] < 9.58e6


def test_coerce_binary():
    assert coerce_binary(pd.Series([True, False])).tolist() == [1, 0]
    assert coerce_binary(pd.Series(['yes', 'no', ' True '])).tolist() == [1, 0, 1]
    assert coerce_binary(pd.Series([1.0, 0.0])).tolist() == [1, 0]
    with pytest.raises(ValueError, match='maybe'):
        coerce_binary(pd.Series(['true', 'maybe']))
