# tests/test_raster.py
import numpy as np
import pytest

from landslide_cv.data_ops.loading import DEFAULT_FEATURES
from landslide_cv.data_ops.simulate import LandslideSimulator
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.training.predict_map import fit_final_model, predict_raster
from landslide_cv.utils.raster_io import (
    clean_nodata,
    get_raster_info,
    read_predictor_stack,
)


@pytest.fixture()
def predictor_dir(simulator, tmp_path):
    simulator.write_predictor_rasters(str(tmp_path), resolution=500)
    return str(tmp_path)


def test_read_predictor_stack(predictor_dir):
    stack, profile = read_predictor_stack(predictor_dir, DEFAULT_FEATURES)
    assert stack.shape == (len(DEFAULT_FEATURES), 8, 8)
    assert np.isfinite(stack).all()
    info = get_raster_info(f"{predictor_dir}/slope.tif")
    assert (info['width'], info['height']) == (8, 8)
    assert info['bounds'].left == pytest.approx(0.0)


def test_missing_raster(predictor_dir):
    with pytest.raises(FileNotFoundError):
        read_predictor_stack(predictor_dir, ['slope', 'geology'])


def test_misaligned_raster(predictor_dir):
    LandslideSimulator(extent=(0, 0, 4000, 4000), seed=7).write_predictor_rasters(
        predictor_dir, resolution=1000, features=['dem'])
    with pytest.raises(ValueError):
        read_predictor_stack(predictor_dir, ['slope', 'dem'])


def test_clean_nodata():
    arr = np.array([1.0, -9999.0, -3.4e38, np.inf])
    out = clean_nodata(arr, nodata=-9999.0)
    assert out[0] == 1.0
    assert np.isnan(out[1:]).all()


def test_predict_raster_marks_nodata(task, small_forest, predictor_dir):
    stack, _ = read_predictor_stack(predictor_dir, task.features)
    stack[0, 2, 3] = np.nan
    model = fit_final_model(task, small_forest)
    prob = predict_raster(model, stack, task.features, nodata=-9999.0, chunk_size=10)
    assert prob.shape == (8, 8)
    assert prob[2, 3] == -9999.0
    valid = np.ones_like(prob, dtype=bool)
    valid[2, 3] = False
    assert ((prob[valid] >= 0) & (prob[valid] <= 1)).all()


def test_predict_raster_band_mismatch(task, small_forest, predictor_dir):
    stack, _ = read_predictor_stack(predictor_dir, task.features[:3])
    model = fit_final_model(task, small_forest)
    with pytest.raises(ValueError):
        predict_raster(model, stack, task.features)


def test_fit_final_model_applies_params(task, small_forest):
    model = fit_final_model(task, FallbackClassifier(learner=small_forest),
                            params={'min_samples_leaf': 5})
    assert model.learner_.min_samples_leaf == 5
    assert not model.used_fallback_
