"""
Susceptibility Map Prediction
=============================
Fits the final random forest on all labelled points and predicts the
landslide probability of every pixel of the predictor raster stack.

Selected features and tuned parameters from earlier runs are used when
present (or when requested explicitly).

Usage:
    python -m landslide_cv.training.predict_map --config configs/default.yaml
    python -m landslide_cv.training.predict_map --tuning_json outputs/tuning/tuning.json

Output:
    outputs/susceptibility/
        susceptibility.tif
        susceptibility.png
"""

import argparse
import json
import os

import numpy as np
import pandas as pd
from sklearn.base import clone

from landslide_cv.config import add_config_argument, get_path, load_config
from landslide_cv.evaluation.metrics import positive_proba
from landslide_cv.evaluation.visualize import plot_susceptibility_map
from landslide_cv.models.fallback import FallbackClassifier
from landslide_cv.models.random_forest import build_learner
from landslide_cv.training.common import build_task, load_points_from_config
from landslide_cv.utils.raster_io import read_predictor_stack, write_geotiff
from landslide_cv.utils.run_log import RunLog
from landslide_cv.utils.seed import set_seed


def fit_final_model(task, learner, params=None):
    """Fit a copy of the learner, with optional tuned parameters, on the whole task."""
    model = clone(learner)
    if params:
        prefix = "learner__" if isinstance(model, FallbackClassifier) else ""
        model.set_params(**{prefix + k: v for k, v in params.items()})
    return model.fit(task.X, task.y)


def predict_raster(model, stack, features, nodata=-9999.0, chunk_size=250000):
    """
    Predict landslide probability for every pixel of a predictor stack.

    Args:
        model: Fitted classifier
        stack: [B, H, W] array in feature order, NaN for NoData
        features: Feature names of the bands
        nodata: Value written where any predictor is missing
        chunk_size: Pixels per predict_proba call

    Returns:
        [H, W] float32 probabilities with nodata outside valid pixels
    """
    if stack.shape[0] != len(features):
        raise ValueError(f"Stack has {stack.shape[0]} bands for {len(features)} features")
    _, H, W = stack.shape
    X_all = stack.reshape(len(features), -1).T
    valid = np.all(np.isfinite(X_all), axis=1)

    prob = np.full(H * W, nodata, dtype=np.float32)
    valid_idx = np.flatnonzero(valid)
    for i in range(0, len(valid_idx), chunk_size):
        idx = valid_idx[i:i + chunk_size]
        chunk = pd.DataFrame(X_all[idx], columns=list(features))
        prob[idx] = positive_proba(model, chunk)
    return prob.reshape(H, W)


def _read_json(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main():
    ap = argparse.ArgumentParser(description="Predict landslide susceptibility map")
    add_config_argument(ap)
    ap.add_argument("--tuning_json", type=str, default=None,
                    help="tuning.json with best_params (default: outputs/tuning/tuning.json if present)")
    ap.add_argument("--features_json", type=str, default=None,
                    help="feature_selection.json with selected_features")
    ap.add_argument("--predictor_dir", type=str, default=None)
    args = ap.parse_args()

    cfg = load_config(args.config)
    out_root = get_path(cfg, 'output_dir')
    output_dir = os.path.join(out_root, 'susceptibility')
    predictor_dir = args.predictor_dir or get_path(cfg, 'predictor_dir')
    pred_cfg = cfg.get('prediction', {})
    nodata = pred_cfg.get('nodata', -9999.0)
    run_log = RunLog(output_dir, "predict_map", vars(args))
    run_log["seed"] = set_seed(cfg.get('resampling', {}).get('seed', 42))

    tuning_json = args.tuning_json or os.path.join(out_root, 'tuning', 'tuning.json')
    params, features = {}, None
    if os.path.exists(tuning_json):
        tuned = _read_json(tuning_json)
        params = tuned.get('best_params', {})
        features = tuned.get('features')
        print(f"  Using tuned parameters from {tuning_json}: {params}")
    elif args.tuning_json:
        raise FileNotFoundError(f"Tuning file not found: {args.tuning_json}")
    if args.features_json:
        features = _read_json(args.features_json)['selected_features']

    print("=" * 70)
    print("LANDSLIDE SUSCEPTIBILITY MAP")
    print("=" * 70)

    print("\n[STEP 1] Loading data...")
    points = load_points_from_config(cfg)
    task = build_task(points, cfg, splits=None, features=features)
    print(f"  {task}")

    print("\n[STEP 2] Fitting final model...")
    model = fit_final_model(task, build_learner(cfg.get('model')), params)

    print("\n[STEP 3] Predicting raster...")
    stack, profile = read_predictor_stack(predictor_dir, task.features)
    print(f"  Stack shape: {stack.shape}")
    prob = predict_raster(model, stack, task.features, nodata=nodata,
                          chunk_size=pred_cfg.get('chunk_size', 250000))

    tif_path = os.path.join(output_dir, 'susceptibility.tif')
    write_geotiff(prob, tif_path, profile, nodata=nodata)
    print(f"  Saved: {tif_path}")
    shown = np.where(prob == nodata, np.nan, prob)
    plot_susceptibility_map(shown, profile, os.path.join(output_dir, 'susceptibility.png'),
                            points=points, target=task.target)

    valid = prob[prob != nodata]
    run_log["features"] = task.features
    run_log["params"] = params
    run_log["prediction"] = {
        'valid_pixels': int(valid.size),
        'mean_probability': float(valid.mean()) if valid.size else None,
    }
    print("\n" + "=" * 70)
    print("MAP COMPLETE!")
    print(f"Output: {output_dir}")
    print("=" * 70)
    run_log.finish()


if __name__ == "__main__":
    main()
