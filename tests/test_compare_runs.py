# tests/test_compare_runs.py
import sys

import pandas as pd
import pytest

from landslide_cv.evaluation import compare_runs


def _results(auc_rf, auc_dummy=0.5):
    rows = []
    for rs in ("random_cv", "spatial_cv"):
        for i in range(3):
            rows.append({'learner': 'random_forest', 'resampling': rs, 'iteration': i + 1,
                         'auc': auc_rf[rs] + 0.01 * i, 'brier': 0.2})
            rows.append({'learner': 'featureless', 'resampling': rs, 'iteration': i + 1,
                         'auc': auc_dummy, 'brier': 0.25})
    return pd.DataFrame(rows)


@pytest.fixture()
def run_dirs(tmp_path):
    dirs = {}
    for name, aucs in (("all", {'random_cv': 0.85, 'spatial_cv': 0.70}),
                       ("selected", {'random_cv': 0.82, 'spatial_cv': 0.74})):
        d = tmp_path / name
        d.mkdir()
        _results(aucs).to_csv(d / compare_runs.RESULTS_FILE, index=False)
        dirs[name] = str(d)
    return dirs


def test_load_run_accepts_dir_or_file(run_dirs):
    a = compare_runs.load_run(run_dirs["all"])
    b = compare_runs.load_run(f"{run_dirs['all']}/{compare_runs.RESULTS_FILE}")
    assert a.equals(b)
    with pytest.raises(FileNotFoundError):
        compare_runs.load_run(run_dirs["all"] + "_missing")


def test_comparison_table(run_dirs):
    runs = {name: compare_runs.load_run(p) for name, p in run_dirs.items()}
    table = compare_runs.comparison_table(runs)
    assert len(table) == 8
    row = table[(table['run'] == 'all') & (table['resampling'] == 'spatial_cv')
                & (table['learner'] == 'random_forest')].iloc[0]
    assert row['auc_mean'] == pytest.approx(0.71)
    assert row['n_iterations'] == 3

    lines = compare_runs.summary_lines(table)
    assert any('spatial_cv' in line for line in lines)


def test_main_writes_outputs(run_dirs, tmp_path, monkeypatch):
    out = tmp_path / "comparison"
    monkeypatch.setattr(sys, "argv", [
        "compare_runs", "--runs", f"all:{run_dirs['all']}",
        f"selected:{run_dirs['selected']}", "--output_dir", str(out),
    ])
    compare_runs.main()
    assert (out / "comparison_table.csv").exists()
    assert (out / "auc_by_resampling.png").exists()
    assert "SUMMARY" in (out / "summary.txt").read_text()
