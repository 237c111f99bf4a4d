# tests/test_run_log.py
import json

import numpy as np

from landslide_cv.utils.run_log import RunLog


def test_finish_writes_success(tmp_path):
    log = RunLog(str(tmp_path), "unit", cli_args={'config': None})
    log["result"] = {'auc': np.float64(0.75), 'folds': np.arange(3)}
    path = log.finish()

    meta = json.loads(open(path, encoding="utf-8").read())
    assert meta["status"] == "success"
    assert meta["result"] == {'auc': 0.75, 'folds': [0, 1, 2]}
    assert meta["cli_args"] == {'config': None}
    assert meta["duration_seconds"] >= 0


def test_unfinished_run_is_flushed_as_failed(tmp_path):
    log = RunLog(str(tmp_path), "unit")
    log._flush_on_exit()
    meta = json.loads(open(log.path, encoding="utf-8").read())
    assert meta["status"] == "failed_or_interrupted"


def test_flush_after_finish_keeps_success(tmp_path):
    log = RunLog(str(tmp_path), "unit")
    log.finish()
    log._flush_on_exit()
    meta = json.loads(open(log.path, encoding="utf-8").read())
    assert meta["status"] == "success"
