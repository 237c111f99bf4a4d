# tests/conftest.py
# Ensure project root is importable as a module during pytest runs
import pathlib
import sys

import numpy as np
import pandas as pd
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from landslide_cv.data_ops.grid_partition import partition_points  # noqa: E402
from landslide_cv.data_ops.loading import DEFAULT_FEATURES  # noqa: E402
from landslide_cv.data_ops.simulate import LandslideSimulator  # noqa: E402
from landslide_cv.datasets.task import ClassificationTask  # noqa: E402
from landslide_cv.models.random_forest import build_random_forest  # noqa: E402

EXTENT = (0.0, 0.0, 4000.0, 4000.0)


@pytest.fixture(scope="session")
def simulator():
    return LandslideSimulator(extent=EXTENT, seed=7)


@pytest.fixture(scope="session")
def points(simulator):
    return simulator.sample_points(240)


@pytest.fixture(scope="session")
def partitioned(points):
    return partition_points(points, n_cols=4, n_rows=4, test_blocks=[5, 10],
                            validation_blocks=[3])


@pytest.fixture()
def task(partitioned):
    pts, _ = partitioned
    return ClassificationTask.from_frame(pts, target="slides", features=DEFAULT_FEATURES,
                                         block_column="block_id")


@pytest.fixture()
def small_forest():
    return build_random_forest(n_estimators=15, random_state=0, n_jobs=1)


@pytest.fixture()
def task_with_negative_block(task):
    """Task whose 'zone' folds include one block holding only non-landslides."""
    data = task.data.copy()
    data['zone'] = pd.cut(data['x'], 3, labels=False).astype(int)
    negatives = np.flatnonzero(data['slides'].to_numpy() == 0)[:15]
    data.loc[negatives, 'zone'] = 99
    return ClassificationTask(data=data, target="slides", features=task.features,
                              block_column="zone")
