"""
Classification Task
===================
Bundles a point table with the roles of its columns: predictors, binary
response, coordinates and (optionally) grid blocks. Learners see only the
predictors; resampling strategies use the coordinates and blocks.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


@dataclass
class ClassificationTask:
    data: pd.DataFrame
    target: str
    features: List[str]
    coords: Tuple[str, str] = ("x", "y")
    positive: int = 1
    block_column: Optional[str] = None
    task_id: str = "landslides"

    def __post_init__(self):
        self.features = list(self.features)
        self.coords = tuple(self.coords)
        if not self.features:
            raise ValueError("Task needs at least one feature")

        needed = [self.target, *self.coords, *self.features]
        if self.block_column is not None:
            needed.append(self.block_column)
        missing = [c for c in needed if c not in self.data.columns]
        if missing:
            raise ValueError(f"Task '{self.task_id}' is missing columns: {missing}")

        if self.data[self.features].isna().any().any():
            bad = self.data[self.features].columns[self.data[self.features].isna().any()].tolist()
            raise ValueError(f"Features contain missing values: {bad}")

        classes = set(pd.unique(self.data[self.target]))
        if not classes <= {0, 1}:
            raise ValueError(f"Response '{self.target}' must be 0/1, found {sorted(classes)}")

    @classmethod
    def from_frame(cls, df, target, features, coords=("x", "y"), block_column=None,
                   task_id="landslides"):
        """Build a task from a (Geo)DataFrame, dropping the geometry column."""
        data = pd.DataFrame(df.drop(columns='geometry', errors='ignore')).reset_index(drop=True)
        if block_column is not None and block_column not in data.columns:
            block_column = None
        return cls(data=data, target=target, features=features, coords=coords,
                   block_column=block_column, task_id=task_id)

    @property
    def n_obs(self):
        return len(self.data)

    @property
    def n_features(self):
        return len(self.features)

    @property
    def X(self) -> pd.DataFrame:
        return self.data[self.features]

    @property
    def y(self) -> np.ndarray:
        return self.data[self.target].to_numpy().astype(int)

    @property
    def coordinates(self) -> np.ndarray:
        return self.data[list(self.coords)].to_numpy(dtype=float)

    @property
    def groups(self) -> Optional[np.ndarray]:
        if self.block_column is None:
            return None
        return self.data[self.block_column].to_numpy()

    def class_balance(self):
        """Share of each response class."""
        return self.data[self.target].value_counts(normalize=True).sort_index()

    def select(self, features: Sequence[str]) -> "ClassificationTask":
        """Return a task restricted to the given features."""
        unknown = [f for f in features if f not in self.features]
        if unknown:
            raise ValueError(f"Unknown features: {unknown}")
        return ClassificationTask(
            data=self.data, target=self.target, features=list(features),
            coords=self.coords, positive=self.positive,
            block_column=self.block_column, task_id=self.task_id,
        )

    def subset(self, rows) -> "ClassificationTask":
        """Return a task holding only the given row positions (index reset)."""
        data = self.data.iloc[np.asarray(rows)].reset_index(drop=True)
        return ClassificationTask(
            data=data, target=self.target, features=self.features,
            coords=self.coords, positive=self.positive,
            block_column=self.block_column, task_id=self.task_id,
        )

    def __repr__(self):
        return (f"<ClassificationTask {self.task_id}: {self.n_obs} obs, "
                f"{self.n_features} features, target={self.target}>")
