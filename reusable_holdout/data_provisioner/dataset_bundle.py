from dataclasses import dataclass
from typing import Any, List

import pandas as pd

from reusable_holdout.utils.exceptions import DataValidationError


@dataclass(frozen=True, eq=False)
class DatasetBundle:
    """
    Fixed, disjoint train-total / holdout / test split.

    Created once by the provisioner and only read afterwards: the adaptive
    loop slices ``x_train_total`` by a fixed row permutation but never
    resamples or modifies the bundle.
    """
    x_train_total: pd.DataFrame
    y_train_total: pd.Series
    x_holdout: pd.DataFrame
    y_holdout: pd.Series
    x_test: pd.DataFrame
    y_test: pd.Series
    target_name: str
    baseline_label: Any
    n_features: int
    n_train: int

    def __post_init__(self):
        columns = list(self.x_train_total.columns)
        for name, x, y in self.splits():
            if list(x.columns) != columns:
                raise DataValidationError(f"Feature columns of the {name} split differ from train-total.")
            if len(x) != len(y):
                raise DataValidationError(f"{name} split has {len(x)} feature rows but {len(y)} labels.")
            labels = set(pd.unique(y))
            if self.baseline_label not in labels:
                raise DataValidationError(f"Baseline label {self.baseline_label!r} missing from the {name} split.")
            if len(labels) != 2:
                raise DataValidationError(f"{name} split must contain exactly two classes, found {sorted(map(str, labels))}.")
        if self.n_features != len(columns):
            raise DataValidationError(f"n_features={self.n_features} but {len(columns)} feature columns were given.")
        if not (0 < self.n_train <= self.n_train_total):
            raise DataValidationError(
                f"Initial training size must be in (0, {self.n_train_total}], got {self.n_train}."
            )

    def splits(self):
        return [
            ('train-total', self.x_train_total, self.y_train_total),
            ('holdout', self.x_holdout, self.y_holdout),
            ('test', self.x_test, self.y_test),
        ]

    @property
    def n_train_total(self) -> int:
        return len(self.x_train_total)

    @property
    def feature_names(self) -> List[str]:
        return list(self.x_train_total.columns)

    def binarize(self, y: pd.Series) -> pd.Series:
        """Encode labels as 1 (positive) / 0 (baseline)."""
        return (y != self.baseline_label).astype(int)
