import numpy as np
import pandas as pd
from dataclasses import dataclass
from enum import Enum
from scipy import stats
from typing import Optional

from reusable_holdout.utils.exceptions import ConfigurationError


class PolicyMode(Enum):
    TOP_TWO = "top_two"
    CUTOFF = "cutoff"


@dataclass(frozen=True)
class SignificancePolicy:
    """
    How the fitter chooses which ranked features enter the candidate subsets.

    TOP_TWO is an explicit mode (the two most significant features, one
    candidate), never encoded as a numeric cutoff of zero.
    """
    mode: PolicyMode
    cutoff: Optional[float] = None

    def __post_init__(self):
        if self.mode is PolicyMode.CUTOFF:
            if self.cutoff is None or not (0.0 < self.cutoff < 1.0):
                raise ConfigurationError(f"Significance cutoff must be in (0, 1), got {self.cutoff}")
        elif self.cutoff is not None:
            raise ConfigurationError("The top-two policy does not take a cutoff.")

    @classmethod
    def top_two(cls) -> "SignificancePolicy":
        return cls(PolicyMode.TOP_TWO)

    @classmethod
    def cutoff_at(cls, p: float) -> "SignificancePolicy":
        return cls(PolicyMode.CUTOFF, p)

    @property
    def is_top_two(self) -> bool:
        return self.mode is PolicyMode.TOP_TWO

    def __str__(self) -> str:
        return "top-two override" if self.is_top_two else f"p < {self.cutoff:g}"


def compute_pvalues(x: pd.DataFrame, y_binary: pd.Series) -> pd.Series:
    """
    Welch two-sample t-test of every feature between the two classes.

    Uses only the rows supplied. Features whose p-value is undefined
    (e.g. constant within both classes) get p = 1.0.

    Returns:
        Series of p-values indexed by feature name, in column order.
    """
    y = np.asarray(y_binary)
    positives = x.to_numpy(dtype=float)[y == 1]
    negatives = x.to_numpy(dtype=float)[y == 0]
    if len(positives) < 2 or len(negatives) < 2:
        raise ValueError("Each class needs at least two rows for a t-test.")

    with np.errstate(divide='ignore', invalid='ignore'):
        _, p_values = stats.ttest_ind(positives, negatives, axis=0, equal_var=False)

    p_values = np.where(np.isnan(p_values), 1.0, p_values)
    return pd.Series(p_values, index=x.columns, name="p_value")


def rank_features(p_values: pd.Series) -> pd.Series:
    """Sort ascending by p-value; ties keep column order."""
    return p_values.sort_values(kind="mergesort")
