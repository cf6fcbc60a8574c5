from dataclasses import dataclass, asdict
from typing import FrozenSet, List, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class RoundRecord:
    """Provenance of one round: the winner's scores and the running budget figures."""
    round: int
    n_train: int
    train_auc: float
    cv_auc: float
    holdout_auc: float
    test_auc: float
    thresholdout_auc: float
    features: FrozenSet[str]
    num_features: int
    holdout_access_count: int
    cum_holdout_access_count: int
    cum_budget_utilized: int
    candidates_evaluated: int
    selected_index: int


@dataclass(frozen=True)
class SimulationResult:
    records: Tuple[RoundRecord, ...]
    selected_features: FrozenSet[str]
    classifier: str
    seed: int

    @property
    def n_rounds(self) -> int:
        return len(self.records)

    @property
    def num_features_by_round(self) -> List[int]:
        return [r.num_features for r in self.records]

    @property
    def holdout_access_by_round(self) -> List[int]:
        return [r.holdout_access_count for r in self.records]

    @property
    def cum_holdout_access(self) -> List[int]:
        return [r.cum_holdout_access_count for r in self.records]

    @property
    def cum_budget_by_round(self) -> List[int]:
        return [r.cum_budget_utilized for r in self.records]

    def to_frame(self) -> pd.DataFrame:
        """One wide row per round; the feature set is rendered as a sorted list."""
        rows = []
        for record in self.records:
            row = asdict(record)
            row['features'] = sorted(record.features)
            rows.append(row)
        frame = pd.DataFrame(rows)
        frame['thresholdout_auc'] = frame['thresholdout_auc'].astype(float)
        return frame

    def summary(self) -> dict:
        final = self.records[-1]
        return {
            'classifier': self.classifier,
            'seed': self.seed,
            'rounds': self.n_rounds - 1,
            'selected_features': sorted(self.selected_features),
            'num_features': final.num_features,
            'final_test_auc': final.test_auc,
            'final_thresholdout_auc': None if np.isnan(final.thresholdout_auc) else final.thresholdout_auc,
            'cum_holdout_access_count': final.cum_holdout_access_count,
            'cum_budget_utilized': final.cum_budget_utilized,
        }
