from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple


@dataclass(frozen=True)
class CandidateRow:
    """One fitted model on a nested feature subset, with its four AUC scores."""
    features: Tuple[str, ...]
    p_values: Dict[str, float] = field(compare=False)
    train_auc: float
    cv_auc: float
    holdout_auc: float
    test_auc: float

    @property
    def feature_set(self) -> FrozenSet[str]:
        return frozenset(self.features)

    @property
    def n_features(self) -> int:
        return len(self.features)

    def scores(self) -> Dict[str, float]:
        return {
            'train_auc': self.train_auc,
            'cv_auc': self.cv_auc,
            'holdout_auc': self.holdout_auc,
            'test_auc': self.test_auc,
        }
