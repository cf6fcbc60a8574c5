import logging
import numpy as np
import pandas as pd
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sklearn.base import clone
from sklearn.metrics import roc_auc_score
from sklearn.model_selection import RepeatedStratifiedKFold, cross_val_score

from reusable_holdout.data_provisioner.dataset_bundle import DatasetBundle
from reusable_holdout.model_factory import ClassifierFactory
from reusable_holdout.subset_fitter.candidate import CandidateRow
from reusable_holdout.subset_fitter.significance import (
    SignificancePolicy,
    compute_pvalues,
    rank_features,
)
from reusable_holdout.utils.error_handling import handle_collaborator_errors
from reusable_holdout.utils.exceptions import ModelFittingError


class FeatureSubsetFitter:
    """
    Fits one classifier per nested subset of the most significant features.

    Logic:
    1. Rank all features by a Welch t-test computed on the training rows only.
    2. Build nested subsets, each a superset of the mandatory features:
       - top-two policy: a single subset with the two most significant features.
       - cutoff policy: mandatory + top-k qualifying features, k = 1..m.
    3. For each subset, estimate AUC by repeated stratified CV on the training
       rows, refit on all training rows and score train, holdout and test.

    Holdout and test scores are bookkeeping only: nothing inside the fitter
    looks at them when forming subsets.
    """

    def __init__(self, config: dict, logger: logging.Logger):
        self.config = config
        self.logger = logger

        fitter_config = config.get('fitter', {})
        self.cv_folds = fitter_config.get('cv_folds', 5)
        self.cv_repeats = fitter_config.get('cv_repeats', 2)
        self.max_candidates: Optional[int] = fitter_config.get('max_candidates')
        self.classifier_params: Dict[str, Any] = fitter_config.get('classifier_params', {}) or {}
        self.sanity_checks = config.get('simulation', {}).get('sanity_checks', False)

    @handle_collaborator_errors("Feature-subset fitting")
    def fit(self,
            x_train: pd.DataFrame,
            y_train: pd.Series,
            bundle: DatasetBundle,
            classifier: str,
            mandatory_features: Iterable[str],
            policy: SignificancePolicy,
            random_state: int) -> List[CandidateRow]:
        """
        Returns one CandidateRow per nested subset, in order of increasing size.
        """
        y_binary = bundle.binarize(y_train)
        if self.sanity_checks:
            self._sanity_check(x_train, y_binary)
        if y_binary.nunique() < 2:
            raise ModelFittingError("Training slice contains a single class.")

        p_values = compute_pvalues(x_train, y_binary)
        subsets = self.build_subsets(p_values, frozenset(mandatory_features), policy, self.max_candidates)
        self.logger.debug(
            f"Fitter: {len(x_train)} rows, policy {policy}, {len(subsets)} nested subset(s) "
            f"of sizes {[len(s) for s in subsets]}"
        )

        y_holdout = bundle.binarize(bundle.y_holdout)
        y_test = bundle.binarize(bundle.y_test)

        candidates = []
        for subset in subsets:
            candidates.append(self._fit_subset(
                subset, p_values, x_train, y_binary, bundle, y_holdout, y_test, classifier, random_state
            ))
        return candidates

    @staticmethod
    def build_subsets(p_values: pd.Series,
                      mandatory: frozenset,
                      policy: SignificancePolicy,
                      max_candidates: Optional[int] = None) -> List[Tuple[str, ...]]:
        """
        Form nested candidate subsets of strictly increasing size.
        """
        unknown = mandatory - set(p_values.index)
        if unknown:
            raise ModelFittingError(f"Mandatory features not present in the data: {sorted(unknown)}")

        ranked = rank_features(p_values)
        base = tuple(f for f in ranked.index if f in mandatory)

        if policy.is_top_two:
            top_two = tuple(ranked.index[:2])
            return [base + tuple(f for f in top_two if f not in mandatory)]

        qualifying = [f for f, p in ranked.items() if f not in mandatory and p < policy.cutoff]
        if max_candidates is not None:
            qualifying = qualifying[:max_candidates]

        if not qualifying:
            # Nothing new is significant: the only candidate keeps what was already selected.
            return [base] if base else []

        return [base + tuple(qualifying[:k]) for k in range(1, len(qualifying) + 1)]

    def _fit_subset(self, subset, p_values, x_train, y_train, bundle, y_holdout, y_test,
                    classifier, random_state) -> CandidateRow:
        if not subset:
            raise ModelFittingError("Encountered an empty feature subset.")
        if len(x_train) < len(subset):
            raise ModelFittingError(
                f"Training slice has {len(x_train)} rows but the subset has {len(subset)} features."
            )

        columns = list(subset)
        X = x_train[columns]
        params = {**self.classifier_params, 'random_state': random_state}
        model = ClassifierFactory.create(classifier, params)

        n_splits = min(self.cv_folds, int(y_train.value_counts().min()))
        if n_splits < 2:
            raise ModelFittingError("Minority class too small for cross-validation.")
        cv = RepeatedStratifiedKFold(n_splits=n_splits, n_repeats=self.cv_repeats, random_state=random_state)
        cv_scores = cross_val_score(clone(model), X, y_train, cv=cv, scoring='roc_auc', error_score='raise')

        model.fit(X, y_train)

        return CandidateRow(
            features=tuple(columns),
            p_values={f: float(p_values[f]) for f in columns},
            train_auc=self._auc(model, X, y_train),
            cv_auc=float(np.mean(cv_scores)),
            holdout_auc=self._auc(model, bundle.x_holdout[columns], y_holdout),
            test_auc=self._auc(model, bundle.x_test[columns], y_test),
        )

    @staticmethod
    def _auc(model, X: pd.DataFrame, y: pd.Series) -> float:
        positive_column = list(model.classes_).index(1)
        scores = model.predict_proba(X)[:, positive_column]
        return float(roc_auc_score(y, scores))

    @staticmethod
    def _sanity_check(x_train: pd.DataFrame, y_binary: pd.Series) -> None:
        values = x_train.to_numpy(dtype=float)
        if not np.isfinite(values).all():
            raise ModelFittingError("Training features contain NaN or infinite values.")
        if len(x_train) != len(y_binary):
            raise ModelFittingError("Training features and labels differ in length.")
