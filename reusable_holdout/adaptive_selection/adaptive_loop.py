import logging
import numpy as np
import pandas as pd
from typing import Any, List, Optional, Tuple

from tqdm import tqdm

from reusable_holdout.adaptive_selection.records import RoundRecord, SimulationResult
from reusable_holdout.data_provisioner.dataset_bundle import DatasetBundle
from reusable_holdout.subset_fitter import CandidateRow, FeatureSubsetFitter, SignificancePolicy
from reusable_holdout.thresholdout import OracleState, ThresholdoutOracle
from reusable_holdout.utils.error_handling import handle_collaborator_errors
from reusable_holdout.utils.exceptions import ConfigurationError, InvariantViolation


class AdaptiveSelectionLoop:
    """
    Orchestrates the adaptive feature-selection rounds against a reusable holdout.

    Round 0 fits a single model on the two most significant features without
    touching the holdout. Every adaptive round then:
    1. grows the training slice along a permutation fixed for the whole run,
    2. fits one candidate per nested feature subset (keeping all features
       selected so far),
    3. scores each candidate through the Thresholdout oracle, threading the
       oracle state strictly sequentially,
    4. picks the best comparison score (earliest candidate wins ties),
    5. re-queries the oracle once for the winner and reports that fresh score,
    6. merges the winner's features into the cumulative set,
    7. records scores, feature count, holdout accesses and budget consumption.

    Any fitter/oracle failure or broken invariant aborts the whole run.
    """

    def __init__(self, config: dict, logger: logging.Logger,
                 fitter: Optional[Any] = None,
                 oracle: Optional[Any] = None):
        self.config = config
        self.logger = logger

        sim = config.get('simulation', {})
        self.n_adapt_rounds = sim.get('n_adapt_rounds', 10)
        self.signif_level = sim.get('signif_level', 0.0001)
        self.threshold = sim.get('thresholdout_threshold', 0.02)
        self.sigma = sim.get('thresholdout_sigma', 0.03)
        self.noise_distribution = sim.get('thresholdout_noise_distribution', 'norm')
        self.budget = sim.get('thresholdout_budget')
        self.verbose = sim.get('verbose', False)
        self.sanity_checks = sim.get('sanity_checks', False)
        self.show_progress = sim.get('show_progress', False)

        if isinstance(self.n_adapt_rounds, bool) or not isinstance(self.n_adapt_rounds, int) \
                or self.n_adapt_rounds < 0:
            raise ConfigurationError(f"n_adapt_rounds must be a non-negative integer, got {self.n_adapt_rounds!r}")
        self.cutoff_policy = SignificancePolicy.cutoff_at(self.signif_level)
        # Validated up front so a bad oracle setting fails before any fitting.
        self.initial_state = ThresholdoutOracle.initial_state(
            threshold=self.threshold,
            sigma=self.sigma,
            noise_distribution=self.noise_distribution,
            gamma=0.0,
            budget=self.budget,
        )

        self.fitter = fitter if fitter is not None else FeatureSubsetFitter(config, logger)
        self.oracle = oracle

    @staticmethod
    def training_size(round_ind: int, n_train: int, n_train_total: int, n_adapt_rounds: int) -> int:
        """Rows used in a round; integer arithmetic so the last round uses exactly n_train_total."""
        if round_ind == 0:
            return n_train
        return n_train + (round_ind * (n_train_total - n_train)) // n_adapt_rounds

    def run(self, bundle: DatasetBundle, classifier: str, seed: Optional[int] = None) -> SimulationResult:
        """
        Execute the bootstrap round and all adaptive rounds.

        Args:
            bundle: The fixed dataset split.
            classifier: Classifier identifier passed through to the fitter.
            seed: Seed of the run's single random stream
                (defaults to the propagated simulation seed).

        Returns:
            SimulationResult with one RoundRecord per round, round 0 included.
        """
        if seed is None:
            seed = self.config.get('_internal_seeds', {}).get('simulation', 0)
        random_state = np.random.RandomState(seed)
        oracle = self.oracle if self.oracle is not None else ThresholdoutOracle(random_state, self.logger)
        report = self.logger.info if self.verbose else self.logger.debug

        self.logger.info(
            f"Starting adaptive selection: classifier={classifier}, rounds={self.n_adapt_rounds}, "
            f"policy={self.cutoff_policy}, threshold={self.threshold}, sigma={self.sigma}, seed={seed}"
        )

        # Drawn once: later training slices are prefix extensions of earlier ones.
        train_order = random_state.permutation(bundle.n_train_total)

        # --- Round 0: no holdout access ---
        report("Fitting initial model")
        x_train, y_train = self._training_slice(bundle, train_order, bundle.n_train)
        candidates = self._fit_candidates(
            x_train, y_train, bundle, classifier, frozenset(), SignificancePolicy.top_two(), random_state
        )
        if len(candidates) != 1:
            raise InvariantViolation(
                f"Initial model fit must yield exactly one candidate, got {len(candidates)}."
            )
        initial = candidates[0]
        features = initial.feature_set
        records: List[RoundRecord] = [RoundRecord(
            round=0,
            n_train=len(x_train),
            train_auc=initial.train_auc,
            cv_auc=initial.cv_auc,
            holdout_auc=initial.holdout_auc,
            test_auc=initial.test_auc,
            thresholdout_auc=float('nan'),
            features=features,
            num_features=len(features),
            holdout_access_count=0,
            cum_holdout_access_count=0,
            cum_budget_utilized=0,
            candidates_evaluated=1,
            selected_index=0,
        )]
        report(f"Round 0: features={sorted(features)}, test AUC={initial.test_auc:.4f}")

        # --- Adaptive rounds ---
        state = self.initial_state

        rounds = range(1, self.n_adapt_rounds + 1)
        if self.show_progress:
            rounds = tqdm(rounds, desc="Adaptive rounds", unit="round")

        for round_ind in rounds:
            report(f"Round: {round_ind}")
            size = self.training_size(round_ind, bundle.n_train, bundle.n_train_total, self.n_adapt_rounds)
            x_train, y_train = self._training_slice(bundle, train_order, size)

            candidates = self._fit_candidates(
                x_train, y_train, bundle, classifier, features, self.cutoff_policy, random_state
            )
            if not candidates:
                raise InvariantViolation(f"Round {round_ind} generated no candidate models.")

            comparison_scores = []
            for candidate in candidates:
                score, state = self._query_oracle(oracle, candidate, state)
                comparison_scores.append(score)
                report(
                    f"  candidate {len(comparison_scores) - 1}: {candidate.n_features} features, "
                    f"cv={candidate.cv_auc:.4f}, holdout={candidate.holdout_auc:.4f}, thresholdout={score:.4f}"
                )

            # np.argmax returns the first maximum: earliest candidate wins ties
            best_ind = int(np.argmax(comparison_scores))
            winner = candidates[best_ind]

            # Reported score is a fresh answer for the winner, not the maximum used to select it.
            corrected_score, state = self._query_oracle(oracle, winner, state)

            features = features | winner.feature_set
            holdout_access_count = len(candidates) + 1
            record = RoundRecord(
                round=round_ind,
                n_train=len(x_train),
                train_auc=winner.train_auc,
                cv_auc=winner.cv_auc,
                holdout_auc=winner.holdout_auc,
                test_auc=winner.test_auc,
                thresholdout_auc=corrected_score,
                features=features,
                num_features=len(features),
                holdout_access_count=holdout_access_count,
                cum_holdout_access_count=records[-1].cum_holdout_access_count + holdout_access_count,
                cum_budget_utilized=state.budget_utilized,
                candidates_evaluated=len(candidates),
                selected_index=best_ind,
            )
            if self.sanity_checks:
                self._check_round(records[-1], record, size)
            records.append(record)

            report(
                f"Round {round_ind}: selected candidate {best_ind} of {len(candidates)}, "
                f"thresholdout={corrected_score:.4f}, test={winner.test_auc:.4f}, "
                f"features={len(features)}, budget used={state.budget_utilized}"
            )

        result = SimulationResult(
            records=tuple(records),
            selected_features=features,
            classifier=classifier,
            seed=seed,
        )
        self.logger.info(
            f"Adaptive selection finished: {len(features)} features selected, "
            f"{records[-1].cum_holdout_access_count} holdout accesses, "
            f"budget used {records[-1].cum_budget_utilized}"
        )
        return result

    @staticmethod
    def _training_slice(bundle: DatasetBundle, train_order: np.ndarray, size: int) -> Tuple[pd.DataFrame, pd.Series]:
        rows = train_order[:size]
        return bundle.x_train_total.iloc[rows], bundle.y_train_total.iloc[rows]

    @handle_collaborator_errors("Feature-subset fitting")
    def _fit_candidates(self, x_train, y_train, bundle, classifier, mandatory, policy,
                        random_state: np.random.RandomState) -> List[CandidateRow]:
        return list(self.fitter.fit(
            x_train,
            y_train,
            bundle,
            classifier,
            mandatory,
            policy,
            int(random_state.randint(0, 2**31 - 1)),
        ))

    @handle_collaborator_errors("Thresholdout query")
    def _query_oracle(self, oracle, candidate: CandidateRow, state: OracleState) -> Tuple[float, OracleState]:
        return oracle.evaluate(candidate.cv_auc, candidate.holdout_auc, state)

    @staticmethod
    def _check_round(previous: RoundRecord, record: RoundRecord, expected_size: int) -> None:
        if not previous.features <= record.features:
            raise InvariantViolation(f"Round {record.round}: cumulative feature set shrank.")
        if record.cum_budget_utilized < previous.cum_budget_utilized:
            raise InvariantViolation(f"Round {record.round}: budget counter decreased.")
        if record.n_train != expected_size:
            raise InvariantViolation(
                f"Round {record.round}: trained on {record.n_train} rows, expected {expected_size}."
            )
        if record.holdout_access_count != record.candidates_evaluated + 1:
            raise InvariantViolation(f"Round {record.round}: holdout access count mismatch.")
