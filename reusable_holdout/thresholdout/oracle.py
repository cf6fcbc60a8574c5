"""
Thresholdout comparison oracle.

Converts a (train score, holdout score) pair into a score that only reveals
holdout information when the two disagree by more than a noisy threshold:

    if |train - holdout| > threshold + gamma:
        answer holdout + xi,  xi ~ D(sigma)
        redraw gamma ~ D(2 * sigma)
        budget_utilized += 1
    else:
        answer train

D is a zero-centred normal or Laplace (heavy-tailed) distribution. The
oracle keeps no state of its own besides the random stream; every call takes
an OracleState and returns the next one.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from reusable_holdout.utils.exceptions import ConfigurationError


class NoiseDistribution(Enum):
    NORMAL = "norm"
    LAPLACE = "laplace"

    @classmethod
    def from_config(cls, value) -> "NoiseDistribution":
        if isinstance(value, cls):
            return value
        aliases = {
            'norm': cls.NORMAL,
            'normal': cls.NORMAL,
            'laplace': cls.LAPLACE,
            'heavy-tailed': cls.LAPLACE,
        }
        try:
            return aliases[str(value).lower()]
        except KeyError:
            raise ConfigurationError(
                f"Unknown noise distribution '{value}'. Choose from {sorted(aliases)}."
            ) from None


@dataclass(frozen=True)
class OracleState:
    threshold: float
    sigma: float
    gamma: float
    noise_distribution: NoiseDistribution
    budget_utilized: int = 0
    budget: Optional[int] = None

    @property
    def exhausted(self) -> bool:
        return self.budget is not None and self.budget_utilized >= self.budget


class ThresholdoutOracle:
    """Stateless Thresholdout mechanism drawing noise from a shared random stream."""

    def __init__(self, random_state: np.random.RandomState, logger: Optional[logging.Logger] = None):
        self.random_state = random_state
        self.logger = logger or logging.getLogger(__name__)
        self._exhaustion_reported = False

    @staticmethod
    def initial_state(threshold: float,
                      sigma: float,
                      noise_distribution,
                      gamma: float = 0.0,
                      budget: Optional[int] = None) -> OracleState:
        """Build the starting state; the first threshold carries no noise (gamma = 0)."""
        if threshold < 0:
            raise ConfigurationError(f"Thresholdout threshold must be >= 0, got {threshold}")
        if sigma <= 0:
            raise ConfigurationError(f"Thresholdout sigma must be > 0, got {sigma}")
        if budget is not None and budget <= 0:
            raise ConfigurationError(f"Thresholdout budget must be > 0 when provided, got {budget}")

        return OracleState(
            threshold=float(threshold),
            sigma=float(sigma),
            gamma=float(gamma),
            noise_distribution=NoiseDistribution.from_config(noise_distribution),
            budget_utilized=0,
            budget=budget,
        )

    def evaluate(self, train_score: float, holdout_score: float, state: OracleState) -> Tuple[float, OracleState]:
        """
        Answer one comparison query.

        Returns:
            (score, next_state)
        """
        if state.exhausted:
            if not self._exhaustion_reported:
                self.logger.warning(
                    f"Thresholdout budget exhausted ({state.budget_utilized}/{state.budget}); "
                    "answering every further query with the train score."
                )
                self._exhaustion_reported = True
            return float(train_score), state

        if abs(train_score - holdout_score) > state.threshold + state.gamma:
            score = holdout_score + self._noise(state.noise_distribution, state.sigma)
            next_state = replace(
                state,
                gamma=self._noise(state.noise_distribution, 2 * state.sigma),
                budget_utilized=state.budget_utilized + 1,
            )
            return float(score), next_state

        return float(train_score), state

    def _noise(self, distribution: NoiseDistribution, scale: float) -> float:
        if distribution is NoiseDistribution.LAPLACE:
            return float(self.random_state.laplace(0.0, scale))
        return float(self.random_state.normal(0.0, scale))
