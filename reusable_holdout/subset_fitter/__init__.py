"""
Feature-Subset Model Fitter.

- compute_pvalues / rank_features: t-test significance ranking on training rows.
- SignificancePolicy: explicit top-two override or numeric cutoff.
- CandidateRow: fixed-shape result per nested subset.
- FeatureSubsetFitter: fits and scores one model per nested subset.
"""

from .candidate import CandidateRow
from .significance import PolicyMode, SignificancePolicy, compute_pvalues, rank_features
from .subset_fitter import FeatureSubsetFitter

__all__ = [
    'CandidateRow',
    'PolicyMode',
    'SignificancePolicy',
    'compute_pvalues',
    'rank_features',
    'FeatureSubsetFitter',
]
