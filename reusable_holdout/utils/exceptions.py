"""
Custom exception hierarchy for the reusable-holdout simulator.

Every error is fatal for a simulation run: a truncated adaptive run would
misreport its budget and feature-set state, so nothing is salvaged.
"""

class ReusableHoldoutError(Exception):
    """Base exception for all simulator errors."""
    pass

class ConfigurationError(ReusableHoldoutError):
    """Configuration validation failed."""
    pass

class DataValidationError(ReusableHoldoutError):
    """Dataset provisioning or validation failed."""
    pass

class InvariantViolation(ReusableHoldoutError):
    """A structural invariant of the adaptive loop was broken."""
    pass

class CollaboratorFailure(ReusableHoldoutError):
    """The subset fitter or the comparison oracle failed."""
    pass

class ModelFittingError(CollaboratorFailure):
    """Feature-subset model fitting failed."""
    pass
