"""
Exceptions and warnings raised by aqinterp.

Dataset-level problems (InvalidInputError, InsufficientDataError) are fatal
and reach the caller. Estimator-level problems are isolated per estimator or
fold: VariogramFitError is recovered by the kriging estimator, and
OptimizationNonConvergenceError is only raised when asked for.
"""


class InterpolationError(Exception):
    pass


class InvalidInputError(InterpolationError, ValueError):
    """Empty, malformed or non-finite observations, or bad estimator parameters."""


class InsufficientDataError(InterpolationError, ValueError):
    """Not enough observations for the requested folds or fit."""


class VariogramFitError(InterpolationError):
    """Empirical variogram has too few bins, or the model fit did not converge."""


class OptimizationNonConvergenceError(InterpolationError):
    def __init__(self, message, optimum=None):
        super().__init__(message)
        self.optimum = optimum


class InterpolationWarning(UserWarning):
    pass
