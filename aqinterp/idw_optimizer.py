import warnings
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize

from . import config
from .baseline import IDWEstimator
from .dataset import as_dataset
from .estimators import EstimatorConfig, EstimatorKind
from .errors import InvalidInputError, OptimizationNonConvergenceError, InterpolationWarning
from .validator import cross_validate_estimator


@dataclass(frozen=True)
class IDWOptimum:
    nmax: int
    power: float
    rmse: float
    converged: bool
    n_iterations: int
    n_evaluations: int
    message: str = ""

    def to_config(self, name=None):
        return EstimatorConfig(kind=EstimatorKind.IDW, name=name, nmax=self.nmax, power=self.power)


class IDWObjective:
    """
    Mean k-fold CV RMSE of IDW(round(nmax), power). The fold assignment is the
    same for every call, so the objective is deterministic. Out-of-range
    candidates score inf.
    """

    def __init__(self, dataset, k=None, seed=None, n_jobs=None):
        self.dataset = as_dataset(dataset)
        self.k = config.N_FOLDS if k is None else k
        self.seed = config.SEED if seed is None else seed
        self.n_jobs = n_jobs
        self._cache = {}

    def __call__(self, params):
        nmax, power = float(params[0]), float(params[1])
        if not (np.isfinite(nmax) and np.isfinite(power)):
            return np.inf
        if nmax < config.IDW_MIN_NMAX or power < config.IDW_MIN_POWER:
            return np.inf

        key = (int(round(nmax)), power)
        if key not in self._cache:
            estimator = IDWEstimator(nmax=key[0], power=power)
            result = cross_validate_estimator(
                estimator, self.dataset, k=self.k, seed=self.seed,
                n_jobs=self.n_jobs, verbose=False,
            )
            score = result.mean_rmse
            self._cache[key] = score if np.isfinite(score) else np.inf
        return self._cache[key]

    @property
    def n_evaluations(self):
        return len(self._cache)


def optimize_idw(dataset, initial_guess=None, k=None, seed=None, max_iter=None,
                 strict=False, n_jobs=None, verbose=None):
    """
    Tune IDW (nmax, power) with Nelder-Mead on the cross-validated RMSE.

    Returns an IDWOptimum. When the iteration cap is hit before the simplex
    converges, the best vertex is returned with converged=False (and a
    warning), or OptimizationNonConvergenceError is raised if strict=True.
    """
    nmax0, power0 = config.IDW_INITIAL_GUESS if initial_guess is None else initial_guess
    max_iter = config.OPTIMIZER_MAX_ITER if max_iter is None else int(max_iter)
    verbose = config.verbose if verbose is None else verbose
    if nmax0 < config.IDW_MIN_NMAX or power0 < config.IDW_MIN_POWER:
        raise InvalidInputError(
            f"Initial guess {(nmax0, power0)} is outside nmax >= {config.IDW_MIN_NMAX}, "
            f"power >= {config.IDW_MIN_POWER}."
        )

    objective = IDWObjective(dataset, k=k, seed=seed, n_jobs=n_jobs)
    x0 = np.array([nmax0, power0], dtype=float)
    step_n, step_p = config.IDW_SIMPLEX_STEP
    simplex = np.array([x0, x0 + [step_n, 0.0], x0 + [0.0, step_p]])

    result = minimize(
        objective, x0, method="Nelder-Mead",
        options={
            "maxiter": max_iter,
            "xatol": config.OPTIMIZER_XATOL,
            "fatol": config.OPTIMIZER_FATOL,
            "initial_simplex": simplex,
        },
    )

    optimum = IDWOptimum(
        nmax=max(config.IDW_MIN_NMAX, int(round(result.x[0]))),
        power=float(result.x[1]),
        rmse=float(result.fun),
        converged=bool(result.success),
        n_iterations=int(result.nit),
        n_evaluations=objective.n_evaluations,
        message=str(result.message),
    )

    if verbose:
        print(f"[IDW] nmax={optimum.nmax} power={optimum.power:.4f} RMSE={optimum.rmse:.4f} "
              f"iterations={optimum.n_iterations} converged={optimum.converged}")

    if not optimum.converged:
        message = (f"IDW optimisation stopped after {optimum.n_iterations} iterations without "
                   f"converging ({optimum.message}); returning best parameters found.")
        if strict:
            raise OptimizationNonConvergenceError(message, optimum=optimum)
        warnings.warn(message, InterpolationWarning, stacklevel=2)

    return optimum
