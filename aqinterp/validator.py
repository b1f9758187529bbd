"""
validator.py

K-fold cross-validation of any estimator against the null (global mean) model.

 - rmse: RMSE over finite predictions only
 - null_rmse / improvement_over_null: the fixed baseline and the skill score
 - cross_validate_estimator: fit on k-1 folds, predict the held-out fold, one RMSE per fold

Folds are independent, so they can run in a process pool (n_jobs > 1);
results are always collected in fold order.
"""

import warnings
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

import numpy as np
from sklearn.metrics import mean_squared_error
from tqdm import tqdm

from . import config
from .dataset import PointDataset, as_dataset
from .datasplitter import partition, kfold_splits
from .errors import InterpolationWarning


# ---------------------------
# Utilities
# ---------------------------
def masked_rmse(y_true, y_pred):
    """RMSE over the finite predictions. Returns (rmse, n_excluded)."""
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    mask = np.isfinite(y_pred)
    n_excluded = int((~mask).sum())
    if not mask.any():
        return float("nan"), n_excluded
    return float(np.sqrt(mean_squared_error(y_true[mask], y_pred[mask]))), n_excluded


def rmse(y_true, y_pred):
    value, n_excluded = masked_rmse(y_true, y_pred)
    _warn_excluded(n_excluded, len(y_pred))
    return value


def null_rmse(values):
    values = np.asarray(values, dtype=float)
    return float(np.sqrt(np.mean((values - values.mean()) ** 2)))


def improvement_over_null(mean_rmse, baseline_rmse):
    """1 - rmse / null_rmse. A constant field (null RMSE 0) scores 0 when matched exactly."""
    if baseline_rmse == 0:
        return 0.0 if mean_rmse == 0 else -np.inf
    return float(1.0 - mean_rmse / baseline_rmse)


def _warn_excluded(n_excluded, n_total, where=""):
    if n_total and n_excluded / n_total > config.NONFINITE_WARN_FRACTION:
        warnings.warn(
            f"{n_excluded} of {n_total} predictions{where} were non-finite and excluded from RMSE.",
            InterpolationWarning,
            stacklevel=3,
        )


# ---------------------------
# Result record
# ---------------------------
@dataclass(frozen=True)
class CVResult:
    estimator: str
    k: int
    seed: int
    per_fold_rmse: tuple
    mean_rmse: float
    null_rmse: float
    improvement_over_null: float
    n_excluded: int = 0
    degenerate_folds: tuple = ()
    messages: tuple = field(default=(), repr=False)

    @property
    def degenerate(self):
        return len(self.degenerate_folds) > 0

    def to_dict(self):
        return {
            "estimator": self.estimator,
            "k": self.k,
            "seed": self.seed,
            "mean_rmse": self.mean_rmse,
            "null_rmse": self.null_rmse,
            "improvement_over_null": self.improvement_over_null,
            "per_fold_rmse": list(self.per_fold_rmse),
            "n_excluded": self.n_excluded,
            "degenerate_folds": list(self.degenerate_folds),
        }


# ---------------------------
# Fold evaluation (module level so it can be pickled for the process pool)
# ---------------------------
def _evaluate_fold(args):
    estimator, coords, values, fold_id, train_idx, test_idx = args
    train = PointDataset.from_arrays(coords[train_idx], values[train_idx])

    # estimator-level warnings are reported once by the harness
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        fitted = estimator.fit(train)
        preds = estimator.predict(fitted, coords[test_idx])

    fold_rmse, n_excluded = masked_rmse(values[test_idx], preds)
    return {
        "fold": fold_id,
        "rmse": fold_rmse,
        "n_test": len(test_idx),
        "n_excluded": n_excluded,
        "degenerate": fitted.degenerate,
        "message": fitted.message,
    }


def cross_validate_estimator(estimator, dataset, k=None, seed=None, n_jobs=None,
                             label=None, verbose=None):
    """
    estimator: an Estimator instance (see estimators.build_estimator)
    Returns a CVResult with exactly k per-fold RMSE values.
    """
    k = config.N_FOLDS if k is None else int(k)
    seed = config.SEED if seed is None else int(seed)
    verbose = config.verbose if verbose is None else verbose
    label = label or repr(estimator)
    dataset = as_dataset(dataset)

    folds = partition(len(dataset), k, seed)
    coords, values = dataset.coords, dataset.values
    tasks = [
        (estimator, coords, values, fold_id, train_idx, test_idx)
        for fold_id, train_idx, test_idx in kfold_splits(folds)
    ]

    if n_jobs is not None and n_jobs > 1:
        with ProcessPoolExecutor(max_workers=n_jobs) as executor:
            fold_results = list(tqdm(
                executor.map(_evaluate_fold, tasks),
                total=len(tasks), desc=f"CV {label}", disable=not verbose,
            ))
    else:
        fold_results = [
            _evaluate_fold(t) for t in tqdm(tasks, desc=f"CV {label}", disable=not verbose)
        ]

    per_fold = []
    degenerate_folds = []
    messages = []
    n_excluded = 0
    for r in fold_results:
        per_fold.append(r["rmse"])
        n_excluded += r["n_excluded"]
        _warn_excluded(r["n_excluded"], r["n_test"], where=f" in fold {r['fold']} ({label})")
        if r["degenerate"]:
            degenerate_folds.append(r["fold"])
            messages.append(r["message"])
        if verbose:
            print(f"[CV] {label} fold {r['fold']}/{k} | RMSE={r['rmse']:.4f} n={r['n_test']}")

    if degenerate_folds:
        warnings.warn(
            f"{label}: degenerate fit in fold(s) {degenerate_folds}; those folds used the training mean. "
            f"{messages[0]}",
            InterpolationWarning,
            stacklevel=2,
        )

    scores = np.asarray(per_fold, dtype=float)
    finite = scores[np.isfinite(scores)]
    mean_rmse = float(finite.mean()) if finite.size else float("nan")
    baseline = null_rmse(values)

    result = CVResult(
        estimator=label,
        k=k,
        seed=seed,
        per_fold_rmse=tuple(per_fold),
        mean_rmse=mean_rmse,
        null_rmse=baseline,
        improvement_over_null=improvement_over_null(mean_rmse, baseline),
        n_excluded=n_excluded,
        degenerate_folds=tuple(degenerate_folds),
        messages=tuple(messages),
    )
    if verbose:
        print(f"[CV overall] {label} | mean RMSE={mean_rmse:.4f} null RMSE={baseline:.4f} "
              f"improvement={result.improvement_over_null:.3f}")
    return result
