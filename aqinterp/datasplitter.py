import numpy as np
from sklearn.model_selection import KFold

from . import config
from .errors import InsufficientDataError


def partition(n, k=None, seed=None):
    """
    Assign each of n observations to one of k folds (ids 1..k).

    Seeded shuffle followed by contiguous block assignment, so fold sizes
    differ by at most one and the same (n, k, seed) always gives the same
    assignment.
    """
    k = config.N_FOLDS if k is None else int(k)
    seed = config.SEED if seed is None else int(seed)
    n = int(n)

    if k < 2:
        raise InsufficientDataError(f"Need at least 2 folds, got k={k}.")
    if n < k:
        raise InsufficientDataError(
            f"Cannot split {n} observations into {k} folds; each fold needs at least one point."
        )

    folds = np.zeros(n, dtype=int)
    kf = KFold(n_splits=k, shuffle=True, random_state=seed)
    for fold, (_, test_idx) in enumerate(kf.split(np.arange(n))):
        folds[test_idx] = fold + 1
    return folds


def kfold_splits(folds):
    """Yield (fold_id, train_idx, test_idx) in ascending fold order."""
    folds = np.asarray(folds)
    for fold_id in np.unique(folds):
        test_mask = folds == fold_id
        yield int(fold_id), np.flatnonzero(~test_mask), np.flatnonzero(test_mask)


def fold_sizes(folds):
    ids, counts = np.unique(np.asarray(folds), return_counts=True)
    return {int(i): int(c) for i, c in zip(ids, counts)}
