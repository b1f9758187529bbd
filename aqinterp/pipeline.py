import warnings
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

import numpy as np
import pandas as pd

from . import config as settings
from .dataset import as_dataset
from .estimators import EstimatorConfig, EstimatorKind, build_estimator, make_config
from .grid import Grid, grid_for_dataset
from .idw_optimizer import optimize_idw
from .errors import InterpolationWarning
from .validator import cross_validate_estimator, null_rmse


def _as_config(entry):
    """EstimatorConfig, (kind, params) pair, or a bare kind."""
    if isinstance(entry, (tuple, list)):
        kind, params = entry
        return make_config(kind, params)
    return make_config(entry)


# ------------------------------------------------------------------
# PUBLIC API
# ------------------------------------------------------------------

def fit_and_predict(kind, config=None, training=None, query_locations=None):
    """
    Fit one estimator on the training observations and predict at the query
    locations (an (m, 2) array or a Grid). Returns an InterpolationResult;
    kriging results carry variances.
    """
    estimator = build_estimator(kind, config)
    dataset = as_dataset(training)
    if isinstance(query_locations, Grid):
        return estimator.fit_predict(dataset, query_locations.points, shape=query_locations.shape)
    return estimator.fit_predict(dataset, query_locations)


def cross_validate(kind, config=None, dataset=None, k=None, seed=None, n_jobs=None, verbose=None):
    """K-fold CV of one estimator; see validator.cross_validate_estimator."""
    cfg = make_config(kind, config)
    return cross_validate_estimator(
        build_estimator(cfg), as_dataset(dataset), k=k, seed=seed, n_jobs=n_jobs,
        label=cfg.label, verbose=verbose,
    )


# ------------------------------------------------------------------
# MODEL COMPARISON
# ------------------------------------------------------------------

@dataclass(frozen=True)
class RankedEntry:
    rank: int
    name: str
    kind: str
    mean_rmse: float
    improvement_over_null: float
    per_fold_rmse: tuple
    status: str
    message: str = ""
    config: EstimatorConfig = None


@dataclass(frozen=True)
class ComparisonReport:
    entries: tuple
    null_rmse: float
    k: int
    seed: int

    @property
    def ordering(self):
        return [e.name for e in self.entries]

    @property
    def best(self):
        for e in self.entries:
            if e.status != "failed":
                return e
        return None

    @property
    def failures(self):
        return [e for e in self.entries if e.status == "failed"]

    def to_frame(self):
        return pd.DataFrame([
            {
                "rank": e.rank,
                "name": e.name,
                "kind": e.kind,
                "mean_rmse": e.mean_rmse,
                "improvement_over_null": e.improvement_over_null,
                "status": e.status,
                "message": e.message,
            }
            for e in self.entries
        ])

    def __str__(self):
        return self.to_frame().drop(columns="message").to_string(index=False)


def _evaluate_config(args):
    """Cross-validate one configuration. Never raises: failures become a 'failed' record."""
    index, cfg, dataset, k, seed = args
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", InterpolationWarning)
        try:
            estimator = build_estimator(cfg)
            result = cross_validate_estimator(estimator, dataset, k=k, seed=seed,
                                              label=cfg.label, verbose=False)
        except Exception as e:
            return {"index": index, "config": cfg, "result": None,
                    "error": f"{type(e).__name__}: {e}", "warnings": []}
    notes = [str(w.message) for w in caught if issubclass(w.category, InterpolationWarning)]
    return {"index": index, "config": cfg, "result": result, "error": None, "warnings": notes}


def compare_estimators(configs, dataset, k=None, seed=None, n_jobs=None, verbose=None):
    """
    Cross-validate every configuration on the same folds and rank by mean RMSE
    (ascending; failed estimators last, ties keep input order).
    """
    k = settings.N_FOLDS if k is None else int(k)
    seed = settings.SEED if seed is None else int(seed)
    verbose = settings.verbose if verbose is None else verbose
    dataset = as_dataset(dataset)
    configs = [_as_config(c) for c in configs]

    tasks = [(i, cfg, dataset, k, seed) for i, cfg in enumerate(configs)]
    if n_jobs is not None and n_jobs > 1:
        with ProcessPoolExecutor(max_workers=n_jobs) as executor:
            outcomes = list(executor.map(_evaluate_config, tasks))
    else:
        outcomes = [_evaluate_config(t) for t in tasks]

    rows = []
    for out in outcomes:
        cfg, result = out["config"], out["result"]
        for note in out["warnings"]:
            warnings.warn(note, InterpolationWarning, stacklevel=2)

        if result is None:
            warnings.warn(f"{cfg.label} failed and was left out of the ranking: {out['error']}",
                          InterpolationWarning, stacklevel=2)
            rows.append((out["index"], cfg, np.nan, np.nan, (), "failed", out["error"]))
            continue

        status = "degenerate" if result.degenerate else "ok"
        message = f"degenerate folds {list(result.degenerate_folds)}" if result.degenerate else ""
        rows.append((out["index"], cfg, result.mean_rmse, result.improvement_over_null,
                     result.per_fold_rmse, status, message))

    def sort_key(row):
        index, _, mean_rmse, _, _, status, _ = row
        return (status == "failed", mean_rmse if np.isfinite(mean_rmse) else np.inf, index)

    entries = tuple(
        RankedEntry(
            rank=rank, name=cfg.label, kind=cfg.kind.value, mean_rmse=mean_rmse,
            improvement_over_null=improvement, per_fold_rmse=tuple(per_fold),
            status=status, message=message, config=cfg,
        )
        for rank, (_, cfg, mean_rmse, improvement, per_fold, status, message)
        in enumerate(sorted(rows, key=sort_key), start=1)
    )

    report = ComparisonReport(entries=entries, null_rmse=null_rmse(dataset.values), k=k, seed=seed)
    if verbose:
        print("Done. Results summary:")
        print(report)
    return report


# ------------------------------------------------------------------
# RUNNER
# ------------------------------------------------------------------

class ModelSelector:
    """
    Whole workflow on one dataset: tune IDW, cross-validate the estimator set
    against the null model, rank, and interpolate a surface with the winner.
    """

    def __init__(self, dataset, configs=None, k_override=None, seed_override=None,
                 initial_guess=None, n_jobs=None, verbose=None):
        self.dataset = as_dataset(dataset)
        self.configs = None if configs is None else [_as_config(c) for c in configs]
        self.k = k_override if k_override is not None else settings.N_FOLDS
        self.seed = seed_override if seed_override is not None else settings.SEED
        self.initial_guess = initial_guess if initial_guess is not None else settings.IDW_INITIAL_GUESS
        self.n_jobs = n_jobs
        self.verbose = settings.verbose if verbose is None else verbose
        self.idw_optimum = None
        self.report = None

    def default_configs(self, idw_optimum=None):
        configs = [
            EstimatorConfig(kind=EstimatorKind.NEAREST, name="nearest"),
            EstimatorConfig(kind=EstimatorKind.KNN, name="knn", nmax=settings.KNN_NMAX),
        ]
        if idw_optimum is not None:
            configs.append(idw_optimum.to_config(name="idw (optimised)"))
        else:
            configs.append(EstimatorConfig(kind=EstimatorKind.IDW, name="idw"))
        configs.append(EstimatorConfig(kind=EstimatorKind.KRIGING, name="kriging"))
        configs.append(EstimatorConfig(kind=EstimatorKind.NULL, name="null"))
        return configs

    def tune_idw(self):
        if self.verbose:
            print("Tuning IDW (nmax, power)...")
        self.idw_optimum = optimize_idw(
            self.dataset, initial_guess=self.initial_guess, k=self.k, seed=self.seed,
            n_jobs=self.n_jobs, verbose=self.verbose,
        )
        return self.idw_optimum

    def run(self, optimize=True):
        """Entry point; returns the ComparisonReport."""
        if optimize and self.idw_optimum is None:
            self.tune_idw()

        if self.configs is None:
            configs = self.default_configs(self.idw_optimum)
        else:
            configs = list(self.configs)
            if self.idw_optimum is not None:
                configs.append(self.idw_optimum.to_config(name="idw (optimised)"))

        self.report = compare_estimators(
            configs, self.dataset, k=self.k, seed=self.seed,
            n_jobs=self.n_jobs, verbose=self.verbose,
        )
        return self.report

    def predict_surface(self, resolution=None, pad=0.0, config=None):
        """Interpolate the whole dataset onto a grid over its extent (best estimator by default)."""
        if config is None:
            if self.report is None:
                self.run()
            best = self.report.best
            if best is None:
                raise RuntimeError("Every estimator failed; nothing to interpolate with.")
            config = best.config
        grid = grid_for_dataset(self.dataset, resolution=resolution, pad=pad)
        return fit_and_predict(config, training=self.dataset, query_locations=grid)
