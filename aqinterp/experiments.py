# experiments.py
# Sweep one workflow setting (fold count or seed) and collect every ranking.

import os
import pickle

import pandas as pd
from tqdm import tqdm

from . import config
from .pipeline import ModelSelector

SWEEPABLE = ("k", "seed")


def run_experiment(dataset, variable, options, configs=None, optimize=True,
                   results_path=None, n_jobs=None, verbose=None):
    """
    Run the model comparison once per option of `variable` ('k' or 'seed').

    Returns a long DataFrame with one row per (option, estimator). When
    results_path is given, the reports are pickled to
    {results_path}/{variable}_experiment.pkl after every option.
    """
    if variable not in SWEEPABLE:
        raise ValueError(f"variable must be one of {SWEEPABLE}, got {variable!r}")
    options = list(options)
    if not options:
        raise ValueError(f"No {variable} options to sweep.")
    verbose = config.verbose if verbose is None else verbose

    all_results = {}
    frames = []
    save_path = None
    if results_path is not None:
        os.makedirs(results_path, exist_ok=True)
        save_path = os.path.join(results_path, f"{variable}_experiment.pkl")

    for option in tqdm(options, desc=f"{variable} sweep", disable=not verbose):
        if verbose:
            print("\n=====================================")
            print(f" Running comparison for {variable}={option} ")
            print("=====================================\n")

        override_kwargs = {f"{variable}_override": option}
        runner = ModelSelector(dataset, configs=configs, n_jobs=n_jobs, verbose=verbose, **override_kwargs)
        report = runner.run(optimize=optimize)
        all_results[option] = report

        frame = report.to_frame()
        frame.insert(0, variable, option)
        frames.append(frame)

        if save_path is not None:
            with open(save_path, "wb") as f:
                pickle.dump(all_results, f)

    if verbose and save_path is not None:
        print(f"\nExperiment complete. Results saved to:\n {save_path}\n")

    return pd.concat(frames, ignore_index=True)


def rank_stability(results, variable):
    """Mean / worst rank and mean RMSE of every estimator across the sweep, best first."""
    summary = (
        results.groupby("name")
        .agg(mean_rank=("rank", "mean"), worst_rank=("rank", "max"),
             mean_rmse=("mean_rmse", "mean"), n_runs=(variable, "count"))
        .sort_values(["mean_rank", "mean_rmse"])
        .reset_index()
    )
    return summary


def load_results(results_path, variable):
    with open(os.path.join(results_path, f"{variable}_experiment.pkl"), "rb") as f:
        return pickle.load(f)
