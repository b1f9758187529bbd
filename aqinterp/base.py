from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.spatial.distance import cdist

from . import config
from .errors import InvalidInputError, InsufficientDataError


# ---------------------------
# Fitted state / results
# ---------------------------
@dataclass(frozen=True)
class FittedEstimator:
    coords: np.ndarray
    values: np.ndarray
    mean: float
    degenerate: bool = False
    message: str = ""


@dataclass
class InterpolationResult:
    locations: np.ndarray
    values: np.ndarray
    variances: np.ndarray = None
    degenerate: bool = False
    message: str = ""
    shape: tuple = None

    def __len__(self):
        return self.values.shape[0]

    def to_frame(self):
        df = pd.DataFrame({
            "x": self.locations[:, 0],
            "y": self.locations[:, 1],
            "prediction": self.values,
        })
        if self.variances is not None:
            df["variance"] = self.variances
        return df

    def to_grid(self):
        """Predictions (and variances) reshaped to (ny, nx) for results on a regular grid."""
        if self.shape is None:
            raise ValueError("Result was not produced on a regular grid.")
        z = self.values.reshape(self.shape)
        ss = None if self.variances is None else self.variances.reshape(self.shape)
        return z, ss


def as_query(query_locations):
    q = np.asarray(query_locations, dtype=float)
    if q.ndim == 1 and q.shape[0] == 2:
        q = q[None, :]
    if q.ndim != 2 or q.shape[1] != 2:
        raise InvalidInputError(f"Query locations must have shape (m, 2), got {q.shape}.")
    return q


def nearest_neighbours(train_coords, query, nmax, chunk_size=None):
    """
    Yield (rows, idx, dist) blocks: for each query row the indices of and
    distances to its nmax nearest training points, closest first. Equal
    distances keep the lower training index first.
    """
    chunk_size = chunk_size or config.PREDICT_CHUNK_SIZE
    nmax = min(int(nmax), train_coords.shape[0])
    for start in range(0, query.shape[0], chunk_size):
        rows = slice(start, min(start + chunk_size, query.shape[0]))
        d = cdist(query[rows], train_coords)
        idx = np.argsort(d, axis=1, kind="stable")[:, :nmax]
        yield rows, idx, np.take_along_axis(d, idx, axis=1)


# ---------------------------
# Estimator interface
# ---------------------------
class Estimator(ABC):
    kind = None

    def fit(self, dataset):
        """Capture the training set. Never mutates the input."""
        if len(dataset) == 0:
            raise InsufficientDataError("Cannot fit on an empty training set.")
        return FittedEstimator(
            coords=dataset.coords, values=dataset.values, mean=dataset.mean()
        )

    @abstractmethod
    def predict(self, fitted, query_locations):
        pass

    def predict_with_variance(self, fitted, query_locations):
        return self.predict(fitted, query_locations), None

    def fit_predict(self, dataset, query_locations, shape=None):
        fitted = self.fit(dataset)
        q = as_query(query_locations)
        values, variances = self.predict_with_variance(fitted, q)
        return InterpolationResult(
            locations=q,
            values=values,
            variances=variances,
            degenerate=fitted.degenerate,
            message=fitted.message,
            shape=shape,
        )

    def params(self):
        return {}

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.params().items())
        return f"{type(self).__name__}({args})"


class NullEstimator(Estimator):
    """Predicts the training mean everywhere (baseline)."""
    kind = "null"

    def predict(self, fitted, query_locations):
        q = as_query(query_locations)
        return np.full(q.shape[0], fitted.mean)
