"""
dataset.py

Point observations (sensor location + one measured value).

 - Observation: immutable (x, y, value) record
 - PointDataset: immutable collection backed by read-only numpy arrays
 - PointDataset.from_frame: entry point for tables produced by any CSV / GIS reader
"""

import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import InvalidInputError, InterpolationWarning


@dataclass(frozen=True)
class Observation:
    x: float
    y: float
    value: float

    @property
    def location(self):
        return (self.x, self.y)


class PointDataset:
    def __init__(self, observations):
        """
        observations: sequence of (x, y, value) triples, Observation records,
        or an (n, 3) array.
        """
        data = self._as_array(observations)
        if data.shape[0] == 0:
            raise InvalidInputError("Point dataset is empty.")

        bad = ~np.isfinite(data).all(axis=1)
        if bad.any():
            first = int(np.flatnonzero(bad)[0])
            raise InvalidInputError(
                f"{int(bad.sum())} observation(s) have non-finite coordinates or values "
                f"(first at index {first})."
            )

        self._coords = data[:, :2].copy()
        self._values = data[:, 2].copy()
        self._coords.setflags(write=False)
        self._values.setflags(write=False)

    @staticmethod
    def _as_array(observations):
        if isinstance(observations, PointDataset):
            return np.column_stack([observations.coords, observations.values])
        if isinstance(observations, np.ndarray):
            rows = observations
        else:
            rows = [
                (o.x, o.y, o.value) if isinstance(o, Observation) else o
                for o in observations
            ]
        if len(rows) == 0:
            return np.empty((0, 3))
        try:
            data = np.asarray(rows, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError("Observations must be numeric (x, y, value) triples.") from exc
        if data.ndim != 2 or data.shape[1] != 3:
            raise InvalidInputError(
                f"Observations must have shape (n, 3), got {data.shape}."
            )
        return data

    @classmethod
    def from_arrays(cls, coords, values):
        coords = np.asarray(coords, dtype=float)
        values = np.asarray(values, dtype=float).ravel()
        if coords.ndim != 2 or coords.shape[1] != 2 or coords.shape[0] != values.shape[0]:
            raise InvalidInputError(
                f"coords must be (n, 2) matching values (n,), got {coords.shape} and {values.shape}."
            )
        return cls(np.column_stack([coords, values]))

    @classmethod
    def from_frame(cls, df, x_col="x", y_col="y", value_col="value", dropna=True):
        """
        Build a dataset from a DataFrame. Columns are coerced to numeric.

        dropna=True drops rows with missing / non-finite entries and warns with
        the number of dropped records; dropna=False fails on the first one.
        """
        missing = [c for c in (x_col, y_col, value_col) if c not in df.columns]
        if missing:
            raise InvalidInputError(f"Missing columns: {missing}")

        table = df[[x_col, y_col, value_col]].apply(pd.to_numeric, errors="coerce")
        table = table.replace([np.inf, -np.inf], np.nan)

        if dropna:
            n_before = len(table)
            table = table.dropna()
            n_dropped = n_before - len(table)
            if n_dropped:
                warnings.warn(
                    f"Dropped {n_dropped} of {n_before} records with missing or non-finite values.",
                    InterpolationWarning,
                    stacklevel=2,
                )

        return cls(table.to_numpy(dtype=float))

    # ---------------------------
    # Accessors
    # ---------------------------
    @property
    def coords(self):
        return self._coords

    @property
    def values(self):
        return self._values

    def __len__(self):
        return self._values.shape[0]

    def __iter__(self):
        for (x, y), v in zip(self._coords, self._values):
            yield Observation(float(x), float(y), float(v))

    def __repr__(self):
        return f"PointDataset(n={len(self)}, mean={self.mean():.4g})"

    def mean(self):
        return float(np.mean(self._values))

    def subset(self, indices):
        indices = np.asarray(indices)
        return PointDataset.from_arrays(self._coords[indices], self._values[indices])

    def bounds(self):
        """(xmin, xmax, ymin, ymax)"""
        xmin, ymin = self._coords.min(axis=0)
        xmax, ymax = self._coords.max(axis=0)
        return float(xmin), float(xmax), float(ymin), float(ymax)

    def to_frame(self):
        return pd.DataFrame({
            "x": self._coords[:, 0],
            "y": self._coords[:, 1],
            "value": self._values,
        })


def as_dataset(observations):
    """PointDataset passes through; anything else goes through the constructor."""
    if isinstance(observations, PointDataset):
        return observations
    return PointDataset(observations)
