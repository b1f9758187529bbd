from dataclasses import dataclass

import numpy as np

from . import config
from .errors import InvalidInputError


@dataclass(frozen=True)
class Grid:
    xs: np.ndarray
    ys: np.ndarray

    @property
    def shape(self):
        return (len(self.ys), len(self.xs))

    @property
    def points(self):
        """(ny * nx, 2) query locations, row-major over (y, x)."""
        x_grid, y_grid = np.meshgrid(self.xs, self.ys)
        return np.column_stack([x_grid.ravel(), y_grid.ravel()])


def make_grid(bounds, resolution=None):
    """
    Create a regular grid over bounds = (xmin, xmax, ymin, ymax).

    resolution: number of cells per axis, or a (nx, ny) tuple
    """
    resolution = config.GRID_RESOLUTION if resolution is None else resolution
    nx, ny = (resolution, resolution) if np.isscalar(resolution) else resolution
    xmin, xmax, ymin, ymax = (float(b) for b in bounds)
    if not (xmax >= xmin and ymax >= ymin):
        raise InvalidInputError(f"Invalid grid bounds {bounds}.")
    if int(nx) < 1 or int(ny) < 1:
        raise InvalidInputError(f"Grid resolution must be positive, got {resolution}.")

    xs = np.linspace(xmin, xmax, int(nx))
    ys = np.linspace(ymin, ymax, int(ny))
    return Grid(xs=xs, ys=ys)


def grid_for_dataset(dataset, resolution=None, pad=0.0):
    """Grid covering the dataset extent, widened by pad (fraction of each side's span)."""
    xmin, xmax, ymin, ymax = dataset.bounds()
    dx, dy = (xmax - xmin) * pad, (ymax - ymin) * pad
    return make_grid((xmin - dx, xmax + dx, ymin - dy, ymax + dy), resolution)
