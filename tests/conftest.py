import numpy as np
import pytest

from aqinterp import PointDataset


@pytest.fixture
def square_dataset():
    """Four corners plus the centre."""
    return PointDataset([
        (0.0, 0.0, 10.0),
        (1.0, 0.0, 20.0),
        (0.0, 1.0, 10.0),
        (1.0, 1.0, 20.0),
        (0.5, 0.5, 15.0),
    ])


@pytest.fixture
def trend_dataset():
    """20 points on a 10 x 10 square, value = x + y + noise."""
    rng = np.random.default_rng(0)
    coords = rng.uniform(0.0, 10.0, size=(20, 2))
    values = coords.sum(axis=1) + rng.normal(0.0, 0.5, size=20)
    return PointDataset.from_arrays(coords, values)


@pytest.fixture
def smooth_dataset():
    """36 points on a 6 x 6 lattice sampling a smooth field."""
    xs, ys = np.meshgrid(np.linspace(0.0, 5.0, 6), np.linspace(0.0, 5.0, 6))
    coords = np.column_stack([xs.ravel(), ys.ravel()])
    values = np.sin(coords[:, 0] / 2.0) + np.cos(coords[:, 1] / 3.0) + 0.1 * coords[:, 0]
    return PointDataset.from_arrays(coords, values)
