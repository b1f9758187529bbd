import numpy as np
import pytest

from aqinterp import make_grid, grid_for_dataset, InvalidInputError


class TestGrid:

    def test_shape_and_points(self):
        grid = make_grid((0.0, 4.0, 0.0, 2.0), resolution=(5, 3))
        assert grid.shape == (3, 5)
        pts = grid.points
        assert pts.shape == (15, 2)
        # row-major over y, then x
        np.testing.assert_allclose(pts[0], [0.0, 0.0])
        np.testing.assert_allclose(pts[1], [1.0, 0.0])
        np.testing.assert_allclose(pts[5], [0.0, 1.0])
        np.testing.assert_allclose(pts[-1], [4.0, 2.0])

    def test_scalar_resolution(self):
        assert make_grid((0, 1, 0, 1), resolution=7).shape == (7, 7)

    @pytest.mark.parametrize("bounds", [(1.0, 0.0, 0.0, 1.0), (0.0, 1.0, 2.0, 1.0)])
    def test_invalid_bounds(self, bounds):
        with pytest.raises(InvalidInputError):
            make_grid(bounds, resolution=4)

    def test_invalid_resolution(self):
        with pytest.raises(InvalidInputError):
            make_grid((0, 1, 0, 1), resolution=0)

    def test_grid_for_dataset(self, square_dataset):
        grid = grid_for_dataset(square_dataset, resolution=3)
        np.testing.assert_allclose(grid.xs, [0.0, 0.5, 1.0])
        padded = grid_for_dataset(square_dataset, resolution=3, pad=0.5)
        np.testing.assert_allclose(padded.xs, [-0.5, 0.5, 1.5])
        np.testing.assert_allclose(padded.ys, [-0.5, 0.5, 1.5])
