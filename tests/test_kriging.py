import numpy as np
import pytest
from pykrige.ok import OrdinaryKriging

from aqinterp import (
    PointDataset,
    OrdinaryKrigingEstimator,
    VariogramModel,
    VariogramSelector,
    VariogramFitError,
    InvalidInputError,
    InterpolationWarning,
    empirical_variogram,
    fit_variogram,
    fit_and_predict,
)


class TestEmpiricalVariogram:

    def test_binned_semivariance(self):
        coords = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        values = np.array([0.0, 1.0, 2.0])
        lags, sv, counts = empirical_variogram(coords, values, n_lags=2)
        np.testing.assert_allclose(lags, [1.0, 2.0])
        np.testing.assert_allclose(sv, [0.5, 2.0])
        np.testing.assert_array_equal(counts, [2, 1])

    def test_coincident_pairs_ignored(self):
        coords = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 0.0]])
        values = np.array([1.0, 5.0, 1.0])
        lags, sv, counts = empirical_variogram(coords, values, n_lags=4)
        assert counts.sum() == 2

    def test_empty_bins_dropped(self, smooth_dataset):
        lags, sv, counts = empirical_variogram(smooth_dataset.coords, smooth_dataset.values, n_lags=6)
        assert len(lags) == len(sv) == len(counts)
        assert len(lags) <= 6
        assert np.all(counts > 0)
        assert np.all(np.diff(lags) > 0)


class TestVariogramModel:

    @pytest.mark.parametrize("shape", ["spherical", "exponential", "gaussian"])
    def test_zero_at_origin_and_bounded_by_sill(self, shape):
        model = VariogramModel(shape=shape, psill=2.0, range=3.0, nugget=0.5)
        h = np.array([0.0, 0.5, 1.0, 3.0, 30.0])
        gamma = model(h)
        assert gamma[0] == 0.0
        assert np.all(gamma[1:] >= model.nugget)
        assert np.all(gamma <= model.sill + 1e-12)
        assert model.sill == pytest.approx(2.5)

    def test_spherical_reaches_sill_at_range(self):
        model = VariogramModel(shape="spherical", psill=1.0, range=2.0, nugget=0.0)
        assert model(np.array([2.0]))[0] == pytest.approx(1.0)
        assert model(np.array([5.0]))[0] == pytest.approx(1.0)

    def test_accepts_matrix_input(self):
        model = VariogramModel(shape="exponential", psill=1.0, range=2.0, nugget=0.1)
        h = np.array([[0.0, 1.0], [1.0, 0.0]])
        assert model(h).shape == (2, 2)

    @pytest.mark.parametrize("kwargs", [
        {"psill": 1.0, "range": 0.0, "nugget": 0.0},
        {"psill": 1.0, "range": 1.0, "nugget": -0.1},
        {"psill": -1.0, "range": 1.0, "nugget": 0.0},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(InvalidInputError):
            VariogramModel(shape="spherical", **kwargs)


class TestFitVariogram:

    def test_too_few_bins(self):
        with pytest.raises(VariogramFitError, match="distance bin"):
            fit_variogram([1.0, 2.0], [0.5, 1.0], "spherical")

    def test_flat_variogram(self):
        with pytest.raises(VariogramFitError, match="flat"):
            fit_variogram([1.0, 2.0, 3.0], [0.0, 0.0, 0.0], "gaussian")

    def test_unknown_shape(self):
        with pytest.raises(InvalidInputError):
            fit_variogram([1.0, 2.0, 3.0], [0.5, 1.0, 1.2], "cubic")

    def test_recovers_known_model(self):
        truth = VariogramModel(shape="exponential", psill=2.0, range=6.0, nugget=0.3)
        lags = np.linspace(0.5, 10.0, 12)
        model, sse = fit_variogram(lags, truth(lags), "exponential")
        assert sse < 1e-4
        assert model.sill >= model.nugget >= 0.0
        assert model.range > 0.0
        assert model.sill == pytest.approx(truth.sill, rel=1e-2)

    def test_selector_scores_every_shape(self, smooth_dataset):
        selector = VariogramSelector()
        model, scores = selector.select_best(smooth_dataset.coords, smooth_dataset.values)
        assert set(scores) == {"spherical", "exponential", "gaussian"}
        assert model.shape == min(scores, key=scores.get)


class TestOrdinaryKriging:

    def test_exact_at_training_points(self, smooth_dataset):
        est = OrdinaryKrigingEstimator(variogram_model="exponential")
        fitted = est.fit(smooth_dataset)
        assert not fitted.degenerate
        z, ss = est.predict_with_variance(fitted, smooth_dataset.coords)
        np.testing.assert_allclose(z, smooth_dataset.values, atol=1e-6)
        assert np.all(ss < 1e-6)

    def test_variance_grows_away_from_data(self, smooth_dataset):
        est = OrdinaryKrigingEstimator()
        fitted = est.fit(smooth_dataset)
        _, ss = est.predict_with_variance(fitted, [(2.1, 2.1), (40.0, 40.0)])
        assert np.all(ss >= 0.0)
        assert ss[1] > ss[0]

    def test_does_not_mutate_training_data(self, smooth_dataset):
        before = smooth_dataset.values.copy()
        OrdinaryKrigingEstimator().fit(smooth_dataset)
        np.testing.assert_array_equal(smooth_dataset.values, before)

    def test_deterministic(self, smooth_dataset):
        est = OrdinaryKrigingEstimator()
        q = np.array([[0.3, 4.2], [2.5, 2.5]])
        a = est.predict(est.fit(smooth_dataset), q)
        b = est.predict(est.fit(smooth_dataset), q)
        np.testing.assert_array_equal(a, b)

    def test_too_few_bins_falls_back_to_mean(self):
        ds = PointDataset([(0.0, 0.0, 4.0), (1.0, 1.0, 8.0)])
        est = OrdinaryKrigingEstimator()
        with pytest.warns(InterpolationWarning, match="falling back"):
            fitted = est.fit(ds)
        assert fitted.degenerate
        z, ss = est.predict_with_variance(fitted, [(0.5, 0.5), (3.0, 3.0)])
        np.testing.assert_array_equal(z, [6.0, 6.0])
        assert np.all(np.isinf(ss))

    def test_degenerate_result_is_flagged(self):
        with pytest.warns(InterpolationWarning):
            result = fit_and_predict("kriging", None, [(0.0, 0.0, 1.0), (2.0, 0.0, 3.0)], [(1.0, 0.0)])
        assert result.degenerate
        assert "Variogram fit failed" in result.message
        assert result.values[0] == 2.0

    def test_constant_field_is_degenerate(self):
        ds = PointDataset([(float(i), float(i % 3), 7.0) for i in range(10)])
        with pytest.warns(InterpolationWarning):
            fitted = OrdinaryKrigingEstimator().fit(ds)
        assert fitted.degenerate

    def test_unknown_variogram_model(self):
        with pytest.raises(InvalidInputError):
            OrdinaryKrigingEstimator(variogram_model="hole-effect")


class TestKrigingSolver:

    def test_matches_pykrige_with_fitted_variogram(self, smooth_dataset):
        est = OrdinaryKrigingEstimator(variogram_model="spherical")
        fitted = est.fit(smooth_dataset)
        assert isinstance(fitted.model, OrdinaryKriging)

        v = fitted.variogram
        ok = OrdinaryKriging(
            smooth_dataset.coords[:, 0], smooth_dataset.coords[:, 1], smooth_dataset.values,
            variogram_model="spherical",
            variogram_parameters={"psill": v.psill, "range": v.range, "nugget": v.nugget},
            pseudo_inv=True,
        )
        q = np.array([[0.3, 4.2], [2.5, 2.5], [4.9, 0.1]])
        z_ref, ss_ref = ok.execute("points", q[:, 0], q[:, 1])
        z, ss = est.predict_with_variance(fitted, q)
        np.testing.assert_allclose(z, np.ma.getdata(z_ref))
        np.testing.assert_allclose(ss, np.maximum(np.ma.getdata(ss_ref), 0.0))

    def test_gaussian_nugget_floor(self):
        truth = VariogramModel(shape="gaussian", psill=2.0, range=4.0, nugget=0.0)
        lags = np.linspace(0.5, 10.0, 12)
        sv = truth(lags)
        model, _ = fit_variogram(lags, sv, "gaussian")
        assert model.nugget >= 1e-3 * sv.max() * (1 - 1e-9)

    def test_auto_model_exact_on_scattered_points(self, trend_dataset):
        est = OrdinaryKrigingEstimator()
        fitted = est.fit(trend_dataset)
        assert not fitted.degenerate
        z = est.predict(fitted, trend_dataset.coords)
        np.testing.assert_allclose(z, trend_dataset.values, atol=1e-6)

    def test_coincident_sensors(self, smooth_dataset):
        coords = np.vstack([smooth_dataset.coords, smooth_dataset.coords[:1]])
        values = np.append(smooth_dataset.values, smooth_dataset.values[0] + 0.2)
        ds = PointDataset.from_arrays(coords, values)
        est = OrdinaryKrigingEstimator(variogram_model="exponential")
        z, ss = est.predict_with_variance(est.fit(ds), [(1.5, 1.5), (0.0, 0.0)])
        assert np.all(np.isfinite(z))
        assert np.all(ss >= 0.0)
