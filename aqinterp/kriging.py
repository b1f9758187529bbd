"""
kriging.py

Ordinary kriging on point data:
 - empirical_variogram: binned semivariance over all training pairs
 - VariogramModel: fitted (partial sill, range, nugget) for one shape
 - VariogramSelector: fits each shape by bounded least squares, keeps the best
 - OrdinaryKrigingEstimator: hands the fitted variogram to pykrige OrdinaryKriging
   for predictions and variances

Notes:
 - Shape functions come from pykrige.variogram_models (psill, range, nugget order).
 - When the variogram cannot be fitted the estimator does not fail: it returns a
   degenerate fit that predicts the training mean with infinite variance.
"""

import warnings
from dataclasses import dataclass

import numpy as np
from scipy.optimize import curve_fit, OptimizeWarning
from scipy.spatial.distance import pdist
from pykrige import variogram_models
from pykrige.ok import OrdinaryKriging

from . import config
from .base import Estimator, FittedEstimator, as_query
from .errors import InvalidInputError, InsufficientDataError, VariogramFitError, InterpolationWarning


VARIOGRAM_FUNCTIONS = {
    "spherical": variogram_models.spherical_variogram_model,
    "exponential": variogram_models.exponential_variogram_model,
    "gaussian": variogram_models.gaussian_variogram_model,
}


# ---------------------------
# Empirical variogram
# ---------------------------
def empirical_variogram(coords, values, n_lags=None):
    """
    Semivariance 0.5 * (z_i - z_j)**2 averaged over equal-width distance bins.
    Coincident pairs are left out. Returns (lags, semivariance, counts) for
    the non-empty bins only; lags are the mean pair distance in each bin.
    """
    n_lags = config.N_LAGS if n_lags is None else int(n_lags)
    coords = np.asarray(coords, dtype=float)
    values = np.asarray(values, dtype=float)

    d = pdist(coords)
    g = 0.5 * pdist(values[:, None], metric="sqeuclidean")
    keep = d > 0
    d, g = d[keep], g[keep]
    if d.size == 0:
        empty = np.empty(0)
        return empty, empty, np.empty(0, dtype=int)

    dmin, dmax = d.min(), d.max()
    edges = np.linspace(dmin, dmax, n_lags + 1)
    # last bin is closed on the right
    which = np.clip(np.searchsorted(edges, d, side="right") - 1, 0, n_lags - 1)

    counts = np.bincount(which, minlength=n_lags)
    nonempty = counts > 0
    lags = np.bincount(which, weights=d, minlength=n_lags)[nonempty] / counts[nonempty]
    semivariance = np.bincount(which, weights=g, minlength=n_lags)[nonempty] / counts[nonempty]
    return lags, semivariance, counts[nonempty]


# ---------------------------
# Variogram model
# ---------------------------
@dataclass(frozen=True)
class VariogramModel:
    shape: str
    psill: float
    range: float
    nugget: float

    def __post_init__(self):
        if self.shape not in VARIOGRAM_FUNCTIONS:
            raise InvalidInputError(f"Unknown variogram shape {self.shape!r}.")
        if self.nugget < 0 or self.psill < 0 or not self.range > 0:
            raise InvalidInputError(
                f"Invalid variogram parameters: psill={self.psill}, range={self.range}, nugget={self.nugget}"
            )

    @property
    def sill(self):
        return self.psill + self.nugget

    def __call__(self, h):
        """Semivariance at distance(s) h; zero at h == 0."""
        h = np.asarray(h, dtype=float)
        gamma = VARIOGRAM_FUNCTIONS[self.shape]([self.psill, self.range, self.nugget], h.ravel())
        gamma = np.where(h.ravel() == 0.0, 0.0, gamma)
        return gamma.reshape(h.shape)


def _curve(shape):
    fn = VARIOGRAM_FUNCTIONS[shape]

    def f(h, psill, range_, nugget):
        return fn([psill, range_, nugget], h)

    return f


def fit_variogram(lags, semivariance, shape, min_bins=None, max_nfev=None):
    """
    Bounded least-squares fit of one variogram shape to the empirical bins.
    Returns (VariogramModel, residual sum of squares).
    """
    min_bins = config.MIN_VARIOGRAM_BINS if min_bins is None else min_bins
    max_nfev = config.VARIOGRAM_MAX_NFEV if max_nfev is None else max_nfev
    lags = np.asarray(lags, dtype=float)
    semivariance = np.asarray(semivariance, dtype=float)

    if shape not in VARIOGRAM_FUNCTIONS:
        raise InvalidInputError(
            f"Unknown variogram shape {shape!r}; expected one of {sorted(VARIOGRAM_FUNCTIONS)}."
        )
    if lags.size < min_bins:
        raise VariogramFitError(
            f"Only {lags.size} distance bin(s) with data; at least {min_bins} are needed."
        )

    max_sv = float(semivariance.max())
    max_lag = float(lags.max())
    if max_sv <= 0:
        raise VariogramFitError("Empirical variogram is flat (all semivariances are zero).")

    # a gaussian model without nugget makes the kriging system near singular
    min_nugget = config.GAUSSIAN_NUGGET_FLOOR * max_sv if shape == "gaussian" else 0.0
    p0 = [max_sv - float(semivariance.min()), 0.25 * max_lag,
          max(float(semivariance.min()), min_nugget)]
    bounds = ([0.0, 1e-6 * max_lag, min_nugget], [10.0 * max_sv, 10.0 * max_lag, max_sv])
    f = _curve(shape)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", OptimizeWarning)
        try:
            popt, _ = curve_fit(f, lags, semivariance, p0=p0, bounds=bounds, max_nfev=max_nfev)
        except (RuntimeError, ValueError) as exc:
            raise VariogramFitError(f"{shape} variogram fit did not converge: {exc}") from exc

    psill, range_, nugget = (float(p) for p in popt)
    if not np.all(np.isfinite(popt)) or psill + nugget <= 0:
        raise VariogramFitError(f"{shape} variogram fit gave a zero or non-finite sill.")

    model = VariogramModel(shape=shape, psill=psill, range=range_, nugget=nugget)
    sse = float(np.sum((f(lags, *popt) - semivariance) ** 2))
    return model, sse


# ---------------------------
# Variogram selector (tries shapes, keeps the best least-squares fit)
# ---------------------------
class VariogramSelector:
    def __init__(self, models=None, n_lags=None):
        self.models = tuple(config.VARIOGRAM_MODELS if models is None else models)
        self.n_lags = config.N_LAGS if n_lags is None else n_lags

    def evaluate(self, lags, semivariance):
        """
        Fit every shape. Returns ({model: sse}, {model: VariogramModel});
        shapes that fail score inf.
        """
        scores, fits, errors = {}, {}, []
        for model in self.models:
            try:
                fits[model], scores[model] = fit_variogram(lags, semivariance, model)
            except VariogramFitError as e:
                scores[model] = np.inf
                errors.append(str(e))
        if not fits:
            raise VariogramFitError("; ".join(errors))
        return scores, fits

    def select_best(self, coords, values):
        lags, semivariance, _ = empirical_variogram(coords, values, self.n_lags)
        scores, fits = self.evaluate(lags, semivariance)
        best = min(scores, key=scores.get)
        return fits[best], scores


# ---------------------------
# Ordinary kriging
# ---------------------------
@dataclass(frozen=True)
class FittedKriging(FittedEstimator):
    variogram: VariogramModel = None
    model: OrdinaryKriging = None


class OrdinaryKrigingEstimator(Estimator):
    kind = "kriging"

    def __init__(self, variogram_model=None, n_lags=None):
        """
        variogram_model: 'auto' (best of spherical / exponential / gaussian)
                         or one of those shape names
        """
        variogram_model = config.VARIOGRAM_MODEL if variogram_model is None else variogram_model
        if variogram_model != "auto" and variogram_model not in VARIOGRAM_FUNCTIONS:
            raise InvalidInputError(f"Unknown variogram model {variogram_model!r}.")
        self.variogram_model = variogram_model
        self.n_lags = config.N_LAGS if n_lags is None else int(n_lags)

    def fit_variogram(self, coords, values):
        models = config.VARIOGRAM_MODELS if self.variogram_model == "auto" else (self.variogram_model,)
        selector = VariogramSelector(models=models, n_lags=self.n_lags)
        variogram, _ = selector.select_best(coords, values)
        return variogram

    def fit(self, dataset):
        if len(dataset) == 0:
            raise InsufficientDataError("Cannot fit on an empty training set.")
        coords, values, mean = dataset.coords, dataset.values, dataset.mean()

        try:
            variogram = self.fit_variogram(coords, values)
        except VariogramFitError as e:
            message = f"Variogram fit failed, falling back to the global mean: {e}"
            warnings.warn(message, InterpolationWarning, stacklevel=2)
            return FittedKriging(coords=coords, values=values, mean=mean,
                                 degenerate=True, message=message)

        # variogram is fixed here; pykrige only solves the system.
        # pseudo_inv covers coincident sensors (singular system)
        OK = OrdinaryKriging(
            coords[:, 0], coords[:, 1], values,
            variogram_model=variogram.shape,
            variogram_parameters={
                "psill": variogram.psill,
                "range": variogram.range,
                "nugget": variogram.nugget,
            },
            nlags=self.n_lags,
            exact_values=True,
            pseudo_inv=True,
            verbose=False, enable_plotting=False,
        )
        return FittedKriging(coords=coords, values=values, mean=mean,
                             variogram=variogram, model=OK)

    def predict_with_variance(self, fitted, query_locations):
        q = as_query(query_locations)
        if fitted.degenerate:
            return np.full(q.shape[0], fitted.mean), np.full(q.shape[0], np.inf)

        z = np.empty(q.shape[0])
        ss = np.empty(q.shape[0])
        for start in range(0, q.shape[0], config.PREDICT_CHUNK_SIZE):
            rows = slice(start, min(start + config.PREDICT_CHUNK_SIZE, q.shape[0]))
            z_chunk, ss_chunk = fitted.model.execute("points", q[rows, 0], q[rows, 1])
            z[rows] = np.ma.getdata(z_chunk)
            ss[rows] = np.ma.getdata(ss_chunk)
        return z, np.maximum(ss, 0.0)

    def predict(self, fitted, query_locations):
        z, _ = self.predict_with_variance(fitted, query_locations)
        return z

    def params(self):
        return {"variogram_model": self.variogram_model, "n_lags": self.n_lags}
