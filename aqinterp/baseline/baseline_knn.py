import numpy as np

from .. import config
from ..base import Estimator, as_query, nearest_neighbours
from ..errors import InvalidInputError


###############################################################
# 1. NEIGHBOUR REGRESSION
###############################################################

def knn_regress(train_coords, train_values, query, nmax, power=None):
    """
    Predict at each query row from its nmax nearest training points.

    power=None  -> unweighted mean of the neighbour values
    power=p     -> inverse distance weights 1 / d**p; a query that coincides
                   with a training location takes that location's value
    """
    preds = np.empty(query.shape[0])

    for rows, idx, dist in nearest_neighbours(train_coords, query, nmax):
        Y = train_values[idx]

        if power is None:
            preds[rows] = Y.mean(axis=1)
            continue

        exact = dist[:, 0] == 0.0
        # (d_min / d)**p has the same ratios as 1 / d**p without underflow
        with np.errstate(divide="ignore", invalid="ignore"):
            w = (dist[:, :1] / dist) ** power
        w[exact] = 0.0
        w[exact, 0] = 1.0
        preds[rows] = (w * Y).sum(axis=1) / w.sum(axis=1)

    return preds


def _check_nmax(nmax):
    if nmax is None or not np.isfinite(nmax) or int(nmax) != nmax or int(nmax) < 1:
        raise InvalidInputError(f"nmax must be a positive integer, got {nmax!r}.")
    return int(nmax)


###############################################################
# 2. ESTIMATORS
###############################################################

class NearestSensorEstimator(Estimator):
    """Voronoi interpolation: value of the closest training sensor."""
    kind = "nearest"

    def predict(self, fitted, query_locations):
        q = as_query(query_locations)
        return knn_regress(fitted.coords, fitted.values, q, nmax=1)


class KNearestNeighborEstimator(Estimator):
    kind = "knn"

    def __init__(self, nmax=None):
        self.nmax = _check_nmax(config.KNN_NMAX if nmax is None else nmax)

    def predict(self, fitted, query_locations):
        q = as_query(query_locations)
        return knn_regress(fitted.coords, fitted.values, q, nmax=self.nmax)

    def params(self):
        return {"nmax": self.nmax}


class IDWEstimator(Estimator):
    kind = "idw"

    def __init__(self, nmax=None, power=None):
        self.nmax = _check_nmax(config.IDW_NMAX if nmax is None else nmax)
        power = config.IDW_POWER if power is None else float(power)
        if not np.isfinite(power) or power <= 0:
            raise InvalidInputError(f"power must be a positive number, got {power!r}.")
        self.power = power

    def predict(self, fitted, query_locations):
        q = as_query(query_locations)
        return knn_regress(fitted.coords, fitted.values, q, nmax=self.nmax, power=self.power)

    def params(self):
        return {"nmax": self.nmax, "power": self.power}
