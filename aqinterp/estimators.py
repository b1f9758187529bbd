from dataclasses import dataclass, replace
from enum import Enum

from .base import Estimator, NullEstimator
from .baseline import NearestSensorEstimator, KNearestNeighborEstimator, IDWEstimator
from .kriging import OrdinaryKrigingEstimator
from .errors import InvalidInputError


class EstimatorKind(str, Enum):
    NEAREST = "nearest"
    KNN = "knn"
    IDW = "idw"
    KRIGING = "kriging"
    NULL = "null"


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Estimator selection plus its parameters. Parameters left as None use the
    defaults in config.py; parameters that do not apply to the kind are ignored.
    """
    kind: EstimatorKind
    name: str = None
    nmax: int = None
    power: float = None
    variogram_model: str = None
    n_lags: int = None

    def __post_init__(self):
        object.__setattr__(self, "kind", as_kind(self.kind))

    @property
    def label(self):
        if self.name:
            return self.name
        if self.kind is EstimatorKind.KNN and self.nmax is not None:
            return f"knn(nmax={self.nmax})"
        if self.kind is EstimatorKind.IDW and self.nmax is not None and self.power is not None:
            return f"idw(nmax={self.nmax}, power={self.power:.3g})"
        if self.kind is EstimatorKind.KRIGING and self.variogram_model:
            return f"kriging({self.variogram_model})"
        return self.kind.value

    def with_params(self, **changes):
        return replace(self, **changes)


PARAM_NAMES = {"name", "nmax", "power", "variogram_model", "n_lags"}


def as_kind(kind):
    if isinstance(kind, EstimatorKind):
        return kind
    try:
        return EstimatorKind(str(kind).lower())
    except ValueError:
        raise InvalidInputError(
            f"Unknown estimator kind {kind!r}; expected one of {[k.value for k in EstimatorKind]}."
        ) from None


def make_config(kind, config=None):
    """
    Normalise (kind, parameters) to an EstimatorConfig.
    config may be None, a dict of parameters, or an EstimatorConfig.
    """
    if isinstance(kind, EstimatorConfig):
        return kind
    if isinstance(config, EstimatorConfig):
        return config.with_params(kind=as_kind(kind))
    params = dict(config or {})
    unknown = set(params) - PARAM_NAMES
    if unknown:
        raise InvalidInputError(f"Unknown estimator parameter(s): {sorted(unknown)}")
    return EstimatorConfig(kind=kind, **params)


def build_estimator(kind_or_config, config=None):
    """
    build_estimator(EstimatorConfig(...))
    build_estimator("idw", {"nmax": 8, "power": 2.0})
    An Estimator instance is passed through unchanged.
    """
    if isinstance(kind_or_config, Estimator):
        return kind_or_config
    cfg = make_config(kind_or_config, config)

    if cfg.kind is EstimatorKind.NEAREST:
        return NearestSensorEstimator()
    if cfg.kind is EstimatorKind.KNN:
        return KNearestNeighborEstimator(nmax=cfg.nmax)
    if cfg.kind is EstimatorKind.IDW:
        return IDWEstimator(nmax=cfg.nmax, power=cfg.power)
    if cfg.kind is EstimatorKind.KRIGING:
        return OrdinaryKrigingEstimator(variogram_model=cfg.variogram_model, n_lags=cfg.n_lags)
    return NullEstimator()
